"""
Connection service for ALM Test Reporter.

Lists configured connections and runs connection tests for the CLI.
"""
from typing import Optional

from rich.table import Table

from almreporter.connections.tester import CheckKind, ConnectionTester
from almreporter.core.components import (
    build_credential_resolver,
    build_directory,
    build_trust_manager,
    publish_settings,
)
from almreporter.core.config_manager import ConfigManager
from almreporter.rich_utils.ui_helpers import get_console

CHECK_STYLES = {
    CheckKind.OK: ("✅", "green"),
    CheckKind.WARNING: ("⚠️", "yellow"),
    CheckKind.ERROR: ("❌", "bold red"),
}


class ConnectionService:
    """Service for inspecting and testing ALM connections."""

    def __init__(self, config_manager: Optional[ConfigManager] = None, console=None):
        self.config_manager = config_manager or ConfigManager()
        self.console = console or get_console()

    def _load(self, config_path: Optional[str]) -> dict:
        config = self.config_manager.discover_and_load_config(config_path)
        config, _ = self.config_manager.ensure_connection_ids(config)
        return config

    def list_connections(self, config_path: Optional[str] = None) -> int:
        config = self._load(config_path)
        directory = build_directory(config)
        connections = directory.list()

        if not connections:
            self.console.print("No ALM connections configured", style="yellow")
            return 0

        table = Table(title="ALM Connections")
        table.add_column("Name", style="cyan")
        table.add_column("REST API Address")
        table.add_column("Authorization")
        table.add_column("Credentials")
        table.add_column("Accept Certificates")
        table.add_column("ID", style="dim")
        for connection in connections:
            table.add_row(
                connection.connection_name,
                connection.api_address,
                connection.credential_type.description,
                connection.credentials_id,
                "yes" if connection.accept_ssl_certificates else "no",
                connection.connection_uuid,
            )
        self.console.print(table)

        for problem in directory.validate(connections):
            self.console.print(f"⚠️ {problem}", style="yellow")
        return 0

    def test_connection(self, name_or_id: str, config_path: Optional[str] = None) -> int:
        config = self._load(config_path)
        connection = build_directory(config).find(name_or_id)
        if connection is None:
            self.console.print(f"❌ No ALM connection named {name_or_id}", style="bold red")
            return 1

        tester = ConnectionTester(
            resolver=build_credential_resolver(config),
            trust_manager=build_trust_manager(config),
            timeout=publish_settings(config)["request_timeout"],
        )
        self.console.print(f"Testing connection '{connection.connection_name}' ({connection.api_address})...")
        result = tester.test(connection)

        icon, style = CHECK_STYLES[result.kind]
        self.console.print(f"{icon} {result.message}", style=style)
        return 1 if result.kind is CheckKind.ERROR else 0
