"""
Connection command implementations.

Thin wrappers around ConnectionService for listing and testing the
configured ALM connections.
"""
import sys
from typing import Optional

import typer

from almreporter.core.connection_service import ConnectionService


def connections_command(
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML"),
):
    """List the configured ALM connections."""

    exit_code = ConnectionService().list_connections(config_path=config_path)
    if exit_code != 0:
        sys.exit(exit_code)


def test_connection_command(
    connection: str = typer.Argument(..., help="ALM connection name or id"),
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML"),
):
    """Validate an ALM connection: credentials, certificate, REST API version and project access."""

    exit_code = ConnectionService().test_connection(connection, config_path=config_path)
    if exit_code != 0:
        sys.exit(exit_code)
