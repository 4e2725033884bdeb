"""
Configuration management for ALM Test Reporter.

Handles loading, merging, and discovery of configuration files, and keeps
connection identifiers stable by writing generated uuids back to the file
they were read from.
"""
import importlib.resources as importlib_resources
import logging
import os
from typing import List, Optional, Tuple

import yaml

CONFIG_FILENAME = "almreporter.config.yaml"

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration loading and merging operations."""

    def __init__(self):
        self.config_path: Optional[str] = None

    def load_config(self, path: str) -> dict:
        """Load configuration from YAML file."""
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def save_config(self, path: str, config: dict) -> None:
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(config, f, sort_keys=False)
        os.replace(tmp_path, path)

    def deep_merge(self, default: dict, user: dict) -> dict:
        """Deep merge user config into default config."""
        result = default.copy()
        for key, value in user.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def load_package_default_config(self) -> dict:
        """Load default config from package."""
        import almreporter.config
        default_config_path = importlib_resources.files(almreporter.config) / 'default.yaml'
        with default_config_path.open('r', encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def load_and_merge_config(self, user_config_path: str) -> dict:
        """Load user config and merge with package default."""
        default_config = self.load_package_default_config()
        user_config = self.load_config(user_config_path)
        self.config_path = user_config_path
        return self.deep_merge(default_config, user_config)

    def discover_and_load_config(self, config_arg: Optional[str]) -> dict:
        """Discover config file with priority order."""

        # Priority 1: --config argument
        if config_arg:
            if os.path.exists(config_arg):
                return self.load_and_merge_config(config_arg)
            else:
                raise FileNotFoundError(f"Config file not found: {config_arg}")

        # Priority 2: almreporter.config.yaml in current directory
        if os.path.exists(CONFIG_FILENAME):
            return self.load_and_merge_config(CONFIG_FILENAME)

        # Priority 3: Package default config
        self.config_path = None
        return self.load_package_default_config()

    def ensure_connection_ids(self, config: dict) -> Tuple[dict, List[str]]:
        """Give every configured connection a uuid, saving the config if any were added.

        Returns the config and the names of connections that got a new uuid.
        """
        from almreporter.connections.models import Connection

        generated = []
        for entry in config.get("connections") or []:
            if not entry.get("connection_uuid"):
                entry["connection_uuid"] = Connection.from_dict(entry).connection_uuid
                generated.append(entry.get("connection_name") or "<unnamed>")

        if generated and self.config_path:
            user_config = self.load_config(self.config_path)
            user_config["connections"] = config["connections"]
            self.save_config(self.config_path, user_config)
            logger.info(f"Assigned connection ids to {', '.join(generated)} in {self.config_path}")
        elif generated:
            logger.debug("Generated connection ids for connections without a config file to save them to")

        return config, generated
