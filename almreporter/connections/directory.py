"""
Registry of configured ALM connections.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from almreporter.connections.models import Connection

logger = logging.getLogger(__name__)


class ConnectionDirectory:
    """Configured connections, looked up by friendly name or uuid.

    Readers get a snapshot so a concurrent edit can never hand them a
    half-updated list. Mutations are serialized on an internal lock.
    """

    def __init__(self, connections: Iterable[Connection] = ()):
        self._lock = threading.RLock()
        self._connections: List[Connection] = list(connections)

    @classmethod
    def from_config(cls, entries: Optional[Iterable[Dict[str, Any]]]) -> "ConnectionDirectory":
        return cls(Connection.from_dict(entry) for entry in (entries or []))

    def to_config(self) -> List[Dict[str, Any]]:
        return [connection.to_dict() for connection in self.list()]

    def list(self) -> List[Connection]:
        with self._lock:
            return list(self._connections)

    def find(self, name_or_id: str) -> Optional[Connection]:
        """First connection whose name or uuid equals ``name_or_id``.

        Names are not guaranteed unique, so when two connections share a name
        the one listed first wins.
        """
        if not name_or_id:
            return None
        for connection in self.list():
            if name_or_id in (connection.connection_name, connection.connection_uuid):
                return connection
        return None

    def add(self, connection: Connection) -> None:
        with self._lock:
            if any(c.connection_uuid == connection.connection_uuid for c in self._connections):
                raise ValueError(f"A connection with id {connection.connection_uuid} already exists")
            self._connections.append(connection)
        logger.debug(f"Added ALM connection {connection.connection_name}")

    def remove(self, name_or_id: str) -> bool:
        with self._lock:
            connection = self.find(name_or_id)
            if connection is None:
                return False
            self._connections = [c for c in self._connections if c is not connection]
        logger.debug(f"Removed ALM connection {connection.connection_name}")
        return True

    def replace(self, connection: Connection) -> None:
        """Swap in an edited connection with the same uuid."""
        with self._lock:
            for index, existing in enumerate(self._connections):
                if existing.connection_uuid == connection.connection_uuid:
                    updated = list(self._connections)
                    updated[index] = connection
                    self._connections = updated
                    return
        raise KeyError(connection.connection_uuid)

    def replace_all(self, connections: Iterable[Connection]) -> None:
        with self._lock:
            self._connections = list(connections)

    @staticmethod
    def validate(connections: Iterable[Connection]) -> List[str]:
        """Save-time checks. Returns the list of problems found, empty when valid."""
        errors = []
        seen_names = set()
        for connection in connections:
            name = (connection.connection_name or "").strip()
            if not name:
                errors.append("The ALM connection name cannot be empty.")
            elif name in seen_names:
                errors.append(f"The ALM connection name must be unique: {name}.")
            seen_names.add(name)

            address = (connection.api_address or "").strip().lower()
            if not address.startswith(("http://", "https://")):
                errors.append(
                    f"The ALM REST API address must start with http:// or https:// ({name or '<unnamed>'})."
                )

            if not (connection.credentials_id or "").strip():
                errors.append(f"The ALM connection credentials must be selected ({name or '<unnamed>'}).")
        return errors
