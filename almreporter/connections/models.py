"""
Connection definitions for ALM REST API servers.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict

from almreporter.client.auth import APIAuthType
from almreporter.client.tls import is_https


@dataclass
class Connection:
    """A single ALM REST API connection.

    ``connection_uuid`` is generated once and never changes; it keys the
    accepted certificate storage. ``connection_name`` is the friendly name
    pipelines refer to and may collide with another connection's name.
    """
    connection_name: str
    api_address: str
    credentials_id: str
    credential_type: APIAuthType = APIAuthType.BASIC
    accept_ssl_certificates: bool = False
    connection_uuid: str = field(default="")

    def __post_init__(self):
        if not self.connection_uuid:
            self.__dict__["connection_uuid"] = str(uuid.uuid4())
        self.credential_type = APIAuthType.from_value(self.credential_type)

    def __setattr__(self, name, value):
        if name == "connection_uuid" and "connection_uuid" in self.__dict__:
            raise AttributeError("connection_uuid cannot be changed once created")
        super().__setattr__(name, value)

    @property
    def is_https(self) -> bool:
        return is_https(self.api_address)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Connection":
        """Build a connection from a config mapping.

        Older configs nest the certificate flag under
        ``optional_connection_props``; both spellings are accepted.
        """
        accept = data.get("accept_ssl_certificates")
        if accept is None:
            optional_props = data.get("optional_connection_props") or {}
            accept = optional_props.get("accept_ssl_certificates", False)

        return cls(
            connection_name=data.get("connection_name") or "",
            api_address=data.get("api_address") or "",
            credentials_id=data.get("credentials_id") or "",
            credential_type=data.get("credential_type") or APIAuthType.BASIC,
            accept_ssl_certificates=bool(accept),
            connection_uuid=data.get("connection_uuid") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connection_uuid": self.connection_uuid,
            "connection_name": self.connection_name,
            "api_address": self.api_address,
            "credential_type": self.credential_type.value,
            "credentials_id": self.credentials_id,
            "accept_ssl_certificates": self.accept_ssl_certificates,
        }
