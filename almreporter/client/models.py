"""
Data Models for the ALM REST client

Dataclass-based models exchanged with the REST API. Only the fields the
reporter reads or writes are modelled.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ReportFormatType(Enum):
    """Supported automated test report file formats"""
    JUNIT = "junit"
    XUNIT = "xunit"
    NUNIT = "nunit"
    TESTNG = "testng"
    TRX = "trx"

    @classmethod
    def parse(cls, value) -> Optional["ReportFormatType"]:
        """Look up a format by name, value or ordinal string. Returns None if unknown."""
        if value is None or isinstance(value, cls):
            return value
        text = str(value).strip()
        if text.isdigit():
            members = list(cls)
            index = int(text)
            return members[index] if index < len(members) else None
        for member in cls:
            if text.lower() in (member.value, member.name.lower()):
                return member
        return None


class CertificateStatus(Enum):
    """Outcome of a TLS trust check against the REST API server"""
    VALID = "valid"
    TRUSTED = "trusted"
    INVALID = "invalid"
    INVALID_DOWNLOADABLE = "invalid_downloadable"


@dataclass
class CertificateInfo:
    """Trust status plus any certificates the server presented"""
    status: CertificateStatus
    pem_certificates: List[str] = field(default_factory=list)
    error_message: Optional[str] = None

    @property
    def is_trustworthy(self) -> bool:
        return self.status in (CertificateStatus.VALID, CertificateStatus.TRUSTED)


@dataclass
class VersionInfo:
    rest_api_server: str
    alm_server: str


@dataclass
class Project:
    uuid: str
    name: str


@dataclass
class AutomationSuite:
    id: int
    name: str


@dataclass
class MenuItem:
    id: int
    label: str


@dataclass
class IDLabelPair:
    id: int
    label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label}


@dataclass
class NameValuePair:
    name: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass
class BuildParameterText:
    """A non-sensitive CI build parameter reported as text"""
    name: str
    text: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": "text", "name": self.name, "text": self.text}


@dataclass
class BuildMetadata:
    """Descriptive information attached to a submitted automation build"""
    pending_run_id: Optional[str] = None
    source_override: Optional[str] = None
    branch: Optional[str] = None
    description: Optional[str] = None
    test_run_set: Optional[IDLabelPair] = None
    external_url: Optional[str] = None
    properties: List[NameValuePair] = field(default_factory=list)
    build_parameters: List[BuildParameterText] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "pendingRunID": self.pending_run_id,
            "sourceOverride": self.source_override,
            "externalURL": self.external_url,
            "properties": [p.to_dict() for p in self.properties],
            "runConfigurationInfo": {
                "buildParameters": [p.to_dict() for p in self.build_parameters]
            },
        }
        if self.branch:
            payload["branch"] = self.branch
        if self.description:
            payload["description"] = self.description
        if self.test_run_set is not None:
            payload["testRunSet"] = self.test_run_set.to_dict()
        return payload


@dataclass
class ReportContext:
    report_files: List[str]
    report_format: Optional[ReportFormatType] = None


@dataclass
class SuiteContext:
    project_id: str
    suite_id: str


@dataclass
class SubmitBuildResponse:
    """Result of a build submission; ``error`` is set when the server rejected it"""
    build_id: Optional[int] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error)


@dataclass
class ProjectListResponse:
    projects: List[Project] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error)
