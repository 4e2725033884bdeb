"""
Self-contained description of one build submission.

A ``SubmissionTask`` holds plain strings and tuples only, so it can be
pickled into a worker process or written to JSON for another build agent.
``execute`` rebuilds a REST client from it and makes the single submission
call.
"""

import json
import logging
import platform
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from almreporter.client import connect
from almreporter.client.auth import APIAuthType, build_auth_info
from almreporter.client.exceptions import ALMClientError
from almreporter.client.models import (
    BuildMetadata,
    BuildParameterText,
    IDLabelPair,
    NameValuePair,
    ReportContext,
    ReportFormatType,
    SuiteContext,
)
from almreporter.publish.exceptions import MISSING_REPORT_FILE_MESSAGE

logger = logging.getLogger(__name__)

# Environment variables reported as build properties
ENVIRONMENT_PROPERTIES = ("BUILD_TAG", "JOB_NAME", "NODE_NAME", "WORKSPACE", "JAVA_HOME")

SOURCE_OVERRIDE = "ALM Test Reporter"
DEFAULT_REQUEST_TIMEOUT = 60


@dataclass(frozen=True)
class SubmissionTask:
    """Everything needed to submit one build, as primitives"""
    api_address: str
    auth_type: str
    user_id: str
    user_secret: str = field(repr=False)
    project_id: str
    automation_suite_id: str
    build_number: str
    job_name: str
    report_files: Tuple[str, ...]
    report_format: Optional[str] = None
    authorization_header: str = field(default="", repr=False)
    queue_id: str = ""
    description: Optional[str] = None
    branch: Optional[str] = None
    test_run_set_id: int = -1
    test_run_set_label: Optional[str] = None
    external_url: Optional[str] = None
    environment: Tuple[Tuple[str, str], ...] = ()
    parameters: Tuple[Tuple[str, str], ...] = ()
    certificates: Tuple[str, ...] = field(default=(), repr=False)
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def build(cls, *, api_address: str, auth_type, user_id: str, user_secret: str,
              project_id, automation_suite_id, build_number, job_name: str,
              report_files: Iterable[str],
              report_format=None,
              authorization_header: str = "",
              queue_id: str = "",
              description: Optional[str] = None,
              branch: Optional[str] = None,
              test_run_set_id: int = -1,
              test_run_set_label: Optional[str] = None,
              external_url: Optional[str] = None,
              environment: Optional[Mapping[str, str]] = None,
              parameters: Iterable[Tuple[str, Optional[str]]] = (),
              certificates: Sequence[str] = (),
              request_timeout: float = DEFAULT_REQUEST_TIMEOUT) -> "SubmissionTask":
        """Copy already-resolved inputs into a task.

        ``parameters`` must already exclude sensitive build parameters.
        """
        report_format = ReportFormatType.parse(report_format)
        return cls(
            api_address=str(api_address),
            auth_type=APIAuthType.from_value(auth_type).value,
            user_id=str(user_id),
            user_secret=str(user_secret),
            project_id=str(project_id),
            automation_suite_id=str(automation_suite_id),
            build_number=str(build_number),
            job_name=str(job_name),
            report_files=tuple(str(f) for f in report_files),
            report_format=report_format.value if report_format else None,
            authorization_header=str(authorization_header or ""),
            queue_id=str(queue_id or ""),
            description=description or None,
            branch=branch or None,
            test_run_set_id=int(test_run_set_id),
            test_run_set_label=test_run_set_label or None,
            external_url=external_url or None,
            environment=tuple(sorted((str(k), str(v)) for k, v in (environment or {}).items())),
            parameters=tuple((str(name), "" if value is None else str(value)) for name, value in parameters),
            certificates=tuple(certificates),
            request_timeout=float(request_timeout),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SubmissionTask":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        for name in ("report_files", "certificates"):
            values[name] = tuple(values.get(name) or ())
        for name in ("environment", "parameters"):
            values[name] = tuple(tuple(pair) for pair in (values.get(name) or ()))
        return cls(**values)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> "SubmissionTask":
        return cls.from_dict(json.loads(text))


@dataclass(frozen=True)
class SubmissionResult:
    """What came back from a dispatched task.

    ``error`` is set when the server rejected the build or could not be
    reached, or when a report file could not be read (``category`` is then
    ``"artifact"``). ``deferred`` means the task was handed off to run
    elsewhere and no result is known yet.
    """
    error: Optional[str] = None
    build_id: Optional[int] = None
    deferred: bool = False
    category: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return bool(self.error)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SubmissionResult":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def determine_os() -> str:
    system = platform.system()
    if system == "Darwin":
        return "Mac OS X"
    if system == "Windows":
        return "Windows"
    return "Linux"


def property_display_name(variable: str) -> str:
    """``BUILD_TAG`` -> ``Build tag``"""
    return variable.lower().replace("_", " ").capitalize()


def format_environment(environment: Sequence[Tuple[str, str]]) -> str:
    return "{" + ", ".join(f"{name}={value}" for name, value in environment) + "}"


def build_properties(task: SubmissionTask) -> List[NameValuePair]:
    environment = dict(task.environment)
    properties = [NameValuePair("os.type", determine_os())]
    for variable in ENVIRONMENT_PROPERTIES:
        value = environment.get(variable, "")
        if value:
            properties.append(NameValuePair(property_display_name(variable), value))
    properties.append(NameValuePair("Environment Variables", format_environment(task.environment)))
    return properties


def build_test_run_set(task: SubmissionTask) -> Optional[IDLabelPair]:
    if task.test_run_set_id > 0:
        return IDLabelPair(task.test_run_set_id, task.test_run_set_label)
    if task.test_run_set_label:
        return IDLabelPair(-1, task.test_run_set_label)
    return None


def build_metadata(task: SubmissionTask) -> BuildMetadata:
    return BuildMetadata(
        pending_run_id=task.queue_id or None,
        source_override=SOURCE_OVERRIDE,
        branch=task.branch,
        description=task.description,
        test_run_set=build_test_run_set(task),
        external_url=task.external_url,
        properties=build_properties(task),
        build_parameters=[BuildParameterText(name, text) for name, text in task.parameters],
    )


def execute(task: SubmissionTask, client_factory: Callable = connect) -> SubmissionResult:
    """Submit the task's build to the REST API.

    Server rejections, transport failures and unreadable report files come
    back as an error result.
    A task that can't produce a client at all (bad address, unknown auth
    type) raises.
    """
    auth_info = build_auth_info(APIAuthType.from_value(task.auth_type), task.user_id, task.user_secret)
    report_context = ReportContext(
        report_files=list(task.report_files),
        report_format=ReportFormatType.parse(task.report_format),
    )
    suite_context = SuiteContext(project_id=task.project_id, suite_id=task.automation_suite_id)
    metadata = build_metadata(task)

    with client_factory(task.api_address, auth_info, list(task.certificates),
                        timeout=task.request_timeout) as client:
        try:
            response = client.submit_build(
                task.build_number,
                report_context,
                suite_context,
                metadata,
                authorization=task.authorization_header or None,
            )
        except ALMClientError as e:
            logger.warning(f"Build submission for {task.job_name} #{task.build_number} failed: {e}")
            return SubmissionResult(error=str(e))
        except OSError as e:
            # A report file went away or became unreadable after enumeration
            logger.warning(f"Could not read report file {e.filename}: {e.strerror}")
            return SubmissionResult(error=MISSING_REPORT_FILE_MESSAGE.format(path=e.filename), category="artifact")

    if response.is_error:
        return SubmissionResult(error=response.error)
    return SubmissionResult(build_id=response.build_id)
