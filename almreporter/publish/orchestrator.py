"""
Build Submission Orchestrator

Publishes one build's test results to ALM:

1. Resolve the connection and its credentials
2. Enumerate report files in the workspace
3. Check the server certificate and request a project token
4. Build a self-contained submission task
5. Dispatch the task and interpret its result

Any failure marks the build unstable and is written to the build log; the
orchestrator never lets an error abort the job.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from almreporter.client import connect
from almreporter.client.auth import build_auth_info
from almreporter.client.exceptions import ALMClientError
from almreporter.connections.credentials import CredentialResolver, EnvironmentCredentialStore
from almreporter.connections.directory import ConnectionDirectory
from almreporter.connections.models import Connection
from almreporter.connections.trust import CertificateTrustManager
from almreporter.publish.context import BuildContext
from almreporter.publish.dispatch import InProcessDispatcher, TaskDispatcher
from almreporter.publish.exceptions import (
    ArtifactError,
    ConfigurationError,
    RemoteSubmissionError,
    SubmissionError,
    TrustError,
)
from almreporter.publish.files import enumerate_report_files
from almreporter.publish.lookup import LookupCache
from almreporter.publish.task import DEFAULT_REQUEST_TIMEOUT, SubmissionResult, SubmissionTask


class SubmissionStage(Enum):
    RESOLVE_CONNECTION = "resolve_connection"
    AUTHENTICATE = "authenticate"
    ENUMERATE_FILES = "enumerate_files"
    BUILD_TASK = "build_task"
    DISPATCH = "dispatch"
    INTERPRET = "interpret"


@dataclass
class PublishRequest:
    """What the pipeline asked to publish"""
    connection: str
    project_id: str
    test_file_pattern: str
    automation_suite_id: int = -1
    automation_suite: Optional[str] = None
    test_file_format: Optional[str] = None
    test_run_set_id: int = -1
    test_run_set: Optional[str] = None
    description: Optional[str] = None
    branch: Optional[str] = None

    def validate(self) -> None:
        if not self.connection:
            raise ConfigurationError("You must select an ALM connection.")
        if not self.project_id:
            raise ConfigurationError("You must select an ALM project.")
        if self.automation_suite_id <= 0 and not self.automation_suite:
            raise ConfigurationError("You must select an automation suite.")
        if not (self.test_file_pattern or "").strip():
            raise ConfigurationError("You must enter a test report files pattern.")


@dataclass
class SubmissionOutcome:
    success: bool
    stage: SubmissionStage
    error: Optional[str] = None
    category: Optional[str] = None
    build_id: Optional[int] = None
    deferred: bool = False


@dataclass
class _SubmissionState:
    stage: SubmissionStage = SubmissionStage.RESOLVE_CONNECTION


@dataclass
class _Authenticated:
    connection: Connection
    user_id: str
    user_secret: str
    authorization_header: str
    certificates: List[str]
    suite_id: int
    run_set_id: int
    run_set_label: Optional[str]


class BuildSubmissionOrchestrator:
    """Runs one publish request against one build"""

    def __init__(self, directory: ConnectionDirectory, resolver: CredentialResolver,
                 trust_manager: CertificateTrustManager,
                 dispatcher: Optional[TaskDispatcher] = None,
                 client_factory: Callable = connect,
                 request_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        self.directory = directory
        self.resolver = resolver
        self.trust_manager = trust_manager
        self.dispatcher = dispatcher or InProcessDispatcher()
        self.client_factory = client_factory
        self.request_timeout = request_timeout
        self.logger = logging.getLogger(self.__class__.__name__)

    def submit(self, request: PublishRequest, context: BuildContext) -> SubmissionOutcome:
        state = _SubmissionState()
        try:
            result = self._submit(request, context, state)
        except SubmissionError as e:
            return self._fail(context, state, e.message, e.category, getattr(e, "severity", "error"))
        except Exception as e:
            self.logger.exception(f"Unexpected failure during {state.stage.value}")
            return self._fail(context, state, str(e) or e.__class__.__name__, "internal", "error")

        if result.deferred:
            # Nothing is known about the submission yet, so the build result is left alone
            context.println("Build submission handed off for remote execution. "
                            "Its result is reported by 'almreporter run-task' on the executing agent.",
                            style="yellow")
            self.logger.warning("Submission task handed off without waiting for its result")
            return SubmissionOutcome(success=False, stage=state.stage, deferred=True)

        context.println("Build files submitted successfully.")
        return SubmissionOutcome(success=True, stage=state.stage, build_id=result.build_id)

    def _fail(self, context: BuildContext, state: _SubmissionState, reason: str,
              category: str, severity: str) -> SubmissionOutcome:
        style = "yellow" if severity == "warning" else "red"
        context.println(f"An error occurred when submitting the build: {reason}", style=style)
        context.mark_unstable()
        self.logger.warning(f"Submission failed during {state.stage.value} ({category}): {reason}")
        return SubmissionOutcome(success=False, stage=state.stage, error=reason, category=category)

    def _submit(self, request: PublishRequest, context: BuildContext,
                state: _SubmissionState) -> SubmissionResult:
        request.validate()
        connection = self._resolve_connection(request)

        state.stage = SubmissionStage.AUTHENTICATE
        details = self.resolver.resolve(connection.credentials_id)
        if details.is_error:
            raise ConfigurationError(details.error_message)

        # Report files are checked before any request goes to the server
        state.stage = SubmissionStage.ENUMERATE_FILES
        report_files = enumerate_report_files(context, request.test_file_pattern)

        state.stage = SubmissionStage.AUTHENTICATE
        auth = self._authenticate(request, connection, details.user_id, details.user_secret)

        state.stage = SubmissionStage.BUILD_TASK
        task = SubmissionTask.build(
            api_address=connection.api_address,
            auth_type=connection.credential_type,
            user_id=auth.user_id,
            user_secret=auth.user_secret,
            authorization_header=auth.authorization_header,
            project_id=request.project_id,
            automation_suite_id=auth.suite_id,
            build_number=context.number,
            job_name=context.job_name,
            queue_id=context.queue_id,
            report_files=report_files,
            report_format=request.test_file_format,
            description=context.expand(request.description) if request.description else None,
            branch=context.expand(request.branch) if request.branch else None,
            test_run_set_id=auth.run_set_id,
            test_run_set_label=auth.run_set_label,
            external_url=context.external_url,
            environment=context.reportable_environment(
                EnvironmentCredentialStore.variable_names(connection.credentials_id)
            ),
            parameters=[(p.name, p.value) for p in context.non_sensitive_parameters()],
            certificates=auth.certificates,
            request_timeout=self.request_timeout,
        )

        state.stage = SubmissionStage.DISPATCH
        context.println("Submitting build files to ALM...")
        result = self.dispatcher.dispatch(task)

        state.stage = SubmissionStage.INTERPRET
        if result.is_error:
            if result.category == ArtifactError.category:
                raise ArtifactError(result.error)
            raise RemoteSubmissionError(result.error)
        return result

    def _resolve_connection(self, request: PublishRequest) -> Connection:
        connection = self.directory.find(request.connection)
        if connection is None:
            raise ConfigurationError("The selected ALM connection no longer exists. Select a different connection.")
        return connection

    def _authenticate(self, request: PublishRequest, connection: Connection,
                      user_id: str, user_secret: str) -> _Authenticated:
        try:
            auth_info = build_auth_info(connection.credential_type, user_id, user_secret)
        except ValueError:
            raise ConfigurationError("Unsupported ALM API authorization type selected.")

        certificates: List[str] = []
        if connection.is_https:
            try:
                outcome = self.trust_manager.check(connection)
            except ALMClientError as e:
                raise RemoteSubmissionError(str(e), e.status_code)
            if not outcome.is_trusted:
                raise TrustError(outcome.message, outcome.severity or "error")
            certificates = outcome.certificates

        lookups = LookupCache()
        try:
            with self.client_factory(connection.api_address, auth_info, certificates,
                                     timeout=self.request_timeout) as client:
                token = client.get_auth_token(request.project_id)
                suite_id = self._resolve_suite_id(client, lookups, request)
                run_set_id, run_set_label = self._resolve_run_set(client, lookups, request)
        except ALMClientError as e:
            raise RemoteSubmissionError(str(e), e.status_code)

        return _Authenticated(
            connection=connection,
            user_id=user_id,
            user_secret=user_secret,
            authorization_header=token.get_authorization_header(),
            certificates=certificates,
            suite_id=suite_id,
            run_set_id=run_set_id,
            run_set_label=run_set_label,
        )

    def _resolve_suite_id(self, client, lookups: LookupCache, request: PublishRequest) -> int:
        if request.automation_suite_id > 0:
            return request.automation_suite_id
        suite_id = lookups.suite_id_for_name(client, request.project_id, request.automation_suite)
        if suite_id is None:
            raise ConfigurationError(f"Could not find an automation suite with name {request.automation_suite}.")
        return suite_id

    def _resolve_run_set(self, client, lookups: LookupCache, request: PublishRequest):
        if request.test_run_set_id > 0:
            return request.test_run_set_id, lookups.run_set_label(client, request.project_id,
                                                                  request.test_run_set_id)
        if request.test_run_set:
            run_set_id = lookups.run_set_id_for_label(client, request.project_id, request.test_run_set)
            if run_set_id is None:
                raise ConfigurationError(f"Could not find a test run set with label {request.test_run_set}.")
            return run_set_id, request.test_run_set
        return -1, None
