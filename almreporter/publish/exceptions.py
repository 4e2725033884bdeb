"""
Failures that stop a build submission.

Every failure raised inside the submission pipeline is one of these. The
orchestrator catches them at its boundary and turns them into an unstable
build with a readable message; ``category`` tells the log which kind it was.
"""

from typing import Optional


class SubmissionError(Exception):
    """Base class for submission failures"""

    category = "submission"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(SubmissionError):
    """Missing connection, credentials, project, suite or file pattern"""

    category = "configuration"


class TrustError(SubmissionError):
    """The server certificate is not trusted.

    ``severity`` is ``"warning"`` when the certificate could be accepted by
    opting in, ``"error"`` when it can't be used at all.
    """

    category = "trust"

    def __init__(self, message: str, severity: str = "error"):
        self.severity = severity
        super().__init__(message)


class RemoteSubmissionError(SubmissionError):
    """Transport, authorization or server-side failure"""

    category = "remote"

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ArtifactError(SubmissionError, FileNotFoundError):
    """No report files matched, or a matched file vanished before submission"""

    category = "artifact"


NO_REPORT_FILES_MESSAGE = "No test result files were generated by the build."
MISSING_REPORT_FILE_MESSAGE = "A test result file was not found: {path}"
