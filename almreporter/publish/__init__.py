"""
Build result submission pipeline.
"""

from .context import BuildContext, BuildParameter, BuildResult
from .dispatch import (
    InProcessDispatcher,
    ProcessPoolDispatcher,
    TaskDispatcher,
    TaskFileDispatcher,
    create_dispatcher,
    run_task_file,
)
from .exceptions import (
    ArtifactError,
    ConfigurationError,
    RemoteSubmissionError,
    SubmissionError,
    TrustError,
)
from .orchestrator import BuildSubmissionOrchestrator, PublishRequest, SubmissionOutcome, SubmissionStage
from .task import SubmissionResult, SubmissionTask, execute

__all__ = [
    'BuildContext',
    'BuildParameter',
    'BuildResult',
    'InProcessDispatcher',
    'ProcessPoolDispatcher',
    'TaskDispatcher',
    'TaskFileDispatcher',
    'create_dispatcher',
    'run_task_file',
    'ArtifactError',
    'ConfigurationError',
    'RemoteSubmissionError',
    'SubmissionError',
    'TrustError',
    'BuildSubmissionOrchestrator',
    'PublishRequest',
    'SubmissionOutcome',
    'SubmissionStage',
    'SubmissionResult',
    'SubmissionTask',
    'execute',
]
