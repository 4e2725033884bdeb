"""
The running CI job, as seen by the publisher.

``BuildContext`` gives the submission pipeline what it needs from the CI host:
build number, job name, queue id, workspace, environment snapshot, build
parameters, a log sink and a way to mark the build unstable.
"""

import os
from dataclasses import dataclass
from enum import Enum
from string import Template
from typing import Dict, Iterable, List, Mapping, Optional

from rich.console import Console

from almreporter.rich_utils.ui_helpers import get_console


class BuildResult(Enum):
    SUCCESS = 0
    UNSTABLE = 1
    FAILURE = 2

    def combine(self, other: "BuildResult") -> "BuildResult":
        """The worse of two results; a build result never improves."""
        return self if self.value >= other.value else other


@dataclass(frozen=True)
class BuildParameter:
    name: str
    value: Optional[str]
    sensitive: bool = False


# (build number, job name, workspace, queue id, build url) per CI system
_CI_VARIABLES = (
    ("BUILD_NUMBER", "JOB_NAME", "WORKSPACE", "QUEUE_ID", "BUILD_URL"),
    ("GITHUB_RUN_NUMBER", "GITHUB_WORKFLOW", "GITHUB_WORKSPACE", "GITHUB_RUN_ID", None),
    ("CI_PIPELINE_IID", "CI_JOB_NAME", "CI_PROJECT_DIR", "CI_JOB_ID", "CI_JOB_URL"),
)


def _github_run_url(environ: Mapping[str, str]) -> Optional[str]:
    server = environ.get("GITHUB_SERVER_URL")
    repository = environ.get("GITHUB_REPOSITORY")
    run_id = environ.get("GITHUB_RUN_ID")
    if server and repository and run_id:
        return f"{server}/{repository}/actions/runs/{run_id}"
    return None


class BuildContext:
    """Live view of the CI job a submission runs for"""

    def __init__(self, number: str, job_name: str, workspace: str,
                 environment: Optional[Mapping[str, str]] = None,
                 parameters: Iterable[BuildParameter] = (),
                 queue_id: str = "",
                 external_url: Optional[str] = None,
                 console: Optional[Console] = None):
        self.number = str(number)
        self.job_name = job_name
        self.workspace = workspace
        self.environment: Dict[str, str] = dict(environment or {})
        self.parameters: List[BuildParameter] = list(parameters)
        self.queue_id = str(queue_id or "")
        self.external_url = external_url
        self.console = console or get_console()
        self.result = BuildResult.SUCCESS

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None,
                         workspace: Optional[str] = None,
                         parameters: Iterable[BuildParameter] = (),
                         console: Optional[Console] = None) -> "BuildContext":
        """Describe the current job from the variables Jenkins, GitHub Actions or GitLab CI export."""
        environ = dict(os.environ if environ is None else environ)

        number, job_name, ci_workspace, queue_id, external_url = "0", "local", None, "", None
        for number_var, job_var, workspace_var, queue_var, url_var in _CI_VARIABLES:
            if number_var in environ:
                number = environ[number_var]
                job_name = environ.get(job_var, job_name)
                ci_workspace = environ.get(workspace_var)
                queue_id = environ.get(queue_var, "")
                external_url = environ.get(url_var) if url_var else _github_run_url(environ)
                break

        return cls(
            number=number,
            job_name=job_name,
            workspace=workspace or ci_workspace or os.getcwd(),
            environment=environ,
            parameters=parameters,
            queue_id=queue_id,
            external_url=external_url,
            console=console,
        )

    @property
    def is_unstable(self) -> bool:
        return self.result is not BuildResult.SUCCESS

    def println(self, message: str, style: Optional[str] = None) -> None:
        self.console.print(message, style=style, markup=False, highlight=False)

    def mark_unstable(self) -> None:
        self.result = self.result.combine(BuildResult.UNSTABLE)

    def expand(self, text: str) -> str:
        """Substitute ``$VAR`` and ``${VAR}`` from the build environment; unknown names are left as-is."""
        return Template(text).safe_substitute(self.environment)

    def non_sensitive_parameters(self) -> List[BuildParameter]:
        return [p for p in self.parameters if not p.sensitive]

    def reportable_environment(self, hidden: Iterable[str] = ()) -> Dict[str, str]:
        """The environment minus ``hidden`` names and the names of sensitive parameters."""
        excluded = set(hidden)
        excluded.update(p.name for p in self.parameters if p.sensitive)
        return {name: value for name, value in self.environment.items() if name not in excluded}
