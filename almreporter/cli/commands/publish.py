"""
Publish command implementation.

Thin wrapper around PublishService that handles CLI argument parsing
and delegates business logic to the service layer.
"""
import sys
from typing import List, Optional

import typer

from almreporter.core.publisher import PublishService
from almreporter.publish.context import BuildParameter
from almreporter.publish.orchestrator import PublishRequest


def parse_parameters(values: Optional[List[str]], sensitive: bool = False) -> List[BuildParameter]:
    """Parse repeated NAME=VALUE options into build parameters."""
    parameters = []
    for value in values or []:
        name, separator, text = value.partition("=")
        if not separator or not name:
            raise typer.BadParameter(f"Build parameters must be NAME=VALUE, got: {value}")
        parameters.append(BuildParameter(name=name, value=text, sensitive=sensitive))
    return parameters


def publish_command(
    connection: str = typer.Option(..., "--connection", help="ALM connection name or id"),
    project_id: str = typer.Option(..., "--project", help="ALM project id"),
    test_file_pattern: str = typer.Option(..., "--files", help="Comma-separated glob patterns of report files, relative to the workspace"),
    automation_suite_id: int = typer.Option(-1, "--suite-id", help="Automation suite id"),
    automation_suite: Optional[str] = typer.Option(None, "--suite", help="Automation suite name (instead of --suite-id)"),
    test_file_format: Optional[str] = typer.Option(None, "--format", help="Report format: junit, xunit, nunit, testng or trx"),
    test_run_set_id: int = typer.Option(-1, "--run-set-id", help="Test run set id"),
    test_run_set: Optional[str] = typer.Option(None, "--run-set", help="Test run set label (instead of --run-set-id)"),
    description: Optional[str] = typer.Option(None, "--description", help="Build description; $VAR references are expanded"),
    branch: Optional[str] = typer.Option(None, "--branch", help="Branch name; $VAR references are expanded"),
    workspace: Optional[str] = typer.Option(None, "--workspace", help="Build workspace (defaults to the CI workspace or current directory)"),
    param: Optional[List[str]] = typer.Option(None, "--param", help="Build parameter NAME=VALUE, repeatable"),
    sensitive_param: Optional[List[str]] = typer.Option(None, "--sensitive-param", help="Sensitive build parameter NAME=VALUE, never submitted"),
    dispatch: Optional[str] = typer.Option(None, "--dispatch", help="Where the submission runs: local, process or file"),
    task_file: Optional[str] = typer.Option(None, "--task-file", help="Task file written when --dispatch is file"),
    task_result_timeout: Optional[float] = typer.Option(None, "--task-result-timeout", help="Seconds to wait for the result of a --dispatch file task (0 hands it off)"),
    config_path: Optional[str] = typer.Option(None, "-c", "--config", help="Path to config YAML"),
):
    """Publish automated test results for this build to ALM."""

    request = PublishRequest(
        connection=connection,
        project_id=project_id,
        test_file_pattern=test_file_pattern,
        automation_suite_id=automation_suite_id,
        automation_suite=automation_suite,
        test_file_format=test_file_format,
        test_run_set_id=test_run_set_id,
        test_run_set=test_run_set,
        description=description,
        branch=branch,
    )
    parameters = parse_parameters(param) + parse_parameters(sensitive_param, sensitive=True)

    # Delegate to service layer
    publish_service = PublishService()
    exit_code = publish_service.execute_publish(
        request=request,
        config_path=config_path,
        workspace=workspace,
        parameters=parameters,
        dispatch=dispatch,
        task_file=task_file,
        task_result_timeout=task_result_timeout,
    )

    # Exit with appropriate code
    if exit_code != 0:
        sys.exit(exit_code)
