"""
Run-task command implementation.

Executes a submission task file written by ``publish --dispatch file`` on the
agent that holds the report files.
"""
import sys

import typer

from almreporter.core.publisher import PublishService


def run_task_command(
    task_file: str = typer.Argument(..., help="Submission task JSON file"),
):
    """Execute a serialized submission task on this agent."""

    publish_service = PublishService()
    exit_code = publish_service.execute_task_file(task_file)

    if exit_code != 0:
        sys.exit(exit_code)
