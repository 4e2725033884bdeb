"""
Publish service for ALM Test Reporter.

Runs the build submission for one CI build and maps the outcome to an exit
code, and executes submission tasks handed off by another agent.
"""
import logging
from typing import Iterable, Optional

from almreporter.core.components import (
    build_credential_resolver,
    build_directory,
    build_trust_manager,
    publish_settings,
)
from almreporter.core.config_manager import ConfigManager
from almreporter.publish.context import BuildContext, BuildParameter
from almreporter.publish.dispatch import create_dispatcher, load_task, result_path_for, run_task
from almreporter.publish.orchestrator import BuildSubmissionOrchestrator, PublishRequest
from almreporter.rich_utils.ui_helpers import get_console


class PublishService:
    """Service for publishing build test results to ALM."""

    def __init__(self, config_manager: Optional[ConfigManager] = None, console=None):
        self.config_manager = config_manager or ConfigManager()
        self.console = console or get_console()
        self.logger = logging.getLogger(self.__class__.__name__)

    def execute_publish(
        self,
        request: PublishRequest,
        config_path: Optional[str] = None,
        workspace: Optional[str] = None,
        parameters: Iterable[BuildParameter] = (),
        dispatch: Optional[str] = None,
        task_file: Optional[str] = None,
        task_result_timeout: Optional[float] = None,
    ) -> int:
        """Publish one build and return the exit code."""
        try:
            config = self.config_manager.discover_and_load_config(config_path)
            config, _ = self.config_manager.ensure_connection_ids(config)
        except (OSError, ValueError) as e:
            self.console.print(f"❌ Could not load configuration: {e}", style="bold red")
            return 1

        settings = publish_settings(config)
        if task_result_timeout is None:
            task_result_timeout = settings["task_result_timeout"]
        try:
            dispatcher = create_dispatcher(
                dispatch or settings["dispatch"],
                task_file or settings["task_file"],
                result_timeout=float(task_result_timeout),
            )
        except ValueError as e:
            self.console.print(f"❌ {e}", style="bold red")
            return 1

        orchestrator = BuildSubmissionOrchestrator(
            directory=build_directory(config),
            resolver=build_credential_resolver(config),
            trust_manager=build_trust_manager(config),
            dispatcher=dispatcher,
            request_timeout=settings["request_timeout"],
        )
        context = BuildContext.from_environment(workspace=workspace, parameters=parameters,
                                                console=self.console)

        outcome = orchestrator.submit(request, context)
        if outcome.success or outcome.deferred:
            return 0

        self.logger.debug(f"Build marked {context.result.name.lower()} ({outcome.category})")
        return int(settings["unstable_exit_code"])

    def execute_task_file(self, task_path: str) -> int:
        """Run a submission task written by the file dispatcher and return the exit code."""
        try:
            task = load_task(task_path)
        except (OSError, ValueError, TypeError) as e:
            self.console.print(f"❌ Could not read submission task {task_path}: {e}", style="bold red")
            return 1

        self.console.print("Submitting build files to ALM...")
        result = run_task(task, result_path_for(task_path))
        if result.is_error:
            self.console.print(f"An error occurred when submitting the build: {result.error}",
                               style="red", markup=False)
            return 1

        self.console.print("Build files submitted successfully.", style="green")
        return 0
