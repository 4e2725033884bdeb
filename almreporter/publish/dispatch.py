"""
Where a submission task runs.

The orchestrator hands the task to a dispatcher and only looks at the
returned ``SubmissionResult``; nothing is shared across the boundary except
the task itself.
"""

import json
import logging
import os
import tempfile
import time
from abc import ABC, abstractmethod
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import Callable

from almreporter.publish.task import SubmissionResult, SubmissionTask, execute

logger = logging.getLogger(__name__)


class TaskDispatcher(ABC):
    @abstractmethod
    def dispatch(self, task: SubmissionTask) -> SubmissionResult:
        """Run ``task`` and return its result."""


class InProcessDispatcher(TaskDispatcher):
    """Runs the task in the calling thread"""

    def __init__(self, executor: Callable[[SubmissionTask], SubmissionResult] = execute):
        self.executor = executor

    def dispatch(self, task: SubmissionTask) -> SubmissionResult:
        return self.executor(task)


class ProcessPoolDispatcher(TaskDispatcher):
    """Runs the task in a separate worker process.

    The task is pickled into the worker, which builds its own REST client.
    """

    def __init__(self, executor: Callable[[SubmissionTask], SubmissionResult] = execute):
        self.executor = executor

    def dispatch(self, task: SubmissionTask) -> SubmissionResult:
        with ProcessPoolExecutor(max_workers=1) as pool:
            return pool.submit(self.executor, task).result()


def result_path_for(task_path) -> Path:
    """Where ``run-task`` reports the outcome of the task file at ``task_path``."""
    return Path(task_path).with_suffix(".result.json")


def write_result(path, result: SubmissionResult) -> None:
    path = Path(path)
    fd, tmp_path = tempfile.mkstemp(prefix=".tmp.", dir=path.parent)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f)
    os.replace(tmp_path, path)


def read_result(path) -> SubmissionResult:
    with open(path, "r", encoding="utf-8") as f:
        return SubmissionResult.from_dict(json.load(f))


class TaskFileDispatcher(TaskDispatcher):
    """Writes the task as JSON for another agent to run with ``almreporter run-task``.

    The file holds the connection secret, so it is created readable by the
    owner only. With ``result_timeout`` set, the dispatcher waits for the
    result file ``run-task`` writes next to the task and returns that result;
    otherwise the task is only handed off and the result is deferred.
    """

    def __init__(self, path, result_timeout: float = 0, poll_interval: float = 2.0):
        self.path = Path(path)
        self.result_path = result_path_for(self.path)
        self.result_timeout = result_timeout
        self.poll_interval = poll_interval

    def dispatch(self, task: SubmissionTask) -> SubmissionResult:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.result_path.exists():
            self.result_path.unlink()

        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(task.to_json())
        logger.info(f"Wrote submission task to {self.path}")

        if not self.result_timeout:
            return SubmissionResult(deferred=True)
        return self._wait_for_result()

    def _wait_for_result(self) -> SubmissionResult:
        deadline = time.monotonic() + self.result_timeout
        while not self.result_path.exists():
            if time.monotonic() >= deadline:
                return SubmissionResult(
                    error=f"No result was reported for {self.path} within {self.result_timeout:g} seconds."
                )
            time.sleep(self.poll_interval)
        logger.info(f"Read submission result from {self.result_path}")
        return read_result(self.result_path)


def load_task(path) -> SubmissionTask:
    with open(path, "r", encoding="utf-8") as f:
        return SubmissionTask.from_json(f.read())


def run_task(task: SubmissionTask, result_path=None,
             executor: Callable[[SubmissionTask], SubmissionResult] = execute) -> SubmissionResult:
    """Agent side of ``TaskFileDispatcher``: execute the task here and report the result.

    Any failure becomes an error result so the waiting publisher always gets
    an answer.
    """
    try:
        result = executor(task)
    except Exception as e:
        logger.exception(f"Submission task for {task.job_name} #{task.build_number} failed")
        result = SubmissionResult(error=str(e) or e.__class__.__name__)

    if result_path is not None:
        try:
            write_result(result_path, result)
        except OSError as e:
            logger.warning(f"Could not write submission result to {result_path}: {e}")
    return result


def run_task_file(path, executor: Callable[[SubmissionTask], SubmissionResult] = execute) -> SubmissionResult:
    return run_task(load_task(path), result_path_for(path), executor)


def create_dispatcher(mode: str, task_file=None, result_timeout: float = 0) -> TaskDispatcher:
    """Dispatcher for a ``publish.dispatch`` config value: local, process or file."""
    mode = (mode or "local").lower()
    if mode == "local":
        return InProcessDispatcher()
    if mode == "process":
        return ProcessPoolDispatcher()
    if mode == "file":
        if not task_file:
            raise ValueError("A task file path is required when dispatch is 'file'")
        return TaskFileDispatcher(task_file, result_timeout=result_timeout)
    raise ValueError(f"Unknown dispatch mode: {mode}")
