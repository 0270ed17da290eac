"""Local task runner.

Runs task commands as shell subprocesses on the engine host and reports
their state. Completion is signalled through an asyncio.Event per
execution, so callers can await it instead of polling.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from dataclasses import dataclass, field

from hiveflow.core.logging import get_logger
from hiveflow.models.enums import TaskExecutionStatus
from hiveflow.services.workflow.interfaces import (
    TaskExecutionRequest,
    TaskExecutionState,
)

logger = get_logger(__name__)

MAX_OUTPUT_CHARS = 64 * 1024


class TaskRunnerError(Exception):
    """Raised when a task cannot be started or controlled."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class _RunningTask:
    state: TaskExecutionState
    done: asyncio.Event = field(default_factory=asyncio.Event)
    process: asyncio.subprocess.Process | None = None
    watcher: asyncio.Task[None] | None = None


class LocalTaskRunner:
    """TaskRunner that executes commands with ``asyncio.create_subprocess_shell``.

    stdout and stderr are captured together; the last ``MAX_OUTPUT_CHARS``
    characters are kept as the task output. Exit code 0 is COMPLETED, any
    other code is FAILED.

    Example:
        >>> runner = LocalTaskRunner()
        >>> execution_id = await runner.start_execution(
        ...     TaskExecutionRequest(task_ref="lint", command="ruff check .")
        ... )
        >>> state = await runner.wait_for_completion(execution_id, timeout=60)
    """

    def __init__(self, default_cwd: str | None = None) -> None:
        self.default_cwd = default_cwd
        self._tasks: dict[str, _RunningTask] = {}

    async def start_execution(self, request: TaskExecutionRequest) -> str:
        execution_id = str(uuid.uuid4())
        cwd = request.cwd or self.default_cwd or os.getcwd()
        try:
            process = await asyncio.create_subprocess_shell(
                request.command,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise TaskRunnerError(
                f"Failed to start task {request.task_ref}: {e}"
            ) from e

        running = _RunningTask(
            state=TaskExecutionState(
                execution_id=execution_id, status=TaskExecutionStatus.RUNNING
            ),
            process=process,
        )
        running.watcher = asyncio.create_task(self._watch(running, request))
        self._tasks[execution_id] = running

        logger.info(
            f"Started task {request.task_ref}",
            extra={"context": {"task_execution_id": execution_id, "cwd": cwd}},
        )
        return execution_id

    async def get_execution(self, execution_id: str) -> TaskExecutionState | None:
        running = self._tasks.get(execution_id)
        return None if running is None else running.state

    async def wait_for_completion(
        self, execution_id: str, timeout: float
    ) -> TaskExecutionState:
        running = self._tasks.get(execution_id)
        if running is None:
            raise TaskRunnerError(f"Task execution {execution_id} not found")
        await asyncio.wait_for(running.done.wait(), timeout=timeout)
        return running.state

    async def cancel_execution(self, execution_id: str) -> None:
        """Kill a running task. Its state becomes FAILED.

        Raises:
            TaskRunnerError: The execution is unknown or already finished.
        """
        running = self._tasks.get(execution_id)
        if running is None or running.state.status != TaskExecutionStatus.RUNNING:
            raise TaskRunnerError(
                f"Task execution {execution_id} not found or not running"
            )
        if running.process is not None and running.process.returncode is None:
            running.process.kill()
        await running.done.wait()

    async def cleanup(self) -> None:
        """Kill every task that is still running."""
        for execution_id, running in list(self._tasks.items()):
            if running.state.status == TaskExecutionStatus.RUNNING:
                logger.warning(
                    "Killing task on shutdown",
                    extra={"context": {"task_execution_id": execution_id}},
                )
                await self.cancel_execution(execution_id)

    async def _watch(self, running: _RunningTask, request: TaskExecutionRequest) -> None:
        process = running.process
        assert process is not None
        try:
            stdout, _ = await process.communicate()
            output = stdout.decode(errors="replace")[-MAX_OUTPUT_CHARS:]
            exit_code = process.returncode
            running.state.exit_code = exit_code
            running.state.output = output
            if exit_code == 0:
                running.state.status = TaskExecutionStatus.COMPLETED
            else:
                running.state.status = TaskExecutionStatus.FAILED
                last_line = output.strip().splitlines()[-1] if output.strip() else ""
                running.state.error = (
                    f"Task {request.task_ref} exited with code {exit_code}"
                    + (f": {last_line}" if last_line else "")
                )
            logger.info(
                f"Task {request.task_ref} finished with exit code {exit_code}",
                extra={"context": {"task_execution_id": running.state.execution_id}},
            )
        finally:
            running.done.set()


__all__ = ["LocalTaskRunner", "TaskRunnerError"]
