"""Task Node Processor.

Task nodes hand a shell command to the task execution collaborator and wait
until it leaves the running state. Runners that implement
``wait_for_completion`` are awaited directly; other runners are polled.
"""

import asyncio
import time
from typing import Any

from hiveflow.models.enums import NodeType, TaskExecutionStatus
from hiveflow.schemas.graph import TaskNode
from hiveflow.services.workflow.interfaces import (
    CompletionAwareTaskRunner,
    TaskExecutionRequest,
    TaskExecutionState,
    TaskRunner,
)
from hiveflow.services.workflow.processors.base import BaseProcessor

TASK_FAILED_MESSAGE = "Task execution failed"


class TaskDelegationMixin:
    """Start a task on the runner and wait for its terminal state.

    Shared by processors that delegate work to the task collaborator.
    """

    async def run_task(
        self: BaseProcessor[Any], request: TaskExecutionRequest, *, timeout: float
    ) -> TaskExecutionState:
        """Run a task to completion.

        Returns:
            The terminal state of a completed task

        Raises:
            ProcessorConfigurationError: No task runner is configured
            ProcessorExecutionError: The task failed, vanished or timed out
        """
        runner = self.dependencies.task_runner
        if runner is None:
            raise self.configuration_error("Task runner not configured")

        execution_id = await runner.start_execution(request)
        try:
            if isinstance(runner, CompletionAwareTaskRunner):
                state = await runner.wait_for_completion(execution_id, timeout)
            else:
                state = await _poll_until_finished(
                    runner,
                    execution_id,
                    interval=self.settings.TASK_POLL_INTERVAL_SECONDS,
                    timeout=timeout,
                )
        except TimeoutError as e:
            raise self.execution_error(
                f"Task execution timed out after {timeout}s"
            ) from e

        if state.status == TaskExecutionStatus.FAILED:
            raise self.execution_error(state.error or TASK_FAILED_MESSAGE)
        return state


async def _poll_until_finished(
    runner: TaskRunner, execution_id: str, *, interval: float, timeout: float
) -> TaskExecutionState:
    deadline = time.monotonic() + timeout
    while True:
        state = await runner.get_execution(execution_id)
        if state is None:
            return TaskExecutionState(
                execution_id=execution_id,
                status=TaskExecutionStatus.FAILED,
                error=f"Task execution {execution_id} not found",
            )
        if state.status != TaskExecutionStatus.RUNNING:
            return state
        if time.monotonic() >= deadline:
            raise TimeoutError(execution_id)
        await asyncio.sleep(interval)


class TaskNodeProcessor(TaskDelegationMixin, BaseProcessor[TaskNode]):
    """Runs the node's task through the task collaborator.

    The command comes from ``config.command`` (default
    ``TASK_DEFAULT_COMMAND``) and runs in ``config.workingDirectory``.
    """

    node_type = NodeType.TASK

    async def process(self, node_input: Any) -> dict[str, Any]:
        task_ref = self.node.data.task_ref
        if not task_ref:
            raise self.configuration_error("Task node has no task reference")

        config = self.node.data.config
        request = TaskExecutionRequest(
            task_ref=task_ref,
            command=config.get("command") or self.settings.TASK_DEFAULT_COMMAND,
            cwd=config.get("workingDirectory"),
        )
        state = await self.run_task(request, timeout=self.settings.TASK_TIMEOUT_SECONDS)

        return {
            "executionId": state.execution_id,
            "taskId": task_ref,
            "exitCode": state.exit_code,
            "output": state.output,
        }
