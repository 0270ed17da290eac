"""Base processor abstract class.

One processor instance handles one node in one run. ``execute`` wraps the
type-specific ``process`` with timeout, retry and error capture, so that
it always returns a NodeOutcome and never raises.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from hiveflow.core.config import Settings, get_settings
from hiveflow.core.logging import get_logger
from hiveflow.schemas.graph import BaseNode
from hiveflow.services.workflow.exceptions import ExecutionCancelledError
from hiveflow.services.workflow.processors.errors import (
    ProcessorConfigurationError,
    ProcessorError,
    ProcessorExecutionError,
    ProcessorTimeoutError,
)
from hiveflow.services.workflow.results import NodeOutcome

if TYPE_CHECKING:
    from hiveflow.models.enums import NodeType
    from hiveflow.services.workflow.context import ExecutionContext
    from hiveflow.services.workflow.interfaces import Notifier, TaskRunner

NodeT = TypeVar("NodeT", bound=BaseNode)

logger = get_logger(__name__)


@dataclass
class ProcessorConfig:
    """Per-node processing limits.

    Read from the node's ``config`` (``timeoutSeconds``, ``retries``).
    Retries cover only the exception types in ``retry_on_exceptions``;
    timeouts are never retried.

    Attributes:
        timeout_seconds: Maximum processing time, None for no limit
        max_retries: Retry attempts after the first failure
        initial_delay_seconds: Initial retry delay in seconds
        max_delay_seconds: Maximum retry delay in seconds
        backoff_multiplier: Multiplier for exponential backoff
        retry_on_exceptions: Exception types that trigger retries
    """

    timeout_seconds: float | None = None
    max_retries: int = 0
    initial_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    backoff_multiplier: float = 2.0
    retry_on_exceptions: tuple[type[Exception], ...] = field(
        default_factory=lambda: (ConnectionError,)
    )

    @classmethod
    def from_node(cls, node: BaseNode) -> ProcessorConfig:
        config = node.data.config
        timeout = config.get("timeoutSeconds")
        retries = config.get("retries", 0)
        return cls(
            timeout_seconds=float(timeout) if isinstance(timeout, int | float) else None,
            max_retries=max(int(retries), 0) if isinstance(retries, int) else 0,
        )


@dataclass
class ProcessorDependencies:
    """Collaborators shared by every processor the engine creates."""

    settings: Settings = field(default_factory=get_settings)
    task_runner: TaskRunner | None = None
    notifier: Notifier | None = None


class BaseProcessor(ABC, Generic[NodeT]):
    """Abstract base class for node processors.

    Subclasses set ``node_type`` and implement ``process``, which returns
    the node's output (or a NodeOutcome when it needs to set a branch) and
    raises ProcessorError subclasses for expected failures.

    Type Parameters:
        NodeT: Node variant handled by the processor
    """

    node_type: ClassVar[NodeType]

    def __init__(
        self,
        node: NodeT,
        context: ExecutionContext,
        dependencies: ProcessorDependencies,
        config: ProcessorConfig | None = None,
    ):
        self.node = node
        self.context = context
        self.dependencies = dependencies
        self.settings = dependencies.settings
        self.config = config or ProcessorConfig.from_node(node)

    @property
    def name(self) -> str:
        return type(self).__name__

    async def execute(self, node_input: Any) -> NodeOutcome:
        """Run the node and capture every failure into the outcome.

        Args:
            node_input: Input resolved from the node's incoming edges

        Returns:
            NodeOutcome with output on success or error text on failure
        """
        started = time.perf_counter()
        try:
            result = await self._execute_with_retry(node_input)
        except ProcessorError as e:
            outcome = NodeOutcome.failed(
                e.message,
                cancelled=isinstance(e.__cause__, ExecutionCancelledError),
            )
            logger.warning(
                f"Node {self.node.id} failed: {e}",
                extra={"context": self._log_context()},
            )
        except Exception as e:
            outcome = NodeOutcome.failed(
                f'Error in node "{self.node.label}" ({self.node.type}): {e}'
            )
            logger.exception(
                f"Unexpected error in node {self.node.id}",
                extra={"context": self._log_context()},
            )
        else:
            outcome = result if isinstance(result, NodeOutcome) else NodeOutcome.ok(result)

        outcome.duration_ms = (time.perf_counter() - started) * 1000
        return outcome

    @abstractmethod
    async def process(self, node_input: Any) -> Any:
        """Execute the node's type-specific logic.

        Raises:
            ProcessorError: For expected failures (bad config, collaborator
                errors). Other exceptions are reported as unexpected.
        """

    async def _execute_with_retry(self, node_input: Any) -> Any:
        last_exception: Exception | None = None

        for attempt in range(self.config.max_retries + 1):
            try:
                if self.config.timeout_seconds is None:
                    return await self.process(node_input)
                return await asyncio.wait_for(
                    self.process(node_input),
                    timeout=self.config.timeout_seconds,
                )
            except TimeoutError as e:
                raise ProcessorTimeoutError(
                    processor=self.name,
                    node_id=self.node.id,
                    timeout_seconds=self.config.timeout_seconds or 0,
                ) from e
            except self.config.retry_on_exceptions as e:
                last_exception = e
                if attempt < self.config.max_retries:
                    delay = min(
                        self.config.initial_delay_seconds
                        * (self.config.backoff_multiplier**attempt),
                        self.config.max_delay_seconds,
                    )
                    logger.info(
                        f"Retrying node {self.node.id} in {delay:.1f}s: {e}",
                        extra={"context": {**self._log_context(), "attempt": attempt + 1}},
                    )
                    await asyncio.sleep(delay)

        raise ProcessorExecutionError(
            processor=self.name,
            node_id=self.node.id,
            reason=str(last_exception),
            retry_count=self.config.max_retries,
        ) from last_exception

    def configuration_error(self, reason: str) -> ProcessorConfigurationError:
        return ProcessorConfigurationError(processor=self.name, reason=reason)

    def execution_error(self, reason: str) -> ProcessorExecutionError:
        return ProcessorExecutionError(
            processor=self.name, node_id=self.node.id, reason=reason
        )

    def _log_context(self) -> dict[str, Any]:
        return {
            "execution_id": self.context.execution_id,
            "node_id": self.node.id,
            "node_type": str(self.node.type),
            "processor": self.name,
        }
