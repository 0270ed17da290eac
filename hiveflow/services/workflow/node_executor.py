"""Node executor: dispatch one node to its type-specific processor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from hiveflow.core.logging import get_logger
from hiveflow.services.workflow.processors.base import ProcessorDependencies
from hiveflow.services.workflow.processors.errors import ProcessorNotFoundError
from hiveflow.services.workflow.processors.registry import ProcessorRegistry
from hiveflow.services.workflow.results import NodeOutcome

if TYPE_CHECKING:
    from hiveflow.schemas.graph import BaseNode
    from hiveflow.services.workflow.context import ExecutionContext

logger = get_logger(__name__)


class NodeExecutor:
    """Executes single nodes. Never raises; failures come back as outcomes.

    Example:
        >>> executor = NodeExecutor(ProcessorRegistry(), dependencies)
        >>> outcome = await executor.execute(node, {"ref": "main"}, context)
        >>> outcome.success
        True
    """

    def __init__(
        self,
        registry: ProcessorRegistry | None = None,
        dependencies: ProcessorDependencies | None = None,
    ) -> None:
        self.registry = registry or ProcessorRegistry()
        self.dependencies = dependencies or ProcessorDependencies()

    async def execute(
        self, node: BaseNode, node_input: Any, context: ExecutionContext
    ) -> NodeOutcome:
        try:
            processor = self.registry.create(node, context, self.dependencies)
        except ProcessorNotFoundError as e:
            logger.warning(
                e.message,
                extra={
                    "context": {
                        "execution_id": context.execution_id,
                        "node_id": node.id,
                    }
                },
            )
            return NodeOutcome.failed(e.message)

        return await processor.execute(node_input)
