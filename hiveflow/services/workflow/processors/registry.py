"""Processor Registry.

Maps node type tags to processor classes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from hiveflow.services.workflow.processors.base import (
    BaseProcessor,
    ProcessorConfig,
    ProcessorDependencies,
)
from hiveflow.services.workflow.processors.errors import ProcessorNotFoundError

if TYPE_CHECKING:
    from hiveflow.schemas.graph import BaseNode
    from hiveflow.services.workflow.context import ExecutionContext


class ProcessorRegistry:
    """Registry for processor lookup and instantiation.

    Example:
        registry = ProcessorRegistry()
        processor = registry.create(node, context, dependencies)
        outcome = await processor.execute(node_input)
    """

    def __init__(self, *, register_defaults: bool = True) -> None:
        self._processors: dict[str, type[BaseProcessor[Any]]] = {}
        if register_defaults:
            self._register_defaults()

    def _register_defaults(self) -> None:
        # Imported here to avoid circular imports with the processor modules
        from hiveflow.services.workflow.processors.agent import AgentNodeProcessor
        from hiveflow.services.workflow.processors.condition import (
            ConditionalNodeProcessor,
        )
        from hiveflow.services.workflow.processors.delay import DelayNodeProcessor
        from hiveflow.services.workflow.processors.loop import LoopNodeProcessor
        from hiveflow.services.workflow.processors.merge import MergeNodeProcessor
        from hiveflow.services.workflow.processors.notification import (
            NotificationNodeProcessor,
        )
        from hiveflow.services.workflow.processors.subworkflow import (
            SubworkflowNodeProcessor,
        )
        from hiveflow.services.workflow.processors.task import TaskNodeProcessor
        from hiveflow.services.workflow.processors.trigger import TriggerNodeProcessor

        for processor_class in (
            TriggerNodeProcessor,
            TaskNodeProcessor,
            ConditionalNodeProcessor,
            DelayNodeProcessor,
            NotificationNodeProcessor,
            MergeNodeProcessor,
            LoopNodeProcessor,
            SubworkflowNodeProcessor,
            AgentNodeProcessor,
        ):
            self.register(processor_class.node_type.value, processor_class)

    def register(self, node_type: str, processor_class: type[BaseProcessor[Any]]) -> None:
        """Register a processor class, replacing any existing one for the type."""
        self._processors[node_type] = processor_class

    def get(self, node_type: str) -> type[BaseProcessor[Any]]:
        """Get the processor class for a node type.

        Raises:
            ProcessorNotFoundError: No processor registered for node_type
        """
        if node_type not in self._processors:
            raise ProcessorNotFoundError(node_type=node_type)
        return self._processors[node_type]

    def create(
        self,
        node: BaseNode,
        context: ExecutionContext,
        dependencies: ProcessorDependencies,
        config: ProcessorConfig | None = None,
    ) -> BaseProcessor[Any]:
        processor_class = self.get(node.type)
        return processor_class(node, context, dependencies, config)

    def list_registered(self) -> list[str]:
        return list(self._processors)

    def __contains__(self, node_type: object) -> bool:
        return node_type in self._processors
