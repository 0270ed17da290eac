"""Subworkflow Node Processor."""

from typing import Any

from hiveflow.models.enums import ExecutionStatus, NodeType
from hiveflow.schemas.graph import SubworkflowConfig, SubworkflowNode
from hiveflow.services.workflow.conditions import MISSING, resolve_field
from hiveflow.services.workflow.exceptions import ExecutionCancelledError
from hiveflow.services.workflow.processors.base import BaseProcessor
from hiveflow.services.workflow.processors.errors import ProcessorRecursionError


def _apply_mapping(mapping: dict[str, str], source: Any) -> dict[str, Any]:
    mapped = {}
    for target_field, path in mapping.items():
        value = resolve_field(source, path)
        mapped[target_field] = None if value is MISSING else value
    return mapped


class SubworkflowNodeProcessor(BaseProcessor[SubworkflowNode]):
    """Runs another stored workflow as a single step.

    The child gets its own execution record. ``inputMapping`` builds the
    child's trigger data from this node's input and ``outputMapping``
    picks fields out of the child's results; without mappings the input
    and the full result map pass through unchanged.

    A workflow already on the call stack, or a stack deeper than
    ``SUBWORKFLOW_MAX_DEPTH``, fails the node before the child starts.
    """

    node_type = NodeType.SUBWORKFLOW

    async def process(self, node_input: Any) -> Any:
        config = self._subworkflow_config()
        target = config.workflow_id
        chain = [*self.context.call_stack, target]

        if target in self.context.call_stack:
            raise ProcessorRecursionError(call_chain=chain)
        if len(self.context.call_stack) >= self.settings.SUBWORKFLOW_MAX_DEPTH:
            raise self.execution_error(
                f"Subworkflow depth limit ({self.settings.SUBWORKFLOW_MAX_DEPTH}) "
                f"exceeded: {' -> '.join(str(workflow_id) for workflow_id in chain)}"
            )

        trigger_data = (
            _apply_mapping(config.input_mapping, node_input)
            if config.input_mapping
            else node_input
        )
        result = await self.context.runner.run_subworkflow(
            self.context, target, trigger_data
        )
        if result.status == ExecutionStatus.CANCELLED:
            raise self.execution_error(
                f"Subworkflow {target} was cancelled"
            ) from ExecutionCancelledError(result.execution_id)
        if not result.succeeded:
            raise self.execution_error(
                f"Subworkflow {target} {result.status}: {result.error or 'no error reported'}"
            )

        if config.output_mapping:
            return _apply_mapping(config.output_mapping, result.node_results)
        return result.node_results

    def _subworkflow_config(self) -> SubworkflowConfig:
        data = self.node.data
        if data.subworkflow_config is not None:
            return data.subworkflow_config
        if data.workflow_id is not None:
            return SubworkflowConfig(workflow_id=data.workflow_id)
        raise self.configuration_error("Subworkflow node has no workflowId")
