"""Conditional Node Processor."""

from typing import Any

from hiveflow.models.enums import NodeType
from hiveflow.schemas.graph import ConditionalNode
from hiveflow.services.workflow.conditions import evaluate_group, evaluate_simple
from hiveflow.services.workflow.exceptions import ConditionDepthError
from hiveflow.services.workflow.processors.base import BaseProcessor
from hiveflow.services.workflow.results import NodeOutcome


class ConditionalNodeProcessor(BaseProcessor[ConditionalNode]):
    """Evaluates the node's condition against its input and picks a branch.

    ``conditionGroup`` takes precedence over the single ``condition``. The
    chosen branch ("true" or "false") is matched against the
    ``sourceHandle`` of outgoing edges to decide which successors run.
    """

    node_type = NodeType.CONDITIONAL

    async def process(self, node_input: Any) -> NodeOutcome:
        data = self.node.data
        if data.condition_group is not None:
            try:
                met = evaluate_group(
                    data.condition_group,
                    node_input,
                    max_depth=self.settings.CONDITION_MAX_DEPTH,
                )
            except ConditionDepthError as e:
                raise self.execution_error(e.message) from e
        elif data.condition is not None:
            met = evaluate_simple(data.condition, node_input)
        else:
            raise self.configuration_error("No condition specified for conditional node")

        branch = "true" if met else "false"
        return NodeOutcome.ok({"branch": branch, "conditionMet": met}, branch=branch)
