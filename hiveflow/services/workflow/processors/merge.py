"""Merge Node Processor."""

from typing import Any

from hiveflow.models.enums import NodeType
from hiveflow.schemas.graph import MergeNode
from hiveflow.services.workflow.processors.base import BaseProcessor


class MergeNodeProcessor(BaseProcessor[MergeNode]):
    """Joins parallel branches by passing the resolved input through.

    With several live sources the input is already a mapping of source id
    to output, so downstream nodes see one combined value.
    """

    node_type = NodeType.MERGE

    async def process(self, node_input: Any) -> Any:
        return node_input
