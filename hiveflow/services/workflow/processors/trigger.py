"""Trigger Node Processor."""

from typing import Any

from hiveflow.models.enums import NodeType
from hiveflow.schemas.graph import TriggerNode
from hiveflow.services.workflow.processors.base import BaseProcessor


class TriggerNodeProcessor(BaseProcessor[TriggerNode]):
    """Emits the run's trigger payload.

    The payload is the same whether the run came from a webhook, the cron
    scheduler or a manual call; ``triggerType`` only decides who may start
    the workflow.
    """

    node_type = NodeType.TRIGGER

    async def process(self, node_input: Any) -> Any:
        return self.context.trigger_data
