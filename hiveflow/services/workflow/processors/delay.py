"""Delay Node Processor."""

import asyncio
from typing import Any

from hiveflow.models.enums import NodeType
from hiveflow.schemas.graph import DelayNode
from hiveflow.services.workflow.processors.base import BaseProcessor


class DelayNodeProcessor(BaseProcessor[DelayNode]):
    """Suspends the branch for ``delayMs`` milliseconds.

    The sleep is not interrupted by cancellation; the run stops at the next
    level boundary instead.
    """

    node_type = NodeType.DELAY

    async def process(self, node_input: Any) -> dict[str, int]:
        delay_ms = self.node.data.delay_ms
        if delay_ms is None:
            delay_ms = self.settings.DEFAULT_DELAY_MS
        if delay_ms < 0:
            raise self.configuration_error(f"Invalid delay: {delay_ms}ms")

        await asyncio.sleep(delay_ms / 1000)
        return {"delayed": delay_ms}
