"""Loop Node Processor.

A loop node owns its body: the nodes reached through its ``body`` edges
(or every descendant when its edges carry no handle). The execution
controller leaves body nodes out of the main schedule and the loop runs
them once per iteration as a leveled sub-graph.

Iteration inputs by loop type:
    forEach: each item of the array at ``arrayPath`` (or the input itself)
    count:   the loop input, ``count`` times
    while:   the previous iteration's result, starting with the loop input,
             for as long as ``condition`` holds
"""

from typing import Any

from hiveflow.core.logging import get_logger
from hiveflow.models.enums import LoopType, NodeType
from hiveflow.schemas.graph import LoopConfig, LoopNode
from hiveflow.services.workflow.algorithms import find_loop_body
from hiveflow.services.workflow.conditions import MISSING, evaluate_group, resolve_field
from hiveflow.services.workflow.exceptions import (
    ConditionDepthError,
    ExecutionCancelledError,
    NodeExecutionError,
)
from hiveflow.services.workflow.processors.base import BaseProcessor

logger = get_logger(__name__)


class LoopNodeProcessor(BaseProcessor[LoopNode]):
    """Runs the loop body once per iteration and collects the results."""

    node_type = NodeType.LOOP

    async def process(self, node_input: Any) -> dict[str, Any]:
        loop_config = self._loop_config()
        limit = min(loop_config.max_iterations, self.settings.LOOP_MAX_ITERATIONS)
        body = find_loop_body(self.context.workflow, self.node.id)

        match loop_config.type:
            case LoopType.FOR_EACH:
                items = self._items(loop_config, node_input)
                if len(items) > limit:
                    logger.warning(
                        f"Loop {self.node.id} truncated to {limit} of {len(items)} items",
                        extra={"context": self._log_context()},
                    )
                results = await self._run_each(body, items[:limit])
                return {"iterations": len(results), "results": results, "completed": True}
            case LoopType.COUNT:
                count = loop_config.count
                if count is None or count < 0:
                    raise self.configuration_error("Count loop needs a non-negative count")
                results = await self._run_each(body, [node_input] * min(count, limit))
                return {"iterations": len(results), "results": results, "completed": True}
            case LoopType.WHILE:
                return await self._run_while(body, loop_config, node_input, limit)

    def _loop_config(self) -> LoopConfig:
        data = self.node.data
        if data.loop_config is not None:
            return data.loop_config
        if data.loop_type is not None:
            return LoopConfig.model_validate({**data.config, "type": data.loop_type})
        raise self.configuration_error("Loop node has no loopConfig")

    def _items(self, loop_config: LoopConfig, node_input: Any) -> list[Any]:
        items = (
            resolve_field(node_input, loop_config.array_path)
            if loop_config.array_path
            else node_input
        )
        if not isinstance(items, list):
            source = loop_config.array_path or "loop input"
            found = "nothing" if items is MISSING else type(items).__name__
            raise self.configuration_error(f"Loop over '{source}' expected an array, got {found}")
        return items

    async def _run_each(self, body: set[str], inputs: list[Any]) -> list[Any]:
        results: list[Any] = []
        for item in inputs:
            if self.context.token.cancelled:
                break
            results.append(await self._iterate(body, item))
        return results

    async def _run_while(
        self, body: set[str], loop_config: LoopConfig, node_input: Any, limit: int
    ) -> dict[str, Any]:
        if loop_config.condition is None:
            raise self.configuration_error("While loop needs a condition")

        results: list[Any] = []
        current = node_input
        while len(results) < limit and not self.context.token.cancelled:
            try:
                holds = evaluate_group(
                    loop_config.condition,
                    current,
                    max_depth=self.settings.CONDITION_MAX_DEPTH,
                )
            except ConditionDepthError as e:
                raise self.execution_error(e.message) from e
            if not holds:
                break
            current = await self._iterate(body, current)
            results.append(current)

        return {
            "iterations": len(results),
            "results": results,
            "completed": len(results) < limit,
        }

    async def _iterate(self, body: set[str], iteration_input: Any) -> Any:
        try:
            return await self.context.runner.run_subgraph(
                self.context, body, iteration_input
            )
        except (NodeExecutionError, ExecutionCancelledError) as e:
            raise self.execution_error(e.message) from e
