"""Fixtures for running single processors outside the engine."""

from collections.abc import Callable
from typing import Any

import pytest

from hiveflow.services.workflow.processors.base import ProcessorConfig
from hiveflow.services.workflow.processors.registry import ProcessorRegistry
from hiveflow.services.workflow.results import NodeOutcome


@pytest.fixture
def run_node(make_graph, make_context, make_dependencies) -> Callable[..., Any]:
    """Run one node document through its registered processor.

    Example:
        async def test_delay(run_node):
            outcome = await run_node({"id": "w", "type": "delay"})
            assert outcome.success
    """

    async def _run(
        node: dict[str, Any],
        node_input: Any = None,
        *,
        trigger_data: Any = None,
        runner: Any = None,
        call_stack: tuple[int, ...] | None = None,
        token: Any = None,
        config: ProcessorConfig | None = None,
        **dependencies: Any,
    ) -> NodeOutcome:
        graph = make_graph([node])
        context = make_context(
            graph, trigger_data, runner=runner, call_stack=call_stack, token=token
        )
        processor = ProcessorRegistry().create(
            graph.get_node(node["id"]),
            context,
            make_dependencies(**dependencies),
            config,
        )
        return await processor.execute(node_input)

    return _run
