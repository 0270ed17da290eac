"""Tests for trigger, merge, conditional and delay processors."""

import pytest


def _conditional(**data) -> dict:
    return {"id": "check", "type": "conditional", "data": data}


class TestTriggerProcessor:
    @pytest.mark.asyncio
    async def test_emits_trigger_data(self, run_node):
        outcome = await run_node(
            {"id": "t", "type": "trigger", "data": {"triggerType": "webhook"}},
            "ignored",
            trigger_data={"ref": "main"},
        )

        assert outcome.success is True
        assert outcome.output == {"ref": "main"}


class TestMergeProcessor:
    @pytest.mark.asyncio
    async def test_passes_input_through(self, run_node):
        node_input = {"a": 1, "b": {"delayed": 0}}

        outcome = await run_node({"id": "m", "type": "merge"}, node_input)

        assert outcome.output == node_input


class TestConditionalProcessor:
    """Test branch selection."""

    @pytest.mark.asyncio
    async def test_simple_condition(self, run_node):
        outcome = await run_node(
            _conditional(condition={"field": "amount", "operator": "greater_than", "value": 100}),
            {"amount": 150},
        )

        assert outcome.branch == "true"
        assert outcome.output == {"branch": "true", "conditionMet": True}

    @pytest.mark.asyncio
    async def test_false_branch(self, run_node):
        outcome = await run_node(
            _conditional(condition={"field": "status", "operator": "equals", "value": "ok"}),
            {"status": "error"},
        )

        assert outcome.branch == "false"
        assert outcome.output["conditionMet"] is False

    @pytest.mark.asyncio
    async def test_group_takes_precedence(self, run_node):
        """Test that conditionGroup wins over a single condition."""
        outcome = await run_node(
            _conditional(
                condition={"field": "x", "operator": "equals", "value": 2},
                conditionGroup={
                    "operator": "OR",
                    "conditions": [{"field": "x", "operator": "equals", "value": 1}],
                },
            ),
            {"x": 1},
        )

        assert outcome.branch == "true"

    @pytest.mark.asyncio
    async def test_missing_condition(self, run_node):
        outcome = await run_node(_conditional(), {"x": 1})

        assert outcome.success is False
        assert outcome.error == "No condition specified for conditional node"

    @pytest.mark.asyncio
    async def test_nesting_limit(self, run_node, test_settings):
        settings = test_settings.model_copy(update={"CONDITION_MAX_DEPTH": 1})

        outcome = await run_node(
            _conditional(conditionGroup={"conditions": [], "groups": [{"conditions": []}]}),
            {},
            settings=settings,
        )

        assert outcome.success is False
        assert outcome.error == "Condition groups nested deeper than 1 levels"


class TestDelayProcessor:
    """Test delays."""

    @pytest.mark.asyncio
    async def test_delay(self, run_node):
        outcome = await run_node({"id": "w", "type": "delay", "data": {"delayMs": 5}})

        assert outcome.output == {"delayed": 5}

    @pytest.mark.asyncio
    async def test_default_delay_from_settings(self, run_node, test_settings):
        settings = test_settings.model_copy(update={"DEFAULT_DELAY_MS": 1})

        outcome = await run_node({"id": "w", "type": "delay"}, settings=settings)

        assert outcome.output == {"delayed": 1}

    @pytest.mark.asyncio
    async def test_negative_delay(self, run_node):
        outcome = await run_node({"id": "w", "type": "delay", "data": {"delayMs": -5}})

        assert outcome.success is False
        assert outcome.error == "Invalid delay: -5ms"
