"""Tests for ProcessorRegistry."""

import pytest

from hiveflow.models.enums import NodeType
from hiveflow.services.workflow.processors.errors import ProcessorNotFoundError
from hiveflow.services.workflow.processors.merge import MergeNodeProcessor
from hiveflow.services.workflow.processors.registry import ProcessorRegistry
from hiveflow.services.workflow.processors.trigger import TriggerNodeProcessor


class TestProcessorRegistry:
    """Test processor lookup and registration."""

    def test_every_node_type_has_a_processor(self):
        registry = ProcessorRegistry()

        assert sorted(registry.list_registered()) == sorted(t.value for t in NodeType)

    def test_get_returns_processor_class(self):
        registry = ProcessorRegistry()

        assert registry.get("merge") is MergeNodeProcessor
        assert "trigger" in registry

    def test_unknown_type_raises(self):
        registry = ProcessorRegistry()

        with pytest.raises(ProcessorNotFoundError) as exc_info:
            registry.get("teleport")

        assert exc_info.value.message == "Unknown node type: teleport"
        assert exc_info.value.node_type == "teleport"

    def test_empty_registry(self):
        """Test that defaults can be left out and registered by hand."""
        registry = ProcessorRegistry(register_defaults=False)
        assert registry.list_registered() == []

        registry.register("trigger", TriggerNodeProcessor)

        assert registry.get("trigger") is TriggerNodeProcessor
        assert "merge" not in registry

    def test_register_replaces_existing(self):
        registry = ProcessorRegistry()

        registry.register("merge", TriggerNodeProcessor)

        assert registry.get("merge") is TriggerNodeProcessor
