"""Typed graph model for workflow definitions.

Nodes are a tagged union keyed by ``type``: each variant carries its own
``data`` payload shape. Field names are snake_case in Python and camelCase
on the wire (``sourceHandle``, ``conditionGroup``, ``delayMs``), so stored
graphs and export documents round-trip unchanged.

Node tags that are not part of the union parse as UnknownNode instead of
failing, so an unsupported step is reported by the node executor at run
time rather than making the whole graph unreadable.
"""

from __future__ import annotations

from functools import cached_property
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag
from pydantic.alias_generators import to_camel

from hiveflow.models.enums import (
    AgentType,
    ConditionOperator,
    LogicalOperator,
    LoopType,
    NodeType,
    NotificationChannel,
    TriggerType,
    WorkflowStatus,
)

UNKNOWN_NODE_TAG = "unknown"


class GraphModel(BaseModel):
    """Base for graph documents: camelCase aliases, unknown keys preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="allow",
    )

    def to_document(self) -> dict[str, Any]:
        """Dump to the JSON-compatible camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Position(GraphModel):
    """Presentation-only canvas coordinates."""

    x: float = 0.0
    y: float = 0.0


# =============================================================================
# Conditions
# =============================================================================


class SimpleCondition(GraphModel):
    """Compare the value at a dotted field path against a literal."""

    field: str
    operator: ConditionOperator
    value: Any = None


class ConditionGroup(GraphModel):
    """Recursive AND/OR composition of conditions and nested groups."""

    operator: LogicalOperator = LogicalOperator.AND
    conditions: list[SimpleCondition] = Field(default_factory=list)
    groups: list[ConditionGroup] | None = None


# =============================================================================
# Node payloads
# =============================================================================


class NodeData(GraphModel):
    """Fields shared by every node payload."""

    label: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class TriggerNodeData(NodeData):
    trigger_type: TriggerType = TriggerType.MANUAL


class TaskNodeData(NodeData):
    task_id: str | None = None
    task_template_id: str | None = None

    @property
    def task_ref(self) -> str | None:
        return self.task_id or self.task_template_id


class ConditionalNodeData(NodeData):
    condition: SimpleCondition | None = None
    condition_group: ConditionGroup | None = None


class DelayNodeData(NodeData):
    delay_ms: int | None = None


class NotificationNodeData(NodeData):
    notification_type: NotificationChannel | None = None


class LoopConfig(GraphModel):
    """Iteration settings for a loop node.

    Attributes:
        type: forEach iterates an array, count repeats a fixed number of
            times, while repeats until ``condition`` stops holding.
        array_path: Dotted path to the array in the loop input (forEach).
        count: Number of iterations (count).
        condition: Continue-condition evaluated against the previous
            iteration's result (while).
        max_iterations: Upper bound on iterations for any loop type.
    """

    type: LoopType
    array_path: str | None = None
    count: int | None = None
    condition: ConditionGroup | None = None
    max_iterations: int = Field(default=100, ge=1)


class LoopNodeData(NodeData):
    loop_config: LoopConfig | None = None
    loop_type: LoopType | None = None


class SubworkflowConfig(GraphModel):
    """Call another stored workflow as a single step.

    ``input_mapping`` maps child trigger fields to parent input paths;
    ``output_mapping`` maps output fields to paths in the child's results.
    """

    workflow_id: int
    input_mapping: dict[str, str] = Field(default_factory=dict)
    output_mapping: dict[str, str] = Field(default_factory=dict)


class SubworkflowNodeData(NodeData):
    subworkflow_config: SubworkflowConfig | None = None
    workflow_id: int | None = None


class AgentConfig(GraphModel):
    agent_type: AgentType
    prompt: str = ""
    template_variables: bool = False
    timeout: int | None = None  # milliseconds


class AgentNodeData(NodeData):
    agent_config: AgentConfig | None = None


# =============================================================================
# Nodes
# =============================================================================


class BaseNode(GraphModel):
    """Fields shared by every node variant."""

    id: str
    type: str
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @property
    def label(self) -> str:
        return self.data.label or self.id


class TriggerNode(BaseNode):
    type: Literal["trigger"] = "trigger"
    data: TriggerNodeData = Field(default_factory=TriggerNodeData)


class TaskNode(BaseNode):
    type: Literal["task"] = "task"
    data: TaskNodeData = Field(default_factory=TaskNodeData)


class ConditionalNode(BaseNode):
    type: Literal["conditional"] = "conditional"
    data: ConditionalNodeData = Field(default_factory=ConditionalNodeData)


class DelayNode(BaseNode):
    type: Literal["delay"] = "delay"
    data: DelayNodeData = Field(default_factory=DelayNodeData)


class NotificationNode(BaseNode):
    type: Literal["notification"] = "notification"
    data: NotificationNodeData = Field(default_factory=NotificationNodeData)


class MergeNode(BaseNode):
    type: Literal["merge"] = "merge"


class LoopNode(BaseNode):
    type: Literal["loop"] = "loop"
    data: LoopNodeData = Field(default_factory=LoopNodeData)


class SubworkflowNode(BaseNode):
    type: Literal["subworkflow"] = "subworkflow"
    data: SubworkflowNodeData = Field(default_factory=SubworkflowNodeData)


class AgentNode(BaseNode):
    type: Literal["agent"] = "agent"
    data: AgentNodeData = Field(default_factory=AgentNodeData)


class UnknownNode(BaseNode):
    """Node whose type tag has no registered variant."""


_KNOWN_NODE_TYPES = frozenset(node_type.value for node_type in NodeType)


def _node_tag(value: Any) -> str:
    raw = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    tag = str(raw)
    return tag if tag in _KNOWN_NODE_TYPES else UNKNOWN_NODE_TAG


Node = Annotated[
    Union[
        Annotated[TriggerNode, Tag("trigger")],
        Annotated[TaskNode, Tag("task")],
        Annotated[ConditionalNode, Tag("conditional")],
        Annotated[DelayNode, Tag("delay")],
        Annotated[NotificationNode, Tag("notification")],
        Annotated[MergeNode, Tag("merge")],
        Annotated[LoopNode, Tag("loop")],
        Annotated[SubworkflowNode, Tag("subworkflow")],
        Annotated[AgentNode, Tag("agent")],
        Annotated[UnknownNode, Tag(UNKNOWN_NODE_TAG)],
    ],
    Discriminator(_node_tag),
]


class Edge(GraphModel):
    """Directed arc between two nodes.

    ``source_handle`` selects which output of the source feeds the target,
    e.g. the ``true``/``false`` branches of a conditional node or the
    ``body`` output of a loop node.
    """

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


# =============================================================================
# Workflow graph
# =============================================================================


class WorkflowGraph(GraphModel):
    """A stored workflow: nodes, edges and lifecycle flags."""

    id: int | None = None
    name: str
    description: str | None = None
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    status: WorkflowStatus = WorkflowStatus.DRAFT
    auto_create_task: bool = False

    @cached_property
    def node_index(self) -> dict[str, BaseNode]:
        return {node.id: node for node in self.nodes}

    @cached_property
    def incoming_index(self) -> dict[str, list[Edge]]:
        index: dict[str, list[Edge]] = {}
        for edge in self.edges:
            index.setdefault(edge.target, []).append(edge)
        return index

    @cached_property
    def outgoing_index(self) -> dict[str, list[Edge]]:
        index: dict[str, list[Edge]] = {}
        for edge in self.edges:
            index.setdefault(edge.source, []).append(edge)
        return index

    def get_node(self, node_id: str) -> BaseNode | None:
        return self.node_index.get(node_id)

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return self.incoming_index.get(node_id, [])

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return self.outgoing_index.get(node_id, [])

    def trigger_nodes(self) -> list[BaseNode]:
        return [node for node in self.nodes if node.type == NodeType.TRIGGER]


__all__ = [
    "AgentConfig",
    "AgentNode",
    "AgentNodeData",
    "BaseNode",
    "ConditionGroup",
    "ConditionalNode",
    "ConditionalNodeData",
    "DelayNode",
    "DelayNodeData",
    "Edge",
    "GraphModel",
    "LoopConfig",
    "LoopNode",
    "LoopNodeData",
    "MergeNode",
    "Node",
    "NodeData",
    "NotificationNode",
    "NotificationNodeData",
    "Position",
    "SimpleCondition",
    "SubworkflowConfig",
    "SubworkflowNode",
    "SubworkflowNodeData",
    "TaskNode",
    "TaskNodeData",
    "TriggerNode",
    "TriggerNodeData",
    "UNKNOWN_NODE_TAG",
    "UnknownNode",
    "WorkflowGraph",
]
