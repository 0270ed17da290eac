"""Domain enum definitions for Hive Flow.

This module defines the enum types shared by the graph model, the engine
and the persistence layer.
"""

from enum import Enum


class NodeType(str, Enum):
    """Workflow node variant tags.

    Each node type maps to exactly one processor in the node executor.
    """

    TRIGGER = "trigger"
    TASK = "task"
    CONDITIONAL = "conditional"
    DELAY = "delay"
    NOTIFICATION = "notification"
    MERGE = "merge"
    LOOP = "loop"
    SUBWORKFLOW = "subworkflow"
    AGENT = "agent"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class WorkflowStatus(str, Enum):
    """Lifecycle status of a stored workflow graph."""

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class ExecutionStatus(str, Enum):
    """Status of a workflow execution.

    Transitions are one-way: RUNNING moves to exactly one terminal state.
    """

    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition is allowed."""
        return self is not ExecutionStatus.RUNNING


class TriggerType(str, Enum):
    """How a trigger node starts a workflow."""

    MANUAL = "manual"
    SCHEDULE = "schedule"
    EVENT = "event"
    WEBHOOK = "webhook"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class ConditionOperator(str, Enum):
    """Comparison operators for simple conditions."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class LogicalOperator(str, Enum):
    """Logical combinators for condition groups."""

    AND = "AND"
    OR = "OR"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class LoopType(str, Enum):
    """Iteration strategies for loop nodes."""

    FOR_EACH = "forEach"
    COUNT = "count"
    WHILE = "while"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class NotificationChannel(str, Enum):
    """Delivery channels supported by the notification collaborator."""

    DISCORD = "discord"
    SLACK = "slack"
    EMAIL = "email"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class AgentType(str, Enum):
    """Command-line agents an agent node can delegate to."""

    CLAUDE_CODE = "claude-code"
    CODEX = "codex"
    CUSTOM = "custom"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class TaskExecutionStatus(str, Enum):
    """Status reported by the task execution collaborator."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class Compatibility(str, Enum):
    """Import compatibility derived from a validation report."""

    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class Complexity(str, Enum):
    """Heuristic size class reported in export documents."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class FollowUpTaskStatus(str, Enum):
    """Status of a follow-up task created after a successful run."""

    PENDING = "pending"
    DONE = "done"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


__all__ = [
    "AgentType",
    "Compatibility",
    "Complexity",
    "ConditionOperator",
    "ExecutionStatus",
    "FollowUpTaskStatus",
    "LogicalOperator",
    "LoopType",
    "NodeType",
    "NotificationChannel",
    "TaskExecutionStatus",
    "TriggerType",
    "WorkflowStatus",
]
