"""SQLAlchemy models for Hive Flow.

Importing this package registers every table on ``Base.metadata``.
"""

from hiveflow.models.base import Base, TimestampMixin
from hiveflow.models.enums import (
    ExecutionStatus,
    FollowUpTaskStatus,
    NodeType,
    WorkflowStatus,
)
from hiveflow.models.execution import WorkflowExecution
from hiveflow.models.task import FollowUpTask
from hiveflow.models.workflow import Workflow

__all__ = [
    "Base",
    "ExecutionStatus",
    "FollowUpTask",
    "FollowUpTaskStatus",
    "NodeType",
    "TimestampMixin",
    "Workflow",
    "WorkflowExecution",
    "WorkflowStatus",
]
