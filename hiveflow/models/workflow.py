"""Workflow model holding a stored node/edge graph.

Nodes and edges are stored as JSON documents in the camelCase shape the
graph editor and the export format use; the engine parses them into
typed graph models on load.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, Integer, String, Text, false
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hiveflow.models.base import Base, TimestampMixin
from hiveflow.models.enums import WorkflowStatus

if TYPE_CHECKING:
    from hiveflow.models.execution import WorkflowExecution

# Use JSONB for PostgreSQL, JSON for other databases (like SQLite for testing)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Workflow(TimestampMixin, Base):
    """Stored workflow graph.

    Attributes:
        id: Integer primary key
        name: Display name of the workflow
        description: Optional description of the workflow's purpose
        nodes: JSON list of node documents
        edges: JSON list of edge documents
        status: Lifecycle status (draft, active, paused)
        auto_create_task: Create a follow-up task after each successful run
        executions: Relationship to WorkflowExecution records
    """

    __tablename__ = "workflows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    nodes: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )

    edges: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )

    status: Mapped[WorkflowStatus] = mapped_column(
        String(20),
        nullable=False,
        default=WorkflowStatus.DRAFT,
        server_default="draft",
        index=True,
    )

    auto_create_task: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    executions: Mapped[list[WorkflowExecution]] = relationship(
        "WorkflowExecution",
        back_populates="workflow",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        """Return string representation of the workflow."""
        return f"<Workflow(id={self.id}, name='{self.name}', status={self.status})>"


__all__ = ["JSONType", "Workflow"]
