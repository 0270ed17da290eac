"""Follow-up task model.

Workflows with ``auto_create_task`` enabled record a follow-up task
carrying the JSON results of every successful run.
"""

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from hiveflow.models.base import Base, TimestampMixin
from hiveflow.models.enums import FollowUpTaskStatus


class FollowUpTask(TimestampMixin, Base):
    """Task created from a successful workflow execution."""

    __tablename__ = "follow_up_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    workflow_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    execution_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("workflow_executions.id", ondelete="CASCADE"),
        nullable=False,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[FollowUpTaskStatus] = mapped_column(
        String(20),
        nullable=False,
        default=FollowUpTaskStatus.PENDING,
        server_default="pending",
    )

    def __repr__(self) -> str:
        """Return string representation of the follow-up task."""
        return f"<FollowUpTask(id={self.id}, title='{self.title}')>"


__all__ = ["FollowUpTask"]
