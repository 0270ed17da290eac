"""Cron trigger helpers for APScheduler.

Schedules are standard five-field crontab expressions read from a trigger
node's ``config.cronExpression``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from apscheduler.triggers.cron import CronTrigger

from hiveflow.models.enums import TriggerType

if TYPE_CHECKING:
    from hiveflow.schemas.graph import WorkflowGraph


def build_cron_trigger(expression: str, timezone: str = "UTC") -> CronTrigger:
    """Create a CronTrigger from a crontab expression.

    Raises:
        ValueError: The expression is not a valid crontab line.

    Examples:
        >>> # every five minutes
        >>> trigger = build_cron_trigger("*/5 * * * *")

        >>> # weekdays at 09:00 Seoul time
        >>> trigger = build_cron_trigger("0 9 * * mon-fri", timezone="Asia/Seoul")
    """
    return CronTrigger.from_crontab(expression, timezone=timezone)


def validate_cron_expression(expression: str) -> bool:
    """Check whether a crontab expression can be scheduled.

    Examples:
        >>> validate_cron_expression("30 10 * * *")
        True

        >>> validate_cron_expression("30 25 * * *")  # invalid hour
        False
    """
    try:
        CronTrigger.from_crontab(expression)
        return True
    except (ValueError, TypeError):
        return False


def schedule_expression(workflow: WorkflowGraph) -> str | None:
    """Cron expression of the workflow's first trigger node, if it is scheduled.

    Returns None when the first trigger node is not a schedule trigger or
    carries no expression. Only the first trigger node counts.
    """
    triggers = workflow.trigger_nodes()
    if not triggers:
        return None
    data = triggers[0].data
    if getattr(data, "trigger_type", None) != TriggerType.SCHEDULE:
        return None
    expression = data.config.get("cronExpression")
    return expression if isinstance(expression, str) and expression.strip() else None


__all__ = [
    "build_cron_trigger",
    "schedule_expression",
    "validate_cron_expression",
]
