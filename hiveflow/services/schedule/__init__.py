"""Cron scheduling for active workflows.

- WorkflowScheduler: APScheduler wrapper, one job per scheduled workflow
- Trigger helpers: crontab parsing and schedule detection
"""

from hiveflow.services.schedule.scheduler import (
    InvalidCronExpressionError,
    ScheduledWorkflow,
    WorkflowScheduler,
)
from hiveflow.services.schedule.triggers import (
    build_cron_trigger,
    schedule_expression,
    validate_cron_expression,
)

__all__ = [
    "InvalidCronExpressionError",
    "ScheduledWorkflow",
    "WorkflowScheduler",
    "build_cron_trigger",
    "schedule_expression",
    "validate_cron_expression",
]
