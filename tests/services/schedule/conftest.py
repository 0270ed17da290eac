"""Scheduler test configuration: scheduled graphs and scheduler factory."""

from typing import Any

import pytest
import pytest_asyncio

from hiveflow.services.schedule.scheduler import WorkflowScheduler

from fakes import FakeEngine, FakeSource


@pytest.fixture
def scheduled_graph(make_graph):
    """Workflow whose trigger node carries a cron schedule."""

    def _make(
        workflow_id: int = 1,
        cron: Any = "0 * * * *",
        *,
        status: str = "active",
        trigger_type: str = "schedule",
    ):
        return make_graph(
            [
                {
                    "id": "t",
                    "type": "trigger",
                    "data": {"triggerType": trigger_type, "config": {"cronExpression": cron}},
                }
            ],
            workflow_id=workflow_id,
            status=status,
        )

    return _make


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest_asyncio.fixture
async def make_scheduler(fake_engine, test_settings):
    schedulers: list[WorkflowScheduler] = []

    def _make(*workflows, engine=None):
        scheduler = WorkflowScheduler(
            engine or fake_engine, FakeSource(workflows), test_settings
        )
        schedulers.append(scheduler)
        return scheduler

    yield _make

    for scheduler in schedulers:
        scheduler.shutdown()
