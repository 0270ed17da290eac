"""pytest configuration and fixtures.

Engine tests run against in-memory collaborators (FakeStore, fake task
runners, FakeNotifier). Repository and API tests use a throwaway SQLite
file through aiosqlite, so the engine's own sessions see what the API
wrote.
"""

from collections.abc import AsyncGenerator, Callable, Iterable
from typing import Any, cast

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from starlette.types import ASGIApp

from hiveflow.core.config import Settings
from hiveflow.models import Base
from hiveflow.schemas.graph import WorkflowGraph
from hiveflow.services.workflow.cancellation import CancellationToken
from hiveflow.services.workflow.context import ExecutionContext
from hiveflow.services.workflow.executor import WorkflowExecutor
from hiveflow.services.workflow.node_executor import NodeExecutor
from hiveflow.services.workflow.processors.base import ProcessorDependencies
from hiveflow.services.workflow.processors.registry import ProcessorRegistry

from fakes import FakeStore, StubRunner

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests that use the SQLite database",
    )


# =============================================================================
# SETTINGS AND GRAPH FIXTURES
# =============================================================================


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings with short waits so engine tests stay fast."""
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        DEFAULT_DELAY_MS=0,
        TASK_POLL_INTERVAL_SECONDS=0.001,
        TASK_TIMEOUT_SECONDS=5.0,
        LOG_LEVEL="DEBUG",
    )


def _edge_document(index: int, edge: Any) -> dict[str, Any]:
    if isinstance(edge, dict):
        return {"id": f"e{index}", **edge}
    source, target, *handle = edge
    document = {"id": f"e{index}", "source": source, "target": target}
    if handle:
        document["sourceHandle"] = handle[0]
    return document


@pytest.fixture
def make_graph() -> Callable[..., WorkflowGraph]:
    """Build a WorkflowGraph from node documents and edge tuples.

    Edges are ``(source, target)`` or ``(source, target, sourceHandle)``
    tuples, or full edge documents.

    Example:
        def test_something(make_graph):
            graph = make_graph(
                [{"id": "t", "type": "trigger"}, {"id": "m", "type": "merge"}],
                [("t", "m")],
            )
    """

    def _make(
        nodes: list[dict[str, Any]],
        edges: Iterable[Any] = (),
        *,
        workflow_id: int = 1,
        name: str = "Test Workflow",
        **fields: Any,
    ) -> WorkflowGraph:
        return WorkflowGraph.model_validate(
            {
                "id": workflow_id,
                "name": name,
                "nodes": nodes,
                "edges": [_edge_document(i, edge) for i, edge in enumerate(edges)],
                **fields,
            }
        )

    return _make


@pytest.fixture
def make_context(test_settings) -> Callable[..., ExecutionContext]:
    """Build an ExecutionContext for running a single processor."""

    def _make(
        graph: WorkflowGraph,
        trigger_data: Any = None,
        *,
        runner: Any = None,
        call_stack: tuple[int, ...] | None = None,
        token: CancellationToken | None = None,
    ) -> ExecutionContext:
        return ExecutionContext(
            workflow=graph,
            execution_id=1,
            trigger_data=trigger_data,
            token=token or CancellationToken(),
            runner=runner or StubRunner(),
            call_stack=(graph.id,) if call_stack is None else call_stack,
        )

    return _make


@pytest.fixture
def make_dependencies(test_settings) -> Callable[..., ProcessorDependencies]:
    def _make(**overrides: Any) -> ProcessorDependencies:
        settings = overrides.pop("settings", test_settings)
        return ProcessorDependencies(settings=settings, **overrides)

    return _make


@pytest.fixture
def make_engine(test_settings) -> Callable[..., WorkflowExecutor]:
    """Build a WorkflowExecutor over in-memory collaborators."""

    def _make(
        store: FakeStore,
        *,
        settings: Settings | None = None,
        task_runner: Any = None,
        notifier: Any = None,
        observers: Iterable[Any] = (),
    ) -> WorkflowExecutor:
        settings = settings or test_settings
        node_executor = NodeExecutor(
            ProcessorRegistry(),
            ProcessorDependencies(
                settings=settings, task_runner=task_runner, notifier=notifier
            ),
        )
        return WorkflowExecutor(
            store, node_executor, settings=settings, observers=observers
        )

    return _make


# =============================================================================
# DATABASE FIXTURES (SQLite file per test)
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_engine(test_settings) -> AsyncGenerator[AsyncEngine]:
    """Create an aiosqlite engine on a temporary file with all tables."""
    engine = create_async_engine(test_settings.DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def async_session_maker(
    async_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(
    async_session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with async_session_maker() as session:
        yield session


# =============================================================================
# HTTP CLIENT FIXTURES
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def app(test_settings, async_engine, async_session_maker):
    """Application with its lifespan running against the test database."""
    from hiveflow.db.session import get_db
    from hiveflow.main import create_app

    application = create_app(
        test_settings, async_session_maker, async_engine, configure_logging=False
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession]:
        async with async_session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db] = override_get_db
    try:
        async with application.router.lifespan_context(application):
            yield application
    finally:
        application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for testing API endpoints.

    Example:
        async def test_get_workflow(async_client):
            response = await async_client.get("/api/v1/workflows/")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=cast("ASGIApp", app))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_nodes() -> list[dict[str, Any]]:
    """Trigger, delay and merge in a line, in the stored document shape."""
    return [
        {
            "id": "trigger",
            "type": "trigger",
            "position": {"x": 0, "y": 0},
            "data": {"label": "Start", "triggerType": "manual"},
        },
        {
            "id": "wait",
            "type": "delay",
            "position": {"x": 200, "y": 0},
            "data": {"label": "Wait", "delayMs": 0},
        },
        {
            "id": "join",
            "type": "merge",
            "position": {"x": 400, "y": 0},
            "data": {"label": "Join"},
        },
    ]


@pytest.fixture
def sample_edges() -> list[dict[str, Any]]:
    return [
        {"id": "e1", "source": "trigger", "target": "wait"},
        {"id": "e2", "source": "wait", "target": "join"},
    ]


@pytest.fixture
def sample_workflow_data(sample_nodes, sample_edges) -> dict[str, Any]:
    return {
        "name": "Test Workflow",
        "description": "A test workflow for integration testing",
        "nodes": sample_nodes,
        "edges": sample_edges,
    }
