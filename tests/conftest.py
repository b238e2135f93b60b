"""Pytest configuration and fixtures."""

from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from launchos.api import deps
from launchos.core.auth import ADMIN_ROLE, StaticIdentityProvider
from launchos.core.events import EventBus
from launchos.core.orchestrator import DeploymentOrchestrator
from launchos.core.pipeline import DeploymentPipeline, always
from launchos.core.store import RecordStore
from launchos.core.tasks import TaskSupervisor
from launchos.main import app
from launchos.models.log import LogLevel
from launchos.models.project import ProjectCreate
from launchos.utils.logging import DiagnosticLog

ADMIN_TOKEN = "admin-token"
USER_TOKEN = "user-token"


class RecordingSink:
    """Collects what the diagnostic log would print."""

    def __init__(self):
        self.lines: list[tuple[LogLevel, str, Any]] = []

    def __call__(self, level: LogLevel, line: str, data: Any) -> None:
        self.lines.append((level, line, data))


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def diagnostics(sink: RecordingSink) -> DiagnosticLog:
    """Create a fresh diagnostic log that records instead of printing."""
    return DiagnosticLog(max_logs=1000, development=True, sink=sink)


@pytest.fixture
def store() -> RecordStore:
    """Create a fresh record store."""
    return RecordStore(deployment_host="yourapp.com")


@pytest.fixture
def events() -> EventBus:
    """Create a fresh event bus."""
    return EventBus()


@pytest.fixture
def identity() -> StaticIdentityProvider:
    """One admin and one regular user."""
    provider = StaticIdentityProvider()
    provider.add_user(ADMIN_TOKEN, "admin-user", [ADMIN_ROLE])
    provider.add_user(USER_TOKEN, "regular-user", ["user"])
    return provider


@pytest.fixture
def tasks() -> TaskSupervisor:
    return TaskSupervisor()


@pytest.fixture
def pipeline(
    store: RecordStore, events: EventBus, diagnostics: DiagnosticLog
) -> DeploymentPipeline:
    """Pipeline without delays that always succeeds."""
    return DeploymentPipeline(
        store=store,
        events=events,
        diagnostics=diagnostics,
        decide_outcome=always(True),
        build_prep_delay=0,
        deploy_delay=0,
    )


@pytest.fixture
def orchestrator(
    store: RecordStore,
    identity: StaticIdentityProvider,
    pipeline: DeploymentPipeline,
    tasks: TaskSupervisor,
    diagnostics: DiagnosticLog,
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        store=store,
        identity=identity,
        pipeline=pipeline,
        tasks=tasks,
        diagnostics=diagnostics,
    )


@pytest.fixture
async def client(
    store: RecordStore,
    events: EventBus,
    diagnostics: DiagnosticLog,
    tasks: TaskSupervisor,
    orchestrator: DeploymentOrchestrator,
) -> AsyncClient:
    """Create an async test client wired to the fixtures above."""
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_events] = lambda: events
    app.dependency_overrides[deps.get_diagnostics] = lambda: diagnostics
    app.dependency_overrides[deps.get_tasks] = lambda: tasks
    app.dependency_overrides[deps.get_deployment_orchestrator] = lambda: orchestrator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    # Cleanup after test
    await tasks.drain(timeout=5)
    app.dependency_overrides.clear()


@pytest.fixture
def project_data() -> ProjectCreate:
    """Sample project creation data."""
    return ProjectCreate(
        name="My Shop",
        description="Storefront for handmade goods",
        subdomain="my-shop",
    )
