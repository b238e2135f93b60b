"""Dependency injection for API endpoints."""

from typing import Annotated

from fastapi import Depends

from launchos.core.events import EventBus, get_event_bus
from launchos.core.exceptions import ProjectNotFoundError
from launchos.core.orchestrator import DeploymentOrchestrator, get_orchestrator
from launchos.core.store import RecordStore, get_record_store
from launchos.core.tasks import TaskSupervisor, get_task_supervisor
from launchos.models.project import Project
from launchos.services.product_analysis import ProductAnalyzer, get_product_analyzer
from launchos.utils.logging import DiagnosticLog, get_diagnostic_log


async def get_store() -> RecordStore:
    """Get the record store."""
    return get_record_store()


async def get_events() -> EventBus:
    """Get the event bus."""
    return get_event_bus()


async def get_diagnostics() -> DiagnosticLog:
    """Get the diagnostic log."""
    return get_diagnostic_log()


async def get_tasks() -> TaskSupervisor:
    """Get the background task supervisor."""
    return get_task_supervisor()


async def get_deployment_orchestrator() -> DeploymentOrchestrator:
    """Get the deployment orchestrator."""
    return get_orchestrator()


async def get_analyzer() -> ProductAnalyzer:
    """Get the product analyzer."""
    return get_product_analyzer()


async def get_project_by_id(
    project_id: str,
    store: Annotated[RecordStore, Depends(get_store)],
) -> Project:
    """Get a project by ID or raise 404."""
    project = await store.get_project(project_id)
    if not project:
        raise ProjectNotFoundError(project_id)
    return project


# Type aliases for cleaner signatures
StoreDep = Annotated[RecordStore, Depends(get_store)]
EventsDep = Annotated[EventBus, Depends(get_events)]
DiagnosticsDep = Annotated[DiagnosticLog, Depends(get_diagnostics)]
TasksDep = Annotated[TaskSupervisor, Depends(get_tasks)]
OrchestratorDep = Annotated[DeploymentOrchestrator, Depends(get_deployment_orchestrator)]
AnalyzerDep = Annotated[ProductAnalyzer, Depends(get_analyzer)]
ProjectDep = Annotated[Project, Depends(get_project_by_id)]
