"""Project management endpoints."""

import asyncio
import json
from typing import Annotated

from fastapi import APIRouter, Query, status
from sse_starlette.sse import EventSourceResponse

from launchos.api.deps import DiagnosticsDep, EventsDep, ProjectDep, StoreDep
from launchos.core.events import TERMINAL_EVENTS, Event
from launchos.models.deployment import DeploymentListResponse
from launchos.models.project import (
    Project,
    ProjectCreate,
    ProjectListResponse,
    ProjectStatus,
)

router = APIRouter()

KEEPALIVE_SECONDS = 30.0


@router.post(
    "",
    response_model=Project,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new project",
    description="Register a project under a unique subdomain. Deploy it with the deploy-project function.",
)
async def create_project(
    data: ProjectCreate,
    store: StoreDep,
    diagnostics: DiagnosticsDep,
) -> Project:
    """Create a project in ``pending`` state."""
    project = await store.create_project(data)
    diagnostics.info(
        f"Project created: {project.name}",
        "projects",
        {"project_id": str(project.id), "deployment_url": project.deployment_url},
    )
    return project


@router.get(
    "",
    response_model=ProjectListResponse,
    summary="List all projects",
)
async def list_projects(
    store: StoreDep,
    status_filter: Annotated[ProjectStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ProjectListResponse:
    """List all projects with optional filtering."""
    projects, total = await store.list_projects(
        status=status_filter,
        limit=limit,
        offset=offset,
    )

    return ProjectListResponse(
        projects=projects,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{project_id}",
    response_model=Project,
    summary="Get project details",
)
async def get_project(project: ProjectDep) -> Project:
    """Get a project, as shown on its public page."""
    return project


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project",
)
async def delete_project(
    project: ProjectDep,
    store: StoreDep,
    diagnostics: DiagnosticsDep,
) -> None:
    """Delete a project together with its deployment history."""
    await store.delete_project(project.id)
    diagnostics.info(f"Project deleted: {project.name}", "projects")


@router.get(
    "/{project_id}/deployments",
    response_model=DeploymentListResponse,
    summary="Deployment history",
)
async def list_deployments(
    project: ProjectDep,
    store: StoreDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> DeploymentListResponse:
    """Recent deployments of a project, newest first."""
    deployments, total = await store.list_deployments(project.id, limit=limit)
    return DeploymentListResponse(deployments=deployments, total=total)


@router.get(
    "/{project_id}/deployments/stream",
    summary="Stream deployment status events (SSE)",
)
async def stream_deployment_events(
    project: ProjectDep,
    events: EventsDep,
    until_complete: bool = False,
) -> EventSourceResponse:
    """Stream deployment status changes for a project using Server-Sent Events."""
    queue = events.subscribe(project.id)

    async def event_generator():
        try:
            yield {
                "event": "connected",
                "data": json.dumps(
                    {"project_id": str(project.id), "status": project.status.value}
                ),
            }

            while True:
                try:
                    event: Event = await asyncio.wait_for(
                        queue.get(), timeout=KEEPALIVE_SECONDS
                    )
                    yield {"event": event.event_type, "data": event.to_json()}

                    if until_complete and event.event_type in TERMINAL_EVENTS:
                        break

                except asyncio.TimeoutError:
                    yield {"event": "keepalive", "data": "{}"}

        finally:
            events.unsubscribe(project.id, queue)

    return EventSourceResponse(event_generator())
