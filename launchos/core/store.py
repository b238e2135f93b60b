"""Persistence for projects and deployments."""

import asyncio
from datetime import datetime
from functools import lru_cache
from uuid import UUID

from launchos.config import settings
from launchos.core.exceptions import (
    DeploymentNotFoundError,
    ProjectNotFoundError,
    SubdomainTakenError,
)
from launchos.models.deployment import Deployment, DeploymentStatus
from launchos.models.project import (
    Project,
    ProjectCreate,
    ProjectStatus,
    build_deployment_url,
)
from launchos.utils.clock import utc_now


def _as_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class RecordStore:
    """Keeps project and deployment records in memory.

    Note: For production, this should be backed by the hosted database.
    Records handed out are copies; changes go through the store's methods.
    """

    def __init__(self, deployment_host: str | None = None):
        self.deployment_host = deployment_host or settings.deployment_host
        self._projects: dict[UUID, Project] = {}
        self._deployments: dict[UUID, Deployment] = {}
        self._lock = asyncio.Lock()

    # Projects

    async def create_project(self, data: ProjectCreate) -> Project:
        """Create a project; the subdomain must be unused."""
        async with self._lock:
            if any(p.subdomain == data.subdomain for p in self._projects.values()):
                raise SubdomainTakenError(data.subdomain)
            project = Project(
                name=data.name,
                description=data.description,
                subdomain=data.subdomain,
                deployment_url=build_deployment_url(
                    data.subdomain, self.deployment_host
                ),
                repo_url=data.repo_url,
            )
            self._projects[project.id] = project
            return project.model_copy(deep=True)

    async def get_project(self, project_id: UUID | str) -> Project | None:
        """Get a project by ID."""
        key = _as_uuid(project_id)
        project = self._projects.get(key) if key else None
        return project.model_copy(deep=True) if project else None

    async def list_projects(
        self,
        status: ProjectStatus | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Project], int]:
        """List projects, newest first, with optional filtering."""
        projects = list(self._projects.values())

        if status:
            projects = [p for p in projects if p.status == status]

        projects.sort(key=lambda p: p.created_at, reverse=True)

        total = len(projects)
        projects = projects[offset : offset + limit]

        return [p.model_copy(deep=True) for p in projects], total

    async def delete_project(self, project_id: UUID | str) -> bool:
        """Delete a project and all of its deployments."""
        key = _as_uuid(project_id)
        async with self._lock:
            if key is None or key not in self._projects:
                return False
            del self._projects[key]
            for deployment_id in [
                d.id for d in self._deployments.values() if d.project_id == key
            ]:
                del self._deployments[deployment_id]
            return True

    # Deployments

    async def create_deployment(
        self, project_id: UUID, build_id: str, branch: str = "main"
    ) -> Deployment:
        """Create a pending deployment for an existing project."""
        async with self._lock:
            if project_id not in self._projects:
                raise ProjectNotFoundError(str(project_id))
            if any(d.build_id == build_id for d in self._deployments.values()):
                raise ValueError(f"Duplicate build id: {build_id}")
            deployment = Deployment(
                project_id=project_id, build_id=build_id, branch=branch
            )
            self._deployments[deployment.id] = deployment
            return deployment.model_copy()

    async def get_deployment(self, deployment_id: UUID | str) -> Deployment | None:
        """Get a deployment by ID."""
        key = _as_uuid(deployment_id)
        deployment = self._deployments.get(key) if key else None
        return deployment.model_copy() if deployment else None

    async def list_deployments(
        self, project_id: UUID, limit: int = 20
    ) -> tuple[list[Deployment], int]:
        """Deployment history of a project, newest first."""
        deployments = [
            d for d in self._deployments.values() if d.project_id == project_id
        ]
        # dicts keep insertion order, so reversing breaks created_at ties
        deployments.reverse()
        deployments.sort(key=lambda d: d.created_at, reverse=True)
        return [d.model_copy() for d in deployments[:limit]], len(deployments)

    async def set_deployment_status(
        self, deployment_id: UUID, status: DeploymentStatus
    ) -> Deployment:
        """Advance a deployment's status."""
        async with self._lock:
            deployment = self._require_deployment(deployment_id)
            deployment.advance(status)
            return deployment.model_copy()

    async def complete_deployment(
        self, deployment_id: UUID, deployed_at: datetime | None = None
    ) -> tuple[Deployment, Project | None]:
        """Mark a deployment successful and its project active, atomically."""
        deployed_at = deployed_at or utc_now()
        async with self._lock:
            deployment = self._require_deployment(deployment_id)
            project = self._projects.get(deployment.project_id)
            deployment.advance(DeploymentStatus.SUCCESS)
            if project is not None:
                project.mark_deployed(deployed_at)
            return (
                deployment.model_copy(),
                project.model_copy(deep=True) if project else None,
            )

    def clear(self) -> None:
        """Remove all records (primarily for tests)."""
        self._projects.clear()
        self._deployments.clear()

    def _require_deployment(self, deployment_id: UUID) -> Deployment:
        deployment = self._deployments.get(deployment_id)
        if deployment is None:
            raise DeploymentNotFoundError(str(deployment_id))
        return deployment


@lru_cache
def get_record_store() -> RecordStore:
    """Get the record store singleton."""
    return RecordStore()
