"""Deployment Orchestrator.

Admits deployment requests: checks the caller, resolves the project, records
a pending deployment and hands it to the pipeline in the background. The
caller gets an answer as soon as the record exists.
"""

import random
import string
import time
from functools import lru_cache
from typing import Any

from launchos.core.auth import ADMIN_ROLE, IdentityProvider, get_identity_provider
from launchos.core.exceptions import (
    DeploymentCreateError,
    Forbidden,
    InvalidArgument,
    ProjectNotFoundError,
    Unauthenticated,
)
from launchos.core.pipeline import DeploymentPipeline, get_pipeline
from launchos.core.store import RecordStore, get_record_store
from launchos.core.tasks import TaskSupervisor, get_task_supervisor
from launchos.models.deployment import Deployment, DeploymentTicket
from launchos.utils.logging import DiagnosticLog, get_diagnostic_log, get_logger

_BASE36 = string.digits + string.ascii_lowercase


def generate_build_id(now_ms: int | None = None, suffix_length: int = 6) -> str:
    """``build-<epoch-ms>-<random base36 suffix>``."""
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    suffix = "".join(random.choices(_BASE36, k=suffix_length))
    return f"build-{now_ms}-{suffix}"


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer":
        return token.strip() or None
    return authorization.strip() or None


class DeploymentOrchestrator:
    """Validates and schedules deployments."""

    def __init__(
        self,
        store: RecordStore | None = None,
        identity: IdentityProvider | None = None,
        pipeline: DeploymentPipeline | None = None,
        tasks: TaskSupervisor | None = None,
        diagnostics: DiagnosticLog | None = None,
    ):
        self.store = store if store is not None else get_record_store()
        self.identity = identity if identity is not None else get_identity_provider()
        self.pipeline = pipeline if pipeline is not None else get_pipeline()
        self.tasks = tasks if tasks is not None else get_task_supervisor()
        self.diagnostics = diagnostics if diagnostics is not None else get_diagnostic_log()
        self.logger = get_logger("orchestrator")

    async def trigger(
        self,
        authorization: str | None,
        project_id: Any,
        branch: str | None = "main",
    ) -> DeploymentTicket:
        """Admit a deployment request and start its pipeline.

        Raises:
            Unauthenticated: no credential, or the credential is not valid
            Forbidden: the caller is not an admin
            InvalidArgument: no project id
            NotFound: the project does not exist
            DeploymentCreateError: the deployment record could not be stored
        """
        if not authorization:
            raise Unauthenticated("Missing authorization header")

        token = bearer_token(authorization)
        user_id = await self.identity.authenticate(token) if token else None
        if not user_id:
            self.logger.warning("orchestrator.unauthenticated")
            raise Unauthenticated("Unauthorized")

        if not await self.identity.authorize(user_id, ADMIN_ROLE):
            self.logger.warning("orchestrator.forbidden", user_id=user_id)
            raise Forbidden("Admin access required")

        if not project_id or not str(project_id).strip():
            raise InvalidArgument("project_id is required")
        project_id = str(project_id).strip()

        project = await self.store.get_project(project_id)
        if project is None:
            self.logger.info("orchestrator.project_not_found", project_id=project_id)
            raise ProjectNotFoundError(project_id)

        build_id = generate_build_id()
        self.diagnostics.info(
            f"Starting deployment for project {project.id}, build {build_id}",
            "deploy-project",
        )

        try:
            deployment = await self.store.create_deployment(
                project.id, build_id, branch or "main"
            )
        except Exception as e:
            self.logger.error(
                "orchestrator.deployment_create_failed",
                project_id=str(project.id),
                error=str(e),
            )
            raise DeploymentCreateError(str(e)) from e

        self.schedule(deployment)

        self.logger.info(
            "orchestrator.deployment_admitted",
            project_id=str(project.id),
            deployment_id=str(deployment.id),
            build_id=build_id,
            user_id=user_id,
        )

        return DeploymentTicket(
            id=deployment.id,
            build_id=deployment.build_id,
            status=deployment.status,
            project_name=project.name,
            deployment_url=project.deployment_url,
        )

    def schedule(self, deployment: Deployment) -> None:
        """Run the pipeline for ``deployment`` detached from the caller."""
        self.tasks.spawn(
            self.pipeline.run(deployment.id),
            name=f"deploy:{deployment.build_id}",
        )


@lru_cache
def get_orchestrator() -> DeploymentOrchestrator:
    """Get the orchestrator singleton."""
    return DeploymentOrchestrator()
