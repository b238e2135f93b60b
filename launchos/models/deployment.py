"""Deployment data models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from launchos.core.exceptions import InvalidStatusTransition
from launchos.utils.clock import utc_now


class DeploymentStatus(str, Enum):
    """Lifecycle of a single deployment attempt."""

    PENDING = "pending"
    BUILDING = "building"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (DeploymentStatus.SUCCESS, DeploymentStatus.FAILED)

    def can_transition_to(self, target: "DeploymentStatus") -> bool:
        return target in _TRANSITIONS[self]


# pending -> failed covers a fault before the build starts.
_TRANSITIONS: dict[DeploymentStatus, frozenset[DeploymentStatus]] = {
    DeploymentStatus.PENDING: frozenset(
        {DeploymentStatus.BUILDING, DeploymentStatus.FAILED}
    ),
    DeploymentStatus.BUILDING: frozenset(
        {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED}
    ),
    DeploymentStatus.SUCCESS: frozenset(),
    DeploymentStatus.FAILED: frozenset(),
}


class Deployment(BaseModel):
    """One build/deploy attempt for a project."""

    id: UUID = Field(default_factory=uuid4)
    project_id: UUID
    build_id: str
    branch: str = "main"
    status: DeploymentStatus = DeploymentStatus.PENDING
    created_at: datetime = Field(default_factory=utc_now)

    def advance(self, target: DeploymentStatus) -> None:
        """Move to ``target``, enforcing the one-directional lifecycle."""
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransition(
                str(self.id), self.status.value, target.value
            )
        self.status = target


class DeployRequest(BaseModel):
    """Body of a deployment trigger.

    Fields are read leniently; the orchestrator decides what is missing.
    """

    project_id: Any = None
    branch: str | None = "main"

    @field_validator("branch", mode="before")
    @classmethod
    def coerce_branch(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value).strip() or None


class DeploymentTicket(BaseModel):
    """What the caller gets back when a deployment is admitted."""

    id: UUID
    build_id: str
    status: DeploymentStatus = DeploymentStatus.PENDING
    project_name: str
    deployment_url: str


class DeployResponse(BaseModel):
    """Response of the deployment trigger."""

    success: bool = True
    deployment: DeploymentTicket


class DeploymentListResponse(BaseModel):
    """Deployment history of a project, newest first."""

    deployments: list[Deployment]
    total: int
