"""Project-related data models."""

import re
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from launchos.utils.clock import utc_now

SUBDOMAIN_MIN_LENGTH = 3
SUBDOMAIN_MAX_LENGTH = 30


class ProjectStatus(str, Enum):
    """Hosting status of a project."""

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


def subdomain_from_name(name: str) -> str:
    """Suggest a subdomain for a project name."""
    subdomain = re.sub(r"\s+", "-", name.lower())
    subdomain = re.sub(r"[^a-z0-9-]", "", subdomain)
    return subdomain[:SUBDOMAIN_MAX_LENGTH]


def build_deployment_url(subdomain: str, host: str) -> str:
    """Public URL a project is served from."""
    return f"https://{subdomain}.{host}"


class ProjectCreate(BaseModel):
    """Request model for creating a new project."""

    name: str = Field(..., min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    subdomain: str = Field(
        ..., min_length=SUBDOMAIN_MIN_LENGTH, max_length=SUBDOMAIN_MAX_LENGTH
    )
    repo_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def default_subdomain(cls, data: Any) -> Any:
        """Derive the subdomain from the name when none is given."""
        if isinstance(data, dict) and not data.get("subdomain") and data.get("name"):
            data = {**data, "subdomain": subdomain_from_name(str(data["name"]))}
        return data

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not re.fullmatch(r"[a-zA-Z0-9\s-]+", value):
            raise ValueError(
                "Project name can only contain letters, numbers, spaces, and hyphens"
            )
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: str | None) -> str | None:
        return value or None

    @field_validator("subdomain")
    @classmethod
    def check_subdomain(cls, value: str) -> str:
        if not re.fullmatch(r"[a-z0-9-]+", value):
            raise ValueError(
                "Subdomain can only contain lowercase letters, numbers, and hyphens"
            )
        if not value[0].isalpha():
            raise ValueError("Subdomain must start with a letter")
        if value[-1] == "-":
            raise ValueError("Subdomain must end with a letter or number")
        return value


class Project(BaseModel):
    """A deployable unit with a unique subdomain."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str | None = None
    subdomain: str
    deployment_url: str
    status: ProjectStatus = ProjectStatus.PENDING
    repo_url: str | None = None
    last_deploy_at: datetime | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def mark_deployed(self, at: datetime) -> None:
        """Record a successful deployment."""
        self.status = ProjectStatus.ACTIVE
        self.last_deploy_at = at
        self.updated_at = at


class ProjectListResponse(BaseModel):
    """Response for listing projects."""

    projects: list[Project]
    total: int
    limit: int
    offset: int
