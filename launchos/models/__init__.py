"""Data models for LaunchOS."""

from launchos.models.deployment import (
    Deployment,
    DeploymentListResponse,
    DeploymentStatus,
    DeploymentTicket,
    DeployRequest,
    DeployResponse,
)
from launchos.models.log import LogEntry, LogEntryCreate, LogLevel
from launchos.models.product import (
    ProductAnalysisRequest,
    ProductAnalysisResult,
    ProductDraft,
)
from launchos.models.project import (
    Project,
    ProjectCreate,
    ProjectListResponse,
    ProjectStatus,
)

__all__ = [
    # Project models
    "Project",
    "ProjectCreate",
    "ProjectListResponse",
    "ProjectStatus",
    # Deployment models
    "Deployment",
    "DeploymentListResponse",
    "DeploymentStatus",
    "DeploymentTicket",
    "DeployRequest",
    "DeployResponse",
    # Log models
    "LogEntry",
    "LogEntryCreate",
    "LogLevel",
    # Product models
    "ProductAnalysisRequest",
    "ProductAnalysisResult",
    "ProductDraft",
]
