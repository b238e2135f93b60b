"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from launchos import __version__
from launchos.api.deps import TasksDep
from launchos.config import settings
from launchos.utils.clock import utc_now

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    active_tasks: int
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check(tasks: TasksDep) -> HealthResponse:
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        active_tasks=tasks.active,
        timestamp=utc_now(),
    )
