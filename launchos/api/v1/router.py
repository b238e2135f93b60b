"""Main router for API v1."""

from fastapi import APIRouter

from launchos.api.v1 import deployments, health, logs, projects

router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(projects.router, prefix="/projects", tags=["projects"])
router.include_router(deployments.router, prefix="/deployments", tags=["deployments"])
router.include_router(logs.router, prefix="/logs", tags=["logs"])
