"""Deployment status endpoints."""

from fastapi import APIRouter

from launchos.api.deps import StoreDep
from launchos.core.exceptions import DeploymentNotFoundError
from launchos.models.deployment import Deployment

router = APIRouter()


@router.get(
    "/{deployment_id}",
    response_model=Deployment,
    summary="Get deployment status",
)
async def get_deployment(deployment_id: str, store: StoreDep) -> Deployment:
    """Poll a deployment's current status."""
    deployment = await store.get_deployment(deployment_id)
    if deployment is None:
        raise DeploymentNotFoundError(deployment_id)
    return deployment
