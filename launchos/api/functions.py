"""Serverless-style function endpoints.

These keep the request/response contract the dashboard already speaks:
JSON in, ``{"error": ...}`` out on failure, permissive CORS, and a bare 200
for ``OPTIONS``.
"""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Request, Response

from launchos.api.deps import AnalyzerDep, DiagnosticsDep, OrchestratorDep
from launchos.core.exceptions import LaunchOSError
from launchos.models.deployment import DeployRequest, DeployResponse
from launchos.models.product import ProductAnalysisRequest

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


async def add_cors_headers(response: Response) -> None:
    response.headers.update(CORS_HEADERS)


async def read_json_object(request: Request) -> dict[str, Any]:
    """Request body as a JSON object. Missing or malformed bodies read as empty."""
    body = await request.body()
    if not body:
        return {}
    try:
        data = json.loads(body)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


router = APIRouter(dependencies=[Depends(add_cors_headers)])


@router.options("/deploy-project", include_in_schema=False)
@router.options("/analyze-product", include_in_schema=False)
async def preflight() -> Response:
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post(
    "/deploy-project",
    response_model=DeployResponse,
    summary="Trigger a deployment",
    description="Admin only. Returns as soon as the deployment is recorded; the build runs in the background.",
)
async def deploy_project(
    request: Request,
    orchestrator: OrchestratorDep,
    authorization: Annotated[str | None, Header()] = None,
) -> DeployResponse:
    data = DeployRequest.model_validate(await read_json_object(request))
    ticket = await orchestrator.trigger(authorization, data.project_id, data.branch)
    return DeployResponse(success=True, deployment=ticket)


@router.post(
    "/analyze-product",
    summary="Suggest product details from a photo",
)
async def analyze_product(
    request: Request,
    analyzer: AnalyzerDep,
    diagnostics: DiagnosticsDep,
) -> dict[str, Any]:
    data = ProductAnalysisRequest.model_validate(await read_json_object(request))
    diagnostics.info("Analyzing product image with AI...", "analyze-product")
    try:
        result = await analyzer.analyze(data.image_base64 or "")
    except LaunchOSError as e:
        diagnostics.error(
            "Error in analyze-product function",
            "analyze-product",
            {"error": e.message, "type": type(e).__name__},
        )
        raise
    return result.model_dump()
