"""Integration tests for the deploy-project and analyze-product functions."""

import json

import httpx
import pytest
from httpx import AsyncClient

from launchos.api import deps
from launchos.core.pipeline import DeploymentPipeline, always
from launchos.core.store import RecordStore
from launchos.core.tasks import TaskSupervisor
from launchos.main import app
from launchos.models.deployment import DeploymentStatus
from launchos.models.project import ProjectCreate
from launchos.services.product_analysis import ProductAnalyzer
from launchos.utils.logging import DiagnosticLog

ADMIN = {"Authorization": "Bearer admin-token"}
USER = {"Authorization": "Bearer user-token"}


@pytest.fixture
async def project(store: RecordStore, project_data: ProjectCreate):
    return await store.create_project(project_data)


def use_gateway(response: httpx.Response) -> list[httpx.Request]:
    """Route product analysis to a canned AI gateway response."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response

    analyzer = ProductAnalyzer(
        api_key="test-key",
        url="https://ai.test/v1/chat/completions",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    app.dependency_overrides[deps.get_analyzer] = lambda: analyzer
    return requests


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestPreflight:
    """Tests for OPTIONS handling."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/functions/v1/deploy-project", "/functions/v1/analyze-product"])
    async def test_options_returns_empty_200(self, client: AsyncClient, path: str):
        response = await client.options(path)

        assert response.status_code == 200
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"
        assert "authorization" in response.headers["access-control-allow-headers"]


class TestDeployProject:
    """Tests for the deploy-project function."""

    @pytest.mark.asyncio
    async def test_missing_authorization(self, client: AsyncClient, project):
        response = await client.post(
            "/functions/v1/deploy-project", json={"project_id": str(project.id)}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient, project):
        response = await client.post(
            "/functions/v1/deploy-project",
            headers={"Authorization": "Bearer expired"},
            json={"project_id": str(project.id)},
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    @pytest.mark.asyncio
    async def test_non_admin_is_forbidden(self, client: AsyncClient, store: RecordStore, project):
        response = await client.post(
            "/functions/v1/deploy-project", headers=USER, json={"project_id": str(project.id)}
        )

        assert response.status_code == 403
        assert response.json() == {"error": "Admin access required"}
        _, total = await store.list_deployments(project.id)
        assert total == 0

    @pytest.mark.asyncio
    async def test_unknown_project(self, client: AsyncClient):
        response = await client.post(
            "/functions/v1/deploy-project", headers=ADMIN, json={"project_id": "zzz"}
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Project not found"}

    @pytest.mark.asyncio
    async def test_missing_project_id(self, client: AsyncClient):
        response = await client.post("/functions/v1/deploy-project", headers=ADMIN, json={})

        assert response.status_code == 400
        assert response.json() == {"error": "project_id is required"}

    @pytest.mark.asyncio
    async def test_missing_body(self, client: AsyncClient):
        response = await client.post("/functions/v1/deploy-project", headers=ADMIN)

        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"json": {"project_id": 123}},
            {"json": {"project_id": "zzz", "branch": None}},
            {"content": b"{not json", "headers": {"Content-Type": "application/json"}},
            {"json": ["not", "an", "object"]},
        ],
    )
    async def test_credentials_checked_before_body(self, client: AsyncClient, body: dict):
        response = await client.post("/functions/v1/deploy-project", **body)

        assert response.status_code == 401
        assert response.json() == {"error": "Missing authorization header"}

    @pytest.mark.asyncio
    async def test_malformed_body_is_missing_project_id(self, client: AsyncClient):
        response = await client.post(
            "/functions/v1/deploy-project",
            headers={**ADMIN, "Content-Type": "application/json"},
            content=b"{not json",
        )

        assert response.status_code == 400
        assert response.json() == {"error": "project_id is required"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"project_id": 123}, {"project_id": "zzz", "branch": None}])
    async def test_odd_fields_reach_project_lookup(self, client: AsyncClient, body: dict):
        response = await client.post("/functions/v1/deploy-project", headers=ADMIN, json=body)

        assert response.status_code == 404
        assert response.json() == {"error": "Project not found"}

    @pytest.mark.asyncio
    async def test_successful_deployment(
        self,
        client: AsyncClient,
        store: RecordStore,
        tasks: TaskSupervisor,
        project,
    ):
        response = await client.post(
            "/functions/v1/deploy-project",
            headers=ADMIN,
            json={"project_id": str(project.id), "branch": "main"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        ticket = data["deployment"]
        assert ticket["status"] == "pending"
        assert ticket["project_name"] == "My Shop"
        assert ticket["deployment_url"] == "https://my-shop.yourapp.com"
        assert ticket["build_id"].startswith("build-")

        await tasks.drain(timeout=5)

        deployment = await client.get(f"/v1/deployments/{ticket['id']}")
        assert deployment.json()["status"] == "success"
        updated = (await client.get(f"/v1/projects/{project.id}")).json()
        assert updated["status"] == "active"
        assert updated["last_deploy_at"] is not None

    @pytest.mark.asyncio
    async def test_failed_deployment(
        self,
        client: AsyncClient,
        pipeline: DeploymentPipeline,
        tasks: TaskSupervisor,
        project,
    ):
        pipeline.decide_outcome = always(False)

        response = await client.post(
            "/functions/v1/deploy-project", headers=ADMIN, json={"project_id": str(project.id)}
        )
        await tasks.drain(timeout=5)

        deployment = await client.get(f"/v1/deployments/{response.json()['deployment']['id']}")
        assert deployment.json()["status"] == DeploymentStatus.FAILED.value
        updated = (await client.get(f"/v1/projects/{project.id}")).json()
        assert updated["status"] == "pending"
        assert updated["last_deploy_at"] is None

    @pytest.mark.asyncio
    async def test_deployment_is_logged(
        self, client: AsyncClient, diagnostics: DiagnosticLog, tasks: TaskSupervisor, project
    ):
        await client.post(
            "/functions/v1/deploy-project", headers=ADMIN, json={"project_id": str(project.id)}
        )
        await tasks.drain(timeout=5)

        messages = [e.message for e in diagnostics.get_logs() if e.context == "deploy-project"]
        assert messages[0].startswith(f"Starting deployment for project {project.id}")
        assert messages[-1].endswith("completed successfully")


class TestAnalyzeProduct:
    """Tests for the analyze-product function."""

    @pytest.mark.asyncio
    async def test_successful_analysis(self, client: AsyncClient):
        reply = json.dumps({"title": "Desk Lamp", "description": "Brass lamp", "price": 39.5, "tags": ["lamp"]})
        requests = use_gateway(httpx.Response(200, json=completion(reply)))

        response = await client.post(
            "/functions/v1/analyze-product", json={"imageBase64": "data:image/png;base64,AAAA"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "title": "Desk Lamp",
            "description": "Brass lamp",
            "price": 39.5,
            "tags": ["lamp"],
        }
        assert len(requests) == 1

    @pytest.mark.asyncio
    async def test_empty_image(self, client: AsyncClient):
        requests = use_gateway(httpx.Response(200, json=completion("{}")))

        response = await client.post("/functions/v1/analyze-product", json={"imageBase64": ""})

        assert response.status_code == 400
        assert response.json() == {"error": "No image data provided"}
        assert requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"imageBase64": None}, {"imageBase64": 5}, {}, ["AAAA"]])
    async def test_image_not_text(self, client: AsyncClient, body):
        requests = use_gateway(httpx.Response(200, json=completion("{}")))

        response = await client.post("/functions/v1/analyze-product", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "No image data provided"}
        assert requests == []

    @pytest.mark.asyncio
    async def test_prose_reply(self, client: AsyncClient, diagnostics: DiagnosticLog):
        use_gateway(httpx.Response(200, json=completion("This looks like a lamp.")))

        response = await client.post(
            "/functions/v1/analyze-product", json={"imageBase64": "data:image/png;base64,AAAA"}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to parse product data from AI response"}
        assert diagnostics.get_logs()[-1].message == "Error in analyze-product function"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code, message",
        [
            (429, "Rate limit exceeded. Please try again later."),
            (402, "Payment required. Please add credits to your AI workspace."),
        ],
    )
    async def test_gateway_limits(self, client: AsyncClient, status_code: int, message: str):
        use_gateway(httpx.Response(status_code, text="limited"))

        response = await client.post(
            "/functions/v1/analyze-product", json={"imageBase64": "data:image/png;base64,AAAA"}
        )

        assert response.status_code == status_code
        assert response.json() == {"error": message}

    @pytest.mark.asyncio
    async def test_gateway_error(self, client: AsyncClient):
        use_gateway(httpx.Response(500, text="internal"))

        response = await client.post(
            "/functions/v1/analyze-product", json={"imageBase64": "data:image/png;base64,AAAA"}
        )

        assert response.status_code == 500
        assert response.json()["error"].startswith("AI API error")
