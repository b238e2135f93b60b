"""Unit tests for the record store."""

from datetime import datetime, timezone

import pytest

from launchos.core.exceptions import (
    DeploymentNotFoundError,
    InvalidStatusTransition,
    ProjectNotFoundError,
    SubdomainTakenError,
)
from launchos.core.store import RecordStore
from launchos.models.deployment import DeploymentStatus
from launchos.models.project import ProjectCreate, ProjectStatus


class TestProjects:
    """Tests for project records."""

    @pytest.mark.asyncio
    async def test_create_project(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)

        assert project.name == "My Shop"
        assert project.status == ProjectStatus.PENDING
        assert project.deployment_url == "https://my-shop.yourapp.com"

    @pytest.mark.asyncio
    async def test_subdomain_must_be_unique(self, store: RecordStore, project_data: ProjectCreate):
        await store.create_project(project_data)

        with pytest.raises(SubdomainTakenError) as exc_info:
            await store.create_project(ProjectCreate(name="Other Shop", subdomain="my-shop"))

        assert exc_info.value.message == "This subdomain is already taken"
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_get_project(self, store: RecordStore, project_data: ProjectCreate):
        created = await store.create_project(project_data)

        assert (await store.get_project(created.id)).id == created.id
        assert (await store.get_project(str(created.id))).id == created.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("project_id", ["zzz", "", "00000000-0000-0000-0000-000000000000"])
    async def test_get_missing_project(self, store: RecordStore, project_id: str):
        assert await store.get_project(project_id) is None

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store: RecordStore, project_data: ProjectCreate):
        created = await store.create_project(project_data)

        created.name = "Tampered"

        assert (await store.get_project(created.id)).name == "My Shop"

    @pytest.mark.asyncio
    async def test_list_projects(self, store: RecordStore):
        for i in range(3):
            await store.create_project(ProjectCreate(name=f"Shop {i}", subdomain=f"shop-{i}"))

        projects, total = await store.list_projects(limit=2)

        assert total == 3
        assert len(projects) == 2

        pending, pending_total = await store.list_projects(status=ProjectStatus.ACTIVE)
        assert pending == []
        assert pending_total == 0

    @pytest.mark.asyncio
    async def test_delete_project_cascades(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        deployment = await store.create_deployment(project.id, "build-1-aaaaaa")

        assert await store.delete_project(project.id) is True

        assert await store.get_project(project.id) is None
        assert await store.get_deployment(deployment.id) is None
        assert await store.delete_project(project.id) is False


class TestDeployments:
    """Tests for deployment records."""

    @pytest.mark.asyncio
    async def test_create_deployment(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)

        deployment = await store.create_deployment(project.id, "build-1-aaaaaa", "dev")

        assert deployment.status == DeploymentStatus.PENDING
        assert deployment.branch == "dev"
        assert deployment.project_id == project.id

    @pytest.mark.asyncio
    async def test_create_deployment_unknown_project(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        await store.delete_project(project.id)

        with pytest.raises(ProjectNotFoundError):
            await store.create_deployment(project.id, "build-1-aaaaaa")

    @pytest.mark.asyncio
    async def test_build_id_unique(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        await store.create_deployment(project.id, "build-1-aaaaaa")

        with pytest.raises(ValueError):
            await store.create_deployment(project.id, "build-1-aaaaaa")

    @pytest.mark.asyncio
    async def test_list_deployments_newest_first(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        for i in range(25):
            await store.create_deployment(project.id, f"build-{i}-aaaaaa")

        deployments, total = await store.list_deployments(project.id)

        assert total == 25
        assert len(deployments) == 20
        assert deployments[0].build_id == "build-24-aaaaaa"
        assert deployments[-1].build_id == "build-5-aaaaaa"

    @pytest.mark.asyncio
    async def test_set_status_enforces_lifecycle(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        deployment = await store.create_deployment(project.id, "build-1-aaaaaa")

        building = await store.set_deployment_status(deployment.id, DeploymentStatus.BUILDING)
        assert building.status == DeploymentStatus.BUILDING

        with pytest.raises(InvalidStatusTransition):
            await store.set_deployment_status(deployment.id, DeploymentStatus.PENDING)

    @pytest.mark.asyncio
    async def test_set_status_unknown_deployment(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        deployment = await store.create_deployment(project.id, "build-1-aaaaaa")
        await store.delete_project(project.id)

        with pytest.raises(DeploymentNotFoundError):
            await store.set_deployment_status(deployment.id, DeploymentStatus.BUILDING)

    @pytest.mark.asyncio
    async def test_complete_deployment(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        deployment = await store.create_deployment(project.id, "build-1-aaaaaa")
        await store.set_deployment_status(deployment.id, DeploymentStatus.BUILDING)
        at = datetime(2026, 5, 1, tzinfo=timezone.utc)

        done, updated = await store.complete_deployment(deployment.id, at)

        assert done.status == DeploymentStatus.SUCCESS
        assert updated.status == ProjectStatus.ACTIVE
        assert updated.last_deploy_at == at
        stored = await store.get_project(project.id)
        assert stored.status == ProjectStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_complete_requires_building(self, store: RecordStore, project_data: ProjectCreate):
        project = await store.create_project(project_data)
        deployment = await store.create_deployment(project.id, "build-1-aaaaaa")

        with pytest.raises(InvalidStatusTransition):
            await store.complete_deployment(deployment.id)

        # Failed transition leaves the project untouched
        assert (await store.get_project(project.id)).status == ProjectStatus.PENDING
