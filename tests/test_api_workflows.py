"""Integration tests for Workflow API endpoints."""

import pytest
from fastapi import status
from httpx import AsyncClient

from hiveflow.models import Workflow

pytestmark = pytest.mark.integration


@pytest.fixture
def scheduled_workflow_data(sample_workflow_data):
    trigger = sample_workflow_data["nodes"][0]
    trigger["data"] = {
        "label": "Hourly",
        "triggerType": "schedule",
        "config": {"cronExpression": "0 * * * *"},
    }
    return {**sample_workflow_data, "status": "active"}


async def _create(client: AsyncClient, data: dict) -> dict:
    response = await client.post("/api/v1/workflows/", json=data)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


# =============================================================================
# CRUD
# =============================================================================


class TestWorkflowEndpoints:
    """Test suite for workflow CRUD endpoints."""

    @pytest.mark.asyncio
    async def test_list_workflows_empty(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/workflows/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["items"] == []
        assert data["total"] == 0

    @pytest.mark.asyncio
    async def test_create_workflow_success(
        self, async_client: AsyncClient, sample_workflow_data
    ):
        data = await _create(async_client, sample_workflow_data)

        assert data["id"] is not None
        assert data["name"] == "Test Workflow"
        assert data["status"] == "draft"
        assert data["autoCreateTask"] is False
        assert [node["id"] for node in data["nodes"]] == ["trigger", "wait", "join"]

    @pytest.mark.asyncio
    async def test_create_workflow_empty_name(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/workflows/", json={"name": "", "description": "Test"}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_create_workflow_invalid_graph(
        self, async_client: AsyncClient, sample_workflow_data
    ):
        """Test that graph defects are reported together with a 400."""
        sample_workflow_data["nodes"][1]["type"] = "teleport"
        sample_workflow_data["edges"].append(
            {"id": "e3", "source": "join", "target": "ghost"}
        )

        response = await async_client.post(
            "/api/v1/workflows/", json=sample_workflow_data
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        detail = response.json()["detail"]
        assert detail["message"] == "Invalid workflow"
        assert "Node 1: Unsupported node type: teleport" in detail["errors"]
        assert "Edge 2: Target node 'ghost' not found" in detail["errors"]

    @pytest.mark.asyncio
    async def test_get_workflow(self, async_client: AsyncClient, sample_workflow_data):
        workflow_id = (await _create(async_client, sample_workflow_data))["id"]

        response = await async_client.get(f"/api/v1/workflows/{workflow_id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["id"] == workflow_id

    @pytest.mark.asyncio
    async def test_get_workflow_not_found(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/workflows/404")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Workflow with ID 404 not found"

    @pytest.mark.asyncio
    async def test_list_filters_by_status(
        self, async_client: AsyncClient, sample_workflow_data
    ):
        await _create(async_client, sample_workflow_data)
        active = await _create(
            async_client, {**sample_workflow_data, "name": "Live", "status": "active"}
        )

        response = await async_client.get("/api/v1/workflows/?status=active")

        data = response.json()
        assert data["total"] == 1
        assert [item["id"] for item in data["items"]] == [active["id"]]
        assert "nodes" not in data["items"][0]

    @pytest.mark.asyncio
    async def test_update_workflow(self, async_client: AsyncClient, sample_workflow_data):
        workflow_id = (await _create(async_client, sample_workflow_data))["id"]

        response = await async_client.patch(
            f"/api/v1/workflows/{workflow_id}",
            json={"description": None, "autoCreateTask": True},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["description"] is None
        assert data["autoCreateTask"] is True
        assert data["name"] == "Test Workflow"

    @pytest.mark.asyncio
    async def test_update_revalidates_graph(
        self, async_client: AsyncClient, sample_workflow_data
    ):
        workflow_id = (await _create(async_client, sample_workflow_data))["id"]

        response = await async_client.patch(
            f"/api/v1/workflows/{workflow_id}",
            json={"edges": [{"id": "e1", "source": "trigger", "target": "nowhere"}]},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        stored = await async_client.get(f"/api/v1/workflows/{workflow_id}")
        assert len(stored.json()["edges"]) == 2

    @pytest.mark.asyncio
    async def test_update_not_found(self, async_client: AsyncClient):
        response = await async_client.patch(
            "/api/v1/workflows/404", json={"name": "Renamed"}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_workflow(self, async_client: AsyncClient, sample_workflow_data):
        workflow_id = (await _create(async_client, sample_workflow_data))["id"]

        response = await async_client.delete(f"/api/v1/workflows/{workflow_id}")

        assert response.status_code == status.HTTP_204_NO_CONTENT
        missing = await async_client.get(f"/api/v1/workflows/{workflow_id}")
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_not_found(self, async_client: AsyncClient):
        response = await async_client.delete("/api/v1/workflows/404")

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Validation, export and import
# =============================================================================


class TestValidateEndpoint:
    """Test candidate document validation."""

    @pytest.mark.asyncio
    async def test_valid_document(self, async_client: AsyncClient, sample_workflow_data):
        response = await async_client.post(
            "/api/v1/workflows/validate",
            json={"formatVersion": "2.0", **sample_workflow_data},
        )

        assert response.status_code == status.HTTP_200_OK
        report = response.json()
        assert report["valid"] is True
        assert report["errors"] == []
        assert report["node_count"] == 3
        assert report["edge_count"] == 2
        assert report["compatibility"] == "full"

    @pytest.mark.asyncio
    async def test_reports_every_defect(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/workflows/validate", json={"formatVersion": "2.0", "nodes": {}}
        )

        report = response.json()
        assert report["valid"] is False
        assert report["compatibility"] == "none"
        assert report["errors"] == [
            "Workflow name is required and must be a string",
            "Workflow nodes must be an array",
            "Workflow edges must be an array",
        ]

    @pytest.mark.asyncio
    async def test_non_object_document(self, async_client: AsyncClient):
        response = await async_client.post("/api/v1/workflows/validate", json=[1, 2])

        assert response.json()["errors"] == ["Workflow data must be an object"]


class TestTransferEndpoints:
    """Test export and import over HTTP."""

    @pytest.mark.asyncio
    async def test_export_then_import(
        self, async_client: AsyncClient, sample_workflow_data
    ):
        workflow_id = (
            await _create(async_client, {**sample_workflow_data, "status": "active"})
        )["id"]

        exported = await async_client.get(f"/api/v1/workflows/{workflow_id}/export")

        assert exported.status_code == status.HTTP_200_OK
        document = exported.json()
        assert document["formatVersion"] == "2.0"
        assert document["nodeCount"] == 3
        assert document["edgeCount"] == 2
        assert document["complexity"] == "simple"

        imported = await async_client.post("/api/v1/workflows/import", json=document)

        assert imported.status_code == status.HTTP_200_OK
        body = imported.json()
        assert body["validation"]["valid"] is True
        new_id = body["workflow_id"]
        assert new_id != workflow_id
        stored = (await async_client.get(f"/api/v1/workflows/{new_id}")).json()
        assert stored["status"] == "draft"
        assert stored["name"] == "Test Workflow"

    @pytest.mark.asyncio
    async def test_invalid_import_creates_nothing(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/workflows/import", json={"formatVersion": "9.9"}
        )

        body = response.json()
        assert body["workflow_id"] is None
        assert body["validation"]["errors"] == ["Unsupported format version: 9.9"]
        listing = await async_client.get("/api/v1/workflows/")
        assert listing.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_export_not_found(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/workflows/404/export")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_export_broken_definition(
        self, async_client: AsyncClient, async_session_maker
    ):
        """Test that a stored row that no longer parses is a conflict."""
        async with async_session_maker() as session, session.begin():
            workflow = Workflow(name="Broken", nodes=[{"type": "merge"}], edges=[])
            session.add(workflow)
            await session.flush()
            workflow_id = workflow.id

        response = await async_client.get(f"/api/v1/workflows/{workflow_id}/export")

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["detail"].startswith(
            f"Workflow {workflow_id} has an invalid definition"
        )


# =============================================================================
# Schedule registration
# =============================================================================


class TestScheduleSync:
    """Test that writes through the API keep cron jobs in line."""

    @pytest.mark.asyncio
    async def test_active_scheduled_workflow_is_registered(
        self, async_client: AsyncClient, app, scheduled_workflow_data
    ):
        workflow_id = (await _create(async_client, scheduled_workflow_data))["id"]

        assert app.state.services.scheduler.is_scheduled(workflow_id)

    @pytest.mark.asyncio
    async def test_pausing_unregisters(
        self, async_client: AsyncClient, app, scheduled_workflow_data
    ):
        workflow_id = (await _create(async_client, scheduled_workflow_data))["id"]

        await async_client.patch(
            f"/api/v1/workflows/{workflow_id}", json={"status": "paused"}
        )

        assert not app.state.services.scheduler.is_scheduled(workflow_id)

    @pytest.mark.asyncio
    async def test_delete_unregisters(
        self, async_client: AsyncClient, app, scheduled_workflow_data
    ):
        workflow_id = (await _create(async_client, scheduled_workflow_data))["id"]

        await async_client.delete(f"/api/v1/workflows/{workflow_id}")

        assert not app.state.services.scheduler.is_scheduled(workflow_id)

    @pytest.mark.asyncio
    async def test_invalid_cron_is_rejected(
        self, async_client: AsyncClient, scheduled_workflow_data
    ):
        scheduled_workflow_data["nodes"][0]["data"]["config"]["cronExpression"] = (
            "99 * * * *"
        )

        response = await async_client.post(
            "/api/v1/workflows/", json=scheduled_workflow_data
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["detail"]["errors"] == [
            "Invalid cron expression: 99 * * * *"
        ]

    @pytest.mark.asyncio
    async def test_draft_is_not_registered(
        self, async_client: AsyncClient, app, scheduled_workflow_data
    ):
        workflow_id = (
            await _create(async_client, {**scheduled_workflow_data, "status": "draft"})
        )["id"]

        assert not app.state.services.scheduler.is_scheduled(workflow_id)
