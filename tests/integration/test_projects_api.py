"""Integration tests for projects: showcase, owner editing, images, ordering and feedback."""

from __future__ import annotations

import io
from unittest.mock import AsyncMock

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from tests.conftest import auth_headers, create_profile
from vca.config import get_settings
from vca.projects import router as projects_router
from vca.projects import service as project_service
from vca.storage import service as storage


async def _create(client: AsyncClient, headers: dict[str, str], title: str, **fields) -> dict:
    response = await client.post("/api/v1/projects", json={"title": title, **fields}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestProjectCrud:
    @pytest.mark.asyncio
    async def test_create_normalises_tech_tags(self, client: AsyncClient, member_headers):
        project = await _create(
            client,
            member_headers,
            "Recipe bot",
            status="in_progress",
            tech_stack=[" Python", "Python", "FastAPI", ""],
        )
        assert project["tech_stack"] == ["Python", "FastAPI"]
        assert project["status_label"] == "In Progress"
        assert project["owner"]["name"] == "Mia Member"
        assert project["sort_order"] == 0

    @pytest.mark.asyncio
    async def test_more_than_ten_tags_rejected(self, client: AsyncClient, member_headers):
        response = await client.post(
            "/api/v1/projects",
            json={"title": "Too many", "tech_stack": [f"t{i}" for i in range(11)]},
            headers=member_headers,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_owner_updates_other_member_cannot(self, client: AsyncClient, member_headers, db_session):
        project = await _create(client, member_headers, "Recipe bot")
        other = await create_profile(db_session, "user_other", "Olly Other")

        response = await client.patch(
            f"/api/v1/projects/{project['id']}", json={"goal": "Ship it"}, headers=auth_headers(other)
        )
        assert response.status_code == 403

        response = await client.patch(
            f"/api/v1/projects/{project['id']}", json={"goal": "Ship it", "status": "completed"}, headers=member_headers
        )
        assert response.status_code == 200
        assert response.json()["goal"] == "Ship it"
        assert response.json()["status_label"] == "Completed"

    @pytest.mark.asyncio
    async def test_admin_can_edit_any_project(self, client: AsyncClient, member_headers, admin_headers):
        project = await _create(client, member_headers, "Recipe bot")
        response = await client.patch(
            f"/api/v1/projects/{project['id']}", json={"title": "Renamed"}, headers=admin_headers
        )
        assert response.json()["title"] == "Renamed"

    @pytest.mark.asyncio
    async def test_delete_removes_rows_and_images(self, client: AsyncClient, member_headers, monkeypatch):
        wipe = AsyncMock(return_value=2)
        monkeypatch.setattr(storage, "delete_all_project_images", wipe)
        project = await _create(client, member_headers, "Recipe bot")

        response = await client.delete(f"/api/v1/projects/{project['id']}", headers=member_headers)
        assert response.status_code == 204
        wipe.assert_awaited_once_with("user_member", project["id"])
        assert (await client.get(f"/api/v1/projects/{project['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_storage_failure_does_not_block_delete(self, client: AsyncClient, member_headers, monkeypatch):
        monkeypatch.setattr(
            storage, "delete_all_project_images", AsyncMock(side_effect=storage.StorageError("Failed to list"))
        )
        project = await _create(client, member_headers, "Recipe bot")
        response = await client.delete(f"/api/v1/projects/{project['id']}", headers=member_headers)
        assert response.status_code == 204


class TestShowcase:
    @pytest.mark.asyncio
    async def test_detail_lists_three_other_projects_by_owner(self, client: AsyncClient, member_headers, db_session):
        ids = [(await _create(client, member_headers, f"p{i}"))["id"] for i in range(5)]
        other = await create_profile(db_session, "user_other", "Olly Other")
        await _create(client, auth_headers(other), "not mine")

        detail = (await client.get(f"/api/v1/projects/{ids[0]}")).json()
        others = detail["other_projects"]
        assert [p["id"] for p in others] == ids[1:4]
        assert set(others[0]) == {"id", "title", "avatar_url", "status"}

    @pytest.mark.asyncio
    async def test_filters_and_tech_stacks(self, client: AsyncClient, member_headers):
        await _create(client, member_headers, "Recipe bot", tech_stack=["Python"], status="completed")
        await _create(client, member_headers, "Budget app", tech_stack=["React"], description="Money tracker")

        data = (await client.get("/api/v1/projects")).json()
        assert data["total"] == 2
        assert data["tech_stacks"] == ["Python", "React"]
        assert [p["title"] for p in data["projects"]] == ["Budget app", "Recipe bot"]

        data = (await client.get("/api/v1/projects", params={"tech": "Python"})).json()
        assert [p["title"] for p in data["projects"]] == ["Recipe bot"]

        data = (await client.get("/api/v1/projects", params={"search": "money"})).json()
        assert [p["title"] for p in data["projects"]] == ["Budget app"]

        data = (await client.get("/api/v1/projects", params={"status": "completed"})).json()
        assert [p["title"] for p in data["projects"]] == ["Recipe bot"]

    @pytest.mark.asyncio
    async def test_table_sort_is_transient(self, client: AsyncClient, member_headers):
        await _create(client, member_headers, "banana")
        await _create(client, member_headers, "Apple")

        data = (await client.get("/api/v1/projects", params={"order_by": "title", "direction": "desc"})).json()
        assert [p["title"] for p in data["projects"]] == ["banana", "Apple"]
        assert [p["sort_order"] for p in data["projects"]] == [0, 1]


class TestImages:
    @pytest.mark.asyncio
    async def test_avatar_upload(self, client: AsyncClient, member_headers, s3):
        project = await _create(client, member_headers, "Recipe bot")
        response = await client.post(
            f"/api/v1/projects/{project['id']}/avatar",
            files={"file": ("me.png", b"\x89PNG", "image/png")},
            headers=member_headers,
        )
        assert response.status_code == 200
        assert response.json()["avatar_url"].endswith(f"/user_member/{project['id']}/avatar.png")
        s3.put_object.assert_called_once()

    @pytest.mark.asyncio
    async def test_wrong_type_rejected_before_upload(self, client: AsyncClient, member_headers, s3):
        project = await _create(client, member_headers, "Recipe bot")
        response = await client.post(
            f"/api/v1/projects/{project['id']}/avatar",
            files={"file": ("doc.pdf", b"%PDF", "application/pdf")},
            headers=member_headers,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TYPE"
        s3.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_oversized_upload_rejected_before_upload(self, client: AsyncClient, member_headers, s3, monkeypatch):
        monkeypatch.setenv("VCA_STORAGE_MAX_BYTES", "16")
        get_settings.cache_clear()
        try:
            project = await _create(client, member_headers, "Recipe bot")
            response = await client.post(
                f"/api/v1/projects/{project['id']}/avatar",
                files={"file": ("big.png", b"\x89PNG" + b"0" * 64, "image/png")},
                headers=member_headers,
            )
            assert response.status_code == 400
            assert response.json()["code"] == "FILE_TOO_LARGE"
            s3.put_object.assert_not_called()
        finally:
            monkeypatch.delenv("VCA_STORAGE_MAX_BYTES")
            get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_upload_read_stops_past_limit(self, monkeypatch):
        monkeypatch.setenv("VCA_STORAGE_MAX_BYTES", "10")
        get_settings.cache_clear()
        try:
            upload = UploadFile(io.BytesIO(b"x" * 1000), filename="a.png")
            assert len(await projects_router._read_upload(upload)) == 11
        finally:
            monkeypatch.delenv("VCA_STORAGE_MAX_BYTES")
            get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_screenshots_append_and_renumber(self, client: AsyncClient, member_headers, s3):
        project = await _create(client, member_headers, "Recipe bot")
        url = f"/api/v1/projects/{project['id']}/screenshots"
        for caption in ("first", "second", "third"):
            response = await client.post(
                url,
                files={"file": (f"{caption}.jpg", b"jpg", "image/jpeg")},
                data={"caption": caption},
                headers=member_headers,
            )
            assert response.status_code == 200

        shots = response.json()["screenshots"]
        assert [(s["order"], s["caption"]) for s in shots] == [(0, "first"), (1, "second"), (2, "third")]

        response = await client.delete(f"{url}/1", headers=member_headers)
        shots = response.json()["screenshots"]
        assert [(s["order"], s["caption"]) for s in shots] == [(0, "first"), (1, "third")]
        s3.delete_objects.assert_called_once()

        assert (await client.delete(f"{url}/7", headers=member_headers)).status_code == 404


class TestAdminOrdering:
    @pytest.mark.asyncio
    async def test_reorder(self, client: AsyncClient, member_headers, admin_headers):
        ids = [(await _create(client, member_headers, t))["id"] for t in ("a", "b", "c")]
        wanted = [ids[2], ids[0], ids[1]]
        response = await client.put(
            "/api/v1/admin/projects/order", json={"project_ids": wanted}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json() == {"requested": wanted, "applied": wanted}

        overview = (await client.get("/api/v1/badges/overview")).json()
        assert [p["id"] for p in overview["projects"]] == wanted

    @pytest.mark.asyncio
    async def test_torn_reorder_reports_progress_and_retry_converges(
        self, client: AsyncClient, member_headers, admin_headers, monkeypatch
    ):
        ids = [(await _create(client, member_headers, t))["id"] for t in ("a", "b", "c", "d")]
        wanted = list(reversed(ids))
        real = project_service._set_sort_order

        async def fails_at_third(db, project_id, position):
            if position == 2:
                raise OperationalError("UPDATE projects", {}, Exception("connection reset"))
            await real(db, project_id, position)

        monkeypatch.setattr(project_service, "_set_sort_order", fails_at_third)
        response = await client.put(
            "/api/v1/admin/projects/order", json={"project_ids": wanted}, headers=admin_headers
        )
        assert response.status_code == 409
        body = response.json()
        assert body["detail"] == "Reorder stopped partway; retry to finish"
        assert body["reorder"]["applied"] == wanted[:2]
        assert body["reorder"]["failed"] == wanted[2]
        assert body["reorder"]["remaining"] == wanted[3:]

        orders = {p["id"]: p["sort_order"] for p in (await client.get("/api/v1/projects")).json()["projects"]}
        assert orders[wanted[0]] == 0
        assert orders[wanted[1]] == 1

        monkeypatch.setattr(project_service, "_set_sort_order", real)
        response = await client.put(
            "/api/v1/admin/projects/order", json={"project_ids": wanted}, headers=admin_headers
        )
        assert response.status_code == 200
        orders = {p["id"]: p["sort_order"] for p in (await client.get("/api/v1/projects")).json()["projects"]}
        assert [orders[i] for i in wanted] == [0, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_member_cannot_reorder(self, client: AsyncClient, member_headers):
        project = await _create(client, member_headers, "a")
        response = await client.put(
            "/api/v1/admin/projects/order", json={"project_ids": [project["id"]]}, headers=member_headers
        )
        assert response.status_code == 403


class TestFeedback:
    @pytest.mark.asyncio
    async def test_feedback_lifecycle(self, client: AsyncClient, member_headers, admin_headers):
        project = await _create(client, member_headers, "Recipe bot")
        response = await client.post(
            f"/api/v1/admin/projects/{project['id']}/feedback", json={"content": "Good start"}, headers=admin_headers
        )
        assert response.status_code == 201
        feedback = response.json()
        assert feedback["instructor_name"] == "Ada Admin"

        response = await client.put(
            f"/api/v1/admin/feedback/{feedback['id']}", json={"content": "Great finish"}, headers=admin_headers
        )
        assert response.json()["content"] == "Great finish"

        detail = (await client.get(f"/api/v1/projects/{project['id']}")).json()
        assert [f["content"] for f in detail["feedback"]] == ["Great finish"]

        response = await client.delete(f"/api/v1/admin/feedback/{feedback['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert (await client.get(f"/api/v1/projects/{project['id']}")).json()["feedback"] == []

    @pytest.mark.asyncio
    async def test_member_cannot_leave_feedback(self, client: AsyncClient, member_headers):
        project = await _create(client, member_headers, "Recipe bot")
        response = await client.post(
            f"/api/v1/admin/projects/{project['id']}/feedback", json={"content": "Hi"}, headers=member_headers
        )
        assert response.status_code == 403
