"""Integration tests for the caller's profile, the people directory and member management."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from tests.conftest import create_profile, make_token
from vca.auth import session as session_module
from vca.config import get_settings
from vca.db.models import BadgeAward, Demo, Profile, Project, ProjectFeedback, Vote
from vca.projects import service as project_service


class TestMe:
    @pytest.mark.asyncio
    async def test_first_login_creates_profile(self, client: AsyncClient, db_session):
        token = make_token("user_fresh", "Fresh@Example.com", "Fresh Face")
        response = await client.get("/api/v1/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        data = response.json()
        assert data["kind"] == "authenticated"
        assert data["is_admin"] is False
        assert data["profile"]["email"] == "fresh@example.com"
        assert await db_session.get(Profile, "user_fresh") is not None

    @pytest.mark.asyncio
    async def test_admin_flag(self, client: AsyncClient, admin_headers):
        data = (await client.get("/api/v1/me", headers=admin_headers)).json()
        assert data["is_admin"] is True

    @pytest.mark.asyncio
    async def test_slow_store_gives_degraded_session(self, client: AsyncClient, monkeypatch):
        async def slow(_db, _claims):
            await asyncio.sleep(5)

        monkeypatch.setenv("VCA_PROFILE_FETCH_TIMEOUT_SECONDS", "0.05")
        get_settings.cache_clear()
        monkeypatch.setattr(session_module, "get_profile_with_sync", slow)
        try:
            token = make_token("user_slow", "slow@example.com", "Slow Poke")
            headers = {"Authorization": f"Bearer {token}"}
            response = await client.get("/api/v1/me", headers=headers)
            assert response.status_code == 200
            data = response.json()
            assert data["kind"] == "degraded"
            assert data["degraded_reason"] == "profile_timeout"
            assert data["profile"]["name"] == "Slow Poke"
            assert data["profile"]["role"] == "member"

            response = await client.patch("/api/v1/me", json={"bio": "hi"}, headers=headers)
            assert response.status_code == 403
        finally:
            monkeypatch.delenv("VCA_PROFILE_FETCH_TIMEOUT_SECONDS")
            get_settings.cache_clear()

    @pytest.mark.asyncio
    async def test_store_error_never_grants_admin(self, client: AsyncClient, admin_headers, monkeypatch):
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("db down")))
        monkeypatch.setattr(session_module, "get_profile_with_sync", failing)

        data = (await client.get("/api/v1/me", headers=admin_headers)).json()
        assert data["kind"] == "degraded"
        assert data["is_admin"] is False
        response = await client.post("/api/v1/admin/badges", json={"name": "X"}, headers=admin_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_own_profile(self, client: AsyncClient, member_headers):
        response = await client.patch(
            "/api/v1/me",
            json={"bio": "  Builder  ", "slack_handle": "", "name": "   "},
            headers=member_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["bio"] == "Builder"
        assert data["slack_handle"] is None
        assert data["name"] == "Mia Member"


class TestPeople:
    @pytest.mark.asyncio
    async def test_directory_with_badge_counts(self, client: AsyncClient, admin_headers, member):
        badge = (await client.post("/api/v1/admin/badges", json={"name": "Helper"}, headers=admin_headers)).json()
        for _ in range(2):
            await client.post(
                "/api/v1/admin/badge-awards", json={"badge_id": badge["id"], "user_id": member.id}, headers=admin_headers
            )

        data = (await client.get("/api/v1/people")).json()
        assert data["total"] == 2
        counts = {p["name"]: p["badge_count"] for p in data["people"]}
        assert counts == {"Ada Admin": 0, "Mia Member": 2}

    @pytest.mark.asyncio
    async def test_person_detail(self, client: AsyncClient, admin_headers, member, member_headers):
        await client.post(
            "/api/v1/admin/weeks", json={"title": "Intro", "number": 1, "published": True}, headers=admin_headers
        )
        await client.post("/api/v1/weeks/1/demos", json={"title": "Bot"}, headers=member_headers)
        await client.post("/api/v1/projects", json={"title": "Recipe bot"}, headers=member_headers)

        data = (await client.get(f"/api/v1/people/{member.id}")).json()
        assert data["profile"]["name"] == "Mia Member"
        assert [(d["title"], d["week_number"]) for d in data["demos"]] == [("Bot", 1)]
        assert [p["title"] for p in data["projects"]] == ["Recipe bot"]

        assert (await client.get("/api/v1/people/nobody")).status_code == 404


class TestAdminPeople:
    @pytest.mark.asyncio
    async def test_promote_member(self, client: AsyncClient, admin_headers, member):
        response = await client.patch(
            f"/api/v1/admin/people/{member.id}/role", json={"role": "facilitator"}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["role"] == "facilitator"

    @pytest.mark.asyncio
    async def test_admin_cannot_demote_self(self, client: AsyncClient, admin, admin_headers):
        response = await client.patch(
            f"/api/v1/admin/people/{admin.id}/role", json={"role": "member"}, headers=admin_headers
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_role_rejected(self, client: AsyncClient, admin_headers, member):
        response = await client.patch(
            f"/api/v1/admin/people/{member.id}/role", json={"role": "owner"}, headers=admin_headers
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_admin_cannot_delete_self(self, client: AsyncClient, admin, admin_headers):
        response = await client.delete(f"/api/v1/admin/people/{admin.id}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json() == {"detail": "You cannot delete your own profile"}

    @pytest.mark.asyncio
    async def test_delete_cascades(self, client: AsyncClient, admin_headers, member, member_headers, db_session, monkeypatch):
        member_id = member.id
        discard = AsyncMock()
        monkeypatch.setattr(project_service.storage, "delete_all_project_images", discard)

        await client.post(
            "/api/v1/admin/weeks", json={"title": "Intro", "number": 1, "published": True}, headers=admin_headers
        )
        demo = (await client.post("/api/v1/weeks/1/demos", json={"title": "Bot"}, headers=member_headers)).json()
        await client.post(f"/api/v1/demos/{demo['id']}/vote", json={"value": 1}, headers=admin_headers)
        project = (await client.post("/api/v1/projects", json={"title": "Recipe bot"}, headers=member_headers)).json()
        await client.post(
            f"/api/v1/admin/projects/{project['id']}/feedback", json={"content": "Nice"}, headers=admin_headers
        )
        badge = (await client.post("/api/v1/admin/badges", json={"name": "Helper"}, headers=admin_headers)).json()
        await client.post(
            "/api/v1/admin/badge-awards", json={"badge_id": badge["id"], "user_id": member_id}, headers=admin_headers
        )
        await client.post(
            "/api/v1/admin/badge-awards", json={"badge_id": badge["id"], "project_id": project["id"]}, headers=admin_headers
        )
        other = await create_profile(db_session, "user_other", "Olly Other")
        await client.post(
            "/api/v1/admin/badge-awards", json={"badge_id": badge["id"], "user_id": other.id}, headers=admin_headers
        )

        response = await client.delete(f"/api/v1/admin/people/{member_id}", headers=admin_headers)
        assert response.status_code == 204
        discard.assert_awaited_once_with(member_id, project["id"])

        db_session.expire_all()
        for model in (Demo, Vote, Project, ProjectFeedback):
            assert (await db_session.execute(select(func.count(model.id)))).scalar() == 0
        remaining_awards = (await db_session.execute(select(BadgeAward.user_id))).scalars().all()
        assert remaining_awards == ["user_other"]
        assert (await client.get(f"/api/v1/people/{member_id}")).status_code == 404


class TestAdminStats:
    @pytest.mark.asyncio
    async def test_totals(self, client: AsyncClient, admin_headers, member, member_headers):
        await client.post(
            "/api/v1/admin/weeks", json={"title": "Intro", "number": 1, "published": True}, headers=admin_headers
        )
        await client.post("/api/v1/admin/weeks", json={"title": "Draft", "number": 2}, headers=admin_headers)
        await client.post("/api/v1/weeks/1/demos", json={"title": "Bot"}, headers=member_headers)
        badge = (await client.post("/api/v1/admin/badges", json={"name": "Helper"}, headers=admin_headers)).json()
        await client.post(
            "/api/v1/admin/badge-awards", json={"badge_id": badge["id"], "user_id": member.id}, headers=admin_headers
        )

        response = await client.get("/api/v1/admin/stats", headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"weeks": 2, "profiles": 2, "demos": 1, "badge_awards": 1}

    @pytest.mark.asyncio
    async def test_members_cannot_see_totals(self, client: AsyncClient, member_headers):
        assert (await client.get("/api/v1/admin/stats", headers=member_headers)).status_code == 403
        assert (await client.get("/api/v1/admin/stats")).status_code == 401
