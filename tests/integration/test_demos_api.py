"""Integration tests for demo submission and voting."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy import select

from tests.conftest import auth_headers, create_profile
from vca.db.models import Vote
from vca.demos import router as demos_router


@pytest_asyncio.fixture
async def week(client: AsyncClient, admin_headers) -> dict:
    response = await client.post(
        "/api/v1/admin/weeks", json={"title": "Prompting", "number": 1, "published": True}, headers=admin_headers
    )
    return response.json()


async def _submit(client: AsyncClient, headers: dict[str, str], title: str = "Recipe bot", number: int = 1):
    return await client.post(
        f"/api/v1/weeks/{number}/demos",
        json={"title": title, "description": "Cooks dinner", "url": "https://demo.test"},
        headers=headers,
    )


async def _votes(db, demo_id: str) -> list[tuple[str, int]]:
    db.expire_all()
    result = await db.execute(select(Vote.user_id, Vote.value).where(Vote.demo_id == demo_id))
    return [(row.user_id, row.value) for row in result]


class TestSubmitDemo:
    @pytest.mark.asyncio
    async def test_submit_and_list_on_week(self, client: AsyncClient, week, member_headers, monkeypatch):
        notify = AsyncMock(return_value=True)
        monkeypatch.setattr(demos_router, "notify_demo_submitted", notify)

        response = await _submit(client, member_headers)
        assert response.status_code == 201
        demo = response.json()
        assert demo["author"]["name"] == "Mia Member"
        assert demo["score"] == 0
        notify.assert_awaited_once_with("Mia Member", "Recipe bot", 1)

        detail = (await client.get("/api/v1/weeks/1")).json()
        assert [d["id"] for d in detail["demos"]] == [demo["id"]]

        weeks = (await client.get("/api/v1/weeks")).json()
        assert weeks["levels"][0]["weeks"][0]["demo_count"] == 1

    @pytest.mark.asyncio
    async def test_unknown_or_draft_week(self, client: AsyncClient, admin_headers, member_headers):
        await client.post("/api/v1/admin/weeks", json={"title": "Draft", "number": 2}, headers=admin_headers)
        assert (await _submit(client, member_headers, number=2)).status_code == 404
        assert (await _submit(client, member_headers, number=9)).status_code == 404

    @pytest.mark.asyncio
    async def test_anonymous_cannot_submit(self, client: AsyncClient, week):
        assert (await _submit(client, {})).status_code == 401

    @pytest.mark.asyncio
    async def test_only_author_or_admin_deletes(self, client: AsyncClient, week, member_headers, admin_headers, db_session):
        demo = (await _submit(client, member_headers)).json()
        other = await create_profile(db_session, "user_other", "Olly Other")

        response = await client.delete(f"/api/v1/demos/{demo['id']}", headers=auth_headers(other))
        assert response.status_code == 403

        response = await client.delete(f"/api/v1/demos/{demo['id']}", headers=admin_headers)
        assert response.status_code == 204
        assert (await client.get("/api/v1/weeks/1")).json()["demos"] == []


class TestVoting:
    @pytest.mark.asyncio
    async def test_flip_then_withdraw(self, client: AsyncClient, week, member_headers, admin_headers, db_session):
        demo = (await _submit(client, member_headers)).json()
        url = f"/api/v1/demos/{demo['id']}/vote"

        response = await client.post(url, json={"value": 1}, headers=admin_headers)
        assert response.json() == {"demo_id": demo["id"], "user_vote": 1, "score": 1}

        response = await client.post(url, json={"value": -1}, headers=admin_headers)
        assert response.json()["user_vote"] == -1
        assert response.json()["score"] == -1
        assert await _votes(db_session, demo["id"]) == [("user_admin", -1)]

        response = await client.post(url, json={"value": -1}, headers=admin_headers)
        assert response.json()["user_vote"] is None
        assert response.json()["score"] == 0
        assert await _votes(db_session, demo["id"]) == []

    @pytest.mark.asyncio
    async def test_scores_sum_across_voters(self, client: AsyncClient, week, member_headers, admin_headers, db_session):
        demo = (await _submit(client, member_headers)).json()
        url = f"/api/v1/demos/{demo['id']}/vote"
        other = await create_profile(db_session, "user_other", "Olly Other")

        await client.post(url, json={"value": 1}, headers=admin_headers)
        await client.post(url, json={"value": 1}, headers=auth_headers(other))
        response = await client.post(url, json={"value": -1}, headers=member_headers)
        assert response.json()["score"] == 1

        detail = (await client.get("/api/v1/weeks/1", headers=admin_headers)).json()
        assert detail["demos"][0]["score"] == 1
        assert detail["demos"][0]["viewer_vote"] == 1

    @pytest.mark.asyncio
    async def test_surplus_rows_collapse_to_one(self, client: AsyncClient, week, member_headers, admin_headers, db_session):
        demo = (await _submit(client, member_headers)).json()
        db_session.add_all(
            [
                Vote(demo_id=demo["id"], user_id="user_admin", value=1),
                Vote(demo_id=demo["id"], user_id="user_admin", value=1),
            ]
        )
        await db_session.commit()

        response = await client.post(f"/api/v1/demos/{demo['id']}/vote", json={"value": -1}, headers=admin_headers)
        assert response.json()["score"] == -1
        assert await _votes(db_session, demo["id"]) == [("user_admin", -1)]

    @pytest.mark.asyncio
    async def test_invalid_value_rejected(self, client: AsyncClient, week, member_headers):
        demo = (await _submit(client, member_headers)).json()
        response = await client.post(f"/api/v1/demos/{demo['id']}/vote", json={"value": 2}, headers=member_headers)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_demo(self, client: AsyncClient, member_headers):
        response = await client.post("/api/v1/demos/missing/vote", json={"value": 1}, headers=member_headers)
        assert response.status_code == 404
        assert response.json() == {"detail": "Demo not found"}
