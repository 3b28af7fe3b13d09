"""Pydantic models for demo and vote endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from vca.projects.schemas import OwnerBrief


class DemoResponse(BaseModel):
    id: str
    week_id: str
    user_id: str
    title: str
    description: str | None = None
    url: str | None = None
    created_at: datetime | None = None
    author: OwnerBrief | None = None
    score: int = 0
    viewer_vote: int | None = None

    @classmethod
    def from_demo(cls, demo: Any, score: int = 0, viewer_vote: int | None = None) -> DemoResponse:  # noqa: ANN401
        profile = demo.profile
        return cls(
            id=demo.id,
            week_id=demo.week_id,
            user_id=demo.user_id,
            title=demo.title,
            description=demo.description,
            url=demo.url,
            created_at=demo.created_at,
            author=OwnerBrief(id=profile.id, name=profile.name, avatar_url=profile.avatar_url) if profile else None,
            score=score,
            viewer_vote=viewer_vote,
        )


class DemoCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    url: str | None = Field(default=None, max_length=512)


class VoteRequest(BaseModel):
    value: Literal[1, -1]


class VoteResponse(BaseModel):
    demo_id: str
    user_vote: int | None = None
    score: int
