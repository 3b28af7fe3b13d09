"""Pydantic models for the search endpoint."""

from __future__ import annotations

from pydantic import BaseModel

from vca.demos.schemas import DemoResponse


class WeekHit(BaseModel):
    id: str
    number: int | None = None
    title: str
    level: int


class PersonHit(BaseModel):
    id: str
    name: str
    avatar_url: str | None = None
    bio: str | None = None
    project_idea: str | None = None


class SearchResponse(BaseModel):
    query: str
    weeks: list[WeekHit]
    demos: list[DemoResponse]
    people: list[PersonHit]
    total: int
