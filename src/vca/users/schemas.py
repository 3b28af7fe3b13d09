"""Pydantic models for profile and people endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from vca.db.models import Role
from vca.demos.schemas import DemoResponse
from vca.projects.schemas import AwardBrief, ProjectResponse


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: str
    bio: str | None = None
    avatar_url: str | None = None
    github_url: str | None = None
    slack_handle: str | None = None
    project_idea: str | None = None
    repo_url: str | None = None
    created_at: datetime | None = None


class SessionResponse(BaseModel):
    """The caller's session. ``degraded_reason`` is set only for degraded sessions."""

    kind: Literal["authenticated", "degraded"]
    is_admin: bool
    profile: ProfileResponse
    degraded_reason: str | None = None


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=128)
    bio: str | None = Field(default=None, max_length=2000)
    avatar_url: str | None = Field(default=None, max_length=1024)
    github_url: str | None = Field(default=None, max_length=512)
    slack_handle: str | None = Field(default=None, max_length=64)
    project_idea: str | None = Field(default=None, max_length=2000)
    repo_url: str | None = Field(default=None, max_length=512)


class PersonSummary(BaseModel):
    id: str
    name: str
    role: str
    avatar_url: str | None = None
    bio: str | None = None
    github_url: str | None = None
    slack_handle: str | None = None
    badge_count: int = 0


class PeopleResponse(BaseModel):
    people: list[PersonSummary]
    total: int


class PersonDemo(DemoResponse):
    week_number: int | None = None


class PersonDetailResponse(BaseModel):
    profile: ProfileResponse
    awards: list[AwardBrief]
    demos: list[PersonDemo]
    projects: list[ProjectResponse]


class RoleUpdate(BaseModel):
    role: Role


class AdminStatsResponse(BaseModel):
    weeks: int = 0
    profiles: int = 0
    demos: int = 0
    badge_awards: int = 0
