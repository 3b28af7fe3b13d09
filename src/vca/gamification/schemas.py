"""Pydantic models for badge, award and leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vca.projects.schemas import OwnerBrief, ProjectDetailResponse

_HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


# --- Badge ---


class BadgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    color: str
    created_at: datetime | None = None


class BadgeListResponse(BaseModel):
    badges: list[BadgeResponse]


class BadgeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    color: str = Field(default="#6366f1", pattern=_HEX_COLOR)


class BadgeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    color: str | None = Field(default=None, pattern=_HEX_COLOR)


# --- Awards ---


class AwardCreate(BaseModel):
    badge_id: str
    user_id: str | None = None
    project_id: str | None = None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> AwardCreate:
        if bool(self.user_id) == bool(self.project_id):
            msg = "Provide exactly one of user_id or project_id"
            raise ValueError(msg)
        return self


class AwardResponse(BaseModel):
    id: str
    badge_id: str
    badge_name: str | None = None
    badge_color: str | None = None
    user_id: str | None = None
    project_id: str | None = None
    awarded_by: str | None = None
    recipient_name: str | None = None
    created_at: datetime | None = None


# --- Leaderboard ---


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: str
    profile: OwnerBrief | None = None
    badge_count: int
    vote_total: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardEntryResponse]


class BadgesOverviewResponse(BaseModel):
    """Everything the badges page renders."""

    leaderboard: list[LeaderboardEntryResponse]
    recent_awards: list[AwardResponse]
    badges: list[BadgeResponse]
    projects: list[ProjectDetailResponse]
