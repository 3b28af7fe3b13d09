"""Pydantic models for week and section endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from vca.curriculum.legacy import LegacyWeekContent
from vca.demos.schemas import DemoResponse


# --- Sections ---


class SectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    title: str
    content: str | None = None
    sort_order: int
    is_system: bool


class SectionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    slug: str | None = Field(default=None, max_length=64)
    content: str | None = None


class SectionUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=128)
    slug: str | None = Field(default=None, min_length=1, max_length=64)
    content: str | None = None


# --- Weeks ---


class WeekSummary(BaseModel):
    id: str
    number: int | None = None
    title: str
    level: int
    published: bool
    style: str
    excerpt: str | None = None
    demo_count: int = 0


class LevelGroup(BaseModel):
    level: int
    name: str
    style: str
    weeks: list[WeekSummary]


class WeekListResponse(BaseModel):
    levels: list[LevelGroup]
    total: int


class WeekDetailResponse(BaseModel):
    id: str
    number: int | None = None
    title: str
    level: int
    level_name: str
    style: str
    published: bool
    feedback_url: str | None = None
    sections: list[SectionResponse]
    default_section: str | None = None
    is_empty: bool
    demos: list[DemoResponse]
    previous_number: int | None = None
    next_number: int | None = None


class WeekAdminResponse(BaseModel):
    id: str
    number: int | None = None
    title: str
    level: int
    published: bool
    feedback_url: str | None = None
    sections: list[SectionResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WeekCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    number: int | None = Field(default=None, ge=1)
    level: int | None = Field(default=None, ge=1, le=3)
    published: bool = False
    feedback_url: str | None = Field(default=None, max_length=512)
    content: LegacyWeekContent | None = None


class WeekUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    number: int | None = Field(default=None, ge=1)
    level: int | None = Field(default=None, ge=1, le=3)
    published: bool | None = None
    feedback_url: str | None = Field(default=None, max_length=512)
    content: LegacyWeekContent | None = None

