"""Pydantic request/response models for project endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vca.db.models import PROJECT_STATUS_LABELS, ProjectStatus
from vca.gamification.award_index import AwardRecord
from vca.projects.enrichment import EnrichedProject
from vca.projects.service import MAX_TECH_TAGS, normalize_tech_stack


# --- Shared ---


class OwnerBrief(BaseModel):
    id: str
    name: str
    avatar_url: str | None = None


class AwardBrief(BaseModel):
    id: str
    badge_id: str
    badge_name: str | None = None
    badge_color: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_record(cls, record: AwardRecord) -> AwardBrief:
        return cls(
            id=record.id,
            badge_id=record.badge_id,
            badge_name=record.badge_name,
            badge_color=record.badge_color,
            created_at=record.created_at,
        )


class Screenshot(BaseModel):
    url: str
    caption: str | None = None
    order: int = 0
    uploaded_at: str | None = None


# --- Responses ---


class FeedbackResponse(BaseModel):
    id: str
    project_id: str
    instructor_id: str | None = None
    instructor_name: str | None = None
    content: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> FeedbackResponse:  # noqa: ANN401
        instructor = row.instructor
        return cls(
            id=row.id,
            project_id=row.project_id,
            instructor_id=row.instructor_id,
            instructor_name=instructor.name if instructor else None,
            content=row.content,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ProjectResponse(BaseModel):
    id: str
    user_id: str
    title: str
    description: str | None = None
    goal: str | None = None
    status: str
    status_label: str
    tech_stack: list[str] = []
    avatar_url: str | None = None
    screenshots: list[Screenshot] = []
    demo_url: str | None = None
    github_url: str | None = None
    sort_order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    owner: OwnerBrief | None = None

    @classmethod
    def from_project(cls, project: Any) -> ProjectResponse:  # noqa: ANN401
        return cls(**_project_fields(project))


class ProjectBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    avatar_url: str | None = None
    status: str


class ProjectDetailResponse(ProjectResponse):
    awards: list[AwardBrief] = []
    feedback: list[FeedbackResponse] = []
    other_projects: list[ProjectBrief] = []

    @classmethod
    def from_enriched(cls, enriched: EnrichedProject, others: list[Any] | None = None) -> ProjectDetailResponse:
        return cls(
            **_project_fields(enriched.project),
            awards=[AwardBrief.from_record(a) for a in enriched.awards],
            feedback=[FeedbackResponse.from_row(f) for f in enriched.feedback],
            other_projects=[ProjectBrief.model_validate(p) for p in others or []],
        )


class ProjectListResponse(BaseModel):
    projects: list[ProjectResponse]
    tech_stacks: list[str]
    total: int


class ReorderResponse(BaseModel):
    requested: list[str]
    applied: list[str]


def _project_fields(project: Any) -> dict[str, Any]:  # noqa: ANN401
    profile = project.profile
    try:
        label = PROJECT_STATUS_LABELS[ProjectStatus(project.status)]
    except ValueError:
        label = project.status
    return {
        "id": project.id,
        "user_id": project.user_id,
        "title": project.title,
        "description": project.description,
        "goal": project.goal,
        "status": project.status,
        "status_label": label,
        "tech_stack": list(project.tech_stack or []),
        "avatar_url": project.avatar_url,
        "screenshots": sorted(project.screenshots or [], key=lambda s: s.get("order", 0)),
        "demo_url": project.demo_url,
        "github_url": project.github_url,
        "sort_order": project.sort_order,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
        "owner": OwnerBrief(id=profile.id, name=profile.name, avatar_url=profile.avatar_url) if profile else None,
    }


# --- Requests ---


class _TechStackMixin(BaseModel):
    @field_validator("tech_stack", mode="after", check_fields=False)
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        cleaned = normalize_tech_stack(value)
        if len({t.strip() for t in value if t.strip()}) > MAX_TECH_TAGS:
            msg = f"At most {MAX_TECH_TAGS} tech tags are allowed"
            raise ValueError(msg)
        return cleaned


class ProjectCreate(_TechStackMixin):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = None
    goal: str | None = None
    status: ProjectStatus = ProjectStatus.DRAFT
    tech_stack: list[str] = []
    demo_url: str | None = Field(default=None, max_length=512)
    github_url: str | None = Field(default=None, max_length=512)


class ProjectUpdate(_TechStackMixin):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    goal: str | None = None
    status: ProjectStatus | None = None
    tech_stack: list[str] | None = None
    demo_url: str | None = Field(default=None, max_length=512)
    github_url: str | None = Field(default=None, max_length=512)


class ReorderRequest(BaseModel):
    project_ids: list[str]


class FeedbackCreate(BaseModel):
    content: str = Field(min_length=1)


ShowcaseSortParam = Literal["newest", "oldest", "updated"]
TableSortParam = Literal["title", "owner", "created_at"]
