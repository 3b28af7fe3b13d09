"""ORM models for the cohort schema.

Tables are created by the Alembic revisions under alembic/versions; the
models mirror them. Ids are UUID text except profiles.id, which is the
identity provider's user id.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from vca.db.base import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _uuid() -> str:
    return str(uuid.uuid4())


class Role(str, enum.Enum):
    ADMIN = "admin"
    FACILITATOR = "facilitator"
    MEMBER = "member"


class ProjectStatus(str, enum.Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


PROJECT_STATUS_LABELS: dict[ProjectStatus, str] = {
    ProjectStatus.DRAFT: "Draft",
    ProjectStatus.IN_PROGRESS: "In Progress",
    ProjectStatus.COMPLETED: "Completed",
}


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class Profile(Base):
    """One row per identity-provider user, created on first login."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default=Role.MEMBER.value, server_default="member")
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    github_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    slack_handle: Mapped[str | None] = mapped_column(String(64), nullable=True)
    project_idea: Mapped[str | None] = mapped_column(Text, nullable=True)
    repo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value


# ---------------------------------------------------------------------------
# Curriculum
# ---------------------------------------------------------------------------


class Week(Base):
    """A curriculum unit. number is optional (tag-only weeks) but unique when set."""

    __tablename__ = "weeks"
    __table_args__ = (CheckConstraint("level BETWEEN 1 AND 3", name="weeks_level_range"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    number: Mapped[int | None] = mapped_column(Integer, unique=True, nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    level: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1, server_default="1")
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    feedback_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    sections: Mapped[list[WeekSection]] = relationship(
        "WeekSection",
        back_populates="week",
        order_by="WeekSection.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class WeekSection(Base):
    """A tab of week content. System sections keep their slug forever."""

    __tablename__ = "week_sections"
    __table_args__ = (UniqueConstraint("week_id", "slug", name="uq_week_section_slug"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    week_id: Mapped[str] = mapped_column(String(36), ForeignKey("weeks.id", ondelete="CASCADE"), nullable=False)
    slug: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    week: Mapped[Week] = relationship("Week", back_populates="sections")


# ---------------------------------------------------------------------------
# Demos & votes
# ---------------------------------------------------------------------------


class Demo(Base):
    """A participant's showcase artifact for one week."""

    __tablename__ = "demos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    week_id: Mapped[str] = mapped_column(String(36), ForeignKey("weeks.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    profile: Mapped[Profile] = relationship("Profile", lazy="joined")
    week: Mapped[Week] = relationship("Week")


class Vote(Base):
    """+1/-1 on a demo. One row per (demo, user) is kept by the vote service, not the schema."""

    __tablename__ = "votes"
    __table_args__ = (CheckConstraint("value IN (-1, 1)", name="votes_value_unit"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    demo_id: Mapped[str] = mapped_column(String(36), ForeignKey("demos.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    value: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class Badge(Base):
    """Admin-defined achievement type."""

    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#6366f1", server_default="#6366f1")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class BadgeAward(Base):
    """One grant of a badge to a user or to a project. Repeat grants are allowed."""

    __tablename__ = "badge_awards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    badge_id: Mapped[str] = mapped_column(String(36), ForeignKey("badges.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=True
    )
    project_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True
    )
    awarded_by: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")
    profile: Mapped[Profile | None] = relationship("Profile", foreign_keys=[user_id], lazy="joined")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


class Project(Base):
    """A participant's cohort project. sort_order is the admin's manual ranking."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ProjectStatus.DRAFT.value, server_default="draft"
    )
    tech_stack: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    screenshots: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)
    demo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    github_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    profile: Mapped[Profile] = relationship("Profile", lazy="joined")


class ProjectFeedback(Base):
    """Instructor feedback on a project."""

    __tablename__ = "project_feedback"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    project_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    instructor_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    instructor: Mapped[Profile | None] = relationship("Profile", lazy="joined")
