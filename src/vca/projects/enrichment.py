"""Project enrichment, transient sorting and showcase filtering.

Everything here works on already-loaded rows and never writes. Project
objects are expected to expose id, title, description, goal, status,
tech_stack, sort_order, created_at, updated_at and a joined ``profile``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from vca.gamification.award_index import AwardIndex, AwardRecord

SortField = Literal["title", "owner", "created_at"]
SortDirection = Literal["asc", "desc"]
ShowcaseSort = Literal["newest", "oldest", "updated"]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class EnrichedProject:
    project: Any
    awards: list[AwardRecord] = field(default_factory=list)
    feedback: list[Any] = field(default_factory=list)


def _ts(value: datetime | None) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _owner_name(project: Any) -> str:
    profile = getattr(project, "profile", None)
    return (getattr(profile, "name", None) or "") if profile is not None else ""


def enrich_projects(
    projects: Iterable[Any],
    index: AwardIndex,
    feedback: Iterable[Any],
) -> list[EnrichedProject]:
    """Attach project-targeted awards and newest-first feedback to each project."""
    feedback_by_project: dict[str, list[Any]] = {}
    for row in feedback:
        feedback_by_project.setdefault(row.project_id, []).append(row)

    enriched = []
    for project in projects:
        rows = sorted(feedback_by_project.get(project.id, []), key=lambda f: _ts(f.created_at), reverse=True)
        enriched.append(
            EnrichedProject(
                project=project,
                awards=list(index.awards_for_project(project.id)),
                feedback=rows,
            )
        )
    return enriched


def sort_projects(
    projects: Sequence[Any],
    sort_field: SortField | None = None,
    direction: SortDirection = "asc",
) -> list[Any]:
    """Transient table sort. With no field, the persisted manual order applies."""
    if sort_field is None:
        return sorted(projects, key=lambda p: p.sort_order)

    if sort_field == "title":
        key = lambda p: (p.title or "").casefold()  # noqa: E731
    elif sort_field == "owner":
        key = lambda p: _owner_name(p).casefold()  # noqa: E731
    else:
        key = lambda p: _ts(p.created_at)  # noqa: E731
    return sorted(projects, key=key, reverse=direction == "desc")


def collect_tech_stacks(projects: Iterable[Any]) -> list[str]:
    """Sorted unique tech tags across projects, for the showcase filter."""
    tags: set[str] = set()
    for project in projects:
        tags.update(project.tech_stack or [])
    return sorted(tags)


def filter_projects(
    projects: Iterable[Any],
    search: str | None = None,
    status: str | None = None,
    tech: str | None = None,
    sort: ShowcaseSort = "newest",
) -> list[Any]:
    """Showcase filter: free-text search, status, tech tag, then date sort."""
    result = list(projects)

    if search:
        needle = search.lower()

        def matches(p: Any) -> bool:
            haystacks = (p.title, p.description, p.goal, _owner_name(p))
            return any(h and needle in h.lower() for h in haystacks)

        result = [p for p in result if matches(p)]

    if status:
        result = [p for p in result if p.status == status]

    if tech:
        result = [p for p in result if tech in (p.tech_stack or [])]

    if sort == "oldest":
        result.sort(key=lambda p: _ts(p.created_at))
    elif sort == "updated":
        result.sort(key=lambda p: _ts(p.updated_at or p.created_at), reverse=True)
    else:
        result.sort(key=lambda p: _ts(p.created_at), reverse=True)
    return result
