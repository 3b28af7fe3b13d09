"""Case-insensitive search across weeks, demos and people."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vca.db.models import Demo, Profile, Week, WeekSection

logger = logging.getLogger(__name__)

RESULTS_PER_KIND = 10


@dataclass
class SearchResults:
    weeks: list[Week] = field(default_factory=list)
    demos: list[Demo] = field(default_factory=list)
    people: list[Profile] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.weeks) + len(self.demos) + len(self.people)


def _pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def search(db: AsyncSession, query: str, limit: int = RESULTS_PER_KIND) -> SearchResults:
    """Match published weeks (title, section content), demos and profiles.

    A blank query, or a store failure, yields empty results.
    """
    query = query.strip()
    if not query:
        return SearchResults()
    pattern = _pattern(query)

    matching_sections = select(WeekSection.week_id).where(WeekSection.content.ilike(pattern, escape="\\"))
    week_query = (
        select(Week)
        .where(
            Week.published.is_(True),
            or_(Week.title.ilike(pattern, escape="\\"), Week.id.in_(matching_sections)),
        )
        .order_by(Week.number.is_(None), Week.number)
        .limit(limit)
    )
    demo_query = (
        select(Demo)
        .where(or_(Demo.title.ilike(pattern, escape="\\"), Demo.description.ilike(pattern, escape="\\")))
        .order_by(Demo.created_at.desc())
        .limit(limit)
    )
    people_query = (
        select(Profile)
        .where(
            or_(
                Profile.name.ilike(pattern, escape="\\"),
                Profile.bio.ilike(pattern, escape="\\"),
                Profile.project_idea.ilike(pattern, escape="\\"),
            )
        )
        .order_by(Profile.name)
        .limit(limit)
    )

    try:
        weeks = list((await db.execute(week_query)).scalars().all())
        demos = list((await db.execute(demo_query)).unique().scalars().all())
        people = list((await db.execute(people_query)).scalars().all())
    except SQLAlchemyError:
        logger.exception("Search for %r failed", query)
        await db.rollback()
        return SearchResults()
    return SearchResults(weeks=weeks, demos=demos, people=people)
