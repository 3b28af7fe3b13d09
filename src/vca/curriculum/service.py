"""Week and week-section persistence.

A week is stored only as sections. New weeks get the system sections, filled
from flat content when the caller supplies it (see ``legacy``).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vca.curriculum.legacy import LegacyWeekContent, section_updates, slugify, system_section_seeds
from vca.curriculum.levels import level_for_week
from vca.db.models import Demo, Vote, Week, WeekSection
from vca.errors import AppError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

DUPLICATE_WEEK_NUMBER = "A week with this number already exists"
DUPLICATE_SECTION_SLUG = "A section with this slug already exists in this week"
EXCERPT_LENGTH = 150

_HEADING_LINE = re.compile(r"^#+\s*[^\n]*\n*", re.MULTILINE)


def overview_excerpt(sections: Iterable[WeekSection], length: int = EXCERPT_LENGTH) -> str | None:
    """Card blurb: the overview section without heading lines, truncated."""
    overview = next((s for s in sections if s.slug == "overview"), None)
    if overview is None or not overview.content:
        return None
    text = _HEADING_LINE.sub("", overview.content).strip()
    if not text:
        return None
    return text if len(text) <= length else text[:length].rstrip() + "..."


# ── Weeks ──


async def list_weeks(db: AsyncSession, include_unpublished: bool = False) -> list[Week]:
    """Weeks by number, unnumbered weeks last."""
    query = select(Week).order_by(Week.number.is_(None), Week.number, Week.created_at)
    if not include_unpublished:
        query = query.where(Week.published.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def demo_counts(db: AsyncSession) -> dict[str, int]:
    result = await db.execute(select(Demo.week_id, func.count(Demo.id)).group_by(Demo.week_id))
    return {week_id: count for week_id, count in result.all()}


async def get_week(db: AsyncSession, week_id: str) -> Week:
    week = await db.get(Week, week_id)
    if week is None:
        raise NotFoundError("Week not found")
    return week


async def get_week_by_number(db: AsyncSession, number: int, include_unpublished: bool = False) -> Week:
    query = select(Week).where(Week.number == number)
    if not include_unpublished:
        query = query.where(Week.published.is_(True))
    week = (await db.execute(query)).scalar_one_or_none()
    if week is None:
        raise NotFoundError("Week not found")
    return week


async def _commit_week(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.info("Week write rejected: %s", e.orig)
        raise ConflictError(DUPLICATE_WEEK_NUMBER) from e


async def create_week(
    db: AsyncSession,
    title: str,
    number: int | None = None,
    level: int | None = None,
    published: bool = False,
    feedback_url: str | None = None,
    content: LegacyWeekContent | None = None,
) -> Week:
    """Create a week with its system sections."""
    now = datetime.now(timezone.utc)
    if level is None:
        level = int(level_for_week(number)) if number is not None else 1
    week = Week(
        number=number,
        title=title,
        level=level,
        published=published,
        feedback_url=feedback_url,
        created_at=now,
        updated_at=now,
    )
    week.sections = [
        WeekSection(
            slug=seed.slug,
            title=seed.title,
            content=seed.content,
            sort_order=seed.sort_order,
            is_system=seed.is_system,
        )
        for seed in system_section_seeds(content)
    ]
    db.add(week)
    await _commit_week(db)
    logger.info("Created week %s (number=%s)", week.id, number)
    return week


@dataclass(frozen=True)
class WeekUpdate:
    week: Week
    newly_published: bool


async def update_week(
    db: AsyncSession,
    week_id: str,
    changes: dict[str, Any],
    content: LegacyWeekContent | None = None,
) -> WeekUpdate:
    """Apply field changes; flat content, when given, overwrites the matching system sections."""
    week = await get_week(db, week_id)
    was_published = week.published

    for key, value in changes.items():
        setattr(week, key, value)

    if content is not None:
        updates = section_updates(content)
        for section in week.sections:
            if section.slug in updates:
                section.content = updates[section.slug]

    week.updated_at = datetime.now(timezone.utc)
    await _commit_week(db)
    return WeekUpdate(week=week, newly_published=week.published and not was_published)


async def delete_week(db: AsyncSession, week_id: str) -> None:
    """Delete a week with its sections, demos and the votes on them."""
    week = await get_week(db, week_id)
    demo_ids = select(Demo.id).where(Demo.week_id == week_id)
    await db.execute(delete(Vote).where(Vote.demo_id.in_(demo_ids)))
    await db.execute(delete(Demo).where(Demo.week_id == week_id))
    await db.delete(week)
    await db.commit()
    logger.info("Deleted week %s", week_id)


# ── Sections ──


async def get_section(db: AsyncSession, section_id: str) -> WeekSection:
    section = await db.get(WeekSection, section_id)
    if section is None:
        raise NotFoundError("Section not found")
    return section


async def _commit_section(db: AsyncSession) -> None:
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(DUPLICATE_SECTION_SLUG) from e


async def create_section(
    db: AsyncSession,
    week_id: str,
    title: str,
    slug: str | None = None,
    content: str | None = None,
) -> WeekSection:
    """Append a custom section after the week's last one."""
    week = await get_week(db, week_id)
    slug = slugify(slug or title)
    if not slug:
        raise AppError("Section slug cannot be empty")
    if any(s.slug == slug for s in week.sections):
        raise ConflictError(DUPLICATE_SECTION_SLUG)

    next_order = max((s.sort_order for s in week.sections), default=-1) + 1
    section = WeekSection(
        slug=slug,
        title=title,
        content=content or None,
        sort_order=next_order,
        is_system=False,
    )
    week.sections.append(section)
    await _commit_section(db)
    return section


async def update_section(db: AsyncSession, section_id: str, changes: dict[str, Any]) -> WeekSection:
    section = await get_section(db, section_id)

    if "slug" in changes:
        new_slug = slugify(changes["slug"] or "")
        if new_slug != section.slug:
            if section.is_system:
                raise ConflictError("System section slugs cannot be changed")
            if not new_slug:
                raise AppError("Section slug cannot be empty")
        changes = {**changes, "slug": new_slug}

    for key, value in changes.items():
        setattr(section, key, value)
    await _commit_section(db)
    return section


async def delete_section(db: AsyncSession, section_id: str) -> None:
    section = await get_section(db, section_id)
    if section.is_system:
        raise ConflictError("System sections cannot be deleted")
    await db.delete(section)
    await db.commit()
