"""Profile editing, the people directory, and admin member management."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vca.db.models import BadgeAward, Demo, Profile, Project, ProjectFeedback, Role, Vote, Week
from vca.errors import ConflictError, NotFoundError
from vca.projects.service import delete_project_rows

logger = logging.getLogger(__name__)


async def cohort_totals(db: AsyncSession) -> dict[str, int]:
    """Row totals shown on the admin dashboard."""
    totals = {}
    for key, model in (("weeks", Week), ("profiles", Profile), ("demos", Demo), ("badge_awards", BadgeAward)):
        totals[key] = (await db.execute(select(func.count()).select_from(model))).scalar_one()
    return totals


async def list_profiles(db: AsyncSession) -> list[Profile]:
    result = await db.execute(select(Profile).order_by(Profile.name))
    return list(result.scalars().all())


async def get_profile(db: AsyncSession, profile_id: str) -> Profile:
    profile = await db.get(Profile, profile_id)
    if profile is None:
        raise NotFoundError("Profile not found")
    return profile


async def update_own_profile(db: AsyncSession, profile: Profile, changes: dict[str, Any]) -> Profile:
    """Owner edits. Blank strings clear optional fields; name cannot be cleared."""
    for key, value in changes.items():
        if isinstance(value, str):
            value = value.strip()
        if key == "name":
            if value:
                profile.name = value
            continue
        setattr(profile, key, value or None)
    profile.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return profile


async def list_user_demos(db: AsyncSession, user_id: str) -> list[Demo]:
    result = await db.execute(select(Demo).where(Demo.user_id == user_id).order_by(Demo.created_at.desc()))
    return list(result.unique().scalars().all())


async def set_role(db: AsyncSession, profile_id: str, role: Role, acting_admin_id: str) -> Profile:
    if profile_id == acting_admin_id and role != Role.ADMIN:
        raise ConflictError("You cannot remove your own admin role")
    profile = await get_profile(db, profile_id)
    profile.role = role.value
    profile.updated_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info("Role of %s set to %s by %s", profile_id, role.value, acting_admin_id)
    return profile


async def delete_profile(db: AsyncSession, profile_id: str, acting_admin_id: str) -> list[tuple[str, str]]:
    """Delete a member and everything they own, in one transaction.

    Removes their votes, the votes on their demos, their demos, their
    projects (with feedback and project awards), and their user awards.
    Awards they granted and feedback they wrote lose the author reference.
    Returns (user_id, project_id) pairs whose stored images should go too.
    """
    if profile_id == acting_admin_id:
        raise ConflictError("You cannot delete your own profile")
    profile = await get_profile(db, profile_id)

    project_ids = list((await db.execute(select(Project.id).where(Project.user_id == profile_id))).scalars())
    own_demos = select(Demo.id).where(Demo.user_id == profile_id)

    await db.execute(delete(Vote).where(Vote.user_id == profile_id))
    await db.execute(delete(Vote).where(Vote.demo_id.in_(own_demos)))
    await db.execute(delete(Demo).where(Demo.user_id == profile_id))
    for project_id in project_ids:
        await delete_project_rows(db, project_id)
    await db.execute(delete(BadgeAward).where(BadgeAward.user_id == profile_id))
    await db.execute(update(BadgeAward).where(BadgeAward.awarded_by == profile_id).values(awarded_by=None))
    await db.execute(
        update(ProjectFeedback).where(ProjectFeedback.instructor_id == profile_id).values(instructor_id=None)
    )
    await db.delete(profile)
    await db.commit()
    logger.info("Deleted profile %s with %d project(s)", profile_id, len(project_ids))
    return [(profile_id, project_id) for project_id in project_ids]
