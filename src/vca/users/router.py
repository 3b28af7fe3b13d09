"""Profile, people directory, and admin member-management endpoints."""

from __future__ import annotations

from dataclasses import asdict

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.dependencies import require_admin, require_member, require_profile
from vca.auth.session import Authenticated, Degraded, SessionContext
from vca.database import get_session, read_or_empty
from vca.db.models import Week
from vca.errors import NotFoundError
from vca.gamification.badge_service import load_award_index
from vca.projects.schemas import AwardBrief, ProjectResponse
from vca.projects.service import discard_project_images, list_projects
from vca.users import service
from vca.users.schemas import (
    AdminStatsResponse,
    PeopleResponse,
    PersonDemo,
    PersonDetailResponse,
    PersonSummary,
    ProfileResponse,
    ProfileUpdate,
    RoleUpdate,
    SessionResponse,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["People"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin: People"])


# ── Own profile ──


@router.get("/me", response_model=SessionResponse)
async def get_me(session: SessionContext = Depends(require_member)):
    """The caller's profile. A degraded session answers with the claim-built stand-in."""
    if isinstance(session, Degraded):
        return SessionResponse(
            kind="degraded",
            is_admin=False,
            profile=ProfileResponse(**asdict(session.fallback_profile)),
            degraded_reason=session.reason,
        )
    return SessionResponse(
        kind="authenticated",
        is_admin=session.is_admin,
        profile=ProfileResponse.model_validate(session.profile),
    )


@router.patch("/me", response_model=ProfileResponse)
async def update_me(
    body: ProfileUpdate,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    profile = await service.update_own_profile(db, session.profile, body.model_dump(exclude_unset=True))
    logger.info("profile_updated", user_id=profile.id)
    return ProfileResponse.model_validate(profile)


# ── People directory ──


async def _people(db: AsyncSession) -> PeopleResponse:
    profiles = await service.list_profiles(db)
    index = await load_award_index(db)
    people = [
        PersonSummary(
            id=p.id,
            name=p.name,
            role=p.role,
            avatar_url=p.avatar_url,
            bio=p.bio,
            github_url=p.github_url,
            slack_handle=p.slack_handle,
            badge_count=index.count_for_user(p.id),
        )
        for p in profiles
    ]
    return PeopleResponse(people=people, total=len(people))


async def _person(db: AsyncSession, profile_id: str) -> PersonDetailResponse:
    profile = await service.get_profile(db, profile_id)
    index = await load_award_index(db)
    demos = await service.list_user_demos(db, profile_id)
    projects = await list_projects(db, user_id=profile_id)

    week_ids = {d.week_id for d in demos}
    week_numbers: dict[str, int | None] = {}
    if week_ids:
        rows = await db.execute(select(Week.id, Week.number).where(Week.id.in_(week_ids)))
        week_numbers = {row.id: row.number for row in rows}

    return PersonDetailResponse(
        profile=ProfileResponse.model_validate(profile),
        awards=[AwardBrief.from_record(a) for a in index.awards_for_user(profile_id)],
        demos=[
            PersonDemo.from_demo(d).model_copy(update={"week_number": week_numbers.get(d.week_id)})
            for d in demos
        ],
        projects=[ProjectResponse.from_project(p) for p in projects],
    )


@router.get("/people", response_model=PeopleResponse)
async def list_people(db: AsyncSession = Depends(get_session)):
    """Everyone by name, with user-award counts."""
    return await read_or_empty(db, "people", _people(db), PeopleResponse(people=[], total=0))


@router.get("/people/{profile_id}", response_model=PersonDetailResponse)
async def get_person(profile_id: str, db: AsyncSession = Depends(get_session)):
    detail = await read_or_empty(db, "person_detail", _person(db, profile_id), None)
    if detail is None:
        raise NotFoundError("Profile not found")
    return detail


# ── Admin ──


async def _stats(db: AsyncSession) -> AdminStatsResponse:
    return AdminStatsResponse(**await service.cohort_totals(db))


@admin_router.get("/stats", response_model=AdminStatsResponse)
async def admin_stats(
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Totals of weeks, profiles, demos and badge awards for the admin dashboard."""
    return await read_or_empty(db, "admin_stats", _stats(db), AdminStatsResponse())


@admin_router.patch("/people/{profile_id}/role", response_model=ProfileResponse)
async def update_role(
    profile_id: str,
    body: RoleUpdate,
    admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    profile = await service.set_role(db, profile_id, body.role, admin.user_id)
    logger.info("role_changed", profile_id=profile_id, role=profile.role, by=admin.user_id)
    return ProfileResponse.model_validate(profile)


@admin_router.delete("/people/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_person(
    profile_id: str,
    background_tasks: BackgroundTasks,
    admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Delete a member with their demos, votes, projects and awards."""
    image_owners = await service.delete_profile(db, profile_id, admin.user_id)
    logger.info("profile_deleted", profile_id=profile_id, by=admin.user_id, projects=len(image_owners))
    for user_id, project_id in image_owners:
        background_tasks.add_task(discard_project_images, user_id, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
