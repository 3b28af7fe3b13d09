"""Badge, award and leaderboard endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.dependencies import require_admin
from vca.auth.session import Authenticated
from vca.config import get_settings
from vca.database import get_session, read_or_empty
from vca.gamification import badge_service
from vca.gamification.leaderboard import LeaderboardEntry
from vca.gamification.schemas import (
    AwardCreate,
    AwardResponse,
    BadgeCreate,
    BadgeListResponse,
    BadgeResponse,
    BadgesOverviewResponse,
    BadgeUpdate,
    LeaderboardEntryResponse,
    LeaderboardResponse,
)
from vca.notify.slack import notify_badge_awarded
from vca.projects.schemas import OwnerBrief, ProjectDetailResponse
from vca.projects.service import load_enriched_projects

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Badges"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin: Badges"])


def _entry_response(entry: LeaderboardEntry) -> LeaderboardEntryResponse:
    profile = entry.profile
    return LeaderboardEntryResponse(
        rank=entry.rank,
        user_id=entry.user_id,
        profile=OwnerBrief(id=profile.id, name=profile.name, avatar_url=profile.avatar_url) if profile else None,
        badge_count=entry.badge_count,
        vote_total=entry.vote_total,
    )


# ── Public endpoints ──


async def _badge_list(db: AsyncSession) -> BadgeListResponse:
    badges = await badge_service.list_badges(db)
    return BadgeListResponse(badges=[BadgeResponse.model_validate(b) for b in badges])


async def _leaderboard(db: AsyncSession) -> LeaderboardResponse:
    index = await badge_service.load_award_index(db)
    entries = await badge_service.build_leaderboard(db, index, get_settings().leaderboard_size)
    return LeaderboardResponse(entries=[_entry_response(e) for e in entries])


async def _overview(db: AsyncSession) -> BadgesOverviewResponse:
    index = await badge_service.load_award_index(db)
    entries = await badge_service.build_leaderboard(db, index, get_settings().leaderboard_size)
    recent = await badge_service.load_recent_awards(db)
    badges = await badge_service.list_badges(db)
    projects = await load_enriched_projects(db, index)

    return BadgesOverviewResponse(
        leaderboard=[_entry_response(e) for e in entries],
        recent_awards=[
            AwardResponse(
                id=a.id,
                badge_id=a.badge_id,
                badge_name=a.badge.name if a.badge else None,
                badge_color=a.badge.color if a.badge else None,
                user_id=a.user_id,
                project_id=a.project_id,
                awarded_by=a.awarded_by,
                recipient_name=a.profile.name if a.profile else None,
                created_at=a.created_at,
            )
            for a in recent
        ],
        badges=[BadgeResponse.model_validate(b) for b in badges],
        projects=[ProjectDetailResponse.from_enriched(p) for p in projects],
    )


@router.get("/badges", response_model=BadgeListResponse)
async def list_badges(db: AsyncSession = Depends(get_session)):
    return await read_or_empty(db, "badges", _badge_list(db), BadgeListResponse(badges=[]))


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(db: AsyncSession = Depends(get_session)):
    """Badge holders ranked by badge count, then net demo votes."""
    return await read_or_empty(db, "leaderboard", _leaderboard(db), LeaderboardResponse(entries=[]))


@router.get("/badges/overview", response_model=BadgesOverviewResponse)
async def badges_overview(db: AsyncSession = Depends(get_session)):
    """Leaderboard, the ten latest awards, every badge, and the ranked project table."""
    empty = BadgesOverviewResponse(leaderboard=[], recent_awards=[], badges=[], projects=[])
    return await read_or_empty(db, "badges_overview", _overview(db), empty)


# ── Admin endpoints ──


@admin_router.post("/badges", response_model=BadgeResponse, status_code=status.HTTP_201_CREATED)
async def create_badge(
    body: BadgeCreate,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    badge = await badge_service.create_badge(db, body.name, body.description, body.color)
    return BadgeResponse.model_validate(badge)


@admin_router.put("/badges/{badge_id}", response_model=BadgeResponse)
async def update_badge(
    badge_id: str,
    body: BadgeUpdate,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    badge = await badge_service.update_badge(db, badge_id, **body.model_dump(exclude_unset=True, exclude_none=True))
    return BadgeResponse.model_validate(badge)


@admin_router.delete("/badges/{badge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_badge(
    badge_id: str,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await badge_service.delete_badge(db, badge_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.post("/badge-awards", response_model=AwardResponse, status_code=status.HTTP_201_CREATED)
async def award_badge(
    body: AwardCreate,
    background_tasks: BackgroundTasks,
    admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Award a badge to a user or a project and announce it."""
    outcome = await badge_service.award_badge(
        db,
        body.badge_id,
        awarded_by=admin.user_id,
        user_id=body.user_id,
        project_id=body.project_id,
    )
    award = outcome.award
    logger.info(
        "badge_awarded",
        award_id=award.id,
        badge_id=award.badge_id,
        user_id=award.user_id,
        project_id=award.project_id,
    )
    background_tasks.add_task(notify_badge_awarded, outcome.recipient_name, outcome.badge.name, admin.profile.name)
    return AwardResponse(
        id=award.id,
        badge_id=award.badge_id,
        badge_name=outcome.badge.name,
        badge_color=outcome.badge.color,
        user_id=award.user_id,
        project_id=award.project_id,
        awarded_by=award.awarded_by,
        recipient_name=outcome.recipient_name,
        created_at=award.created_at,
    )


@admin_router.delete("/badge-awards/{award_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_award(
    award_id: str,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await badge_service.remove_award(db, award_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
