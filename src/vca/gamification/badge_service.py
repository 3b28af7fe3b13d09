"""Badge definitions, awards, and the loaders that feed the aggregation core."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vca.db.models import Badge, BadgeAward, Demo, Profile, Project, Vote
from vca.errors import AppError, NotFoundError
from vca.gamification.award_index import AwardIndex, AwardRecord, build_award_index
from vca.gamification.leaderboard import LeaderboardEntry, ProfileSummary, rank_leaderboard
from vca.gamification.vote_tally import VoteRecord

logger = logging.getLogger(__name__)

RECENT_AWARDS_LIMIT = 10


# ── Badge definitions ──


async def list_badges(db: AsyncSession) -> list[Badge]:
    result = await db.execute(select(Badge).order_by(Badge.name))
    return list(result.scalars().all())


async def get_badge(db: AsyncSession, badge_id: str) -> Badge:
    badge = await db.get(Badge, badge_id)
    if badge is None:
        raise NotFoundError("Badge not found")
    return badge


async def create_badge(db: AsyncSession, name: str, description: str | None, color: str) -> Badge:
    badge = Badge(name=name, description=description, color=color, created_at=datetime.now(timezone.utc))
    db.add(badge)
    await db.commit()
    logger.info("Created badge %s (%s)", badge.id, name)
    return badge


async def update_badge(db: AsyncSession, badge_id: str, **changes: object) -> Badge:
    badge = await get_badge(db, badge_id)
    for key, value in changes.items():
        setattr(badge, key, value)
    await db.commit()
    return badge


async def delete_badge(db: AsyncSession, badge_id: str) -> None:
    """Delete a badge definition and every award of it."""
    badge = await get_badge(db, badge_id)
    await db.execute(delete(BadgeAward).where(BadgeAward.badge_id == badge_id))
    await db.delete(badge)
    await db.commit()
    logger.info("Deleted badge %s", badge_id)


# ── Awards ──


@dataclass(frozen=True)
class AwardOutcome:
    award: BadgeAward
    badge: Badge
    recipient_name: str


async def award_badge(
    db: AsyncSession,
    badge_id: str,
    awarded_by: str | None,
    user_id: str | None = None,
    project_id: str | None = None,
) -> AwardOutcome:
    """Grant a badge to exactly one user or one project.

    Repeat grants of the same badge to the same target are allowed and each
    one counts.
    """
    if bool(user_id) == bool(project_id):
        raise AppError("An award must target exactly one user or one project")

    badge = await get_badge(db, badge_id)

    if user_id:
        profile = await db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
        recipient_name = profile.name
    else:
        project = await db.get(Project, project_id)
        if project is None:
            raise NotFoundError("Project not found")
        recipient_name = project.title

    award = BadgeAward(
        badge_id=badge.id,
        user_id=user_id or None,
        project_id=project_id or None,
        awarded_by=awarded_by,
        created_at=datetime.now(timezone.utc),
    )
    db.add(award)
    await db.commit()
    logger.info("Awarded badge %s to %s", badge.id, user_id or f"project {project_id}")
    return AwardOutcome(award=award, badge=badge, recipient_name=recipient_name)


async def remove_award(db: AsyncSession, award_id: str) -> None:
    award = await db.get(BadgeAward, award_id)
    if award is None:
        raise NotFoundError("Award not found")
    await db.delete(award)
    await db.commit()
    logger.info("Removed badge award %s", award_id)


# ── Loaders for the aggregation core ──


async def load_award_records(db: AsyncSession) -> list[AwardRecord]:
    """Every award, most recent first."""
    result = await db.execute(select(BadgeAward).order_by(BadgeAward.created_at.desc()))
    return [
        AwardRecord(
            id=a.id,
            badge_id=a.badge_id,
            user_id=a.user_id,
            project_id=a.project_id,
            awarded_by=a.awarded_by,
            created_at=a.created_at,
            badge_name=a.badge.name if a.badge else None,
            badge_color=a.badge.color if a.badge else None,
        )
        for a in result.unique().scalars().all()
    ]


async def load_award_index(db: AsyncSession) -> AwardIndex:
    return build_award_index(await load_award_records(db))


async def load_votes(db: AsyncSession) -> list[VoteRecord]:
    result = await db.execute(select(Vote.demo_id, Vote.value))
    return [VoteRecord(demo_id=row.demo_id, value=row.value) for row in result]


async def load_demo_authors(db: AsyncSession) -> dict[str, str]:
    result = await db.execute(select(Demo.id, Demo.user_id))
    return {row.id: row.user_id for row in result}


async def load_profile_summaries(db: AsyncSession, user_ids: list[str]) -> dict[str, ProfileSummary]:
    if not user_ids:
        return {}
    result = await db.execute(select(Profile).where(Profile.id.in_(user_ids)))
    return {p.id: ProfileSummary(id=p.id, name=p.name, avatar_url=p.avatar_url) for p in result.scalars()}


async def build_leaderboard(db: AsyncSession, index: AwardIndex, size: int) -> list[LeaderboardEntry]:
    """Rank badge holders from freshly loaded votes and authors."""
    votes = await load_votes(db)
    authors = await load_demo_authors(db)
    profiles = await load_profile_summaries(db, list(index.by_user))
    return rank_leaderboard(index, votes, authors, profiles, size=size)


async def load_recent_awards(db: AsyncSession, limit: int = RECENT_AWARDS_LIMIT) -> list[BadgeAward]:
    result = await db.execute(select(BadgeAward).order_by(BadgeAward.created_at.desc()).limit(limit))
    return list(result.unique().scalars().all())


async def badge_counts_by_user(db: AsyncSession) -> dict[str, int]:
    """User-targeted award counts, for the people directory."""
    index = await load_award_index(db)
    return {user_id: len(awards) for user_id, awards in index.by_user.items()}
