"""Demo submission and voting."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vca.curriculum.service import get_week_by_number
from vca.db.models import Demo, Vote, Week
from vca.errors import AuthorizationError, NotFoundError
from vca.gamification.vote_tally import VoteRecord, tally_votes

logger = logging.getLogger(__name__)


async def list_week_demos(db: AsyncSession, week_id: str) -> list[Demo]:
    """A week's demos, newest first, with their authors."""
    result = await db.execute(select(Demo).where(Demo.week_id == week_id).order_by(Demo.created_at.desc()))
    return list(result.unique().scalars().all())


async def demo_scores(db: AsyncSession, demo_ids: list[str]) -> dict[str, int]:
    if not demo_ids:
        return {}
    result = await db.execute(select(Vote.demo_id, Vote.value).where(Vote.demo_id.in_(demo_ids)))
    return tally_votes(VoteRecord(demo_id=row.demo_id, value=row.value) for row in result)


async def viewer_votes(db: AsyncSession, demo_ids: list[str], user_id: str | None) -> dict[str, int]:
    """The viewer's own vote per demo."""
    if not demo_ids or user_id is None:
        return {}
    result = await db.execute(
        select(Vote.demo_id, Vote.value).where(Vote.demo_id.in_(demo_ids), Vote.user_id == user_id)
    )
    return {row.demo_id: row.value for row in result}


async def get_demo(db: AsyncSession, demo_id: str) -> Demo:
    demo = await db.get(Demo, demo_id)
    if demo is None:
        raise NotFoundError("Demo not found")
    return demo


async def submit_demo(
    db: AsyncSession,
    week_number: int,
    user_id: str,
    title: str,
    description: str | None = None,
    url: str | None = None,
) -> tuple[Demo, Week]:
    """Add a demo to a published week."""
    week = await get_week_by_number(db, week_number)
    demo = Demo(
        week_id=week.id,
        user_id=user_id,
        title=title,
        description=description or None,
        url=url or None,
        created_at=datetime.now(timezone.utc),
    )
    db.add(demo)
    await db.commit()
    await db.refresh(demo, ["profile"])
    logger.info("Demo %s submitted for week %s by %s", demo.id, week_number, user_id)
    return demo, week


async def delete_demo(db: AsyncSession, demo_id: str, user_id: str, is_admin: bool) -> None:
    demo = await get_demo(db, demo_id)
    if not is_admin and demo.user_id != user_id:
        raise AuthorizationError("Unauthorized: only the author or an admin can delete this demo")
    await db.execute(delete(Vote).where(Vote.demo_id == demo_id))
    await db.delete(demo)
    await db.commit()
    logger.info("Deleted demo %s", demo_id)


@dataclass(frozen=True)
class VoteOutcome:
    demo_id: str
    user_vote: int | None
    score: int


async def cast_vote(db: AsyncSession, demo_id: str, user_id: str, value: int) -> VoteOutcome:
    """Toggle or replace the caller's vote on a demo.

    No vote yet: insert. Same value again: remove it. Other value: replace
    it. Any surplus rows for the same (demo, user) are removed so at most one
    remains.
    """
    if value not in (1, -1):
        raise ValueError("Vote value must be 1 or -1")
    await get_demo(db, demo_id)

    result = await db.execute(
        select(Vote).where(Vote.demo_id == demo_id, Vote.user_id == user_id).order_by(Vote.created_at)
    )
    existing = list(result.scalars().all())

    if not existing:
        db.add(Vote(demo_id=demo_id, user_id=user_id, value=value, created_at=datetime.now(timezone.utc)))
        user_vote: int | None = value
    else:
        current, surplus = existing[0], existing[1:]
        for extra in surplus:
            await db.delete(extra)
        if current.value == value:
            await db.delete(current)
            user_vote = None
        else:
            current.value = value
            user_vote = value

    await db.commit()
    scores = await demo_scores(db, [demo_id])
    return VoteOutcome(demo_id=demo_id, user_vote=user_vote, score=scores.get(demo_id, 0))
