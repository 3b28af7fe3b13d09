"""Demo submission and voting endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.dependencies import require_profile
from vca.auth.session import Authenticated
from vca.database import get_session
from vca.demos import service
from vca.demos.schemas import DemoCreate, DemoResponse, VoteRequest, VoteResponse
from vca.notify.slack import notify_demo_submitted

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1", tags=["Demos"])


@router.post("/weeks/{number}/demos", response_model=DemoResponse, status_code=status.HTTP_201_CREATED)
async def submit_demo(
    number: int,
    body: DemoCreate,
    background_tasks: BackgroundTasks,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    demo, week = await service.submit_demo(
        db, number, session.user_id, body.title, description=body.description, url=body.url
    )
    logger.info("demo_submitted", demo_id=demo.id, week=number, user_id=session.user_id)
    background_tasks.add_task(notify_demo_submitted, session.profile.name, demo.title, week.number)
    return DemoResponse.from_demo(demo)


@router.delete("/demos/{demo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_demo(
    demo_id: str,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_demo(db, demo_id, session.user_id, session.is_admin)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/demos/{demo_id}/vote", response_model=VoteResponse)
async def vote(
    demo_id: str,
    body: VoteRequest,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    """Vote +1/-1. Repeating the same vote withdraws it."""
    outcome = await service.cast_vote(db, demo_id, session.user_id, body.value)
    return VoteResponse(demo_id=outcome.demo_id, user_vote=outcome.user_vote, score=outcome.score)
