"""Curriculum endpoints: week list, week detail, and admin week/section editing."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.dependencies import get_session_context, require_admin
from vca.auth.session import Authenticated, SessionContext
from vca.curriculum import service
from vca.curriculum.levels import Level, level_name, level_style, week_style
from vca.curriculum.schemas import (
    LevelGroup,
    SectionCreate,
    SectionResponse,
    SectionUpdate,
    WeekAdminResponse,
    WeekCreate,
    WeekDetailResponse,
    WeekListResponse,
    WeekSummary,
    WeekUpdateRequest,
)
from vca.curriculum.section_resolver import resolve_sections
from vca.database import get_session, read_or_empty
from vca.db.models import Week
from vca.demos import service as demo_service
from vca.demos.schemas import DemoResponse
from vca.errors import NotFoundError
from vca.notify.slack import notify_new_week_content

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/weeks", tags=["Curriculum"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin: Curriculum"])


def _admin_week(week: Week) -> WeekAdminResponse:
    return WeekAdminResponse(
        id=week.id,
        number=week.number,
        title=week.title,
        level=week.level,
        published=week.published,
        feedback_url=week.feedback_url,
        sections=[SectionResponse.model_validate(s) for s in sorted(week.sections, key=lambda s: s.sort_order)],
        created_at=week.created_at,
        updated_at=week.updated_at,
    )


# ── Public endpoints ──


def _week_list_response(weeks: list[Week], counts: dict[str, int]) -> WeekListResponse:
    groups = {level: [] for level in Level}
    for week in weeks:
        summary = WeekSummary(
            id=week.id,
            number=week.number,
            title=week.title,
            level=week.level,
            published=week.published,
            style=week_style(week.number),
            excerpt=service.overview_excerpt(week.sections),
            demo_count=counts.get(week.id, 0),
        )
        groups.setdefault(Level(week.level), []).append(summary)

    return WeekListResponse(
        levels=[
            LevelGroup(level=int(level), name=level_name(level), style=level_style(level), weeks=items)
            for level, items in sorted(groups.items())
        ],
        total=len(weeks),
    )


async def _week_list(db: AsyncSession, is_admin: bool) -> WeekListResponse:
    weeks = await service.list_weeks(db, include_unpublished=is_admin)
    counts = await service.demo_counts(db)
    return _week_list_response(weeks, counts)


async def _week_detail(db: AsyncSession, number: int, is_admin: bool, viewer_id: str | None) -> WeekDetailResponse:
    week = await service.get_week_by_number(db, number, include_unpublished=is_admin)
    view = resolve_sections(week.sections, is_admin=is_admin)

    demos = await demo_service.list_week_demos(db, week.id)
    demo_ids = [d.id for d in demos]
    scores = await demo_service.demo_scores(db, demo_ids)
    mine = await demo_service.viewer_votes(db, demo_ids, viewer_id)

    numbers = [w.number for w in await service.list_weeks(db, include_unpublished=is_admin) if w.number]
    earlier = [n for n in numbers if n < number]
    later = [n for n in numbers if n > number]

    return WeekDetailResponse(
        id=week.id,
        number=week.number,
        title=week.title,
        level=week.level,
        level_name=level_name(week.level),
        style=week_style(week.number),
        published=week.published,
        feedback_url=week.feedback_url,
        sections=[SectionResponse.model_validate(s) for s in view.sections],
        default_section=view.default_slug,
        is_empty=view.is_empty,
        demos=[DemoResponse.from_demo(d, scores.get(d.id, 0), mine.get(d.id)) for d in demos],
        previous_number=max(earlier) if earlier else None,
        next_number=min(later) if later else None,
    )


@router.get("", response_model=WeekListResponse)
async def list_weeks(
    session: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_session),
):
    """Weeks grouped by level with their demo counts. Admins also see drafts."""
    read = _week_list(db, session.is_admin)
    return await read_or_empty(db, "weeks", read, _week_list_response([], {}))


@router.get("/{number}", response_model=WeekDetailResponse)
async def get_week(
    number: int,
    session: SessionContext = Depends(get_session_context),
    db: AsyncSession = Depends(get_session),
):
    """One week: visible sections, the tab to open first, and scored demos.

    A week the store cannot load is answered like a missing one.
    """
    read = _week_detail(db, number, session.is_admin, session.user_id)
    detail = await read_or_empty(db, "week_detail", read, None)
    if detail is None:
        raise NotFoundError("Week not found")
    return detail


# ── Admin: weeks ──


@admin_router.get("/weeks/{week_id}", response_model=WeekAdminResponse)
async def admin_get_week(
    week_id: str,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    return _admin_week(await service.get_week(db, week_id))


@admin_router.post("/weeks", response_model=WeekAdminResponse, status_code=status.HTTP_201_CREATED)
async def create_week(
    body: WeekCreate,
    background_tasks: BackgroundTasks,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    week = await service.create_week(
        db,
        title=body.title,
        number=body.number,
        level=body.level,
        published=body.published,
        feedback_url=body.feedback_url,
        content=body.content,
    )
    logger.info("week_created", week_id=week.id, number=week.number)
    if week.published and week.number is not None:
        background_tasks.add_task(notify_new_week_content, week.number, week.title)
    return _admin_week(week)


@admin_router.patch("/weeks/{week_id}", response_model=WeekAdminResponse)
async def update_week(
    week_id: str,
    body: WeekUpdateRequest,
    background_tasks: BackgroundTasks,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    changes = body.model_dump(exclude_unset=True, exclude={"content"})
    # number may be cleared; the other fields may not.
    changes = {k: v for k, v in changes.items() if v is not None or k in ("number", "feedback_url")}
    result = await service.update_week(db, week_id, changes, content=body.content)
    week = result.week
    if result.newly_published and week.number is not None:
        logger.info("week_published", week_id=week.id, number=week.number)
        background_tasks.add_task(notify_new_week_content, week.number, week.title)
    return _admin_week(week)


@admin_router.delete("/weeks/{week_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_week(
    week_id: str,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_week(db, week_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Admin: sections ──


@admin_router.post(
    "/weeks/{week_id}/sections",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_section(
    week_id: str,
    body: SectionCreate,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    section = await service.create_section(db, week_id, body.title, slug=body.slug, content=body.content)
    return SectionResponse.model_validate(section)


@admin_router.patch("/sections/{section_id}", response_model=SectionResponse)
async def update_section(
    section_id: str,
    body: SectionUpdate,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    changes = body.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if v is not None or k == "content"}
    section = await service.update_section(db, section_id, changes)
    return SectionResponse.model_validate(section)


@admin_router.delete("/sections/{section_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_section(
    section_id: str,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_section(db, section_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
