"""Project showcase, owner editing, image upload, and admin ordering/feedback."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from vca.auth.dependencies import require_admin, require_profile
from vca.auth.session import Authenticated
from vca.config import get_settings
from vca.database import get_session, read_or_empty
from vca.errors import NotFoundError
from vca.gamification.badge_service import load_award_index
from vca.projects import service
from vca.projects.enrichment import EnrichedProject, collect_tech_stacks, filter_projects, sort_projects
from vca.projects.schemas import (
    FeedbackCreate,
    FeedbackResponse,
    ProjectCreate,
    ProjectDetailResponse,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
    ReorderRequest,
    ReorderResponse,
    ShowcaseSortParam,
    TableSortParam,
)
from vca.storage.service import validate_image

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/projects", tags=["Projects"])
admin_router = APIRouter(prefix="/api/v1/admin", tags=["Admin: Projects"])


# ── Showcase ──


async def _showcase(
    db: AsyncSession,
    owner_id: str | None,
    search: str | None,
    project_status: str | None,
    tech: str | None,
    sort: ShowcaseSortParam,
    order_by: TableSortParam | None,
    direction: str,
) -> ProjectListResponse:
    projects = await service.list_projects(db, user_id=owner_id)
    tech_stacks = collect_tech_stacks(projects)
    filtered = filter_projects(projects, search=search, status=project_status, tech=tech, sort=sort)
    if order_by is not None:
        filtered = sort_projects(filtered, order_by, direction)  # type: ignore[arg-type]
    return ProjectListResponse(
        projects=[ProjectResponse.from_project(p) for p in filtered],
        tech_stacks=tech_stacks,
        total=len(filtered),
    )


async def _project_detail(db: AsyncSession, project_id: str) -> ProjectDetailResponse:
    project = await service.get_project(db, project_id)
    index = await load_award_index(db)
    feedback = await service.list_feedback(db, [project.id])
    others = await service.list_other_projects(db, project)
    return ProjectDetailResponse.from_enriched(
        EnrichedProject(project=project, awards=index.awards_for_project(project.id), feedback=feedback),
        others,
    )


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    search: str | None = Query(None, max_length=200),
    project_status: str | None = Query(None, alias="status"),
    tech: str | None = Query(None),
    sort: ShowcaseSortParam = Query("newest"),
    order_by: TableSortParam | None = Query(None),
    direction: str = Query("asc", pattern="^(asc|desc)$"),
    owner_id: str | None = Query(None),
    db: AsyncSession = Depends(get_session),
):
    """Showcase list. ``order_by`` switches to the admin table's transient sort."""
    read = _showcase(db, owner_id, search, project_status, tech, sort, order_by, direction)
    empty = ProjectListResponse(projects=[], tech_stacks=[], total=0)
    return await read_or_empty(db, "projects", read, empty)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
async def get_project(project_id: str, db: AsyncSession = Depends(get_session)):
    """One project with its awards, feedback and up to three more by the same owner."""
    detail = await read_or_empty(db, "project_detail", _project_detail(db, project_id), None)
    if detail is None:
        raise NotFoundError("Project not found")
    return detail


async def _read_upload(file: UploadFile) -> bytes:
    """Reject by declared size first, then read at most one byte past the limit."""
    if file.size is not None:
        validate_image(file.content_type, file.size)
    return await file.read(get_settings().storage_max_bytes + 1)


# ── Owner ──


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    project = await service.create_project(db, session.user_id, body.model_dump(mode="json"))
    logger.info("project_created", project_id=project.id, user_id=session.user_id)
    return ProjectResponse.from_project(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    project = await service.get_project(db, project_id)
    service.ensure_can_edit(session.user_id, session.is_admin, project)
    project = await service.update_project(db, project, body.model_dump(mode="json", exclude_unset=True))
    return ProjectResponse.from_project(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    project = await service.get_project(db, project_id)
    service.ensure_can_edit(session.user_id, session.is_admin, project)
    await service.delete_project(db, project)
    logger.info("project_deleted", project_id=project_id, by=session.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/avatar", response_model=ProjectResponse)
async def upload_avatar(
    project_id: str,
    file: UploadFile = File(...),
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    project = await service.get_project(db, project_id)
    service.ensure_can_edit(session.user_id, session.is_admin, project)
    data = await _read_upload(file)
    project = await service.set_avatar(db, project, file.filename, file.content_type, data)
    return ProjectResponse.from_project(project)


@router.post("/{project_id}/screenshots", response_model=ProjectResponse)
async def upload_screenshot(
    project_id: str,
    file: UploadFile = File(...),
    caption: str | None = Form(None),
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    project = await service.get_project(db, project_id)
    service.ensure_can_edit(session.user_id, session.is_admin, project)
    data = await _read_upload(file)
    project = await service.add_screenshot(db, project, file.filename, file.content_type, data, caption)
    return ProjectResponse.from_project(project)


@router.delete("/{project_id}/screenshots/{order}", response_model=ProjectResponse)
async def delete_screenshot(
    project_id: str,
    order: int,
    session: Authenticated = Depends(require_profile),
    db: AsyncSession = Depends(get_session),
):
    project = await service.get_project(db, project_id)
    service.ensure_can_edit(session.user_id, session.is_admin, project)
    project = await service.remove_screenshot(db, project, order)
    return ProjectResponse.from_project(project)


# ── Admin ──


@admin_router.put("/projects/order", response_model=ReorderResponse)
async def reorder_projects(
    body: ReorderRequest,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    """Persist the manual ranking. A partial failure answers 409 with the progress log."""
    log = await service.reorder_projects(db, body.project_ids)
    return ReorderResponse(requested=log.requested, applied=log.applied)


@admin_router.post(
    "/projects/{project_id}/feedback",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_feedback(
    project_id: str,
    body: FeedbackCreate,
    admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    feedback = await service.add_feedback(db, project_id, admin.user_id, body.content)
    return FeedbackResponse.from_row(feedback)


@admin_router.put("/feedback/{feedback_id}", response_model=FeedbackResponse)
async def update_feedback(
    feedback_id: str,
    body: FeedbackCreate,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    feedback = await service.update_feedback(db, feedback_id, body.content)
    return FeedbackResponse.from_row(feedback)


@admin_router.delete("/feedback/{feedback_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feedback(
    feedback_id: str,
    _admin: Authenticated = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    await service.delete_feedback(db, feedback_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
