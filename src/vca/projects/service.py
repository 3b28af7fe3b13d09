"""Project CRUD, manual ordering, feedback, and image attachment."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vca.db.models import BadgeAward, Project, ProjectFeedback
from vca.errors import AuthorizationError, NotFoundError, ReorderError, StorageError
from vca.gamification.award_index import AwardIndex
from vca.projects.enrichment import EnrichedProject, enrich_projects, sort_projects
from vca.storage import service as storage

logger = logging.getLogger(__name__)

MAX_TECH_TAGS = 10
OTHER_PROJECTS_LIMIT = 3


def normalize_tech_stack(tags: list[str] | None) -> list[str]:
    """Trim, drop blanks and duplicates (first occurrence wins), cap at 10."""
    seen: list[str] = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen[:MAX_TECH_TAGS]


def ensure_can_edit(user_id: str | None, is_admin: bool, project: Project) -> None:
    if is_admin or (user_id is not None and project.user_id == user_id):
        return
    raise AuthorizationError("Unauthorized: only the project owner or an admin can change this project")


# ── Reads ──


async def list_projects(db: AsyncSession, user_id: str | None = None) -> list[Project]:
    query = select(Project).order_by(Project.sort_order, Project.created_at)
    if user_id is not None:
        query = query.where(Project.user_id == user_id)
    result = await db.execute(query)
    return list(result.unique().scalars().all())


async def list_other_projects(db: AsyncSession, project: Project, limit: int = OTHER_PROJECTS_LIMIT) -> list[Project]:
    """The owner's other projects, in manual order."""
    result = await db.execute(
        select(Project)
        .where(Project.user_id == project.user_id, Project.id != project.id)
        .order_by(Project.sort_order, Project.created_at)
        .limit(limit)
    )
    return list(result.unique().scalars().all())


async def get_project(db: AsyncSession, project_id: str) -> Project:
    project = await db.get(Project, project_id)
    if project is None:
        raise NotFoundError("Project not found")
    return project


async def list_feedback(db: AsyncSession, project_ids: list[str] | None = None) -> list[ProjectFeedback]:
    query = select(ProjectFeedback).order_by(ProjectFeedback.created_at.desc())
    if project_ids is not None:
        if not project_ids:
            return []
        query = query.where(ProjectFeedback.project_id.in_(project_ids))
    result = await db.execute(query)
    return list(result.unique().scalars().all())


async def load_enriched_projects(db: AsyncSession, index: AwardIndex) -> list[EnrichedProject]:
    """All projects in manual order with their awards and feedback attached."""
    projects = sort_projects(await list_projects(db))
    feedback = await list_feedback(db)
    return enrich_projects(projects, index, feedback)


# ── Writes ──


async def _next_sort_order(db: AsyncSession) -> int:
    result = await db.execute(select(func.max(Project.sort_order)))
    current = result.scalar()
    return 0 if current is None else current + 1


async def create_project(db: AsyncSession, user_id: str, data: dict[str, Any]) -> Project:
    now = datetime.now(timezone.utc)
    data = dict(data)
    data["tech_stack"] = normalize_tech_stack(data.get("tech_stack"))
    project = Project(
        user_id=user_id,
        sort_order=await _next_sort_order(db),
        screenshots=[],
        created_at=now,
        updated_at=now,
        **data,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project, ["profile"])
    logger.info("Created project %s for %s", project.id, user_id)
    return project


async def update_project(db: AsyncSession, project: Project, changes: dict[str, Any]) -> Project:
    # Required columns cannot be cleared.
    changes = {k: v for k, v in changes.items() if v is not None or k not in ("title", "status", "tech_stack")}
    if "tech_stack" in changes:
        changes = {**changes, "tech_stack": normalize_tech_stack(changes["tech_stack"])}
    for key, value in changes.items():
        setattr(project, key, value)
    project.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return project


async def delete_project_rows(db: AsyncSession, project_id: str) -> None:
    """Delete a project with its feedback and project-targeted awards. Does not commit."""
    await db.execute(delete(BadgeAward).where(BadgeAward.project_id == project_id))
    await db.execute(delete(ProjectFeedback).where(ProjectFeedback.project_id == project_id))
    await db.execute(delete(Project).where(Project.id == project_id))


async def delete_project(db: AsyncSession, project: Project) -> None:
    """Delete the rows, then the stored images.

    A storage failure after the rows are gone only orphans objects; it is
    logged and the delete still succeeds.
    """
    user_id, project_id = project.user_id, project.id
    await delete_project_rows(db, project_id)
    await db.commit()
    logger.info("Deleted project %s", project_id)
    await discard_project_images(user_id, project_id)


async def discard_project_images(user_id: str, project_id: str) -> None:
    """Remove a deleted project's images; failures only orphan objects."""
    try:
        await storage.delete_all_project_images(user_id, project_id)
    except StorageError:
        logger.warning("Images of deleted project %s were not removed", project_id, exc_info=True)


# ── Manual ordering ──


@dataclass
class ReorderLog:
    """Progress of one reorder request. Positions are written in list order."""

    requested: list[str]
    applied: list[str] = field(default_factory=list)
    failed: str | None = None
    error: str | None = None

    @property
    def remaining(self) -> list[str]:
        start = len(self.applied) + (1 if self.failed else 0)
        return self.requested[start:]

    @property
    def complete(self) -> bool:
        return self.failed is None and len(self.applied) == len(self.requested)

    def as_dict(self) -> dict[str, Any]:
        return {
            "requested": list(self.requested),
            "applied": list(self.applied),
            "failed": self.failed,
            "error": self.error,
            "remaining": self.remaining,
        }


async def _set_sort_order(db: AsyncSession, project_id: str, position: int) -> None:
    result = await db.execute(update(Project).where(Project.id == project_id).values(sort_order=position))
    if result.rowcount == 0:
        raise NotFoundError(f"Project {project_id} not found")
    await db.commit()


async def reorder_projects(db: AsyncSession, project_ids: list[str]) -> ReorderLog:
    """Set sort_order to each project's index in ``project_ids``.

    Each position is committed on its own. If one fails the sequence stops
    and the earlier positions stay written; the raised ReorderError carries
    the log. Sending the same list again converges to the requested order.
    """
    log = ReorderLog(requested=list(project_ids))
    for position, project_id in enumerate(project_ids):
        try:
            await _set_sort_order(db, project_id, position)
        except (SQLAlchemyError, NotFoundError) as e:
            await db.rollback()
            log.failed = project_id
            log.error = str(e)
            logger.error(
                "reorder_failed: %d/%d applied, stopped at %s: %s",
                len(log.applied),
                len(project_ids),
                project_id,
                e,
            )
            raise ReorderError("Reorder stopped partway; retry to finish", log) from e
        log.applied.append(project_id)
    logger.info("Reordered %d project(s)", len(log.applied))
    return log


# ── Feedback ──


async def add_feedback(db: AsyncSession, project_id: str, instructor_id: str, content: str) -> ProjectFeedback:
    await get_project(db, project_id)
    now = datetime.now(timezone.utc)
    feedback = ProjectFeedback(
        project_id=project_id,
        instructor_id=instructor_id,
        content=content,
        created_at=now,
        updated_at=now,
    )
    db.add(feedback)
    await db.commit()
    await db.refresh(feedback, ["instructor"])
    return feedback


async def get_feedback(db: AsyncSession, feedback_id: str) -> ProjectFeedback:
    feedback = await db.get(ProjectFeedback, feedback_id)
    if feedback is None:
        raise NotFoundError("Feedback not found")
    return feedback


async def update_feedback(db: AsyncSession, feedback_id: str, content: str) -> ProjectFeedback:
    feedback = await get_feedback(db, feedback_id)
    feedback.content = content
    feedback.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return feedback


async def delete_feedback(db: AsyncSession, feedback_id: str) -> None:
    feedback = await get_feedback(db, feedback_id)
    await db.delete(feedback)
    await db.commit()


# ── Images ──


async def set_avatar(
    db: AsyncSession,
    project: Project,
    filename: str | None,
    content_type: str | None,
    data: bytes,
) -> Project:
    result = await storage.upload_project_avatar(project.user_id, project.id, filename, content_type, data)
    project.avatar_url = result.url
    project.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return project


async def add_screenshot(
    db: AsyncSession,
    project: Project,
    filename: str | None,
    content_type: str | None,
    data: bytes,
    caption: str | None = None,
) -> Project:
    """Append a screenshot at the next order."""
    screenshots = list(project.screenshots or [])
    order = len(screenshots)
    result = await storage.upload_project_screenshot(project.user_id, project.id, filename, content_type, data, order)
    screenshots.append(
        {
            "url": result.url,
            "caption": caption,
            "order": order,
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    project.screenshots = screenshots
    project.updated_at = datetime.now(timezone.utc)
    await db.commit()
    return project


async def remove_screenshot(db: AsyncSession, project: Project, order: int) -> Project:
    """Drop one screenshot, renumber the rest, and delete the stored object."""
    screenshots = sorted(project.screenshots or [], key=lambda s: s.get("order", 0))
    target = next((s for s in screenshots if s.get("order") == order), None)
    if target is None:
        raise NotFoundError("Screenshot not found")

    kept = [s for s in screenshots if s is not target]
    project.screenshots = [{**s, "order": i} for i, s in enumerate(kept)]
    project.updated_at = datetime.now(timezone.utc)
    await db.commit()

    path = storage.path_from_url(target.get("url"))
    if path:
        await storage.delete_images([path])
    return project
