"""Search endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vca.database import get_session
from vca.demos.schemas import DemoResponse
from vca.search.schemas import PersonHit, SearchResponse, WeekHit
from vca.search.service import search

router = APIRouter(prefix="/api/v1", tags=["Search"])


@router.get("/search", response_model=SearchResponse)
async def search_all(
    q: str = Query("", max_length=200),
    db: AsyncSession = Depends(get_session),
):
    results = await search(db, q)
    return SearchResponse(
        query=q,
        weeks=[WeekHit(id=w.id, number=w.number, title=w.title, level=w.level) for w in results.weeks],
        demos=[DemoResponse.from_demo(d) for d in results.demos],
        people=[
            PersonHit(id=p.id, name=p.name, avatar_url=p.avatar_url, bio=p.bio, project_idea=p.project_idea)
            for p in results.people
        ],
        total=results.total,
    )
