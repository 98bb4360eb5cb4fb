from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from searchsuggest.api.deps import get_view_check
from searchsuggest.config import settings
from searchsuggest.database import get_db
from searchsuggest.services.suggestions import (
    ViewCheck,
    get_page_suggestions,
    get_suggestions,
)

router = APIRouter()


@router.get("/suggestions")
async def suggest(
    term: str = Query(...),
    page_id: int = Query(..., alias="page"),
    limit: int = Query(settings.default_suggestion_limit, ge=1, le=settings.max_suggestion_limit),
    db: AsyncSession = Depends(get_db),
    can_view: ViewCheck = Depends(get_view_check),
):
    """Get approved suggestions on a page that start with the given term.

    Terms shorter than three or longer than 255 characters, unknown pages and pages the caller
    can't view all yield an empty list.
    """
    suggestions = await get_suggestions(term, page_id, db, can_view, limit=limit)
    return {
        "term": term,
        "page_id": page_id,
        "suggestions": suggestions,
    }


@router.get("/pages/{page_id}/suggestions")
async def page_suggestions(
    page_id: int,
    limit: int = Query(0, ge=0, description="0 returns every suggestion"),
    db: AsyncSession = Depends(get_db),
    can_view: ViewCheck = Depends(get_view_check),
):
    """Get every approved suggestion on a page, most frequent first."""
    suggestions = await get_page_suggestions(page_id, db, can_view, limit=limit)
    return {
        "page_id": page_id,
        "suggestions": suggestions,
    }
