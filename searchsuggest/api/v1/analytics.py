from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from searchsuggest.api.deps import require_api_key
from searchsuggest.database import get_db
from searchsuggest.models.api_key import ApiKey
from searchsuggest.models.page import SearchPage
from searchsuggest.services.analytics import get_page_search_stats

router = APIRouter()


@router.get("/analytics/pages/{page_id}")
async def page_analytics(
    page_id: int,
    period: str = Query("7d", pattern="^\\d+[dh]$"),
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    """Get search analytics for a page over a time period.

    Period format: '7d' (days) or '24h' (hours).
    Returns total searches, top terms, avg search time, zero-result rate.
    """
    if await db.get(SearchPage, page_id) is None:
        raise HTTPException(status_code=404, detail="Search page not found")
    return await get_page_search_stats(page_id, period, db)
