from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from searchsuggest.api.deps import get_api_key
from searchsuggest.database import get_db
from searchsuggest.models.api_key import ApiKey
from searchsuggest.models.page import SearchPage
from searchsuggest.services.analytics import record_search

router = APIRouter()

# search_events.results is a 32-bit INTEGER
MAX_RESULTS = 2**31 - 1
MAX_ENGINE_LENGTH = 50


def _parse_results(value) -> int:
    """Whole, in-range result counts only; 3.7 or 1e12 are rejected."""
    if isinstance(value, bool):
        raise ValueError("results must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("results must be an integer")
    results = int(value)
    if not 0 <= results <= MAX_RESULTS:
        raise ValueError("results out of range")
    return results


@router.post("/pages/{page_id}/searches", status_code=201)
async def log_search(
    page_id: int,
    request: dict,
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey | None = Depends(get_api_key),
):
    """Record a completed search on a page.

    Body:
      - term (str): The search term as the user typed it
      - results (int): Number of results the search engine returned
      - elapsed_time (float): Search time in seconds
      - engine (str): Which search engine produced the results
    """
    term = request.get("term")
    if not isinstance(term, str) or not term:
        raise HTTPException(status_code=400, detail="term is required")

    try:
        results = _parse_results(request.get("results", 0))
    except (TypeError, ValueError, OverflowError):
        raise HTTPException(
            status_code=400, detail=f"results must be a whole number between 0 and {MAX_RESULTS}"
        )
    try:
        elapsed_time = float(request.get("elapsed_time", 0.0))
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="elapsed_time must be a number")
    if not elapsed_time >= 0:
        raise HTTPException(status_code=400, detail="elapsed_time must not be negative")

    engine = str(request.get("engine") or "default")
    if len(engine) > MAX_ENGINE_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"engine must be at most {MAX_ENGINE_LENGTH} characters"
        )

    if await db.get(SearchPage, page_id) is None:
        raise HTTPException(status_code=404, detail="Search page not found")

    search = await record_search(
        term=term,
        results=results,
        elapsed_time=elapsed_time,
        engine=engine,
        page_id=page_id,
        db=db,
    )
    if search is None:
        return {"status": "skipped", "reason": "analytics disabled"}
    return {"status": "recorded", "search_id": search.id}
