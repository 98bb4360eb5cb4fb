import secrets

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from searchsuggest.api.deps import hash_api_key, require_api_key
from searchsuggest.database import get_db
from searchsuggest.models.api_key import ApiKey
from searchsuggest.models.page import SearchPage
from searchsuggest.models.suggestion import Suggestion
from searchsuggest.services.suggestions import list_suggestion_records, toggle_approval

router = APIRouter(prefix="/admin")


@router.post("/api-keys", status_code=201)
async def create_api_key(
    request: dict,
    db: AsyncSession = Depends(get_db),
):
    """Create a new API key. Returns the raw key only once."""
    name = request.get("name")
    if not name:
        raise HTTPException(status_code=400, detail="name is required")

    tier = request.get("tier", "free")
    if tier not in ("free", "pro", "enterprise"):
        raise HTTPException(status_code=400, detail="tier must be free, pro, or enterprise")

    tier_limits = {
        "free": {"rate_limit": 30, "daily_quota": 500},
        "pro": {"rate_limit": 100, "daily_quota": 5000},
        "enterprise": {"rate_limit": 500, "daily_quota": 50000},
    }

    raw_key = f"sk-{secrets.token_urlsafe(32)}"

    api_key = ApiKey(
        key_hash=hash_api_key(raw_key),
        name=name,
        tier=tier,
        rate_limit=tier_limits[tier]["rate_limit"],
        daily_quota=tier_limits[tier]["daily_quota"],
    )
    db.add(api_key)
    await db.commit()

    return {
        "id": str(api_key.id),
        "name": api_key.name,
        "tier": api_key.tier,
        "key": raw_key,
        "rate_limit": api_key.rate_limit,
        "daily_quota": api_key.daily_quota,
        "warning": "Store this key securely. It will not be shown again.",
    }


@router.get("/api-keys")
async def list_api_keys(
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    result = await db.execute(select(ApiKey).order_by(ApiKey.created_at.desc()))
    keys = result.scalars().all()
    return {
        "keys": [
            {
                "id": str(k.id),
                "name": k.name,
                "tier": k.tier,
                "rate_limit": k.rate_limit,
                "daily_quota": k.daily_quota,
                "is_active": k.is_active,
                "created_at": k.created_at.isoformat() if k.created_at else None,
            }
            for k in keys
        ]
    }


@router.post("/pages", status_code=201)
async def create_page(
    request: dict,
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    title = request.get("title")
    if not title:
        raise HTTPException(status_code=400, detail="title is required")

    page = SearchPage(
        title=title,
        is_public=bool(request.get("is_public", True)),
        suggestions_enabled=bool(request.get("suggestions_enabled", True)),
    )
    db.add(page)
    await db.commit()
    return {
        "id": page.id,
        "title": page.title,
        "is_public": page.is_public,
        "suggestions_enabled": page.suggestions_enabled,
    }


@router.get("/pages")
async def list_pages(
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    counts = (
        select(Suggestion.page_id, func.count(Suggestion.id).label("suggestions"))
        .group_by(Suggestion.page_id)
        .subquery()
    )
    result = await db.execute(
        select(SearchPage, func.coalesce(counts.c.suggestions, 0))
        .outerjoin(counts, counts.c.page_id == SearchPage.id)
        .order_by(SearchPage.id)
    )
    return {
        "pages": [
            {
                "id": page.id,
                "title": page.title,
                "is_public": page.is_public,
                "suggestions_enabled": page.suggestions_enabled,
                "suggestion_count": suggestion_count,
            }
            for page, suggestion_count in result.all()
        ]
    }


@router.get("/pages/{page_id}/suggestions")
async def moderation_queue(
    page_id: int,
    approved: bool | None = Query(None, description="Filter by approval state"),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    """List suggestion records on a page for moderation."""
    suggestions = await list_suggestion_records(page_id, db, approved=approved, limit=limit)
    return {
        "page_id": page_id,
        "suggestions": [
            {
                "id": s.id,
                "term": s.term,
                "frequency": s.frequency,
                "approved": s.approved,
            }
            for s in suggestions
        ],
    }


@router.post("/suggestions/{suggestion_id}/toggle")
async def toggle_suggestion(
    suggestion_id: int,
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    message = await toggle_approval(suggestion_id, db)
    if message is None:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    return {"message": message}


@router.post("/pages/{page_id}/recount")
async def trigger_recount(
    page_id: int,
    db: AsyncSession = Depends(get_db),
    api_key: ApiKey = Depends(require_api_key),
):
    from searchsuggest.workers.recount_tasks import recount_page

    if await db.get(SearchPage, page_id) is None:
        raise HTTPException(status_code=404, detail="Search page not found")

    recount_page.delay(page_id)
    return {"message": f"Suggestion recount triggered for page {page_id}", "status": "queued"}
