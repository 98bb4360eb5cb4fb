import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from searchsuggest.models.analytics import SearchEvent
from searchsuggest.services.suggestions import SuggestionOptions, record_suggestion

logger = logging.getLogger("searchsuggest.analytics")


async def record_search(
    term: str,
    results: int,
    elapsed_time: float,
    engine: str,
    page_id: int,
    db: AsyncSession,
    options: SuggestionOptions | None = None,
) -> SearchEvent | None:
    """Log a search for analytics and feed it into the suggestions.

    Returns None without writing anything when analytics are disabled.
    """
    options = options or SuggestionOptions.from_settings()
    if not options.enable_analytics:
        return None

    search = SearchEvent(
        term=term,
        results=results,
        elapsed_time=elapsed_time,
        engine=engine,
        page_id=page_id,
    )
    db.add(search)
    # Committed on its own so a suggestion rollback can't take the event with it.
    await db.commit()

    if results > 0:
        await record_suggestion(term, page_id, db, options)
    return search


def _parse_period(period: str) -> datetime:
    """Parse a period string like '7d', '30d', '24h' into a start datetime."""
    now = datetime.now(timezone.utc)
    if period.endswith("d"):
        days = int(period[:-1])
        return now - timedelta(days=days)
    elif period.endswith("h"):
        hours = int(period[:-1])
        return now - timedelta(hours=hours)
    else:
        return now - timedelta(days=7)


async def get_page_search_stats(page_id: int, period: str, db: AsyncSession) -> dict:
    """Aggregated search statistics for one page over a time period."""
    start = _parse_period(period)
    in_window = (SearchEvent.page_id == page_id, SearchEvent.created_at >= start)

    total = await db.execute(select(func.count(SearchEvent.id)).where(*in_window))
    total_searches = total.scalar() or 0

    avg_time = await db.execute(select(func.avg(SearchEvent.elapsed_time)).where(*in_window))
    avg_time_ms = round((avg_time.scalar() or 0) * 1000, 1)

    zero_results = await db.execute(
        select(func.count(SearchEvent.id)).where(*in_window, SearchEvent.results == 0)
    )
    zero_result_count = zero_results.scalar() or 0

    lowered = func.lower(SearchEvent.term)
    top_t = await db.execute(
        select(
            lowered.label("term"),
            func.count(SearchEvent.id).label("count"),
            func.avg(SearchEvent.results).label("avg_results"),
        )
        .where(*in_window)
        .group_by(lowered)
        .order_by(func.count(SearchEvent.id).desc())
        .limit(20)
    )
    top_terms = [
        {
            "term": row.term,
            "count": row.count,
            "avg_results": round(row.avg_results or 0, 1),
        }
        for row in top_t
    ]

    by_engine = await db.execute(
        select(SearchEvent.engine, func.count(SearchEvent.id).label("count"))
        .where(*in_window)
        .group_by(SearchEvent.engine)
    )
    searches_by_engine = {row.engine or "unknown": row.count for row in by_engine}

    return {
        "page_id": page_id,
        "period": period,
        "total_searches": total_searches,
        "avg_time_ms": avg_time_ms,
        "zero_result_searches": zero_result_count,
        "zero_result_rate": round(zero_result_count / max(total_searches, 1) * 100, 1),
        "searches_by_engine": searches_by_engine,
        "top_terms": top_terms,
    }
