"""Suggestion race check.

Usage:
    python -m scripts.race_check [concurrency]

Fires concurrent searches for the same brand-new term on one page, each in
its own session, so the suggestion inserts collide. Reports:
- Latency (p50, p95, max)
- Number of suggestion rows left for the term (must be 1)
- Surviving frequency vs. searches recorded
"""

import asyncio
import statistics
import sys
import time
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, ".")

from searchsuggest.config import settings
from searchsuggest.models.page import SearchPage
from searchsuggest.models.suggestion import Suggestion
from searchsuggest.services.analytics import record_search
from searchsuggest.services.suggestions import SuggestionOptions, recount_page_suggestions

DEFAULT_CONCURRENCY = 20


async def main(concurrency: int):
    print("=== SearchSuggest Race Check ===\n")

    engine = create_async_engine(
        settings.database_url, pool_size=concurrency, max_overflow=0
    )
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    options = SuggestionOptions(enable_analytics=True, automatic_approval=True)
    term = f"race-{uuid.uuid4().hex[:8]}"

    async with session_factory() as db:
        page = SearchPage(title="Race check", is_public=False)
        db.add(page)
        await db.commit()
        page_id = page.id

    latencies: list[float] = []
    errors: list[Exception] = []

    async def search_once():
        async with session_factory() as db:
            start = time.time()
            try:
                await record_search(term, 1, 0.01, "race", page_id, db, options)
            except Exception as e:
                errors.append(e)
            latencies.append((time.time() - start) * 1000)

    print(f"Running {concurrency} concurrent searches for '{term}' on page {page_id}...")
    await asyncio.gather(*(search_once() for _ in range(concurrency)))

    async with session_factory() as db:
        rows = await db.execute(
            select(func.count(Suggestion.id)).where(
                Suggestion.term == term, Suggestion.page_id == page_id
            )
        )
        row_count = rows.scalar() or 0
        frequency = await db.execute(
            select(Suggestion.frequency).where(
                Suggestion.term == term, Suggestion.page_id == page_id
            )
        )
        before_recount = frequency.scalars().first()
        await recount_page_suggestions(page_id, db)
        frequency = await db.execute(
            select(Suggestion.frequency).where(
                Suggestion.term == term, Suggestion.page_id == page_id
            )
        )
        after_recount = frequency.scalars().first()

    await engine.dispose()

    print("\n=== Results ===\n")
    sorted_lat = sorted(latencies)
    if sorted_lat:
        print(f"  p50:  {sorted_lat[len(sorted_lat)//2]:6.1f} ms")
        print(f"  p95:  {sorted_lat[int(len(sorted_lat)*0.95)]:6.1f} ms")
        print(f"  max:  {sorted_lat[-1]:6.1f} ms")
        print(f"  mean: {statistics.mean(latencies):6.1f} ms")
    print(f"\nErrors: {len(errors)}")
    for e in errors[:5]:
        print(f"  {type(e).__name__}: {e}")
    print(f"Suggestion rows: {row_count} (expected 1)")
    print(f"Frequency after writes: {before_recount}, after recount: {after_recount} (expected {concurrency})")
    print("OK" if row_count == 1 and after_recount == concurrency else "FAILED")


if __name__ == "__main__":
    asyncio.run(main(int(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_CONCURRENCY))
