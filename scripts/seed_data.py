"""Seed the suggestion service with a demo page and search history.

Usage:
    python -m scripts.seed_data

This script:
1. Creates an API key for testing
2. Creates a public demo search page
3. Records a batch of sample searches on it
4. Approves the resulting suggestions
"""

import asyncio
import secrets
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

sys.path.insert(0, ".")

from searchsuggest.api.deps import hash_api_key
from searchsuggest.config import settings
from searchsuggest.models.api_key import ApiKey
from searchsuggest.models.page import SearchPage
from searchsuggest.services.analytics import record_search
from searchsuggest.services.suggestions import (
    SuggestionOptions,
    list_suggestion_records,
    toggle_approval,
)

# (term, results, repeats)
SAMPLE_SEARCHES = [
    ("Annual report", 12, 9),
    ("annual leave", 7, 5),
    ("Annual budget", 4, 5),
    ("anniversary", 2, 1),
    ("parking permits", 3, 6),
    ("parks and gardens", 15, 4),
    ("library hours", 1, 8),
    ("library cards", 0, 3),
    ("xq", 1, 2),
]


async def main():
    print("=== SearchSuggest Seeder ===\n")

    engine = create_async_engine(settings.database_url, pool_size=5)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    options = SuggestionOptions(enable_analytics=True, automatic_approval=False)

    async with session_factory() as db:
        # 1. Create test API key
        print("[1/4] Creating test API key...")
        raw_key = f"sk-{secrets.token_urlsafe(32)}"
        existing = await db.execute(
            select(ApiKey).where(ApiKey.name == "seed-test-key")
        )
        if not existing.scalar_one_or_none():
            api_key = ApiKey(
                key_hash=hash_api_key(raw_key),
                name="seed-test-key",
                tier="pro",
                rate_limit=100,
                daily_quota=5000,
            )
            db.add(api_key)
            await db.commit()
            print(f"  API Key created: {raw_key}")
            print("  (Save this key - it won't be shown again)")
        else:
            print("  Test API key already exists, skipping")

        # 2. Demo page
        print("\n[2/4] Creating demo search page...")
        page = SearchPage(title="Site search", is_public=True, suggestions_enabled=True)
        db.add(page)
        await db.commit()
        print(f"  Page id: {page.id}")

        # 3. Searches
        print("\n[3/4] Recording sample searches...")
        recorded = 0
        for term, results, repeats in SAMPLE_SEARCHES:
            for _ in range(repeats):
                await record_search(term, results, 0.05, "database", page.id, db, options)
                recorded += 1
        print(f"  Recorded {recorded} searches")

        # 4. Moderation
        print("\n[4/4] Approving suggestions...")
        pending = await list_suggestion_records(page.id, db, approved=False)
        for suggestion in pending:
            print(f"  {await toggle_approval(suggestion.id, db)} (frequency {suggestion.frequency})")

        print("\n=== SearchSuggest Seed Complete ===")
        print(f"Try: http://localhost:8000/api/v1/suggestions?term=ann&page={page.id}")
        print(f"OpenAPI docs: http://localhost:8000/docs")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
