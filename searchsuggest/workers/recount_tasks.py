import asyncio
import logging

from searchsuggest.config import settings
from searchsuggest.workers.celery_app import celery

logger = logging.getLogger("searchsuggest.workers.recount")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _recount(page_ids: list[int] | None = None) -> dict[int, int]:
    from sqlalchemy import select
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from searchsuggest.models.page import SearchPage
    from searchsuggest.services.suggestions import recount_page_suggestions

    # Fresh engine: the worker's event loop differs from any pooled connection's
    engine = create_async_engine(settings.database_url, pool_size=5)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    updated: dict[int, int] = {}
    try:
        async with session_factory() as session:
            if page_ids is None:
                result = await session.execute(select(SearchPage.id).order_by(SearchPage.id))
                page_ids = [row[0] for row in result.all()]

            for page_id in page_ids:
                try:
                    updated[page_id] = await recount_page_suggestions(page_id, session)
                except Exception as e:
                    await session.rollback()
                    logger.error("Recount failed for page %d: %s", page_id, e)
    finally:
        await engine.dispose()
    return updated


@celery.task(name="searchsuggest.workers.recount_tasks.recount_page")
def recount_page(page_id: int):
    """Recount suggestion frequencies on one page from the search log."""
    updated = _run_async(_recount([page_id]))
    return {"page_id": page_id, "updated": updated.get(page_id, 0)}


@celery.task(name="searchsuggest.workers.recount_tasks.recount_all_suggestions")
def recount_all_suggestions():
    """Recount suggestion frequencies on every page."""
    logger.info("Starting suggestion recount")
    updated = _run_async(_recount())
    logger.info(
        "Suggestion recount complete: %d pages, %d suggestions updated",
        len(updated),
        sum(updated.values()),
    )
    return {"pages": len(updated), "updated": sum(updated.values())}
