import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from searchsuggest.config import settings
from searchsuggest.database import is_unique_violation
from searchsuggest.models.analytics import SearchEvent
from searchsuggest.models.suggestion import Suggestion

logger = logging.getLogger("searchsuggest.suggestions")

# Shared by the write and read paths so nothing is stored that can't be queried.
MIN_TERM_LENGTH = 3
# Suggestion.term column width
MAX_TERM_LENGTH = 255

ViewCheck = Callable[[int], Awaitable[bool]]


@dataclass(frozen=True)
class SuggestionOptions:
    enable_analytics: bool
    automatic_approval: bool

    @classmethod
    def from_settings(cls) -> "SuggestionOptions":
        return cls(
            enable_analytics=settings.enable_analytics,
            automatic_approval=settings.automatic_approval,
        )


async def count_qualifying_searches(term: str, page_id: int, db: AsyncSession) -> int:
    """Count searches on a page for a (lowercase) term that returned results."""
    result = await db.execute(
        select(func.count(SearchEvent.id)).where(
            func.lower(SearchEvent.term) == term,
            SearchEvent.page_id == page_id,
            SearchEvent.results > 0,
        )
    )
    return result.scalar() or 0


async def _find_suggestion(term: str, page_id: int, db: AsyncSession) -> Suggestion | None:
    result = await db.execute(
        select(Suggestion)
        .where(Suggestion.term == term, Suggestion.page_id == page_id)
        .order_by(Suggestion.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def record_suggestion(
    term: str,
    page_id: int,
    db: AsyncSession,
    options: SuggestionOptions | None = None,
) -> Suggestion | None:
    """Create or refresh the suggestion for a search term on a page.

    The frequency is always recounted from the search log rather than
    incremented, so a missed write heals on the next one. Two callers may both
    miss the lookup and insert the same (term, page); the database rejects the
    second insert and the loser collapses whatever rows exist into one.
    """
    if not MIN_TERM_LENGTH <= len(term) <= MAX_TERM_LENGTH:
        return None

    options = options or SuggestionOptions.from_settings()
    term = term.lower()

    suggestion = await _find_suggestion(term, page_id, db)
    frequency = await count_qualifying_searches(term, page_id, db)
    if suggestion is not None:
        suggestion.frequency = frequency
    else:
        suggestion = Suggestion(
            term=term,
            page_id=page_id,
            frequency=frequency,
            approved=options.automatic_approval,
        )
        db.add(suggestion)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not is_unique_violation(e):
            raise
        suggestion = await _repair_suggestion(term, page_id, db, e)

    return suggestion


async def _repair_suggestion(
    term: str,
    page_id: int,
    db: AsyncSession,
    error: IntegrityError,
) -> Suggestion:
    """Collapse concurrent inserts of one (term, page) down to a single row.

    The lowest id survives, so repairers running at the same time agree on
    which row to keep.
    """
    result = await db.execute(
        select(Suggestion)
        .where(Suggestion.term == term, Suggestion.page_id == page_id)
        .order_by(Suggestion.id)
    )
    suggestions = list(result.scalars().all())
    if not suggestions:
        raise error

    survivor, *duplicates = suggestions
    if duplicates:
        await db.execute(
            delete(Suggestion).where(Suggestion.id.in_([d.id for d in duplicates]))
        )
    survivor.frequency = await count_qualifying_searches(term, page_id, db)
    await db.commit()

    logger.warning(
        "Repaired suggestion race term=%r page_id=%d removed=%d frequency=%d",
        term,
        page_id,
        len(duplicates),
        survivor.frequency,
    )
    return survivor


def _unique_terms(terms: Iterable[str]) -> list[str]:
    # Order-preserving; the unique constraint should already guarantee this.
    return list(dict.fromkeys(terms))


async def get_suggestions(
    term: str,
    page_id: int,
    db: AsyncSession,
    can_view: ViewCheck,
    limit: int = 5,
    approved: bool = True,
) -> list[str]:
    """Most frequent suggestions on a page starting with the given term."""
    if not term or not MIN_TERM_LENGTH <= len(term) <= MAX_TERM_LENGTH:
        return []
    if not await can_view(page_id):
        return []

    result = await db.execute(
        select(Suggestion.term)
        .where(
            Suggestion.term.startswith(term.lower(), autoescape=True),
            Suggestion.approved == approved,
            Suggestion.page_id == page_id,
        )
        .order_by(Suggestion.frequency.desc())
        .limit(limit)
    )
    return _unique_terms(result.scalars().all())


async def get_page_suggestions(
    page_id: int,
    db: AsyncSession,
    can_view: ViewCheck,
    limit: int = 0,
    approved: bool = True,
) -> list[str]:
    """All suggestions on a page by frequency. A limit of 0 means no limit."""
    if not await can_view(page_id):
        return []

    stmt = (
        select(Suggestion.term)
        .where(Suggestion.approved == approved, Suggestion.page_id == page_id)
        .order_by(Suggestion.frequency.desc())
    )
    if limit:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return _unique_terms(result.scalars().all())


async def toggle_approval(suggestion_id: int, db: AsyncSession) -> str | None:
    """Flip a suggestion between approved and disapproved."""
    suggestion = await db.get(Suggestion, suggestion_id)
    if suggestion is None:
        return None

    approved = not suggestion.approved
    suggestion.approved = approved
    await db.commit()

    status = "Approved" if approved else "Disapproved"
    logger.info("%s suggestion id=%d term=%r", status, suggestion_id, suggestion.term)
    return f'{status} "{suggestion.term}"!'


async def list_suggestion_records(
    page_id: int,
    db: AsyncSession,
    approved: bool | None = None,
    limit: int = 100,
) -> list[Suggestion]:
    """Full suggestion rows for moderation, most frequent first."""
    stmt = select(Suggestion).where(Suggestion.page_id == page_id)
    if approved is not None:
        stmt = stmt.where(Suggestion.approved == approved)
    stmt = stmt.order_by(Suggestion.frequency.desc(), Suggestion.id).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def recount_page_suggestions(page_id: int, db: AsyncSession) -> int:
    """Recompute every cached frequency on a page. Returns rows changed."""
    lowered = func.lower(SearchEvent.term)
    counts_result = await db.execute(
        select(lowered.label("term"), func.count(SearchEvent.id).label("count"))
        .where(SearchEvent.page_id == page_id, SearchEvent.results > 0)
        .group_by(lowered)
    )
    counts = {row.term: row.count for row in counts_result}

    result = await db.execute(select(Suggestion).where(Suggestion.page_id == page_id))
    updated = 0
    for suggestion in result.scalars().all():
        frequency = counts.get(suggestion.term, 0)
        if suggestion.frequency != frequency:
            suggestion.frequency = frequency
            updated += 1

    await db.commit()
    logger.info("Recounted suggestions for page_id=%d: %d updated", page_id, updated)
    return updated
