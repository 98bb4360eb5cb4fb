import asyncio

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import MetaData, create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from searchsuggest.database import Base
from searchsuggest.models import ApiKey, SearchEvent, SearchPage, Suggestion

TEST_API_KEY = "sk-test"


class SqliteDatabase:
    """Throwaway SQLite file shared by a sync seeding engine and async sessions."""

    def __init__(self, path, unique_suggestions: bool = True):
        self.path = path
        self.url = f"sqlite+aiosqlite:///{path}"
        self.sync_engine = create_engine(f"sqlite:///{path}")

        metadata = Base.metadata
        if not unique_suggestions:
            # Schema without the (term, page) constraint, to hold duplicate rows
            metadata = MetaData()
            for table in Base.metadata.sorted_tables:
                table.to_metadata(metadata)
            suggestions = metadata.tables["search_suggestions"]
            for constraint in list(suggestions.constraints):
                if constraint.name == "uq_suggestion_term_page":
                    suggestions.constraints.discard(constraint)
        metadata.create_all(self.sync_engine)

    def add_page(self, title: str = "Site search", **kwargs) -> int:
        with Session(self.sync_engine) as session:
            page = SearchPage(title=title, **kwargs)
            session.add(page)
            session.commit()
            return page.id

    def add_searches(self, term: str, page_id: int, count: int = 1, results: int = 1):
        with Session(self.sync_engine) as session:
            session.add_all(
                SearchEvent(term=term, results=results, elapsed_time=0.1, engine="test", page_id=page_id)
                for _ in range(count)
            )
            session.commit()

    def add_suggestion(self, term: str, page_id: int, frequency: int = 0, approved: bool = True) -> int:
        with Session(self.sync_engine) as session:
            suggestion = Suggestion(term=term, page_id=page_id, frequency=frequency, approved=approved)
            session.add(suggestion)
            session.commit()
            return suggestion.id

    def suggestions(self, term: str | None = None, page_id: int | None = None) -> list[Suggestion]:
        with Session(self.sync_engine, expire_on_commit=False) as session:
            query = session.query(Suggestion)
            if term is not None:
                query = query.filter(Suggestion.term == term)
            if page_id is not None:
                query = query.filter(Suggestion.page_id == page_id)
            return query.order_by(Suggestion.id).all()

    def search_count(self) -> int:
        with Session(self.sync_engine) as session:
            return session.query(SearchEvent).count()

    def run(self, scenario):
        """Run ``scenario(session_factory)`` on a fresh event loop."""

        async def _execute():
            engine = create_async_engine(self.url)
            session_factory = async_sessionmaker(
                engine, class_=AsyncSession, expire_on_commit=False
            )
            try:
                return await scenario(session_factory)
            finally:
                await engine.dispose()

        return asyncio.run(_execute())

    def dispose(self):
        self.sync_engine.dispose()


@pytest.fixture
def allow_all():
    async def can_view(page_id: int) -> bool:
        return True

    return can_view


@pytest.fixture
def deny_all():
    async def can_view(page_id: int) -> bool:
        return False

    return can_view


@pytest.fixture
def admin_headers():
    return {"X-API-Key": TEST_API_KEY}


@pytest.fixture
def database(tmp_path):
    db = SqliteDatabase(tmp_path / "suggestions.db")
    yield db
    db.dispose()


@pytest.fixture
def loose_database(tmp_path):
    db = SqliteDatabase(tmp_path / "loose.db", unique_suggestions=False)
    yield db
    db.dispose()


@pytest.fixture
def client(database):
    from searchsuggest.api.deps import get_api_key
    from searchsuggest.database import get_db
    from searchsuggest.main import app

    # NullPool: TestClient runs requests on its own event loop
    engine = create_async_engine(database.url, poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_api_key(request: Request):
        # Skips Redis rate limiting
        if request.headers.get("X-API-Key") == TEST_API_KEY:
            return ApiKey(key_hash="test", name="test", tier="pro", rate_limit=100)
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_api_key] = override_get_api_key
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
