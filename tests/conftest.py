"""Pytest configuration and fixtures.

Repository tests run against SQLite in memory (aiosqlite); each test gets
a fresh schema seeded like this:

    posts:    1 "Model 1", 2 "Model 2"
    comments: 1 "Model 1", 2 "Model 2", 3 "Model 3" (soft deleted)
"""

from datetime import datetime

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cachedrepo.domain.not_found import not_found_factories
from cachedrepo.infrastructure.cache.memory_cache import MemoryCacheStore
from cachedrepo.infrastructure.persistence.database import Base
from tests.models import Comment, Post
from tests.repositories import (
    CachedCommentRepository,
    CachedPostRepository,
    CommentRepository,
    PostRepository,
)


class QueryLog:
    """Collects every SQL statement sent to the engine."""

    def __init__(self) -> None:
        self.statements: list[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany) -> None:
        self.statements.append(statement)

    def __len__(self) -> int:
        return len(self.statements)

    def clear(self) -> None:
        self.statements.clear()

    @property
    def selects(self) -> list[str]:
        return [s for s in self.statements if s.lstrip().upper().startswith("SELECT")]


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncSession:
    """Session seeded with posts and comments. Rolled back after the test."""
    factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with factory() as session:
        session.add_all(
            [
                Post(id=1, text="Model 1"),
                Post(id=2, text="Model 2"),
                Comment(id=1, text="Model 1"),
                Comment(id=2, text="Model 2"),
                Comment(id=3, text="Model 3", deleted_at=datetime(2000, 1, 1)),
            ]
        )
        await session.flush()
        session.expunge_all()
        yield session
        await session.rollback()


@pytest.fixture
def query_log(engine, db_session) -> QueryLog:
    """Statements executed after seeding."""
    log = QueryLog()
    event.listen(engine.sync_engine, "before_cursor_execute", log)
    yield log
    event.remove(engine.sync_engine, "before_cursor_execute", log)


@pytest.fixture
def cache() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture(params=["plain", "cached"])
def post_repo(request, db_session, cache):
    """Post repository in each flavour; both must satisfy the same contract."""
    if request.param == "plain":
        return PostRepository(db_session)
    return CachedPostRepository(PostRepository(db_session), cache)


@pytest.fixture
def cached_post_repo(db_session, cache) -> CachedPostRepository:
    return CachedPostRepository(PostRepository(db_session), cache)


@pytest.fixture(params=["plain", "cached"])
def comment_repo(request, db_session, cache):
    if request.param == "plain":
        return CommentRepository(db_session)
    return CachedCommentRepository(CommentRepository(db_session), cache)


@pytest.fixture
def cached_comment_repo(db_session, cache) -> CachedCommentRepository:
    return CachedCommentRepository(CommentRepository(db_session), cache)


@pytest.fixture(autouse=True)
def _reset_not_found_factory():
    yield
    not_found_factories.reset()
