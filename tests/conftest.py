# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from folio_stage.api.v1.dependencies import create_access_token, get_clock
from folio_stage.db.session import Base, build_engine, build_sessionmaker, get_sessionmaker
from folio_stage.main import app as fastapi_app
from folio_stage.models import Node, Post, SlugReservation, User
from folio_stage.repositories.post_repo import PostRepository
from folio_stage.services import NodeStore, PostController, SlugRegistry, UserDirectory

SLUG_NAMESPACE = "posts_slugs"
START_MS = 1_700_000_000_000


class FakeClock:
    """Millisecond clock that only moves when a test tells it to."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def tick(self, ms: int = 1_000) -> int:
        self.now += ms
        return self.now


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "folio.db"


@pytest.fixture()
def sync_engine(db_path: Path) -> Iterator[Engine]:
    """Blocking engine used to create the schema and inspect rows directly."""
    engine = create_engine(f"sqlite:///{db_path}", poolclass=NullPool)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def async_engine(db_path: Path, sync_engine: Engine) -> Iterator[AsyncEngine]:
    # NullPool keeps connections from outliving the event loop that opened them.
    yield build_engine(f"sqlite+aiosqlite:///{db_path}", poolclass=NullPool)


@pytest.fixture()
def sessions(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(async_engine)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def slugs(sessions: async_sessionmaker[AsyncSession]) -> SlugRegistry:
    return SlugRegistry(sessions)


@pytest.fixture()
def nodes(sessions: async_sessionmaker[AsyncSession]) -> NodeStore:
    return NodeStore(sessions)


@pytest.fixture()
def controller(
    sessions: async_sessionmaker[AsyncSession],
    slugs: SlugRegistry,
    nodes: NodeStore,
    clock: FakeClock,
) -> PostController:
    return PostController(
        PostRepository(sessions),
        slugs,
        nodes,
        UserDirectory(sessions),
        slug_namespace=SLUG_NAMESPACE,
        max_limit=20,
        clock=clock,
    )


def count_rows(engine: Engine, model: Any) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model)) or 0


@pytest.fixture()
def row_counts(sync_engine: Engine):
    """Return a callable snapshotting the row count of every post-related table."""

    def _snapshot() -> dict[str, int]:
        return {
            model.__tablename__: count_rows(sync_engine, model)
            for model in (Post, Node, SlugReservation)
        }

    return _snapshot


@pytest.fixture()
def make_user(sync_engine: Engine):
    def _make_user(user_id: str = "user-1", **fields: Any) -> User:
        fields.setdefault("name", "Test User")
        fields.setdefault("email", f"{user_id}@example.com")
        fields.setdefault("auth", "secret-hash")
        with Session(sync_engine, expire_on_commit=False) as session:
            user = User(id=user_id, **fields)
            session.add(user)
            session.commit()
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user) -> User:
    """Create and return a persisted test user."""
    return make_user("7d3f1c2a-9b8e-4f60-a1d2-3c4b5a6e7f80", name="Ada")


@pytest.fixture()
def auth_headers(test_user: User) -> dict[str, str]:
    token = create_access_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def app(
    sessions: async_sessionmaker[AsyncSession],
    clock: FakeClock,
) -> Iterator[FastAPI]:
    fastapi_app.dependency_overrides[get_sessionmaker] = lambda: sessions
    fastapi_app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield fastapi_app
    finally:
        fastapi_app.dependency_overrides.pop(get_sessionmaker, None)
        fastapi_app.dependency_overrides.pop(get_clock, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client
