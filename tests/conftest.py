"""
tests/conftest.py

Shared fixtures: a real SQLite database per test and fake network boundaries.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

import db.models  # noqa: F401: registers all ORM models on Base.metadata
from app.errors import FetchError
from db.base import Base
from db.config import DatabaseSettings
from db.models.tracked_entity import TrackedEntity
from db.session import build_session_factory, create_db_engine


class FakeFetcher:
    """
    Stands in for ContentFetcher. Pages are set per URL; ``failing`` URLs raise.
    """

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages: dict[str, str] = dict(pages or {})
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def fetch(self, url: str, *, timeout_seconds: float | None = None) -> str:
        self.calls.append(url)
        if url in self.failing or url not in self.pages:
            raise FetchError(f"Request to {url} failed: unreachable", url=url)
        return self.pages[url]


class FixedClock:
    """
    Deterministic clock that advances one second per call.
    """

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


@pytest.fixture()
def engine(tmp_path) -> Iterator[Engine]:
    db_engine = create_db_engine(DatabaseSettings(url=f"sqlite:///{tmp_path / 'pipeline.db'}"))
    Base.metadata.create_all(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return build_session_factory(engine)


@pytest.fixture()
def db(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def make_entity(session_factory: sessionmaker[Session]) -> Callable[..., TrackedEntity]:
    """
    Create and commit a TrackedEntity in its own session.
    """

    def _make(
        name: str = "Acme",
        url: str = "https://www.acme.test",
        *,
        is_selected: bool = True,
        is_active: bool = True,
        review_source_url: str | None = None,
    ) -> TrackedEntity:
        session = session_factory()
        try:
            entity = TrackedEntity(
                owner_id="owner-1",
                name=name,
                url=url,
                is_selected=is_selected,
                is_active=is_active,
                review_source_url=review_source_url,
            )
            session.add(entity)
            session.commit()
            return entity
        finally:
            session.close()

    return _make
