# tests/conftest.py
from itertools import count
from typing import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401
from core.base import Base
from core.depends import get_store
from core.settings import settings
from core.store import Store
from crud.vote_crud import VoteLedger
from main import app
from models import Video, VideoStatus

MAX_VOTES = 5
VALID_TOKEN = "12345|abcdefghijklmnopqrstu"
OPERATOR_KEY = "operator-test-key"

_VIDEO_COUNTER = count(1)


@pytest_asyncio.fixture()
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    # A file database so concurrent sessions get their own connections
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'votes.db'}",
        connect_args={"timeout": 10},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
def store(session_factory) -> Store:
    return Store(session_factory, max_retries=2, backoff_seconds=0, timeout_seconds=10)


@pytest.fixture()
def ledger(store: Store) -> VoteLedger:
    return VoteLedger(store, max_votes=MAX_VOTES)


@pytest_asyncio.fixture()
async def client(store: Store) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[get_store] = lambda: store
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}


@pytest.fixture()
def operator_headers(monkeypatch) -> dict:
    monkeypatch.setattr(settings, "OPERATOR_API_KEY", OPERATOR_KEY)
    return {"X-Operator-Key": OPERATOR_KEY}


@pytest.fixture()
def make_videos(session_factory):
    """Insert ``n`` videos and return their ids."""
    async def _make(n: int = 1, status: VideoStatus = VideoStatus.ready, with_external_id: bool = False) -> list[str]:
        ids = []
        async with session_factory() as session:
            async with session.begin():
                for _ in range(n):
                    number = next(_VIDEO_COUNTER)
                    video = Video(
                        id=f"video_test_{number}",
                        external_id=f"drive_{number}" if with_external_id else None,
                        title=f"Sponsor video {number}",
                        description="",
                        status=status,
                    )
                    session.add(video)
                    ids.append(video.id)
        return ids

    return _make
