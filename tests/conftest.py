"""Pytest configuration and fixtures."""

from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from dating_room.database import session as db_session
from dating_room.database.session import Base
from dating_room.services.game_engine import GameEngine
from dating_room.services.state_manager import SessionStore
from fakes import FakeLedger


@pytest.fixture
async def test_db() -> AsyncGenerator:
    """Fresh in-memory database wired into the session factory."""
    from dating_room.database import models  # noqa: F401

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    previous = db_session._async_session
    db_session._async_session = session_maker

    yield session_maker

    db_session._async_session = previous
    await engine.dispose()


@pytest.fixture
def ledger() -> FakeLedger:
    """Ledger with two funded players (1 and 2) and a broke one (3)."""
    return FakeLedger({1: 1000, 2: 1000, 3: 0})


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def engine(store, ledger) -> GameEngine:
    return GameEngine(store, ledger)
