"""
Pytest will auto-discover / import this file called 'conftest.py'.
This file defines fixtures/variables required for testing multiple layers.
"""

from typing import Generator
from uuid import uuid4

import pytest
from sqlalchemy import StaticPool, create_engine
from sqlalchemy.orm import Session, sessionmaker
from fakes import ManualScheduler, MockStore

from src.core.shared_types import PlayerPosition
from src.db.schema import Base
from src.tactics.entities import RosterPlayer

# Setup an in-memory SQLite database for testing
DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db_session_repo() -> Generator[Session, None, None]:
    """Connection to a test database. Tables are removed at teardown to make unit tests of the store independent of each other."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        Base.metadata.drop_all(bind=engine)
        db.close()


@pytest.fixture
def mock_store() -> Generator[MockStore, None, None]:
    yield MockStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def roster() -> list[RosterPlayer]:
    """Small squad: keeper, two centre backs, a holding midfielder and a striker."""
    return [
        RosterPlayer(uuid4(), "Manuel Torhüter", 1, PlayerPosition.TW),
        RosterPlayer(uuid4(), "Jonas Innen", 4, PlayerPosition.IV),
        RosterPlayer(uuid4(), "Lars Innen", 5, PlayerPosition.IV),
        RosterPlayer(uuid4(), "Kai Sechser", 6, PlayerPosition.DM),
        RosterPlayer(uuid4(), "Timo Stürmer", 9, PlayerPosition.ST),
    ]
