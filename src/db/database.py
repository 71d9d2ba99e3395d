"""Generate database session"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from src.core.config import get_settings
from src.db.schema import Base


def create_db_engine(database_url: str | None = None) -> Engine:
    """Engine for the configured database. Ensures all tables are created."""
    engine = create_engine(database_url or get_settings().database_url)
    Base.metadata.create_all(bind=engine)
    return engine


@contextmanager
def get_db(engine: Engine | None = None) -> Iterator[Session]:
    session_factory = sessionmaker(bind=engine or create_db_engine())
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
