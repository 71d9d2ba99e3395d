"""Database tables / schema"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONList = list[dict[str, Any]]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class DBScenario(Base):
    __tablename__ = "scenarios"
    id: Mapped[str] = mapped_column(primary_key=True)
    # keeps the collection order stable (scenario strip in the UI)
    ordinal: Mapped[int]
    name: Mapped[str]
    updated_at: Mapped[str]  # ISO 8601, as handed over by the service
    show_opponent: Mapped[bool] = mapped_column(default=False)
    show_zones: Mapped[bool] = mapped_column(default=False)
    show_lines: Mapped[bool] = mapped_column(default=False)
    drawings_visible: Mapped[bool] = mapped_column(default=True)
    board: Mapped[Optional["DBBoardState"]] = relationship(
        back_populates="scenario", cascade="all, delete-orphan", uselist=False
    )


class DBBoardState(Base):
    __tablename__ = "board_states"
    scenario_id: Mapped[str] = mapped_column(ForeignKey("scenarios.id"), primary_key=True)
    placements: Mapped[JSONList] = mapped_column(JSON, default=list)
    bench_player_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    excluded_player_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    opponent_mode: Mapped[str] = mapped_column(default="hidden")
    opponent_markers: Mapped[JSONList] = mapped_column(JSON, default=list)
    neutral_markers: Mapped[JSONList] = mapped_column(JSON, default=list)
    drawings: Mapped[JSONList] = mapped_column(JSON, default=list)
    saved_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
    scenario: Mapped[DBScenario] = relationship(back_populates="board")


class DBTacticsState(Base):
    """Single row: which scenario was active last."""

    __tablename__ = "tactics_state"
    id: Mapped[int] = mapped_column(primary_key=True)
    active_scenario_id: Mapped[Optional[str]]
