"""Response models handed to the view layer (read-only snapshots of the engine state)."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, field_validator, model_validator

from src.core.exceptions import InvalidStateError
from src.core.shared_types import DrawingKind, OpponentMode, TacticalZone
from src.tactics.entities import OPPONENT_LINE_SIZE


class PointResponse(BaseModel):
    x: float
    y: float


class PlacementResponse(BaseModel):
    id: UUID
    player_id: UUID
    point: PointResponse
    role: str
    zone: Optional[TacticalZone]


class MarkerResponse(BaseModel):
    id: UUID
    point: PointResponse
    name: str


class DrawingResponse(BaseModel):
    id: UUID
    kind: DrawingKind
    points: list[PointResponse]
    color: str
    is_temporary: bool
    created_at: datetime

    @model_validator(mode="after")
    def validate_point_count(self) -> "DrawingResponse":
        if self.kind == DrawingKind.MARK and len(self.points) != 1:
            raise InvalidStateError(f"A mark needs exactly one point, got {len(self.points)}.")
        if self.kind != DrawingKind.MARK and len(self.points) < 2:
            raise InvalidStateError(f"A {self.kind} needs a start and an end point, got {len(self.points)}.")
        return self

    def opacity(self, now: datetime, lifetime: float) -> float:
        """Linear fade for temporary drawings: 1 when created, 0 when the lifetime is over."""
        if not self.is_temporary:
            return 1.0
        elapsed = (now - self.created_at).total_seconds()
        return min(1.0, max(0.0, 1.0 - elapsed / lifetime))


class ScenarioResponse(BaseModel):
    id: UUID
    name: str
    updated_at: datetime
    show_opponent: bool
    show_zones: bool
    show_lines: bool
    drawings_visible: bool


class BoardStateResponse(BaseModel):
    scenario_id: UUID
    placements: list[PlacementResponse]
    bench_player_ids: list[UUID]
    excluded_player_ids: list[UUID]
    opponent_mode: OpponentMode
    opponent_markers: list[MarkerResponse]
    neutral_markers: list[MarkerResponse]
    drawings: list[DrawingResponse]

    @field_validator("opponent_markers")
    @classmethod
    def validate_opponent_line(cls, value: list[MarkerResponse]) -> list[MarkerResponse]:
        if len(value) != OPPONENT_LINE_SIZE:
            raise InvalidStateError(
                f"The opponent line must have {OPPONENT_LINE_SIZE} markers, got {len(value)}."
            )
        return value


class TacticsStateResponse(BaseModel):
    active_scenario_id: UUID
    scenarios: list[ScenarioResponse]
    board: BoardStateResponse
    selected_player_ids: list[UUID]
    selected_drawing_ids: list[UUID]
