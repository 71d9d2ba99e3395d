"""
The board state of one scenario: who plays where, who sits on the bench, who is left out, plus markers and drawings.

Every change of a player's membership (field / bench / excluded) goes through `BoardState.move_player`,
which is the only place that evicts the player from the other two collections.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional, Self
from uuid import UUID, uuid4

from src.core.logging_config import get_logger
from src.core.models import BoardStateModel
from src.core.shared_types import OpponentMode
from src.tactics.entities import (
    LEGACY_TOP_TO_BOTTOM_LINE,
    OPPONENT_LINE_SIZE,
    Drawing,
    NeutralMarker,
    OpponentMarker,
    Placement,
    default_opponent_line,
)

logger = get_logger("tactics.board")

# Max deviation (per coordinate) for a stored opponent line to count as the legacy layout
LEGACY_LAYOUT_TOLERANCE = 0.001


class Membership(Enum):
    FIELD = auto()
    BENCH = auto()
    EXCLUDED = auto()


@dataclass
class BoardState:
    scenario_id: UUID
    placements: list[Placement] = field(default_factory=list)
    bench_player_ids: list[UUID] = field(default_factory=list)
    excluded_player_ids: list[UUID] = field(default_factory=list)
    opponent_mode: OpponentMode = OpponentMode.HIDDEN
    opponent_markers: list[OpponentMarker] = field(default_factory=default_opponent_line)
    neutral_markers: list[NeutralMarker] = field(default_factory=list)
    drawings: list[Drawing] = field(default_factory=list)

    @classmethod
    def empty(cls, scenario_id: UUID, player_ids: Iterable[UUID]) -> Self:
        """Fresh board: whole roster on the bench, default opponent line."""
        return cls(scenario_id=scenario_id, bench_player_ids=list(player_ids))

    # --- MEMBERSHIP ---
    def membership(self, player_id: UUID) -> Optional[Membership]:
        if self.placement_for(player_id) is not None:
            return Membership.FIELD
        if player_id in self.bench_player_ids:
            return Membership.BENCH
        if player_id in self.excluded_player_ids:
            return Membership.EXCLUDED
        return None

    def move_player(
        self,
        player_id: UUID,
        target: Membership,
        placement: Optional[Placement] = None,
    ) -> None:
        """
        Single transition function for the three mutually exclusive collections.
        ----

        The player is removed from every collection except `target`, then added to `target` (idempotent).
        For Membership.FIELD a placement must be supplied; an existing placement of the same player is replaced in place,
        so the order of placements stays stable when a token is moved.
        """
        if target == Membership.FIELD and placement is None:
            raise ValueError("Moving a player onto the field requires a placement.")

        if target != Membership.FIELD:
            self.placements = [p for p in self.placements if p.player_id != player_id]
        if target != Membership.BENCH:
            self.bench_player_ids = [pid for pid in self.bench_player_ids if pid != player_id]
        if target != Membership.EXCLUDED:
            self.excluded_player_ids = [pid for pid in self.excluded_player_ids if pid != player_id]

        match target:
            case Membership.FIELD:
                assert placement is not None
                index = self._placement_index(player_id)
                if index is None:
                    self.placements.append(placement)
                else:
                    self.placements[index] = placement
            case Membership.BENCH:
                if player_id not in self.bench_player_ids:
                    self.bench_player_ids.append(player_id)
            case Membership.EXCLUDED:
                if player_id not in self.excluded_player_ids:
                    self.excluded_player_ids.append(player_id)

    def placement_for(self, player_id: UUID) -> Optional[Placement]:
        index = self._placement_index(player_id)
        return self.placements[index] if index is not None else None

    def _placement_index(self, player_id: UUID) -> Optional[int]:
        return next(
            (i for i, p in enumerate(self.placements) if p.player_id == player_id),
            None,
        )

    # --- DRAWINGS ---
    def drawing(self, drawing_id: UUID) -> Optional[Drawing]:
        return next((d for d in self.drawings if d.id == drawing_id), None)

    def remove_drawing(self, drawing_id: UUID) -> Optional[Drawing]:
        """Remove and return the drawing (None if it is not on this board)."""
        found = self.drawing(drawing_id)
        if found is not None:
            self.drawings = [d for d in self.drawings if d.id != drawing_id]
        return found

    # --- OPPONENT / NEUTRAL MARKERS ---
    def ensure_opponent_line(self) -> bool:
        """
        Guard used before every indexed access to the opponent markers.
        ----

        * Wrong number of markers -> default line
        * Layout stored by older clients (top-to-bottom) -> default line
        * Duplicate ids -> the later duplicates get fresh ids

        Returns True if anything changed.
        """
        changed = False
        if len(self.opponent_markers) != OPPONENT_LINE_SIZE:
            logger.warning(
                "Board %s had %d opponent markers, restoring default line.",
                self.scenario_id,
                len(self.opponent_markers),
            )
            self.opponent_markers = default_opponent_line()
            changed = True

        if self._looks_like_legacy_layout():
            logger.warning("Board %s uses the legacy opponent layout, restoring default line.", self.scenario_id)
            self.opponent_markers = default_opponent_line()
            changed = True

        seen: set[UUID] = set()
        for marker in self.opponent_markers:
            if marker.id in seen:
                marker.id = uuid4()
                changed = True
            seen.add(marker.id)
        return changed

    def _looks_like_legacy_layout(self) -> bool:
        if len(self.opponent_markers) != OPPONENT_LINE_SIZE:
            return False
        stored = sorted((m.point.x, m.point.y) for m in self.opponent_markers)
        legacy = sorted(LEGACY_TOP_TO_BOTTOM_LINE)
        return all(
            abs(sx - lx) <= LEGACY_LAYOUT_TOLERANCE and abs(sy - ly) <= LEGACY_LAYOUT_TOLERANCE
            for (sx, sy), (lx, ly) in zip(stored, legacy)
        )

    def neutral_marker(self, marker_id: UUID) -> Optional[NeutralMarker]:
        return next((m for m in self.neutral_markers if m.id == marker_id), None)

    # --- ROSTER ---
    def reconcile_roster(self, player_ids: Iterable[UUID]) -> bool:
        """
        Drop players that left the roster, put new roster players on the bench.
        Returns True if anything changed.
        """
        roster = list(player_ids)
        valid = set(roster)
        before = (len(self.placements), len(self.bench_player_ids), len(self.excluded_player_ids))

        self.placements = [p for p in self.placements if p.player_id in valid]
        self.bench_player_ids = [pid for pid in self.bench_player_ids if pid in valid]
        self.excluded_player_ids = [pid for pid in self.excluded_player_ids if pid in valid]
        changed = before != (len(self.placements), len(self.bench_player_ids), len(self.excluded_player_ids))

        for player_id in roster:
            if self.membership(player_id) is None:
                self.bench_player_ids.append(player_id)
                changed = True
        return changed

    def reset(self, player_ids: Iterable[UUID]) -> None:
        """Back to an empty layout. The opponent mode is kept (it mirrors a scenario display flag)."""
        self.placements = []
        self.bench_player_ids = list(player_ids)
        self.excluded_player_ids = []
        self.opponent_markers = default_opponent_line()
        self.neutral_markers = []
        self.drawings = []

    def copy_for(self, scenario_id: UUID) -> Self:
        """Deep copy that only changes the scenario linkage. Nested ids are preserved."""
        duplicate = deepcopy(self)
        duplicate.scenario_id = scenario_id
        return duplicate

    # --- CONVERSION ---
    @classmethod
    def from_model(cls, model: BoardStateModel) -> Self:
        return cls(
            scenario_id=UUID(model.scenario_id),
            placements=[Placement.from_record(r) for r in model.placements],
            bench_player_ids=[UUID(pid) for pid in model.bench_player_ids],
            excluded_player_ids=[UUID(pid) for pid in model.excluded_player_ids],
            opponent_mode=OpponentMode(model.opponent_mode),
            opponent_markers=[OpponentMarker.from_record(r) for r in model.opponent_markers],
            neutral_markers=[NeutralMarker.from_record(r) for r in model.neutral_markers],
            drawings=[Drawing.from_record(r) for r in model.drawings],
        )

    def to_model(self) -> BoardStateModel:
        return BoardStateModel(
            scenario_id=str(self.scenario_id),
            placements=[p.to_record() for p in self.placements],
            bench_player_ids=[str(pid) for pid in self.bench_player_ids],
            excluded_player_ids=[str(pid) for pid in self.excluded_player_ids],
            opponent_mode=self.opponent_mode.value,
            opponent_markers=[m.to_record() for m in self.opponent_markers],
            neutral_markers=[m.to_record() for m in self.neutral_markers],
            drawings=[d.to_record() for d in self.drawings],
        )
