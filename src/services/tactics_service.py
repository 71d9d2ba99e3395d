"""
Orchestration of view-layer intents: resolves the active scenario, applies the intent through the domain layer, and persists the result.

All commands and the expiry callback run under one re-entrant lock, so the timer threads never interleave with a half-applied command.
"""

import threading
from contextlib import contextmanager
from dataclasses import asdict
from typing import Iterator, Optional, Sequence
from uuid import UUID

from src.api.models import BoardStateResponse, ScenarioResponse, TacticsStateResponse
from src.core.config import TacticsSettings, get_settings
from src.core.exceptions import RepositoryError
from src.core.logging_config import get_logger, setup_logging
from src.core.shared_types import Direction, DrawingKind, OpponentMode, TacticalZone
from src.db.database import create_db_engine, get_db
from src.db.repository import TacticsStore
from src.db.sql_repository import SQLTacticsStore
from src.services.scenario_manager import NEW_SCENARIO_NAME, ScenarioManager
from src.tactics import placement as placement_engine
from src.tactics.board import BoardState
from src.tactics.drawing import (
    Clock,
    DrawingDraft,
    ExpiryScheduler,
    Scheduler,
    expire_temporary_drawing,
)
from src.tactics.entities import (
    Drawing,
    NeutralMarker,
    Placement,
    RosterPlayer,
    Scenario,
    utc_now,
)
from src.tactics.point import NormalizedPoint
from src.tactics.selection import Selection

logger = get_logger("tactics.service")

# Neutral markers are laid out on a grid when created
NEUTRAL_GRID_COLUMNS = 4
NEUTRAL_GRID_ORIGIN = (0.18, 0.2)
NEUTRAL_GRID_STEP = 0.14
NEUTRAL_GRID_LIMIT = 0.84


class TacticsService:
    """Orchestration of layers for the tactics board."""

    def __init__(
        self,
        store: TacticsStore,
        roster: Sequence[RosterPlayer] = (),
        scheduler: Optional[Scheduler] = None,
        settings: Optional[TacticsSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        settings = settings or get_settings()
        self._lock = threading.RLock()
        self._clock = clock
        self._roster: list[RosterPlayer] = list(roster)
        self.collision_threshold = settings.collision_threshold

        self.scenarios = ScenarioManager(store, self._roster_ids)
        self.selection = Selection()
        self.draft = DrawingDraft(clock=clock)
        self.expiry = ExpiryScheduler(
            self._expire_drawing, scheduler, settings.temporary_drawing_lifetime
        )

        with self._lock:
            self.scenarios.load()
            self.scenarios.reconcile_roster()
            for scenario in self.scenarios.scenarios:
                self._schedule_temporary_drawings(self.scenarios.board_for(scenario))

    # -- ROSTER --
    def set_roster(self, roster: Sequence[RosterPlayer]) -> None:
        """The squad changed: new players go to the bench, removed players disappear from every board."""
        with self._lock:
            self._roster = list(roster)
            self.scenarios.reconcile_roster()

    def _roster_ids(self) -> list[UUID]:
        return [player.id for player in self._roster]

    def _player(self, player_id: UUID) -> Optional[RosterPlayer]:
        return next((p for p in self._roster if p.id == player_id), None)

    # -- QUERIES --
    def active_scenario(self) -> Scenario:
        with self._lock:
            return self.scenarios.active_scenario()

    def board_state(self, scenario_id: Optional[UUID] = None) -> Optional[BoardState]:
        """Board of the given scenario (default: the active one). None for an unknown scenario."""
        with self._lock:
            return self.scenarios.board_state(scenario_id or self.scenarios.resolve_active_id())

    def placements(self) -> list[Placement]:
        with self._lock:
            return list(self._active_board().placements)

    def bench_players(self) -> list[RosterPlayer]:
        """Everyone not on the field and not excluded. Explicit bench members first, then by shirt number."""
        with self._lock:
            board = self._active_board()
            placed = {p.player_id for p in board.placements}
            excluded = set(board.excluded_player_ids)
            bench = set(board.bench_player_ids)
            available = [p for p in self._roster if p.id not in placed and p.id not in excluded]
        return sorted(available, key=lambda p: (p.id not in bench, p.number))

    def excluded_players(self) -> list[RosterPlayer]:
        with self._lock:
            excluded = set(self._active_board().excluded_player_ids)
        return sorted((p for p in self._roster if p.id in excluded), key=lambda p: p.number)

    def snapshot(self) -> TacticsStateResponse:
        """Whole state in the shape the view layer renders."""
        with self._lock:
            active = self.scenarios.active_scenario()
            board = self.scenarios.board_for(active)
            return TacticsStateResponse(
                active_scenario_id=active.id,
                scenarios=[self._create_scenario_response(s) for s in self.scenarios.scenarios],
                board=self._create_board_response(board),
                selected_player_ids=sorted(self.selection.player_ids, key=str),
                selected_drawing_ids=sorted(self.selection.drawing_ids, key=str),
            )

    # -- PLACEMENT COMMANDS --
    def drop_player(self, player_id: UUID, point: NormalizedPoint) -> Placement:
        """Place (or move) a player token. The point is shifted if it would overlap another token."""
        with self._lock:
            board = self._active_board()
            placement = placement_engine.drop_player(
                board,
                player_id,
                point,
                player=self._player(player_id),
                threshold=self.collision_threshold,
            )
            self.scenarios.save_board(board)
            return placement

    def send_to_bench(self, player_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            placement_engine.send_to_bench(board, player_id)
            self.scenarios.save_board(board)

    def remove_from_lineup(self, player_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            placement_engine.remove_from_lineup(board, player_id)
            self.scenarios.save_board(board)

    def toggle_excluded(self, player_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            placement_engine.toggle_excluded(board, player_id)
            self.scenarios.save_board(board)

    def update_role(self, player_id: UUID, role_name: str) -> None:
        with self._lock:
            board = self._active_board()
            if placement_engine.update_role(board, player_id, role_name):
                self.scenarios.save_board(board)

    def update_zone(self, player_id: UUID, zone: Optional[TacticalZone]) -> None:
        with self._lock:
            board = self._active_board()
            if placement_engine.update_zone(board, player_id, zone):
                self.scenarios.save_board(board)

    def nudge_selection(self, direction: Direction) -> None:
        """Arrow-key nudge of the (first) selected player."""
        with self._lock:
            if not self.selection.player_ids:
                return
            player_id = min(self.selection.player_ids, key=str)
            board = self._active_board()
            if placement_engine.nudge_player(board, player_id, direction):
                self.scenarios.save_board(board)

    # -- DRAWING COMMANDS --
    def set_drawing_tool(self, kind: DrawingKind) -> None:
        self.draft.tool = kind

    def set_temporary_drawing_mode(self, is_temporary: bool) -> None:
        self.draft.is_temporary = is_temporary

    def begin_drawing(self, point: NormalizedPoint) -> None:
        self.draft.begin(point)

    def update_drawing(self, point: NormalizedPoint) -> None:
        self.draft.update(point)

    def cancel_drawing(self) -> None:
        self.draft.cancel()

    def finish_drawing(self) -> Optional[Drawing]:
        """Commit the draft to the active board. Returns None (and adds nothing) for an incomplete draft."""
        drawing = self.draft.finish()
        if drawing is None:
            logger.debug("Discarded incomplete drawing draft")
            return None
        self.add_drawing(drawing)
        return drawing

    def add_drawing(self, drawing: Drawing) -> None:
        with self._lock:
            board = self._active_board()
            board.drawings.append(drawing)
            self.scenarios.save_board(board)
            if drawing.is_temporary:
                self.expiry.schedule(board.scenario_id, drawing.id)
            logger.debug("Added %s drawing %s", drawing.kind, drawing.id)

    def toggle_temporary(self, drawing_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            drawing = board.drawing(drawing_id)
            if drawing is None:
                return
            drawing.is_temporary = not drawing.is_temporary
            if drawing.is_temporary:
                drawing.created_at = self._clock()
                self.expiry.schedule(board.scenario_id, drawing_id)
            else:
                self.expiry.cancel(board.scenario_id, drawing_id)
            self.scenarios.save_board(board)

    def persist_temporary_drawing(self, drawing_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            self.expiry.cancel(board.scenario_id, drawing_id)
            drawing = board.drawing(drawing_id)
            if drawing is None:
                return
            drawing.is_temporary = False
            self.scenarios.save_board(board)

    def delete_drawing(self, drawing_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            self.expiry.cancel(board.scenario_id, drawing_id)
            board.remove_drawing(drawing_id)
            self.selection.discard_drawing(drawing_id)
            self.scenarios.save_board(board)

    def delete_all_drawings(self) -> None:
        with self._lock:
            board = self._active_board()
            self.expiry.cancel_many(board.scenario_id, [d.id for d in board.drawings])
            board.drawings = []
            self.selection.drawing_ids = set()
            self.scenarios.save_board(board)

    # -- SCENARIO COMMANDS --
    def create_scenario(self, name: str = NEW_SCENARIO_NAME) -> Scenario:
        with self._lock:
            scenario = self.scenarios.create(name)
            self.selection.clear()
            return scenario

    def duplicate_scenario(self, scenario_id: Optional[UUID] = None) -> Optional[Scenario]:
        with self._lock:
            duplicate = self.scenarios.duplicate(scenario_id or self.scenarios.resolve_active_id())
            if duplicate is not None:
                self.selection.clear()
                self._schedule_temporary_drawings(self.scenarios.board_for(duplicate))
            return duplicate

    def rename_scenario(self, name: str, scenario_id: Optional[UUID] = None) -> None:
        with self._lock:
            self.scenarios.rename(scenario_id or self.scenarios.resolve_active_id(), name)

    def delete_scenario(self, scenario_id: Optional[UUID] = None) -> None:
        with self._lock:
            target = scenario_id or self.scenarios.resolve_active_id()
            self.expiry.cancel_scenario(target)
            self.scenarios.delete(target)
            self.selection.clear()

    def reset_layout(self, scenario_id: Optional[UUID] = None) -> None:
        with self._lock:
            target = scenario_id or self.scenarios.resolve_active_id()
            cleared = self.scenarios.reset_layout(target)
            if cleared is None:
                return
            self.expiry.cancel_many(target, cleared)
            self.selection.clear()

    def select_scenario(self, scenario_id: UUID) -> None:
        with self._lock:
            if self.scenarios.activate(scenario_id):
                self.selection.clear()

    def toggle_show_opponent(self) -> None:
        with self._lock:
            self.scenarios.toggle_show_opponent(self.scenarios.resolve_active_id())

    def toggle_show_zones(self) -> None:
        self._toggle_flag("show_zones")

    def toggle_show_lines(self) -> None:
        self._toggle_flag("show_lines")

    def toggle_drawings_visible(self) -> None:
        self._toggle_flag("drawings_visible")

    def set_opponent_mode(self, mode: OpponentMode) -> None:
        with self._lock:
            self.scenarios.set_opponent_mode(self.scenarios.resolve_active_id(), mode)

    # -- MARKER COMMANDS --
    def move_opponent_marker(self, index: int, point: NormalizedPoint) -> None:
        with self._lock:
            board = self._active_board()
            board.ensure_opponent_line()
            if not 0 <= index < len(board.opponent_markers):
                return
            board.opponent_markers[index].point = point
            self.scenarios.save_board(board)

    def rename_opponent_marker(self, index: int, name: str) -> None:
        with self._lock:
            board = self._active_board()
            board.ensure_opponent_line()
            if not 0 <= index < len(board.opponent_markers):
                return
            board.opponent_markers[index].name = name.strip()
            self.scenarios.save_board(board)

    def add_neutral_marker(self) -> NeutralMarker:
        with self._lock:
            board = self._active_board()
            index = len(board.neutral_markers)
            row, column = divmod(index, NEUTRAL_GRID_COLUMNS)
            x = min(NEUTRAL_GRID_LIMIT, NEUTRAL_GRID_ORIGIN[0] + column * NEUTRAL_GRID_STEP)
            y = min(NEUTRAL_GRID_LIMIT, NEUTRAL_GRID_ORIGIN[1] + row * NEUTRAL_GRID_STEP)
            marker = NeutralMarker(point=NormalizedPoint(x, y), name=f"Kreis {index + 1}")
            board.neutral_markers.append(marker)
            self.scenarios.save_board(board)
            return marker

    def move_neutral_marker(self, index: int, point: NormalizedPoint) -> None:
        with self._lock:
            board = self._active_board()
            if not 0 <= index < len(board.neutral_markers):
                return
            board.neutral_markers[index].point = point
            self.scenarios.save_board(board)

    def rename_neutral_marker(self, marker_id: UUID, name: str) -> None:
        with self._lock:
            board = self._active_board()
            marker = board.neutral_marker(marker_id)
            if marker is None:
                return
            marker.name = name.strip()
            self.scenarios.save_board(board)

    def delete_neutral_marker(self, marker_id: UUID) -> None:
        with self._lock:
            board = self._active_board()
            board.neutral_markers = [m for m in board.neutral_markers if m.id != marker_id]
            self.scenarios.save_board(board)

    # -- SELECTION --
    def select_player(self, player_id: UUID, additive: bool = False) -> None:
        with self._lock:
            self.selection.select_player(player_id, additive)

    def select_drawing(self, drawing_id: UUID, additive: bool = False) -> None:
        with self._lock:
            self.selection.select_drawing(drawing_id, additive)

    def clear_selection(self) -> None:
        with self._lock:
            self.selection.clear()

    def delete_selection(self) -> None:
        """Selected players go to the bench, selected drawings are deleted."""
        with self._lock:
            board = self._active_board()
            for player_id in self.selection.player_ids:
                placement_engine.send_to_bench(board, player_id)
            for drawing_id in self.selection.drawing_ids:
                self.expiry.cancel(board.scenario_id, drawing_id)
                board.remove_drawing(drawing_id)
            self.scenarios.save_board(board)
            self.selection.clear()

    # -- Internal helpers --
    def _active_board(self) -> BoardState:
        return self.scenarios.board_for(self.scenarios.active_scenario())

    def _toggle_flag(self, flag: str) -> None:
        with self._lock:
            self.scenarios.toggle_flag(self.scenarios.resolve_active_id(), flag)

    def _schedule_temporary_drawings(self, board: BoardState) -> None:
        """Temporary drawings that are not tracked yet (loaded or copied) expire at the end of their remaining lifetime."""
        now = self._clock()
        for drawing in board.drawings:
            if drawing.is_temporary and not self.expiry.is_pending(board.scenario_id, drawing.id):
                self.expiry.schedule(
                    board.scenario_id,
                    drawing.id,
                    delay=self.expiry.remaining_lifetime(drawing, now),
                )

    def _expire_drawing(self, scenario_id: UUID, drawing_id: UUID) -> None:
        """Timer callback. Re-checks the board as it is *now* before removing anything."""
        with self._lock:
            board = self.scenarios.find_board(scenario_id)
            if board is None or not expire_temporary_drawing(board, drawing_id):
                logger.debug("Expiry of drawing %s skipped (persisted or already gone)", drawing_id)
                return
            self.selection.discard_drawing(drawing_id)
            try:
                self.scenarios.save_board(board)
            except RepositoryError:
                # timer thread, nothing above us to raise to
                logger.exception("Could not store board %s after drawing %s expired", scenario_id, drawing_id)
            logger.debug("Temporary drawing %s expired", drawing_id)

    def _create_scenario_response(self, scenario: Scenario) -> ScenarioResponse:
        return ScenarioResponse.model_validate(asdict(scenario.to_model()))

    def _create_board_response(self, board: BoardState) -> BoardStateResponse:
        return BoardStateResponse.model_validate(asdict(board.to_model()))


@contextmanager
def open_service(
    roster: Sequence[RosterPlayer] = (),
    settings: Optional[TacticsSettings] = None,
) -> Iterator[TacticsService]:
    """
    Service on top of the configured SQL database, with logging set up from the settings.
    Pending expiry timers are cancelled when the block is left.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    engine = create_db_engine(settings.database_url)
    with get_db(engine) as db:
        service = TacticsService(SQLTacticsStore(db), roster, settings=settings)
        try:
            yield service
        finally:
            service.expiry.cancel_all()
            logger.info("Tactics service closed.")
