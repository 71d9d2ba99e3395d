"""
Ownership of the scenario collection and their board states.

Keeps scenario metadata (name, flags, timestamps) in sync with board mutations, and writes every change through the injected store.
"""

from typing import Callable, Optional
from uuid import UUID

from src.core.logging_config import get_logger
from src.core.shared_types import OpponentMode
from src.db.repository import TacticsStore
from src.tactics.board import BoardState
from src.tactics.entities import Scenario

logger = get_logger("tactics.scenarios")

DEFAULT_SCENARIO_NAME = "Startelf"
NEW_SCENARIO_NAME = "Neues Szenario"

# Display flags that are plain booleans on the scenario (show_opponent has its own toggle)
DISPLAY_FLAGS = ("show_zones", "show_lines", "drawings_visible")


class ScenarioManager:
    """CRUD over scenarios + resolution of the active scenario."""

    def __init__(self, store: TacticsStore, roster_ids: Callable[[], list[UUID]]) -> None:
        self.store = store
        self._roster_ids = roster_ids
        self.scenarios: list[Scenario] = []
        self.boards: dict[UUID, BoardState] = {}
        self.active_id: Optional[UUID] = None

    def load(self) -> None:
        """Replace the in-memory collections with what the store holds."""
        self.scenarios = [Scenario.from_model(m) for m in self.store.load_scenarios()]
        known = {s.id for s in self.scenarios}
        self.boards = {}
        for model in self.store.load_board_states():
            board = BoardState.from_model(model)
            if board.scenario_id in known:
                self.boards[board.scenario_id] = board
        self.active_id = None
        logger.info("Loaded %d scenario(s) from store.", len(self.scenarios))

    # --- QUERIES ---
    def scenario(self, scenario_id: UUID) -> Optional[Scenario]:
        return next((s for s in self.scenarios if s.id == scenario_id), None)

    def resolve_active_id(self) -> UUID:
        """
        Resolution order:
        1. the active id tracked here (if it still exists)
        2. the last active id persisted in the store (if it still exists)
        3. the first scenario
        4. bootstrap the default scenario
        """
        if self.active_id is not None and self.scenario(self.active_id) is not None:
            return self.active_id

        persisted = self.store.load_active_scenario_id()
        if persisted is not None:
            persisted_id = UUID(persisted)
            if self.scenario(persisted_id) is not None:
                self.active_id = persisted_id
                return persisted_id

        if self.scenarios:
            self.active_id = self.scenarios[0].id
            return self.active_id

        return self.bootstrap_default().id

    def active_scenario(self) -> Scenario:
        scenario = self.scenario(self.resolve_active_id())
        assert scenario is not None
        return scenario

    def board_state(self, scenario_id: UUID) -> Optional[BoardState]:
        """Board of a scenario (None for an unknown scenario)."""
        scenario = self.scenario(scenario_id)
        if scenario is None:
            return None
        return self.board_for(scenario)

    def board_for(self, scenario: Scenario) -> BoardState:
        """
        Board of a known scenario, normalized before it is handed out.
        A missing board is regenerated as an empty one (whole roster on the bench).
        """
        board = self.boards.get(scenario.id)
        if board is None:
            logger.warning("No board for scenario %s, creating an empty one.", scenario.id)
            board = BoardState.empty(scenario.id, self._roster_ids())
            self.boards[scenario.id] = board
            self.store.save_board_state(board.to_model())
        elif board.ensure_opponent_line():
            self.store.save_board_state(board.to_model())
        return board

    def find_board(self, scenario_id: UUID) -> Optional[BoardState]:
        """Like board_state(), but never creates one (ex. for a scenario deleted in the meantime)."""
        if scenario_id not in self.boards:
            return None
        return self.board_state(scenario_id)

    # --- PERSISTENCE ---
    def save_board(self, board: BoardState) -> None:
        """Store a mutated board and refresh the owning scenario's timestamp."""
        self.boards[board.scenario_id] = board
        scenario = self.scenario(board.scenario_id)
        if scenario is not None:
            self.save_scenario(scenario)
        self.store.save_board_state(board.to_model())

    def save_scenario(self, scenario: Scenario) -> None:
        scenario.touch()
        self.store.save_scenario(scenario.to_model())

    # --- SCENARIO LIFECYCLE ---
    def bootstrap_default(self) -> Scenario:
        """Make sure there is at least one scenario, and that something is active."""
        if not self.scenarios:
            logger.info("No scenarios yet, creating %r.", DEFAULT_SCENARIO_NAME)
            self._add(Scenario(name=DEFAULT_SCENARIO_NAME), activate=False)
        if self.active_id is None or self.scenario(self.active_id) is None:
            self.activate(self.scenarios[0].id)
        return self.active_scenario()

    def create(self, name: str) -> Scenario:
        scenario = Scenario(name=name.strip() or NEW_SCENARIO_NAME)
        self._add(scenario, activate=True)
        logger.info("Created scenario %r (%s).", scenario.name, scenario.id)
        return scenario

    def duplicate(self, scenario_id: UUID) -> Optional[Scenario]:
        """Deep copy of scenario + board. Only the scenario id (and the board's link to it) change."""
        original = self.scenario(scenario_id)
        if original is None:
            return None
        board = self.board_for(original)

        duplicate = original.duplicate()
        self._add(duplicate, activate=True, board=board.copy_for(duplicate.id))
        logger.info("Duplicated scenario %s as %s.", scenario_id, duplicate.id)
        return duplicate

    def rename(self, scenario_id: UUID, name: str) -> bool:
        trimmed = name.strip()
        scenario = self.scenario(scenario_id)
        if not trimmed or scenario is None:
            return False
        scenario.name = trimmed
        self.save_scenario(scenario)
        return True

    def delete(self, scenario_id: UUID) -> Optional[BoardState]:
        """
        Remove scenario + board. Returns the removed board (None for an unknown id).
        If the scenario was active, the scenario that followed it becomes active (or the new last one, or nothing).
        """
        scenario = self.scenario(scenario_id)
        if scenario is None:
            return None
        index = self.scenarios.index(scenario)
        self.scenarios.remove(scenario)
        board = self.boards.pop(scenario_id, None)
        self.store.delete_scenario(str(scenario_id))
        logger.info("Deleted scenario %r (%s).", scenario.name, scenario_id)

        if self.active_id == scenario_id:
            if self.scenarios:
                self.activate(self.scenarios[min(index, len(self.scenarios) - 1)].id)
            else:
                self.active_id = None
                self.store.save_active_scenario_id(None)
        return board

    def reset_layout(self, scenario_id: UUID) -> Optional[list[UUID]]:
        """
        Empty layout for the scenario, metadata untouched.
        Returns the ids of the drawings that were cleared (None for an unknown scenario).
        """
        scenario = self.scenario(scenario_id)
        if scenario is None:
            return None
        board = self.board_for(scenario)
        cleared = [d.id for d in board.drawings]
        board.reset(self._roster_ids())
        self.save_board(board)
        logger.info("Reset layout of scenario %s.", scenario_id)
        return cleared

    def activate(self, scenario_id: UUID) -> bool:
        if self.scenario(scenario_id) is None:
            return False
        self.active_id = scenario_id
        self.store.save_active_scenario_id(str(scenario_id))
        return True

    # --- DISPLAY FLAGS ---
    def toggle_flag(self, scenario_id: UUID, flag: str) -> bool:
        if flag not in DISPLAY_FLAGS:
            raise ValueError(f"Unknown display flag {flag!r}. Pick one from {', '.join(DISPLAY_FLAGS)}")
        scenario = self.scenario(scenario_id)
        if scenario is None:
            return False
        setattr(scenario, flag, not getattr(scenario, flag))
        self.save_scenario(scenario)
        return True

    def toggle_show_opponent(self, scenario_id: UUID) -> bool:
        """Turning the opponent off hides it on the board, turning it on shows (at least) the markers."""
        scenario = self.scenario(scenario_id)
        if scenario is None:
            return False
        scenario.show_opponent = not scenario.show_opponent
        board = self.board_for(scenario)
        if not scenario.show_opponent:
            board.opponent_mode = OpponentMode.HIDDEN
        elif board.opponent_mode == OpponentMode.HIDDEN:
            board.opponent_mode = OpponentMode.MARKERS
        self.save_board(board)
        return True

    def set_opponent_mode(self, scenario_id: UUID, mode: OpponentMode) -> bool:
        """Also derives the scenario's show_opponent flag from the mode."""
        scenario = self.scenario(scenario_id)
        if scenario is None:
            return False
        board = self.board_for(scenario)
        board.opponent_mode = mode
        scenario.show_opponent = mode != OpponentMode.HIDDEN
        self.save_board(board)
        return True

    # --- ROSTER ---
    def reconcile_roster(self) -> None:
        """Bring every board in line with the current roster."""
        player_ids = self._roster_ids()
        for scenario in self.scenarios:
            board = self.board_for(scenario)
            if board.reconcile_roster(player_ids):
                self.save_board(board)

    # -- Internal helpers --
    def _add(self, scenario: Scenario, activate: bool, board: Optional[BoardState] = None) -> None:
        self.scenarios.append(scenario)
        self.boards[scenario.id] = board or BoardState.empty(scenario.id, self._roster_ids())
        self.store.save_scenario(scenario.to_model())
        self.store.save_board_state(self.boards[scenario.id].to_model())
        if activate:
            self.activate(scenario.id)
