"""Implementation of TacticsStore using SQLAlchemy"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import RepositoryError
from src.core.models import BoardStateModel, ScenarioID, ScenarioModel
from src.db.schema import DBBoardState, DBScenario, DBTacticsState

# There is only ever one row holding the active scenario
STATE_ROW_ID = 1


class SQLTacticsStore:
    """Data stored using SQL / methods implemented using SQLAlchemy"""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def save_scenario(self, scenario: ScenarioModel) -> None:
        """Insert or replace a scenario (metadata + flags)."""
        scenario_db = self._fetch_scenario(scenario.id)
        if scenario_db is None:
            scenario_db = DBScenario(id=scenario.id, ordinal=self._next_ordinal())
            self.db.add(scenario_db)
        scenario_db.name = scenario.name
        scenario_db.updated_at = scenario.updated_at
        scenario_db.show_opponent = scenario.show_opponent
        scenario_db.show_zones = scenario.show_zones
        scenario_db.show_lines = scenario.show_lines
        scenario_db.drawings_visible = scenario.drawings_visible
        self._commit()

    def save_board_state(self, board: BoardStateModel) -> None:
        """Insert or replace the board of a scenario."""
        board_db = self._fetch_board(board.scenario_id)
        if board_db is None:
            board_db = DBBoardState(scenario_id=board.scenario_id)
            self.db.add(board_db)
        board_db.placements = board.placements
        board_db.bench_player_ids = board.bench_player_ids
        board_db.excluded_player_ids = board.excluded_player_ids
        board_db.opponent_mode = board.opponent_mode
        board_db.opponent_markers = board.opponent_markers
        board_db.neutral_markers = board.neutral_markers
        board_db.drawings = board.drawings
        self._commit()

    def delete_scenario(self, scenario_id: ScenarioID) -> None:
        """Remove a scenario together with its board. Unknown ids are ignored."""
        board_db = self._fetch_board(scenario_id)
        if board_db is not None:
            self.db.delete(board_db)
        scenario_db = self._fetch_scenario(scenario_id)
        if scenario_db is not None:
            self.db.delete(scenario_db)
        self._commit()

    def load_scenarios(self) -> list[ScenarioModel]:
        query = select(DBScenario).order_by(DBScenario.ordinal)
        return [self._to_scenario_model(row) for row in self.db.scalars(query)]

    def load_board_states(self) -> list[BoardStateModel]:
        query = select(DBBoardState)
        return [self._to_board_model(row) for row in self.db.scalars(query)]

    def load_active_scenario_id(self) -> Optional[ScenarioID]:
        state_db = self.db.get(DBTacticsState, STATE_ROW_ID)
        return state_db.active_scenario_id if state_db else None

    def save_active_scenario_id(self, scenario_id: Optional[ScenarioID]) -> None:
        state_db = self.db.get(DBTacticsState, STATE_ROW_ID)
        if state_db is None:
            state_db = DBTacticsState(id=STATE_ROW_ID)
            self.db.add(state_db)
        state_db.active_scenario_id = scenario_id
        self._commit()

    # -- Internal helpers --
    def _commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RepositoryError(f"Could not store tactics data: {exc}") from exc

    def _next_ordinal(self) -> int:
        current = self.db.scalar(select(func.max(DBScenario.ordinal)))
        return (current or 0) + 1

    def _fetch_scenario(self, scenario_id: ScenarioID) -> DBScenario | None:
        query = select(DBScenario).where(DBScenario.id == scenario_id)
        return self.db.scalar(query)

    def _fetch_board(self, scenario_id: ScenarioID) -> DBBoardState | None:
        query = select(DBBoardState).where(DBBoardState.scenario_id == scenario_id)
        return self.db.scalar(query)

    def _to_scenario_model(self, scenario_db: DBScenario) -> ScenarioModel:
        """Convert SQLAlchemy model to data transfer model."""
        return ScenarioModel(
            id=scenario_db.id,
            name=scenario_db.name,
            updated_at=scenario_db.updated_at,
            show_opponent=scenario_db.show_opponent,
            show_zones=scenario_db.show_zones,
            show_lines=scenario_db.show_lines,
            drawings_visible=scenario_db.drawings_visible,
        )

    def _to_board_model(self, board_db: DBBoardState) -> BoardStateModel:
        """Convert SQLAlchemy model to data transfer model."""
        return BoardStateModel(
            scenario_id=board_db.scenario_id,
            placements=board_db.placements,
            bench_player_ids=board_db.bench_player_ids,
            excluded_player_ids=board_db.excluded_player_ids,
            opponent_mode=board_db.opponent_mode,
            opponent_markers=board_db.opponent_markers,
            neutral_markers=board_db.neutral_markers,
            drawings=board_db.drawings,
        )
