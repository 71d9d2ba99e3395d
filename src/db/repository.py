"""Protocol store (the host app decides where scenarios and boards actually live)."""

from typing import Optional, Protocol

from src.core.models import BoardStateModel, ScenarioID, ScenarioModel


class TacticsStore(Protocol):
    """Persistence layer orchestration"""

    def save_scenario(self, scenario: ScenarioModel) -> None:
        """Insert or replace a scenario (metadata + flags)."""
        ...

    def save_board_state(self, board: BoardStateModel) -> None:
        """Insert or replace the board of a scenario."""
        ...

    def delete_scenario(self, scenario_id: ScenarioID) -> None:
        """Remove a scenario together with its board. Unknown ids are ignored."""
        ...

    def load_scenarios(self) -> list[ScenarioModel]:
        """All scenarios, in the order they were first saved."""
        ...

    def load_board_states(self) -> list[BoardStateModel]:
        """All stored boards."""
        ...

    def load_active_scenario_id(self) -> Optional[ScenarioID]:
        """The scenario that was active last time (if any)."""
        ...

    def save_active_scenario_id(self, scenario_id: Optional[ScenarioID]) -> None:
        """Remember which scenario is active."""
        ...
