"""Unit tests for src/services/scenario_manager.py"""

from uuid import UUID, uuid4

import pytest
from fakes import MockStore

from src.core.shared_types import DrawingKind, OpponentMode
from src.services.scenario_manager import (
    DEFAULT_SCENARIO_NAME,
    NEW_SCENARIO_NAME,
    ScenarioManager,
)
from src.tactics.board import BoardState, Membership
from src.tactics.entities import Drawing, Placement, Scenario, TacticalRole
from src.tactics.point import NormalizedPoint


@pytest.fixture
def player_ids() -> list[UUID]:
    return [uuid4() for _ in range(3)]


@pytest.fixture
def manager(mock_store: MockStore, player_ids: list[UUID]) -> ScenarioManager:
    return ScenarioManager(mock_store, lambda: list(player_ids))


# --- BOOTSTRAP / RESOLUTION ----
def test_bootstrap_creates_default_scenario(manager: ScenarioManager, mock_store: MockStore, player_ids: list[UUID]) -> None:
    scenario = manager.bootstrap_default()

    assert scenario.name == DEFAULT_SCENARIO_NAME
    assert manager.active_id == scenario.id
    board = manager.board_state(scenario.id)
    assert board.bench_player_ids == player_ids
    assert len(board.opponent_markers) == 11

    # persisted
    assert str(scenario.id) in mock_store.scenarios
    assert str(scenario.id) in mock_store.boards
    assert mock_store.active_id == str(scenario.id)


def test_bootstrap_is_noop_when_scenarios_exist(manager: ScenarioManager) -> None:
    existing = manager.create("Konter")
    assert manager.bootstrap_default() == existing
    assert len(manager.scenarios) == 1


def test_resolution_prefers_tracked_active_id(manager: ScenarioManager) -> None:
    first = manager.create("A")
    manager.create("B")
    manager.active_id = first.id
    assert manager.resolve_active_id() == first.id


def test_resolution_falls_back_to_persisted_id(manager: ScenarioManager, mock_store: MockStore) -> None:
    manager.create("A")
    second = manager.create("B")
    mock_store.active_id = str(second.id)
    manager.active_id = uuid4()  # stale

    assert manager.resolve_active_id() == second.id


def test_resolution_falls_back_to_first_scenario(manager: ScenarioManager, mock_store: MockStore) -> None:
    first = manager.create("A")
    manager.create("B")
    manager.active_id = None
    mock_store.active_id = str(uuid4())  # points at a scenario that no longer exists

    assert manager.resolve_active_id() == first.id


def test_resolution_bootstraps_when_empty(manager: ScenarioManager) -> None:
    active = manager.active_scenario()
    assert active.name == DEFAULT_SCENARIO_NAME
    assert manager.scenarios == [active]


# --- CRUD ----
def test_create_activates_new_scenario(manager: ScenarioManager, player_ids: list[UUID]) -> None:
    manager.create("A")
    scenario = manager.create("  B ")
    assert scenario.name == "B"
    assert manager.active_id == scenario.id
    assert manager.board_state(scenario.id).bench_player_ids == player_ids


def test_create_with_blank_name(manager: ScenarioManager) -> None:
    assert manager.create("   ").name == NEW_SCENARIO_NAME


def test_duplicate_copies_board_under_new_id(manager: ScenarioManager, player_ids: list[UUID]) -> None:
    original = manager.create("A")
    board = manager.board_state(original.id)
    board.move_player(
        player_ids[0],
        Membership.FIELD,
        Placement(player_ids[0], NormalizedPoint(0.5, 0.5), TacticalRole("ST")),
    )
    board.drawings.append(Drawing(DrawingKind.MARK, [NormalizedPoint(0.3, 0.3)], "#F59E0B"))
    manager.save_board(board)

    duplicate = manager.duplicate(original.id)

    assert duplicate is not None
    assert duplicate.id != original.id
    assert duplicate.name == original.name
    assert manager.active_id == duplicate.id
    copy = manager.board_state(duplicate.id)
    assert copy.scenario_id == duplicate.id
    assert copy.placements == board.placements
    assert copy.drawings == board.drawings
    assert copy.bench_player_ids == board.bench_player_ids


def test_duplicate_unknown_scenario(manager: ScenarioManager) -> None:
    assert manager.duplicate(uuid4()) is None


def test_rename(manager: ScenarioManager, mock_store: MockStore) -> None:
    scenario = manager.create("A")
    assert manager.rename(scenario.id, " Standards ") is True
    assert scenario.name == "Standards"
    assert mock_store.scenarios[str(scenario.id)].name == "Standards"


def test_rename_blank_is_ignored(manager: ScenarioManager) -> None:
    scenario = manager.create("A")
    assert manager.rename(scenario.id, "  ") is False
    assert scenario.name == "A"


def test_delete_removes_board_and_activates_next(manager: ScenarioManager, mock_store: MockStore) -> None:
    first = manager.create("A")
    second = manager.create("B")
    third = manager.create("C")
    manager.activate(second.id)

    removed = manager.delete(second.id)

    assert isinstance(removed, BoardState)
    assert second.id not in manager.boards
    assert str(second.id) not in mock_store.boards
    assert manager.active_id == third.id
    assert [s.id for s in manager.scenarios] == [first.id, third.id]


def test_delete_last_in_order_activates_previous(manager: ScenarioManager) -> None:
    first = manager.create("A")
    second = manager.create("B")
    manager.delete(second.id)
    assert manager.active_id == first.id


def test_delete_inactive_scenario_keeps_activation(manager: ScenarioManager) -> None:
    first = manager.create("A")
    second = manager.create("B")
    manager.delete(first.id)
    assert manager.active_id == second.id


def test_delete_only_scenario_bootstraps_on_next_access(manager: ScenarioManager, mock_store: MockStore) -> None:
    only = manager.create("A")
    manager.delete(only.id)
    assert manager.active_id is None
    assert mock_store.active_id is None

    active = manager.active_scenario()
    assert active.id != only.id
    assert active.name == DEFAULT_SCENARIO_NAME


def test_delete_unknown(manager: ScenarioManager) -> None:
    manager.create("A")
    assert manager.delete(uuid4()) is None
    assert len(manager.scenarios) == 1


def test_reset_layout(manager: ScenarioManager, player_ids: list[UUID]) -> None:
    scenario = manager.create("A")
    scenario.show_zones = True
    board = manager.board_state(scenario.id)
    board.move_player(player_ids[1], Membership.EXCLUDED)
    drawing = Drawing(DrawingKind.MARK, [NormalizedPoint(0.3, 0.3)], "#F59E0B", is_temporary=True)
    board.drawings.append(drawing)
    board.opponent_markers[0].point = NormalizedPoint(0.9, 0.9)

    cleared = manager.reset_layout(scenario.id)

    assert cleared == [drawing.id]
    board = manager.board_state(scenario.id)
    assert board.bench_player_ids == player_ids
    assert board.excluded_player_ids == []
    assert board.drawings == []
    assert board.opponent_markers[0].point == NormalizedPoint(0.12, 0.5)
    assert scenario.name == "A"
    assert scenario.show_zones is True


# --- BOARD ACCESS ----
def test_missing_board_is_regenerated(manager: ScenarioManager, player_ids: list[UUID]) -> None:
    scenario = manager.create("A")
    del manager.boards[scenario.id]
    assert manager.find_board(scenario.id) is None
    assert manager.board_state(scenario.id).bench_player_ids == player_ids


def test_board_access_repairs_opponent_line(manager: ScenarioManager, mock_store: MockStore) -> None:
    scenario = manager.create("A")
    manager.boards[scenario.id].opponent_markers.pop()
    saves = mock_store.board_saves

    board = manager.board_state(scenario.id)

    assert len(board.opponent_markers) == 11
    assert mock_store.board_saves == saves + 1


def test_unknown_scenario_gets_no_board(manager: ScenarioManager, mock_store: MockStore) -> None:
    manager.create("A")
    ghost = uuid4()
    saves = mock_store.board_saves

    assert manager.board_state(ghost) is None
    assert manager.reset_layout(ghost) is None

    assert ghost not in manager.boards
    assert str(ghost) not in mock_store.boards
    assert mock_store.board_saves == saves


def test_save_board_touches_scenario(manager: ScenarioManager) -> None:
    scenario = manager.create("A")
    before = scenario.updated_at
    manager.save_board(manager.board_state(scenario.id))
    assert scenario.updated_at >= before


def test_load_from_store(mock_store: MockStore, player_ids: list[UUID]) -> None:
    scenario = Scenario(name="Gespeichert")
    mock_store.save_scenario(scenario.to_model())
    mock_store.save_board_state(BoardState.empty(scenario.id, player_ids).to_model())
    mock_store.save_active_scenario_id(str(scenario.id))

    manager = ScenarioManager(mock_store, lambda: list(player_ids))
    manager.load()

    assert manager.scenarios == [scenario]
    assert manager.resolve_active_id() == scenario.id
    assert manager.board_state(scenario.id).bench_player_ids == player_ids


# --- DISPLAY FLAGS ----
@pytest.mark.parametrize("flag", ["show_zones", "show_lines", "drawings_visible"])
def test_toggle_flag(manager: ScenarioManager, flag: str) -> None:
    scenario = manager.create("A")
    before = getattr(scenario, flag)
    manager.toggle_flag(scenario.id, flag)
    assert getattr(scenario, flag) is not before


def test_toggle_unknown_flag(manager: ScenarioManager) -> None:
    scenario = manager.create("A")
    with pytest.raises(ValueError):
        manager.toggle_flag(scenario.id, "show_referee")


def test_show_opponent_toggle_syncs_board(manager: ScenarioManager) -> None:
    scenario = manager.create("A")
    board = manager.board_state(scenario.id)
    assert board.opponent_mode == OpponentMode.HIDDEN

    manager.toggle_show_opponent(scenario.id)
    assert scenario.show_opponent is True
    assert board.opponent_mode == OpponentMode.MARKERS

    manager.toggle_show_opponent(scenario.id)
    assert scenario.show_opponent is False
    assert board.opponent_mode == OpponentMode.HIDDEN


def test_show_opponent_keeps_formation_mode(manager: ScenarioManager) -> None:
    scenario = manager.create("A")
    board = manager.board_state(scenario.id)
    board.opponent_mode = OpponentMode.FORMATION
    scenario.show_opponent = False

    manager.toggle_show_opponent(scenario.id)
    assert board.opponent_mode == OpponentMode.FORMATION


@pytest.mark.parametrize(
    "mode, shown",
    [(OpponentMode.HIDDEN, False), (OpponentMode.MARKERS, True), (OpponentMode.FORMATION, True)],
)
def test_set_opponent_mode_derives_flag(manager: ScenarioManager, mode: OpponentMode, shown: bool) -> None:
    scenario = manager.create("A")
    scenario.show_opponent = not shown
    manager.set_opponent_mode(scenario.id, mode)
    assert manager.board_state(scenario.id).opponent_mode == mode
    assert scenario.show_opponent is shown
