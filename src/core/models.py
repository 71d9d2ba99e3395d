"""
Boundary layer data model(s).

These objects are what the Service hands to the store (and gets back from it).
Only plain, JSON-friendly values live here, so any storage backend can persist them without knowing the domain layer.
"""

from dataclasses import dataclass, field
from typing import Any

# Type aliases to make the models easier to read
ScenarioID = str
PlayerID = str
JSONRecord = dict[str, Any]


@dataclass
class ScenarioModel:
    """Transport-safe representation of a scenario (metadata + display flags only)."""

    id: ScenarioID
    name: str
    updated_at: str  # ISO 8601
    show_opponent: bool = False
    show_zones: bool = False
    show_lines: bool = False
    drawings_visible: bool = True


@dataclass
class BoardStateModel:
    """Transport-safe representation of the board belonging to one scenario."""

    scenario_id: ScenarioID
    placements: list[JSONRecord] = field(default_factory=list)
    bench_player_ids: list[PlayerID] = field(default_factory=list)
    excluded_player_ids: list[PlayerID] = field(default_factory=list)
    opponent_mode: str = "hidden"
    opponent_markers: list[JSONRecord] = field(default_factory=list)
    neutral_markers: list[JSONRecord] = field(default_factory=list)
    drawings: list[JSONRecord] = field(default_factory=list)
