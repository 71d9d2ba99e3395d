"""Entities that live on (or describe) a tactics board."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Self
from uuid import UUID, uuid4

from src.core.models import JSONRecord, ScenarioModel
from src.core.shared_types import DrawingKind, PlayerPosition, TacticalZone
from src.tactics.point import NormalizedPoint

OPPONENT_LINE_SIZE = 11


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TacticalRole:
    """Free-form label. The presets are only suggestions for the inspector."""

    name: str


ROLE_PRESETS: tuple[TacticalRole, ...] = tuple(
    TacticalRole(name)
    for name in (
        "TW",
        "LIV",
        "RIV",
        "LV",
        "RV",
        "6er",
        "8er links",
        "8er rechts",
        "10er",
        "LA",
        "RA",
        "ST",
    )
)

FALLBACK_ROLE = TacticalRole("Rolle")

DEFAULT_ROLE_BY_POSITION: dict[PlayerPosition, TacticalRole] = {
    PlayerPosition.TW: TacticalRole("TW"),
    PlayerPosition.IV: TacticalRole("IV"),
    PlayerPosition.LV: TacticalRole("LV"),
    PlayerPosition.RV: TacticalRole("RV"),
    PlayerPosition.DM: TacticalRole("6er"),
    PlayerPosition.ZM: TacticalRole("8er"),
    PlayerPosition.OM: TacticalRole("10er"),
    PlayerPosition.LA: TacticalRole("LA"),
    PlayerPosition.RA: TacticalRole("RA"),
    PlayerPosition.ST: TacticalRole("ST"),
}


@dataclass(frozen=True)
class RosterPlayer:
    """Read-only view of a squad member. Owned by the squad module, never mutated here."""

    id: UUID
    name: str
    number: int
    primary_position: PlayerPosition


def default_role(player: Optional[RosterPlayer]) -> TacticalRole:
    if player is None:
        return FALLBACK_ROLE
    return DEFAULT_ROLE_BY_POSITION.get(player.primary_position, FALLBACK_ROLE)


@dataclass
class Scenario:
    name: str
    id: UUID = field(default_factory=uuid4)
    updated_at: datetime = field(default_factory=utc_now)
    show_opponent: bool = False
    show_zones: bool = False
    show_lines: bool = False
    drawings_visible: bool = True

    def touch(self) -> None:
        self.updated_at = utc_now()

    def duplicate(self) -> Self:
        """Same name and flags, new id, fresh timestamp."""
        return replace(self, id=uuid4(), updated_at=utc_now())

    @classmethod
    def from_model(cls, model: ScenarioModel) -> Self:
        return cls(
            id=UUID(model.id),
            name=model.name,
            updated_at=datetime.fromisoformat(model.updated_at),
            show_opponent=model.show_opponent,
            show_zones=model.show_zones,
            show_lines=model.show_lines,
            drawings_visible=model.drawings_visible,
        )

    def to_model(self) -> ScenarioModel:
        return ScenarioModel(
            id=str(self.id),
            name=self.name,
            updated_at=self.updated_at.isoformat(),
            show_opponent=self.show_opponent,
            show_zones=self.show_zones,
            show_lines=self.show_lines,
            drawings_visible=self.drawings_visible,
        )


@dataclass
class Placement:
    player_id: UUID
    point: NormalizedPoint
    role: TacticalRole
    zone: Optional[TacticalZone] = None
    id: UUID = field(default_factory=uuid4)

    @classmethod
    def from_record(cls, record: JSONRecord) -> Self:
        zone = record.get("zone")
        return cls(
            id=UUID(record["id"]),
            player_id=UUID(record["player_id"]),
            point=NormalizedPoint.from_dict(record["point"]),
            role=TacticalRole(record["role"]),
            zone=TacticalZone(zone) if zone else None,
        )

    def to_record(self) -> JSONRecord:
        return {
            "id": str(self.id),
            "player_id": str(self.player_id),
            "point": self.point.to_dict(),
            "role": self.role.name,
            "zone": self.zone.value if self.zone else None,
        }


@dataclass
class Marker:
    """Base for the two marker kinds: a named point without team-affiliation logic of its own."""

    point: NormalizedPoint
    name: str = ""
    id: UUID = field(default_factory=uuid4)

    @classmethod
    def from_record(cls, record: JSONRecord) -> Self:
        # Older records can miss the id and/or name
        return cls(
            id=UUID(record["id"]) if record.get("id") else uuid4(),
            point=NormalizedPoint.from_dict(record["point"]),
            name=record.get("name") or "",
        )

    def to_record(self) -> JSONRecord:
        return {"id": str(self.id), "point": self.point.to_dict(), "name": self.name}


class OpponentMarker(Marker):
    pass


class NeutralMarker(Marker):
    pass


# Canonical opposing line-up, attacking from left to right
DEFAULT_OPPONENT_LINE: tuple[tuple[float, float], ...] = (
    (0.12, 0.50),
    (0.22, 0.20),
    (0.22, 0.40),
    (0.22, 0.60),
    (0.22, 0.80),
    (0.36, 0.20),
    (0.36, 0.40),
    (0.36, 0.60),
    (0.36, 0.80),
    (0.50, 0.35),
    (0.50, 0.65),
)

# Layout stored by older clients (opponent attacking top to bottom)
LEGACY_TOP_TO_BOTTOM_LINE: tuple[tuple[float, float], ...] = (
    (0.50, 0.12),
    (0.20, 0.22),
    (0.40, 0.22),
    (0.60, 0.22),
    (0.80, 0.22),
    (0.20, 0.36),
    (0.40, 0.36),
    (0.60, 0.36),
    (0.80, 0.36),
    (0.35, 0.50),
    (0.65, 0.50),
)


def default_opponent_line() -> list[OpponentMarker]:
    """A fresh set of markers (new ids every call)."""
    return [OpponentMarker(NormalizedPoint(x, y)) for x, y in DEFAULT_OPPONENT_LINE]


@dataclass
class Drawing:
    kind: DrawingKind
    points: list[NormalizedPoint]
    color: str
    is_temporary: bool = False
    created_at: datetime = field(default_factory=utc_now)
    id: UUID = field(default_factory=uuid4)

    @classmethod
    def from_record(cls, record: JSONRecord) -> Self:
        created_at = record.get("created_at")
        return cls(
            id=UUID(record["id"]),
            kind=DrawingKind(record["kind"]),
            points=[NormalizedPoint.from_dict(p) for p in record["points"]],
            color=record["color"],
            is_temporary=record["is_temporary"],
            created_at=datetime.fromisoformat(created_at) if created_at else utc_now(),
        )

    def to_record(self) -> JSONRecord:
        return {
            "id": str(self.id),
            "kind": self.kind.value,
            "points": [p.to_dict() for p in self.points],
            "color": self.color,
            "is_temporary": self.is_temporary,
            "created_at": self.created_at.isoformat(),
        }
