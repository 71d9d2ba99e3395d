"""Transient selection on the board (never persisted)."""

from dataclasses import dataclass, field
from uuid import UUID


def _toggle(members: set[UUID], item: UUID, additive: bool) -> set[UUID]:
    if not additive:
        return {item}
    return members - {item} if item in members else members | {item}


@dataclass
class Selection:
    """Players and drawings are separate selection domains: selecting one kind clears the other."""

    player_ids: set[UUID] = field(default_factory=set)
    drawing_ids: set[UUID] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self.player_ids and not self.drawing_ids

    def select_player(self, player_id: UUID, additive: bool = False) -> None:
        self.player_ids = _toggle(self.player_ids, player_id, additive)
        self.drawing_ids = set()

    def select_drawing(self, drawing_id: UUID, additive: bool = False) -> None:
        self.drawing_ids = _toggle(self.drawing_ids, drawing_id, additive)
        self.player_ids = set()

    def discard_drawing(self, drawing_id: UUID) -> None:
        self.drawing_ids.discard(drawing_id)

    def clear(self) -> None:
        self.player_ids = set()
        self.drawing_ids = set()
