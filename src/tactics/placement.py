"""
Positioning of player tokens on the board.

Collision avoidance
-------------------
Two tokens closer than the threshold (Euclidean, normalized space) overlap. A drop on an occupied spot probes a fixed list of
offsets around the desired point - short axis-aligned steps first, then diagonals, then longer axis-aligned steps - and takes
the first free one. If every candidate is taken, the desired point is used anyway: overlapping tokens are accepted rather
than refusing the drop.
"""

from typing import Iterable, Optional
from uuid import UUID

from src.core.logging_config import get_logger
from src.core.shared_types import Direction, TacticalZone
from src.tactics.board import BoardState, Membership
from src.tactics.entities import (
    Placement,
    RosterPlayer,
    TacticalRole,
    default_role,
)
from src.tactics.point import NormalizedPoint

logger = get_logger("tactics.placement")

COLLISION_THRESHOLD = 0.07

# (dx, dy), probed in this order
CANDIDATE_OFFSETS: tuple[tuple[float, float], ...] = (
    (0.07, 0.0),
    (-0.07, 0.0),
    (0.0, 0.07),
    (0.0, -0.07),
    (0.06, 0.06),
    (-0.06, 0.06),
    (0.06, -0.06),
    (-0.06, -0.06),
    (0.12, 0.0),
    (-0.12, 0.0),
    (0.0, 0.12),
    (0.0, -0.12),
)

NUDGE_STEP = 0.01

NUDGE_VECTORS: dict[Direction, tuple[float, float]] = {
    Direction.UP: (0.0, -NUDGE_STEP),
    Direction.DOWN: (0.0, NUDGE_STEP),
    Direction.LEFT: (-NUDGE_STEP, 0.0),
    Direction.RIGHT: (NUDGE_STEP, 0.0),
}


def has_collision(
    point: NormalizedPoint,
    existing: Iterable[NormalizedPoint],
    threshold: float = COLLISION_THRESHOLD,
) -> bool:
    return any(point.distance_to(other) < threshold for other in existing)


def resolve_placement_point(
    desired: NormalizedPoint,
    existing: Iterable[NormalizedPoint],
    threshold: float = COLLISION_THRESHOLD,
) -> NormalizedPoint:
    """First collision-free point out of [desired, *candidates], or desired if there is none."""
    others = list(existing)
    if not has_collision(desired, others, threshold):
        return desired

    for dx, dy in CANDIDATE_OFFSETS:
        candidate = desired.offset(dx, dy)
        if not has_collision(candidate, others, threshold):
            return candidate
    return desired


def drop_player(
    board: BoardState,
    player_id: UUID,
    desired: NormalizedPoint,
    player: Optional[RosterPlayer] = None,
    threshold: float = COLLISION_THRESHOLD,
) -> Placement:
    """
    Put a player on the field (or move the token if it is there already).
    ----

    The point is resolved against all *other* placements. A newly placed player gets the default role of its primary position;
    an existing placement keeps role and zone.
    """
    others = [p.point for p in board.placements if p.player_id != player_id]
    point = resolve_placement_point(desired, others, threshold)

    existing = board.placement_for(player_id)
    if existing is not None:
        existing.point = point
        placement = existing
    else:
        placement = Placement(player_id=player_id, point=point, role=default_role(player))

    board.move_player(player_id, Membership.FIELD, placement)
    logger.debug("Dropped player %s at (%.3f, %.3f)", player_id, point.x, point.y)
    return placement


def send_to_bench(board: BoardState, player_id: UUID) -> None:
    board.move_player(player_id, Membership.BENCH)
    logger.debug("Player %s sent to bench", player_id)


def remove_from_lineup(board: BoardState, player_id: UUID) -> None:
    """Same transition as sending to the bench (kept separate as the UI offers both intents)."""
    send_to_bench(board, player_id)


def toggle_excluded(board: BoardState, player_id: UUID) -> None:
    if player_id in board.excluded_player_ids:
        board.move_player(player_id, Membership.BENCH)
        logger.debug("Player %s no longer excluded", player_id)
    else:
        board.move_player(player_id, Membership.EXCLUDED)
        logger.debug("Player %s excluded", player_id)


def update_role(board: BoardState, player_id: UUID, role_name: str) -> bool:
    """Returns False (nothing changed) for a blank name or an unplaced player."""
    trimmed = role_name.strip()
    placement = board.placement_for(player_id)
    if not trimmed or placement is None:
        return False
    placement.role = TacticalRole(trimmed)
    return True


def update_zone(board: BoardState, player_id: UUID, zone: Optional[TacticalZone]) -> bool:
    placement = board.placement_for(player_id)
    if placement is None:
        return False
    placement.zone = zone
    return True


def nudge_player(board: BoardState, player_id: UUID, direction: Direction) -> bool:
    """Keyboard nudge: no collision avoidance, only clamping."""
    placement = board.placement_for(player_id)
    if placement is None:
        return False
    dx, dy = NUDGE_VECTORS[direction]
    placement.point = placement.point.offset(dx, dy)
    return True
