"""
Tactical annotations: building a draft from pointer input, and the lifecycle of temporary drawings.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol
from uuid import UUID

from src.core.logging_config import get_logger
from src.core.shared_types import DrawingKind
from src.tactics.board import BoardState
from src.tactics.entities import Drawing, utc_now
from src.tactics.point import NormalizedPoint

logger = get_logger("tactics.drawing")

TEMPORARY_DRAWING_LIFETIME = 3.0  # seconds

DRAWING_COLORS: dict[DrawingKind, str] = {
    DrawingKind.LINE: "#10B981",
    DrawingKind.ARROW: "#0EA5E9",
    DrawingKind.MARK: "#F59E0B",
}

Clock = Callable[[], datetime]


def is_complete(drawing: Drawing) -> bool:
    """A mark is a single point, lines and arrows need a start and an end."""
    if drawing.kind == DrawingKind.MARK:
        return len(drawing.points) == 1
    return len(drawing.points) >= 2


class DrawingDraft:
    """
    State machine for the drawing that is currently being built.
    ----

    Idle --begin--> Active --update--> Active
    Active --finish/cancel--> Idle

    finish() always returns to Idle, whether or not the draft was complete.
    """

    def __init__(
        self,
        tool: DrawingKind = DrawingKind.ARROW,
        is_temporary: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        self.tool = tool
        self.is_temporary = is_temporary
        self.draft: Optional[Drawing] = None
        self._start: Optional[NormalizedPoint] = None
        self._clock = clock

    @property
    def is_active(self) -> bool:
        return self.draft is not None

    def begin(self, point: NormalizedPoint) -> Drawing:
        self._start = point
        self.draft = Drawing(
            kind=self.tool,
            points=[point],
            color=DRAWING_COLORS[self.tool],
            is_temporary=self.is_temporary,
            created_at=self._clock(),
        )
        return self.draft

    def update(self, point: NormalizedPoint) -> None:
        if self.draft is None:
            return
        if self.draft.kind == DrawingKind.MARK:
            self.draft.points = [point]
        else:
            start = self._start if self._start is not None else point
            self.draft.points = [start, point]

    def finish(self) -> Optional[Drawing]:
        draft = self.draft
        self.cancel()
        if draft is None or not is_complete(draft):
            return None
        # The lifetime of a temporary drawing starts when it is committed
        draft.created_at = self._clock()
        return draft

    def cancel(self) -> None:
        self.draft = None
        self._start = None


def expire_temporary_drawing(board: BoardState, drawing_id: UUID) -> bool:
    """
    Remove a drawing whose expiry fired, but only if it is still there and still temporary.
    The timer only knows the id, so the drawing may have been persisted or deleted in the meantime.
    """
    drawing = board.drawing(drawing_id)
    if drawing is None or not drawing.is_temporary:
        return False
    board.remove_drawing(drawing_id)
    return True


# --- SCHEDULING ---
class ScheduledTask(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay (in seconds)."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask: ...


class ThreadingScheduler:
    """Default scheduler: one daemon threading.Timer per task."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


ExpiryKey = tuple[UUID, UUID]  # (scenario id, drawing id)
ExpiryCallback = Callable[[UUID, UUID], None]


@dataclass(eq=False)
class _PendingExpiry:
    task: Optional[ScheduledTask] = None


class ExpiryScheduler:
    """
    Cancellable expiry tasks, one per temporary drawing.

    Tasks are keyed by (scenario id, drawing id): a duplicated scenario keeps the ids of its drawings, so the drawing id alone is
    not unique across scenarios. `on_expire(scenario_id, drawing_id)` is called when a task fires. Scheduling a drawing that
    already has a pending task replaces (and cancels) the old one; a task that fires after being cancelled or replaced is ignored.
    """

    def __init__(
        self,
        on_expire: ExpiryCallback,
        scheduler: Optional[Scheduler] = None,
        lifetime: float = TEMPORARY_DRAWING_LIFETIME,
    ) -> None:
        self._on_expire = on_expire
        self._scheduler = scheduler or ThreadingScheduler()
        self.lifetime = lifetime
        self._pending: dict[ExpiryKey, _PendingExpiry] = {}
        self._lock = threading.Lock()

    def schedule(self, scenario_id: UUID, drawing_id: UUID, delay: Optional[float] = None) -> None:
        """Expire after `delay` seconds (default: the full lifetime)."""
        key = (scenario_id, drawing_id)
        self.cancel(scenario_id, drawing_id)
        delay = self.lifetime if delay is None else max(0.0, delay)
        entry = _PendingExpiry()
        with self._lock:
            self._pending[key] = entry
        entry.task = self._scheduler.schedule(delay, lambda: self._fire(key, entry))
        logger.debug("Scheduled expiry of drawing %s in %.1fs", drawing_id, delay)

    def remaining_lifetime(self, drawing: Drawing, now: datetime) -> float:
        return self.lifetime - (now - drawing.created_at).total_seconds()

    def cancel(self, scenario_id: UUID, drawing_id: UUID) -> bool:
        with self._lock:
            entry = self._pending.pop((scenario_id, drawing_id), None)
        if entry is None:
            return False
        if entry.task is not None:
            entry.task.cancel()
        logger.debug("Cancelled expiry of drawing %s", drawing_id)
        return True

    def cancel_many(self, scenario_id: UUID, drawing_ids: list[UUID]) -> None:
        for drawing_id in drawing_ids:
            self.cancel(scenario_id, drawing_id)

    def cancel_scenario(self, scenario_id: UUID) -> None:
        with self._lock:
            drawing_ids = [d for s, d in self._pending if s == scenario_id]
        self.cancel_many(scenario_id, drawing_ids)

    def cancel_all(self) -> None:
        with self._lock:
            keys = list(self._pending)
        for scenario_id, drawing_id in keys:
            self.cancel(scenario_id, drawing_id)

    def is_pending(self, scenario_id: UUID, drawing_id: UUID) -> bool:
        return (scenario_id, drawing_id) in self._pending

    @property
    def pending(self) -> set[ExpiryKey]:
        with self._lock:
            return set(self._pending)

    def _fire(self, key: ExpiryKey, entry: _PendingExpiry) -> None:
        with self._lock:
            if self._pending.get(key) is not entry:
                return
            del self._pending[key]
        self._on_expire(*key)
