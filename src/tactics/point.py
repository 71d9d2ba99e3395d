"""
A point on the pitch

(placed in its own module as every other domain module needs to import it)
"""

from __future__ import annotations

import math
from dataclasses import dataclass

# Fallback used when the rendering surface has no area yet (ex. a view that is still being laid out)
PITCH_CENTER = (0.5, 0.5)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True)
class NormalizedPoint:
    """Coordinates in the unit square. Out-of-range input is clamped, never rejected."""

    x: float
    y: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", _clamp(self.x))
        object.__setattr__(self, "y", _clamp(self.y))

    @classmethod
    def from_surface(cls, px: float, py: float, width: float, height: float) -> NormalizedPoint:
        """Device coordinates -> normalized coordinates"""
        if width <= 0 or height <= 0:
            return cls(*PITCH_CENTER)
        return cls(px / width, py / height)

    def to_surface(self, width: float, height: float) -> tuple[float, float]:
        return self.x * width, self.y * height

    def distance_to(self, other: NormalizedPoint) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def offset(self, dx: float, dy: float) -> NormalizedPoint:
        return NormalizedPoint(self.x + dx, self.y + dy)

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, float]) -> NormalizedPoint:
        return cls(data["x"], data["y"])
