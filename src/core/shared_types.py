"""
Type definitions used across layers
"""

from enum import StrEnum


class OpponentMode(StrEnum):
    HIDDEN = "hidden"
    MARKERS = "markers"
    FORMATION = "formation"


class DrawingKind(StrEnum):
    LINE = "line"
    ARROW = "arrow"
    MARK = "mark"


class TacticalZone(StrEnum):
    LEFT_HALF_SPACE = "Linker Halbraum"
    RIGHT_HALF_SPACE = "Rechter Halbraum"
    CENTER = "Zentrum"
    LEFT_WING = "Linker Flügel"
    RIGHT_WING = "Rechter Flügel"
    BOX = "Strafraum"


class PlayerPosition(StrEnum):
    """Primary position of a roster player (German short names, as shown in the squad module)."""

    TW = "TW"
    IV = "IV"
    LV = "LV"
    RV = "RV"
    DM = "DM"
    ZM = "ZM"
    OM = "OM"
    LA = "LA"
    RA = "RA"
    ST = "ST"


class Direction(StrEnum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
