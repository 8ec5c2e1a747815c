"""
Sense: CORE CONTRACTS

Data model shared by the capture adapter, the filters, the tilt pipeline and the
presentation shells. Everything here is immutable; components replace values
wholesale instead of patching them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


Vec2 = Tuple[float, float]


# ============================================================
# Platform input → Capture adapter
# ============================================================

class InputKind(str, Enum):
    PRESS_BEGIN = "PRESS_BEGIN"      # mouse-down / force click start
    PRESS_CHANGE = "PRESS_CHANGE"    # pressure-change while pressing
    PRESS_DRAG = "PRESS_DRAG"        # mouse-dragged, carries pressure
    PRESS_END = "PRESS_END"          # mouse-up
    TOUCH_BEGIN = "TOUCH_BEGIN"
    TOUCH_MOVE = "TOUCH_MOVE"
    TOUCH_END = "TOUCH_END"
    TOUCH_CANCEL = "TOUCH_CANCEL"
    POINTER_MOVE = "POINTER_MOVE"


FORCE_KINDS = frozenset({InputKind.PRESS_BEGIN, InputKind.PRESS_CHANGE, InputKind.PRESS_DRAG})
TOUCH_KINDS = frozenset({
    InputKind.TOUCH_BEGIN, InputKind.TOUCH_MOVE, InputKind.TOUCH_END, InputKind.TOUCH_CANCEL,
})


@dataclass(frozen=True)
class RawInputEvent:
    """
    One platform event, already stripped of platform types.

    touches holds the positions of every contact that is still touching after
    this event, in the unit square (y grows upward).
    """
    kind: InputKind
    t: float
    touches: Tuple[Vec2, ...] = ()
    pressure: Optional[float] = None
    stage: Optional[int] = None


# ============================================================
# Capture adapter → Weight filter / Session
# ============================================================

@dataclass(frozen=True, order=True)
class TouchPoint:
    id: int
    position: Vec2


@dataclass(frozen=True)
class TrackpadSample:
    pressure: float
    stage: int
    finger_count: int
    centroid: Optional[Vec2]
    touch_points: Tuple[TouchPoint, ...]
    is_pressing: bool
    timestamp: float


# ============================================================
# Tilt pipeline → Session
# ============================================================

@dataclass(frozen=True)
class TiltReading:
    degrees: Optional[float]
    source: str
    reliability: float

    @property
    def has_data(self) -> bool:
        return self.degrees is not None


NO_SENSOR_READING = TiltReading(degrees=None, source="No sensor source found", reliability=0.0)


class WeightUnit(str, Enum):
    GRAMS = "g"
    NEWTONS = "N"


def clamp01(x: float) -> float:
    if x < 0.0:
        return 0.0
    if x > 1.0:
        return 1.0
    return x
