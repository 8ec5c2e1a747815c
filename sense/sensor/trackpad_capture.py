from __future__ import annotations

import math
import time
from typing import Callable, Iterable, Optional, Tuple

from sense.core.types import (
    FORCE_KINDS, TOUCH_KINDS,
    InputKind, RawInputEvent, TouchPoint, TrackpadSample, Vec2, clamp01,
)


def order_touches(positions: Iterable[Vec2]) -> Tuple[TouchPoint, ...]:
    """
    Assign ids 1..N to the current contacts, sorted by x then y.
    Ids are per event; they are for marker rendering, not contact tracking.
    """
    ordered = sorted((clamp01(float(x)), clamp01(float(y))) for x, y in positions)
    return tuple(TouchPoint(id=i + 1, position=p) for i, p in enumerate(ordered))


def centroid_of(points: Tuple[TouchPoint, ...]) -> Optional[Vec2]:
    if not points:
        return None
    n = len(points)
    return (
        sum(p.position[0] for p in points) / n,
        sum(p.position[1] for p in points) / n,
    )


def _is_well_formed(event: RawInputEvent) -> bool:
    if not isinstance(event.kind, InputKind):
        return False
    for pos in event.touches:
        if len(pos) != 2 or not all(math.isfinite(float(v)) for v in pos):
            return False
    if event.pressure is not None and not math.isfinite(float(event.pressure)):
        return False
    return True


class TrackpadCapture:
    """
    Turns RawInputEvents into TrackpadSamples, one per event.

    Pressure and stage are sticky: they come from the latest force event and are
    only cleared by PRESS_END (or reset()). Touch state follows the touching set
    carried by touch events and mouse-up; a mouse-up with fingers still resting
    keeps them. Holds no calibration.
    """

    def __init__(self, on_sample: Optional[Callable[[TrackpadSample], None]] = None,
                 clock: Callable[[], float] = time.time) -> None:
        self.on_sample = on_sample
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        self._pointer_active = False
        self._force_active = False
        self._pressure = 0.0
        self._stage = 0
        self._points: Tuple[TouchPoint, ...] = ()
        self._centroid: Optional[Vec2] = None

    @property
    def pointer_active(self) -> bool:
        return self._pointer_active

    def handle(self, event: RawInputEvent) -> TrackpadSample:
        try:
            well_formed = _is_well_formed(event)
        except (TypeError, ValueError):
            well_formed = False
        if not well_formed:
            sample = TrackpadSample(
                pressure=0.0, stage=0, finger_count=0, centroid=None,
                touch_points=(), is_pressing=False, timestamp=self._clock(),
            )
            return self._emit(sample)

        kind = event.kind
        if kind == InputKind.PRESS_BEGIN:
            self._pointer_active = True
        if kind in FORCE_KINDS:
            self._force_active = True
            self._pressure = clamp01(float(event.pressure or 0.0))
            self._stage = int(event.stage or 0)
        elif kind == InputKind.PRESS_END:
            self._pointer_active = False
            self._force_active = False
            self._pressure = 0.0
            self._stage = 0

        # touch events and mouse-up are authoritative, including the empty set;
        # other events only refresh touches they actually carry
        if kind in TOUCH_KINDS or kind == InputKind.PRESS_END or event.touches:
            self._set_touches(event.touches)

        sample = TrackpadSample(
            pressure=self._pressure,
            stage=self._stage,
            finger_count=len(self._points),
            centroid=self._centroid,
            touch_points=self._points,
            is_pressing=self._force_active or len(self._points) > 0,
            timestamp=event.t,
        )
        return self._emit(sample)

    def _set_touches(self, positions: Iterable[Vec2]) -> None:
        self._points = order_touches(positions)
        self._centroid = centroid_of(self._points)

    def _emit(self, sample: TrackpadSample) -> TrackpadSample:
        if self.on_sample is not None:
            self.on_sample(sample)
        return sample
