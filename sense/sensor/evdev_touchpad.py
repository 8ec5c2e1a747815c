from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from evdev import InputDevice, ecodes as e, list_devices

from sense.core.types import InputKind, RawInputEvent, Vec2
from sense.sensor.errors import NoDeviceFound

log = logging.getLogger(__name__)


@dataclass
class _Slot:
    tracking_id: int = -1
    x: Optional[int] = None
    y: Optional[int] = None
    pressure: int = 0

    @property
    def active(self) -> bool:
        return self.tracking_id >= 0 and self.x is not None and self.y is not None


def _norm(value: float, lo: float, hi: float) -> float:
    if hi <= lo:
        return 0.0
    v = (value - lo) / (hi - lo)
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else v


@dataclass
class EvdevTouchpadTranslator:
    """
    Multitouch protocol B (slots) → RawInputEvents.

    Events are buffered per slot and flushed on SYN_REPORT. One frame can produce
    a touch event (count or position change) followed by a force event (button or
    pressure change). The physical button is the force "stage 1"; releasing every
    contact without the button ends the force gesture too.
    """
    ranges: Dict[int, Tuple[int, int]]
    max_slots: int = 10

    _slots: List[_Slot] = field(default_factory=list)
    _slot: int = 0
    _button: bool = False
    _button_changed: bool = False
    _single_pressure: Optional[int] = None
    _last_touches: Tuple[Vec2, ...] = ()
    _last_pressure: float = 0.0
    _force_active: bool = False

    def __post_init__(self) -> None:
        if not self._slots:
            self._slots = [_Slot() for _ in range(self.max_slots)]

    def _current(self) -> _Slot:
        return self._slots[self._slot]

    def _touches(self) -> Tuple[Vec2, ...]:
        xlo, xhi = self.ranges.get(e.ABS_MT_POSITION_X, (0, 1))
        ylo, yhi = self.ranges.get(e.ABS_MT_POSITION_Y, (0, 1))
        out = []
        for s in self._slots:
            if s.active:
                # evdev y grows downward; flip so y grows upward
                out.append((_norm(s.x, xlo, xhi), 1.0 - _norm(s.y, ylo, yhi)))
        return tuple(out)

    def _pressure(self) -> float:
        if self._single_pressure is not None and e.ABS_PRESSURE in self.ranges:
            lo, hi = self.ranges[e.ABS_PRESSURE]
            return _norm(self._single_pressure, lo, hi)
        if e.ABS_MT_PRESSURE not in self.ranges:
            return 1.0 if self._button else 0.0
        lo, hi = self.ranges[e.ABS_MT_PRESSURE]
        values = [s.pressure for s in self._slots if s.active]
        return _norm(max(values), lo, hi) if values else 0.0

    def feed(self, ev_type: int, code: int, value: int, t: float) -> List[RawInputEvent]:
        if ev_type == e.EV_ABS:
            if code == e.ABS_MT_SLOT:
                self._slot = value if 0 <= value < len(self._slots) else 0
            elif code == e.ABS_MT_TRACKING_ID:
                slot = self._current()
                slot.tracking_id = value
                if value < 0:
                    slot.x = slot.y = None
                    slot.pressure = 0
            elif code == e.ABS_MT_POSITION_X:
                self._current().x = value
            elif code == e.ABS_MT_POSITION_Y:
                self._current().y = value
            elif code == e.ABS_MT_PRESSURE:
                self._current().pressure = value
            elif code == e.ABS_PRESSURE:
                self._single_pressure = value
            return []

        if ev_type == e.EV_KEY and code == e.BTN_LEFT:
            down = value != 0
            if down != self._button:
                self._button = down
                self._button_changed = True
            return []

        if ev_type == e.EV_SYN and code == e.SYN_REPORT:
            return self._flush(t)
        return []

    def _flush(self, t: float) -> List[RawInputEvent]:
        out: List[RawInputEvent] = []
        touches = self._touches()
        pressure = self._pressure()
        stage = 1 if self._button else 0

        if len(touches) > len(self._last_touches):
            out.append(RawInputEvent(InputKind.TOUCH_BEGIN, t, touches))
        elif len(touches) < len(self._last_touches):
            out.append(RawInputEvent(InputKind.TOUCH_END, t, touches))
        elif touches != self._last_touches:
            out.append(RawInputEvent(InputKind.TOUCH_MOVE, t, touches))

        if self._button_changed:
            kind = InputKind.PRESS_BEGIN if self._button else InputKind.PRESS_END
            out.append(RawInputEvent(kind, t, touches, pressure=pressure, stage=stage))
            self._force_active = self._button
        elif touches and pressure != self._last_pressure:
            kind = InputKind.PRESS_DRAG if self._button else InputKind.PRESS_CHANGE
            out.append(RawInputEvent(kind, t, touches, pressure=pressure, stage=stage))
            self._force_active = True
        elif not touches and self._force_active and not self._button:
            out.append(RawInputEvent(InputKind.PRESS_END, t, (), pressure=0.0, stage=0))
            self._force_active = False

        self._button_changed = False
        self._last_touches = touches
        self._last_pressure = pressure
        return out


def is_touchpad(dev: InputDevice) -> bool:
    caps = dev.capabilities(absinfo=False)
    return e.ABS_MT_POSITION_X in caps.get(e.EV_ABS, []) and e.BTN_TOUCH in caps.get(e.EV_KEY, [])


def find_touchpad(path: str | None = None) -> InputDevice:
    if path:
        return InputDevice(path)
    for p in list_devices():
        try:
            dev = InputDevice(p)
        except OSError:
            continue
        if is_touchpad(dev):
            return dev
        dev.close()
    raise NoDeviceFound("no multitouch touchpad among input devices")


def _ranges(dev: InputDevice) -> Dict[int, Tuple[int, int]]:
    out = {}
    for code in (e.ABS_MT_POSITION_X, e.ABS_MT_POSITION_Y, e.ABS_MT_PRESSURE, e.ABS_PRESSURE):
        try:
            info = dev.absinfo(code)
        except OSError:
            continue
        if info.max > info.min:
            out[code] = (info.min, info.max)
    return out


class EvdevTouchpadSource:
    """Reads a touchpad event device and yields RawInputEvents."""

    def __init__(self, path: str | None = None) -> None:
        self.dev = find_touchpad(path)
        self.translator = EvdevTouchpadTranslator(ranges=_ranges(self.dev))
        log.info("touchpad: %s (%s)", self.dev.name, self.dev.path)

    def events(self) -> Iterator[RawInputEvent]:
        for ev in self.dev.read_loop():
            yield from self.translator.feed(ev.type, ev.code, ev.value, ev.timestamp())

    def poll(self) -> List[RawInputEvent]:
        """Non-blocking drain of whatever the device has queued."""
        out: List[RawInputEvent] = []
        try:
            for ev in self.dev.read():
                out.extend(self.translator.feed(ev.type, ev.code, ev.value, ev.timestamp()))
        except BlockingIOError:
            pass
        return out

    def close(self) -> None:
        try:
            self.dev.close()
        except OSError:
            pass
