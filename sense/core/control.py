from __future__ import annotations
from dataclasses import dataclass, field
from threading import Lock

from sense.core.types import WeightUnit


@dataclass
class CalibrationState:
    """
    Shared calibration plane.
    Written by tare/reset actions (tray, hotkeys, window keys), read by the weight
    filter on every sample. Lives for the process only.
    """
    _tare_offset: float = 0.0
    _unit: WeightUnit = WeightUnit.GRAMS
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def tare_offset(self) -> float:
        with self._lock:
            return self._tare_offset

    def set_tare_offset(self, value: float) -> None:
        with self._lock:
            self._tare_offset = float(value)

    def clear_tare(self) -> None:
        with self._lock:
            self._tare_offset = 0.0

    def unit(self) -> WeightUnit:
        with self._lock:
            return self._unit

    def set_unit(self, unit: WeightUnit) -> None:
        with self._lock:
            self._unit = WeightUnit(unit)

    def toggle_unit(self) -> WeightUnit:
        with self._lock:
            self._unit = WeightUnit.NEWTONS if self._unit == WeightUnit.GRAMS else WeightUnit.GRAMS
            return self._unit
