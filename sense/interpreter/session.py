from __future__ import annotations

import math
from dataclasses import dataclass
from threading import Lock
from typing import Optional, Tuple

from sense.core.config import DEFAULT_SETTINGS, Settings
from sense.core.control import CalibrationState
from sense.core.types import (
    NO_SENSOR_READING, TiltReading, TouchPoint, TrackpadSample, Vec2, WeightUnit, clamp01,
)
from sense.interpreter.tilt import TiltMonitor
from sense.interpreter.weight import WeightFilter, grams_to_newtons


@dataclass(frozen=True)
class SessionSnapshot:
    """Everything the presentation layer reads, frozen at one instant."""
    pressure: float
    pressure_percent: int
    stage: int
    weight_grams: float
    weight_newtons: float
    weight_progress: float
    formatted_weight: str
    unit: WeightUnit
    tare_offset: float
    finger_count: int
    touch_points: Tuple[TouchPoint, ...]
    centroid: Vec2
    is_pressing: bool
    tilt_degrees: Optional[float]
    formatted_tilt: str
    tilt_progress: float
    tilt_source: str
    tilt_reliability: float


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def format_weight(grams: float, unit: WeightUnit, grams_per_newton: float) -> str:
    if unit == WeightUnit.NEWTONS:
        return f"{grams / grams_per_newton:.2f} N"
    return f"{round_half_up(grams)} g"


def format_tilt(degrees: Optional[float]) -> str:
    if degrees is None:
        return "--.-°"
    return f"{degrees:.1f}°"


class Session:
    """
    Owner of every value the UI shows.

    Samples come in from the capture thread, tilt readings from the tilt
    monitor; both are applied under one lock. Tare/unit actions may come from
    hotkey or tray threads.
    """

    def __init__(self, settings: Settings = DEFAULT_SETTINGS,
                 tilt_monitor: Optional[TiltMonitor] = None,
                 calibration: Optional[CalibrationState] = None) -> None:
        self.settings = settings
        self.calibration = calibration if calibration is not None else CalibrationState()
        self.weight = WeightFilter(settings.scale, self.calibration)
        self.tilt_monitor = tilt_monitor
        if tilt_monitor is not None:
            tilt_monitor.on_reading = self.handle_tilt

        self._lock = Lock()
        self._stage = 0
        self._finger_count = 0
        self._touch_points: Tuple[TouchPoint, ...] = ()
        self._centroid: Vec2 = (0.5, 0.5)
        self._is_pressing = False
        self._tilt: TiltReading = NO_SENSOR_READING

    # lifecycle ---------------------------------------------------

    def start(self) -> None:
        if self.tilt_monitor is not None:
            self.tilt_monitor.start()

    def stop(self) -> None:
        if self.tilt_monitor is not None:
            self.tilt_monitor.stop()

    # inputs ------------------------------------------------------

    def handle_sample(self, sample: TrackpadSample) -> None:
        with self._lock:
            self._stage = sample.stage
            self._finger_count = sample.finger_count
            self._touch_points = sample.touch_points
            self._is_pressing = sample.is_pressing or sample.finger_count > 0 or bool(sample.touch_points)
            if sample.centroid is not None:
                self._centroid = sample.centroid
            self.weight.update(sample)

    def handle_tilt(self, reading: TiltReading) -> None:
        with self._lock:
            self._tilt = reading

    # actions -----------------------------------------------------

    def tare(self) -> float:
        with self._lock:
            return self.weight.tare()

    def clear_tare(self) -> None:
        with self._lock:
            self.weight.clear_tare()

    @property
    def unit(self) -> WeightUnit:
        return self.calibration.unit()

    @unit.setter
    def unit(self, value: WeightUnit) -> None:
        self.calibration.set_unit(value)

    def toggle_unit(self) -> WeightUnit:
        return self.calibration.toggle_unit()

    # projections -------------------------------------------------

    @property
    def pressure(self) -> float:
        return self.weight.filtered_pressure

    @property
    def weight_grams(self) -> float:
        return self.weight.grams

    @property
    def weight_newtons(self) -> float:
        return grams_to_newtons(self.weight.grams, self.settings.scale)

    @property
    def weight_progress(self) -> float:
        return clamp01(self.weight.grams / self.settings.scale.gauge_max_grams)

    @property
    def pressure_percent(self) -> int:
        return round_half_up(self.weight.filtered_pressure * 100)

    @property
    def formatted_weight(self) -> str:
        return format_weight(self.weight.grams, self.unit, self.settings.scale.grams_per_newton)

    @property
    def tilt(self) -> TiltReading:
        with self._lock:
            return self._tilt

    @property
    def formatted_tilt(self) -> str:
        return format_tilt(self.tilt.degrees)

    @property
    def tilt_progress(self) -> float:
        degrees = self.tilt.degrees
        if degrees is None:
            return 0.0
        return clamp01(degrees / self.settings.tilt.gauge_max_degrees)

    @property
    def finger_count(self) -> int:
        return self._finger_count

    @property
    def touch_points(self) -> Tuple[TouchPoint, ...]:
        return self._touch_points

    @property
    def centroid(self) -> Vec2:
        return self._centroid

    @property
    def is_pressing(self) -> bool:
        return self._is_pressing

    def snapshot(self) -> SessionSnapshot:
        scale = self.settings.scale
        unit = self.unit
        with self._lock:
            grams = self.weight.grams
            pressure = self.weight.filtered_pressure
            tilt = self._tilt
            degrees = tilt.degrees
            return SessionSnapshot(
                pressure=pressure,
                pressure_percent=round_half_up(pressure * 100),
                stage=self._stage,
                weight_grams=grams,
                weight_newtons=grams_to_newtons(grams, scale),
                weight_progress=clamp01(grams / scale.gauge_max_grams),
                formatted_weight=format_weight(grams, unit, scale.grams_per_newton),
                unit=unit,
                tare_offset=self.weight.tare_offset,
                finger_count=self._finger_count,
                touch_points=self._touch_points,
                centroid=self._centroid,
                is_pressing=self._is_pressing,
                tilt_degrees=degrees,
                formatted_tilt=format_tilt(degrees),
                tilt_progress=0.0 if degrees is None else clamp01(degrees / self.settings.tilt.gauge_max_degrees),
                tilt_source=tilt.source,
                tilt_reliability=tilt.reliability,
            )
