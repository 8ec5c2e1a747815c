from __future__ import annotations

from dataclasses import dataclass

from sense.core.config import PressureScaleTuning
from sense.core.control import CalibrationState
from sense.core.filters import LowPass
from sense.core.types import TrackpadSample


@dataclass(frozen=True)
class WeightEstimate:
    pressure: float   # filtered, before tare
    grams: float


def grams_to_newtons(grams: float, tuning: PressureScaleTuning = PressureScaleTuning()) -> float:
    return grams / tuning.grams_per_newton


class WeightFilter:
    """
    Pressure → grams.

    Releasing force must look instantaneous, so a sample at or below the force
    gate zeroes the filter instead of letting the average decay. The tare offset
    is in pressure units: changing grams_per_full_pressure leaves it valid.
    """

    def __init__(self, tuning: PressureScaleTuning = PressureScaleTuning(),
                 calibration: CalibrationState | None = None) -> None:
        self.tuning = tuning
        self.calibration = calibration if calibration is not None else CalibrationState()
        # starts from 0 rather than seeding on the first sample
        self._lp = LowPass(alpha=tuning.alpha, x0=0.0, seed_first=False)
        self._estimate = WeightEstimate(pressure=0.0, grams=0.0)

    @property
    def filtered_pressure(self) -> float:
        return self._estimate.pressure

    @property
    def grams(self) -> float:
        return self._estimate.grams

    @property
    def tare_offset(self) -> float:
        return self.calibration.tare_offset()

    def update(self, sample: TrackpadSample) -> WeightEstimate:
        if sample.pressure <= self.tuning.force_gate:
            self._lp.reset()
            self._estimate = WeightEstimate(pressure=0.0, grams=0.0)
            return self._estimate

        filtered = self._lp.apply(sample.pressure)
        grams = max(0.0, filtered - self.calibration.tare_offset()) * self.tuning.grams_per_full_pressure
        self._estimate = WeightEstimate(pressure=filtered, grams=grams)
        return self._estimate

    def tare(self) -> float:
        """Current filtered pressure becomes the zero point."""
        offset = self._estimate.pressure
        self.calibration.set_tare_offset(offset)
        return offset

    def clear_tare(self) -> None:
        self.calibration.clear_tare()
