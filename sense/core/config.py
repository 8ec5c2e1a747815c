"""
Sense: tuning defaults

The grams-per-pressure factor and gauge ceilings were tuned by hand on one
machine. They are configuration, not physics.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Tuple


@dataclass(frozen=True)
class PressureScaleTuning:
    alpha: float = 0.18
    force_gate: float = 0.003              # at or below: treated as released
    grams_per_full_pressure: float = 2700.0
    gauge_max_grams: float = 1500.0
    grams_per_newton: float = 101.97


@dataclass(frozen=True)
class TiltTuning:
    interval_s: float = 0.75
    alpha: float = 0.32
    hid_reliability: float = 0.98
    registry_reliability: float = 0.72
    realistic_band: Tuple[float, float] = (10.0, 160.0)
    gauge_max_degrees: float = 150.0


@dataclass(frozen=True)
class HingeHidMatch:
    usage_page: int = 0x20       # sensor
    usage: int = 0x8A            # hinge
    angle_usage: int = 0x47F     # 1151
    fine_angle_usage: int = 0x545  # 1349


@dataclass(frozen=True)
class RegistryQuery:
    tool: str = "/usr/sbin/ioreg"
    class_candidates: Tuple[str, ...] = (
        "AppleEmbeddedHinge",
        "AppleHIDTransportHIDEventService",
        "AppleHIDEventService",
        "IOPMrootDomain",
    )
    shallow_depth: int = 2


@dataclass(frozen=True)
class Settings:
    scale: PressureScaleTuning = field(default_factory=PressureScaleTuning)
    tilt: TiltTuning = field(default_factory=TiltTuning)
    hid: HingeHidMatch = field(default_factory=HingeHidMatch)
    registry: RegistryQuery = field(default_factory=RegistryQuery)
    touchpad_device: str | None = None


DEFAULT_SETTINGS = Settings()


def _positive_float(env: Mapping[str, str], key: str) -> float | None:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    if value != value or value <= 0.0 or value == float("inf"):
        return None
    return value


def load_settings(env: Mapping[str, str] | None = None, base: Settings = DEFAULT_SETTINGS) -> Settings:
    """
    Apply SENSE_* environment overrides on top of `base`.
    Values that do not parse (or are not positive) are ignored.
    """
    if env is None:
        env = os.environ

    scale = base.scale
    grams = _positive_float(env, "SENSE_GRAMS_PER_FULL_PRESSURE")
    if grams is not None:
        scale = replace(scale, grams_per_full_pressure=grams)
    gauge = _positive_float(env, "SENSE_GAUGE_MAX_GRAMS")
    if gauge is not None:
        scale = replace(scale, gauge_max_grams=gauge)

    tilt = base.tilt
    interval = _positive_float(env, "SENSE_POLL_INTERVAL_S")
    if interval is not None:
        tilt = replace(tilt, interval_s=interval)

    registry = base.registry
    tool = env.get("SENSE_IOREG_PATH")
    if tool:
        registry = replace(registry, tool=tool)

    device = env.get("SENSE_TOUCHPAD_DEVICE") or base.touchpad_device

    return replace(base, scale=scale, tilt=tilt, registry=registry, touchpad_device=device)
