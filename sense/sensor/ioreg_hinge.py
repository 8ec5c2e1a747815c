from __future__ import annotations

import logging
import math
import re
import subprocess
from typing import Callable, List, Optional, Sequence

from sense.core.config import RegistryQuery
from sense.sensor.errors import RegistryQueryFailed

log = logging.getLogger(__name__)

_SUBJECT = r"(?:hinge|lid|screen|display|clamshell)"
_MEASURE = r"(?:angle|tilt|pitch)"
_NUMBER = r"([-+]?\d+(?:\.\d+)?)"

# "LidAngle" = 112
QUOTED_KEY_VALUE = re.compile(
    r'"([^"]*' + _SUBJECT + r'[^"]*' + _MEASURE + r'[^"]*)"\s*=\s*' + _NUMBER,
    re.IGNORECASE,
)
# HingeAngle=112, lid tilt = 1.95
BARE_KEY_VALUE = re.compile(
    _SUBJECT + r"[^=\n]{0,40}" + _MEASURE + r"[^=\n]{0,40}=\s*" + _NUMBER,
    re.IGNORECASE,
)

REALISTIC_BAND = (10.0, 160.0)


def normalize_registry_angle(raw: float) -> Optional[float]:
    """
    Guess the unit of a registry number and return degrees, or None.

    Small non-integers are radians; whole numbers up to pi look like booleans and
    are dropped (0 is kept). 180..360 folds to the shorter arc. Larger values are
    deci-, centi- or millidegrees.
    """
    if not math.isfinite(raw):
        return None

    value = abs(raw)
    if value == 0:
        return 0.0

    if value <= math.pi:
        if abs(value - round(value)) <= 0.0001:
            return None
        return value * 180.0 / math.pi

    if value <= 180:
        return value
    if value <= 360:
        return min(value, 360 - value)
    if value <= 1_800:
        return value / 10
    if value <= 18_000:
        return value / 100
    if value <= 180_000:
        return value / 1_000
    return None


def upper_median(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    return ordered[len(ordered) // 2]


def select_angle(candidates: Sequence[float], band=REALISTIC_BAND) -> Optional[float]:
    """
    Upper median of the candidates inside the realistic hinge band, else of all.
    Dumps often carry 0/1 flags and 360 "fully open" markers next to the real key.
    """
    lo, hi = band
    realistic = [c for c in candidates if lo <= c <= hi]
    if realistic:
        return upper_median(realistic)
    return upper_median(candidates)


def angle_candidates(text: str) -> List[float]:
    out: List[float] = []
    for pattern, group in ((QUOTED_KEY_VALUE, 2), (BARE_KEY_VALUE, 1)):
        for m in pattern.finditer(text):
            try:
                raw = float(m.group(group))
            except ValueError:
                continue
            value = normalize_registry_angle(raw)
            if value is not None:
                out.append(value)
    return out


def parse_angle(text: str, band=REALISTIC_BAND) -> Optional[float]:
    return select_angle(angle_candidates(text), band)


Runner = Callable[..., "subprocess.CompletedProcess[bytes]"]


class RegistryHingeAngleReader:
    """
    Fallback hinge angle from `ioreg` text dumps.

    Blocks on a child process; callers run it off the owner thread. Launch
    failures, non-zero exits and unreadable output all mean "no data".
    """

    def __init__(self, query: RegistryQuery = RegistryQuery(),
                 band=REALISTIC_BAND, runner: Runner = subprocess.run) -> None:
        self.query = query
        self.band = band
        self._run = runner

    def queries(self) -> List[List[str]]:
        base = ["-r", "-l", "-w", "0"]
        out = [base + ["-c", name] for name in self.query.class_candidates]
        out.append(base + ["-d", str(self.query.shallow_depth)])
        return out

    def read_angle_degrees(self) -> Optional[float]:
        for args in self.queries():
            try:
                text = self.dump(args)
            except RegistryQueryFailed as exc:
                log.debug("ioreg %s: %s", " ".join(args), exc)
                continue
            angle = parse_angle(text, self.band)
            if angle is not None:
                return angle
        return None

    def dump(self, args: List[str]) -> str:
        try:
            proc = self._run(
                [self.query.tool, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise RegistryQueryFailed(f"launch failed: {exc}") from exc

        if proc.returncode != 0:
            raise RegistryQueryFailed(f"exit status {proc.returncode}")
        try:
            text = (proc.stdout or b"").decode("utf-8")
        except UnicodeDecodeError as exc:
            raise RegistryQueryFailed("output is not UTF-8") from exc
        if not text:
            raise RegistryQueryFailed("empty output")
        return text
