from __future__ import annotations

import math
import time
from dataclasses import dataclass
from typing import List

from sense.core.config import load_settings
from sense.core.types import InputKind, RawInputEvent
from sense.interpreter.session import Session
from sense.interpreter.tilt import TiltMonitor
from sense.sensor.ioreg_hinge import RegistryHingeAngleReader
from sense.sensor.trackpad_capture import TrackpadCapture


@dataclass
class FakeSource:
    """
    Deterministic fake trackpad to validate runtime wiring.
    Two fingers press with a slow pressure swell for 3 s, then lift for 1 s.
    """
    start_s: float
    _down: bool = False

    def events(self, t: float) -> List[RawInputEvent]:
        dt = t - self.start_s
        phase = dt % 4.0
        pressing = phase < 3.0

        if pressing:
            touches = ((0.40 + 0.02 * math.sin(dt), 0.5), (0.60, 0.5))
            pressure = 0.25 + 0.15 * math.sin(math.pi * phase / 3.0)
            if not self._down:
                self._down = True
                return [
                    RawInputEvent(InputKind.TOUCH_BEGIN, t, touches),
                    RawInputEvent(InputKind.PRESS_BEGIN, t, touches, pressure=pressure, stage=1),
                ]
            return [RawInputEvent(InputKind.PRESS_DRAG, t, touches, pressure=pressure, stage=1)]

        if self._down:
            self._down = False
            return [RawInputEvent(InputKind.PRESS_END, t)]
        return [RawInputEvent(InputKind.POINTER_MOVE, t)]


def run():
    settings = load_settings()
    tilt = TiltMonitor(
        hid_reader=None,
        registry_reader=RegistryHingeAngleReader(settings.registry, settings.tilt.realistic_band),
        tuning=settings.tilt,
    )
    session = Session(settings, tilt_monitor=tilt)
    capture = TrackpadCapture(on_sample=session.handle_sample)
    src = FakeSource(start_s=time.time())

    print("[Sense] Runtime loop (FAKE SOURCE). Ctrl+C to exit.")
    session.start()
    last_print = 0.0
    try:
        while True:
            t = time.time()
            for ev in src.events(t):
                capture.handle(ev)

            if t - last_print > 0.5:
                snap = session.snapshot()
                print(f"[Sense] {snap.formatted_weight:>8}  fingers={snap.finger_count}  "
                      f"tilt={snap.formatted_tilt} ({snap.tilt_source})")
                last_print = t

            time.sleep(0.016)  # ~60Hz loop
    except KeyboardInterrupt:
        print("\n[Sense] exiting")
    finally:
        session.stop()
        tilt.close()


if __name__ == "__main__":
    run()
