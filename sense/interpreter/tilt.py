from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from sense.core.config import TiltTuning
from sense.core.filters import LowPass
from sense.core.types import NO_SENSOR_READING, TiltReading

log = logging.getLogger(__name__)

HID_SOURCE = "Hinge Sensor (HID)"
REGISTRY_SOURCE = "Hinge Sensor (IORegistry)"
NO_DATA_SOURCE = "No hinge data available"


class TiltMonitor:
    """
    Polls the hinge readers in priority order and publishes one TiltReading per
    cycle.

    Idle → Polling → Idle. Every poll cancels the previous one, so at most one
    registry query is outstanding. The HID reader runs on the polling thread;
    the registry reader blocks on a child process and runs on the executor.
    Each poll carries a token; results are only applied while the token is
    live, checked under the publish lock, so nothing lands after stop().
    """

    def __init__(self, hid_reader: Any, registry_reader: Any,
                 tuning: TiltTuning = TiltTuning(),
                 executor: Optional[ThreadPoolExecutor] = None,
                 on_reading: Optional[Callable[[TiltReading], None]] = None) -> None:
        self.hid_reader = hid_reader
        self.registry_reader = registry_reader
        self.tuning = tuning
        self.on_reading = on_reading

        self._own_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="sense-ioreg")

        self._lock = threading.Lock()
        self._reading = NO_SENSOR_READING
        self._smooth = LowPass(alpha=tuning.alpha, seed_first=True)
        self._generation = 0
        self._token: Optional[threading.Event] = None
        self._future: Optional[Future] = None
        self._timer_stop: Optional[threading.Event] = None
        self._timer: Optional[threading.Thread] = None

    @property
    def reading(self) -> TiltReading:
        with self._lock:
            return self._reading

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        self.stop()
        with self._lock:
            generation = self._generation
            stop = threading.Event()
            self._timer_stop = stop
        t = threading.Thread(target=self._run, args=(stop, generation), name="sense-tilt", daemon=True)
        self._timer = t
        t.start()

    def stop(self) -> None:
        with self._lock:
            self._generation += 1
            if self._timer_stop is not None:
                self._timer_stop.set()
            self._cancel_inflight_locked()
            self._smooth.reset()
            timer = self._timer
            self._timer = None
            self._timer_stop = None
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout=self.tuning.interval_s + 1.0)

    def close(self) -> None:
        self.stop()
        if self._own_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)

    def poll(self) -> Optional[Future]:
        """
        Run one cycle. Returns the pending registry future when the HID tier had
        nothing, else None.
        """
        with self._lock:
            generation = self._generation
        return self._poll(generation)

    # ------------------------------------------------------------

    def _run(self, stop: threading.Event, generation: int) -> None:
        # first poll right away, then on every tick
        self._poll(generation)
        while not stop.wait(self.tuning.interval_s):
            self._poll(generation)

    def _poll(self, generation: int) -> Optional[Future]:
        with self._lock:
            if generation != self._generation:
                return None
            self._cancel_inflight_locked()
            token = threading.Event()
            self._token = token

        angle = _read(self.hid_reader)
        if angle is not None:
            self._publish(token, angle, HID_SOURCE, self.tuning.hid_reliability)
            return None

        with self._lock:
            if token.is_set():
                return None
            future = self._executor.submit(self._registry_cycle, token)
            self._future = future
        return future

    def _registry_cycle(self, token: threading.Event) -> Optional[float]:
        if token.is_set():
            return None
        angle = _read(self.registry_reader)
        if angle is not None:
            self._publish(token, angle, REGISTRY_SOURCE, self.tuning.registry_reliability)
        else:
            self._publish(token, None, NO_DATA_SOURCE, 0.0)
        return angle

    def _publish(self, token: threading.Event, angle: Optional[float], source: str, reliability: float) -> None:
        # on_reading runs under the lock so stop() cannot return mid-publish
        with self._lock:
            if token.is_set():
                return
            degrees = self._smooth.apply(angle) if angle is not None else None
            reading = TiltReading(degrees=degrees, source=source, reliability=reliability)
            self._reading = reading
            if self.on_reading is not None:
                self.on_reading(reading)

    def _cancel_inflight_locked(self) -> None:
        if self._token is not None:
            self._token.set()
        if self._future is not None:
            self._future.cancel()
        self._token = None
        self._future = None


def _read(reader: Any) -> Optional[float]:
    if reader is None:
        return None
    try:
        return reader.read_angle_degrees()
    except Exception:
        log.warning("hinge reader %s failed", type(reader).__name__, exc_info=True)
        return None
