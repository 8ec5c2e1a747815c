from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Optional

import hid

from sense.core.config import HingeHidMatch
from sense.sensor.errors import DescriptorError, ElementUnreadable, NoDeviceFound, SensorError
from sense.sensor.hid_descriptor import (
    HidElement, ReportDescriptor, extract_field, normalize_hid_angle, parse_report_descriptor,
)

log = logging.getLogger(__name__)


class HIDHingeAngleReader:
    """
    Hinge angle straight from the lid sensor (usage page 0x20 / usage 0x8A).

    The device handle and its two angle elements are cached and guarded by one
    lock; readers may call in from the pipeline's worker thread. Any failure is
    "no data". An I/O error drops the handle so the next call enumerates again.
    """

    def __init__(self, backend: Any = None, match: HingeHidMatch = HingeHidMatch()) -> None:
        self.backend = backend if backend is not None else hid
        self.match = match
        self._lock = Lock()
        self._dev: Any = None
        self._descriptor: Optional[ReportDescriptor] = None
        self._angle: Optional[HidElement] = None
        self._fine_angle: Optional[HidElement] = None

    def read_angle_degrees(self) -> Optional[float]:
        with self._lock:
            try:
                self._ensure_device_locked()
            except SensorError as exc:
                log.debug("hinge HID unavailable: %s", exc)
                return None

            for element in (self._angle, self._fine_angle):
                if element is None or self._dev is None:
                    continue
                try:
                    raw = self._read_element_locked(element)
                except ElementUnreadable as exc:
                    log.debug("hinge element 0x%X unreadable: %s", element.usage, exc)
                    continue
                value = normalize_hid_angle(raw, element.logical_max)
                if value is not None:
                    return value
            return None

    def close(self) -> None:
        with self._lock:
            self._drop_device_locked()

    # ------------------------------------------------------------

    def _ensure_device_locked(self) -> None:
        if self._dev is None:
            self._open_device_locked()
        if self._angle is None or self._fine_angle is None:
            self._cache_elements_locked()

    def _open_device_locked(self) -> None:
        try:
            infos = self.backend.enumerate()
        except (OSError, ValueError) as exc:
            raise NoDeviceFound(f"enumerate failed: {exc}") from exc

        matches = [
            info for info in infos
            if info.get("usage_page") == self.match.usage_page and info.get("usage") == self.match.usage
        ]
        if not matches:
            raise NoDeviceFound("no hinge sensor device")

        dev = self.backend.device()
        try:
            dev.open_path(matches[0]["path"])
            descriptor = parse_report_descriptor(bytes(dev.get_report_descriptor()))
        except (OSError, ValueError, DescriptorError) as exc:
            try:
                dev.close()
            except OSError:
                pass
            raise NoDeviceFound(f"cannot open hinge sensor: {exc}") from exc

        self._dev = dev
        self._descriptor = descriptor
        self._angle = None
        self._fine_angle = None

    def _cache_elements_locked(self) -> None:
        if self._descriptor is None:
            return
        page = self.match.usage_page
        if self._angle is None:
            self._angle = self._descriptor.find(page, self.match.angle_usage)
        if self._fine_angle is None:
            self._fine_angle = self._descriptor.find(page, self.match.fine_angle_usage)

    def _read_element_locked(self, element: HidElement) -> int:
        if self._descriptor is None or self._dev is None:
            raise ElementUnreadable("no descriptor")
        length = self._descriptor.report_length(element)
        try:
            if element.report_type == "feature":
                report = self._dev.get_feature_report(element.report_id, length)
            else:
                report = self._dev.get_input_report(element.report_id, length)
        except OSError as exc:
            self._drop_device_locked()
            raise ElementUnreadable(str(exc)) from exc
        except ValueError as exc:
            raise ElementUnreadable(str(exc)) from exc
        if not report:
            raise ElementUnreadable("empty report")
        return extract_field(bytes(report), element)

    def _drop_device_locked(self) -> None:
        if self._dev is not None:
            try:
                self._dev.close()
            except OSError:
                pass
        self._dev = None
        self._descriptor = None
        self._angle = None
        self._fine_angle = None
