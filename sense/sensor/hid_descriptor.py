"""
Minimal HID report descriptor parser.

hidapi hands out raw reports only, so the data elements of a device (usage,
bit position, logical range) are recovered from its report descriptor. Only
short items are interpreted; long items are skipped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from sense.sensor.errors import DescriptorError, ElementUnreadable

# item types
_MAIN, _GLOBAL, _LOCAL = 0, 1, 2

# main tags
_INPUT, _OUTPUT, _COLLECTION, _FEATURE, _END_COLLECTION = 0x8, 0x9, 0xA, 0xB, 0xC
_REPORT_TYPES = {_INPUT: "input", _OUTPUT: "output", _FEATURE: "feature"}

# global tags
_USAGE_PAGE, _LOGICAL_MIN, _LOGICAL_MAX = 0x0, 0x1, 0x2
_REPORT_SIZE, _REPORT_ID, _REPORT_COUNT = 0x7, 0x8, 0x9
_PUSH, _POP = 0xA, 0xB

# local tags
_USAGE, _USAGE_MIN, _USAGE_MAX = 0x0, 0x1, 0x2


@dataclass(frozen=True)
class HidElement:
    usage_page: int
    usage: int
    report_id: int
    report_type: str          # "input" | "output" | "feature"
    bit_offset: int           # from the first data byte (after the id byte)
    bit_size: int
    logical_min: int
    logical_max: int


@dataclass
class ReportDescriptor:
    elements: List[HidElement] = field(default_factory=list)
    report_bits: Dict[Tuple[str, int], int] = field(default_factory=dict)
    uses_report_ids: bool = False

    def find(self, usage_page: int, usage: int) -> Optional[HidElement]:
        """First element with this usage; input elements win over feature ones."""
        hits = [el for el in self.elements if el.usage_page == usage_page and el.usage == usage]
        hits.sort(key=lambda el: el.report_type != "input")
        return hits[0] if hits else None

    def report_length(self, element: HidElement) -> int:
        """Buffer size for get_*_report: the report id byte plus the payload."""
        bits = self.report_bits.get((element.report_type, element.report_id), 0)
        return 1 + (bits + 7) // 8


@dataclass(frozen=True)
class _Globals:
    usage_page: int = 0
    logical_min: int = 0
    logical_max: int = 0
    logical_max_unsigned: int = 0
    report_size: int = 0
    report_id: int = 0
    report_count: int = 0


def _unsigned(data: bytes) -> int:
    return int.from_bytes(data, "little", signed=False)


def _signed(data: bytes) -> int:
    return int.from_bytes(data, "little", signed=True) if data else 0


def parse_report_descriptor(data: bytes) -> ReportDescriptor:
    out = ReportDescriptor()
    g = _Globals()
    stack: List[_Globals] = []
    usages: List[Tuple[int, Optional[int]]] = []   # (usage, explicit page)
    usage_min: Optional[int] = None
    usage_max: Optional[int] = None
    depth = 0

    i = 0
    n = len(data)
    while i < n:
        prefix = data[i]
        if prefix == 0xFE:  # long item
            if i + 2 >= n:
                raise DescriptorError("truncated long item")
            i += 3 + data[i + 1]
            continue

        size = (0, 1, 2, 4)[prefix & 0x3]
        kind = (prefix >> 2) & 0x3
        tag = prefix >> 4
        payload = bytes(data[i + 1:i + 1 + size])
        if len(payload) != size:
            raise DescriptorError(f"truncated item at byte {i}")
        i += 1 + size

        if kind == _GLOBAL:
            if tag == _USAGE_PAGE:
                g = replace(g, usage_page=_unsigned(payload))
            elif tag == _LOGICAL_MIN:
                g = replace(g, logical_min=_signed(payload))
            elif tag == _LOGICAL_MAX:
                g = replace(g, logical_max=_signed(payload), logical_max_unsigned=_unsigned(payload))
            elif tag == _REPORT_SIZE:
                g = replace(g, report_size=_unsigned(payload))
            elif tag == _REPORT_ID:
                rid = _unsigned(payload)
                if rid == 0:
                    raise DescriptorError("report id 0 is reserved")
                out.uses_report_ids = True
                g = replace(g, report_id=rid)
            elif tag == _REPORT_COUNT:
                g = replace(g, report_count=_unsigned(payload))
            elif tag == _PUSH:
                stack.append(g)
            elif tag == _POP:
                if not stack:
                    raise DescriptorError("pop without push")
                g = stack.pop()
            continue

        if kind == _LOCAL:
            if tag == _USAGE:
                if size == 4:
                    usages.append((_unsigned(payload) & 0xFFFF, _unsigned(payload) >> 16))
                else:
                    usages.append((_unsigned(payload), None))
            elif tag == _USAGE_MIN:
                usage_min = _unsigned(payload)
            elif tag == _USAGE_MAX:
                usage_max = _unsigned(payload)
            continue

        if kind != _MAIN:
            continue

        if tag in _REPORT_TYPES:
            report_type = _REPORT_TYPES[tag]
            key = (report_type, g.report_id)
            offset = out.report_bits.get(key, 0)
            constant = bool(_unsigned(payload) & 0x1) if payload else False

            logical_max = g.logical_max
            if g.logical_min >= 0:
                # non-negative ranges encode the maximum unsigned
                logical_max = g.logical_max_unsigned

            if not constant:
                for k in range(g.report_count):
                    if usages:
                        usage, page = usages[min(k, len(usages) - 1)]
                    elif usage_min is not None:
                        usage = usage_min + k
                        if usage_max is not None:
                            usage = min(usage, usage_max)
                        page = None
                    else:
                        break
                    out.elements.append(HidElement(
                        usage_page=page if page is not None else g.usage_page,
                        usage=usage,
                        report_id=g.report_id,
                        report_type=report_type,
                        bit_offset=offset + k * g.report_size,
                        bit_size=g.report_size,
                        logical_min=g.logical_min,
                        logical_max=logical_max,
                    ))
            out.report_bits[key] = offset + g.report_size * g.report_count
        elif tag == _COLLECTION:
            depth += 1
        elif tag == _END_COLLECTION:
            if depth == 0:
                raise DescriptorError("end collection without collection")
            depth -= 1

        usages = []
        usage_min = usage_max = None

    if depth != 0:
        raise DescriptorError("unbalanced collections")
    return out


def extract_field(report: bytes, element: HidElement) -> int:
    """
    Pull one element's value out of a report buffer whose first byte is the
    report id (hidapi keeps that byte even when the device uses no ids).
    """
    payload = bytes(report[1:])
    end_bit = element.bit_offset + element.bit_size
    if element.bit_size <= 0 or len(payload) * 8 < end_bit:
        raise ElementUnreadable(
            f"report too short for usage 0x{element.usage:X}: {len(payload)} bytes"
        )
    if element.report_id and report[0] != element.report_id:
        raise ElementUnreadable(f"expected report id {element.report_id}, got {report[0]}")
    value = (int.from_bytes(payload, "little") >> element.bit_offset) & ((1 << element.bit_size) - 1)
    if element.logical_min < 0 and value & (1 << (element.bit_size - 1)):
        value -= 1 << element.bit_size
    return value


def normalize_hid_angle(raw: int, logical_max: int) -> Optional[float]:
    """
    Infer the fixed-point scale of a raw angle from the element's logical max:
    <=360 degrees, <=36000 centidegrees, <=360000 millidegrees. Anything above
    180 is reported over a 0..360 range and folded back onto the hinge side.
    """
    if raw < 0:
        return None

    top = max(0, logical_max)
    if top <= 360:
        degrees = float(raw)
    elif top <= 36_000:
        degrees = raw / 100.0
    elif top <= 360_000:
        degrees = raw / 1_000.0
    elif raw <= 360:
        degrees = float(raw)
    elif raw <= 36_000:
        degrees = raw / 100.0
    else:
        return None

    if degrees > 180.0:
        degrees = 360.0 - degrees

    if not math.isfinite(degrees) or degrees < 0.0 or degrees > 180.0:
        return None
    return degrees
