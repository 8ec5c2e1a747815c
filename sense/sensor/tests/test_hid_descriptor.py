import pytest

from sense.sensor.errors import DescriptorError, ElementUnreadable
from sense.sensor.hid_descriptor import extract_field, parse_report_descriptor


def test_parses_elements_offsets_and_padding():
    desc = bytes([
        0x05, 0x20,         # Usage Page (Sensor)
        0xA1, 0x01,         # Collection
        0x85, 0x02,         #   Report ID (2)
        0x75, 0x04,         #   Report Size (4)
        0x95, 0x01,         #   Report Count (1)
        0x81, 0x03,         #   Input (Const) padding
        0x09, 0x10,         #   Usage (0x10)
        0x09, 0x11,         #   Usage (0x11)
        0x15, 0xF6,         #   Logical Minimum (-10)
        0x25, 0x0A,         #   Logical Maximum (10)
        0x75, 0x06,         #   Report Size (6)
        0x95, 0x02,         #   Report Count (2)
        0x81, 0x02,         #   Input (Data,Var,Abs)
        0xC0,
    ])
    rd = parse_report_descriptor(desc)

    assert rd.uses_report_ids
    assert [(el.usage, el.bit_offset, el.bit_size) for el in rd.elements] == [(0x10, 4, 6), (0x11, 10, 6)]
    first = rd.find(0x20, 0x10)
    assert first.report_id == 2
    assert first.logical_min == -10 and first.logical_max == 10
    assert rd.report_length(first) == 1 + 2   # 16 bits of payload


def test_extract_signed_field():
    desc = bytes([0x05, 0x20, 0x09, 0x10, 0x15, 0x80, 0x25, 0x7F, 0x75, 0x08, 0x95, 0x01, 0x81, 0x02])
    el = parse_report_descriptor(desc).elements[0]
    assert extract_field(bytes([0, 0xFE]), el) == -2


def test_unsigned_logical_max_when_minimum_non_negative():
    desc = bytes([0x05, 0x20, 0x09, 0x10, 0x15, 0x00, 0x25, 0xFF, 0x75, 0x08, 0x95, 0x01, 0x81, 0x02])
    el = parse_report_descriptor(desc).elements[0]
    assert el.logical_max == 255
    assert extract_field(bytes([0, 200]), el) == 200


def test_extended_usage_carries_its_page():
    desc = bytes([0x05, 0x01, 0x0B, 0x7F, 0x04, 0x20, 0x00, 0x75, 0x08, 0x95, 0x01, 0xB1, 0x02])
    el = parse_report_descriptor(desc).elements[0]
    assert (el.usage_page, el.usage, el.report_type) == (0x20, 0x47F, "feature")


def test_short_report_is_unreadable():
    desc = bytes([0x05, 0x20, 0x09, 0x10, 0x75, 0x10, 0x95, 0x01, 0x81, 0x02])
    el = parse_report_descriptor(desc).elements[0]
    with pytest.raises(ElementUnreadable):
        extract_field(bytes([0, 1]), el)


@pytest.mark.parametrize("desc", [
    bytes([0x05]),              # truncated item
    bytes([0xA1, 0x01]),        # unbalanced collection
    bytes([0xC0]),              # stray end collection
    bytes([0xB4]),              # pop without push
])
def test_malformed_descriptor(desc):
    with pytest.raises(DescriptorError):
        parse_report_descriptor(desc)
