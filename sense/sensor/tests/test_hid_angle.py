import math

import pytest

from sense.sensor.hid_descriptor import normalize_hid_angle


@pytest.mark.parametrize("raw,logical_max", [(90, 360), (9000, 36000), (90000, 360000)])
def test_normalize_by_logical_max(raw, logical_max):
    assert normalize_hid_angle(raw, logical_max) == pytest.approx(90.0)


def test_normalize_reflects_past_180():
    assert normalize_hid_angle(270, 360) == pytest.approx(90.0)
    assert normalize_hid_angle(27000, 36000) == pytest.approx(90.0)


def test_normalize_huge_logical_max_uses_raw_magnitude():
    assert normalize_hid_angle(120, 10_000_000) == pytest.approx(120.0)
    assert normalize_hid_angle(12000, 10_000_000) == pytest.approx(120.0)
    assert normalize_hid_angle(50_000, 10_000_000) is None


def test_normalize_rejects_negative_and_out_of_range():
    assert normalize_hid_angle(-1, 360) is None
    # 400 on a 0..360 element reflects below zero
    assert normalize_hid_angle(400, 360) is None
    assert normalize_hid_angle(0, 360) == 0.0
    assert not math.isnan(normalize_hid_angle(180, 360))
