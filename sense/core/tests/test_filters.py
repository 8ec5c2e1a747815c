import pytest

from sense.core.filters import LowPass


def test_seeded_filter_takes_first_sample():
    lp = LowPass(alpha=0.32)
    assert lp.value is None
    assert lp.apply(90.0) == 90.0
    assert lp.apply(100.0) == pytest.approx(0.32 * 100.0 + 0.68 * 90.0)


def test_unseeded_filter_starts_from_x0():
    lp = LowPass(alpha=0.18, seed_first=False)
    assert lp.value == 0.0
    assert lp.apply(1.0) == pytest.approx(0.18)


def test_reset_reseeds():
    lp = LowPass(alpha=0.5)
    lp.apply(10.0)
    lp.apply(20.0)
    lp.reset()
    assert lp.value is None
    assert lp.apply(40.0) == 40.0
