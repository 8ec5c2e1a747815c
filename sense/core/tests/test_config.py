import pytest

from sense.core.config import DEFAULT_SETTINGS, load_settings


def test_no_env_keeps_defaults():
    assert load_settings({}) == DEFAULT_SETTINGS


def test_overrides_apply():
    s = load_settings({
        "SENSE_GRAMS_PER_FULL_PRESSURE": "3000",
        "SENSE_GAUGE_MAX_GRAMS": "800",
        "SENSE_POLL_INTERVAL_S": "0.25",
        "SENSE_IOREG_PATH": "/opt/bin/ioreg",
        "SENSE_TOUCHPAD_DEVICE": "/dev/input/event7",
    })
    assert s.scale.grams_per_full_pressure == 3000.0
    assert s.scale.gauge_max_grams == 800.0
    assert s.tilt.interval_s == 0.25
    assert s.registry.tool == "/opt/bin/ioreg"
    assert s.touchpad_device == "/dev/input/event7"
    # untouched fields keep their defaults
    assert s.scale.alpha == DEFAULT_SETTINGS.scale.alpha
    assert s.registry.class_candidates == DEFAULT_SETTINGS.registry.class_candidates


@pytest.mark.parametrize("bad", ["abc", "", "0", "-5", "nan", "inf"])
def test_bad_values_are_ignored(bad):
    s = load_settings({"SENSE_GRAMS_PER_FULL_PRESSURE": bad, "SENSE_POLL_INTERVAL_S": bad})
    assert s.scale.grams_per_full_pressure == DEFAULT_SETTINGS.scale.grams_per_full_pressure
    assert s.tilt.interval_s == DEFAULT_SETTINGS.tilt.interval_s
