import pytest

from sense.core.types import TiltReading, TouchPoint, TrackpadSample, WeightUnit
from sense.interpreter.session import Session, format_tilt, format_weight


def sample(pressure, points=(), is_pressing=None, centroid=None, stage=0):
    points = tuple(points)
    return TrackpadSample(
        pressure=pressure, stage=stage, finger_count=len(points), centroid=centroid,
        touch_points=points, is_pressing=bool(pressure > 0) if is_pressing is None else is_pressing,
        timestamp=0.0,
    )


def pressed(session, pressure, n=200):
    for _ in range(n):
        session.handle_sample(sample(pressure, stage=1))


def test_defaults():
    snap = Session().snapshot()
    assert snap.formatted_weight == "0 g"
    assert snap.formatted_tilt == "--.-°"
    assert snap.tilt_progress == 0.0
    assert snap.centroid == (0.5, 0.5)
    assert snap.tilt_source == "No sensor source found"


def test_weight_projections():
    s = Session()
    pressed(s, 0.5)
    snap = s.snapshot()
    assert snap.weight_grams == pytest.approx(1350.0, rel=1e-6)
    assert snap.formatted_weight == "1350 g"
    assert snap.weight_progress == pytest.approx(0.9, rel=1e-6)
    assert snap.pressure_percent == 50
    assert snap.stage == 1

    pressed(s, 0.9)
    assert s.weight_progress == 1.0


def test_newtons_display():
    s = Session()
    pressed(s, 0.5)
    assert s.toggle_unit() == WeightUnit.NEWTONS
    assert s.formatted_weight == f"{1350.0 / 101.97:.2f} N"
    assert s.weight_newtons == pytest.approx(1350.0 / 101.97, rel=1e-6)
    s.unit = WeightUnit.GRAMS
    assert s.snapshot().unit == WeightUnit.GRAMS


def test_release_zeroes_weight_immediately():
    s = Session()
    pressed(s, 0.5)
    s.handle_sample(sample(0.0))
    assert s.weight_grams == 0.0
    assert s.pressure_percent == 0


def test_tare_and_clear_through_session():
    s = Session()
    pressed(s, 0.4)
    s.tare()
    pressed(s, 0.4, n=1)
    assert s.weight_grams == pytest.approx(0.0, abs=0.01)
    s.clear_tare()
    pressed(s, 0.4, n=1)
    assert s.weight_grams == pytest.approx(0.4 * 2700, rel=1e-6)


def test_touch_state_and_centroid_memory():
    s = Session()
    points = (TouchPoint(1, (0.2, 0.4)), TouchPoint(2, (0.6, 0.4)))
    s.handle_sample(sample(0.0, points, is_pressing=False, centroid=(0.4, 0.4)))
    assert s.finger_count == 2
    assert s.is_pressing            # fingers down counts as pressing
    assert s.touch_points == points

    s.handle_sample(sample(0.0))
    assert s.finger_count == 0
    assert not s.is_pressing
    assert s.centroid == (0.4, 0.4)   # last known position kept


def test_tilt_projections():
    s = Session()
    s.handle_tilt(TiltReading(degrees=112.46, source="Hinge Sensor (HID)", reliability=0.98))
    snap = s.snapshot()
    assert snap.formatted_tilt == "112.5°"
    assert snap.tilt_progress == pytest.approx(112.46 / 150)
    assert snap.tilt_reliability == 0.98

    s.handle_tilt(TiltReading(degrees=170.0, source="x", reliability=0.72))
    assert s.tilt_progress == 1.0


def test_session_wires_tilt_monitor_callback():
    class Monitor:
        on_reading = None
        started = stopped = False

        def start(self):
            self.started = True

        def stop(self):
            self.stopped = True

    mon = Monitor()
    s = Session(tilt_monitor=mon)
    s.start()
    mon.on_reading(TiltReading(degrees=33.0, source="Hinge Sensor (IORegistry)", reliability=0.72))
    s.stop()

    assert mon.started and mon.stopped
    assert s.tilt.degrees == 33.0


@pytest.mark.parametrize("grams,unit,text", [
    (0.4, WeightUnit.GRAMS, "0 g"),
    (12.5, WeightUnit.GRAMS, "13 g"),
    (203.94, WeightUnit.NEWTONS, "2.00 N"),
])
def test_format_weight(grams, unit, text):
    assert format_weight(grams, unit, 101.97) == text


def test_format_tilt():
    assert format_tilt(None) == "--.-°"
    assert format_tilt(0.04) == "0.0°"
