import pytest

cv2 = pytest.importorskip("cv2")

from sense.core.types import TiltReading, TouchPoint, TrackpadSample  # noqa: E402
from sense.interpreter.session import Session  # noqa: E402
from sense.ui import dashboard  # noqa: E402


def test_render_idle_frame():
    img = dashboard.render(Session().snapshot())
    assert img.shape == (dashboard.HEIGHT, dashboard.WIDTH, 3)
    assert img.any()


def test_render_with_touches_and_tilt():
    s = Session()
    points = (TouchPoint(1, (0.0, 0.0)), TouchPoint(2, (1.0, 1.0)))
    s.handle_sample(TrackpadSample(
        pressure=0.3, stage=1, finger_count=2, centroid=(0.5, 0.5),
        touch_points=points, is_pressing=True, timestamp=0.0,
    ))
    s.handle_tilt(TiltReading(degrees=95.0, source="Hinge Sensor (HID)", reliability=0.98))
    idle = dashboard.render(Session().snapshot())
    busy = dashboard.render(s.snapshot())
    assert (busy != idle).any()
