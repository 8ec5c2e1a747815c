from __future__ import annotations

import cv2
import numpy as np

from sense.interpreter.session import Session, SessionSnapshot

WINDOW = "Sense"
WIDTH, HEIGHT = 960, 600

# trackpad mirror, right half of the window
PAD = (500, 60, 920, 360)   # x0, y0, x1, y1

WHITE = (235, 235, 235)
DIM = (120, 120, 120)
ACCENT = (80, 200, 255)


def _bar(img, x, y, w, h, frac, color):
    cv2.rectangle(img, (x, y), (x + w, y + h), DIM, 1)
    fill = int(w * max(0.0, min(1.0, frac)))
    if fill > 0:
        cv2.rectangle(img, (x, y), (x + fill, y + h), color, -1)


def render(snap: SessionSnapshot) -> np.ndarray:
    img = np.zeros((HEIGHT, WIDTH, 3), dtype=np.uint8)
    img[:] = (24, 24, 28)

    font = cv2.FONT_HERSHEY_SIMPLEX
    cv2.putText(img, "Sense", (30, 50), font, 1.1, WHITE, 2, cv2.LINE_AA)

    # weight card
    cv2.putText(img, snap.formatted_weight, (30, 150), font, 2.2, WHITE, 3, cv2.LINE_AA)
    _bar(img, 30, 175, 420, 16, snap.weight_progress, ACCENT)
    cv2.putText(img, f"pressure {snap.pressure_percent}%  stage {snap.stage}  tare {snap.tare_offset:.3f}",
                (30, 220), font, 0.6, DIM, 1, cv2.LINE_AA)

    # tilt card
    cv2.putText(img, f"tilt {snap.formatted_tilt}", (30, 320), font, 1.4, WHITE, 2, cv2.LINE_AA)
    _bar(img, 30, 340, 420, 12, snap.tilt_progress, ACCENT)
    cv2.putText(img, snap.tilt_source, (30, 385), font, 0.6, DIM, 1, cv2.LINE_AA)
    cv2.putText(img, "reliability", (30, 415), font, 0.5, DIM, 1, cv2.LINE_AA)
    _bar(img, 130, 405, 320, 10, snap.tilt_reliability, (120, 220, 120))

    # trackpad mirror with finger markers
    x0, y0, x1, y1 = PAD
    cv2.rectangle(img, (x0, y0), (x1, y1), WHITE if snap.is_pressing else DIM, 2)
    for p in snap.touch_points:
        px = int(x0 + p.position[0] * (x1 - x0))
        py = int(y0 + (1.0 - p.position[1]) * (y1 - y0))   # y grows upward
        cv2.circle(img, (px, py), 16, ACCENT, 2)
        cv2.putText(img, str(p.id), (px - 6, py + 6), font, 0.6, WHITE, 1, cv2.LINE_AA)
    if not snap.touch_points:
        cv2.putText(img, "Touch the trackpad", (x0 + 120, (y0 + y1) // 2), font, 0.7, DIM, 1, cv2.LINE_AA)
    cv2.putText(img, f"fingers {snap.finger_count}", (x0, y1 + 30), font, 0.6, DIM, 1, cv2.LINE_AA)

    cv2.putText(img, "T tare   R reset   U g/N   ESC quit", (30, HEIGHT - 30), font, 0.55, DIM, 1, cv2.LINE_AA)
    return img


def show(session: Session) -> bool:
    """Draw one frame and handle window keys. Returns False when the user quits."""
    cv2.imshow(WINDOW, render(session.snapshot()))
    key = cv2.waitKey(1) & 0xFF
    if key == 27:  # ESC
        return False
    if key in (ord("t"), ord("T")):
        session.tare()
    elif key in (ord("r"), ord("R")):
        session.clear_tare()
    elif key in (ord("u"), ord("U")):
        session.toggle_unit()
    return True


def close() -> None:
    cv2.destroyAllWindows()
