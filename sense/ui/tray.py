from __future__ import annotations

import threading
import time

import pystray
from PIL import Image, ImageDraw

from sense.core.types import WeightUnit
from sense.interpreter.session import Session, SessionSnapshot


def _make_icon(snap: SessionSnapshot) -> Image.Image:
    # ring = weight gauge, inner dot = something is touching
    img = Image.new("RGBA", (64, 64), (0, 0, 0, 0))
    d = ImageDraw.Draw(img)

    d.ellipse((12, 12, 52, 52), outline=(255, 255, 255, 90), width=3)
    sweep = int(360 * snap.weight_progress)
    if sweep > 0:
        d.arc((12, 12, 52, 52), start=-90, end=-90 + sweep, fill=(255, 255, 255, 255), width=5)

    dot = (255, 255, 255, 255) if snap.is_pressing else (255, 255, 255, 80)
    d.ellipse((28, 28, 36, 36), fill=dot)
    return img


def _title(snap: SessionSnapshot) -> str:
    return f"Sense  {snap.formatted_weight}  tilt {snap.formatted_tilt}"


def run_tray(session: Session, stop_flag: threading.Event) -> None:
    icon = pystray.Icon("Sense")

    def update_icon():
        snap = session.snapshot()
        icon.icon = _make_icon(snap)
        icon.title = _title(snap)

    def on_tare(_icon, _item):
        session.tare()
        update_icon()

    def on_reset(_icon, _item):
        session.clear_tare()
        update_icon()

    def set_unit(unit: WeightUnit):
        def handler(_icon, _item):
            session.unit = unit
            update_icon()
        return handler

    def unit_checked(unit: WeightUnit):
        return lambda _item: session.unit == unit

    def on_quit(_icon, _item):
        stop_flag.set()
        icon.stop()

    icon.menu = pystray.Menu(
        pystray.MenuItem("Tare", on_tare),
        pystray.MenuItem("Reset", on_reset),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Grams (g)", set_unit(WeightUnit.GRAMS), checked=unit_checked(WeightUnit.GRAMS), radio=True),
        pystray.MenuItem("Newtons (N)", set_unit(WeightUnit.NEWTONS), checked=unit_checked(WeightUnit.NEWTONS), radio=True),
        pystray.Menu.SEPARATOR,
        pystray.MenuItem("Quit", on_quit),
    )

    update_icon()

    # background updater keeps the title live
    tray_done = threading.Event()

    def watcher():
        last = None
        while not (stop_flag.is_set() or tray_done.is_set()):
            snap = session.snapshot()
            cur = (snap.formatted_weight, snap.formatted_tilt, snap.is_pressing)
            if cur != last:
                update_icon()
                last = cur
            time.sleep(0.2)

    threading.Thread(target=watcher, daemon=True).start()
    try:
        icon.run()
    except Exception as e:
        # Tray backends can be fragile; do not kill the app.
        print(f"[Sense] Tray backend crashed: {e}")
    finally:
        tray_done.set()
