from __future__ import annotations

import argparse
import logging
import threading
import time

from sense.core.config import load_settings
from sense.interpreter.session import Session
from sense.interpreter.tilt import TiltMonitor
from sense.sensor.errors import NoDeviceFound
from sense.sensor.evdev_touchpad import EvdevTouchpadSource
from sense.sensor.ioreg_hinge import RegistryHingeAngleReader
from sense.sensor.trackpad_capture import TrackpadCapture
try:
    from sense.sensor.hid_hinge import HIDHingeAngleReader
except Exception:
    HIDHingeAngleReader = None
try:
    from sense.ui.tray import run_tray
except Exception:
    run_tray = None
try:
    from sense.ui.hotkeys import run_hotkeys
except Exception:
    run_hotkeys = None


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="sense", description="Trackpad scale and display tilt.")
    p.add_argument("--device", help="touchpad event device (default: first multitouch pad)")
    p.add_argument("--no-window", action="store_true", help="no dashboard window; print readings")
    p.add_argument("--no-tray", action="store_true")
    p.add_argument("--no-hotkeys", action="store_true")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def build_session(settings) -> Session:
    hid_reader = None
    if HIDHingeAngleReader is None:
        print("[Sense] hidapi unavailable. Hinge angle from IORegistry only.")
    else:
        hid_reader = HIDHingeAngleReader(match=settings.hid)
    tilt = TiltMonitor(
        hid_reader=hid_reader,
        registry_reader=RegistryHingeAngleReader(settings.registry, settings.tilt.realistic_band),
        tuning=settings.tilt,
    )
    return Session(settings, tilt_monitor=tilt)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = load_settings()
    session = build_session(settings)
    stop = threading.Event()

    try:
        src = EvdevTouchpadSource(args.device or settings.touchpad_device)
    except (NoDeviceFound, OSError) as e:
        print(f"[Sense] No touchpad: {e}. Scale disabled, tilt only.")
        src = None

    capture = TrackpadCapture(on_sample=session.handle_sample)

    if args.no_hotkeys or run_hotkeys is None:
        print("  Hotkeys: off")
    else:
        threading.Thread(target=run_hotkeys, args=(session,), daemon=True).start()
        print("  Hotkeys: Ctrl+Alt+T tare / Ctrl+Alt+R reset / Ctrl+Alt+U g<->N")

    # Tray: best effort. If it crashes, keep the rest alive.
    if args.no_tray or run_tray is None:
        print("  Tray: unavailable")
    else:
        try:
            threading.Thread(target=run_tray, args=(session, stop), daemon=True).start()
        except Exception as e:
            print(f"[Sense] Tray failed: {e}.")

    dashboard = None
    if not args.no_window:
        from sense.ui import dashboard

    print("[Sense] running. ESC in the window or Ctrl+C to quit.")
    session.start()
    last_print = 0.0
    try:
        while not stop.is_set():
            if src is not None:
                for ev in src.poll():
                    capture.handle(ev)

            if dashboard is not None:
                if not dashboard.show(session):
                    break
            else:
                now = time.time()
                if now - last_print > 0.5:
                    snap = session.snapshot()
                    print(f"[Sense] {snap.formatted_weight:>8}  {snap.pressure_percent:3d}%  "
                          f"fingers={snap.finger_count}  tilt={snap.formatted_tilt}")
                    last_print = now

            time.sleep(0.005)
    except KeyboardInterrupt:
        print("\n[Sense] exiting")
    finally:
        stop.set()
        session.stop()
        if session.tilt_monitor is not None:
            session.tilt_monitor.close()
            hid_reader = session.tilt_monitor.hid_reader
            if hid_reader is not None:
                hid_reader.close()
        if src is not None:
            src.close()
        if dashboard is not None:
            dashboard.close()


if __name__ == "__main__":
    main()
