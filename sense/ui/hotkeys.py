from __future__ import annotations
from pynput import keyboard
from sense.interpreter.session import Session


def run_hotkeys(session: Session) -> None:
    """
    Global hotkeys:
    - Ctrl+Alt+T: Tare (current pressure becomes zero)
    - Ctrl+Alt+R: Reset tare
    - Ctrl+Alt+U: Toggle grams / newtons
    """

    pressed = set()

    CTRL_KEYS = {keyboard.Key.ctrl, keyboard.Key.ctrl_l, keyboard.Key.ctrl_r}
    ALT_KEYS  = {keyboard.Key.alt, keyboard.Key.alt_l, keyboard.Key.alt_r}

    def is_ctrl():
        return any(k in pressed for k in CTRL_KEYS)

    def is_alt():
        return any(k in pressed for k in ALT_KEYS)

    def char_of(k):
        return (getattr(k, "char", None) or "").lower()

    def on_press(k):
        pressed.add(k)

        if is_ctrl() and is_alt():
            c = char_of(k)
            if c == "t":
                offset = session.tare()
                print(f"[Sense] tare at pressure {offset:.3f} (Ctrl+Alt+T)")
            elif c == "r":
                session.clear_tare()
                print("[Sense] tare cleared (Ctrl+Alt+R)")
            elif c == "u":
                unit = session.toggle_unit()
                print(f"[Sense] unit -> {unit.value} (Ctrl+Alt+U)")

    def on_release(k):
        pressed.discard(k)

    with keyboard.Listener(on_press=on_press, on_release=on_release) as listener:
        listener.join()
