"""
Native paste via macOS Accessibility, NSPasteboard and Core Graphics events.

Fastest way to commit text: put it on the pasteboard, post Cmd+V
straight into the event stream, and put the user's previous clipboard
back shortly afterwards.
"""

import threading
import time
from typing import Optional

from .errors import NoFocusedInputError


V_KEY_CODE = 9
RESTORE_DELAY_S = 1.5  # Previous clipboard comes back after this

EDITABLE_ROLES = {
    "AXTextField",
    "AXTextArea",
    "AXComboBox",
    "AXSearchField",
    "AXSecureTextField",
}


class NativePaster:
    """
    Synthetic key-injection paste.

    paste() returns True on success, False when the pyobjc frameworks
    are not installed (caller falls back to AppleScript), and raises
    NoFocusedInputError when nothing editable has focus.
    """

    def __init__(self, restore_delay_s: float = RESTORE_DELAY_S):
        self.restore_delay_s = restore_delay_s

    def available(self) -> bool:
        try:
            import AppKit  # noqa: F401
            import ApplicationServices  # noqa: F401
            import Quartz  # noqa: F401
        except ImportError:
            return False
        return True

    def paste(self, text: str) -> bool:
        if not self.available():
            return False

        import AppKit
        import ApplicationServices
        import Quartz

        try:
            focused = _has_focused_text_input(ApplicationServices)
        except Exception as e:
            # Accessibility not usable (e.g. permission missing): let AppleScript try
            print(f"[native] Focus check failed, falling back: {e}")
            return False
        if not focused:
            raise NoFocusedInputError()

        previous: Optional[str] = None
        cleared = False
        try:
            pasteboard = AppKit.NSPasteboard.generalPasteboard()
            previous = pasteboard.stringForType_(AppKit.NSPasteboardTypeString)

            pasteboard.clearContents()
            cleared = True
            pasteboard.setString_forType_(text, AppKit.NSPasteboardTypeString)

            _post_cmd_v(Quartz)
        except Exception as e:
            print(f"[native] Paste failed, falling back: {e}")
            if cleared:
                _restore_clipboard(previous)
            return False

        timer = threading.Timer(self.restore_delay_s, _restore_clipboard, args=(previous,))
        timer.daemon = True
        timer.start()
        return True


def _has_focused_text_input(ax) -> bool:
    """Check the system-wide focused element for an editable role or settable value."""
    system = ax.AXUIElementCreateSystemWide()
    err, element = ax.AXUIElementCopyAttributeValue(system, "AXFocusedUIElement", None)
    if err != 0 or element is None:
        return False

    err, role = ax.AXUIElementCopyAttributeValue(element, "AXRole", None)
    if err == 0 and role in EDITABLE_ROLES:
        return True

    err, settable = ax.AXUIElementIsAttributeSettable(element, "AXValue", None)
    return err == 0 and bool(settable)


def _post_cmd_v(quartz) -> None:
    """Post Cmd+V key down/up to the HID event tap."""
    key_down = quartz.CGEventCreateKeyboardEvent(None, V_KEY_CODE, True)
    quartz.CGEventSetFlags(key_down, quartz.kCGEventFlagMaskCommand)
    key_up = quartz.CGEventCreateKeyboardEvent(None, V_KEY_CODE, False)
    quartz.CGEventSetFlags(key_up, quartz.kCGEventFlagMaskCommand)

    quartz.CGEventPost(quartz.kCGHIDEventTap, key_down)
    time.sleep(0.001)
    quartz.CGEventPost(quartz.kCGHIDEventTap, key_up)


def _restore_clipboard(previous: Optional[str]) -> None:
    """Put the pre-paste clipboard back."""
    if previous is None:
        return
    try:
        import AppKit

        pasteboard = AppKit.NSPasteboard.generalPasteboard()
        pasteboard.clearContents()
        pasteboard.setString_forType_(previous, AppKit.NSPasteboardTypeString)
    except Exception as e:
        print(f"[native] Clipboard restore failed: {e}")
