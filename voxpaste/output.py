"""
Output: committing text to the focused application, clipboard, notifications.

Uses macOS accessibility APIs and system commands.
"""

import subprocess
import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING

from .errors import (
    CopyTimeoutError,
    PasteCommandError,
    PasteError,
    PasteTimeoutError,
)
from .formatter import PasteSession, SmartFormatter, get_paste_session, monotonic_ms
from .native import NativePaster, RESTORE_DELAY_S

if TYPE_CHECKING:
    from .metrics import MetricsWriter


COPY_COMMAND = ["pbcopy"]
PASTE_COMMAND = ["osascript", "-e", 'tell application "System Events" to keystroke "v" using command down']

COPY_TIMEOUT_S = 0.2
PASTE_TIMEOUT_S = 0.5
CLIPBOARD_WRITE_DELAY_S = 2.0  # Must land after the native path's clipboard restore


class PasteMethod(str, Enum):
    NATIVE = "native"
    APPLESCRIPT = "applescript"


def _escape_for_applescript(text: str) -> str:
    """Escape special characters for AppleScript string."""
    # Order matters: backslash first
    text = text.replace("\\", "\\\\")
    text = text.replace('"', '\\"')
    text = text.replace("\r", "\\r")
    text = text.replace("\n", "\\n")
    text = text.replace("\t", "\\t")
    return text


def copy_to_clipboard(text: str) -> None:
    """
    Copy text to the system clipboard.

    Raises:
        PasteError: pbcopy failed or timed out
    """
    try:
        subprocess.run(
            COPY_COMMAND,
            input=text.encode("utf-8"),
            timeout=2.0,
            check=True,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise PasteError(f"Clipboard copy failed: {e}") from e


def notify(message: str, title: str = "VoxPaste") -> None:
    """
    Show a macOS notification.

    Args:
        message: Notification body
        title: Notification title
    """
    try:
        escaped_message = _escape_for_applescript(message)
        escaped_title = _escape_for_applescript(title)
        script = f'''
        display notification "{escaped_message}" with title "{escaped_title}"
        '''
        subprocess.run(
            ["osascript"],
            input=script.encode("utf-8"),
            capture_output=True,
            timeout=2.0
        )
    except Exception as e:
        print(f"notify error: {e}")


def play_sound(sound_name: str = "Tink") -> None:
    """
    Play a system sound.

    Args:
        sound_name: Name of sound in /System/Library/Sounds/
    """
    try:
        subprocess.run(
            ["afplay", f"/System/Library/Sounds/{sound_name}.aiff"],
            capture_output=True,
            timeout=2.0
        )
    except Exception as e:
        print(f"play_sound error: {e}")


def play_busy_sound() -> None:
    """Play a sound indicating the system is busy."""
    play_sound("Basso")


def run_bounded(
    command: Sequence[str],
    input_bytes: Optional[bytes],
    timeout: float,
    timeout_error: type,
    label: str,
) -> None:
    """
    Run a helper process, killing it if it overruns.

    Raises:
        timeout_error: process still running after `timeout` seconds
        PasteCommandError: process could not start or exited non-zero
    """
    try:
        proc = subprocess.Popen(
            list(command),
            stdin=subprocess.PIPE if input_bytes is not None else subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
    except OSError as e:
        raise PasteCommandError(f"{label} failed to start: {e}") from e

    try:
        proc.communicate(input=input_bytes, timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()
        raise timeout_error(f"{label} timeout after {int(timeout * 1000)}ms")

    if proc.returncode != 0:
        raise PasteCommandError(f"{label} failed: exit {proc.returncode}")


class TextInjector:
    """
    Commits dictated text into the focused application.

    Tries the native paste first; if pyobjc is unavailable, falls back to
    pbcopy + an AppleScript Cmd+V, each in its own time-boxed process.
    After a successful paste the text is written to the clipboard again
    once the native path has restored the user's clipboard, so clipboard
    history tools record the dictation. If everything fails the text is
    left on the clipboard and the error is re-raised.

    Usage:
        injector = TextInjector()
        injector.paste_fast("hello world")
    """

    def __init__(
        self,
        session: Optional[PasteSession] = None,
        native: Optional[NativePaster] = None,
        clipboard_write: Callable[[str], None] = copy_to_clipboard,
        copy_command: Sequence[str] = COPY_COMMAND,
        paste_command: Sequence[str] = PASTE_COMMAND,
        copy_timeout: float = COPY_TIMEOUT_S,
        paste_timeout: float = PASTE_TIMEOUT_S,
        clipboard_delay: float = CLIPBOARD_WRITE_DELAY_S,
        clock: Callable[[], int] = monotonic_ms,
        metrics: Optional["MetricsWriter"] = None,
    ):
        if clipboard_delay <= RESTORE_DELAY_S:
            print(f"[paste] Warning: clipboard write delay {clipboard_delay}s does not "
                  f"clear the native restore ({RESTORE_DELAY_S}s)")

        self.session = session if session is not None else get_paste_session()
        self.formatter = SmartFormatter(self.session, clock=clock)
        self.native = native if native is not None else NativePaster()
        self.clipboard_write = clipboard_write
        self.copy_command = list(copy_command)
        self.paste_command = list(paste_command)
        self.copy_timeout = copy_timeout
        self.paste_timeout = paste_timeout
        self.clipboard_delay = clipboard_delay
        self.clock = clock
        self.metrics = metrics

        self._timers: List[threading.Timer] = []
        self._timers_lock = threading.Lock()

    def paste_fast(self, text: str) -> Optional[PasteMethod]:
        """
        Paste text as fast as possible with smart spacing.

        Returns:
            The method that committed the text, or None for blank text

        Raises:
            NoFocusedInputError: native paste found no editable field
            CopyTimeoutError, PasteTimeoutError, PasteCommandError: fallback failed
        """
        if not text or not text.strip():
            print("[paste] No text to paste")
            return None

        start = time.time()
        formatted = self.formatter.format(text)

        try:
            if self.native.paste(formatted):
                method = PasteMethod.NATIVE
            else:
                # Module unavailable; AppleScript can't confirm the paste, assume success
                self._applescript_paste(formatted)
                method = PasteMethod.APPLESCRIPT
        except PasteError as e:
            latency_ms = int((time.time() - start) * 1000)
            print(f"[paste] All methods failed after {latency_ms}ms: {e}")
            self._log(None, latency_ms, error=e)
            self._backup_to_clipboard(formatted)
            raise

        self.session.record(formatted, self.clock())
        latency_ms = int((time.time() - start) * 1000)
        print(f"[paste] {method.value} paste complete in {latency_ms}ms")
        self._log(method, latency_ms)

        self.schedule_clipboard_write(formatted)
        return method

    def _applescript_paste(self, text: str) -> None:
        """pbcopy then Cmd+V via osascript, each bounded by its own timeout."""
        run_bounded(self.copy_command, text.encode("utf-8"), self.copy_timeout, CopyTimeoutError, "Copy")
        run_bounded(self.paste_command, None, self.paste_timeout, PasteTimeoutError, "Paste")

    def schedule_clipboard_write(self, text: str) -> threading.Timer:
        """Write text to the clipboard after the configured delay."""
        timer = threading.Timer(self.clipboard_delay, self._deferred_write, args=(text,))
        timer.daemon = True
        with self._timers_lock:
            self._timers = [t for t in self._timers if t.is_alive()]
            self._timers.append(timer)
        timer.start()
        return timer

    def _deferred_write(self, text: str) -> None:
        try:
            self.clipboard_write(text)
            print("[paste] Text written to clipboard for clipboard managers")
        except Exception as e:
            print(f"[paste] Scheduled clipboard write failed: {e}")

    def _backup_to_clipboard(self, text: str) -> None:
        try:
            self.clipboard_write(text)
            print("[paste] Text copied to clipboard as backup")
        except Exception as e:
            print(f"[paste] Clipboard backup failed: {e}")

    def _log(self, method: Optional[PasteMethod], latency_ms: int, error: Optional[Exception] = None) -> None:
        if self.metrics:
            self.metrics.log(
                "paste",
                method=method.value if method else None,
                latency_ms=latency_ms,
                error=type(error).__name__ if error else None,
            )

    def pending_writes(self) -> int:
        """Number of scheduled clipboard writes that haven't fired yet."""
        with self._timers_lock:
            return sum(1 for t in self._timers if t.is_alive())

    def shutdown(self) -> None:
        """Cancel pending clipboard writes."""
        with self._timers_lock:
            for timer in self._timers:
                timer.cancel()
            self._timers.clear()
