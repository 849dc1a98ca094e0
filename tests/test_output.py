"""
Tests for text injection.

Native paste is replaced by a fake; the AppleScript fallback is driven
with harmless commands (cat, true, false, sleep) so these run anywhere.
"""

import time
from unittest.mock import Mock, patch

import pytest


class FakeNative:
    """Stands in for NativePaster."""

    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.pasted = []

    def paste(self, text):
        if self.error is not None:
            raise self.error
        self.pasted.append(text)
        return self.result


@pytest.fixture
def session():
    from voxpaste.formatter import PasteSession
    return PasteSession()


def make_injector(session, native, **kwargs):
    from voxpaste.output import TextInjector

    defaults = dict(
        session=session,
        native=native,
        clipboard_write=Mock(),
        copy_command=["cat"],
        paste_command=["true"],
        clipboard_delay=0.05,
    )
    defaults.update(kwargs)
    return TextInjector(**defaults)


class TestNativePath:
    """Native paste succeeds."""

    def test_native_paste(self, session):
        from voxpaste.output import PasteMethod

        native = FakeNative(result=True)
        injector = make_injector(session, native)

        method = injector.paste_fast("Hello world")

        assert method is PasteMethod.NATIVE
        assert native.pasted == ["Hello world"]
        assert session.snapshot()[1] == "Hello world"
        injector.shutdown()

    def test_blank_text_skipped(self, session):
        native = FakeNative()
        injector = make_injector(session, native)

        assert injector.paste_fast("   ") is None
        assert native.pasted == []
        assert session.snapshot() == (None, "")

    def test_smart_spacing_applied(self, session):
        """Second paste inside the window gets a space and lowercase."""
        clock = Mock(return_value=50_000)
        native = FakeNative()
        injector = make_injector(session, native, clock=clock)

        injector.paste_fast("Hello")
        clock.return_value = 52_000
        injector.paste_fast("There")

        assert native.pasted == ["Hello", " there"]
        assert session.snapshot() == (52_000, " there")
        injector.shutdown()

    def test_deferred_clipboard_write(self, session):
        """Formatted text is written to the clipboard after the delay."""
        injector = make_injector(session, FakeNative())

        injector.paste_fast("Hello world")
        injector.clipboard_write.assert_not_called()

        time.sleep(0.3)
        injector.clipboard_write.assert_called_once_with("Hello world")
        assert injector.pending_writes() == 0

    def test_shutdown_cancels_pending_writes(self, session):
        injector = make_injector(session, FakeNative(), clipboard_delay=5.0)

        injector.paste_fast("Hello")
        assert injector.pending_writes() == 1

        injector.shutdown()
        assert injector.pending_writes() == 0
        injector.clipboard_write.assert_not_called()


class TestFallbackPath:
    """Native unavailable: pbcopy + osascript equivalents."""

    def test_applescript_fallback(self, session):
        from voxpaste.output import PasteMethod

        injector = make_injector(session, FakeNative(result=False))

        method = injector.paste_fast("Hello")

        assert method is PasteMethod.APPLESCRIPT
        assert session.snapshot()[1] == "Hello"
        injector.shutdown()

    def test_copy_timeout(self, session):
        """Stalled copy is killed at its bound; text backed up; session untouched."""
        from voxpaste.errors import CopyTimeoutError

        injector = make_injector(
            session,
            FakeNative(result=False),
            copy_command=["sleep", "5"],
            copy_timeout=0.1,
        )

        start = time.time()
        with pytest.raises(CopyTimeoutError, match="100ms"):
            injector.paste_fast("Hello")
        elapsed = time.time() - start

        assert elapsed < 2.0
        injector.clipboard_write.assert_called_once_with("Hello")
        assert session.snapshot() == (None, "")

    def test_paste_timeout(self, session):
        from voxpaste.errors import PasteTimeoutError

        injector = make_injector(
            session,
            FakeNative(result=False),
            paste_command=["sleep", "5"],
            paste_timeout=0.1,
        )

        with pytest.raises(PasteTimeoutError):
            injector.paste_fast("Hello")

        injector.clipboard_write.assert_called_once_with("Hello")
        assert session.snapshot() == (None, "")

    def test_paste_command_failure(self, session):
        from voxpaste.errors import PasteCommandError

        injector = make_injector(session, FakeNative(result=False), paste_command=["false"])

        with pytest.raises(PasteCommandError, match="exit 1"):
            injector.paste_fast("Hello")
        assert session.snapshot() == (None, "")

    def test_missing_command(self, session):
        from voxpaste.errors import PasteCommandError

        injector = make_injector(
            session,
            FakeNative(result=False),
            copy_command=["/nonexistent/voxpaste-copy"],
        )

        with pytest.raises(PasteCommandError, match="failed to start"):
            injector.paste_fast("Hello")


class TestNoFocus:
    """Nothing editable is focused."""

    def test_no_focused_input(self, session):
        from voxpaste.errors import NoFocusedInputError

        injector = make_injector(session, FakeNative(error=NoFocusedInputError()))

        with pytest.raises(NoFocusedInputError):
            injector.paste_fast("Hello")

        injector.clipboard_write.assert_called_once_with("Hello")
        assert session.snapshot() == (None, "")

    def test_failure_logged(self, session):
        from voxpaste.errors import NoFocusedInputError

        metrics = Mock()
        injector = make_injector(session, FakeNative(error=NoFocusedInputError()), metrics=metrics)

        with pytest.raises(NoFocusedInputError):
            injector.paste_fast("Hello")

        metrics.log.assert_called_once()
        assert metrics.log.call_args.kwargs["error"] == "NoFocusedInputError"


class TestHelpers:
    """Clipboard and AppleScript helpers."""

    def test_escape_for_applescript(self):
        from voxpaste.output import _escape_for_applescript

        assert _escape_for_applescript('say "hi"\n') == 'say \\"hi\\"\\n'
        assert _escape_for_applescript("a\\b") == "a\\\\b"

    def test_copy_to_clipboard_failure(self):
        from voxpaste.errors import PasteError
        from voxpaste.output import copy_to_clipboard

        with patch("voxpaste.output.subprocess.run", side_effect=OSError("no pbcopy")):
            with pytest.raises(PasteError):
                copy_to_clipboard("x")

    def test_run_bounded_success(self):
        from voxpaste.errors import CopyTimeoutError
        from voxpaste.output import run_bounded

        run_bounded(["cat"], b"data", 1.0, CopyTimeoutError, "Copy")


class TestNativePaster:
    """NativePaster without pyobjc."""

    def test_unavailable_returns_false(self):
        from voxpaste.native import NativePaster

        paster = NativePaster()
        with patch.object(NativePaster, "available", return_value=False):
            assert paster.paste("Hello") is False

    def fake_frameworks(self):
        """Mocked AppKit/ApplicationServices/Quartz with a focused text area."""
        appkit = Mock()
        pasteboard = appkit.NSPasteboard.generalPasteboard.return_value
        pasteboard.stringForType_.return_value = "user clipboard"

        ax = Mock()
        ax.AXUIElementCopyAttributeValue.side_effect = [(0, "element"), (0, "AXTextArea")]

        modules = {"AppKit": appkit, "ApplicationServices": ax, "Quartz": Mock()}
        return modules, pasteboard

    def test_failed_paste_restores_clipboard(self):
        """A failure after clearing the pasteboard puts the user's text back."""
        from voxpaste.native import NativePaster

        modules, pasteboard = self.fake_frameworks()
        pasteboard.setString_forType_.side_effect = [RuntimeError("pasteboard denied"), None]

        with patch.dict("sys.modules", modules):
            assert NativePaster().paste("dictated") is False

        restored = pasteboard.setString_forType_.call_args_list[-1].args[0]
        assert restored == "user clipboard"
        assert pasteboard.clearContents.call_count == 2

    def test_failure_before_clear_leaves_clipboard_alone(self):
        from voxpaste.native import NativePaster

        modules, pasteboard = self.fake_frameworks()
        pasteboard.stringForType_.side_effect = RuntimeError("no pasteboard")

        with patch.dict("sys.modules", modules):
            assert NativePaster().paste("dictated") is False

        pasteboard.clearContents.assert_not_called()
        pasteboard.setString_forType_.assert_not_called()

    def test_clipboard_write_lands_after_restore(self):
        """The deferred clipboard write fires after the native restore."""
        from voxpaste.native import RESTORE_DELAY_S
        from voxpaste.output import CLIPBOARD_WRITE_DELAY_S

        assert CLIPBOARD_WRITE_DELAY_S > RESTORE_DELAY_S

    def test_focus_check(self):
        """Focused element with an editable role counts as a text input."""
        from voxpaste.native import _has_focused_text_input

        ax = Mock()
        ax.AXUIElementCopyAttributeValue.side_effect = [(0, "element"), (0, "AXTextArea")]
        assert _has_focused_text_input(ax) is True

        ax = Mock()
        ax.AXUIElementCopyAttributeValue.side_effect = [(0, "element"), (0, "AXButton")]
        ax.AXUIElementIsAttributeSettable.return_value = (0, False)
        assert _has_focused_text_input(ax) is False

        ax = Mock()
        ax.AXUIElementCopyAttributeValue.return_value = (-25212, None)
        assert _has_focused_text_input(ax) is False
