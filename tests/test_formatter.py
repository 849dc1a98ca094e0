"""
Tests for smart spacing and capitalization between pastes.
"""

import pytest


class FakeClock:
    def __init__(self, now_ms: int = 100_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    from voxpaste.formatter import PasteSession
    return PasteSession()


@pytest.fixture
def formatter(session, clock):
    from voxpaste.formatter import SmartFormatter
    return SmartFormatter(session, clock=clock)


class TestSpacing:
    """Leading space inside the window."""

    def test_first_paste_unchanged(self, formatter):
        """No history: text passes through untouched."""
        assert formatter.format("Hello world") == "Hello world"
        assert not formatter.is_live()

    def test_continuation_lowercased(self, formatter, session, clock):
        """Within the window after a non-terminal paste: space plus lowercase."""
        session.record("Hello", clock.now_ms - 5_000)
        assert formatter.format("There") == " there"

    def test_after_sentence_end(self, formatter, session, clock):
        """Previous text ended a sentence: space, capital kept."""
        session.record("Hi.", clock.now_ms - 5_000)
        assert formatter.format("There") == " There"

    def test_sentence_end_with_closing_quote(self, formatter, session, clock):
        session.record('He said "stop."', clock.now_ms - 1_000)
        assert formatter.format("Then") == " Then"

    def test_outside_window(self, formatter, session, clock):
        """At or past 10s nothing changes."""
        session.record("Hello", clock.now_ms - 10_000)
        assert formatter.format("There") == "There"
        assert not formatter.is_live()

    def test_just_inside_window(self, formatter, session, clock):
        session.record("Hello", clock.now_ms - 9_999)
        assert formatter.is_live()
        assert formatter.format("There") == " there"


class TestCapitalization:
    """Words that keep their capital letter."""

    def test_proper_noun(self, formatter, session, clock):
        session.record("See you", clock.now_ms - 2_000)
        assert formatter.format("Monday then") == " Monday then"

    def test_pronoun_i(self, formatter, session, clock):
        session.record("and then", clock.now_ms - 2_000)
        assert formatter.format("I left") == " I left"

    def test_quoted_text(self, formatter, session, clock):
        session.record("She wrote", clock.now_ms - 2_000)
        assert formatter.format('"Fine" she said') == ' "Fine" she said'

    def test_all_caps_word(self, formatter, session, clock):
        session.record("Ask the", clock.now_ms - 2_000)
        assert formatter.format("NASA team") == " NASA team"

    def test_single_capital_letter_lowercased(self, formatter, session, clock):
        """One-letter words other than I are not acronyms."""
        session.record("Buy", clock.now_ms - 2_000)
        assert formatter.format("A car") == " a car"

    def test_lowercase_start_untouched(self, formatter, session, clock):
        session.record("one", clock.now_ms - 2_000)
        assert formatter.format("two") == " two"


class TestSession:
    """Session bookkeeping."""

    def test_formatter_never_writes_session(self, formatter, session, clock):
        session.record("Hello", clock.now_ms - 1_000)
        formatter.format("There")
        assert session.snapshot() == (clock.now_ms - 1_000, "Hello")

    def test_reset(self, session):
        session.record("x", 5)
        session.reset()
        assert session.snapshot() == (None, "")

    def test_global_session_singleton(self):
        from voxpaste.formatter import get_paste_session

        assert get_paste_session() is get_paste_session()


class TestHelpers:
    """Module-level helpers."""

    def test_ends_sentence(self):
        from voxpaste.formatter import ends_sentence

        assert ends_sentence("Done.")
        assert ends_sentence("Really?  ")
        assert ends_sentence("Wow!’")
        assert not ends_sentence("and so")
        assert not ends_sentence("")

    def test_keeps_capital(self):
        from voxpaste.formatter import keeps_capital

        assert keeps_capital("GitHub is down")
        assert keeps_capital("API, please")
        assert not keeps_capital("The end")
