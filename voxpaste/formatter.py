"""
Smart spacing and capitalization between consecutive pastes.

Consecutive dictations within a short window read as one continuous
utterance: the next paste gets a leading space, and a capital letter
that only exists because the engine started a new "sentence" is
lowercased.
"""

import re
import threading
import time
from typing import Callable, Optional


SPACE_WINDOW_MS = 10_000  # Add a space if pasting within this window

SENTENCE_END = re.compile(r"[.!?][\"'”’]?\s*$")
WORD_SPLIT = re.compile(r"[\s,.!?;:]+")
QUOTES = ('"', "'", "“", "‘")

# Words that keep their capital letter mid-sentence
PROPER_NOUNS = frozenset({
    "I",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "January", "February", "March", "April", "May", "June", "July", "August",
    "September", "October", "November", "December",
    "Google", "Apple", "Microsoft", "Amazon", "Facebook", "Twitter", "LinkedIn",
    "GitHub", "OpenAI", "ChatGPT",
    "CEO", "API", "AI", "ML", "USA", "UK", "EU",
})


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class PasteSession:
    """
    Rolling record of the last successful paste.

    Written only by the text injector after a confirmed paste; read by
    the formatter before each paste. Never rolled back.
    """

    def __init__(self) -> None:
        self.last_paste_time_ms: Optional[int] = None
        self.last_pasted_text: str = ""
        self._lock = threading.Lock()

    def record(self, text: str, now_ms: int) -> None:
        """Record a confirmed paste."""
        with self._lock:
            self.last_paste_time_ms = now_ms
            self.last_pasted_text = text

    def snapshot(self):
        """(last_paste_time_ms, last_pasted_text) read together."""
        with self._lock:
            return self.last_paste_time_ms, self.last_pasted_text

    def reset(self) -> None:
        with self._lock:
            self.last_paste_time_ms = None
            self.last_pasted_text = ""


_paste_session = PasteSession()


def get_paste_session() -> PasteSession:
    """The process-wide paste session."""
    return _paste_session


def ends_sentence(text: str) -> bool:
    """True if text ends with . ! or ?, optionally followed by a closing quote."""
    return bool(text) and bool(SENTENCE_END.search(text.strip()))


def first_word(text: str) -> str:
    parts = WORD_SPLIT.split(text.strip(), maxsplit=1)
    return parts[0] if parts else ""


def keeps_capital(text: str) -> bool:
    """
    Whether the first word must stay capitalized in a continuation.

    Proper nouns from the allow-list, quoted text, and all-caps words
    longer than one letter (acronyms, emphasis) are left alone.
    """
    stripped = text.strip()
    if stripped.startswith(QUOTES):
        return True

    word = first_word(stripped)
    if word in PROPER_NOUNS:
        return True
    if len(word) > 1 and word == word.upper():
        return True
    return False


class SmartFormatter:
    """
    Computes spacing/capitalization for the next paste.

    Pure: reads the PasteSession, never writes it.
    """

    def __init__(
        self,
        session: Optional[PasteSession] = None,
        clock: Callable[[], int] = monotonic_ms,
        window_ms: int = SPACE_WINDOW_MS,
    ):
        self.session = session if session is not None else get_paste_session()
        self.clock = clock
        self.window_ms = window_ms

    def is_live(self) -> bool:
        """True if the last paste was within the spacing window."""
        last_time, _ = self.session.snapshot()
        if last_time is None:
            return False
        elapsed = max(0, self.clock() - last_time)
        return elapsed < self.window_ms

    def format(self, text: str) -> str:
        """Return text as it should be pasted given the paste history."""
        last_time, last_text = self.session.snapshot()
        if last_time is None:
            return text

        elapsed = max(0, self.clock() - last_time)
        if elapsed >= self.window_ms:
            return text

        spaced = f" {text}"
        if ends_sentence(last_text):
            print(f"[format] Adding space (new sentence, {elapsed}ms since last paste)")
            return spaced

        adjusted = " " + self._continue_sentence(text)
        print(f"[format] Adding space and adjusting caps ({elapsed}ms since last paste)")
        return adjusted

    @staticmethod
    def _continue_sentence(text: str) -> str:
        """Lowercase the first letter unless it should stay capitalized."""
        if not text or not text[0].isupper():
            return text
        if keeps_capital(text):
            return text
        return text[0].lower() + text[1:]
