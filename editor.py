from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional

from core import ValidationResult, combine_balance, keep_first, validate

logger = logging.getLogger(__name__)


class Ledger:
    """Ordered list of raw entry lines. Never empty; line 0 is never removed."""

    def __init__(self, lines: Optional[Iterable[str]] = None):
        self._lines = list(lines) if lines is not None else []
        if not self._lines:
            self._lines = [""]

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[str]:
        return iter(self._lines)

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(self._lines)

    @property
    def last_index(self) -> int:
        return len(self._lines) - 1

    def set_at(self, index: int, text: str):
        if not 0 <= index < len(self._lines):
            logger.warning("Ignoring edit of line %d: ledger has %d line(s)", index + 1, len(self._lines))
            return
        self._lines[index] = text

    def insert_before(self, index: int, texts: Iterable[str]) -> int:
        keep = [t for t in texts if t.strip()]
        if not keep:
            return 0
        index = max(0, min(index, len(self._lines)))
        self._lines = self._lines[:index] + keep + self._lines[index:]
        logger.debug("Inserted %d line(s) before line %d", len(keep), index + 1)
        return len(keep)

    def remove_at(self, index: int) -> bool:
        # Only a truly empty line goes; whitespace still counts as content.
        if index <= 0 or index >= len(self._lines) or self._lines[index] != "":
            return False
        del self._lines[index]
        logger.debug("Removed line %d", index + 1)
        return True

    def append_blank(self) -> int:
        self._lines.append("")
        return self.last_index

    def replace_all(self, texts: Iterable[str]):
        lines = list(texts)
        self._lines = lines if lines else [""]


class EditorSession:
    """State of one editing session: the ledger, the focused line and the last diagnostics."""

    def __init__(self, lines: Optional[Iterable[str]] = None):
        self.ledger = Ledger(lines)
        self.focused_index = 0
        self.result: Optional[ValidationResult] = None

    @property
    def lines(self) -> tuple[str, ...]:
        return self.ledger.lines

    @property
    def errors(self) -> list[str]:
        return self.result.messages if self.result else []

    @property
    def has_duplicates(self) -> bool:
        return bool(self.result and self.result.has_duplicates)

    def _focus(self, index: int):
        self.focused_index = max(0, min(index, self.ledger.last_index))

    def edit(self, index: int, text: str):
        self.ledger.set_at(index, text)
        self._focus(index)

    def press_enter(self, index: int):
        if index >= self.ledger.last_index:
            self._focus(self.ledger.append_blank())
        else:
            self._focus(index + 1)

    def press_backspace(self, index: int) -> bool:
        if not self.ledger.remove_at(index):
            return False
        self._focus(index - 1)
        return True

    def paste(self, index: int, text: str) -> int:
        segments = [seg.strip() for seg in text.splitlines()]
        index = max(0, min(index, len(self.ledger)))
        n = self.ledger.insert_before(index, segments)
        if n:
            # Focus stays with the line the cursor was on, now shifted down.
            self._focus(index + n)
        return n

    def validate(self) -> ValidationResult:
        self.result = validate(self.ledger.lines)
        return self.result

    def _resolve(self, lines: list[str]):
        before = len(self.ledger)
        self.ledger.replace_all(lines)
        self.result = None
        if len(self.ledger) != before:
            self._focus(self.ledger.last_index)
        else:
            self._focus(self.focused_index)
        logger.debug("Duplicate resolution: %d -> %d line(s)", before, len(self.ledger))

    def keep_first(self):
        self._resolve(keep_first(self.ledger.lines))

    def combine_balance(self):
        self._resolve(combine_balance(self.ledger.lines))
