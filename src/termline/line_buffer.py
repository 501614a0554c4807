"""Single-line edit buffer with a cursor."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LineState:
    """Text and cursor offset. The cursor is an insertion index into text."""

    text: str = ""
    cursor: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.cursor <= len(self.text):
            raise ValueError(
                f"cursor {self.cursor} outside [0, {len(self.text)}]"
            )

    def insert(self, ch: str) -> LineState:
        text = self.text[: self.cursor] + ch + self.text[self.cursor :]
        return LineState(text, self.cursor + len(ch))

    def delete_before_cursor(self) -> LineState:
        if self.cursor == 0:
            return self
        text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        return LineState(text, self.cursor - 1)

    def move_left(self) -> LineState:
        if self.cursor == 0:
            return self
        return LineState(self.text, self.cursor - 1)

    def move_right(self) -> LineState:
        if self.cursor >= len(self.text):
            return self
        return LineState(self.text, self.cursor + 1)


class LineBuffer:
    """Owns the in-progress command line of one session.

    Each operation replaces the current ``LineState`` and returns it.
    """

    def __init__(self) -> None:
        self._state = LineState()

    @property
    def text(self) -> str:
        return self._state.text

    @property
    def cursor(self) -> int:
        return self._state.cursor

    def snapshot(self) -> LineState:
        return self._state

    def insert(self, ch: str) -> LineState:
        self._state = self._state.insert(ch)
        return self._state

    def delete_before_cursor(self) -> LineState:
        self._state = self._state.delete_before_cursor()
        return self._state

    def move_left(self) -> LineState:
        self._state = self._state.move_left()
        return self._state

    def move_right(self) -> LineState:
        self._state = self._state.move_right()
        return self._state

    def reset(self) -> LineState:
        self._state = LineState()
        return self._state

    def take(self) -> str:
        """Return the current text and reset the buffer."""
        text = self._state.text
        self.reset()
        return text
