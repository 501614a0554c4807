"""Output bytes for the prompt line.

All cursor positioning is done with carriage returns and the profile's own
cursor-right sequence, so the output only relies on what the client
terminal already sends for its arrow keys.
"""

from __future__ import annotations

from termline.keys import DEFAULT_KEY_PROFILE, KeyProfile
from termline.line_buffer import LineState
from termline.width import visible_width

NEWLINE = b"\n\r"


class LineRenderer:
    """Builds the bytes that redraw ``prompt + text`` for a session."""

    def __init__(
        self,
        prompt: str,
        profile: KeyProfile = DEFAULT_KEY_PROFILE,
        *,
        encoding: str = "utf-8",
    ) -> None:
        self._prompt = prompt
        self._encoding = encoding
        self._prompt_bytes = prompt.encode(encoding, errors="replace")
        self._prompt_columns = visible_width(prompt)
        self._step_right = profile.encode_cursor_right().encode(encoding, errors="replace")

    @property
    def prompt(self) -> str:
        return self._prompt

    @property
    def prompt_columns(self) -> int:
        return self._prompt_columns

    def prompt_line(self) -> bytes:
        return self._prompt_bytes

    def newline(self) -> bytes:
        return NEWLINE

    def cursor_steps(self, state: LineState) -> int:
        return self._prompt_columns + state.cursor

    def redraw(self, state: LineState) -> bytes:
        """Rewrite the whole line and step the cursor back into place."""
        return b"".join(
            (
                b"\r",
                self._prompt_bytes,
                state.text.encode(self._encoding, errors="replace"),
                b"\r",
                self._step_right * self.cursor_steps(state),
            )
        )

    def blank_out(self, state: LineState) -> bytes:
        """Overwrite the text of *state* with spaces, keeping the prompt."""
        return b"\r" + self._prompt_bytes + b" " * len(state.text)
