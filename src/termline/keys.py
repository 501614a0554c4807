"""Key profiles and decoding of raw terminal input into key events.

A ``KeyProfile`` is the decoding table for one terminal mode: the unit
values for Enter and Backspace, the escape prefix, and the literal 3-unit
sequences for cursor-left and cursor-right. ``KeyDecoder`` classifies the
next unit(s) of a stream against a profile and yields exactly one
``KeyEvent`` per step.

Units are code points (``int``); the decoder never sees bytes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol, Sequence

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Raw unit values
# ---------------------------------------------------------------------------

ENTER = 13
BACKSPACE = 127
ESC = 27

# Length of every escape sequence the decoder understands (prefix + 2)
SEQUENCE_LENGTH = 3

# ---------------------------------------------------------------------------
# Key profile
# ---------------------------------------------------------------------------

UnitSequence = tuple[int, ...]


@dataclass(frozen=True)
class KeyProfile:
    """Immutable decoding table for one terminal mode."""

    enter: int = ENTER
    backspace: int = BACKSPACE
    escape_prefix: int = ESC
    cursor_left: UnitSequence = (ESC, 91, 68)
    cursor_right: UnitSequence = (ESC, 91, 67)
    # Sequences echoed back verbatim without a warning
    passthrough: frozenset[UnitSequence] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        named = {"cursor_left": self.cursor_left, "cursor_right": self.cursor_right}
        for seq in self.passthrough:
            named[f"passthrough {seq!r}"] = seq
        for name, seq in named.items():
            if len(seq) != SEQUENCE_LENGTH:
                raise ValueError(
                    f"{name} must be {SEQUENCE_LENGTH} units long, got {len(seq)}"
                )
            if seq[0] != self.escape_prefix:
                raise ValueError(f"{name} must start with the escape prefix")

    def encode_cursor_right(self) -> str:
        return "".join(chr(u) for u in self.cursor_right)


DEFAULT_KEY_PROFILE = KeyProfile()

# Application cursor mode (DECCKM) sends SS3 arrows instead of CSI arrows
APPLICATION_KEY_PROFILE = KeyProfile(
    cursor_left=(ESC, 79, 68),
    cursor_right=(ESC, 79, 67),
)

# ---------------------------------------------------------------------------
# Key events
# ---------------------------------------------------------------------------

KeyEventKind = Literal[
    "enter",
    "backspace",
    "cursorLeft",
    "cursorRight",
    "char",
    "rawEcho",
    "unrecognized",
]


@dataclass(frozen=True)
class KeyEvent:
    """One decoded key. ``raw`` always holds the units that produced it."""

    kind: KeyEventKind
    raw: UnitSequence
    char: str = ""

    @property
    def is_navigation(self) -> bool:
        return self.kind in ("cursorLeft", "cursorRight")

    def raw_text(self) -> str:
        return "".join(chr(u) for u in self.raw)


# ---------------------------------------------------------------------------
# Unit source
# ---------------------------------------------------------------------------


class UnitSource(Protocol):
    """A stream of raw units. ``read_unit`` returns None at end of input."""

    async def read_unit(self) -> int | None: ...


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


class KeyDecoder:
    """Stateless classifier of raw units against a ``KeyProfile``."""

    def __init__(self, profile: KeyProfile = DEFAULT_KEY_PROFILE) -> None:
        self._profile = profile

    @property
    def profile(self) -> KeyProfile:
        return self._profile

    def classify_unit(self, unit: int) -> KeyEvent | None:
        """Classify a single unit. Returns None for the escape prefix."""
        p = self._profile
        if unit == p.enter:
            return KeyEvent("enter", (unit,))
        if unit == p.backspace:
            return KeyEvent("backspace", (unit,))
        if unit == p.escape_prefix:
            return None
        return KeyEvent("char", (unit,), chr(unit))

    def classify_sequence(self, seq: UnitSequence) -> KeyEvent:
        """Classify a complete escape sequence (prefix included)."""
        p = self._profile
        if seq == p.cursor_left:
            return KeyEvent("cursorLeft", seq)
        if seq == p.cursor_right:
            return KeyEvent("cursorRight", seq)
        if seq in p.passthrough:
            return KeyEvent("rawEcho", seq)
        logger.warning("Unsupported escape sequence %s %s %s", *seq)
        return KeyEvent("unrecognized", seq)

    async def decode(self, source: UnitSource) -> KeyEvent | None:
        """Read and classify the next key from *source*.

        Returns None when the stream ends, including in the middle of an
        escape sequence.
        """
        unit = await source.read_unit()
        if unit is None:
            return None

        event = self.classify_unit(unit)
        if event is not None:
            return event

        seq = [unit]
        while len(seq) < SEQUENCE_LENGTH:
            nxt = await source.read_unit()
            if nxt is None:
                logger.debug("Input ended inside escape sequence %s", seq)
                return None
            seq.append(nxt)
        return self.classify_sequence(tuple(seq))

    def decode_units(self, units: Sequence[int]) -> tuple[KeyEvent, int] | None:
        """Classify the head of an in-memory unit sequence.

        Returns ``(event, consumed)``, or None if *units* is empty or holds
        a truncated escape sequence.
        """
        if not units:
            return None
        event = self.classify_unit(units[0])
        if event is not None:
            return event, 1
        if len(units) < SEQUENCE_LENGTH:
            return None
        return self.classify_sequence(tuple(units[:SEQUENCE_LENGTH])), SEQUENCE_LENGTH
