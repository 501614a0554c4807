"""Terminal display width of prompt strings."""

from __future__ import annotations

import re

import grapheme
import wcwidth

# CSI and OSC sequences: styling in a prompt occupies no columns
_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"       # CSI
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"  # OSC
)

# Emoji presentation selector and zero-width joiner
_EMOJI_MARKERS = ("\ufe0f", "\u200d")


def strip_ansi(text: str) -> str:
    return _STRIP_RE.sub("", text)


def visible_width(text: str) -> int:
    """Number of terminal columns *text* occupies once printed.

    ANSI escape sequences and control characters take no columns; each
    grapheme cluster is measured as a whole.
    """
    total = 0
    for cluster in grapheme.graphemes(strip_ansi(text)):
        if any(marker in cluster for marker in _EMOJI_MARKERS):
            total += 2
        else:
            total += max(wcwidth.wcswidth(cluster), 0)
    return total
