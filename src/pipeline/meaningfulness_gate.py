"""Meaningfulness gate for raw provider text.

Decides whether a recognition result looks like real transcription or
like noise (scanner speckle, a lone emoji row, UI chrome).  The gate is
run on the provider's *raw* text before any cleanup, because cleanup
strips symbols and would make garbage look shorter and tidier than it
really is.

A text is meaningful when all of these hold:

* at least ``MIN_NON_WHITESPACE_CHARS`` characters once whitespace is removed,
* at least one run of two consecutive ASCII letters,
* strictly more than ``MIN_ALNUM_RATIO`` of the non-whitespace characters
  are ASCII letters or digits.
"""

from __future__ import annotations

import re

MIN_NON_WHITESPACE_CHARS = 5
MIN_ALNUM_RATIO = 0.7

_WHITESPACE = re.compile(r"\s+")
_LETTER_RUN = re.compile(r"[A-Za-z]{2,}")
_ALNUM = re.compile(r"[A-Za-z0-9]")


def alnum_ratio(text: str) -> float:
    """Share of ASCII alphanumerics among the non-whitespace characters."""
    compact = _WHITESPACE.sub("", text)
    if not compact:
        return 0.0
    return len(_ALNUM.findall(compact)) / len(compact)


def is_meaningful_text(text: str | None) -> bool:
    """Return ``True`` if *text* is substantive enough to accept."""
    if not text or not isinstance(text, str):
        return False

    compact = _WHITESPACE.sub("", text)
    if len(compact) < MIN_NON_WHITESPACE_CHARS:
        return False

    if not _LETTER_RUN.search(text):
        return False

    return alnum_ratio(text) > MIN_ALNUM_RATIO
