"""Text validation and cleanup for extracted screenshot text.

Every piece of text that leaves the extraction pipeline goes through
:func:`clean_text`.  The passes run in a fixed order:

1. **Whitespace** -- collapse runs of whitespace (including newlines) to
   a single space and trim the ends.
2. **Allow-list** -- drop characters outside word characters and common
   punctuation (``. , ! ? @ # $ % ^ & * ( ) - + = : ; " '``).
3. **Terminal punctuation** -- collapse runs of 2+ ``. , ! ?`` into the
   first character of the run (``"you??"`` -> ``"you?"``).
4. **Digit/letter confusion** -- ``0 1 5 8`` sitting *between* two ASCII
   letters become ``o l s b``, taking the case of the preceding letter.
   A digit at a token boundary is never touched.
5. **Noisy case** -- a token longer than 2 letters that mixes upper and
   lower case but is mostly upper case (``"HeLLO"``) is lowercased.  This
   can also flatten intended brand spellings (``"GoPRO"``) and can be
   switched off with ``normalize_case=False``.

The function is idempotent: ``clean_text(clean_text(x)) == clean_text(x)``.
"""

from __future__ import annotations

import re

from src.utils.logging import get_logger

_logger = get_logger(__name__)

_WHITESPACE = re.compile(r"\s+")

# Anything that is not a word character, a space, or allow-listed punctuation.
_DISALLOWED = re.compile(r"""[^\w\s.,!?@#$%^&*()\-+=:;"']""")

_REPEATED_TERMINAL = re.compile(r"([.,!?])[.,!?]+")

_CONFUSED_DIGITS = re.compile(r"(?<=([A-Za-z]))([0158])(?=[A-Za-z])")

_DIGIT_TO_LETTER: dict[str, str] = {
    "0": "o",
    "1": "l",
    "5": "s",
    "8": "b",
}

_ALPHA_TOKEN = re.compile(r"\b[A-Za-z]{3,}\b")


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def _replace_confused_digit(match: re.Match[str]) -> str:
    letter = _DIGIT_TO_LETTER[match.group(2)]
    return letter.upper() if match.group(1).isupper() else letter


def _normalize_noisy_token(match: re.Match[str]) -> str:
    token = match.group(0)
    upper = sum(1 for ch in token if ch.isupper())
    lower = len(token) - upper
    if upper and lower and upper > lower:
        return token.lower()
    return token


def strip_disallowed_characters(text: str) -> str:
    """Remove characters outside the allow-list, re-collapsing whitespace."""
    return _collapse_whitespace(_DISALLOWED.sub("", text))


def collapse_repeated_punctuation(text: str) -> str:
    """Collapse runs of terminal punctuation to their first character."""
    return _REPEATED_TERMINAL.sub(r"\1", text)


def correct_confused_digits(text: str) -> str:
    """Swap digits that sit between two letters for the letter they resemble."""
    return _CONFUSED_DIGITS.sub(_replace_confused_digit, text)


def normalize_noisy_case(text: str) -> str:
    """Lowercase mostly-uppercase tokens that also contain lowercase letters."""
    return _ALPHA_TOKEN.sub(_normalize_noisy_token, text)


def clean_text(text: str, *, normalize_case: bool = True) -> str:
    """Run every cleanup pass over *text*.

    Never raises: ``None`` / non-string input yields ``""`` and any
    unexpected failure returns the input unchanged.

    Args:
        text: Raw or previously cleaned text.
        normalize_case: Apply the noisy-case pass (step 5).

    Returns:
        The cleaned text.
    """
    if not isinstance(text, str):
        _logger.warning("clean_text_invalid_input", input_type=type(text).__name__)
        return ""

    try:
        cleaned = _collapse_whitespace(text)
        cleaned = strip_disallowed_characters(cleaned)
        cleaned = collapse_repeated_punctuation(cleaned)
        cleaned = correct_confused_digits(cleaned)
        if normalize_case:
            cleaned = normalize_noisy_case(cleaned)
        return cleaned
    except Exception as exc:
        _logger.error("clean_text_failed", error=str(exc))
        return text
