"""String helpers shared by the lexer, the environment and the builtins."""

from __future__ import annotations

import re

_BLANKS = " \t\n\v\f"
_LLONG_MAX = 2**63 - 1
_LLONG_MIN_MAGNITUDE = 2**63

_WORD_SPLIT = re.compile(r"[ \t\n\v\f]+")
_NUMBER = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]*)(.*)", re.DOTALL)


class NumericArgumentError(ValueError):
    """Raised when an exit status argument is not a valid number."""

    def __init__(self, argument: str) -> None:
        super().__init__(f"{argument}: numeric argument required")
        self.argument = argument


def _is_ascii_letter(char: str) -> bool:
    return len(char) == 1 and ("a" <= char <= "z" or "A" <= char <= "Z")


def is_name_start(char: str) -> bool:
    """True if ``char`` may start a variable name (ASCII letter or ``_``)."""
    return char == "_" or _is_ascii_letter(char)


def is_name_char(char: str) -> bool:
    """True if ``char`` may appear inside a variable name."""
    return is_name_start(char) or (len(char) == 1 and "0" <= char <= "9")


def is_blank(char: str) -> bool:
    """True for the characters that separate words on the command line."""
    return len(char) == 1 and char in _BLANKS


def split_fields(text: str | None, sep: str) -> list[str]:
    """Split ``text`` on ``sep`` and on tabs, dropping empty fields."""
    if not text:
        return []
    pattern = f"[{re.escape(sep)}\t]+"
    return [field for field in re.split(pattern, text) if field]


def split_words(text: str | None) -> list[str]:
    """Split ``text`` on runs of blanks, dropping empty words."""
    if not text:
        return []
    return [word for word in _WORD_SPLIT.split(text) if word]


def _to_int32(value: int) -> int:
    return (value + 2**31) % 2**32 - 2**31


def parse_exit_status(text: str) -> int:
    """Parse an ``exit`` argument the way the shell does.

    Leading whitespace and one sign are accepted; anything after the digits,
    or a value outside the 64-bit range, raises NumericArgumentError.  The
    result is reduced to a signed 32-bit integer.
    """
    match = _NUMBER.fullmatch(text)
    assert match is not None
    sign_text, digits, rest = match.groups()
    negative = sign_text == "-"
    value = int(digits) if digits else 0
    limit = _LLONG_MIN_MAGNITUDE if negative else _LLONG_MAX
    if value > limit or rest:
        raise NumericArgumentError(text)
    return _to_int32(-value if negative else value)