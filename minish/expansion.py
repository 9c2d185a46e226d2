"""Variable expansion and quote removal for words and here-document lines."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from .environment import Environment
from .strtools import is_name_start, split_words

_NAME = re.compile(r"[A-Za-z0-9_]*")
_DIGITS = frozenset("0123456789")


def _join(left: str | None, right: str | None) -> str | None:
    if left is None and right is None:
        return None
    return (left or "") + (right or "")


def _at(text: str, pos: int) -> str:
    return text[pos] if pos < len(text) else ""


@dataclass
class _Fields:
    """Words produced so far; ``current`` is the word still being built."""

    words: list[str] = field(default_factory=list)
    current: str | None = None

    @property
    def empty(self) -> bool:
        return not self.words and self.current is None

    def add(self, text: str) -> None:
        self.current = (self.current or "") + text

    def join(self, text: str | None) -> None:
        self.current = _join(self.current, text)

    def split_into(self, parts: list[str]) -> None:
        fields: list[str | None] = list(self.words)
        if self.current is not None:
            fields.append(self.current)
        if not fields:
            fields = [None]
        fields[-1] = _join(fields[-1], parts[0] if parts else None)
        fields.extend(parts[1:])
        last = fields[-1]
        if last is None:
            self.words, self.current = [], None
        else:
            self.words = [word for word in fields[:-1] if word is not None]
            self.current = last

    def result(self) -> list[str]:
        if self.current is None:
            return list(self.words)
        return [*self.words, self.current]


def expand_word(word: str, env: Environment, split: bool) -> list[str]:
    """Expand variables in ``word`` and remove its quotes.

    Unquoted expansions are split into several words when ``split`` is true
    or when a ``$`` appears before the first ``=``.  The result may be empty
    when the word expands to nothing.
    """
    fields = _Fields()
    split = split or "$" in word.partition("=")[0]
    single = double = False
    pos = 0
    while pos < len(word):
        char, nxt = word[pos], _at(word, pos + 1)
        if char == "'" and not double:
            single = not single
        elif char == '"' and not single:
            double = not double
        if char == "$" and not nxt:
            fields.add("$")
            pos += 1
            continue
        if char == "$" and nxt == "?" and not single:
            fields.add(str(env.exit_status))
            pos += 2
            continue
        name = None
        if char == "$" and not single and is_name_start(nxt):
            match = _NAME.match(word, pos + 1)
            name = match.group()
            pos = match.end()
        elif char == "$" and nxt in _DIGITS:
            pos += 2
        elif char == "'" and not double:
            pos += 1
        elif char == '"' and not single:
            pos += 1
        elif char == "$" and not single and not double and nxt in ("'", '"'):
            pos += 1
        else:
            fields.add(char)
            pos += 1
        if name is not None:
            value = env.get(name)
            if value is not None and not single and not double and split:
                fields.split_into(split_words(value))
            else:
                fields.join(value)
        if fields.empty and (single or double):
            fields.add("")
    return fields.result()


def expand_heredoc_line(line: str, env: Environment) -> str:
    """Expand ``$NAME`` and ``$?`` in a here-document line; quotes are kept."""
    parts: list[str] = []
    pos = 0
    while pos < len(line):
        if _at(line, pos) == "$" and _at(line, pos + 1) == "":
            parts.append("$")
            pos += 1
        if _at(line, pos) == "$" and _at(line, pos + 1) == "?":
            parts.append(str(env.exit_status))
            pos += 2
        if pos >= len(line):
            break
        char, nxt = line[pos], _at(line, pos + 1)
        if char == "$" and is_name_start(nxt):
            match = _NAME.match(line, pos + 1)
            parts.append(env.get(match.group()) or "")
            pos = match.end()
        elif char == "$" and nxt in _DIGITS:
            pos += 2
        else:
            parts.append(char)
            pos += 1
    return "".join(parts)


def remove_quotes(word: str) -> str:
    """Strip the quoting characters from ``word`` without expanding it."""
    kept: list[str] = []
    single = double = False
    for char in word:
        if char == "'" and not double:
            single = not single
            continue
        if char == '"' and not single:
            double = not double
            continue
        kept.append(char)
    return "".join(kept)