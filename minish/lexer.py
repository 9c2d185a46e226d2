"""Splitting a command line into tokens and checking their order."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from itertools import pairwise

from .strtools import is_blank

_WORD_BREAK = frozenset("()<>|\t\v\n ")


class TokenType(enum.IntEnum):
    WORD = 1
    PIPE = 2
    IN = 3
    OUT = 4
    HEREDOC = 5
    APPEND = 6


_OPERATORS = {">": TokenType.OUT, "<": TokenType.IN, "|": TokenType.PIPE}
_DOUBLED = {TokenType.OUT: TokenType.APPEND, TokenType.IN: TokenType.HEREDOC}


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str


class ShellSyntaxError(Exception):
    """Raised for a command line the shell cannot accept."""

    def __init__(self, message: str = "syntax error") -> None:
        super().__init__(message)


def quotes_balanced(line: str) -> bool:
    """True when every single and double quote is closed."""
    single = double = False
    for char in line:
        if char == '"' and not single:
            double = not double
        if char == "'" and not double:
            single = not single
    return not (single or double)


def _word_end(line: str, start: int) -> int:
    single = double = False
    for index, char in enumerate(line[start:], start):
        if char == "'" and not double:
            single = not single
        if char == '"' and not single:
            double = not double
        if char in _WORD_BREAK and not (single or double):
            return index
    return len(line)


def _operator_end(line: str, start: int) -> int:
    char = line[start]
    end = start
    while end < len(line) and line[end] == char:
        end += 1
    return end


def tokenize(line: str) -> list[Token]:
    """Split ``line`` into words and operator tokens without checking order."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char in _OPERATORS:
            end = _operator_end(line, pos)
            kind = _OPERATORS[char]
            if end - pos == 2 and kind in _DOUBLED:
                kind = _DOUBLED[kind]
            tokens.append(Token(kind, line[pos:end]))
            pos = end
        elif is_blank(char):
            pos += 1
        else:
            end = _word_end(line, pos)
            if end == pos:
                raise ShellSyntaxError()
            tokens.append(Token(TokenType.WORD, line[pos:end]))
            pos = end
    return tokens


def check_syntax(tokens: list[Token]) -> None:
    """Raise ShellSyntaxError if the tokens are not in a valid order."""
    if not tokens:
        return
    if tokens[0].type is TokenType.PIPE:
        raise ShellSyntaxError()
    for current, following in pairwise(tokens):
        if current.type is TokenType.PIPE and len(current.text) > 1:
            raise ShellSyntaxError()
        if current.type is not TokenType.WORD and len(current.text) > 2:
            raise ShellSyntaxError()
        if following.type is not TokenType.WORD and current.type not in (
            TokenType.WORD,
            TokenType.PIPE,
        ):
            raise ShellSyntaxError()
        if following.type is TokenType.PIPE and current.type is not TokenType.WORD:
            raise ShellSyntaxError()
    if tokens[-1].type is not TokenType.WORD:
        raise ShellSyntaxError()


def lex(line: str) -> list[Token]:
    """Tokenize ``line`` and validate it, raising ShellSyntaxError on failure."""
    if not quotes_balanced(line):
        raise ShellSyntaxError()
    tokens = tokenize(line)
    check_syntax(tokens)
    return tokens