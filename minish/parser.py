"""Turning tokens into commands with their arguments and redirections."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from .environment import Environment
from .expansion import expand_word, remove_quotes
from .lexer import Token, TokenType


class RedirectKind(enum.Enum):
    IN = "<"
    OUT = ">"
    HEREDOC = "<<"
    APPEND = ">>"


_KINDS = {
    TokenType.IN: RedirectKind.IN,
    TokenType.OUT: RedirectKind.OUT,
    TokenType.HEREDOC: RedirectKind.HEREDOC,
    TokenType.APPEND: RedirectKind.APPEND,
}


@dataclass
class Redirect:
    """A redirection; for here-documents ``target`` is the delimiter."""

    kind: RedirectKind
    target: str
    quoted: bool = False
    ambiguous: bool = False


@dataclass
class Command:
    """One stage of a pipeline."""

    argv: list[str] = field(default_factory=list)
    redirects: list[Redirect] = field(default_factory=list)


def make_redirect(token_type: TokenType, word: str, env: Environment) -> Redirect:
    """Build the redirection that ``word`` names after an operator token."""
    try:
        kind = _KINDS[token_type]
    except KeyError:
        raise ValueError(f"not a redirection operator: {token_type!r}") from None
    quoted = "'" in word or '"' in word
    if kind is RedirectKind.HEREDOC:
        names = [remove_quotes(word)]
    else:
        names = expand_word(word, env, True)
    if len(names) != 1:
        return Redirect(kind, word, quoted=quoted, ambiguous=True)
    return Redirect(kind, names[0], quoted=quoted)


def _expand_argument(argv: list[str], word: str, env: Environment) -> list[str]:
    split = not (argv and argv[0] == "export")
    return expand_word(word, env, split)


def parse(tokens: list[Token], env: Environment) -> list[Command]:
    """Group checked tokens into a pipeline of commands."""
    if not tokens:
        return []
    commands: list[Command] = []
    argv: list[str] = []
    redirects: list[Redirect] = []
    previous: Token | None = None
    for token in tokens:
        if token.type is TokenType.PIPE:
            commands.append(Command(argv, redirects))
            argv, redirects = [], []
        elif token.type is TokenType.WORD:
            if previous is not None and previous.type not in (
                TokenType.WORD,
                TokenType.PIPE,
            ):
                redirects.append(make_redirect(previous.type, token.text, env))
            else:
                argv.extend(_expand_argument(argv, token.text, env))
        previous = token
    commands.append(Command(argv, redirects))
    return commands