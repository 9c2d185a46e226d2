"""The interactive shell: reading lines, running them, and leaving cleanly."""

from __future__ import annotations

import os
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Iterator, Mapping

from .builtins import ExitRequest
from .environment import Environment
from .executor import execute
from .lexer import ShellSyntaxError, lex
from .parser import parse

PROMPT = "\001\033[32m\002minshell $ \001\033[36m\002"
INTERRUPT_STATUS = 130


def _read_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


@contextmanager
def _prompt_signals() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread() or not hasattr(
        signal, "SIGQUIT"
    ):
        yield
        return
    saved = signal.signal(signal.SIGQUIT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGQUIT, saved)


class Shell:
    """A shell session: its variables, its line reader and its last status."""

    def __init__(self, environ: Mapping[str, str] | None = None, cwd: str | None = None) -> None:
        if environ is None:
            environ = os.environ
        if cwd is None:
            try:
                cwd = os.getcwd()
            except OSError:
                cwd = None
        strings = [f"{name}={value}" for name, value in environ.items()]
        self.env = Environment.from_strings(strings, cwd)
        self.reader = _read_line
        self._interrupted = False

    def run_line(self, line: str) -> int:
        """Run one command line and return its status.

        A lone ``exit`` raises ExitRequest.
        """
        if self._interrupted:
            self.env.exit_status = INTERRUPT_STATUS
            self._interrupted = False
        try:
            tokens = lex(line)
        except ShellSyntaxError as exc:
            print(exc)
            return self.env.exit_status
        commands = parse(tokens, self.env)
        return execute(commands, self.env, self.reader)

    def repl(self) -> int:
        """Read and run lines until end of input or ``exit``; return the status."""
        with _prompt_signals():
            while True:
                try:
                    line = self.reader(PROMPT)
                except KeyboardInterrupt:
                    print()
                    self._interrupted = True
                    continue
                if line is None:
                    break
                try:
                    self.run_line(line)
                except ExitRequest as request:
                    return request.status
        print("exit")
        return self.env.exit_status


def main(argv: list[str] | None = None) -> int:
    """Start an interactive session; the shell takes no arguments."""
    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        print("just one ergument")
        return 0
    try:
        import readline  # noqa: F401  (line editing and history for input())
    except ImportError:
        pass
    return Shell().repl()


if __name__ == "__main__":
    raise SystemExit(main())