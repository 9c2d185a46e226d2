"""Running parsed pipelines: redirections, here-documents, builtins and programs."""

from __future__ import annotations

import copy
import io
import os
import signal
import subprocess
import sys
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterable, Iterator, TextIO

from .builtins import ExitRequest, is_builtin, run_builtin
from .environment import Environment
from .expansion import expand_heredoc_line
from .parser import Command, Redirect, RedirectKind
from .strtools import split_fields

MAX_HEREDOCS = 16
HEREDOC_PROMPT = ">"

Reader = Callable[[str], "str | None"]


class RedirectError(Exception):
    """A redirection could not be set up."""

    def __init__(self, message: str, to_stdout: bool = False) -> None:
        super().__init__(message)
        self.to_stdout = to_stdout


class CommandError(Exception):
    """A command name could not be turned into a runnable program."""

    def __init__(self, status: int, message: str, to_stdout: bool = True) -> None:
        super().__init__(message)
        self.status = status
        self.to_stdout = to_stdout


def _report(exc: RedirectError | CommandError) -> None:
    stream = sys.stdout if exc.to_stdout else sys.stderr
    stream.write(f"{exc}\n")
    stream.flush()


@dataclass
class _Streams:
    """Files a command's redirections opened; the last of each kind wins."""

    stdin: BinaryIO | None = None
    stdout: BinaryIO | None = None

    def set_stdin(self, stream: BinaryIO) -> None:
        if self.stdin is not None:
            self.stdin.close()
        self.stdin = stream

    def set_stdout(self, stream: BinaryIO) -> None:
        if self.stdout is not None:
            self.stdout.close()
        self.stdout = stream

    def close(self) -> None:
        for stream in (self.stdin, self.stdout):
            if stream is not None:
                stream.close()
        self.stdin = self.stdout = None

    def __enter__(self) -> "_Streams":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _open_fd(target: str, flags: int, mode: str) -> BinaryIO:
    try:
        fd = os.open(target, flags, 0o664)
    except OSError as exc:
        raise RedirectError(f"{target}: {exc.strerror}") from exc
    return os.fdopen(fd, mode)


def _heredoc_file(body: str) -> BinaryIO:
    stream = tempfile.TemporaryFile()
    stream.write(body.encode())
    stream.seek(0)
    return stream


def open_redirects(command: Command, heredocs: Iterable[str]) -> _Streams:
    """Open the command's redirections in order.

    ``heredocs`` holds the bodies of the command's here-documents, in order.
    Raises RedirectError for a file that cannot be opened or an ambiguous
    redirection; anything already opened is closed first.
    """
    streams = _Streams()
    bodies = iter(heredocs)
    try:
        for redirect in command.redirects:
            if redirect.ambiguous:
                raise RedirectError(
                    f"minishell :{redirect.target}: ambiguous redirect", to_stdout=True
                )
            if redirect.kind is RedirectKind.IN:
                streams.set_stdin(_open_fd(redirect.target, os.O_RDONLY, "rb"))
            elif redirect.kind is RedirectKind.HEREDOC:
                streams.set_stdin(_heredoc_file(next(bodies, "")))
            elif redirect.kind is RedirectKind.OUT:
                flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
                streams.set_stdout(_open_fd(redirect.target, flags, "wb"))
            else:
                flags = os.O_WRONLY | os.O_CREAT | os.O_APPEND
                streams.set_stdout(_open_fd(redirect.target, flags, "wb"))
    except BaseException:
        streams.close()
        raise
    return streams


def _check_direct(name: str) -> str:
    if not os.access(name, os.F_OK):
        raise CommandError(127, f"minshell: {name}: No such file or directory")
    try:
        fd = os.open(name, os.O_RDONLY | os.O_CREAT)
    except OSError as exc:
        raise CommandError(126, f"{name}: {exc.strerror}", to_stdout=False) from exc
    os.close(fd)
    if not os.access(name, os.X_OK):
        raise CommandError(126, f"minshell: {name}: Permission denied")
    return name


def resolve_command(name: str, env: Environment) -> str:
    """Find the program to run for ``name``, raising CommandError if there is none."""
    if name == "":
        raise CommandError(127, " :command not found")
    if name == ".":
        raise CommandError(2, ".: filename argument required")
    directories = split_fields(env.get("PATH"), ":")
    if "/" in name or not directories:
        return _check_direct(name)
    for directory in directories:
        candidate = f"{directory}/{name}"
        if os.access(candidate, os.X_OK):
            return candidate
    raise CommandError(127, f"{name}: command not found")


def _is_heredoc(redirect: Redirect) -> bool:
    return redirect.kind is RedirectKind.HEREDOC and not redirect.ambiguous


def _read_heredoc(redirect: Redirect, env: Environment, reader: Reader) -> str:
    lines: list[str] = []
    while True:
        line = reader(HEREDOC_PROMPT)
        if line is None:
            print(f"here-document delimited by end-of-file(wanted`{redirect.target}')")
            break
        if line == redirect.target:
            break
        text = line + "\n"
        lines.append(text if redirect.quoted else expand_heredoc_line(text, env))
    return "".join(lines)


def read_heredocs(
    commands: list[Command], env: Environment, reader: Reader
) -> list[list[str]]:
    """Read every here-document body, one list per command.

    More than 16 here-documents end the shell with status 2.
    """
    count = sum(1 for command in commands for r in command.redirects if _is_heredoc(r))
    if count > MAX_HEREDOCS:
        print("maximum here-document count exceeded")
        raise ExitRequest(2)
    return [
        [_read_heredoc(r, env, reader) for r in command.redirects if _is_heredoc(r)]
        for command in commands
    ]


def status_from_returncode(code: int) -> int:
    """Shell status for a process return code; signals map to 128 + number."""
    return 128 - code if code < 0 else code


def _ignore(signum: int, frame: object) -> None:
    """Swallow the signal; a handler (unlike SIG_IGN) is reset in children."""


@contextmanager
def _interrupts_ignored() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    numbers = [signal.SIGINT]
    if hasattr(signal, "SIGQUIT"):
        numbers.append(signal.SIGQUIT)
    saved = {number: signal.signal(number, _ignore) for number in numbers}
    try:
        yield
    finally:
        for number, handler in saved.items():
            signal.signal(number, handler)


def _environ(env: Environment) -> dict[str, str]:
    return dict(entry.split("=", 1) for entry in env.to_envp())


def _spawn(
    argv: list[str],
    path: str,
    env: Environment,
    stdin: BinaryIO | int | None,
    stdout: BinaryIO | int | None,
) -> subprocess.Popen | None:
    try:
        return subprocess.Popen(
            argv, executable=path, stdin=stdin, stdout=stdout,
            env=_environ(env), close_fds=True,
        )
    except OSError:
        return None


@contextmanager
def _text_output(binary: BinaryIO | None) -> Iterator[TextIO]:
    if binary is None:
        yield sys.stdout
        sys.stdout.flush()
        return
    wrapper = io.TextIOWrapper(binary, encoding="utf-8", write_through=True)
    try:
        yield wrapper
    finally:
        wrapper.flush()
        wrapper.detach()


def _run_single(command: Command, bodies: list[str], env: Environment) -> int:
    argv = command.argv
    try:
        streams = open_redirects(command, bodies)
    except RedirectError as exc:
        _report(exc)
        env.exit_status = 1
        return 1
    with streams:
        if not argv:
            return env.exit_status
        if is_builtin(argv[0]):
            with _text_output(streams.stdout) as out:
                try:
                    return run_builtin(argv, env, out, sys.stderr)
                except ExitRequest:
                    print("exit")
                    raise
        try:
            path = resolve_command(argv[0], env)
        except CommandError as exc:
            _report(exc)
            return exc.status
        process = _spawn(argv, path, env, streams.stdin, streams.stdout)
    return 1 if process is None else process.wait()


def _isolated_builtin(argv: list[str], env: Environment, out: TextIO) -> int:
    scratch = copy.deepcopy(env)
    try:
        cwd: str | None = os.getcwd()
    except OSError:
        cwd = None
    try:
        return run_builtin(argv, scratch, out, sys.stderr)
    except ExitRequest as request:
        return request.status
    finally:
        if cwd is not None:
            try:
                os.chdir(cwd)
            except OSError:
                pass


def _start_builtin(
    argv: list[str], env: Environment, redirect_out: BinaryIO | None, pipe_fd: int | None
) -> Callable[[], int]:
    buffer = io.StringIO()
    status = _isolated_builtin(argv, env, buffer)
    if redirect_out is not None:
        redirect_out.write(buffer.getvalue().encode())
        return lambda: status
    if pipe_fd is None:
        sys.stdout.write(buffer.getvalue())
        sys.stdout.flush()
        return lambda: status
    data = buffer.getvalue().encode()
    fd = os.dup(pipe_fd)
    result = [status]

    def pump() -> None:
        try:
            view = memoryview(data)
            while view:
                view = view[os.write(fd, view):]
        except BrokenPipeError:
            result[0] = -signal.SIGPIPE
        finally:
            os.close(fd)

    thread = threading.Thread(target=pump, daemon=True)
    thread.start()

    def wait() -> int:
        thread.join()
        return result[0]

    return wait


def _start_stage(
    command: Command,
    bodies: list[str],
    env: Environment,
    stdin_fd: int | None,
    stdout_fd: int | None,
) -> Callable[[], int]:
    try:
        streams = open_redirects(command, bodies)
    except RedirectError as exc:
        _report(exc)
        return lambda: 1
    with streams:
        argv = command.argv
        if not argv:
            return lambda: 0
        if is_builtin(argv[0]):
            return _start_builtin(argv, env, streams.stdout, stdout_fd)
        try:
            path = resolve_command(argv[0], env)
        except CommandError as exc:
            _report(exc)
            status = exc.status
            return lambda: status
        stdin = streams.stdin if streams.stdin is not None else stdin_fd
        stdout = streams.stdout if streams.stdout is not None else stdout_fd
        process = _spawn(argv, path, env, stdin, stdout)
    if process is None:
        return lambda: 1
    return process.wait


def _run_pipeline(
    commands: list[Command], bodies: list[list[str]], env: Environment
) -> int:
    waiters: list[Callable[[], int]] = []
    previous_read: int | None = None
    last = len(commands) - 1
    try:
        for index, (command, docs) in enumerate(zip(commands, bodies)):
            read_end = write_end = None
            if index < last:
                read_end, write_end = os.pipe()
            try:
                waiters.append(_start_stage(command, docs, env, previous_read, write_end))
            finally:
                if write_end is not None:
                    os.close(write_end)
                if previous_read is not None:
                    os.close(previous_read)
                previous_read = read_end
    finally:
        if previous_read is not None:
            os.close(previous_read)
    codes = [wait() for wait in waiters]
    return codes[-1]


def _announce_signal(status: int) -> None:
    if status == 128 + signal.SIGINT:
        sys.stdout.write("\n")
    elif hasattr(signal, "SIGQUIT") and status == 128 + signal.SIGQUIT:
        sys.stderr.write("Quit (core dumped\n")


def execute(commands: list[Command], env: Environment, reader: Reader) -> int:
    """Run a parsed pipeline and record its exit status in ``env``.

    ``reader`` supplies here-document lines, returning None at end of input.
    ``exit`` run on its own raises ExitRequest.
    """
    if not commands:
        return env.exit_status
    try:
        bodies = read_heredocs(commands, env, reader)
    except KeyboardInterrupt:
        sys.stdout.write("\n")
        return env.exit_status
    sys.stdout.flush()
    sys.stderr.flush()
    with _interrupts_ignored():
        if len(commands) == 1:
            code = _run_single(commands[0], bodies[0], env)
        else:
            code = _run_pipeline(commands, bodies, env)
    status = status_from_returncode(code)
    if code < 0:
        _announce_signal(status)
    env.exit_status = status
    return status