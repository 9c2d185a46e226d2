"""Commands the shell runs itself."""

from __future__ import annotations

import os
import re
from typing import TextIO

from .environment import Environment
from .strtools import NumericArgumentError, is_name_char, is_name_start, parse_exit_status

BUILTINS = frozenset({"echo", "cd", "pwd", "export", "unset", "env", "exit"})

_N_FLAG = re.compile(r"-n+")
_LEADING_NUMBER = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]*)")
_LLONG_MAX = 2**63 - 1


class ExitRequest(Exception):
    """Raised by ``exit``; ``status`` is the process exit status."""

    def __init__(self, status: int) -> None:
        super().__init__(status)
        self.status = status % 256


def is_builtin(name: str) -> bool:
    """True if ``name`` is run by the shell itself."""
    return name in BUILTINS


def _reason(exc: OSError) -> str:
    return exc.strerror or str(exc)


def echo(argv: list[str], out: TextIO) -> int:
    """Print the arguments; leading ``-n`` flags drop the newline."""
    args = argv[1:]
    newline = True
    while args and _N_FLAG.fullmatch(args[0]):
        newline = False
        args = args[1:]
    out.write(" ".join(args) + ("\n" if newline else ""))
    return 0


def pwd(argv: list[str], env: Environment, out: TextIO) -> int:
    """Print the working directory."""
    if len(argv) > 1 and argv[1].startswith("-"):
        out.write(f"minshell: pwd: {argv[1]}: invalid option\n")
        return 1
    try:
        path = os.getcwd()
    except OSError:
        path = env.pwd or ""
    out.write(path + "\n")
    return 0


def _record_move(env: Environment, old: str | None, new: str) -> None:
    env.set(f"OLDPWD={old or ''}")
    env.set(f"PWD={new}")
    env.pwd = new


def cd(argv: list[str], env: Environment, err: TextIO) -> int:
    """Change directory, updating PWD and OLDPWD."""
    previous = env.get("PWD")
    if len(argv) < 2:
        home = env.get("HOME")
        if home is None:
            err.write("bash: cd: HOME not set\n")
            return 1
        try:
            os.chdir(home)
        except OSError as exc:
            err.write(f"minshell: {_reason(exc)}\n")
            return 1
        _record_move(env, previous, home)
        return 1
    if len(argv) > 2:
        err.write("bash: cd: too many arguments\n")
        return 1
    target = argv[1]
    if not target:
        return 0
    try:
        os.chdir(target)
    except OSError as exc:
        err.write(f"{target}: {_reason(exc)}\n")
        return 1
    try:
        current = os.getcwd()
    except OSError as exc:
        err.write(f"getcwd : : {_reason(exc)}\n")
        return 0
    _record_move(env, previous, current)
    return 0


def env_command(argv: list[str], env: Environment, out: TextIO, err: TextIO) -> int:
    """Print the visible variables; arguments are refused."""
    if len(argv) < 2:
        for line in env.env_lines():
            out.write(line + "\n")
        return 0
    if argv[1].startswith("-"):
        err.write(f"env: invalid option -- '{argv[1]}\n")
        return 125
    err.write(f"env: \u2018{argv[1]}\u2019: No such file or directory\n")
    return 127


def export(argv: list[str], env: Environment, out: TextIO, err: TextIO) -> int:
    """Set or list exported variables."""
    status = 0
    if len(argv) < 2:
        for line in env.export_lines():
            out.write(line + "\n")
    for arg in argv[1:]:
        plus = arg.find("+")
        if not arg or not is_name_start(arg[0]):
            valid = False
        elif plus != -1 and arg[plus + 1 : plus + 2] == "=":
            env.append(arg)
            continue
        else:
            valid = all(is_name_char(char) for char in arg.partition("=")[0])
        if valid:
            env.set(arg)
        else:
            err.write(f"minishell: export:`{arg}': not a valid identifier\n")
            status = 1
    return status


def unset(argv: list[str], env: Environment, err: TextIO) -> int:
    """Remove variables; options are refused."""
    args = argv[1:]
    if args and args[0].startswith("-"):
        err.write(f" unset: -{args[0][1:2]}: invalid option\n")
        return 2
    for name in args:
        env.unset(name)
    return 0


def _numeric_error(text: str) -> str:
    match = _LEADING_NUMBER.match(text)
    sign, digits = match.groups()
    value = int(digits) if digits else 0
    if sign == "-" and value > _LLONG_MAX + 1:
        return f"minshell: exit:{text}: numeric argument required\n"
    if sign != "-" and value > _LLONG_MAX:
        return f"minshell: exit: {text}: numeric argument required\n"
    return f"bash: exit: {text}:numeric argument required\n"


def exit_command(argv: list[str], env: Environment, err: TextIO) -> int:
    """Raise ExitRequest, or return the unchanged status on too many arguments.

    Printing ``exit`` to the terminal is left to the caller.
    """
    if len(argv) < 2:
        raise ExitRequest(env.exit_status)
    if len(argv) > 2:
        err.write("minishell:exit: too many arguments\n")
        return env.exit_status
    try:
        status = parse_exit_status(argv[1])
    except NumericArgumentError:
        err.write(_numeric_error(argv[1]))
        status = 2
    raise ExitRequest(status)


def run_builtin(argv: list[str], env: Environment, out: TextIO, err: TextIO) -> int:
    """Run the builtin named by ``argv[0]`` and record its exit status."""
    name = argv[0] if argv else ""
    handlers = {
        "echo": lambda: echo(argv, out),
        "cd": lambda: cd(argv, env, err),
        "pwd": lambda: pwd(argv, env, out),
        "export": lambda: export(argv, env, out, err),
        "env": lambda: env_command(argv, env, out, err),
        "exit": lambda: exit_command(argv, env, err),
        "unset": lambda: unset(argv, env, err),
    }
    handler = handlers.get(name)
    if handler is None:
        raise ValueError(f"not a builtin: {name!r}")
    status = handler()
    env.exit_status = status
    return status