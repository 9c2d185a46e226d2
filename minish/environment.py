"""The shell's variable table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .strtools import NumericArgumentError, parse_exit_status

DEFAULT_PATH = (
    "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
    ":/usr/games:/usr/local/games:/snap/bin"
)
_MAX_SHELL_LEVEL = 1000


@dataclass
class EnvEntry:
    """One variable; ``value`` is None when declared without ``=``."""

    name: str
    value: str | None = None
    hidden: bool = False


def _assigned_name(assignment: str) -> str:
    return assignment.partition("=")[0].replace("+", "")


class Environment:
    """Ordered set of shell variables plus the last exit status."""

    def __init__(self) -> None:
        self._entries: dict[str, EnvEntry] = {}
        self.exit_status = 0
        self.pwd: str | None = None

    @classmethod
    def from_strings(cls, strings: Iterable[str], cwd: str | None) -> "Environment":
        """Build the table from ``NAME=value`` strings, as at shell start-up."""
        env = cls()
        strings = list(strings)
        if not strings:
            env._entries["PATH"] = EnvEntry("PATH", DEFAULT_PATH, hidden=True)
            env.set("PWD=" + (cwd or ""))
            env.set("SHLVL=1")
            env.set("OLDPWD")
            env.set("_=/usr/bin/env")
            return env
        for assignment in strings:
            env.set(assignment)
        env.bump_shell_level()
        return env

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str | None) -> str | None:
        """Value of ``name``, or None if unset, valueless or empty."""
        if name is None:
            return None
        entry = self._entries.get(name)
        if entry is None:
            return None
        return entry.value or None

    def set(self, assignment: str) -> None:
        """Apply ``NAME=value`` or a bare ``NAME`` declaration."""
        name = _assigned_name(assignment)
        _, eq, value = assignment.partition("=")
        entry = self._entries.get(name)
        if entry is not None:
            if eq:
                entry.value = value
                entry.hidden = False
            return
        self._entries[name] = EnvEntry(name, value if eq else None)

    def append(self, assignment: str) -> None:
        """Apply ``NAME+=value``, appending to any existing value."""
        name = assignment.partition("+")[0]
        entry = self._entries.get(name)
        if entry is None:
            self.set(assignment)
            return
        entry.value = (entry.value or "") + assignment.partition("=")[2]

    def unset(self, name: str) -> bool:
        """Remove ``name``; return whether it was present."""
        return self._entries.pop(name, None) is not None

    def to_envp(self) -> list[str]:
        """``NAME=value`` strings for every variable that has a value."""
        return [
            f"{entry.name}={entry.value}"
            for entry in self._entries.values()
            if entry.value is not None
        ]

    def env_lines(self) -> list[str]:
        """Lines printed by the ``env`` builtin."""
        return [
            f"{entry.name}={entry.value}"
            for entry in self._entries.values()
            if entry.value is not None and not entry.hidden
        ]

    def export_lines(self) -> list[str]:
        """Lines printed by ``export`` without arguments, sorted by name."""
        lines = []
        for entry in sorted(self._entries.values(), key=lambda e: e.name.encode()):
            if entry.hidden or entry.name == "_":
                continue
            if entry.value is None:
                lines.append(f"declare -x {entry.name}")
            else:
                lines.append(f'declare -x {entry.name}="{entry.value}"')
        return lines

    def bump_shell_level(self) -> int:
        """Increment SHLVL, resetting it to 1 when it grows too high."""
        entry = self._entries.get("SHLVL")
        if entry is None:
            self.set("SHLVL=1")
            return 1
        try:
            level = parse_exit_status(entry.value or "")
        except NumericArgumentError:
            level = 2
        level += 1
        if level >= _MAX_SHELL_LEVEL:
            print(f"warning: shell level ({level}) too high")
            level = 1
        entry.value = str(level)
        return level