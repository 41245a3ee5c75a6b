"""Lookup and ordering of the shell's environment list."""

from __future__ import annotations

from collections.abc import Iterable


def get_env_value(name: str, envp: Iterable[str]) -> str | None:
    """Return the value of ``name`` in ``envp`` (entries ``NAME=value``), or None."""
    length = len(name)
    for entry in envp:
        if entry.startswith(name) and entry[length:length + 1] == "=":
            return entry[length + 1:]
    return None


def sort_envp(envp: list[str]) -> None:
    """Sort the environment list in place, in byte order."""
    envp.sort()