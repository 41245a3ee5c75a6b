"""Commands the shell runs itself: echo, cd, pwd, export, unset, env, exit."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TextIO

from minishell.environment import get_env_value, sort_envp
from minishell.nodes import BuiltinType, Node

LONG_MAX = 2**63 - 1
LONG_MIN = -(2**63)


class ShellExit(Exception):
    """Raised by ``exit`` to end the shell with ``status``."""

    def __init__(self, status: int) -> None:
        super().__init__(f"exit {status}")
        self.status = status


def _print_error(prefix: str, message: str) -> None:
    print(f"{prefix}: {message}", file=sys.stderr)


def _is_ascii_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def parse_long(text: str) -> int:
    """Read a leading integer, saturating at the limits of a 64-bit long."""
    pos = 0
    while pos < len(text) and (text[pos] == " " or "\t" <= text[pos] <= "\r"):
        pos += 1
    sign = 1
    if pos < len(text) and text[pos] in "+-":
        sign = -1 if text[pos] == "-" else 1
        pos += 1
    result = 0
    for ch in text[pos:]:
        if not _is_ascii_digit(ch):
            break
        digit = ord(ch) - ord("0")
        if result > (LONG_MAX - digit) // 10:
            return LONG_MAX if sign == 1 else LONG_MIN
        result = result * 10 + digit
    return sign * result


def is_numeric(text: str | None) -> bool:
    """True for an optional sign followed only by decimal digits."""
    if not text:
        return False
    body = text[1:] if text[0] in "+-" else text
    return all(_is_ascii_digit(ch) for ch in body)


def is_valid_identifier(name: str | None) -> bool:
    """True when the part of ``name`` before any ``=`` is a valid variable name."""
    if not name:
        return False
    first = name[0]
    if not (first == "_" or (first.isascii() and first.isalpha())):
        return False
    for ch in name[1:].split("=", 1)[0]:
        if not (ch == "_" or (ch.isascii() and ch.isalnum())):
            return False
    return True


def echo(args: Sequence[str], out: TextIO | None = None) -> int:
    """Print the arguments; a first argument that is a prefix of ``-n`` drops the newline."""
    out = out or sys.stdout
    words = list(args[1:])
    newline = True
    if words and "-n".startswith(words[0]):
        newline = False
        words = words[1:]
    out.write(" ".join(words))
    if newline:
        out.write("\n")
    return 0


def cd(args: Sequence[str], envp: Sequence[str]) -> int:
    """Change directory to the argument, or to HOME without one."""
    if len(args) > 1:
        if len(args) > 2:
            _print_error("cd", "too many arguments")
            return 1
        path: str | None = args[1]
    else:
        path = get_env_value("HOME", envp)
    if path is None:
        print("cd: HOME not set")
        return 1
    try:
        os.chdir(path)
    except OSError as exc:
        _print_error("cd", exc.strerror or str(exc))
        return 1
    return 0


def pwd(out: TextIO | None = None) -> int:
    """Print the current directory."""
    out = out or sys.stdout
    try:
        out.write(os.getcwd() + "\n")
    except OSError as exc:
        _print_error("pwd", exc.strerror or str(exc))
    return 0


def env(envp: Sequence[str], out: TextIO | None = None) -> int:
    """Print every environment entry on its own line."""
    out = out or sys.stdout
    for entry in envp:
        out.write(entry + "\n")
    return 0


def _replace_existing(assignment: str, envp: list[str]) -> bool:
    name = assignment.split("=", 1)[0]
    length = len(name)
    for index, entry in enumerate(envp):
        if entry.startswith(name) and entry[length:length + 1] == "=":
            envp[index] = assignment
            return True
    return False


def _insert_sorted(assignment: str, envp: list[str]) -> None:
    position = next(
        (index for index, entry in enumerate(envp) if not entry < assignment),
        len(envp),
    )
    envp.insert(position, assignment)


def export(args: Sequence[str], envp: list[str], out: TextIO | None = None) -> int:
    """Set variables from ``NAME=value`` arguments, or list the sorted environment."""
    out = out or sys.stdout
    if len(args) < 2:
        sort_envp(envp)
        for entry in envp:
            out.write(f"declare -x {entry}\n")
        return 0
    for arg in args[1:]:
        if not is_valid_identifier(arg.split("=", 1)[0]):
            _print_error("export", "not a valid identifier")
            return 1
        if "=" in arg and not _replace_existing(arg, envp):
            _insert_sorted(arg, envp)
    return 0


def unset(args: Sequence[str], envp: list[str]) -> int:
    """Remove the named variables from the environment."""
    for name in args[1:]:
        length = len(name)
        for index, entry in enumerate(envp):
            if entry.startswith(name) and entry[length:length + 1] == "=":
                del envp[index]
                break
    return 0


def exit_builtin(args: Sequence[str], exit_status: int, out: TextIO | None = None) -> int:
    """Leave the shell by raising ShellExit; returns 1 for too many arguments."""
    out = out or sys.stdout
    out.write("exit\n")
    if len(args) < 2:
        raise ShellExit(exit_status)
    if not is_numeric(args[1]):
        _print_error("minishell: exit", "numeric argument required")
        raise ShellExit(2)
    if len(args) > 2:
        print("minishell: exit: too many arguments", file=sys.stderr)
        return 1
    raise ShellExit(parse_long(args[1]) & 0xFF)


def run_builtin(node: Node, exit_status: int, out: TextIO | None = None) -> int:
    """Run the builtin ``node`` names and return its status."""
    kind = node.builtin_type
    if kind is BuiltinType.ECHO:
        return echo(node.args, out)
    if kind is BuiltinType.CD:
        return cd(node.args, node.envp)
    if kind is BuiltinType.PWD:
        return pwd(out)
    if kind is BuiltinType.EXPORT:
        return export(node.args, node.envp, out)
    if kind is BuiltinType.UNSET:
        return unset(node.args, node.envp)
    if kind is BuiltinType.ENV:
        return env(node.envp, out)
    if kind is BuiltinType.EXIT:
        return exit_builtin(node.args, exit_status, out)
    return 1