"""Token and syntax-tree types shared by the parser and the executor."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class TokenType(Enum):
    """Kinds of token produced by the tokenizer."""

    WORD = auto()
    PIPE = auto()
    REDIRECT_IN = auto()
    REDIRECT_OUT = auto()
    HEREDOC = auto()
    APPEND = auto()
    AND = auto()
    OR = auto()
    OPEN_PAREN = auto()
    CLOSE_PAREN = auto()
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single lexical token."""

    type: TokenType
    value: str


class NodeType(Enum):
    """Kinds of node in the command tree."""

    EXECUTION = auto()
    PIPE = auto()
    REDIRECTION = auto()
    BUILTIN = auto()


class BuiltinType(Enum):
    """Commands the shell runs itself."""

    ECHO = auto()
    CD = auto()
    PWD = auto()
    EXPORT = auto()
    UNSET = auto()
    ENV = auto()
    EXIT = auto()

    @property
    def command(self) -> str:
        """The name the command is typed as."""
        return self.name.lower()


class RedirectionType(Enum):
    """Kinds of redirection."""

    INPUT = auto()
    OUTPUT = auto()
    HEREDOC = auto()
    APPEND = auto()


@dataclass(eq=False)
class Node:
    """A node of the command tree.

    ``envp`` is the shell's environment list; every node of one command line
    shares the same list, so builtins that change it are seen everywhere.
    """

    type: NodeType | None = None
    envp: list[str] = field(default_factory=list)
    full_cmd: str | None = None
    args: list[str] = field(default_factory=list)
    builtin_type: BuiltinType | None = None
    redirection_type: RedirectionType | None = None
    redirection_file: str | None = None
    left: Node | None = None
    right: Node | None = None
    original_stdin: int | None = None
    original_stdout: int | None = None
    is_delimiter_quoted: bool = False


_BUILTINS = {member.command: member for member in BuiltinType}


def builtin_check(cmd: str | None) -> BuiltinType | None:
    """Return the builtin named exactly ``cmd``, or None."""
    if cmd is None:
        return None
    return _BUILTINS.get(cmd)