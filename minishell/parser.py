"""Construction of command and redirection nodes from tokens."""

from __future__ import annotations

import os
import stat
from collections.abc import Sequence
from itertools import zip_longest

from minishell.environment import get_env_value
from minishell.nodes import (
    Node,
    NodeType,
    RedirectionType,
    Token,
    TokenType,
    builtin_check,
)

_REDIRECTIONS = {
    TokenType.REDIRECT_IN: RedirectionType.INPUT,
    TokenType.REDIRECT_OUT: RedirectionType.OUTPUT,
    TokenType.APPEND: RedirectionType.APPEND,
    TokenType.HEREDOC: RedirectionType.HEREDOC,
}


def resolve_command(search_path: Sequence[str] | None, name: str | None) -> str | None:
    """Find the executable for ``name``.

    Names starting with ``/``, ``./`` or ``../`` are used as they are; others
    are looked up in each directory of ``search_path``. Returns None when
    nothing executable is found or the search path is empty.
    """
    if not name or not search_path:
        return None
    if name.startswith(("/", "./", "../")):
        try:
            info = os.stat(name)
        except OSError:
            return None
        if stat.S_ISDIR(info.st_mode):
            return None
        return name if os.access(name, os.X_OK) else None
    for directory in search_path:
        candidate = f"{directory}/{name}"
        if os.access(candidate, os.X_OK):
            return candidate
    return None


def collect_arguments(tokens: Sequence[Token]) -> list[str]:
    """Return the non-empty words of one command, skipping redirection targets."""
    tokens = list(tokens)
    args: list[str] = []
    skip_target = False
    for token, following in zip_longest(tokens, tokens[1:]):
        if skip_target:
            skip_target = False
            continue
        if token.type is TokenType.PIPE:
            break
        if token.type is TokenType.WORD:
            if token.value:
                args.append(token.value)
        elif (
            token.type in _REDIRECTIONS
            and following is not None
            and following.type is TokenType.WORD
        ):
            skip_target = True
    return args


def parse_command(tokens: Sequence[Token], envp: list[str]) -> Node | None:
    """Build a builtin or execution node from the tokens of one command."""
    tokens = list(tokens)
    if not tokens:
        return None
    first = tokens[0]
    node = Node(envp=envp)
    builtin = builtin_check(first.value)
    if builtin is not None:
        node.type = NodeType.BUILTIN
        node.builtin_type = builtin
    else:
        node.type = NodeType.EXECUTION
        path = get_env_value("PATH", envp)
        if not path:
            print("Path is empty string")
        search_path = [entry for entry in (path or "").split(":") if entry]
        node.full_cmd = resolve_command(search_path, first.value)
    node.args = collect_arguments(tokens)
    return node


def parse_redirection(
    tokens: Sequence[Token], command: Node | None, envp: list[str]
) -> Node | None:
    """Wrap ``command`` in one redirection node per redirection, in order.

    Each new node has the previous result as its left child. Raises
    ValueError when a redirection is not followed by a word.
    """
    result = command
    remaining = iter(tokens)
    for token in remaining:
        if token.type is TokenType.PIPE:
            break
        if token.type not in _REDIRECTIONS:
            continue
        target = next(remaining, None)
        if target is None or target.type is not TokenType.WORD:
            raise ValueError(f"syntax error near unexpected token '{token.value}'")
        result = Node(
            type=NodeType.REDIRECTION,
            envp=envp,
            redirection_type=_REDIRECTIONS[token.type],
            redirection_file=target.value,
            left=result,
        )
    return result