"""Here-document collection, variable expansion and temporary files."""

from __future__ import annotations

import itertools
import os
import sys
from collections.abc import Callable, Sequence
from contextlib import suppress

from minishell.environment import get_env_value
from minishell.nodes import Node, NodeType, RedirectionType

HEREDOC_PREFIX = "/tmp/minishell_heredoc_"
_CLEANUP_PREFIX = HEREDOC_PREFIX[:22]
_counter = itertools.count()

ReadLine = Callable[[str], "str | None"]


class HeredocInterrupted(Exception):
    """Raised when a here-document could not be collected.

    ``status`` is the exit status the shell reports: 130 after an interrupt.
    """

    def __init__(self, status: int = 130) -> None:
        super().__init__(f"here-document aborted with status {status}")
        self.status = status


def create_heredoc_tempfile() -> str:
    """Return a fresh path for a here-document's temporary file."""
    return f"{HEREDOC_PREFIX}{next(_counter)}"


def _is_name_char(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalnum())


def expand_vars_in_line(line: str, exit_status: int, envp: Sequence[str]) -> str:
    """Expand ``$?`` and ``$NAME`` in one here-document line.

    Unknown names expand to nothing. A ``$`` not followed by a name is
    dropped and the character after it is kept as it is.
    """
    out: list[str] = []
    pos = 0
    length = len(line)
    while pos < length:
        ch = line[pos]
        if ch != "$":
            out.append(ch)
            pos += 1
            continue
        if line.startswith("?", pos + 1):
            out.append(str(exit_status))
            pos += 2
            continue
        end = pos + 1
        while end < length and _is_name_char(line[end]):
            end += 1
        name = line[pos + 1:end]
        if name:
            value = get_env_value(name, envp)
            if value is not None:
                out.append(value)
            pos = end
        else:
            pos += 1
            if pos < length:
                out.append(line[pos])
                pos += 1
    return "".join(out)


def _prompt_line(prompt: str) -> str | None:
    try:
        return input(prompt)
    except EOFError:
        return None


def collect_heredoc(
    node: Node,
    exit_status: int,
    envp: Sequence[str],
    read_line: ReadLine | None = None,
) -> str:
    """Read the body of ``node``'s here-document into a temporary file.

    Lines are read with ``read_line("> ")`` until it returns None or the
    delimiter (the node's current ``redirection_file``). On success the node's
    ``redirection_file`` becomes the temporary file's path, which is returned.
    """
    reader = read_line or _prompt_line
    delimiter = node.redirection_file or ""
    path = create_heredoc_tempfile()
    try:
        handle = open(path, "w", encoding="utf-8")
    except OSError as exc:
        print(f"heredoc temp file: {exc.strerror}", file=sys.stderr)
        raise HeredocInterrupted(1) from None
    try:
        with handle:
            while True:
                line = reader("> ")
                if line is None or line == delimiter:
                    break
                handle.write(expand_vars_in_line(line, exit_status, envp))
                handle.write("\n")
    except KeyboardInterrupt:
        sys.stdout.write("\n")
        with suppress(OSError):
            os.unlink(path)
        raise HeredocInterrupted(130) from None
    node.redirection_file = path
    return path


def process_all_heredocs(
    node: Node | None,
    exit_status: int,
    envp: Sequence[str],
    read_line: ReadLine | None = None,
) -> None:
    """Collect every here-document in the tree, left subtree first."""
    if node is None:
        return
    process_all_heredocs(node.left, exit_status, envp, read_line)
    if node.type is NodeType.REDIRECTION and node.redirection_type is RedirectionType.HEREDOC:
        collect_heredoc(node, exit_status, envp, read_line)
    process_all_heredocs(node.right, exit_status, envp, read_line)


def cleanup_heredoc_files(node: Node | None) -> None:
    """Remove the temporary files of every collected here-document in the tree."""
    if node is None:
        return
    if (
        node.type is NodeType.REDIRECTION
        and node.redirection_type is RedirectionType.HEREDOC
        and node.redirection_file
        and node.redirection_file.startswith(_CLEANUP_PREFIX)
    ):
        with suppress(OSError):
            os.unlink(node.redirection_file)
    cleanup_heredoc_files(node.left)
    cleanup_heredoc_files(node.right)