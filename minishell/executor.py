"""Running a command tree: external programs, builtins, pipes and redirections."""

from __future__ import annotations

import errno
import os
import signal
import stat
import subprocess
import sys
from collections.abc import Callable, Sequence
from contextlib import suppress

from minishell.builtins import ShellExit, run_builtin
from minishell.nodes import Node, NodeType, RedirectionType

_FILE_MODE = 0o644

_OPEN_MODES = {
    RedirectionType.INPUT: (os.O_RDONLY, 0),
    RedirectionType.OUTPUT: (os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 1),
    RedirectionType.APPEND: (os.O_WRONLY | os.O_CREAT | os.O_APPEND, 1),
    RedirectionType.HEREDOC: (os.O_RDONLY, 0),
}


def _print_error(prefix: str | None, message: str | None) -> None:
    parts = []
    if prefix:
        parts.append(f"{prefix}: ")
    if message:
        parts.append(f"{message}\n")
    sys.stderr.write("".join(parts))
    sys.stderr.flush()


def _flush_standard_streams() -> None:
    for stream in (sys.stdout, sys.stderr):
        with suppress(Exception):
            stream.flush()


def _is_path_like(name: str) -> bool:
    return name.startswith(("/", "./", "../"))


def get_command_node(node: Node | None) -> Node | None:
    """Return the first node below a chain of redirections."""
    while node is not None and node.type is NodeType.REDIRECTION:
        node = node.left
    return node


def find_last_redirection(node: Node | None, redirection_type: RedirectionType) -> Node | None:
    """Find a redirection of the given type, preferring the right subtree, then the left."""
    if node is None:
        return None
    right = find_last_redirection(node.right, redirection_type)
    if right is not None:
        return right
    left = find_last_redirection(node.left, redirection_type)
    if left is not None:
        return left
    if node.type is NodeType.REDIRECTION and node.redirection_type is redirection_type:
        return node
    return None


def _has_redirection(node: Node | None, kinds: tuple[RedirectionType, ...]) -> bool:
    if node is None:
        return False
    if node.type is NodeType.REDIRECTION and node.redirection_type in kinds:
        return True
    return _has_redirection(node.left, kinds) or _has_redirection(node.right, kinds)


def has_input_redirection(node: Node | None) -> bool:
    """True when the tree redirects standard input from a file or here-document."""
    return _has_redirection(node, (RedirectionType.INPUT, RedirectionType.HEREDOC))


def has_output_redirection(node: Node | None) -> bool:
    """True when the tree redirects standard output to a file."""
    return _has_redirection(node, (RedirectionType.OUTPUT, RedirectionType.APPEND))


def _open_target(node: Node) -> int:
    flags, _ = _OPEN_MODES[node.redirection_type]
    return os.open(node.redirection_file or "", flags, _FILE_MODE)


def _first_broken_file(node: Node | None) -> tuple[str, OSError] | None:
    if node is None:
        return None
    for child in (node.left, node.right):
        broken = _first_broken_file(child)
        if broken is not None:
            return broken
    if (
        node.type is NodeType.REDIRECTION
        and node.redirection_type in _OPEN_MODES
        and node.redirection_type is not RedirectionType.HEREDOC
    ):
        try:
            fd = _open_target(node)
        except OSError as exc:
            return node.redirection_file or "", exc
        os.close(fd)
    return None


def check_all_files(node: Node | None) -> str | None:
    """Open every file redirection in the tree; return the first that fails, or None.

    Output files are created (and truncated) as a side effect.
    """
    broken = _first_broken_file(node)
    return broken[0] if broken is not None else None


def _apply_redirection(node: Node) -> None:
    if node.redirection_type not in _OPEN_MODES:
        return
    _, target = _OPEN_MODES[node.redirection_type]
    try:
        fd = _open_target(node)
    except OSError as exc:
        label = (
            "Error opening heredoc file"
            if node.redirection_type is RedirectionType.HEREDOC
            else "Error opening file"
        )
        _print_error(label, exc.strerror or str(exc))
        return
    _flush_standard_streams()
    os.dup2(fd, target)
    os.close(fd)


def apply_redirections(node: Node | None) -> None:
    """Point standard input and output at the tree's redirections, left to right."""
    if node is None:
        return
    apply_redirections(node.left)
    if node.type is NodeType.REDIRECTION:
        _apply_redirection(node)
    apply_redirections(node.right)


def reset_redirections(original_stdin: int | None, original_stdout: int | None) -> None:
    """Restore standard input and output from saved descriptors and close them."""
    _flush_standard_streams()
    if original_stdin is not None and original_stdin >= 0:
        os.dup2(original_stdin, 0)
        os.close(original_stdin)
    if original_stdout is not None and original_stdout >= 0:
        os.dup2(original_stdout, 1)
        os.close(original_stdout)


def _file_check_status(name: str) -> int:
    if not os.path.lexists(name):
        _print_error(name, "No such file or directory")
        return 127
    try:
        info = os.stat(name)
    except OSError:
        _print_error(name, "stat failed")
        return 126
    if stat.S_ISDIR(info.st_mode):
        _print_error(name, "Is a directory")
    else:
        _print_error(name, "Permission denied")
    return 126


def _environment(envp: Sequence[str]) -> dict[str, str]:
    pairs = (entry.split("=", 1) for entry in envp if "=" in entry)
    return {name: value for name, value in pairs}


def _default_signals() -> None:
    signal.signal(signal.SIGINT, signal.SIG_DFL)
    signal.signal(signal.SIGQUIT, signal.SIG_DFL)


def run_external(node: Node) -> int:
    """Run the node's program and return its exit status."""
    args = node.args
    if not args or not args[0]:
        return 0
    name = args[0]
    full_cmd = node.full_cmd
    if full_cmd is None:
        if _is_path_like(name):
            return _file_check_status(name)
        _print_error(name, "command not found")
        return 127
    if not os.access(full_cmd, os.X_OK):
        if os.path.exists(full_cmd):
            return 0
        _print_error(full_cmd, os.strerror(errno.ENOENT))
        return 126
    _flush_standard_streams()
    try:
        completed = subprocess.run(
            list(args),
            executable=full_cmd,
            env=_environment(node.envp),
            preexec_fn=_default_signals,
            check=False,
        )
    except OSError as exc:
        if exc.errno == errno.ENOEXEC:
            return 0
        _print_error("execve", exc.strerror or str(exc))
        return 1
    return completed.returncode if completed.returncode >= 0 else 1


def _fork_child(action: Callable[[], int], *, ignore_sigpipe: bool = False) -> int | None:
    """Run ``action`` in a child process; return its pid, or None if fork failed."""
    _flush_standard_streams()
    try:
        pid = os.fork()
    except OSError as exc:
        _print_error("fork", exc.strerror or str(exc))
        return None
    if pid != 0:
        return pid
    status = 1
    try:
        _default_signals()
        if ignore_sigpipe:
            signal.signal(signal.SIGPIPE, signal.SIG_IGN)
        sys.stdout = open(1, "w", encoding="utf-8", closefd=False)
        sys.stderr = open(2, "w", encoding="utf-8", closefd=False)
        status = action()
    except ShellExit as exc:
        status = exc.status
    except BaseException:
        status = 1
    finally:
        _flush_standard_streams()
        os._exit(status & 0xFF)


def _wait_status(pid: int) -> int | None:
    _, status = os.waitpid(pid, 0)
    return os.WEXITSTATUS(status) if os.WIFEXITED(status) else None


def _run_pipe_side(
    side: Node | None,
    fds: tuple[int, int],
    use_fd: int,
    target: int,
    redirected: bool,
    exit_status: int,
) -> int:
    if not redirected:
        os.dup2(use_fd, target)
    for fd in fds:
        os.close(fd)
    if side is not None and side.type is NodeType.BUILTIN:
        return run_builtin(side, exit_status)
    return execute(side, exit_status)


def pipes(node: Node, exit_status: int = 0) -> int:
    """Run the left side into the right side through a pipe; return the right side's status."""
    try:
        read_fd, write_fd = os.pipe()
    except OSError as exc:
        _print_error("pipe", exc.strerror or str(exc))
        return 1
    fds = (read_fd, write_fd)
    left_pid = _fork_child(
        lambda: _run_pipe_side(
            node.left, fds, write_fd, 1, has_output_redirection(node.left), exit_status
        ),
        ignore_sigpipe=True,
    )
    right_pid = _fork_child(
        lambda: _run_pipe_side(
            node.right, fds, read_fd, 0, has_input_redirection(node.right), exit_status
        ),
        ignore_sigpipe=True,
    )
    os.close(read_fd)
    os.close(write_fd)
    left_status = _wait_status(left_pid) if left_pid is not None else None
    right_status = _wait_status(right_pid) if right_pid is not None else None
    if right_status is not None:
        return right_status
    if left_status is not None:
        return left_status
    return 1


def _execute_redirection(node: Node, exit_status: int) -> int:
    command = get_command_node(node)
    if command is None:
        return 1
    broken = _first_broken_file(node)
    if broken is not None:
        name, exc = broken
        _print_error(name, exc.strerror or str(exc))
        return 1
    if node.original_stdin is None:
        node.original_stdin = os.dup(0)
    if node.original_stdout is None:
        node.original_stdout = os.dup(1)
    apply_redirections(node)
    if command.type is NodeType.EXECUTION:
        return run_external(command)
    if command.type is NodeType.BUILTIN:
        pid = _fork_child(lambda: run_builtin(command, exit_status))
        if pid is None:
            return 1
        status = _wait_status(pid)
        return status if status is not None else 1
    return 1


def execute(node: Node | None, exit_status: int = 0) -> int:
    """Run a command tree and return its exit status.

    Redirections stay applied afterwards; the caller restores them with
    ``reset_redirections(node.original_stdin, node.original_stdout)``.
    The ``exit`` builtin run directly raises ShellExit.
    """
    if node is None:
        return 1
    if node.type is NodeType.EXECUTION:
        return run_external(node)
    if node.type is NodeType.PIPE:
        return pipes(node, exit_status)
    if node.type is NodeType.REDIRECTION:
        return _execute_redirection(node, exit_status)
    if node.type is NodeType.BUILTIN:
        return run_builtin(node, exit_status)
    return 1