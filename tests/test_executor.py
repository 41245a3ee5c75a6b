import os
import sys

import pytest

from minishell.builtins import ShellExit
from minishell.executor import (
    apply_redirections,
    check_all_files,
    execute,
    find_last_redirection,
    get_command_node,
    has_input_redirection,
    has_output_redirection,
    pipes,
    reset_redirections,
    run_external,
)
from minishell.nodes import BuiltinType, Node, NodeType, RedirectionType

COPY_STDIN = "import sys; open(sys.argv[1], 'w').write(sys.stdin.read())"


def python_node(*script_args):
    return Node(
        type=NodeType.EXECUTION,
        full_cmd=sys.executable,
        args=[sys.executable, *script_args],
    )


def echo_node(*words):
    return Node(type=NodeType.BUILTIN, builtin_type=BuiltinType.ECHO, args=["echo", *words])


def redirect(kind, path, left):
    return Node(
        type=NodeType.REDIRECTION,
        redirection_type=kind,
        redirection_file=str(path),
        left=left,
    )


def test_get_command_node_walks_down_redirections(tmp_path):
    cmd = echo_node("x")
    tree = redirect(RedirectionType.OUTPUT, tmp_path / "a", redirect(RedirectionType.INPUT, tmp_path / "b", cmd))
    assert get_command_node(tree) is cmd
    assert get_command_node(cmd) is cmd
    assert get_command_node(None) is None


def test_find_last_redirection_prefers_deeper_left(tmp_path):
    cmd = echo_node("x")
    inner = redirect(RedirectionType.OUTPUT, tmp_path / "a", cmd)
    outer = redirect(RedirectionType.OUTPUT, tmp_path / "b", inner)
    assert find_last_redirection(outer, RedirectionType.OUTPUT) is inner
    assert find_last_redirection(outer, RedirectionType.INPUT) is None


def test_find_last_redirection_prefers_right_subtree(tmp_path):
    left = redirect(RedirectionType.OUTPUT, tmp_path / "a", echo_node("x"))
    right = redirect(RedirectionType.OUTPUT, tmp_path / "b", echo_node("y"))
    tree = Node(type=NodeType.PIPE, left=left, right=right)
    assert find_last_redirection(tree, RedirectionType.OUTPUT) is right


def test_has_redirection_kinds(tmp_path):
    cmd = echo_node("x")
    out_tree = redirect(RedirectionType.APPEND, tmp_path / "a", cmd)
    in_tree = redirect(RedirectionType.HEREDOC, tmp_path / "b", cmd)
    assert has_output_redirection(out_tree) is True
    assert has_input_redirection(out_tree) is False
    assert has_input_redirection(in_tree) is True
    assert has_output_redirection(in_tree) is False
    assert has_input_redirection(None) is False


def test_check_all_files_reports_missing_input(tmp_path):
    missing = tmp_path / "missing.txt"
    created = tmp_path / "created.txt"
    tree = redirect(RedirectionType.OUTPUT, created, redirect(RedirectionType.INPUT, missing, echo_node()))
    assert check_all_files(tree) == str(missing)


def test_check_all_files_creates_outputs_and_ignores_heredoc(tmp_path):
    created = tmp_path / "created.txt"
    tree = redirect(
        RedirectionType.HEREDOC,
        tmp_path / "never_opened",
        redirect(RedirectionType.OUTPUT, created, echo_node()),
    )
    assert check_all_files(tree) is None
    assert created.exists()
    assert check_all_files(None) is None


def test_apply_and_reset_output_redirection(tmp_path):
    target = tmp_path / "out.txt"
    saved_in, saved_out = os.dup(0), os.dup(1)
    try:
        apply_redirections(redirect(RedirectionType.OUTPUT, target, None))
        os.write(1, b"redirected")
    finally:
        reset_redirections(saved_in, saved_out)
    assert target.read_bytes() == b"redirected"


def test_apply_redirections_missing_input_reports_error(tmp_path, capfd):
    apply_redirections(redirect(RedirectionType.INPUT, tmp_path / "nope", None))
    assert "Error opening file" in capfd.readouterr().err


def test_run_external_returns_exit_status():
    assert run_external(python_node("-c", "import sys; sys.exit(3)")) == 3


def test_run_external_empty_args_is_success():
    assert run_external(Node(type=NodeType.EXECUTION, args=[])) == 0


def test_run_external_command_not_found(capfd):
    node = Node(type=NodeType.EXECUTION, args=["no_such_command_here"])
    assert run_external(node) == 127
    assert "no_such_command_here: command not found" in capfd.readouterr().err


def test_run_external_missing_path(capfd):
    node = Node(type=NodeType.EXECUTION, args=["./definitely_missing_program"])
    assert run_external(node) == 127
    assert "No such file or directory" in capfd.readouterr().err


def test_run_external_directory(tmp_path, capfd):
    node = Node(type=NodeType.EXECUTION, args=[str(tmp_path)])
    assert run_external(node) == 126
    assert "Is a directory" in capfd.readouterr().err


def test_run_external_not_executable(tmp_path, capfd):
    script = tmp_path / "plain.txt"
    script.write_text("data\n")
    node = Node(type=NodeType.EXECUTION, args=[str(script)])
    assert run_external(node) == 126
    assert "Permission denied" in capfd.readouterr().err


def test_run_external_exec_format_error_is_success(tmp_path):
    script = tmp_path / "noshebang"
    script.write_text("this is not a program\n")
    script.chmod(0o755)
    node = Node(type=NodeType.EXECUTION, full_cmd=str(script), args=[str(script)])
    assert run_external(node) == 0


def test_run_external_vanished_command(tmp_path, capfd):
    gone = str(tmp_path / "gone")
    node = Node(type=NodeType.EXECUTION, full_cmd=gone, args=["gone"])
    assert run_external(node) == 126
    assert gone in capfd.readouterr().err


def test_run_external_passes_environment(tmp_path):
    out = tmp_path / "env.txt"
    node = python_node(
        "-c", "import os, sys; open(sys.argv[1], 'w').write(os.environ['GREETING'])", str(out)
    )
    node.envp = ["GREETING=hello"]
    assert run_external(node) == 0
    assert out.read_text() == "hello"


def test_execute_none_is_failure():
    assert execute(None, 0) == 1


def test_execute_builtin_echo(capsys):
    assert execute(echo_node("hi", "there"), 0) == 0
    assert capsys.readouterr().out == "hi there\n"


def test_execute_exit_builtin_raises():
    node = Node(type=NodeType.BUILTIN, builtin_type=BuiltinType.EXIT, args=["exit", "7"])
    with pytest.raises(ShellExit) as info:
        execute(node, 0)
    assert info.value.status == 7


def test_execute_redirected_builtin(tmp_path):
    target = tmp_path / "echo.txt"
    tree = redirect(RedirectionType.OUTPUT, target, echo_node("hello"))
    try:
        status = execute(tree, 0)
    finally:
        reset_redirections(tree.original_stdin, tree.original_stdout)
    assert status == 0
    assert target.read_text() == "hello\n"


def test_execute_redirected_external_append(tmp_path):
    target = tmp_path / "append.txt"
    target.write_text("first\n")
    tree = redirect(RedirectionType.APPEND, target, python_node("-c", "print('second')"))
    try:
        status = execute(tree, 0)
    finally:
        reset_redirections(tree.original_stdin, tree.original_stdout)
    assert status == 0
    assert target.read_text() == "first\nsecond\n"


def test_execute_redirection_with_missing_input(tmp_path, capfd):
    missing = tmp_path / "absent"
    tree = redirect(RedirectionType.INPUT, missing, echo_node("x"))
    assert execute(tree, 0) == 1
    assert str(missing) in capfd.readouterr().err


def test_execute_input_redirection_feeds_command(tmp_path):
    source = tmp_path / "in.txt"
    source.write_text("content\n")
    out = tmp_path / "copy.txt"
    tree = redirect(RedirectionType.INPUT, source, python_node("-c", COPY_STDIN, str(out)))
    try:
        status = execute(tree, 0)
    finally:
        reset_redirections(tree.original_stdin, tree.original_stdout)
    assert status == 0
    assert out.read_text() == "content\n"


def test_pipes_carries_builtin_output(tmp_path):
    out = tmp_path / "piped.txt"
    tree = Node(
        type=NodeType.PIPE,
        left=echo_node("through", "pipe"),
        right=python_node("-c", COPY_STDIN, str(out)),
    )
    assert pipes(tree, 0) == 0
    assert out.read_text() == "through pipe\n"


def test_execute_pipe_returns_right_status():
    tree = Node(
        type=NodeType.PIPE,
        left=echo_node("ignored"),
        right=python_node("-c", "import sys; sys.exit(5)"),
    )
    assert execute(tree, 0) == 5