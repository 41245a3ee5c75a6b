# minishell

The parts of a small POSIX-style shell, as a Python library. It splits a
command line into tokens, builds command and redirection nodes, reads
heredocs into temporary files, runs the builtins itself and starts other
programs as child processes, with pipes and file redirections.

## What it understands

- Words with single and double quotes. Outside single quotes, `$NAME` is
  replaced by its value (nothing if unset) and `$?` by the exit status given
  to the tokenizer. A `$` not followed by a name stays a `$`. Words that come
  out empty are dropped.
- The operators `|`, `<`, `>`, `>>` and `<<`.
- Heredocs: lines are read until the delimiter or end of input, `$NAME` and
  `$?` are expanded in each line, and the body is written to a file under
  `/tmp/minishell_heredoc_<n>`.
- Builtins: `echo` (a first argument that is a prefix of `-n` drops the
  newline), `cd`, `pwd`, `export`, `unset`, `env` and `exit`.
- Commands without a leading `/`, `./` or `../` are looked up in the
  directories of `PATH`; those with one are used as they are.

The environment is a plain list of `NAME=value` strings. `export` and
`unset` change that list, and `export` without arguments sorts it and prints
each entry as `declare -x NAME=value`. `cd` changes the process's working
directory.

## Modules

| Module | Contents |
| --- | --- |
| `minishell.nodes` | `TokenType`, `Token`, `NodeType`, `BuiltinType`, `RedirectionType`, `Node`, `builtin_check` |
| `minishell.environment` | `get_env_value`, `sort_envp` |
| `minishell.tokenizer` | `tokenize`, `tokenize_operator`, `tokenize_word` |
| `minishell.parser` | `resolve_command`, `collect_arguments`, `parse_command`, `parse_redirection` |
| `minishell.heredoc` | `create_heredoc_tempfile`, `expand_vars_in_line`, `collect_heredoc`, `process_all_heredocs`, `cleanup_heredoc_files`, `HeredocInterrupted` |
| `minishell.builtins` | `echo`, `cd`, `pwd`, `env`, `export`, `unset`, `exit_builtin`, `run_builtin`, `parse_long`, `is_numeric`, `is_valid_identifier`, `ShellExit` |
| `minishell.executor` | `execute`, `pipes`, `run_external`, `check_all_files`, `apply_redirections`, `reset_redirections`, `get_command_node`, `find_last_redirection`, `has_input_redirection`, `has_output_redirection` |

## Example

```python
import os
import sys

from minishell.builtins import echo
from minishell.environment import get_env_value
from minishell.executor import execute, reset_redirections
from minishell.heredoc import cleanup_heredoc_files, process_all_heredocs
from minishell.parser import parse_command, parse_redirection
from minishell.tokenizer import tokenize

envp = [f"{key}={value}" for key, value in os.environ.items()]

print(get_env_value("HOME", envp))
echo(["echo", "-n", "no", "newline"], sys.stdout)

tokens = tokenize('echo "hello $USER" > greeting.txt', 0, envp)
tree = parse_redirection(tokens, parse_command(tokens, envp), envp)
process_all_heredocs(tree, 0, envp)
status = execute(tree, 0)
reset_redirections(tree.original_stdin, tree.original_stdout)
cleanup_heredoc_files(tree)
```

Notes on the pieces:

- `parse_command` builds one builtin or execution node from the tokens of a
  single command; `parse_redirection` wraps it in one redirection node per
  redirection and raises `ValueError` when a redirection has no word after it.
- `process_all_heredocs` reads lines with the `read_line` callable it is
  given (by default `input("> ")`). An interrupt raises
  `HeredocInterrupted` with status 130; a temporary file that cannot be
  opened raises it with status 1.
- `execute` leaves redirections applied; restore them with
  `reset_redirections(node.original_stdin, node.original_stdout)`. Output
  files are created before the command runs; if any redirected file cannot
  be opened, the command is not run and the status is 1.
- A builtin under a redirection, and each side of a pipe, runs in a forked
  child process. A bare builtin runs in the current process, so `exit`
  raises `ShellExit` carrying the status to end with.
- `pipes` runs a `NodeType.PIPE` node's left child into its right child and
  returns the right side's status.

## What it does not do

- There is no interactive prompt, read loop or command to start: the package
  is a library, and the caller reads lines and drives the steps above.
- There is no function that turns a whole line containing `|` into a tree.
  `parse_command` and `parse_redirection` stop at the first pipe token; a
  `NodeType.PIPE` node for `pipes` or `execute` has to be put together by
  the caller.
- `TokenType.AND`, `OR`, `OPEN_PAREN`, `CLOSE_PAREN` and `EOF` exist, but
  the tokenizer never produces them; `&&`, `||` and parentheses are not
  supported.
- Signal handling for a running prompt is not provided.

## Requirements

Python 3.10 or later on a POSIX system (the executor uses `fork`, `pipe` and
`dup2`). No third-party packages are needed at run time.