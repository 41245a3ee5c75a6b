"""Splitting of a command line into tokens, with quoting and expansion."""

from __future__ import annotations

from collections.abc import Sequence

from minishell.environment import get_env_value
from minishell.nodes import Token, TokenType

_WHITESPACE = " \t"
_OPERATOR_CHARS = "|<>"
_WORD_STOP = " \t|<>"


def _is_name_char(ch: str) -> bool:
    return ch == "_" or (ch.isascii() and ch.isalnum())


def _expand_variable(text: str, pos: int, envp: Sequence[str]) -> tuple[str, int]:
    """Expand ``$NAME`` starting at the ``$`` at ``pos``."""
    end = pos + 1
    while end < len(text) and _is_name_char(text[end]):
        end += 1
    name = text[pos + 1:end]
    if not name:
        return "$", end
    value = get_env_value(name, envp)
    return (value if value is not None else ""), end


def tokenize_operator(text: str, pos: int) -> tuple[Token | None, int]:
    """Read a pipe or redirection operator at ``pos``.

    Returns the token and the position after it, or ``(None, pos)``.
    """
    ch = text[pos:pos + 1]
    following = text[pos + 1:pos + 2]
    if ch == "|":
        return Token(TokenType.PIPE, "|"), pos + 1
    if ch == "<":
        if following == "<":
            return Token(TokenType.HEREDOC, "<<"), pos + 2
        return Token(TokenType.REDIRECT_IN, "<"), pos + 1
    if ch == ">":
        if following == ">":
            return Token(TokenType.APPEND, ">>"), pos + 2
        return Token(TokenType.REDIRECT_OUT, ">"), pos + 1
    return None, pos


def tokenize_word(
    text: str, pos: int, exit_status: int, envp: Sequence[str]
) -> tuple[Token | None, int]:
    """Read a word at ``pos``, removing quotes and expanding variables.

    Returns the token (None when the word is empty) and the position after it.
    """
    pieces: list[str] = []
    quote: str | None = None
    while pos < len(text):
        ch = text[pos]
        if quote is None and ch in _WORD_STOP:
            break
        if ch == "$" and text.startswith("?", pos + 1) and quote != "'":
            pieces.append(str(exit_status))
            pos += 2
        elif ch in "'\"" and quote is None:
            quote = ch
            pos += 1
        elif ch == quote:
            quote = None
            pos += 1
        elif ch == "$" and quote != "'":
            value, pos = _expand_variable(text, pos, envp)
            pieces.append(value)
        else:
            pieces.append(ch)
            pos += 1
    word = "".join(pieces)
    return (Token(TokenType.WORD, word) if word else None), pos


def tokenize(line: str, exit_status: int = 0, envp: Sequence[str] = ()) -> list[Token]:
    """Split ``line`` into tokens; empty words are dropped."""
    tokens: list[Token] = []
    pos = 0
    while pos < len(line):
        while pos < len(line) and line[pos] in _WHITESPACE:
            pos += 1
        if pos >= len(line):
            break
        if line[pos] in _OPERATOR_CHARS:
            token, pos = tokenize_operator(line, pos)
        else:
            token, pos = tokenize_word(line, pos, exit_status, envp)
        if token is not None and token.value:
            tokens.append(token)
    return tokens