"""Building blocks of a small POSIX-style shell: tokenizer, parser, heredocs, builtins and executor."""

__version__ = "0.1.0"