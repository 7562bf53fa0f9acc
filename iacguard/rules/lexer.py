"""Tokenizer for the rule language."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from .errors import RuleSyntaxError

TokenKind = Literal["IDENT", "STRING", "NUMBER", "OP", "MESSAGE", "EOF"]

_TOKEN_PATTERNS = [
    ("WS", r"[ \t\r\f]+"),
    ("NEWLINE", r"\n"),
    ("COMMENT", r"#[^\n]*"),
    ("MESSAGE", r"<<.*?>>"),
    ("STRING", r"'(?:[^'\\\n]|\\.)*'|\"(?:[^\"\\\n]|\\.)*\""),
    ("NUMBER", r"-?\d+(?:\.\d+)?(?![A-Za-z_])"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_\-]*"),
    ("OP", r"==|!=|[!.\[\]{}%=,*]"),
]

TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_PATTERNS), re.DOTALL)

_ESCAPE_RE = re.compile(r"\\(.)")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    line: int
    column: int

    def is_op(self, text: str) -> bool:
        return self.kind == "OP" and self.value == text

    def is_keyword(self, word: str) -> bool:
        return self.kind == "IDENT" and self.value.lower() == word


def _unquote(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text[1:-1])


def _clean_message(text: str) -> str:
    """Strip the << >> markers and per-line indentation."""
    lines = [line.strip() for line in text[2:-2].splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


def tokenize(source: str) -> list[Token]:
    """Split rule text into tokens, ending with an EOF token.

    Raises:
        RuleSyntaxError: on unterminated strings or message blocks and
            characters that start no token.
    """
    tokens: list[Token] = []
    pos = 0
    line = 1
    line_start = 0

    while pos < len(source):
        column = pos - line_start + 1
        match = TOKEN_RE.match(source, pos)
        if match is None:
            rest = source[pos:]
            if rest.startswith("<<"):
                raise RuleSyntaxError("unterminated message block", line=line, column=column)
            if rest[:1] in ("'", '"'):
                raise RuleSyntaxError("unterminated string literal", line=line, column=column)
            raise RuleSyntaxError(f"unexpected character {rest[0]!r}", line=line, column=column)

        kind = match.lastgroup
        text = match.group()
        if kind == "STRING":
            tokens.append(Token("STRING", _unquote(text), line, column))
        elif kind == "MESSAGE":
            tokens.append(Token("MESSAGE", _clean_message(text), line, column))
        elif kind in ("NUMBER", "IDENT", "OP"):
            tokens.append(Token(kind, text, line, column))  # type: ignore[arg-type]

        newlines = text.count("\n")
        if newlines:
            line += newlines
            line_start = pos + text.rindex("\n") + 1
        pos = match.end()

    tokens.append(Token("EOF", "", line, pos - line_start + 1))
    return tokens
