"""Recursive descent parser producing the rule AST in `schema`."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

from .errors import RuleSyntaxError
from .lexer import Token, tokenize
from .schema import (
    BodyItem,
    Clause,
    LetBinding,
    LiteralValue,
    PathSegment,
    Predicate,
    Query,
    Rule,
    RuleFile,
    VariableRef,
)

_SCALAR_WORDS: dict[str, Any] = {"true": True, "false": False, "null": None}


def _number(text: str) -> int | float:
    return float(text) if "." in text else int(text)


class _Parser:
    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.pos = 0

    # --- token helpers ----------------------------------------------------

    def peek(self, offset: int = 0) -> Token:
        idx = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.kind != "EOF":
            self.pos += 1
        return tok

    def error(self, message: str, tok: Token | None = None) -> RuleSyntaxError:
        tok = tok or self.peek()
        return RuleSyntaxError(message, line=tok.line, column=tok.column)

    def expect_op(self, text: str) -> Token:
        tok = self.peek()
        if not tok.is_op(text):
            raise self.error(f"expected {text!r}, found {_describe(tok)}")
        return self.advance()

    def expect_ident(self, what: str) -> Token:
        tok = self.peek()
        if tok.kind != "IDENT":
            raise self.error(f"expected {what}, found {_describe(tok)}")
        return self.advance()

    # --- grammar ----------------------------------------------------------

    def parse_file(self, path: Path | None) -> RuleFile:
        lets: list[LetBinding] = []
        rules: list[Rule] = []
        while self.peek().kind != "EOF":
            tok = self.peek()
            if tok.kind == "IDENT" and tok.value == "let":
                lets.append(self.parse_let())
            elif tok.kind == "IDENT" and tok.value == "rule":
                rules.append(self.parse_rule())
            elif tok.kind == "MESSAGE":
                raise self.error("message block must follow a clause")
            else:
                raise self.error(f"expected 'let' or 'rule', found {_describe(tok)}")
        return RuleFile(path=path, lets=tuple(lets), rules=tuple(rules))

    def parse_let(self) -> LetBinding:
        start = self.advance()
        name = self.expect_ident("variable name").value
        self.expect_op("=")
        tok = self.peek()
        value: Query | LiteralValue
        if tok.is_op("["):
            value = self.parse_list()
        elif tok.kind == "NUMBER" or (tok.kind == "IDENT" and tok.value in _SCALAR_WORDS):
            value = LiteralValue(self.parse_scalar())
        elif tok.kind == "STRING" and not (self.peek(1).is_op(".") or self.peek(1).is_op("[")):
            value = LiteralValue(self.parse_scalar())
        else:
            value = self.parse_query()
        return LetBinding(name=name, value=value, line=start.line)

    def parse_rule(self) -> Rule:
        start = self.advance()
        name = self.expect_ident("rule name").value

        when: list[Clause] = []
        if self.peek().kind == "IDENT" and self.peek().value == "when":
            self.advance()
            while not self.peek().is_op("{"):
                if self.peek().kind == "EOF":
                    raise self.error(f"expected '{{' to open rule {name}")
                when.append(self.parse_clause())
            if not when:
                raise self.error("'when' requires at least one clause")
        self.expect_op("{")

        body: list[BodyItem] = []
        while not self.peek().is_op("}"):
            tok = self.peek()
            if tok.kind == "EOF":
                raise self.error(f"unterminated rule {name}: expected '}}'")
            if tok.kind == "IDENT" and tok.value == "let":
                body.append(self.parse_let())
            elif tok.kind == "MESSAGE":
                self.advance()
                if not body or not isinstance(body[-1], Clause):
                    raise self.error("message block must follow a clause", tok)
                if body[-1].message is not None:
                    raise self.error("clause already has a message block", tok)
                body[-1] = dataclasses.replace(body[-1], message=tok.value)
            else:
                body.append(self.parse_clause())
        self.expect_op("}")
        return Rule(name=name, when=tuple(when), body=tuple(body), line=start.line)

    def parse_clause(self) -> Clause:
        start = self.peek()
        query = self.parse_query()
        predicate = self.parse_predicate()
        return Clause(query=query, predicate=predicate, line=start.line)

    def parse_query(self) -> Query:
        start = self.peek()
        variable: str | None = None
        segments: list[PathSegment] = []

        if start.is_op("%"):
            self.advance()
            variable = self.expect_ident("variable name").value
        elif start.is_op("["):
            segments.append(self.parse_bracket())
        else:
            segments.append(self.parse_segment())

        while True:
            tok = self.peek()
            if tok.is_op("."):
                self.advance()
                segments.append(self.parse_segment())
            elif tok.is_op("["):
                segments.append(self.parse_bracket())
            else:
                break
        return Query(segments=tuple(segments), variable=variable, line=start.line)

    def parse_segment(self) -> PathSegment:
        tok = self.peek()
        if tok.is_op("*"):
            self.advance()
            return PathSegment(kind="wildcard")
        if tok.kind in ("IDENT", "STRING"):
            self.advance()
            return PathSegment(kind="key", key=tok.value)
        if tok.kind == "NUMBER" and "." not in tok.value:
            self.advance()
            return PathSegment(kind="index", index=int(tok.value))
        raise self.error(f"expected path segment, found {_describe(tok)}")

    def parse_bracket(self) -> PathSegment:
        self.expect_op("[")
        tok = self.peek()
        if tok.is_op("*") and self.peek(1).is_op("]"):
            self.advance()
            self.advance()
            return PathSegment(kind="wildcard")
        if tok.kind == "NUMBER" and self.peek(1).is_op("]"):
            if "." in tok.value:
                raise self.error("index must be an integer", tok)
            self.advance()
            self.advance()
            return PathSegment(kind="index", index=int(tok.value))

        clauses: list[Clause] = []
        while not self.peek().is_op("]"):
            if self.peek().kind == "EOF":
                raise self.error("unterminated filter: expected ']'")
            clauses.append(self.parse_clause())
        if not clauses:
            raise self.error("empty filter '[]'")
        self.expect_op("]")
        return PathSegment(kind="filter", clauses=tuple(clauses))

    def parse_predicate(self) -> Predicate:
        tok = self.peek()

        if tok.is_op("!") or tok.is_keyword("not"):
            self.advance()
            word = self.peek()
            if word.is_keyword("exists"):
                self.advance()
                return Predicate(op="not_exists")
            if word.is_keyword("empty"):
                self.advance()
                return Predicate(op="not_empty")
            if word.is_keyword("in"):
                self.advance()
                return Predicate(op="not_in", operand=self.parse_set_operand())
            raise self.error(f"unknown predicate {tok.value}{word.value}", word)

        if tok.is_keyword("exists"):
            self.advance()
            return Predicate(op="exists")
        if tok.is_keyword("empty"):
            self.advance()
            return Predicate(op="empty")
        if tok.is_keyword("in"):
            self.advance()
            return Predicate(op="in", operand=self.parse_set_operand())
        if tok.is_op("==") or tok.is_op("!="):
            self.advance()
            op = "eq" if tok.value == "==" else "ne"
            return Predicate(op=op, operand=LiteralValue(self.parse_scalar()))

        if tok.kind == "EOF":
            raise self.error("expected predicate, found end of input")
        raise self.error(f"unknown predicate {tok.value!r}")

    def parse_set_operand(self) -> LiteralValue | VariableRef:
        tok = self.peek()
        if tok.is_op("%"):
            self.advance()
            name = self.expect_ident("variable name").value
            return VariableRef(name=name, line=tok.line)
        if tok.is_op("["):
            return self.parse_list()
        raise self.error(f"expected list literal or variable, found {_describe(tok)}")

    def parse_list(self) -> LiteralValue:
        self.expect_op("[")
        items: list[Any] = []
        while not self.peek().is_op("]"):
            items.append(self.parse_scalar())
            if self.peek().is_op(","):
                self.advance()
            elif not self.peek().is_op("]"):
                raise self.error(f"expected ',' or ']', found {_describe(self.peek())}")
        self.expect_op("]")
        return LiteralValue(tuple(items))

    def parse_scalar(self) -> Any:
        tok = self.peek()
        if tok.kind == "STRING":
            self.advance()
            return tok.value
        if tok.kind == "NUMBER":
            self.advance()
            return _number(tok.value)
        if tok.kind == "IDENT" and tok.value in _SCALAR_WORDS:
            self.advance()
            return _SCALAR_WORDS[tok.value]
        raise self.error(f"expected literal value, found {_describe(tok)}")


def _describe(tok: Token) -> str:
    if tok.kind == "EOF":
        return "end of input"
    if tok.kind == "MESSAGE":
        return "message block"
    return repr(tok.value)


def parse_rules(source: str, path: Path | str | None = None) -> RuleFile:
    """Parse rule text into a `RuleFile`.

    Args:
        source: Rule file contents
        path: Optional originating file, used in error locations

    Raises:
        RuleSyntaxError: with file, line and column of the offending token
    """
    file_path = Path(path) if path is not None else None
    try:
        return _Parser(tokenize(source)).parse_file(file_path)
    except RuleSyntaxError as e:
        if file_path is not None and e.file is None:
            raise e.with_file(file_path) from None
        raise
