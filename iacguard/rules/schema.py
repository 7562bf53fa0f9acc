from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Literal, Union

from .errors import RuleLoadError


SegmentKind = Literal["key", "wildcard", "index", "filter"]
PredicateOp = Literal["exists", "not_exists", "empty", "not_empty", "eq", "ne", "in", "not_in"]

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_\-]*\Z")

# Segment kinds that can fan one branch out into many.
MULTI_VALUED: frozenset[str] = frozenset({"wildcard", "filter"})

_OP_TEXT: dict[str, str] = {
    "exists": "exists",
    "not_exists": "!exists",
    "empty": "empty",
    "not_empty": "!empty",
    "eq": "==",
    "ne": "!=",
    "in": "in",
    "not_in": "not in",
}


def _render_scalar(value: Any) -> str:
    if isinstance(value, str):
        return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class LiteralValue:
    """A scalar literal, or a tuple of scalars for list literals."""

    value: Any

    @property
    def is_list(self) -> bool:
        return isinstance(self.value, tuple)

    def render(self) -> str:
        if self.is_list:
            return "[" + ", ".join(_render_scalar(v) for v in self.value) + "]"
        return _render_scalar(self.value)


@dataclass(frozen=True)
class VariableRef:
    name: str
    line: int = 0

    def render(self) -> str:
        return f"%{self.name}"


@dataclass(frozen=True)
class PathSegment:
    kind: SegmentKind
    key: str | None = None
    index: int | None = None
    clauses: tuple["Clause", ...] = ()

    def render(self) -> str:
        if self.kind == "key":
            key = self.key or ""
            if _IDENT_RE.match(key):
                return f".{key}"
            return "." + _render_scalar(key)
        if self.kind == "wildcard":
            return ".*"
        if self.kind == "index":
            return f"[{self.index}]"
        return "[ " + " ".join(c.render() for c in self.clauses) + " ]"


@dataclass(frozen=True)
class Query:
    """A path expression, optionally rooted at a variable."""

    segments: tuple[PathSegment, ...] = ()
    variable: str | None = None
    line: int = 0

    def render(self) -> str:
        text = f"%{self.variable}" if self.variable else ""
        for seg in self.segments:
            text += seg.render()
        return text.lstrip(".") or "."

    def anchor_index(self) -> int:
        """Index of the last multi-valued segment, or -1 if there is none."""
        for i in range(len(self.segments) - 1, -1, -1):
            if self.segments[i].kind in MULTI_VALUED:
                return i
        return -1

    def variables(self) -> Iterator[VariableRef]:
        if self.variable:
            yield VariableRef(self.variable, self.line)
        for seg in self.segments:
            for clause in seg.clauses:
                yield from clause.variables()


@dataclass(frozen=True)
class Predicate:
    op: PredicateOp
    operand: LiteralValue | VariableRef | None = None

    def render(self) -> str:
        text = _OP_TEXT[self.op]
        if self.operand is not None:
            text += " " + self.operand.render()
        return text


@dataclass(frozen=True)
class Clause:
    query: Query
    predicate: Predicate
    message: str | None = None
    line: int = 0

    def render(self) -> str:
        return f"{self.query.render()} {self.predicate.render()}"

    def variables(self) -> Iterator[VariableRef]:
        yield from self.query.variables()
        if isinstance(self.predicate.operand, VariableRef):
            yield self.predicate.operand


@dataclass(frozen=True)
class LetBinding:
    name: str
    value: Query | LiteralValue
    line: int = 0

    def variables(self) -> Iterator[VariableRef]:
        if isinstance(self.value, Query):
            yield from self.value.variables()


BodyItem = Union[Clause, LetBinding]


@dataclass(frozen=True)
class Rule:
    name: str
    when: tuple[Clause, ...] = ()
    body: tuple[BodyItem, ...] = ()
    line: int = 0

    @property
    def clauses(self) -> tuple[Clause, ...]:
        return tuple(item for item in self.body if isinstance(item, Clause))

    @property
    def default_message(self) -> str | None:
        """First message authored anywhere in the rule body."""
        for clause in self.clauses:
            if clause.message:
                return clause.message
        return None


@dataclass(frozen=True)
class RuleFile:
    path: Path | None
    lets: tuple[LetBinding, ...] = ()
    rules: tuple[Rule, ...] = ()
    errors: tuple[RuleLoadError, ...] = field(default=(), compare=False)

    @property
    def name(self) -> str:
        return self.path.name if self.path is not None else "<rules>"

    def rule(self, name: str) -> Rule | None:
        for r in self.rules:
            if r.name == name:
                return r
        return None
