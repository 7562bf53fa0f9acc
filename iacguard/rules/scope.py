from __future__ import annotations

import logging
from typing import Any, Iterator

from .errors import DuplicateVariableError, UndefinedVariableError
from .schema import LetBinding, LiteralValue, RuleFile
from .selection import Selection
from .selector import select

logger = logging.getLogger(__name__)


class VariableScope:
    """Name -> Selection bindings.

    A binding is never replaced. Nested scopes (rule-local lets) may shadow
    a name from their parent, but not redefine one of their own.
    """

    def __init__(self, parent: "VariableScope | None" = None):
        self.parent = parent
        self._bindings: dict[str, Selection] = {}

    def define(self, name: str, selection: Selection, *, line: int = 0) -> None:
        if name in self._bindings:
            raise DuplicateVariableError(name, line=line)
        self._bindings[name] = selection

    def resolve(self, name: str) -> Selection:
        scope: VariableScope | None = self
        while scope is not None:
            if name in scope._bindings:
                return scope._bindings[name]
            scope = scope.parent
        raise UndefinedVariableError(name)

    def child(self) -> "VariableScope":
        return VariableScope(parent=self)

    def __contains__(self, name: object) -> bool:
        try:
            self.resolve(str(name))
        except UndefinedVariableError:
            return False
        return True

    def names(self) -> Iterator[str]:
        seen: set[str] = set()
        scope: VariableScope | None = self
        while scope is not None:
            for name in scope._bindings:
                if name not in seen:
                    seen.add(name)
                    yield name
            scope = scope.parent


def bind(let: LetBinding, document: Any, scope: VariableScope) -> Selection:
    """Evaluate a let binding's right-hand side."""
    if isinstance(let.value, LiteralValue):
        return Selection.literal(let.value.value)
    return select(document, let.value, scope)


def build_scope(rule_file: RuleFile, document: Any) -> VariableScope:
    """Evaluate the file's top-level lets, in file order, against one document."""
    scope = VariableScope()
    for let in rule_file.lets:
        selection = bind(let, document, scope)
        scope.define(let.name, selection, line=let.line)
        logger.debug("let %%%s bound to %d value(s)", let.name, len(selection))
    return scope
