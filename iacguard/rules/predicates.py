"""Predicate evaluation over selections.

Existence predicates look at cardinality. Comparison predicates hold when
every selected value satisfies them; non-scalar values never satisfy a
comparison, and scalars of different types are never equal.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable

from .errors import GuardError
from .schema import LiteralValue, Predicate, VariableRef
from .selection import SelectedValue, Selection, is_scalar

if TYPE_CHECKING:
    from .scope import VariableScope


PredicateFn = Callable[[Selection, Predicate, "VariableScope | None"], bool]

COMPARISON_OPS: frozenset[str] = frozenset({"eq", "ne", "in", "not_in"})


def scalars_equal(left: Any, right: Any) -> bool:
    if not (is_scalar(left) and is_scalar(right)):
        return False
    # bool is an int subclass in Python; keep them apart.
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return left == right
    return type(left) is type(right) and left == right


def operand_values(predicate: Predicate, scope: "VariableScope | None") -> list[Any]:
    operand = predicate.operand
    if isinstance(operand, LiteralValue):
        return list(operand.value) if operand.is_list else [operand.value]
    if isinstance(operand, VariableRef):
        if scope is None:
            raise GuardError(f"no scope to resolve %{operand.name}")
        return scope.resolve(operand.name).values
    return []


def _is_member(value: Any, members: list[Any]) -> bool:
    return any(scalars_equal(value, m) for m in members)


_VALUE_CHECKS: dict[str, Callable[[Any, list[Any]], bool]] = {
    "eq": lambda v, operands: bool(operands) and scalars_equal(v, operands[0]),
    "ne": lambda v, operands: bool(operands) and not scalars_equal(v, operands[0]),
    "in": _is_member,
    "not_in": lambda v, members: not _is_member(v, members),
}


def offending(predicate: Predicate, selection: Selection, scope: "VariableScope | None" = None) -> SelectedValue | None:
    """First selected value that breaks a comparison predicate, if any."""
    check = _VALUE_CHECKS.get(predicate.op)
    if check is None:
        return None
    operands = operand_values(predicate, scope)
    for item in selection:
        if not is_scalar(item.value) or not check(item.value, operands):
            return item
    return None


def predicate_exists(selection: Selection, predicate: Predicate, scope: "VariableScope | None") -> bool:
    return len(selection) > 0


def predicate_not_exists(selection: Selection, predicate: Predicate, scope: "VariableScope | None") -> bool:
    return len(selection) == 0


def predicate_compare(selection: Selection, predicate: Predicate, scope: "VariableScope | None") -> bool:
    return offending(predicate, selection, scope) is None


PREDICATES: dict[str, PredicateFn] = {
    "exists": predicate_exists,
    "not_exists": predicate_not_exists,
    "empty": predicate_not_exists,
    "not_empty": predicate_exists,
    "eq": predicate_compare,
    "ne": predicate_compare,
    "in": predicate_compare,
    "not_in": predicate_compare,
}


def evaluate(predicate: Predicate, selection: Selection, scope: "VariableScope | None" = None) -> bool:
    """Evaluate one predicate against a whole selection."""
    fn = PREDICATES.get(predicate.op)
    if fn is None:
        raise GuardError(f"unsupported predicate {predicate.op!r}")
    return fn(selection, predicate, scope)
