"""Path selection over parsed documents.

Segments resolve left to right over a worklist of branches. A branch that
cannot continue (scalar, missing key, index out of range) is dropped; it is
never an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator

from . import predicates
from .errors import UndefinedVariableError
from .schema import Clause, PathSegment, Query
from .selection import SelectedValue, Selection, is_mapping, is_sequence

if TYPE_CHECKING:
    from .scope import VariableScope


StepFn = Callable[[SelectedValue, PathSegment, "VariableScope | None"], Iterator[SelectedValue]]


def _children(branch: SelectedValue) -> Iterator[SelectedValue]:
    value = branch.value
    if is_mapping(value):
        for key, child in value.items():
            yield SelectedValue(child, branch.path + (key,))
    elif is_sequence(value):
        for idx, child in enumerate(value):
            yield SelectedValue(child, branch.path + (idx,))


def _step_key(branch: SelectedValue, seg: PathSegment, scope: "VariableScope | None") -> Iterator[SelectedValue]:
    value = branch.value
    if is_mapping(value) and seg.key in value:
        yield SelectedValue(value[seg.key], branch.path + (seg.key,))


def _step_wildcard(branch: SelectedValue, seg: PathSegment, scope: "VariableScope | None") -> Iterator[SelectedValue]:
    yield from _children(branch)


def _step_index(branch: SelectedValue, seg: PathSegment, scope: "VariableScope | None") -> Iterator[SelectedValue]:
    value = branch.value
    if not is_sequence(value) or seg.index is None:
        return
    idx = seg.index
    if idx < 0:
        idx += len(value)
    if 0 <= idx < len(value):
        yield SelectedValue(value[idx], branch.path + (idx,))


def _step_filter(branch: SelectedValue, seg: PathSegment, scope: "VariableScope | None") -> Iterator[SelectedValue]:
    # A filter on a sequence applies to its elements.
    candidates: Iterable[SelectedValue] = _children(branch) if is_sequence(branch.value) else (branch,)
    for candidate in candidates:
        if all(clause_holds(clause, candidate, scope) for clause in seg.clauses):
            yield candidate


_STEPS: dict[str, StepFn] = {
    "key": _step_key,
    "wildcard": _step_wildcard,
    "index": _step_index,
    "filter": _step_filter,
}


def clause_holds(clause: Clause, candidate: SelectedValue, scope: "VariableScope | None") -> bool:
    """Evaluate a filter clause relative to one candidate value.

    A comparison needs something to compare: a candidate where the clause
    selects nothing does not match.
    """
    base = _base(clause.query, Selection((candidate,)), scope)
    selected = select_from(base, clause.query.segments, scope)
    if not selected and clause.predicate.op in predicates.COMPARISON_OPS:
        return False
    return predicates.evaluate(clause.predicate, selected, scope)


def select_from(selection: Selection, segments: Iterable[PathSegment], scope: "VariableScope | None" = None) -> Selection:
    """Continue resolving `segments` from every branch of an existing selection."""
    branches: list[SelectedValue] = list(selection)
    for seg in segments:
        step = _STEPS[seg.kind]
        branches = [child for branch in branches for child in step(branch, seg, scope)]
        if not branches:
            break
    return Selection(tuple(branches))


def _base(query: Query, default: Selection, scope: "VariableScope | None") -> Selection:
    if query.variable is None:
        return default
    if scope is None:
        raise UndefinedVariableError(query.variable, line=query.line)
    return scope.resolve(query.variable)


def select(document: Any, query: Query, scope: "VariableScope | None" = None) -> Selection:
    """Resolve a path expression against a document.

    Variable-rooted queries start from the variable's selection; all others
    start at the document root.
    """
    return select_from(_base(query, Selection.root(document), scope), query.segments, scope)
