from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Sequence

from .errors import GuardError
from .predicates import COMPARISON_OPS, offending
from .predicates import evaluate as evaluate_predicate
from .report import Status, Violation, ViolationReporter, overall_status
from .schema import Clause, LetBinding, Rule, RuleFile
from .scope import VariableScope, bind, build_scope
from .selection import DocPath, Selection, render_path
from .selector import select_from

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    """Outcome of one rule file evaluated against one document."""

    rules_file: str
    data_file: str
    statuses: dict[str, Status] = field(default_factory=dict)
    violations: list[Violation] = field(default_factory=list)
    errors: list[GuardError] = field(default_factory=list)

    @property
    def overall(self) -> Status:
        return overall_status(self.statuses.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules_file": self.rules_file,
            "data_file": self.data_file,
            "status": self.overall.value,
            "rules": {name: status.value for name, status in self.statuses.items()},
            "violations": [v.to_dict() for v in self.violations],
            "errors": [str(e) for e in self.errors],
        }


def _expected_path(base: DocPath, clause: Clause, start: int) -> DocPath:
    path = base
    for seg in clause.query.segments[start:]:
        path += (seg.key if seg.kind == "key" else seg.index,)  # type: ignore[operator]
    return path


def _check(
    clause: Clause,
    selection: Selection,
    scope: VariableScope,
    expected: str,
    *,
    required: bool = False,
) -> tuple[str, Any] | None:
    """None when the predicate holds, else (location, value) of the failure.

    With `required`, a comparison against an empty selection fails at the
    expected path instead of holding vacuously.
    """
    if required and not selection and clause.predicate.op in COMPARISON_OPS:
        return expected, None
    if evaluate_predicate(clause.predicate, selection, scope):
        return None
    bad = offending(clause.predicate, selection, scope)
    if bad is not None:
        return bad.location, bad.value
    if selection:
        # !exists / empty failed: point at what was found.
        first = selection.items[0]
        return first.location, first.value
    return expected, None


def check_clause(clause: Clause, document: Any, scope: VariableScope) -> tuple[str, Any] | None:
    """Evaluate one clause with universal quantification.

    The query is split at its last multi-valued point (variable root,
    wildcard or filter). Every branch reaching that point is checked on its
    own against the single-valued remainder; the first failing branch is
    reported. A branch whose remainder selects nothing fails a comparison.
    With nothing left after that point the predicate sees the whole
    selection, so ``%v !empty`` tests cardinality and an empty anchor set
    passes comparisons vacuously.
    """
    query = clause.query
    base = scope.resolve(query.variable) if query.variable else Selection.root(document)
    anchor = query.anchor_index()

    if anchor >= 0:
        anchors = select_from(base, query.segments[: anchor + 1], scope)
        start = anchor + 1
    elif query.variable:
        anchors = base
        start = 0
    else:
        selection = select_from(base, query.segments, scope)
        return _check(clause, selection, scope, render_path(_expected_path((), clause, 0)), required=True)

    if start == len(query.segments):
        return _check(clause, anchors, scope, query.render())

    rest = query.segments[start:]
    for item in anchors:
        selection = select_from(Selection((item,)), rest, scope)
        expected = render_path(_expected_path(item.path, clause, start))
        failure = _check(clause, selection, scope, expected, required=True)
        if failure is not None:
            return failure
    return None


def evaluate_rule(rule: Rule, document: Any, scope: VariableScope, reporter: ViolationReporter) -> Status:
    """Evaluate one rule: PENDING -> (GUARD_SKIPPED | EVALUATING) -> {PASS, FAIL}."""
    for clause in rule.when:
        if check_clause(clause, document, scope) is not None:
            logger.debug("rule %s: guard %r not met, skipped", rule.name, clause.render())
            return Status.GUARD_SKIPPED

    logger.debug("rule %s: evaluating %d clause(s)", rule.name, len(rule.clauses))
    local = scope.child()
    default_message = rule.default_message
    failed = False

    for item in rule.body:
        if isinstance(item, LetBinding):
            local.define(item.name, bind(item, document, local), line=item.line)
            continue

        failure = check_clause(item, document, local)
        if failure is None:
            continue
        failed = True
        path, value = failure
        reporter.record(
            rule.name,
            path,
            item.message or default_message,
            clause=item.render(),
            value=value,
            line=item.line,
        )

    status = Status.FAIL if failed else Status.PASS
    logger.debug("rule %s: %s", rule.name, status.value)
    return status


def evaluate(rule_file: RuleFile, document: Any, *, data_name: str = "<data>") -> EvaluationReport:
    """Evaluate every loaded rule of a file against one document.

    Each call builds its own scope and reporter, so concurrent evaluations of
    the same parsed rule file never share state. A rule that raises is
    recorded as an error and the remaining rules still run.
    """
    report = EvaluationReport(rules_file=rule_file.name, data_file=data_name)
    report.errors.extend(rule_file.errors)

    try:
        scope = build_scope(rule_file, document)
    except GuardError as e:
        logger.warning("%s: could not bind variables: %s", rule_file.name, e)
        for rule in rule_file.rules:
            logger.warning("%s: rule %s not evaluated", rule_file.name, rule.name)
        report.errors.append(e)
        return report

    reporter = ViolationReporter()
    for rule in rule_file.rules:
        rule_reporter = ViolationReporter()
        try:
            status = evaluate_rule(rule, document, scope, rule_reporter)
        except GuardError as e:
            logger.warning("%s: rule %s not evaluated: %s", rule_file.name, rule.name, e)
            report.errors.append(e)
            continue
        report.statuses[rule.name] = status
        reporter.extend(rule_reporter.drain())

    report.violations = reporter.drain()
    return report


def evaluate_many(
    rule_file: RuleFile,
    documents: Sequence[tuple[str, Any]],
    *,
    max_workers: int | None = None,
) -> list[EvaluationReport]:
    """Evaluate one rule file against many (name, document) pairs.

    Reports come back in input order. With ``max_workers`` of 1 or fewer
    documents the work stays on the calling thread.
    """
    if not documents:
        return []
    if max_workers == 1 or len(documents) == 1:
        return [evaluate(rule_file, doc, data_name=name) for name, doc in documents]

    workers = min(len(documents), max_workers or 8)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(evaluate, rule_file, doc, data_name=name) for name, doc in documents]
        return [future.result() for future in futures]
