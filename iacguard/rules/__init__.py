"""Rule language engine (rules as text, predicates as code)."""

from .engine import EvaluationReport, evaluate, evaluate_many, evaluate_rule
from .errors import GuardError, RuleLoadError, RuleSyntaxError
from .load import load_rule_files, load_rules, loads_rules
from .report import Status, SummaryType, Violation, ViolationReporter
from .selector import select

__all__ = [
    "EvaluationReport",
    "GuardError",
    "RuleLoadError",
    "RuleSyntaxError",
    "Status",
    "SummaryType",
    "Violation",
    "ViolationReporter",
    "evaluate",
    "evaluate_many",
    "evaluate_rule",
    "load_rule_files",
    "load_rules",
    "loads_rules",
    "select",
]
