from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Iterable

from .errors import DuplicateVariableError, GuardError, RuleLoadError, RuleSyntaxError, UndefinedVariableError
from .parser import parse_rules
from .schema import LetBinding, Rule, RuleFile

logger = logging.getLogger(__name__)


def _check_duplicates(rule_file: RuleFile) -> None:
    seen: dict[str, int] = {}
    for let in rule_file.lets:
        if let.name in seen:
            raise DuplicateVariableError(let.name, line=let.line)
        seen[let.name] = let.line

    rule_lines: dict[str, int] = {}
    for rule in rule_file.rules:
        if rule.name in rule_lines:
            raise GuardError(f"rule {rule.name} is defined more than once (lines {rule_lines[rule.name]} and {rule.line})")
        rule_lines[rule.name] = rule.line


def _check_rule(rule: Rule, top_level: set[str]) -> None:
    """Raise if the rule uses a variable it cannot see."""
    for clause in rule.when:
        for ref in clause.variables():
            if ref.name not in top_level:
                raise UndefinedVariableError(ref.name, line=ref.line or clause.line)

    local: set[str] = set()
    for item in rule.body:
        for ref in item.variables():
            if ref.name not in local and ref.name not in top_level:
                raise UndefinedVariableError(ref.name, line=ref.line or item.line)
        if isinstance(item, LetBinding):
            if item.name in local:
                raise DuplicateVariableError(item.name, line=item.line)
            local.add(item.name)


def check_references(rule_file: RuleFile) -> RuleFile:
    """Drop lets and rules whose variable references cannot resolve.

    Top-level lets may only use lets declared above them. Rules may use any
    top-level let, plus rule-local lets declared earlier in the same rule.
    Each dropped rule is reported as a `RuleLoadError`; the rest of the file
    is kept.

    Raises:
        GuardError: for duplicate top-level lets or duplicate rule names.
    """
    _check_duplicates(rule_file)

    errors: list[RuleLoadError] = list(rule_file.errors)
    bound: set[str] = set()
    lets: list[LetBinding] = []
    broken: dict[str, Exception] = {}

    for let in rule_file.lets:
        bad = next((ref for ref in let.variables() if ref.name not in bound), None)
        if bad is None:
            bound.add(let.name)
            lets.append(let)
            continue
        cause = broken.get(bad.name) or UndefinedVariableError(bad.name, line=bad.line or let.line)
        broken[let.name] = cause
        logger.warning("%s: let %%%s dropped: %s", rule_file.name, let.name, cause)

    rules: list[Rule] = []
    for rule in rule_file.rules:
        try:
            _check_rule(rule, bound)
        except UndefinedVariableError as e:
            cause = broken.get(e.name, e)
            errors.append(RuleLoadError(rule_file.path, cause, rule=rule.name))
            logger.warning("%s: rule %s excluded: %s", rule_file.name, rule.name, cause)
            continue
        except DuplicateVariableError as e:
            errors.append(RuleLoadError(rule_file.path, e, rule=rule.name))
            logger.warning("%s: rule %s excluded: %s", rule_file.name, rule.name, e)
            continue
        rules.append(rule)

    return dataclasses.replace(rule_file, lets=tuple(lets), rules=tuple(rules), errors=tuple(errors))


def loads_rules(source: str, path: Path | str | None = None) -> RuleFile:
    """Parse and reference-check rule text."""
    rule_file = parse_rules(source, path)
    try:
        return check_references(rule_file)
    except GuardError as e:
        raise RuleLoadError(rule_file.path, e) from e


def load_rules(path: Path) -> RuleFile:
    """Load one rule file.

    Raises:
        RuleSyntaxError: malformed rule text
        RuleLoadError: unreadable file, duplicate definitions
    """
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise RuleLoadError(path, e) from e
    return loads_rules(source, path)


def load_rule_files(paths: Iterable[Path]) -> tuple[list[RuleFile], list[RuleLoadError]]:
    """Load several rule files; a broken file never stops the others."""
    loaded: list[RuleFile] = []
    errors: list[RuleLoadError] = []
    for path in paths:
        try:
            rule_file = load_rules(path)
        except RuleSyntaxError as e:
            logger.warning("%s", e)
            errors.append(RuleLoadError(path, e))
            continue
        except RuleLoadError as e:
            logger.warning("%s", e)
            errors.append(e)
            continue
        logger.debug("loaded %s: %d let(s), %d rule(s)", path, len(rule_file.lets), len(rule_file.rules))
        loaded.append(rule_file)
    return loaded, errors
