"""Validate command implementation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..documents import DATA_SUFFIXES, load_document
from ..rules import EvaluationReport, evaluate_many, load_rule_files
from ..rules.errors import DocumentError, GuardError
from ..rules.report import Status, SummaryType, Violation, parse_summary_types, partition

RULE_SUFFIXES = (".guard", ".rules")

EXIT_OK = 0
EXIT_FAIL = 1
EXIT_ERROR = 2

_STATUS_STYLE = {
    Status.PASS: "bold green",
    Status.FAIL: "bold red",
    Status.GUARD_SKIPPED: "yellow",
}


def expand_paths(paths: Iterable[Path], suffixes: tuple[str, ...]) -> list[Path]:
    """Expand directories into their matching files (sorted), keep files as given."""
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*") if p.is_file() and p.suffix.lower() in suffixes))
        else:
            files.append(path)
    return files


def run_validate(
    rules: list[Path],
    data: list[Path],
    show_summary: list[str] | None = None,
    output_json: bool = False,
    jobs: int = 1,
) -> int:
    """Validate data documents against rule files.

    Args:
        rules: Rule files or directories of rule files
        data: Data files or directories of templates
        show_summary: Summary types to print (pass, fail, skip, all, none)
        output_json: Output results as JSON instead of human-readable
        jobs: Documents evaluated concurrently per rule file

    Returns:
        Exit code (0 = compliant, 1 = rule failures, 2 = load errors)
    """
    console = Console(stderr=True)

    try:
        summary_types = parse_summary_types(show_summary if show_summary is not None else ["fail"])
    except ValueError as e:
        console.print(escape(str(e)), style="bold red")
        return EXIT_ERROR

    rule_paths = expand_paths(rules, RULE_SUFFIXES)
    data_paths = expand_paths(data, DATA_SUFFIXES)

    errors: list[GuardError] = []
    rule_files, load_errors = load_rule_files(rule_paths)
    errors.extend(load_errors)

    documents: list[tuple[str, Any]] = []
    for path in data_paths:
        try:
            documents.append((str(path), load_document(path)))
        except DocumentError as e:
            errors.append(e)

    reports: list[EvaluationReport] = []
    for rule_file in rule_files:
        if not output_json:
            console.print(f"Evaluating {len(documents)} document(s) against {rule_file.name}...", style="dim")
        reports.extend(evaluate_many(rule_file, documents, max_workers=jobs))

    if output_json:
        _output_json(reports, errors)
    else:
        out = Console()
        _print_human_output(out, reports, summary_types)
        _print_errors(console, errors, reports)

    if errors or any(r.errors for r in reports):
        return EXIT_ERROR
    if any(r.overall is Status.FAIL for r in reports):
        return EXIT_FAIL
    return EXIT_OK


def _output_json(reports: list[EvaluationReport], errors: list[GuardError]) -> None:
    output = {
        "reports": [r.to_dict() for r in reports],
        "errors": [str(e) for e in errors],
        "summary": {
            "documents": len({r.data_file for r in reports}),
            "rule_files": len({r.rules_file for r in reports}),
            "failed": sum(1 for r in reports if r.overall is Status.FAIL),
            "violations": sum(len(r.violations) for r in reports),
        },
    }
    print(json.dumps(output, indent=2, default=str))


def _print_violation(console: Console, violation: Violation) -> None:
    console.print(f"  Rule: {escape(violation.rule_name)}", style="bold")
    location = violation.path
    if violation.line:
        location += f" (rule line {violation.line})"
    console.print(f"    Path: {escape(location)}")
    console.print(f"    Check: {escape(violation.clause)}", style="dim")
    console.print(f"    Violation: {escape(violation.description)}", style="red")
    if violation.fix:
        console.print(f"    Fix: {escape(violation.fix)}", style="yellow")
    if violation.value is not None:
        console.print(f"    Value: {escape(json.dumps(violation.value, default=str))}", style="dim")


def render_summary(console: Console, report: EvaluationReport, types: SummaryType) -> None:
    """Print ``<rules file>/<rule>  STATUS`` rows for the requested verdicts."""
    groups = partition(report.statuses, types)
    if not groups:
        return

    table = Table(title=f"Summary Report for {escape(report.data_file)}", show_header=False)
    table.add_column("Rule", style="cyan")
    table.add_column("Status", justify="right")
    for status, names in groups.items():
        for name in names:
            table.add_row(escape(f"{report.rules_file}/{name}"), f"[{_STATUS_STYLE[status]}]{status.value}[/]")
    console.print(table)


def _print_human_output(console: Console, reports: list[EvaluationReport], types: SummaryType) -> None:
    for report in reports:
        status = report.overall
        console.print()
        marker = "✗" if status is Status.FAIL else "✓"
        console.print(
            f"{marker} {escape(report.data_file)} against {escape(report.rules_file)}: {status.value}",
            style=_STATUS_STYLE[status],
        )
        for violation in report.violations:
            _print_violation(console, violation)
        render_summary(console, report, types)

    failed = sum(1 for r in reports if r.overall is Status.FAIL)
    violations = sum(len(r.violations) for r in reports)
    console.print()
    if failed:
        console.print(f"❌ {failed} failing evaluation(s), {violations} violation(s)", style="bold red")
    else:
        console.print("✅ No violations", style="bold green")


def _print_errors(console: Console, errors: list[GuardError], reports: list[EvaluationReport]) -> None:
    seen: set[str] = set()
    for err in [*errors, *(e for r in reports for e in r.errors)]:
        text = str(err)
        if text in seen:
            continue
        seen.add(text)
        console.print(f"ERROR: {escape(text)}", style="bold red")
