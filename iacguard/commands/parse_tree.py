"""Print the parsed form of a rule file."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from ..rules import GuardError, load_rules
from ..rules.schema import Clause, LetBinding, RuleFile


def rule_file_to_dict(rule_file: RuleFile) -> dict[str, Any]:
    return {
        "path": str(rule_file.path) if rule_file.path else None,
        "lets": [dataclasses.asdict(let) for let in rule_file.lets],
        "rules": [dataclasses.asdict(rule) for rule in rule_file.rules],
        "errors": [str(e) for e in rule_file.errors],
    }


def _add_clause(tree: Tree, clause: Clause) -> None:
    node = tree.add(f"[green]{escape(clause.render())}[/]  [dim](line {clause.line})[/]")
    if clause.message:
        node.add(f"[yellow]<<[/] {escape(clause.message)} [yellow]>>[/]")


def _add_let(tree: Tree, let: LetBinding) -> None:
    tree.add(f"[cyan]let[/] {escape(let.name)} = {escape(let.value.render())}  [dim](line {let.line})[/]")


def run_parse_tree(path: Path, output_json: bool = False) -> int:
    """Print the AST of a rule file.

    Returns:
        Exit code (0 = parsed, 2 = syntax or load error)
    """
    console = Console()
    try:
        rule_file = load_rules(path)
    except GuardError as e:
        Console(stderr=True).print(f"ERROR: {escape(str(e))}", style="bold red")
        return 2

    if output_json:
        print(json.dumps(rule_file_to_dict(rule_file), indent=2, default=str))
        return 0

    tree = Tree(f"[bold]{escape(rule_file.name)}[/]")
    for let in rule_file.lets:
        _add_let(tree, let)
    for rule in rule_file.rules:
        branch = tree.add(f"[bold]rule[/] {escape(rule.name)}  [dim](line {rule.line})[/]")
        if rule.when:
            guard = branch.add("[magenta]when[/]")
            for clause in rule.when:
                _add_clause(guard, clause)
        for item in rule.body:
            if isinstance(item, LetBinding):
                _add_let(branch, item)
            else:
                _add_clause(branch, item)
    console.print(tree)
    for err in rule_file.errors:
        Console(stderr=True).print(f"ERROR: {escape(str(err))}", style="bold red")
    return 0
