"""Tests for variable scopes and load-time reference checks."""

from __future__ import annotations

from pathlib import Path

import pytest

from iacguard.rules import load_rule_files, loads_rules
from iacguard.rules.errors import DuplicateVariableError, RuleLoadError, UndefinedVariableError
from iacguard.rules.scope import VariableScope, build_scope
from iacguard.rules.selection import Selection


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_define_and_resolve() -> None:
    scope = VariableScope()
    scope.define("x", Selection.literal("a"))
    assert scope.resolve("x").values == ["a"]
    assert "x" in scope
    assert "y" not in scope


def test_redefinition_is_rejected() -> None:
    scope = VariableScope()
    scope.define("x", Selection.literal("a"))
    with pytest.raises(DuplicateVariableError):
        scope.define("x", Selection.literal("b"))
    assert scope.resolve("x").values == ["a"]


def test_child_scope_shadows_without_mutating_parent() -> None:
    parent = VariableScope()
    parent.define("x", Selection.literal("outer"))
    child = parent.child()
    child.define("x", Selection.literal("inner"))
    assert child.resolve("x").values == ["inner"]
    assert parent.resolve("x").values == ["outer"]
    assert list(child.names()) == ["x"]


def test_resolve_unknown_name() -> None:
    with pytest.raises(UndefinedVariableError, match="undefined variable %nope"):
        VariableScope().resolve("nope")


def test_build_scope_binds_lets_in_file_order() -> None:
    rule_file = loads_rules(
        """
        let resources = Resources.*
        let types = %resources.Type
        let allowed = ['A']
        """
    )
    doc = {"Resources": {"one": {"Type": "A"}, "two": {"Type": "B"}}}
    scope = build_scope(rule_file, doc)
    assert scope.resolve("types").values == ["A", "B"]
    assert scope.resolve("allowed").values == ["A"]


def test_rule_may_use_let_declared_after_it() -> None:
    rule_file = loads_rules(
        """
        rule r when %later !empty { %later.Type exists }
        let later = Resources.*
        """
    )
    assert [r.name for r in rule_file.rules] == ["r"]
    assert rule_file.errors == ()


def test_let_using_later_let_is_dropped_with_dependents() -> None:
    rule_file = loads_rules(
        """
        let early = %late.Type
        let late = Resources.*
        rule uses_early { %early exists }
        rule uses_late { %late exists }
        """
    )
    assert [let.name for let in rule_file.lets] == ["late"]
    assert [r.name for r in rule_file.rules] == ["uses_late"]
    assert len(rule_file.errors) == 1
    err = rule_file.errors[0]
    assert err.rule == "uses_early"
    assert isinstance(err.cause, UndefinedVariableError)
    assert err.cause.name == "late"


def test_undefined_variable_excludes_only_that_rule() -> None:
    rule_file = loads_rules(
        """
        rule broken { %nowhere exists }
        rule fine { Resources exists }
        """
    )
    assert [r.name for r in rule_file.rules] == ["fine"]
    assert rule_file.errors[0].rule == "broken"
    assert "undefined variable %nowhere" in str(rule_file.errors[0])


def test_rule_local_let_must_precede_use() -> None:
    rule_file = loads_rules(
        """
        rule r {
            %local exists
            let local = Resources
        }
        """
    )
    assert rule_file.rules == ()
    assert rule_file.errors[0].rule == "r"


def test_rule_local_let_may_shadow_top_level() -> None:
    rule_file = loads_rules(
        """
        let x = Resources
        rule r {
            let x = Outputs
            %x exists
        }
        """
    )
    assert [r.name for r in rule_file.rules] == ["r"]


def test_duplicate_rule_local_let_excludes_rule() -> None:
    rule_file = loads_rules("rule r { let a = x let a = y %a exists }")
    assert rule_file.rules == ()
    assert isinstance(rule_file.errors[0].cause, DuplicateVariableError)


def test_duplicate_top_level_let_rejects_file() -> None:
    with pytest.raises(RuleLoadError, match="already defined"):
        loads_rules("let a = x\nlet a = y\n")


def test_duplicate_rule_names_reject_file() -> None:
    with pytest.raises(RuleLoadError, match="defined more than once"):
        loads_rules("rule r {}\nrule r {}\n")


def test_load_rule_files_isolates_broken_files(tmp_path: Path) -> None:
    good = _write(tmp_path / "good.guard", "rule ok { Resources exists }\n")
    bad = _write(tmp_path / "bad.guard", "rule broken {\n  Resources\n")
    missing = tmp_path / "missing.guard"

    loaded, errors = load_rule_files([bad, good, missing])

    assert [f.name for f in loaded] == ["good.guard"]
    assert len(errors) == 2
    assert errors[0].file == bad
    assert "bad.guard:3" in str(errors[0])
    assert errors[1].file == missing
