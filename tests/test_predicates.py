"""Tests for predicate evaluation."""

from __future__ import annotations

import pytest

from iacguard.rules.predicates import evaluate, offending, scalars_equal
from iacguard.rules.schema import LiteralValue, Predicate, VariableRef
from iacguard.rules.scope import VariableScope
from iacguard.rules.selection import SelectedValue, Selection

ALLOWED = Predicate(op="in", operand=LiteralValue(("aws:kms", "AES256")))


def _sel(*values) -> Selection:
    return Selection(tuple(SelectedValue(v, ("v", i)) for i, v in enumerate(values)))


@pytest.mark.parametrize(
    "op,values,expected",
    [
        ("exists", (), False),
        ("exists", ("a",), True),
        ("not_exists", (), True),
        ("not_exists", (None,), False),
        ("empty", (), True),
        ("empty", (1, 2), False),
        ("not_empty", (), False),
        ("not_empty", (1,), True),
    ],
)
def test_cardinality_predicates(op: str, values: tuple, expected: bool) -> None:
    assert evaluate(Predicate(op=op), _sel(*values)) is expected


def test_membership_is_case_sensitive() -> None:
    assert evaluate(ALLOWED, _sel("aws:kms")) is True
    assert evaluate(ALLOWED, _sel("AES256")) is True
    assert evaluate(ALLOWED, _sel("AWS:KMS")) is False


def test_membership_requires_every_value() -> None:
    selection = _sel("aws:kms", "none", "AES256")
    assert evaluate(ALLOWED, selection) is False
    bad = offending(ALLOWED, selection)
    assert bad is not None
    assert bad.value == "none"
    assert bad.path == ("v", 1)


def test_not_in() -> None:
    predicate = Predicate(op="not_in", operand=LiteralValue(("aws:kms",)))
    assert evaluate(predicate, _sel("AES256")) is True
    assert evaluate(predicate, _sel("AES256", "aws:kms")) is False


def test_comparison_on_empty_selection_holds() -> None:
    assert evaluate(ALLOWED, _sel()) is True
    assert evaluate(Predicate(op="eq", operand=LiteralValue("a")), _sel()) is True


@pytest.mark.parametrize(
    "op,literal,value,expected",
    [
        ("eq", "AES256", "AES256", True),
        ("eq", "AES256", "aes256", False),
        ("eq", 1, 1.0, True),
        ("eq", 1, True, False),
        ("eq", True, True, True),
        ("eq", "1", 1, False),
        ("eq", None, None, True),
        ("ne", "a", "b", True),
        ("ne", "1", 1, True),
        ("ne", "a", "a", False),
    ],
)
def test_equality(op: str, literal, value, expected: bool) -> None:
    assert evaluate(Predicate(op=op, operand=LiteralValue(literal)), _sel(value)) is expected


@pytest.mark.parametrize("op", ["eq", "ne", "in", "not_in"])
def test_non_scalar_values_make_comparisons_false(op: str) -> None:
    operand = LiteralValue(("a",)) if op in ("in", "not_in") else LiteralValue("a")
    predicate = Predicate(op=op, operand=operand)
    assert evaluate(predicate, _sel(["a"])) is False
    assert evaluate(predicate, _sel({"a": 1})) is False


def test_membership_against_variable() -> None:
    scope = VariableScope()
    scope.define("allowed", Selection.literal(("aws:kms", "AES256")))
    predicate = Predicate(op="in", operand=VariableRef("allowed"))
    assert evaluate(predicate, _sel("AES256"), scope) is True
    assert evaluate(predicate, _sel("DES"), scope) is False


def test_scalars_equal_rejects_containers() -> None:
    assert scalars_equal([1], [1]) is False
    assert scalars_equal("x", "x") is True
