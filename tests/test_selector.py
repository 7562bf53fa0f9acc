"""Tests for path selection over documents."""

from __future__ import annotations

import pytest

from iacguard.rules.errors import UndefinedVariableError
from iacguard.rules.parser import parse_rules
from iacguard.rules.schema import Query
from iacguard.rules.scope import VariableScope
from iacguard.rules.selection import Selection, render_path
from iacguard.rules.selector import select


def _query(text: str) -> Query:
    value = parse_rules(f"let q = {text}").lets[0].value
    assert isinstance(value, Query)
    return value


@pytest.fixture
def template(make_bucket) -> dict:
    return {
        "Resources": {
            "BucketA": make_bucket("AES256"),
            "Queue": {"Type": "AWS::SQS::Queue", "Properties": {"QueueName": "q"}},
            "BucketB": make_bucket(encrypted=False),
        },
        "Tags": [{"Key": "team", "Value": "infra"}, {"Key": "env", "Value": "prod"}],
    }


def test_literal_keys_select_one_value(template: dict) -> None:
    selection = select(template, _query("Resources.Queue.Properties.QueueName"))
    assert selection.values == ["q"]
    assert selection.locations == ["/Resources/Queue/Properties/QueueName"]


def test_missing_key_is_empty_not_error(template: dict) -> None:
    assert len(select(template, _query("Resources.Missing.Properties"))) == 0
    assert not select(template, _query("Outputs.Anything"))


def test_indexing_into_scalar_terminates_branch(template: dict) -> None:
    assert not select(template, _query("Resources.Queue.Type.Nested"))
    assert not select(template, _query("Resources.Queue.Type[0]"))


def test_wildcard_over_mapping_keeps_insertion_order(template: dict) -> None:
    selection = select(template, _query("Resources.*.Type"))
    assert selection.values == ["AWS::S3::Bucket", "AWS::SQS::Queue", "AWS::S3::Bucket"]
    assert selection.locations[0] == "/Resources/BucketA/Type"


def test_wildcard_over_sequence(template: dict) -> None:
    selection = select(template, _query("Tags[*].Key"))
    assert selection.values == ["team", "env"]
    assert selection.locations == ["/Tags/0/Key", "/Tags/1/Key"]


def test_index_segments(template: dict) -> None:
    assert select(template, _query("Tags[1].Value")).values == ["prod"]
    assert select(template, _query("Tags[-1].Key")).values == ["env"]
    assert not select(template, _query("Tags[5].Key"))


def test_filtered_wildcard_selects_only_matching_resources(template: dict) -> None:
    selection = select(template, _query("Resources.*[ Type == 'AWS::S3::Bucket' ]"))
    assert selection.locations == ["/Resources/BucketA", "/Resources/BucketB"]


def test_filter_on_sequence_applies_to_elements(template: dict) -> None:
    selection = select(template, _query("Tags[ Key == 'env' ].Value"))
    assert selection.values == ["prod"]
    assert selection.locations == ["/Tags/1/Value"]


def test_multiple_wildcards_multiply_branches() -> None:
    doc = {"a": {"x": [1, 2], "y": [3]}, "b": {"z": [4, 5]}}
    selection = select(doc, _query("*.*[*]"))
    assert selection.values == [1, 2, 3, 4, 5]


def test_select_is_idempotent(template: dict) -> None:
    query = _query("Resources.*[ Type == 'AWS::S3::Bucket' ].Properties.BucketEncryption")
    first = select(template, query)
    second = select(template, query)
    assert first == second
    assert first.locations == ["/Resources/BucketA/Properties/BucketEncryption"]


def test_variable_rooted_query_resolves_from_scope(template: dict) -> None:
    scope = VariableScope()
    scope.define("buckets", select(template, _query("Resources.*[ Type == 'AWS::S3::Bucket' ]")))
    selection = select(template, _query("%buckets.Properties.BucketName"), scope)
    assert selection.locations == [
        "/Resources/BucketA/Properties/BucketName",
        "/Resources/BucketB/Properties/BucketName",
    ]


def test_variable_without_scope_raises(template: dict) -> None:
    with pytest.raises(UndefinedVariableError):
        select(template, _query("%missing.Properties"))


def test_filter_can_reference_variable(template: dict) -> None:
    scope = VariableScope()
    scope.define("wanted", Selection.literal(("AWS::SQS::Queue",)))
    selection = select(template, _query("Resources.*[ Type in %wanted ]"), scope)
    assert selection.locations == ["/Resources/Queue"]


def test_render_path_escapes_pointer_characters() -> None:
    assert render_path(()) == "/"
    assert render_path(("a/b", "c~d", 0)) == "/a~1b/c~0d/0"


def test_filter_drops_candidates_without_the_compared_key() -> None:
    doc = {
        "Resources": {
            "Untyped": {"Properties": {"QueueName": "q"}},
            "Note": "not a resource",
            "Bucket": {"Type": "AWS::S3::Bucket"},
        }
    }
    selection = select(doc, _query("Resources.*[ Type == 'AWS::S3::Bucket' ]"))
    assert selection.locations == ["/Resources/Bucket"]
    assert not select(doc, _query("Resources.*[ Type != 'AWS::S3::Bucket' ]"))
    selection = select(doc, _query("Resources.*[ Type in ['AWS::S3::Bucket', 'AWS::SQS::Queue'] ]"))
    assert selection.locations == ["/Resources/Bucket"]


def test_filter_existence_clauses_still_see_empty_selections() -> None:
    doc = {"Resources": {"Untyped": {}, "Typed": {"Type": "A"}}}
    selection = select(doc, _query("Resources.*[ Type !exists ]"))
    assert selection.locations == ["/Resources/Untyped"]
