"""Filter Matching: tests for condition evaluation, sorting, projection and $set."""

import pytest

from cmdb_core.core.filter_match import (
    apply_set, check_condition, matches, parse_sort, project, sort_documents,
)

HOST = {
    "bk_host_id": 1,
    "bk_host_innerip": "10.0.0.1",
    "tags": ["db", "prod"],
    "property": {"bind_ip": {"as_default_value": True, "value": "3"}},
    "enabled": True,
}


# ─── Equality ────────────────────────────────────────────────────

def test_empty_condition_matches_everything():
    assert matches(HOST, {})
    assert matches(HOST, None)


def test_plain_equality():
    assert matches(HOST, {"bk_host_id": 1})
    assert not matches(HOST, {"bk_host_id": 2})


def test_dotted_path_equality():
    assert matches(HOST, {"property.bind_ip.value": "3"})
    assert not matches(HOST, {"property.bind_ip.value": "4"})


def test_missing_field_equals_none():
    assert matches(HOST, {"absent": None})
    assert not matches(HOST, {"absent": "x"})


def test_equality_against_list_matches_any_element():
    assert matches(HOST, {"tags": "prod"})
    assert matches(HOST, {"tags": ["db", "prod"]})
    assert not matches(HOST, {"tags": "dev"})


def test_bool_never_equals_int():
    assert matches(HOST, {"enabled": True})
    assert not matches(HOST, {"enabled": 1})
    assert not matches({"n": 1}, {"n": True})


def test_nested_document_equality_is_exact():
    doc = {"metadata": {"label": {"bk_biz_id": "3"}}}
    assert matches(doc, {"metadata": {"label": {"bk_biz_id": "3"}}})
    assert not matches(doc, {"metadata": {"label": {}}})


# ─── Operators ───────────────────────────────────────────────────

def test_in_and_nin():
    assert matches(HOST, {"bk_host_id": {"$in": [1, 2]}})
    assert not matches(HOST, {"bk_host_id": {"$in": [2, 3]}})
    assert matches(HOST, {"bk_host_id": {"$nin": [2, 3]}})


def test_in_with_none_matches_missing_field():
    assert matches(HOST, {"bk_biz_id": {"$in": [None, 0]}})
    assert matches({"bk_biz_id": 0}, {"bk_biz_id": {"$in": [None, 0]}})
    assert not matches({"bk_biz_id": 5}, {"bk_biz_id": {"$in": [None, 0]}})


def test_ne_and_eq():
    assert matches(HOST, {"bk_host_id": {"$ne": 2}})
    assert matches(HOST, {"bk_host_id": {"$eq": 1}})


def test_comparisons():
    assert matches(HOST, {"bk_host_id": {"$gte": 1, "$lt": 5}})
    assert not matches(HOST, {"bk_host_id": {"$gt": 1}})
    assert not matches(HOST, {"bk_host_innerip": {"$gt": 3}})  # incomparable types


def test_exists():
    assert matches(HOST, {"tags": {"$exists": True}})
    assert matches(HOST, {"absent": {"$exists": False}})


def test_regex_with_options():
    assert matches(HOST, {"bk_host_innerip": {"$regex": "^10\\."}})
    assert matches({"name": "DB-1"}, {"name": {"$regex": "db", "$options": "i"}})
    assert not matches({"name": "DB-1"}, {"name": {"$regex": "db"}})


def test_logical_operators():
    assert matches(HOST, {"$or": [{"bk_host_id": 9}, {"tags": "db"}]})
    assert not matches(HOST, {"$and": [{"bk_host_id": 1}, {"tags": "dev"}]})
    assert matches(HOST, {"$nor": [{"bk_host_id": 9}]})


def test_unknown_operator_raises():
    with pytest.raises(ValueError):
        matches(HOST, {"bk_host_id": {"$near": 1}})
    with pytest.raises(ValueError):
        matches(HOST, {"$where": "1"})


def test_in_requires_array():
    with pytest.raises(ValueError):
        matches(HOST, {"bk_host_id": {"$in": 1}})


@pytest.mark.parametrize("condition", [
    {"bk_host_name": {"$regex": "("}},
    {"bk_host_name": {"$regex": 5}},
    {"bk_host_name": {"$regex": "h", "$options": 1}},
    {"$or": {"bk_host_name": "h1"}},
    {"$and": "bk_host_name"},
    {"$nor": [{"bk_host_name": "h1"}, "h2"]},
])
def test_malformed_operands_raise_value_error(condition):
    with pytest.raises(ValueError):
        matches({"bk_host_name": "h1"}, condition)
    with pytest.raises(ValueError):
        check_condition(condition)


def test_check_condition_reaches_clauses_matches_would_skip():
    condition = {"missing": 1, "name": {"$regex": "("}}
    assert not matches(HOST, condition)
    with pytest.raises(ValueError):
        check_condition(condition)
    with pytest.raises(ValueError):
        check_condition({"$or": [{"a": 1}, {"b": {"$near": 2}}]})


def test_check_condition_accepts_supported_operators():
    check_condition(None)
    check_condition({
        "bk_host_id": {"$gte": 1, "$lt": 9, "$ne": 4, "$in": [1, 2], "$exists": True},
        "name": {"$regex": "^db", "$options": "i"},
        "$or": [{"a": 1}, {"b": {"$nin": []}}],
        "property": {"bind_ip": {"value": "3"}},
    })


# ─── Sort / Projection / $set ────────────────────────────────────

def test_parse_sort():
    assert parse_sort("bk_host_id,-create_time") == [
        ("bk_host_id", False), ("create_time", True),
    ]
    assert parse_sort("") == []


def test_sort_documents_multi_key_and_missing_first():
    docs = [
        {"id": 1, "rack": "b", "slot": 2},
        {"id": 2, "rack": "a", "slot": 1},
        {"id": 3, "rack": "b", "slot": 9},
        {"id": 4},
    ]
    ordered = sort_documents(docs, "rack,-slot")
    assert [d["id"] for d in ordered] == [4, 2, 3, 1]


def test_sort_documents_mixed_types_does_not_raise():
    ordered = sort_documents([{"v": "x"}, {"v": 2}, {"v": None}], "v")
    assert [d["v"] for d in ordered] == [None, 2, "x"]


def test_project_keeps_listed_fields():
    assert project(HOST, ["bk_host_id", "missing"]) == {"bk_host_id": 1}
    assert project(HOST, []) == HOST


def test_apply_set_with_dotted_keys_does_not_mutate_original():
    doc = {"a": 1, "nested": {"x": 1}}
    updated = apply_set(doc, {"a": 2, "nested.y": 3, "fresh.leaf": "v"})
    assert updated == {"a": 2, "nested": {"x": 1, "y": 3}, "fresh": {"leaf": "v"}}
    assert doc == {"a": 1, "nested": {"x": 1}}
