from __future__ import annotations

from fluent_http.options import MERGEABLE_OPTIONS, merge_options, without_header


def test_mergeable_options_cover_body_and_request_collections() -> None:
    assert MERGEABLE_OPTIONS == {"cookies", "data", "files", "headers", "json", "params"}


def test_merge_headers_keeps_base_and_adds_override() -> None:
    merged = merge_options({"headers": {"A": "1"}}, {"headers": {"B": "2"}})

    assert merged == {"headers": {"A": "1", "B": "2"}}
    assert list(merged["headers"]) == ["A", "B"]


def test_merge_headers_override_wins_on_collision() -> None:
    assert merge_options({"headers": {"A": "1"}}, {"headers": {"A": "2"}}) == {"headers": {"A": "2"}}


def test_merge_is_associative_for_mergeable_keys() -> None:
    base = {"params": {"a": 1}}
    first = {"params": {"b": 2}}
    second = {"params": {"a": 3, "c": 4}}

    left = merge_options(merge_options(base, first), second)
    right = merge_options(base, merge_options(first, second))

    assert left == right == {"params": {"a": 3, "b": 2, "c": 4}}


def test_merge_applies_every_override_in_order() -> None:
    merged = merge_options(
        {"headers": {"A": "1"}, "timeout": 5},
        {"headers": {"B": "2"}, "timeout": 10},
        {"headers": {"B": "3"}},
    )

    assert merged == {"headers": {"A": "1", "B": "3"}, "timeout": 10}


def test_merge_nested_json_recursively() -> None:
    merged = merge_options(
        {"json": {"user": {"name": "ada", "role": "admin"}}},
        {"json": {"user": {"role": "owner"}, "active": True}},
    )

    assert merged["json"] == {"user": {"name": "ada", "role": "owner"}, "active": True}


def test_merge_concatenates_lists_for_mergeable_keys() -> None:
    merged = merge_options({"files": [{"name": "a"}]}, {"files": [{"name": "b"}]})

    assert merged["files"] == [{"name": "a"}, {"name": "b"}]


def test_non_mergeable_keys_are_replaced_outright() -> None:
    merged = merge_options({"allow_redirects": {"max": 5}}, {"allow_redirects": {"strict": True}})
    assert merged["allow_redirects"] == {"strict": True}

    merged = merge_options({"allow_redirects": {"max": 5}}, {"allow_redirects": False})
    assert merged["allow_redirects"] is False


def test_mismatched_types_are_replaced() -> None:
    merged = merge_options({"params": {"a": "1"}}, {"params": "raw=query"})

    assert merged["params"] == "raw=query"


def test_none_values_are_treated_as_absent() -> None:
    merged = merge_options({"timeout": 5, "json": {"a": 1}}, {"timeout": None, "json": None}, None)

    assert merged == {"timeout": 5, "json": {"a": 1}}


def test_merge_never_mutates_inputs() -> None:
    base = {"headers": {"A": "1"}, "files": [{"name": "a"}]}
    override = {"headers": {"B": "2"}, "files": [{"name": "b"}]}

    merge_options(base, override)

    assert base == {"headers": {"A": "1"}, "files": [{"name": "a"}]}
    assert override == {"headers": {"B": "2"}, "files": [{"name": "b"}]}


def test_without_header_matches_case_insensitively() -> None:
    options = {"headers": {"content-type": "application/json", "Accept": "text/plain"}, "timeout": 5}

    stripped = without_header(options, "Content-Type")

    assert stripped == {"headers": {"Accept": "text/plain"}, "timeout": 5}
    assert "content-type" in options["headers"]
