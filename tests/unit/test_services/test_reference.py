"""Unit tests for reference-field normalization."""

from __future__ import annotations

import pytest

from cmdbwalk.services.reference import (
    MISSING,
    LinkOnly,
    RawId,
    ValueWithDisplay,
    extract_display_name,
    extract_id,
    field_text,
    parse_reference,
)

SYS_ID = "a" * 32


@pytest.mark.parametrize(
    ("field", "expected"),
    [
        ({"value": "id1"}, "id1"),
        ({"link": "https://x/y/id2"}, "id2"),
        ("id3", "id3"),
        (SYS_ID, SYS_ID),
    ],
)
def test_extract_id_all_shapes(field, expected):
    assert extract_id(field) == expected


def test_hex_string_is_an_id_not_a_name():
    assert extract_id(SYS_ID) == SYS_ID
    assert extract_display_name(SYS_ID) == ""


def test_display_name_prefers_embedded_display_value():
    field = {"value": "id1", "display_value": "web01", "link": "https://x/api/now/table/cmdb_ci/id1"}
    assert extract_id(field) == "id1"
    assert extract_display_name(field) == "web01"


def test_bare_non_hex_string_is_its_own_name():
    assert extract_display_name("web01") == "web01"
    # uppercase hex is not a sys_id
    assert extract_display_name("A" * 32) == "A" * 32


def test_link_only_has_no_display_name():
    assert extract_display_name({"link": "https://x/y/id2"}) == ""


def test_link_with_display_but_no_value_reads_id_from_link():
    field = {"display_value": "web01", "link": "https://x/api/now/table/cmdb_ci/id9"}
    assert extract_id(field) == "id9"
    assert extract_display_name(field) == "web01"


@pytest.mark.parametrize("field", [None, "", {}, {"value": 7}, 42, ["id1"]])
def test_missing_or_unsupported_fields_are_empty(field):
    assert parse_reference(field) is MISSING
    assert extract_id(field) == ""
    assert extract_display_name(field) == ""


def test_parse_reference_tags():
    assert parse_reference("id3") == RawId("id3")
    assert parse_reference({"value": "id1", "display_value": "x"}) == ValueWithDisplay("id1", "x")
    assert parse_reference({"link": "https://x/y/id2"}) == LinkOnly("https://x/y/id2")


def test_field_text_handles_plain_and_display_all_values():
    assert field_text("Billing DB") == "Billing DB"
    assert field_text({"value": "billing_db", "display_value": "Billing DB"}) == "Billing DB"
    assert field_text({"value": "billing_db"}) == "billing_db"
    assert field_text(None) == ""
