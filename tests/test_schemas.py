"""Tests for the schema catalog."""

import pytest

from linear_toon.toon.schemas import (
    ISSUE_SCHEMA,
    LOOKUP_SCHEMAS,
    PAGINATION_SCHEMA,
    STATE_LOOKUP_SCHEMA,
    WRITE_RESULT_META_SCHEMA,
    WRITE_RESULT_SCHEMA,
    Schema,
    format_cycle,
    format_estimate,
    format_priority,
    get_schema,
)


class TestSchema:
    def test_header(self):
        assert STATE_LOOKUP_SCHEMA.header(3) == "_states[3]{key,name,type}:"

    def test_lookup_flag(self):
        assert all(schema.is_lookup for schema in LOOKUP_SCHEMAS.values())
        assert not ISSUE_SCHEMA.is_lookup

    def test_fields_stored_as_tuple(self):
        assert Schema("x", ["a", "b"]).fields == ("a", "b")

    def test_with_fields_keeps_matching_formatters(self):
        subset = ISSUE_SCHEMA.with_fields("identifier", "priority")
        assert subset.fields == ("identifier", "priority")
        assert set(subset.formatters) == {"priority"}

    def test_with_fields_rejects_unknown(self):
        with pytest.raises(ValueError):
            ISSUE_SCHEMA.with_fields("identifier", "uuid")

    def test_issue_fields_carry_no_uuid(self):
        assert ISSUE_SCHEMA.fields[:3] == ("identifier", "title", "state")
        assert "id" not in ISSUE_SCHEMA.fields


class TestFormatters:
    def test_priority(self):
        assert format_priority(1) == "p1"
        assert format_priority(0) == "p0"
        assert format_priority(None) is None

    def test_estimate(self):
        assert format_estimate(5) == "e5"
        assert format_estimate(5.0) == "e5"
        assert format_estimate(0.5) == "e0.5"
        assert format_estimate(None) is None

    def test_cycle(self):
        assert format_cycle(5) == "c5"
        assert format_cycle(None) is None


class TestCatalog:
    def test_get_schema_by_name(self):
        assert get_schema("issues") is ISSUE_SCHEMA
        assert get_schema("_pagination") is PAGINATION_SCHEMA
        assert get_schema("_meta") is WRITE_RESULT_META_SCHEMA
        assert get_schema("results") is WRITE_RESULT_SCHEMA

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            get_schema("tickets")
