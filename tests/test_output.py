"""Tests for output formatting and pagination."""

import json

from linear_toon.output import (
    format_response,
    paginate,
    pagination_section,
    render_cli,
)
from linear_toon.toon.encoder import ResponseDocument, Section, encode_section
from linear_toon.toon.schemas import Schema

ITEMS = Schema("items", ("key",))


class TestFormatResponse:
    def test_document_as_toon(self):
        doc = ResponseDocument(data=[Section(ITEMS, [{"key": "a"}])])
        assert format_response(doc) == {"format": "toon", "content": "items[1]{key}:\n  a"}

    def test_document_as_json(self):
        doc = ResponseDocument(data=[Section(ITEMS, [{"key": "a"}])])
        response = format_response(doc, "json")
        assert response["format"] == "json"
        assert response["content"]["data"][0]["rows"] == [{"key": "a"}]

    def test_plain_payload_as_compact_json(self):
        assert format_response({"a": 1, "b": [2]})["content"] == '{"a":1,"b":[2]}'

    def test_text_renderer(self):
        response = format_response({"a": 1}, "TEXT", text_renderer=lambda p: f"a={p['a']}")
        assert response == {"format": "text", "content": "a=1"}

    def test_render_cli(self):
        assert json.loads(render_cli({"format": "json", "content": {"a": 1}})) == {"a": 1}
        assert render_cli({"format": "toon", "content": "x"}) == "x"


class TestPagination:
    def test_pagination_section(self):
        assert encode_section(pagination_section(True, 25)) == (
            "_pagination[1]{hasMore,cursor,fetched,total}:\n  true,,25,"
        )

    def test_paginate_middle_page(self):
        page, section = paginate(list(range(30)), limit=10, offset=10)
        assert page == list(range(10, 20))
        assert section.rows == [{"hasMore": True, "cursor": "20", "fetched": 10, "total": 30}]

    def test_paginate_last_page(self):
        page, section = paginate(list(range(25)), limit=10, offset=20)
        assert page == [20, 21, 22, 23, 24]
        assert encode_section(section).endswith("\n  false,,5,25")
