"""Tests for MCP server tools."""

import json

import pytest

from linear_toon import mcp_server
from linear_toon.mcp_server import (
    clear_session,
    encode_document,
    link_text,
    registry_status,
    reset_store,
    resolve_keys,
    strip_text,
    workspace_metadata,
)
from linear_toon.toon.store import RegistryStore

BASE = "https://linear.app/acme"


@pytest.fixture(autouse=True)
def store(isolated_config, monkeypatch):
    monkeypatch.setenv("DEFAULT_TEAM", "SQT")
    store = RegistryStore(ttl=None, transport="stdio")
    reset_store(store)
    yield store
    reset_store(None)


@pytest.fixture
def path(isolated_config):
    return str(isolated_config)


@pytest.fixture
def built(workspace_payload, path):
    return workspace_metadata(workspace_payload, path=path)


class TestWorkspaceMetadata:
    def test_returns_all_lookups(self, built):
        assert built["format"] == "toon"
        content = built["content"]
        assert content.startswith("_meta{workspace,defaultTeam,generatedAt,transport}:\n  acme,SQT,")
        assert "_teams[2]{key,name,cyclesEnabled,cycleDuration,estimationType}:" in content
        assert "_users[3]{key,name,displayName,email,role}:" in content
        assert "  u1,Alice,alice,alice@acme.io,admin" in content
        assert "_states[3]{key,name,type}:\n  s0,Todo,unstarted\n  s1,Done,completed\n  sqm:s0,Todo,unstarted" in content
        assert "_projects[2]{key,name,state}:" in content
        assert "_labels[3]{name,color}:" in content

    def test_reuses_session_registry(self, built, workspace_payload, path, store):
        first = store.get("default")
        workspace_metadata(workspace_payload, path=path)
        assert store.get("default") is first
        workspace_metadata(workspace_payload, path=path, force_refresh=True)
        assert store.get("default") is not first

    def test_json_format(self, workspace_payload, path):
        response = workspace_metadata(workspace_payload, path=path, format="json")
        assert response["format"] == "json"
        assert [s["schema"]["name"] for s in response["content"]["lookups"]] == [
            "_teams", "_users", "_states", "_projects", "_labels",
        ]

    def test_malformed_workspace(self, path):
        result = workspace_metadata({"users": [{"id": "x", "createdAt": "yesterday"}]}, path=path)
        assert result["code"] == "MALFORMED_SNAPSHOT"
        assert result["error"] == "RegistryError"


class TestResolveKeys:
    def test_requires_session(self, path):
        result = resolve_keys([{"type": "user", "key": "u0"}], path=path)
        assert result["code"] == "SESSION_NOT_FOUND"

    def test_per_item_results(self, built, path, ids):
        result = resolve_keys(
            [
                {"type": "user", "key": "u0"},
                {"type": "state", "key": "s9"},
                {"type": "state", "key": "SQM:S0"},
                {"type": "label", "key": "sqm:bug"},
            ],
            path=path,
        )
        assert [(r["index"], r["id"]) for r in result["resolved"]] == [
            (0, ids.bob),
            (2, ids.sqm_todo),
            (3, ids.label_sqm_bug),
        ]
        (error,) = result["errors"]
        assert error["index"] == 1
        assert error["code"] == "UNKNOWN_SHORT_KEY"
        assert error["hint"] == "Available keys: s0, s1, sqm:s0"

    def test_unknown_type_is_item_error(self, built, path):
        result = resolve_keys([{"type": "cycle", "key": "c1"}], path=path)
        assert result["errors"][0]["code"] == "UNKNOWN_ENTITY_TYPE"

    def test_sessions_are_isolated(self, workspace_payload, path):
        workspace_metadata(workspace_payload, session_id="a", path=path)
        assert resolve_keys([{"type": "user", "key": "u0"}], session_id="b", path=path)["code"] == (
            "SESSION_NOT_FOUND"
        )


class TestEncodeDocument:
    def test_encodes(self, path):
        result = encode_document(
            {"data": [{"schema": "_pagination", "rows": [{"hasMore": True, "cursor": None, "fetched": 2, "total": None}]}]},
            path=path,
        )
        assert result == {
            "format": "toon",
            "content": "_pagination[1]{hasMore,cursor,fetched,total}:\n  true,,2,",
        }

    def test_unknown_schema(self, path):
        result = encode_document({"data": [{"schema": "nope", "rows": []}]}, path=path)
        assert result["code"] == "INVALID_SCHEMA"

    def test_mismatch_falls_back_to_json(self, path):
        result = encode_document({"data": [{"schema": "_pagination", "rows": [{"hasMore": True}]}]}, path=path)
        assert json.loads(result["content"])["_fallback"] == "json"

    def test_session_collapses_project_urls(self, built, path):
        document = {"data": [{
            "schema": {"name": "notes", "fields": ["desc"]},
            "rows": [{"desc": f"See {BASE}/project/launch-878d2a8b5972"}],
        }]}
        assert encode_document(document, path=path)["content"].endswith(f"See {BASE}/project/launch-878d2a8b5972")
        assert encode_document(document, session_id="default", path=path)["content"].endswith("See pr0")


class TestTextTools:
    def test_link_requires_session(self, path):
        assert link_text("See SQT-1", path=path)["code"] == "SESSION_NOT_FOUND"

    def test_link_and_strip(self, built, path):
        linked = link_text("See SQT-5 and pr0", path=path)["text"]
        assert linked == f"See {BASE}/issue/SQT-5 and {BASE}/project/launch-878d2a8b5972"
        assert strip_text(linked, path=path)["text"] == "See SQT-5 and pr0"

    def test_strip_without_session_handles_issues(self, path):
        assert strip_text(f"{BASE}/issue/SQT-5", path=path)["text"] == "SQT-5"


class TestSessionManagement:
    def test_status(self, built, path):
        status = registry_status(path=path)
        assert status["registry"]["users"] == 3
        assert status["registry"]["transport"] == "stdio"
        assert status["registry"]["remaining_ttl_seconds"] is None

    def test_status_without_registry(self, path):
        assert registry_status(session_id="nope", path=path) == {"session_id": "nope", "registry": None}

    def test_clear_session(self, built, workspace_payload, path):
        workspace_metadata(workspace_payload, session_id="other", path=path)
        assert clear_session() == {"cleared": 1}
        assert clear_session() == {"cleared": 0}
        assert clear_session(all_sessions=True) == {"cleared": 1}

    def test_clear_before_any_store(self):
        reset_store(None)
        assert mcp_server._store is None
        assert clear_session() == {"cleared": 0}
