"""Tests for the linear-toon CLI."""

import json

import pytest
from typer.testing import CliRunner

from linear_toon.cli import app

runner = CliRunner()


@pytest.fixture
def workspace_file(isolated_config, workspace_payload):
    path = isolated_config / "workspace.json"
    path.write_text(json.dumps(workspace_payload))
    return path


def run(*args, input=None):
    return runner.invoke(app, [str(a) for a in args], input=input)


class TestKeysCommand:
    def test_prints_every_lookup(self, workspace_file, isolated_config):
        result = run("keys", workspace_file, "--team", "SQT", "--path", isolated_config)
        assert result.exit_code == 0
        assert "_teams[2]{key,name,cyclesEnabled,cycleDuration,estimationType}:" in result.output
        assert "  u0,Bob,bob,bob@acme.io,member" in result.output
        assert "  sqm:s0,Todo,unstarted" in result.output
        assert "  sqm:Bug,#0000ff" in result.output

    def test_json_format(self, workspace_file, isolated_config):
        result = run("keys", workspace_file, "--path", isolated_config, "--format", "json")
        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["meta"]["values"]["workspace"] == "acme"

    def test_missing_workspace_file(self, isolated_config):
        result = run("keys", isolated_config / "nope.json", "--path", isolated_config)
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_malformed_workspace(self, isolated_config):
        path = isolated_config / "bad.json"
        path.write_text(json.dumps({"users": [{"id": "x", "createdAt": "yesterday"}]}))
        result = run("keys", path, "--path", isolated_config)
        assert result.exit_code == 1
        assert "Unparseable createdAt" in result.output


class TestResolveCommand:
    def test_resolves_keys(self, workspace_file, isolated_config, ids):
        result = run("resolve", workspace_file, "state", "s0", "sqm:s0", "--team", "SQT",
                     "--path", isolated_config)
        assert result.exit_code == 0
        assert f"s0  {ids.sqt_todo}" in result.output
        assert f"sqm:s0  {ids.sqm_todo}" in result.output

    def test_unknown_key_fails(self, workspace_file, isolated_config):
        result = run("resolve", workspace_file, "state", "s9", "--team", "SQT", "--path", isolated_config)
        assert result.exit_code == 1
        assert "Unknown state key 's9'" in result.output

    def test_unknown_entity_type(self, workspace_file, isolated_config):
        result = run("resolve", workspace_file, "cycle", "c1", "--path", isolated_config)
        assert result.exit_code == 1
        assert "Unknown entity type" in result.output


class TestEncodeCommand:
    def test_encodes_document(self, isolated_config):
        path = isolated_config / "doc.json"
        path.write_text(json.dumps({
            "meta": {"fields": ["count"], "values": {"count": 1}},
            "data": [{"schema": {"name": "items", "fields": ["key", "title"]}, "rows": [{"key": "a", "title": "x"}]}],
        }))
        result = run("encode", path, "--path", isolated_config)
        assert result.exit_code == 0
        assert "_meta{count}:\n  1\n\nitems[1]{key,title}:\n  a,x" in result.output

    def test_unknown_schema(self, isolated_config):
        path = isolated_config / "doc.json"
        path.write_text(json.dumps({"data": [{"schema": "nope", "rows": []}]}))
        result = run("encode", path, "--path", isolated_config)
        assert result.exit_code == 1
        assert "Unknown schema 'nope'" in result.output


class TestLinkAndStrip:
    def test_link(self, workspace_file, isolated_config):
        result = run("link", workspace_file, "See SQT-5 and pr1", "--path", isolated_config)
        assert result.exit_code == 0
        assert (
            "See https://linear.app/acme/issue/SQT-5 and https://linear.app/acme/project/infra-abc123"
            in result.output
        )

    def test_strip(self, isolated_config):
        result = run("strip", "See https://linear.app/acme/issue/SQT-5", "--path", isolated_config)
        assert result.exit_code == 0
        assert result.output.strip() == "See SQT-5"

    def test_strip_from_stdin_with_workspace(self, workspace_file, isolated_config):
        result = run(
            "strip", "-", "--workspace", workspace_file, "--path", isolated_config,
            input="[Launch](https://linear.app/acme/project/launch-878d2a8b5972)",
        )
        assert result.exit_code == 0
        assert result.output.strip() == "pr0"


class TestConfigCommands:
    def test_context_without_config(self, isolated_config):
        result = run("context", "--path", isolated_config)
        assert result.exit_code == 0
        info = json.loads(result.output)
        assert info["config_source"] == "none"
        assert info["transport"] == "stdio"
        assert info["registry_ttl_minutes"] is None

    def test_init_creates_config(self, isolated_config):
        result = run("init", "--path", isolated_config, "--team", "SQT", "--url-key", "acme")
        assert result.exit_code == 0
        config = json.loads((isolated_config / ".pm" / "config.json").read_text())
        assert config == {"toon": {"default_team": "SQT", "url_key": "acme"}}

        result = run("context", "--path", isolated_config)
        assert json.loads(result.output)["url_base"] == "https://linear.app/acme"

    def test_init_respects_existing_config(self, isolated_config):
        run("init", "--path", isolated_config, "--team", "SQT")
        result = run("init", "--path", isolated_config, "--team", "SQM", input="n\n")
        assert result.exit_code == 0
        config = json.loads((isolated_config / ".pm" / "config.json").read_text())
        assert config["toon"]["default_team"] == "SQT"
