"""Tests for workspace payload conversion."""

import logging

import pytest

from linear_toon.profiles import UserProfilesConfig
from linear_toon.toon.errors import RegistryError
from linear_toon.toon.registry import ENTITY_TYPES, build_registry
from linear_toon.workspace import build_data_from_workspace

from conftest import NOW


class TestBuildDataFromWorkspace:
    def test_matches_snapshot_registry(self, workspace_payload, registry):
        data = build_data_from_workspace(workspace_payload, default_team="sqt")
        rebuilt = build_registry(data, now=NOW)
        for entity_type in ENTITY_TYPES:
            assert rebuilt.keys[entity_type] == registry.keys[entity_type]
        assert rebuilt.url_key == "acme"
        assert rebuilt.workspace_id == "org-acme"

    def test_states_take_their_team(self, workspace_payload, ids):
        data = build_data_from_workspace(workspace_payload)
        assert {s.id: s.team_id for s in data.states} == {
            ids.sqt_todo: ids.team_sqt,
            ids.sqt_done: ids.team_sqt,
            ids.sqm_todo: ids.team_sqm,
        }

    def test_roles_and_team_membership(self, workspace_payload, ids):
        users = {u.id: u for u in build_data_from_workspace(workspace_payload).users}
        assert users[ids.alice].role == "admin"
        assert users[ids.bob].role == "member"
        assert users[ids.alice].teams == ("SQT", "SQM")
        assert users[ids.dave].active is False

    def test_project_teams(self, workspace_payload, ids):
        projects = {p.id: p for p in build_data_from_workspace(workspace_payload).projects}
        assert projects[ids.launch].team_keys == ("SQT", "SQM")
        assert projects[ids.infra].team_keys == ("SQM",)
        assert projects[ids.launch].lead_id == ids.alice

    def test_label_team(self, workspace_payload, ids):
        labels = {lb.id: lb for lb in build_data_from_workspace(workspace_payload).labels}
        assert labels[ids.label_bug].team_id is None
        assert labels[ids.label_feature].team_id == ids.team_sqt

    def test_default_team_by_id(self, workspace_payload, ids):
        data = build_data_from_workspace(workspace_payload, default_team=ids.team_sqm)
        assert data.default_team_id == ids.team_sqm

    def test_unknown_default_team_warns(self, workspace_payload, caplog):
        with caplog.at_level(logging.WARNING, logger="linear_toon.workspace"):
            data = build_data_from_workspace(workspace_payload, default_team="XYZ")
        assert data.default_team_id is None
        assert "XYZ" in caplog.text

    def test_plain_lists_and_viewer_organization(self, ids):
        payload = {
            "viewer": {"organization": {"id": "org-1", "urlKey": "other"}},
            "users": [{"id": ids.bob, "createdAt": "2024-01-01T00:00:00Z"}],
            "states": [{"id": "st-1", "createdAt": "2024-01-01T00:00:00Z", "name": "Todo"}],
        }
        data = build_data_from_workspace(payload)
        assert data.workspace_id == "org-1"
        assert data.url_key == "other"
        assert [u.id for u in data.users] == [ids.bob]
        assert [s.id for s in data.states] == ["st-1"]

    def test_empty_payload(self):
        data = build_data_from_workspace({})
        assert data.users == []
        assert data.workspace_id == "unknown"

    def test_missing_id_is_malformed(self):
        with pytest.raises(RegistryError) as exc:
            build_data_from_workspace({"users": {"nodes": [{"createdAt": "2024-01-01T00:00:00Z"}]}})
        assert exc.value.code == "MALFORMED_SNAPSHOT"

    @pytest.mark.parametrize("connection", ["members", "projects"])
    def test_team_connection_node_without_id_is_malformed(self, workspace_payload, connection):
        workspace_payload["teams"]["nodes"][0][connection]["nodes"].append({})
        with pytest.raises(RegistryError) as exc:
            build_data_from_workspace(workspace_payload)
        assert exc.value.code == "MALFORMED_SNAPSHOT"

    def test_profiles_merged(self, workspace_payload, ids):
        profiles = UserProfilesConfig.from_dict({
            "profiles": {"ALICE@acme.io": {"role": "Tech Lead", "skills": ["Python"], "focusArea": "API"}},
        })
        users = {u.id: u for u in build_data_from_workspace(workspace_payload, profiles=profiles).users}
        assert users[ids.alice].role == "Tech Lead"
        assert users[ids.alice].skills == ("Python",)
        assert users[ids.bob].role == "member"
