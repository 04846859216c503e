"""Shared workspace fixtures.

Workspace layout (createdAt order noted where it differs from input order):
- Teams: SQT (default), SQM
- Users: bob (oldest), alice, carol; dave is deactivated
- States: SQT Todo, SQT Done, SQM Todo
- Projects: Launch, Infra
- Labels: Bug (workspace), Feature (SQT), Bug (SQM)
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from linear_toon import pm_config
from linear_toon.toon.registry import (
    LabelSnapshot,
    ProjectSnapshot,
    RegistryBuildData,
    StateSnapshot,
    TeamSnapshot,
    UserSnapshot,
    build_registry,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

IDS = SimpleNamespace(
    team_sqt="team-sqt",
    team_sqm="team-sqm",
    alice="user-alice",
    bob="user-bob",
    carol="user-carol",
    dave="user-dave",
    sqt_todo="state-sqt-todo",
    sqt_done="state-sqt-done",
    sqm_todo="state-sqm-todo",
    launch="project-launch",
    infra="project-infra",
    label_bug="label-bug",
    label_feature="label-feature",
    label_sqm_bug="label-sqm-bug",
)


def ts(day: int) -> str:
    return f"2024-01-{day:02d}T00:00:00.000Z"


def make_build_data(default_team_id=IDS.team_sqt, team_id=None) -> RegistryBuildData:
    return RegistryBuildData(
        teams=[
            TeamSnapshot(id=IDS.team_sqt, key="SQT", name="Squad Tech", created_at=ts(1), cycles_enabled=True),
            TeamSnapshot(id=IDS.team_sqm, key="SQM", name="Squad Marketing", created_at=ts(2)),
        ],
        users=[
            UserSnapshot(id=IDS.alice, created_at=ts(2), name="Alice", display_name="alice", email="alice@acme.io"),
            UserSnapshot(id=IDS.bob, created_at=ts(1), name="Bob", display_name="bob", email="bob@acme.io"),
            UserSnapshot(id=IDS.carol, created_at=ts(3), name="Carol", display_name="carol", email="carol@acme.io"),
            UserSnapshot(id=IDS.dave, created_at=ts(4), name="Dave", email="dave@acme.io", active=False),
        ],
        states=[
            StateSnapshot(id=IDS.sqt_todo, created_at=ts(1), name="Todo", type="unstarted", team_id=IDS.team_sqt),
            StateSnapshot(id=IDS.sqt_done, created_at=ts(2), name="Done", type="completed", team_id=IDS.team_sqt),
            StateSnapshot(id=IDS.sqm_todo, created_at=ts(1), name="Todo", type="unstarted", team_id=IDS.team_sqm),
        ],
        projects=[
            ProjectSnapshot(id=IDS.launch, created_at=ts(1), name="Launch", state="started",
                            slug_id="launch-878d2a8b5972"),
            ProjectSnapshot(id=IDS.infra, created_at=ts(2), name="Infra", state="planned", slug_id="infra-abc123"),
        ],
        labels=[
            LabelSnapshot(id=IDS.label_bug, created_at=ts(1), name="Bug", color="#ff0000"),
            LabelSnapshot(id=IDS.label_feature, created_at=ts(2), name="Feature", color="#00ff00",
                          team_id=IDS.team_sqt),
            LabelSnapshot(id=IDS.label_sqm_bug, created_at=ts(3), name="Bug", color="#0000ff",
                          team_id=IDS.team_sqm),
        ],
        workspace_id="org-acme",
        team_id=team_id,
        default_team_id=default_team_id,
        url_key="acme",
    )


def make_workspace_payload() -> dict:
    """GraphQL-shaped payload equivalent to make_build_data()."""
    return {
        "organization": {"id": "org-acme", "urlKey": "acme"},
        "users": {"nodes": [
            {"id": IDS.alice, "createdAt": ts(2), "name": "Alice", "displayName": "alice",
             "email": "alice@acme.io", "active": True, "admin": True},
            {"id": IDS.bob, "createdAt": ts(1), "name": "Bob", "displayName": "bob",
             "email": "bob@acme.io", "active": True},
            {"id": IDS.carol, "createdAt": ts(3), "name": "Carol", "displayName": "carol",
             "email": "carol@acme.io", "active": True},
            {"id": IDS.dave, "createdAt": ts(4), "name": "Dave", "email": "dave@acme.io", "active": False},
        ]},
        "teams": {"nodes": [
            {
                "id": IDS.team_sqt, "key": "SQT", "name": "Squad Tech", "createdAt": ts(1),
                "cyclesEnabled": True,
                "states": {"nodes": [
                    {"id": IDS.sqt_todo, "createdAt": ts(1), "name": "Todo", "type": "unstarted"},
                    {"id": IDS.sqt_done, "createdAt": ts(2), "name": "Done", "type": "completed"},
                ]},
                "members": {"nodes": [{"id": IDS.alice}, {"id": IDS.bob}]},
                "projects": {"nodes": [{"id": IDS.launch}]},
            },
            {
                "id": IDS.team_sqm, "key": "SQM", "name": "Squad Marketing", "createdAt": ts(2),
                "states": {"nodes": [
                    {"id": IDS.sqm_todo, "createdAt": ts(1), "name": "Todo", "type": "unstarted"},
                ]},
                "members": {"nodes": [{"id": IDS.alice}, {"id": IDS.carol}]},
                "projects": {"nodes": [{"id": IDS.launch}, {"id": IDS.infra}]},
            },
        ]},
        "projects": {"nodes": [
            {"id": IDS.launch, "createdAt": ts(1), "name": "Launch", "state": "started",
             "slugId": "launch-878d2a8b5972", "lead": {"id": IDS.alice}},
            {"id": IDS.infra, "createdAt": ts(2), "name": "Infra", "state": "planned", "slugId": "infra-abc123"},
        ]},
        "labels": {"nodes": [
            {"id": IDS.label_bug, "createdAt": ts(1), "name": "Bug", "color": "#ff0000"},
            {"id": IDS.label_feature, "createdAt": ts(2), "name": "Feature", "color": "#00ff00",
             "team": {"id": IDS.team_sqt}},
            {"id": IDS.label_sqm_bug, "createdAt": ts(3), "name": "Bug", "color": "#0000ff",
             "team": {"id": IDS.team_sqm}},
        ]},
    }


@pytest.fixture
def ids() -> SimpleNamespace:
    return IDS


@pytest.fixture
def build_data() -> RegistryBuildData:
    return make_build_data()


@pytest.fixture
def registry(build_data):
    return build_registry(build_data, now=NOW)


@pytest.fixture
def workspace_payload() -> dict:
    return make_workspace_payload()


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """No user config, no env overrides, cwd in an empty temp dir."""
    monkeypatch.setattr(pm_config, "USER_CONFIG_FILE", tmp_path / "user-config" / "config.json")
    for env_var in (
        pm_config.ENV_DEFAULT_TEAM,
        pm_config.ENV_URL_KEY,
        pm_config.ENV_TRANSPORT,
        pm_config.ENV_PROFILES_PATH,
        "USER_PROFILES_JSON",
    ):
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
