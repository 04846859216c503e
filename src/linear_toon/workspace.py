"""Workspace payloads -> registry build data.

The upstream client is out of scope: callers hand over what they already
fetched, GraphQL-shaped (connections as ``{"nodes": [...]}`` or plain lists):

```json
{
  "organization": {"id": "...", "urlKey": "acme"},
  "users": {"nodes": [{"id", "createdAt", "name", "displayName", "email", "active", "admin"}]},
  "teams": {"nodes": [{"id", "key", "name", "createdAt",
                       "states": {"nodes": [...]},
                       "members": {"nodes": [{"id"}]},
                       "projects": {"nodes": [{"id"}]}}]},
  "projects": {"nodes": [{"id", "createdAt", "name", "state", "slugId", "lead": {"id"}}]},
  "labels": {"nodes": [{"id", "createdAt", "name", "color", "team": {"id"}}]}
}
```
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Optional

from .profiles import UserProfilesConfig, apply_profiles
from .toon.registry import (
    LabelSnapshot,
    ProjectSnapshot,
    RegistryBuildData,
    StateSnapshot,
    TeamSnapshot,
    UserSnapshot,
    require_id,
)

logger = logging.getLogger(__name__)


def _nodes(value: Any) -> list[dict]:
    if value is None:
        return []
    if isinstance(value, dict):
        return list(value.get("nodes") or [])
    return list(value)


def resolve_default_team_id(teams: list[TeamSnapshot], default_team: Optional[str]) -> Optional[str]:
    """Match a configured default team by key (case-insensitive) or id."""
    if not default_team:
        return None
    wanted = default_team.strip().lower()
    for team in teams:
        if team.key.lower() == wanted or team.id == default_team:
            return team.id
    logger.warning("Default team '%s' not found in workspace; keys will be unprefixed", default_team)
    return None


def build_data_from_workspace(
    payload: dict,
    default_team: Optional[str] = None,
    profiles: Optional[UserProfilesConfig] = None,
    team_id: Optional[str] = None,
) -> RegistryBuildData:
    """Convert a fetched workspace payload into RegistryBuildData.

    Args:
        payload: Workspace payload (see module docstring)
        default_team: Default team key or UUID; its states/labels get bare keys
        profiles: Optional user profiles merged into users
        team_id: Legacy single-team mode, only this team's states are keyed

    Returns:
        RegistryBuildData ready for build_registry

    Raises:
        RegistryError: MALFORMED_SNAPSHOT for entities without id/createdAt
    """
    team_nodes = _nodes(payload.get("teams"))
    teams = [TeamSnapshot.from_dict(t) for t in team_nodes]

    states: list[StateSnapshot] = []
    user_teams: dict[str, list[str]] = {}
    project_teams: dict[str, list[str]] = {}
    for node, team in zip(team_nodes, teams):
        for state in _nodes(node.get("states")):
            states.append(StateSnapshot.from_dict({**state, "teamId": state.get("teamId") or team.id}))
        for member in _nodes(node.get("members")):
            user_teams.setdefault(require_id(member, "team member"), []).append(team.key)
        for project in _nodes(node.get("projects")):
            project_teams.setdefault(require_id(project, "team project"), []).append(team.key)
    # Flat state lists are accepted too
    states.extend(StateSnapshot.from_dict(s) for s in _nodes(payload.get("states")))

    users = []
    for node in _nodes(payload.get("users")):
        role = node.get("role") or ("admin" if node.get("admin") else "member")
        user = UserSnapshot.from_dict({**node, "role": role})
        if user.id in user_teams and not user.teams:
            user = replace(user, teams=tuple(user_teams[user.id]))
        users.append(user)
    if profiles is not None:
        users = apply_profiles(users, profiles)

    projects = []
    for node in _nodes(payload.get("projects")):
        project = ProjectSnapshot.from_dict(node)
        if project.id in project_teams and not project.team_keys:
            project = replace(project, team_keys=tuple(project_teams[project.id]))
        projects.append(project)

    labels = [LabelSnapshot.from_dict(lb) for lb in _nodes(payload.get("labels"))]

    organization = payload.get("organization") or (payload.get("viewer") or {}).get("organization") or {}
    data = RegistryBuildData(
        users=users,
        states=states,
        projects=projects,
        teams=teams,
        labels=labels,
        workspace_id=organization.get("id") or "unknown",
        team_id=team_id,
        default_team_id=resolve_default_team_id(teams, default_team),
        url_key=organization.get("urlKey"),
    )
    logger.debug(
        "Workspace payload: %d users, %d teams, %d states, %d projects, %d labels",
        len(users), len(teams), len(states), len(projects), len(labels),
    )
    return data
