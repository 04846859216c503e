"""Lookup sections built from a registry.

Each builder takes the UUIDs a response actually references and emits only
those rows, in registry key order, so the model can resolve every short key in
the data sections without a second call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from .encoder import Section
from .registry import ShortKeyRegistry, list_short_keys, parse_short_key
from .schemas import (
    LABEL_LOOKUP_SCHEMA,
    PROJECT_LOOKUP_SCHEMA,
    STATE_LOOKUP_SCHEMA,
    TEAM_LOOKUP_SCHEMA,
    USER_LOOKUP_SCHEMA,
)

EXTERNAL_PREFIX = "ext"
EXTERNAL_ROLE = "(external)"


@dataclass
class UserLookup:
    """User lookup section plus the response-local ext keys it minted."""
    section: Section
    fallback_map: dict[str, str] = field(default_factory=dict)  # uuid -> extN

    def key_for(self, registry: ShortKeyRegistry, uuid: Optional[str]) -> Optional[str]:
        """Short key or ext key for a user UUID, as used in data rows."""
        if not uuid:
            return None
        return registry.by_uuid["user"].get(uuid) or self.fallback_map.get(uuid)


def _ordered_keys(registry: ShortKeyRegistry, entity_type: str, referenced: set[str]) -> list[str]:
    keys_to_uuid = registry.keys[entity_type]
    return [k for k in list_short_keys(registry, entity_type) if keys_to_uuid[k] in referenced]


def _user_sort_key(key: str) -> tuple[int, int]:
    if key.startswith(EXTERNAL_PREFIX):
        return (1, int(key[len(EXTERNAL_PREFIX):]))
    parsed = parse_short_key(key)
    return (0, parsed.index if parsed else 0)


def build_user_lookup(
    registry: ShortKeyRegistry,
    referenced_ids: Iterable[str],
    fallback_names: Optional[Mapping[str, str]] = None,
) -> UserLookup:
    """User lookup for referenced UUIDs.

    Users without a registry key (deactivated, external, created after the
    build) get ``ext0``, ``ext1``... in first-seen order. Those keys live only
    in this response and are never written back to the registry.

    Args:
        registry: Session registry
        referenced_ids: User UUIDs appearing in the response, in order
        fallback_names: uuid -> display name for users the registry lacks

    Returns:
        UserLookup with the section and the uuid -> extN map
    """
    fallback_names = fallback_names or {}
    rows = []
    fallback_map: dict[str, str] = {}
    seen: set[str] = set()

    for uuid in referenced_ids:
        if not uuid or uuid in seen:
            continue
        seen.add(uuid)
        short_key = registry.by_uuid["user"].get(uuid)
        meta = registry.metadata["user"].get(uuid)
        if short_key:
            rows.append({
                "key": short_key,
                "name": meta.name if meta else "",
                "displayName": meta.display_name if meta else "",
                "email": meta.email if meta else "",
                "role": meta.role if meta else None,
            })
            continue
        ext_key = f"{EXTERNAL_PREFIX}{len(fallback_map)}"
        fallback_map[uuid] = ext_key
        name = fallback_names.get(uuid) or (meta.name if meta else "") or "Unknown User"
        rows.append({
            "key": ext_key,
            "name": name,
            "displayName": None,
            "email": None,
            "role": EXTERNAL_ROLE,
        })

    rows.sort(key=lambda r: _user_sort_key(r["key"]))
    return UserLookup(section=Section(USER_LOOKUP_SCHEMA, rows), fallback_map=fallback_map)


def build_state_lookup(registry: ShortKeyRegistry, referenced_ids: Iterable[str]) -> Section:
    referenced = set(referenced_ids)
    rows = []
    for key in _ordered_keys(registry, "state", referenced):
        meta = registry.metadata["state"].get(registry.states[key])
        rows.append({
            "key": key,
            "name": meta.name if meta else "",
            "type": meta.type if meta else "",
        })
    return Section(STATE_LOOKUP_SCHEMA, rows)


def build_project_lookup(registry: ShortKeyRegistry, referenced_ids: Iterable[str]) -> Section:
    referenced = set(referenced_ids)
    rows = []
    for key in _ordered_keys(registry, "project", referenced):
        meta = registry.metadata["project"].get(registry.projects[key])
        rows.append({
            "key": key,
            "name": meta.name if meta else "",
            "state": meta.state if meta else "",
        })
    return Section(PROJECT_LOOKUP_SCHEMA, rows)


def build_team_lookup(registry: ShortKeyRegistry, referenced_ids: Optional[Iterable[str]] = None) -> Section:
    """Team lookup; all teams when referenced_ids is None."""
    referenced = set(referenced_ids) if referenced_ids is not None else set(registry.teams.values())
    rows = []
    for key in sorted(registry.teams):
        uuid = registry.teams[key]
        if uuid not in referenced:
            continue
        meta = registry.metadata["team"].get(uuid)
        rows.append({
            "key": key,
            "name": meta.name if meta else "",
            "cyclesEnabled": meta.cycles_enabled if meta else None,
            "cycleDuration": meta.cycle_duration if meta else None,
            "estimationType": meta.estimation_type if meta else None,
        })
    return Section(TEAM_LOOKUP_SCHEMA, rows)


def build_label_lookup(registry: ShortKeyRegistry, referenced_ids: Optional[Iterable[str]] = None) -> Section:
    """Label lookup keyed by label key (``Bug``, ``sqm:Bug``); all labels when referenced_ids is None."""
    referenced = set(referenced_ids) if referenced_ids is not None else set(registry.labels.values())
    rows = []
    for key in sorted(registry.labels, key=lambda k: (":" in k, k.lower())):
        uuid = registry.labels[key]
        if uuid not in referenced:
            continue
        meta = registry.metadata["label"].get(uuid)
        rows.append({"name": key, "color": meta.color if meta else None})
    return Section(LABEL_LOOKUP_SCHEMA, rows)
