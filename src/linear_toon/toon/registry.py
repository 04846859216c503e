"""Short key registry.

Maps canonical entity UUIDs to compact short keys (u0, s1, sqm:s0, pr2) and
back. The registry is built once per session from already-fetched workspace
snapshots and then consulted by every tool call in that session:

- Encoding: UUID -> short key, so output never carries UUIDs
- Decoding: short key -> UUID, so model input can be sent upstream

Key assignment is deterministic. Snapshots of one type are sorted by
``created_at`` (ascending, stable on input order for ties) and numbered from
zero within their scope. States and labels of the default team get bare keys;
other teams' states get a lowercase team prefix (``sqm:s0``) so numbering never
collides across teams. Users and projects are workspace-global and never
prefixed. Teams are keyed by their natural key (``SQT``), labels by name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional, Sequence

from .errors import RegistryError, ResolutionError, invalid_key_format_error, unknown_short_key_error

ENTITY_TYPES = ("user", "state", "project", "team", "label")

# Short key tags for numbered entity types
KEY_PREFIXES = {"user": "u", "state": "s", "project": "pr"}
TAG_TYPES = {tag: entity_type for entity_type, tag in KEY_PREFIXES.items()}

SHORT_KEY_RE = re.compile(r"^(?:([a-z0-9_]+):)?(pr|u|s)(\d+)$", re.IGNORECASE)
HEX_SUFFIX_RE = re.compile(r"^[a-f0-9]+$")


# ============================================================================
# Snapshots
# ============================================================================


def _parse_timestamp(value: Any, entity_id: str = "") -> datetime:
    """Parse a createdAt value into an aware UTC datetime."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise RegistryError(
                f"Unparseable createdAt '{value}' for entity '{entity_id}'",
                code="MALFORMED_SNAPSHOT",
                cause=str(e),
                hint="createdAt must be an ISO-8601 timestamp",
            ) from e
    else:
        raise RegistryError(
            f"Missing createdAt for entity '{entity_id}'",
            code="MALFORMED_SNAPSHOT",
            hint="Every snapshot needs an id and a createdAt timestamp",
        )
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def require_id(data: dict, entity_type: str) -> str:
    entity_id = data.get("id")
    if not entity_id:
        raise RegistryError(
            f"{entity_type} snapshot is missing an id",
            code="MALFORMED_SNAPSHOT",
            hint="Every snapshot needs an id and a createdAt timestamp",
        )
    return entity_id


@dataclass(frozen=True)
class UserSnapshot:
    """A workspace member as captured at registry build time."""
    id: str
    created_at: Any
    name: str = ""
    display_name: str = ""
    email: str = ""
    active: bool = True
    role: Optional[str] = None
    skills: tuple[str, ...] = ()
    focus_area: Optional[str] = None
    teams: tuple[str, ...] = ()  # team keys, e.g. ("SQT", "SQM")

    @classmethod
    def from_dict(cls, d: dict) -> "UserSnapshot":
        return cls(
            id=require_id(d, "user"),
            created_at=d.get("createdAt", d.get("created_at")),
            name=d.get("name") or "",
            display_name=d.get("displayName", d.get("display_name")) or "",
            email=d.get("email") or "",
            active=d.get("active", True) is not False,
            role=d.get("role"),
            skills=tuple(d.get("skills") or ()),
            focus_area=d.get("focusArea", d.get("focus_area")),
            teams=tuple(d.get("teams") or ()),
        )


@dataclass(frozen=True)
class StateSnapshot:
    """A workflow state."""
    id: str
    created_at: Any
    name: str = ""
    type: str = ""  # triage, backlog, unstarted, started, completed, canceled
    team_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "StateSnapshot":
        team = d.get("team") or {}
        return cls(
            id=require_id(d, "state"),
            created_at=d.get("createdAt", d.get("created_at")),
            name=d.get("name") or "",
            type=d.get("type") or "",
            team_id=d.get("teamId", d.get("team_id")) or team.get("id"),
        )


@dataclass(frozen=True)
class ProjectSnapshot:
    """A project."""
    id: str
    created_at: Any
    name: str = ""
    state: str = ""
    icon: Optional[str] = None
    priority: Optional[int] = None
    progress: Optional[float] = None
    lead_id: Optional[str] = None
    target_date: Optional[str] = None
    team_keys: tuple[str, ...] = ()
    slug_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "ProjectSnapshot":
        lead = d.get("lead") or {}
        return cls(
            id=require_id(d, "project"),
            created_at=d.get("createdAt", d.get("created_at")),
            name=d.get("name") or "",
            state=d.get("state") or "",
            icon=d.get("icon"),
            priority=d.get("priority"),
            progress=d.get("progress"),
            lead_id=d.get("leadId", d.get("lead_id")) or lead.get("id"),
            target_date=d.get("targetDate", d.get("target_date")),
            team_keys=tuple(d.get("teamKeys", d.get("team_keys")) or ()),
            slug_id=d.get("slugId", d.get("slug_id")),
        )


@dataclass(frozen=True)
class TeamSnapshot:
    """A team. Keyed by its natural key (SQT), not a numbered short key."""
    id: str
    key: str
    name: str = ""
    created_at: Any = None
    cycles_enabled: Optional[bool] = None
    cycle_duration: Optional[int] = None
    estimation_type: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "TeamSnapshot":
        entity_id = require_id(d, "team")
        return cls(
            id=entity_id,
            key=d.get("key") or entity_id,
            name=d.get("name") or "",
            created_at=d.get("createdAt", d.get("created_at")),
            cycles_enabled=d.get("cyclesEnabled", d.get("cycles_enabled")),
            cycle_duration=d.get("cycleDuration", d.get("cycle_duration")),
            estimation_type=d.get("issueEstimationType", d.get("estimation_type")),
        )


@dataclass(frozen=True)
class LabelSnapshot:
    """An issue label. Workspace labels have no team."""
    id: str
    created_at: Any
    name: str = ""
    color: Optional[str] = None
    team_id: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "LabelSnapshot":
        team = d.get("team") or {}
        return cls(
            id=require_id(d, "label"),
            created_at=d.get("createdAt", d.get("created_at")),
            name=d.get("name") or "",
            color=d.get("color"),
            team_id=d.get("teamId", d.get("team_id")) or team.get("id"),
        )


# Metadata cached per UUID is the snapshot itself
UserMetadata = UserSnapshot
StateMetadata = StateSnapshot
ProjectMetadata = ProjectSnapshot
TeamMetadata = TeamSnapshot
LabelMetadata = LabelSnapshot


@dataclass
class RegistryBuildData:
    """Everything needed to build a registry."""
    users: Sequence[UserSnapshot] = ()
    states: Sequence[StateSnapshot] = ()
    projects: Sequence[ProjectSnapshot] = ()
    teams: Sequence[TeamSnapshot] = ()
    labels: Sequence[LabelSnapshot] = ()
    workspace_id: str = ""
    team_id: Optional[str] = None  # legacy single-team mode: only this team's states
    default_team_id: Optional[str] = None
    url_key: Optional[str] = None  # workspace URL slug

    @classmethod
    def from_dict(cls, d: dict) -> "RegistryBuildData":
        """Build from a plain dict (e.g. a JSON snapshot export)."""
        return cls(
            users=[UserSnapshot.from_dict(u) for u in d.get("users", [])],
            states=[StateSnapshot.from_dict(s) for s in d.get("states", [])],
            projects=[ProjectSnapshot.from_dict(p) for p in d.get("projects", [])],
            teams=[TeamSnapshot.from_dict(t) for t in d.get("teams", [])],
            labels=[LabelSnapshot.from_dict(lb) for lb in d.get("labels", [])],
            workspace_id=d.get("workspaceId", d.get("workspace_id")) or "",
            team_id=d.get("teamId", d.get("team_id")),
            default_team_id=d.get("defaultTeamId", d.get("default_team_id")),
            url_key=d.get("urlKey", d.get("url_key")),
        )


# ============================================================================
# Registry
# ============================================================================


def _empty_maps() -> dict[str, dict]:
    return {t: {} for t in ENTITY_TYPES}


@dataclass
class ShortKeyRegistry:
    """Session-scoped bidirectional key <-> UUID maps plus cached metadata."""
    keys: dict[str, dict[str, str]] = field(default_factory=_empty_maps)  # type -> key -> uuid
    by_uuid: dict[str, dict[str, str]] = field(default_factory=_empty_maps)  # type -> uuid -> key
    metadata: dict[str, dict[str, Any]] = field(default_factory=_empty_maps)  # type -> uuid -> snapshot
    project_slugs: dict[str, str] = field(default_factory=dict)  # slug / hash / lower name -> key
    team_keys: dict[str, str] = field(default_factory=dict)  # team uuid -> lowercase key
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    workspace_id: str = ""
    default_team_id: Optional[str] = None
    url_key: Optional[str] = None
    transport: Optional[str] = None  # stdio | http

    @property
    def users(self) -> dict[str, str]:
        return self.keys["user"]

    @property
    def states(self) -> dict[str, str]:
        return self.keys["state"]

    @property
    def projects(self) -> dict[str, str]:
        return self.keys["project"]

    @property
    def teams(self) -> dict[str, str]:
        return self.keys["team"]

    @property
    def labels(self) -> dict[str, str]:
        return self.keys["label"]

    @property
    def default_team_key(self) -> Optional[str]:
        """Lowercase key of the default team, if one is configured."""
        if not self.default_team_id:
            return None
        return self.team_keys.get(self.default_team_id)

    def is_empty(self) -> bool:
        return not any(self.keys[t] for t in ENTITY_TYPES)


def _check_type(entity_type: str) -> None:
    if entity_type not in ENTITY_TYPES:
        raise RegistryError(
            f"Unknown entity type '{entity_type}'",
            code="UNKNOWN_ENTITY_TYPE",
            hint=f"Valid types: {', '.join(ENTITY_TYPES)}",
        )


def team_prefix(
    team_id: Optional[str],
    default_team_id: Optional[str],
    team_keys: dict[str, str],
) -> str:
    """Prefix for a team-scoped key: '' for the default team, 'sqm:' otherwise.

    Without a default team everything is unprefixed (single-team mode). A team
    whose key is unknown also gets no prefix and shares the default scope.
    """
    if not default_team_id or not team_id or team_id == default_team_id:
        return ""
    key = team_keys.get(team_id)
    return f"{key.lower()}:" if key else ""


def _sort_by_created(snapshots: Iterable[Any]) -> list[Any]:
    """Oldest first; sorted() is stable so ties keep input order."""
    items = list(snapshots)
    stamps = {id(s): _parse_timestamp(s.created_at, s.id) for s in items}
    return sorted(items, key=lambda s: stamps[id(s)])


def _assign_keys(
    snapshots: Iterable[Any],
    tag: str,
    scope_of: Callable[[Any], str] = lambda s: "",
) -> tuple[dict[str, str], dict[str, str]]:
    """Number snapshots 0..N-1 within each scope, in createdAt order."""
    key_to_uuid: dict[str, str] = {}
    uuid_to_key: dict[str, str] = {}
    counters: dict[str, int] = {}
    for snapshot in _sort_by_created(snapshots):
        scope = scope_of(snapshot)
        index = counters.get(scope, 0)
        counters[scope] = index + 1
        short_key = f"{scope}{tag}{index}"
        key_to_uuid[short_key] = snapshot.id
        uuid_to_key[snapshot.id] = short_key
    return key_to_uuid, uuid_to_key


def _hash_suffix(slug_id: str) -> Optional[str]:
    """Trailing hex hash of a project slug: 'launch-878d2a8b5972' -> '878d2a8b5972'."""
    head, sep, tail = slug_id.rpartition("-")
    if sep and head and HEX_SUFFIX_RE.match(tail):
        return tail
    return None


def _index_project_slug(registry: ShortKeyRegistry, project: ProjectSnapshot, short_key: str) -> None:
    if not project.slug_id:
        return
    registry.project_slugs[project.slug_id] = short_key
    suffix = _hash_suffix(project.slug_id)
    if suffix:
        registry.project_slugs[suffix] = short_key


def build_registry(
    data: RegistryBuildData,
    now: Optional[datetime] = None,
    transport: Optional[str] = None,
) -> ShortKeyRegistry:
    """Build a registry from workspace snapshots.

    Args:
        data: Snapshots per type plus team/workspace options
        now: Generation timestamp (defaults to current UTC time)
        transport: Transport the registry serves (stdio or http)

    Returns:
        A fully populated ShortKeyRegistry. Empty input gives an empty registry.

    Raises:
        RegistryError: if a snapshot has no id or an unparseable createdAt
    """
    registry = ShortKeyRegistry(
        generated_at=now or datetime.now(timezone.utc),
        workspace_id=data.workspace_id,
        default_team_id=data.default_team_id,
        url_key=data.url_key,
        transport=transport,
    )

    for team in data.teams:
        registry.team_keys[team.id] = team.key.lower()
        registry.keys["team"][team.key.upper()] = team.id
        registry.by_uuid["team"][team.id] = team.key.upper()
        registry.metadata["team"][team.id] = team

    def scope_of(snapshot: Any) -> str:
        return team_prefix(snapshot.team_id, data.default_team_id, registry.team_keys)

    # Users: inactive users keep metadata (for status labels) but get no key
    active_users = [u for u in data.users if u.active]
    registry.keys["user"], registry.by_uuid["user"] = _assign_keys(active_users, KEY_PREFIXES["user"])
    registry.metadata["user"] = {u.id: u for u in data.users}

    states = [s for s in data.states if not data.team_id or s.team_id == data.team_id]
    registry.keys["state"], registry.by_uuid["state"] = _assign_keys(states, KEY_PREFIXES["state"], scope_of)
    registry.metadata["state"] = {s.id: s for s in states}

    registry.keys["project"], registry.by_uuid["project"] = _assign_keys(
        data.projects, KEY_PREFIXES["project"]
    )
    registry.metadata["project"] = {p.id: p for p in data.projects}

    for label in _sort_by_created(data.labels):
        short_key = f"{scope_of(label)}{label.name}"
        # First (oldest) label wins a duplicated name within one scope
        if short_key.lower() in {k.lower() for k in registry.keys["label"]}:
            registry.metadata["label"][label.id] = label
            continue
        registry.keys["label"][short_key] = label.id
        registry.by_uuid["label"][label.id] = short_key
        registry.metadata["label"][label.id] = label

    for project in data.projects:
        _index_project_slug(registry, project, registry.by_uuid["project"][project.id])

    # Named markdown links: index lowercase project name unless two projects share it
    ambiguous: set[str] = set()
    for project in data.projects:
        if not project.name:
            continue
        name_key = project.name.lower()
        short_key = registry.by_uuid["project"][project.id]
        if name_key in ambiguous:
            continue
        existing = registry.project_slugs.get(name_key)
        if existing is None:
            registry.project_slugs[name_key] = short_key
        elif existing != short_key:
            del registry.project_slugs[name_key]
            ambiguous.add(name_key)

    return registry


# ============================================================================
# Key parsing
# ============================================================================


@dataclass(frozen=True)
class ParsedKey:
    """Components of a numbered short key."""
    team_prefix: Optional[str]
    entity_type: str
    index: int
    digits: str


def parse_short_key(key: str) -> Optional[ParsedKey]:
    """Split 'sqm:s0' into (sqm, state, 0). None for anything else.

    >>> parse_short_key("pr10").entity_type
    'project'
    """
    match = SHORT_KEY_RE.match(key.strip())
    if not match:
        return None
    prefix, tag, digits = match.groups()
    return ParsedKey(
        team_prefix=prefix.lower() if prefix else None,
        entity_type=TAG_TYPES[tag.lower()],
        index=int(digits),
        digits=digits,
    )


def parse_label_key(key: str) -> tuple[Optional[str], str]:
    """Split 'sqm:Bugs' into ('sqm', 'Bugs').

    Only the first colon separates; label names may contain colons.
    """
    prefix, sep, name = key.partition(":")
    if sep and prefix:
        return prefix.lower(), name
    return None, key


def _normalize_key(registry: ShortKeyRegistry, entity_type: str, short_key: str) -> str:
    """Canonical lookup form for flexible model input.

    - 'S0', ' s0 ' -> 's0'
    - 'sqt:s0' with SQT as default team -> 's0'
    - 'sqt:u0' -> 'u0' (users and projects are global)
    - 'SQM:s0' -> 'sqm:s0'
    """
    parsed = parse_short_key(short_key)
    if not parsed:
        return short_key.strip()
    tag = KEY_PREFIXES[parsed.entity_type]
    if not parsed.team_prefix:
        return f"{tag}{parsed.digits}"
    if parsed.team_prefix == registry.default_team_key or entity_type in ("user", "project"):
        return f"{tag}{parsed.digits}"
    return f"{parsed.team_prefix}:{tag}{parsed.digits}"


def _resolve_label(registry: ShortKeyRegistry, key: str) -> Optional[str]:
    labels = registry.keys["label"]
    prefix, name = parse_label_key(key.strip())
    if prefix and prefix == registry.default_team_key:
        candidates = [name]
    else:
        candidates = [key.strip()]
    for candidate in candidates:
        if candidate in labels:
            return labels[candidate]
        lowered = candidate.lower()
        for label_key, label_id in labels.items():
            if label_key.lower() == lowered:
                return label_id
    return None


# ============================================================================
# Resolution
# ============================================================================


def resolve(registry: ShortKeyRegistry, entity_type: str, key: Optional[str]) -> Optional[str]:
    """Resolve a short key (or a UUID registered for this type) to a UUID.

    Never raises for an unknown key; returns None so callers can build a
    structured failure listing valid keys. Syntactically valid but unassigned
    keys (u9999) are treated exactly like unrecognised ones.

    Args:
        registry: The session registry
        entity_type: user, state, project, team or label
        key: Short key, natural key, label name or UUID

    Returns:
        The UUID, or None if unrecognised
    """
    _check_type(entity_type)
    if not key:
        return None
    key = key.strip()
    # Only UUIDs registered under this type; a foreign or unknown UUID is unrecognised
    if key in registry.by_uuid[entity_type]:
        return key
    if entity_type == "team":
        return registry.keys["team"].get(key.upper())
    if entity_type == "label":
        return _resolve_label(registry, key)
    return registry.keys[entity_type].get(_normalize_key(registry, entity_type, key))


def reverse_lookup(registry: ShortKeyRegistry, entity_type: str, uuid: Optional[str]) -> Optional[str]:
    """Best-effort UUID -> short key. None for UUIDs outside the snapshot."""
    _check_type(entity_type)
    if not uuid:
        return None
    return registry.by_uuid[entity_type].get(uuid)


def get_short_key(registry: ShortKeyRegistry, entity_type: str, uuid: str) -> str:
    """Like reverse_lookup but raises ResolutionError(ENTITY_NOT_FOUND)."""
    short_key = reverse_lookup(registry, entity_type, uuid)
    if short_key is None:
        known = registry.by_uuid[entity_type]
        sample = ", ".join(list(known)[:5])
        raise ResolutionError(
            f"UUID '{uuid}' not found in {entity_type} registry",
            code="ENTITY_NOT_FOUND",
            hint=f"Registry contains {len(known)} {entity_type}(s). Sample UUIDs: {sample}",
            suggestion=(
                "The entity may have been created after the registry was built. "
                "Call workspace_metadata with force_refresh to rebuild."
            ),
            entity_type=entity_type,
        )
    return short_key


def resolve_or_raise(registry: ShortKeyRegistry, entity_type: str, key: str) -> str:
    """Like resolve but raises ResolutionError with a sample of valid keys."""
    uuid = resolve(registry, entity_type, key)
    if uuid is not None:
        return uuid
    if entity_type in KEY_PREFIXES and key and parse_short_key(key) is None:
        raise invalid_key_format_error(entity_type, key)
    raise unknown_short_key_error(entity_type, key, list_short_keys(registry, entity_type))


def _key_sort(short_key: str) -> tuple:
    parsed = parse_short_key(short_key)
    if parsed is None:
        return (1, "", 0, short_key.lower())
    return (0, parsed.team_prefix or "", parsed.index, short_key)


def list_short_keys(registry: ShortKeyRegistry, entity_type: str) -> list[str]:
    """All keys for a type: unprefixed first, then by team prefix, numeric order."""
    _check_type(entity_type)
    return sorted(registry.keys[entity_type], key=_key_sort)


def has_short_key(registry: ShortKeyRegistry, entity_type: str, short_key: str) -> bool:
    _check_type(entity_type)
    return short_key in registry.keys[entity_type]


def has_uuid(registry: ShortKeyRegistry, entity_type: str, uuid: str) -> bool:
    _check_type(entity_type)
    return uuid in registry.by_uuid[entity_type]


# ============================================================================
# Metadata
# ============================================================================


def get_user_metadata(registry: ShortKeyRegistry, uuid: str) -> Optional[UserMetadata]:
    return registry.metadata["user"].get(uuid)


def get_state_metadata(registry: ShortKeyRegistry, uuid: str) -> Optional[StateMetadata]:
    return registry.metadata["state"].get(uuid)


def get_project_metadata(registry: ShortKeyRegistry, uuid: str) -> Optional[ProjectMetadata]:
    return registry.metadata["project"].get(uuid)


def get_team_metadata(registry: ShortKeyRegistry, uuid: str) -> Optional[TeamMetadata]:
    return registry.metadata["team"].get(uuid)


def get_label_metadata(registry: ShortKeyRegistry, uuid: str) -> Optional[LabelMetadata]:
    return registry.metadata["label"].get(uuid)


def user_status_label(registry: ShortKeyRegistry, uuid: str) -> str:
    """Label for a user without a short key.

    '(deactivated)' if the snapshot saw them inactive, '(departed)' if they
    were not in the snapshot at all. Reflects the registry at build time.
    """
    meta = registry.metadata["user"].get(uuid)
    return "(deactivated)" if meta is not None and not meta.active else "(departed)"


def team_key_index(registry: ShortKeyRegistry) -> set[str]:
    """Uppercase keys of every known team (for issue identifier matching)."""
    return {key.upper() for key in registry.team_keys.values()}


def project_slug_index(registry: ShortKeyRegistry) -> dict[str, str]:
    """Project short key -> slugId, for building project URLs."""
    slugs = {}
    for uuid, short_key in registry.by_uuid["project"].items():
        meta = registry.metadata["project"].get(uuid)
        if meta is not None and meta.slug_id:
            slugs[short_key] = meta.slug_id
    return slugs


def register_new_project(registry: ShortKeyRegistry, project: ProjectSnapshot) -> str:
    """Add a project created mid-session and return its key.

    Uses max index + 1, not the map size, so gaps never cause reuse.
    """
    existing = registry.by_uuid["project"].get(project.id)
    if existing:
        return existing
    max_index = -1
    for short_key in registry.keys["project"]:
        parsed = parse_short_key(short_key)
        if parsed and parsed.index > max_index:
            max_index = parsed.index
    short_key = f"{KEY_PREFIXES['project']}{max_index + 1}"

    registry.keys["project"][short_key] = project.id
    registry.by_uuid["project"][project.id] = short_key
    registry.metadata["project"][project.id] = project
    _index_project_slug(registry, project, short_key)
    if project.name:
        # Never overwrite another project's name entry
        registry.project_slugs.setdefault(project.name.lower(), short_key)
    return short_key


# ============================================================================
# Staleness
# ============================================================================


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def registry_age(registry: ShortKeyRegistry, now: Optional[datetime] = None) -> timedelta:
    """Time elapsed since the registry was generated."""
    return _now(now) - registry.generated_at


def is_stale(
    registry: ShortKeyRegistry,
    ttl: Optional[timedelta],
    now: Optional[datetime] = None,
) -> bool:
    """True once the registry is older than ttl. A ttl of None never expires."""
    if ttl is None:
        return False
    return registry_age(registry, now) > ttl


def remaining_ttl(
    registry: ShortKeyRegistry,
    ttl: Optional[timedelta],
    now: Optional[datetime] = None,
) -> Optional[timedelta]:
    """Time left before expiry, floored at zero. None means infinite."""
    if ttl is None:
        return None
    return max(timedelta(0), ttl - registry_age(registry, now))


def registry_stats(
    registry: ShortKeyRegistry,
    ttl: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Counts and freshness info for diagnostics."""
    remaining = remaining_ttl(registry, ttl, now)
    return {
        "workspace_id": registry.workspace_id,
        "users": len(registry.keys["user"]),
        "states": len(registry.keys["state"]),
        "projects": len(registry.keys["project"]),
        "teams": len(registry.keys["team"]),
        "labels": len(registry.keys["label"]),
        "age_seconds": int(registry_age(registry, now).total_seconds()),
        "remaining_ttl_seconds": int(remaining.total_seconds()) if remaining is not None else None,
        "stale": is_stale(registry, ttl, now),
        "transport": registry.transport,
    }
