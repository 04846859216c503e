"""Schema catalog for TOON output.

Design rules:
1. No UUIDs in output - the registry holds them.
2. Short keys for static entities - users (u0), states (s0), projects (pr0).
3. Natural keys where they exist - issues (SQT-123), teams (SQT), cycles (5),
   labels (name).
4. Lookup tables are prefixed with ``_``.

A schema may declare per-field formatters. The encoder applies them before
value encoding, so e.g. a priority of ``1`` renders as ``p1`` wherever the
schema asks for it and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

Formatter = Callable[[Any], Any]


@dataclass(frozen=True)
class Schema:
    """Named, ordered field list for one section of output."""
    name: str
    fields: tuple[str, ...]
    formatters: Mapping[str, Formatter] = field(default_factory=dict)

    def __post_init__(self):
        # Accept lists for convenience, store tuples
        object.__setattr__(self, "fields", tuple(self.fields))

    @property
    def is_lookup(self) -> bool:
        """Lookup/reference tables start with an underscore."""
        return self.name.startswith("_")

    def header(self, count: int) -> str:
        return f"{self.name}[{count}]{{{','.join(self.fields)}}}:"

    def with_fields(self, *fields: str) -> "Schema":
        """Subset view of this schema, keeping formatters for retained fields."""
        unknown = [f for f in fields if f not in self.fields]
        if unknown:
            raise ValueError(f"Fields not in schema '{self.name}': {', '.join(unknown)}")
        return Schema(
            name=self.name,
            fields=tuple(fields),
            formatters={k: v for k, v in self.formatters.items() if k in fields},
        )


# ============================================================================
# Formatters
# ============================================================================


def format_priority(priority: Optional[int]) -> Optional[str]:
    """Priority with 'p' prefix: 1 -> p1."""
    return f"p{priority}" if priority is not None else None


def format_estimate(estimate: Optional[float]) -> Optional[str]:
    """Estimate with 'e' prefix: 5 -> e5."""
    if estimate is None:
        return None
    if isinstance(estimate, float) and estimate.is_integer():
        estimate = int(estimate)
    return f"e{estimate}"


def format_cycle(cycle_number: Optional[int]) -> Optional[str]:
    """Cycle number with 'c' prefix: 5 -> c5."""
    return f"c{cycle_number}" if cycle_number is not None else None


# ============================================================================
# Lookup tables
# ============================================================================

USER_LOOKUP_SCHEMA = Schema("_users", ("key", "name", "displayName", "email", "role"))
STATE_LOOKUP_SCHEMA = Schema("_states", ("key", "name", "type"))
PROJECT_LOOKUP_SCHEMA = Schema("_projects", ("key", "name", "state"))
TEAM_LOOKUP_SCHEMA = Schema(
    "_teams", ("key", "name", "cyclesEnabled", "cycleDuration", "estimationType")
)
CYCLE_LOOKUP_SCHEMA = Schema("_cycles", ("num", "name", "start", "end", "active", "progress"))
LABEL_LOOKUP_SCHEMA = Schema("_labels", ("name", "color"))

# ============================================================================
# Data tables
# ============================================================================

ISSUE_SCHEMA = Schema(
    "issues",
    (
        "identifier",
        "title",
        "state",
        "assignee",
        "priority",
        "estimate",
        "project",
        "cycle",
        "dueDate",
        "labels",
        "parent",
        "team",
        "url",
        "desc",
        "createdAt",
        "creator",
    ),
    formatters={
        "priority": format_priority,
        "estimate": format_estimate,
        "cycle": format_cycle,
    },
)

COMMENT_SCHEMA = Schema("comments", ("issue", "user", "body", "createdAt"))
COMMENT_SCHEMA_WITH_ID = Schema("comments", ("id", "issue", "user", "body", "createdAt"))
RELATION_SCHEMA = Schema("relations", ("from", "type", "to"))
RELATION_SCHEMA_WITH_ID = Schema("relations", ("id", "from", "type", "to"))
ATTACHMENT_SCHEMA = Schema("attachments", ("issue", "title", "subtitle", "url", "sourceType"))

# ============================================================================
# Full entity tables (dedicated list tools)
# ============================================================================

TEAM_SCHEMA = Schema(
    "teams",
    ("key", "name", "description", "cyclesEnabled", "cycleDuration", "estimationType", "activeCycle"),
    formatters={"activeCycle": format_cycle},
)
USER_SCHEMA = Schema("users", ("key", "name", "displayName", "email", "active"))
CYCLE_SCHEMA = Schema("cycles", ("num", "name", "start", "end", "active", "progress"))
PROJECT_SCHEMA = Schema(
    "projects",
    (
        "key",
        "name",
        "description",
        "state",
        "priority",
        "progress",
        "lead",
        "teams",
        "startDate",
        "targetDate",
        "health",
    ),
    formatters={"priority": format_priority},
)
MILESTONE_SCHEMA = Schema("milestones", ("key", "name", "status", "targetDate", "progress", "project"))

# ============================================================================
# Pagination, write results, gap analysis
# ============================================================================

PAGINATION_SCHEMA = Schema("_pagination", ("hasMore", "cursor", "fetched", "total"))

WRITE_RESULT_META_SCHEMA = Schema("_meta", ("action", "succeeded", "failed", "total"))
WRITE_RESULT_SCHEMA = Schema("results", ("index", "status", "identifier", "error"))
CHANGES_SCHEMA = Schema("changes", ("identifier", "field", "before", "after"))
COMMENT_WRITE_RESULT_SCHEMA = Schema("results", ("index", "status", "issue", "error"))
CREATED_COMMENT_SCHEMA = Schema("comments", ("issue", "body", "createdAt"))
PROJECT_WRITE_RESULT_SCHEMA = Schema("results", ("index", "status", "key", "error"))
CREATED_PROJECT_SCHEMA = Schema("created", ("key", "name", "state"))
PROJECT_CHANGES_SCHEMA = Schema("changes", ("key", "field", "before", "after"))

# type: no_estimate | no_assignee | stale | blocked | priority_mismatch
GAP_SCHEMA = Schema("_gaps", ("type", "count", "issues"))

# ============================================================================
# Collections
# ============================================================================

LOOKUP_SCHEMAS = {
    "USER": USER_LOOKUP_SCHEMA,
    "STATE": STATE_LOOKUP_SCHEMA,
    "PROJECT": PROJECT_LOOKUP_SCHEMA,
    "TEAM": TEAM_LOOKUP_SCHEMA,
    "CYCLE": CYCLE_LOOKUP_SCHEMA,
    "LABEL": LABEL_LOOKUP_SCHEMA,
}

DATA_SCHEMAS = {
    "ISSUE": ISSUE_SCHEMA,
    "COMMENT": COMMENT_SCHEMA,
    "COMMENT_WITH_ID": COMMENT_SCHEMA_WITH_ID,
    "RELATION": RELATION_SCHEMA,
    "RELATION_WITH_ID": RELATION_SCHEMA_WITH_ID,
    "ATTACHMENT": ATTACHMENT_SCHEMA,
}

FULL_ENTITY_SCHEMAS = {
    "TEAM": TEAM_SCHEMA,
    "USER": USER_SCHEMA,
    "CYCLE": CYCLE_SCHEMA,
    "PROJECT": PROJECT_SCHEMA,
    "MILESTONE": MILESTONE_SCHEMA,
}

WRITE_SCHEMAS = {
    "META": WRITE_RESULT_META_SCHEMA,
    "RESULT": WRITE_RESULT_SCHEMA,
    "CHANGES": CHANGES_SCHEMA,
    "COMMENT_RESULT": COMMENT_WRITE_RESULT_SCHEMA,
    "CREATED_COMMENT": CREATED_COMMENT_SCHEMA,
    "PROJECT_RESULT": PROJECT_WRITE_RESULT_SCHEMA,
    "CREATED_PROJECT": CREATED_PROJECT_SCHEMA,
    "PROJECT_CHANGES": PROJECT_CHANGES_SCHEMA,
}


def get_schema(name: str) -> Schema:
    """Look up a catalog schema by section name (first match wins).

    Raises:
        KeyError: if no catalog schema has that name
    """
    for group in (LOOKUP_SCHEMAS, DATA_SCHEMAS, FULL_ENTITY_SCHEMAS, WRITE_SCHEMAS):
        for schema in group.values():
            if schema.name == name:
                return schema
    for schema in (PAGINATION_SCHEMA, GAP_SCHEMA):
        if schema.name == name:
            return schema
    raise KeyError(name)
