"""Session-level operations shared by CLI and MCP.

Each takes the RegistryStore explicitly; the MCP server owns one process-wide
store, the CLI builds a throwaway one per invocation.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from ..pm_config import ToonContext
from ..toon.encoder import Meta, ResponseDocument, encode_response
from ..toon.errors import ToonError
from ..toon.lookups import (
    build_label_lookup,
    build_project_lookup,
    build_state_lookup,
    build_team_lookup,
    build_user_lookup,
)
from ..toon.references import ReferenceIndex, strip_with_registry
from ..toon.registry import ShortKeyRegistry, registry_stats, resolve_or_raise
from ..toon.store import RegistryStore
from ..workspace import build_data_from_workspace
from .context import encoding_options, load_context_profiles

WORKSPACE_META_FIELDS = ("workspace", "defaultTeam", "generatedAt", "transport")


def build_session_registry(
    store: RegistryStore,
    session_id: str,
    payload: dict,
    context: ToonContext,
    force_refresh: bool = False,
) -> ShortKeyRegistry:
    """Build (or reuse) the session registry from a fetched workspace payload.

    Raises:
        RegistryError: MALFORMED_SNAPSHOT or REGISTRY_INIT_FAILED
    """
    def fetch():
        return build_data_from_workspace(
            payload,
            default_team=context.default_team,
            profiles=load_context_profiles(context),
        )

    registry = store.get_or_build(session_id, fetch, force_refresh=force_refresh)
    if not registry.url_key and context.url_key:
        registry.url_key = context.url_key
    return registry


def workspace_document(registry: ShortKeyRegistry) -> ResponseDocument:
    """Every key in the registry as lookup sections, with a short meta line."""
    user_lookup = build_user_lookup(registry, registry.users.values())
    default_team = registry.default_team_key
    return ResponseDocument(
        meta=Meta(
            fields=WORKSPACE_META_FIELDS,
            values={
                "workspace": registry.url_key or registry.workspace_id,
                "defaultTeam": default_team.upper() if default_team else None,
                "generatedAt": registry.generated_at,
                "transport": registry.transport,
            },
        ),
        lookups=[
            build_team_lookup(registry),
            user_lookup.section,
            build_state_lookup(registry, registry.states.values()),
            build_project_lookup(registry, registry.projects.values()),
            build_label_lookup(registry),
        ],
    )


def resolve_keys(registry: ShortKeyRegistry, items: Iterable[dict]) -> dict:
    """Resolve ``[{"type": "state", "key": "s0"}, ...]``.

    Failures become per-item error entries; the batch never aborts.
    """
    resolved = []
    errors = []
    for index, item in enumerate(items):
        entity_type = item.get("type", "")
        key = item.get("key", "")
        try:
            uuid = resolve_or_raise(registry, entity_type, key)
        except ToonError as e:
            error = e.to_dict()
            error["index"] = index
            errors.append(error)
            continue
        resolved.append({"index": index, "type": entity_type, "key": key, "id": uuid})
    return {"resolved": resolved, "errors": errors}


def encode_document_payload(
    document: Any,
    context: ToonContext,
    registry: Optional[ShortKeyRegistry] = None,
) -> str:
    """Encode a document dict (or ResponseDocument), falling back to JSON on failure."""
    if not isinstance(document, ResponseDocument):
        document = ResponseDocument.from_dict(document)
    return encode_response(document, options=encoding_options(context, registry))


def link_text(text: str, registry: ShortKeyRegistry, context: ToonContext) -> str:
    """Expand bare references to URLs; unchanged if no workspace URL is known."""
    return ReferenceIndex.from_registry(registry, context.url_host).link(text)


def strip_text(text: str, registry: Optional[ShortKeyRegistry], context: ToonContext) -> str:
    return strip_with_registry(text, registry, context.url_host)


def session_status(store: RegistryStore, session_id: str) -> dict:
    registry = store.get(session_id)
    if registry is None:
        return {"session_id": session_id, "registry": None}
    return {
        "session_id": session_id,
        "registry": registry_stats(registry, store.ttl, store.clock()),
    }
