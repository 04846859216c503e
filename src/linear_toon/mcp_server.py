"""MCP server exposing short keys and TOON encoding to AI assistants.

The upstream Linear client lives elsewhere: tools here receive already-fetched
workspace payloads and response documents, keep one short key registry per
session, and return compact TOON text.

Supports directory-based configuration via .pm/config.json files.
"""

import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .output import format_response
from .pm_config import ToonContext, resolve_context
from .services import (
    build_session_registry,
    encode_document_payload,
    encoding_options,
    link_text as svc_link_text,
    resolve_keys as svc_resolve_keys,
    session_status,
    store_for_context,
    strip_text as svc_strip_text,
    workspace_document,
)
from .toon.errors import ToonError
from .toon.store import RegistryStore

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"

mcp = FastMCP(
    "linear-toon",
    instructions="""linear-toon - compact Linear data for LLMs

## Workflow
1. Call `workspace_metadata` once per session with the fetched workspace.
   It assigns short keys: users u0.., states s0.. (other teams: sqm:s0..),
   projects pr0.., teams by key (SQT), labels by name.
2. Use short keys everywhere; `resolve_keys` turns them back into IDs for writes.
3. `link_text` before sending descriptions upstream, `strip_text` on the way back.

## Output
TOON: `name[count]{field,...}:` then one indented row per line.
Sections starting with `_` are lookup tables.
""",
)

# Process-wide registry store; built lazily from the resolved config
_store: Optional[RegistryStore] = None


def _get_context(path: Optional[str] = None) -> ToonContext:
    return resolve_context(Path(path) if path else None)


def _get_store(context: ToonContext) -> RegistryStore:
    global _store
    if _store is None:
        _store = store_for_context(context)
    return _store


def _error(e: ToonError) -> dict:
    payload = e.to_dict()
    logger.info("Tool error %s: %s", payload["code"], payload["message"])
    return payload


# ============================================================================
# Tools
# ============================================================================


@mcp.tool()
def workspace_metadata(
    workspace: dict,
    session_id: str = DEFAULT_SESSION,
    force_refresh: bool = False,
    path: Optional[str] = None,
    format: str = "toon",
) -> dict:
    """Build this session's short keys from a fetched workspace and list them all.

    Args:
        workspace: Workspace payload (organization, users, teams with states/members, projects, labels)
        session_id: Session identifier (one registry per session)
        force_refresh: Rebuild even if the session already has fresh keys
        path: Directory for .pm/config.json detection
        format: toon or json
    """
    context = _get_context(path)
    store = _get_store(context)
    try:
        registry = build_session_registry(store, session_id, workspace, context, force_refresh)
    except ToonError as e:
        return _error(e)
    return format_response(
        workspace_document(registry),
        format,
        options=encoding_options(context, registry),
    )


@mcp.tool()
def resolve_keys(
    items: list[dict],
    session_id: str = DEFAULT_SESSION,
    path: Optional[str] = None,
) -> dict:
    """Resolve short keys to canonical IDs for write operations.

    Args:
        items: [{"type": "user|state|project|team|label", "key": "u0"}, ...]
        session_id: Session identifier

    Returns:
        {"resolved": [...], "errors": [...]}. Failures are per item.
    """
    try:
        registry = _get_store(_get_context(path)).require(session_id)
    except ToonError as e:
        return _error(e)
    return svc_resolve_keys(registry, items)


@mcp.tool()
def encode_document(
    document: dict,
    session_id: Optional[str] = None,
    path: Optional[str] = None,
) -> dict:
    """Encode a response document (meta, lookups, data) as TOON.

    Args:
        document: {"meta": {"fields", "values"}, "lookups": [...], "data": [...]};
            a section's schema is a catalog name ("issues") or {"name", "fields"}
        session_id: When given, project URLs in descriptions collapse to keys
    """
    context = _get_context(path)
    registry = _get_store(context).get(session_id) if session_id else None
    try:
        content = encode_document_payload(document, context, registry)
    except ToonError as e:
        return _error(e)
    return {"format": "toon", "content": content}


@mcp.tool()
def link_text(
    text: str,
    session_id: str = DEFAULT_SESSION,
    path: Optional[str] = None,
) -> dict:
    """Expand bare issue identifiers (SQT-123) and project keys (pr0) to URLs."""
    context = _get_context(path)
    try:
        registry = _get_store(context).require(session_id)
    except ToonError as e:
        return _error(e)
    return {"text": svc_link_text(text, registry, context)}


@mcp.tool()
def strip_text(
    text: str,
    session_id: Optional[str] = DEFAULT_SESSION,
    path: Optional[str] = None,
) -> dict:
    """Collapse issue/project URLs to compact references (issues work without a session)."""
    context = _get_context(path)
    registry = _get_store(context).get(session_id) if session_id else None
    return {"text": svc_strip_text(text, registry, context)}


@mcp.tool()
def registry_status(session_id: str = DEFAULT_SESSION, path: Optional[str] = None) -> dict:
    """Counts, age and TTL of this session's registry."""
    return session_status(_get_store(_get_context(path)), session_id)


@mcp.tool()
def clear_session(session_id: str = DEFAULT_SESSION, all_sessions: bool = False) -> dict:
    """Drop short keys for a session (or every session)."""
    if _store is None:
        return {"cleared": 0}
    if all_sessions:
        count = len(_store)
        _store.clear_all()
        return {"cleared": count}
    existed = session_id in _store
    _store.clear(session_id)
    return {"cleared": 1 if existed else 0}


def reset_store(store: Optional[RegistryStore] = None) -> None:
    """Replace the process-wide store (tests, reconfiguration)."""
    global _store
    _store = store


def main():
    """Run the MCP server."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
