"""Shared service layer for CLI and MCP."""

from .context import encoding_options, load_context_profiles, resolve_context_info, store_for_context
from .toon_session import (
    build_session_registry,
    encode_document_payload,
    link_text,
    resolve_keys,
    session_status,
    strip_text,
    workspace_document,
)

__all__ = [
    "encoding_options",
    "load_context_profiles",
    "resolve_context_info",
    "store_for_context",
    "build_session_registry",
    "encode_document_payload",
    "link_text",
    "resolve_keys",
    "session_status",
    "strip_text",
    "workspace_document",
]
