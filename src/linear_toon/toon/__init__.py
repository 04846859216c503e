"""TOON core: schema catalog, short key registry, encoder, reference rewriter."""

from .encoder import (
    EncodingOptions,
    EncodingResult,
    Meta,
    ResponseDocument,
    Section,
    encode,
    encode_response,
    encode_row,
    encode_section,
    encode_value,
    safe_encode,
    strip_markdown_images,
    validate_document,
    validate_row_against_schema,
)
from .errors import EncodingError, RegistryError, ResolutionError, ToonError
from .lookups import (
    UserLookup,
    build_label_lookup,
    build_project_lookup,
    build_state_lookup,
    build_team_lookup,
    build_user_lookup,
)
from .references import ReferenceIndex, forward_link, reverse_strip, scan
from .registry import (
    LabelSnapshot,
    ProjectSnapshot,
    RegistryBuildData,
    ShortKeyRegistry,
    StateSnapshot,
    TeamSnapshot,
    UserSnapshot,
    build_registry,
    get_project_metadata,
    get_short_key,
    get_state_metadata,
    get_user_metadata,
    is_stale,
    parse_short_key,
    register_new_project,
    registry_age,
    remaining_ttl,
    resolve,
    resolve_or_raise,
    reverse_lookup,
)
from .schemas import Schema, get_schema
from .store import RegistryStore
from .writeback import WriteResults

__all__ = [
    "EncodingOptions",
    "EncodingResult",
    "Meta",
    "ResponseDocument",
    "Section",
    "encode",
    "encode_response",
    "encode_row",
    "encode_section",
    "encode_value",
    "safe_encode",
    "strip_markdown_images",
    "validate_document",
    "validate_row_against_schema",
    "EncodingError",
    "RegistryError",
    "ResolutionError",
    "ToonError",
    "UserLookup",
    "build_label_lookup",
    "build_project_lookup",
    "build_state_lookup",
    "build_team_lookup",
    "build_user_lookup",
    "ReferenceIndex",
    "forward_link",
    "reverse_strip",
    "scan",
    "LabelSnapshot",
    "ProjectSnapshot",
    "RegistryBuildData",
    "ShortKeyRegistry",
    "StateSnapshot",
    "TeamSnapshot",
    "UserSnapshot",
    "build_registry",
    "get_project_metadata",
    "get_short_key",
    "get_state_metadata",
    "get_user_metadata",
    "is_stale",
    "parse_short_key",
    "register_new_project",
    "registry_age",
    "remaining_ttl",
    "resolve",
    "resolve_or_raise",
    "reverse_lookup",
    "Schema",
    "get_schema",
    "RegistryStore",
    "WriteResults",
]
