"""Error types for short key resolution, registry lifecycle and encoding.

Every error carries a machine-readable ``code`` plus optional ``hint`` and
``suggestion`` text so tool handlers can hand the model something actionable
instead of a bare traceback.
"""

from __future__ import annotations

from typing import Any, Optional


class ToonError(Exception):
    """Base class for all TOON errors."""

    code: str = "TOON_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        suggestion: Optional[str] = None,
        cause: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.hint = hint
        self.suggestion = suggestion
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Structured form for API/tool responses."""
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
            "hint": self.hint,
            "suggestion": self.suggestion,
            "cause": self.cause,
        }


class ResolutionError(ToonError):
    """A short key could not be resolved to a canonical ID (or vice versa).

    Codes: UNKNOWN_SHORT_KEY, INVALID_KEY_FORMAT, ENTITY_NOT_FOUND.
    """

    code = "UNKNOWN_SHORT_KEY"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        suggestion: Optional[str] = None,
        entity_type: Optional[str] = None,
        short_key: Optional[str] = None,
        available_keys: Optional[list[str]] = None,
    ):
        super().__init__(message, code=code, hint=hint, suggestion=suggestion)
        self.entity_type = entity_type
        self.short_key = short_key
        self.available_keys = available_keys or []

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d.update({
            "entity_type": self.entity_type,
            "short_key": self.short_key,
            "available_keys": self.available_keys,
        })
        return d


class RegistryError(ToonError):
    """The registry could not be built, found or used.

    Codes: REGISTRY_INIT_FAILED, UNKNOWN_ENTITY_TYPE, MALFORMED_SNAPSHOT,
    SESSION_NOT_FOUND.
    """

    code = "REGISTRY_INIT_FAILED"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        suggestion: Optional[str] = None,
        cause: Optional[str] = None,
        session_id: Optional[str] = None,
    ):
        super().__init__(message, code=code, hint=hint, suggestion=suggestion, cause=cause)
        self.session_id = session_id

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d["session_id"] = self.session_id
        return d


class EncodingError(ToonError):
    """A response document does not match its schemas.

    Codes: FIELD_MISMATCH, INVALID_SCHEMA, UNSUPPORTED_TYPE.
    """

    code = "FIELD_MISMATCH"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        hint: Optional[str] = None,
        suggestion: Optional[str] = None,
        cause: Optional[str] = None,
        schema_name: Optional[str] = None,
        row_index: Optional[int] = None,
        field_name: Optional[str] = None,
    ):
        super().__init__(message, code=code, hint=hint, suggestion=suggestion, cause=cause)
        self.schema_name = schema_name
        self.row_index = row_index
        self.field_name = field_name

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        d.update({
            "schema_name": self.schema_name,
            "row_index": self.row_index,
            "field_name": self.field_name,
        })
        return d


KEY_TAGS = {"user": "u", "state": "s", "project": "pr"}


def unknown_short_key_error(
    entity_type: str,
    short_key: str,
    available_keys: list[str],
) -> ResolutionError:
    """Build the standard error for a key that is not in the registry."""
    sample = ", ".join(available_keys[:10])
    if len(available_keys) > 10:
        sample += "..."
    return ResolutionError(
        f"Unknown {entity_type} key '{short_key}'",
        code="UNKNOWN_SHORT_KEY",
        hint=f"Available keys: {sample}" if available_keys else f"No {entity_type} keys registered",
        suggestion="Call workspace_metadata to refresh available options",
        entity_type=entity_type,
        short_key=short_key,
        available_keys=available_keys,
    )


def invalid_key_format_error(entity_type: str, short_key: str) -> ResolutionError:
    """Build the standard error for a key that is not shaped like a short key."""
    tag = KEY_TAGS.get(entity_type, "")
    return ResolutionError(
        f"Invalid {entity_type} key format '{short_key}'",
        code="INVALID_KEY_FORMAT",
        hint=f"{entity_type.capitalize()} keys look like '{tag}N' (e.g. {tag}0, {tag}1)",
        suggestion="Use the correct key format or call workspace_metadata to see available keys",
        entity_type=entity_type,
        short_key=short_key,
    )
