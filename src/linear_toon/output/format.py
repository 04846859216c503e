"""Output formatting utilities for CLI and MCP."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

from ..toon.encoder import DEFAULT_OPTIONS, EncodingOptions, ResponseDocument, encode_response


def _encode_toon(payload: Any, options: EncodingOptions) -> str:
    """Encode a response document to TOON; other payloads as compact JSON."""
    if isinstance(payload, ResponseDocument):
        return encode_response(payload, options=options)
    return json.dumps(payload, separators=(",", ":"), default=str)


def _jsonable(payload: Any) -> Any:
    if isinstance(payload, ResponseDocument):
        return payload.to_dict()
    return payload


def format_response(
    payload: Any,
    output_format: str = "toon",
    text_renderer: Optional[Callable[[Any], str]] = None,
    options: EncodingOptions = DEFAULT_OPTIONS,
) -> dict:
    """Normalize response with format metadata and content.

    Args:
        payload: ResponseDocument or plain data to serialize.
        output_format: "toon", "json", or "text".
        text_renderer: Optional renderer for text output.
        options: Encoding options for TOON output.
    """
    output_format = (output_format or "toon").lower()

    if output_format == "json":
        return {"format": "json", "content": _jsonable(payload)}
    if output_format == "text":
        if text_renderer:
            content = text_renderer(payload)
        else:
            content = json.dumps(_jsonable(payload), indent=2, default=str)
        return {"format": "text", "content": content}

    return {"format": "toon", "content": _encode_toon(payload, options)}


def render_cli(response: dict) -> str:
    """Render a formatted response into a CLI string."""
    fmt = response.get("format")
    content = response.get("content")
    if fmt == "json":
        return json.dumps(content, indent=2, default=str)
    return str(content)
