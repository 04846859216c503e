"""TOON encoder: response documents -> compact line-oriented text.

Format:
- Meta: ``_meta{f1,f2}:`` then one indented line of values
- Section: ``name[count]{f1,f2}:`` then ``count`` indented, comma-joined rows
- Sections separated by a blank line; lookup tables start with ``_``

Fixed column order and short keys trade a one-time header for savings on
every row. A row must carry exactly its schema's fields; mismatches raise
EncodingError before any text is produced.
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from .errors import EncodingError, ToonError
from .references import DEFAULT_HOST, reverse_strip
from .schemas import Schema, get_schema

logger = logging.getLogger(__name__)

RowValue = Union[str, int, float, bool, None, datetime, date, Sequence[Any]]
Row = Mapping[str, RowValue]

# Values containing any of these (or boundary whitespace) are quoted
QUOTE_TRIGGERS = re.compile(r'[,"\n\r\\]')
IMAGE_RE = re.compile(r"!\[[^\]]*\]\([^)]+\)")

TEXT_FIELDS = ("desc", "description", "body")


@dataclass
class Meta:
    """Ordered metadata fields and their values."""
    fields: Sequence[str]
    values: Mapping[str, RowValue] = field(default_factory=dict)


@dataclass
class Section:
    """One table: a schema plus rows carrying exactly its fields."""
    schema: Schema
    rows: Sequence[Row] = field(default_factory=list)


@dataclass
class ResponseDocument:
    """Meta, then lookup sections, then data sections."""
    meta: Optional[Meta] = None
    lookups: list[Section] = field(default_factory=list)
    data: list[Section] = field(default_factory=list)

    def sections(self) -> list[Section]:
        return [*self.lookups, *self.data]

    def to_dict(self) -> dict:
        """Plain dict form (JSON output and fallback)."""
        def section_dict(section: Section) -> dict:
            return {
                "schema": {"name": section.schema.name, "fields": list(section.schema.fields)},
                "rows": [dict(row) for row in section.rows],
            }

        d: dict[str, Any] = {}
        if self.meta is not None:
            d["meta"] = {"fields": list(self.meta.fields), "values": dict(self.meta.values)}
        d["lookups"] = [section_dict(s) for s in self.lookups]
        d["data"] = [section_dict(s) for s in self.data]
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ResponseDocument":
        """Build from a dict. A section's schema may be a catalog name or {name, fields}."""
        def section_from(s: dict) -> Section:
            schema = s.get("schema")
            if isinstance(schema, str):
                try:
                    schema = get_schema(schema)
                except KeyError as e:
                    raise EncodingError(
                        f"Unknown schema '{schema}'",
                        code="INVALID_SCHEMA",
                        schema_name=schema,
                    ) from e
            elif isinstance(schema, dict) and schema.get("name") and schema.get("fields") is not None:
                schema = Schema(schema["name"], tuple(schema["fields"]))
            else:
                raise EncodingError(
                    "Section schema must be a catalog name or {name, fields}",
                    code="INVALID_SCHEMA",
                )
            return Section(schema=schema, rows=list(s.get("rows", s.get("items", []))))

        meta = d.get("meta")
        return cls(
            meta=Meta(fields=list(meta["fields"]), values=dict(meta.get("values", {}))) if meta else None,
            lookups=[section_from(s) for s in d.get("lookups", [])],
            data=[section_from(s) for s in d.get("data", [])],
        )


@dataclass
class EncodingOptions:
    """Knobs for row rendering."""
    indent: str = "  "
    title_limit: Optional[int] = 500
    desc_limit: Optional[int] = 3000
    default_limit: Optional[int] = None
    truncation_indicator: str = "... [truncated]"
    # Clean description-like fields: collapse reference URLs, count images
    clean_text: bool = True
    # slug / hash / lowercase name -> project key, for project URL collapsing
    reference_resolver: Optional[Mapping[str, str]] = None
    reference_host: str = DEFAULT_HOST


DEFAULT_OPTIONS = EncodingOptions()


@dataclass
class EncodingResult:
    success: bool
    output: Optional[str] = None
    error: Optional[EncodingError] = None


# ============================================================================
# Values
# ============================================================================


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    escaped = escaped.replace("\r\n", "\\n").replace("\r", "\\n").replace("\n", "\\n")
    return f'"{escaped}"'


def _encode_string(text: str) -> str:
    if text == "":
        # Explicit empty string stays distinguishable from null
        return '""'
    if QUOTE_TRIGGERS.search(text) or text != text.strip():
        return _quote(text)
    return text


def _encode_number(value: Union[int, float]) -> str:
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return ""
        if value.is_integer():
            return str(int(value))
        mantissa, sep, exponent = repr(value).partition("e")
        if not sep:
            return mantissa
        # 1e-07 -> 1e-7
        sign = "-" if exponent.startswith("-") else ""
        return mantissa + "e" + sign + exponent.lstrip("+-").lstrip("0")
    return str(value)


def _list_item(value: RowValue) -> str:
    if not isinstance(value, str):
        return encode_value(value)
    # Commas inside an item are escaped so item boundaries survive the join
    return value.replace("\\", "\\\\").replace(",", "\\,")


def encode_value(value: RowValue) -> str:
    """Encode one value.

    - None -> blank; "" -> ``""``
    - bool -> true/false
    - numbers in minimal form (5.0 -> 5); NaN/inf -> blank
    - datetime -> ISO-8601 (UTC as Z); date -> YYYY-MM-DD
    - lists -> items joined by commas (commas and backslashes inside an item
      backslash-escaped), then quoted like any string
    - strings with delimiters, quotes, backslashes, newlines or boundary
      whitespace -> quoted with backslash escapes

    Raises:
        EncodingError: UNSUPPORTED_TYPE for anything else
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return _encode_number(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None and value.utcoffset() == timezone.utc.utcoffset(None):
            return value.replace(tzinfo=None).isoformat() + "Z"
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return _encode_string(value)
    if isinstance(value, (list, tuple)):
        items = [v for v in value if v is not None]
        if not items:
            return ""
        joined = ",".join(_list_item(v) for v in items)
        return _encode_string(joined)
    raise EncodingError(
        f"Cannot encode value of type {type(value).__name__}",
        code="UNSUPPORTED_TYPE",
        hint="Row values must be str, int, float, bool, None, date, datetime or a list of those",
    )


# ============================================================================
# Text cleanup
# ============================================================================


def strip_markdown_images(text: Optional[str]) -> Optional[str]:
    """Replace markdown images with a count: 'See ![x](u) here' -> 'See here [1 image]'."""
    if not text:
        return text
    count = len(IMAGE_RE.findall(text))
    if count == 0:
        return text
    result = re.sub(r" {2,}", " ", IMAGE_RE.sub("", text))
    suffix = "[1 image]" if count == 1 else f"[{count} images]"
    if not result.strip():
        return suffix
    return f"{result.rstrip()} {suffix}"


def truncate_value(text: str, limit: Optional[int], indicator: str) -> str:
    """Cut text to at most ``limit`` characters, indicator included."""
    if limit is None or len(text) <= limit:
        return text
    cut = limit - len(indicator)
    if cut <= 0:
        return indicator
    return text[:cut] + indicator


def _limit_for(field_name: str, options: EncodingOptions) -> Optional[int]:
    if field_name == "title":
        return options.title_limit
    if field_name in ("desc", "description"):
        return options.desc_limit
    return options.default_limit


# ============================================================================
# Validation
# ============================================================================


def row_field_mismatches(row: Row, schema: Schema) -> tuple[list[str], list[str]]:
    """(missing, extra) field names for a row against its schema."""
    missing = [f for f in schema.fields if f not in row]
    extra = [k for k in row if k not in schema.fields]
    return missing, extra


def validate_row_against_schema(
    row: Row,
    schema: Schema,
    row_index: Optional[int] = None,
) -> None:
    """Check a row carries exactly the schema's fields.

    Raises:
        EncodingError: FIELD_MISMATCH naming the section, row index and the
            first offending field
    """
    if not isinstance(row, Mapping):
        raise EncodingError(
            f"Row {row_index} in section '{schema.name}' is not a mapping",
            code="FIELD_MISMATCH",
            schema_name=schema.name,
            row_index=row_index,
        )
    missing, extra = row_field_mismatches(row, schema)
    if missing:
        raise EncodingError(
            f"Row {row_index} in section '{schema.name}' is missing fields: {', '.join(missing)}",
            code="FIELD_MISMATCH",
            hint="Rows must provide every field declared by the schema (use None for blanks)",
            schema_name=schema.name,
            row_index=row_index,
            field_name=missing[0],
        )
    if extra:
        raise EncodingError(
            f"Row {row_index} in section '{schema.name}' has undeclared fields: {', '.join(extra)}",
            code="FIELD_MISMATCH",
            hint="Rows must not carry fields the schema does not declare",
            schema_name=schema.name,
            row_index=row_index,
            field_name=extra[0],
        )


def validate_document(document: ResponseDocument) -> None:
    """Validate meta and every row of every section, in output order."""
    if document.meta is not None:
        meta_schema = Schema("_meta", tuple(document.meta.fields))
        validate_row_against_schema(document.meta.values, meta_schema, row_index=0)
    for section in document.sections():
        for i, row in enumerate(section.rows):
            validate_row_against_schema(row, section.schema, row_index=i)


# ============================================================================
# Encoding
# ============================================================================


def _prepare(field_name: str, value: RowValue, schema: Schema, options: EncodingOptions) -> RowValue:
    formatter = schema.formatters.get(field_name)
    if formatter is not None:
        value = formatter(value)
    if not isinstance(value, str) or value == "":
        return value
    if options.clean_text and field_name in TEXT_FIELDS:
        value = reverse_strip(value, options.reference_resolver, options.reference_host)
        value = strip_markdown_images(value)
    return truncate_value(value, _limit_for(field_name, options), options.truncation_indicator)


def encode_row(row: Row, schema: Schema, options: EncodingOptions = DEFAULT_OPTIONS) -> str:
    """Encode one row in schema field order (no indent)."""
    return ",".join(
        encode_value(_prepare(name, row[name], schema, options)) for name in schema.fields
    )


def encode_section(section: Section, options: EncodingOptions = DEFAULT_OPTIONS) -> str:
    """Header plus one indented line per row. Zero rows -> header only, count 0."""
    lines = [section.schema.header(len(section.rows))]
    for i, row in enumerate(section.rows):
        validate_row_against_schema(row, section.schema, row_index=i)
        lines.append(f"{options.indent}{encode_row(row, section.schema, options)}")
    return "\n".join(lines)


def encode_meta(meta: Meta, options: EncodingOptions = DEFAULT_OPTIONS) -> str:
    header = f"_meta{{{','.join(meta.fields)}}}:"
    values = ",".join(encode_value(meta.values[name]) for name in meta.fields)
    return f"{header}\n{options.indent}{values}"


def encode(document: ResponseDocument, options: EncodingOptions = DEFAULT_OPTIONS) -> str:
    """Encode a full response document.

    Raises:
        EncodingError: if any row does not match its schema or holds an
            unsupported value. Nothing partial is returned.
    """
    validate_document(document)
    blocks = []
    if document.meta is not None:
        blocks.append(encode_meta(document.meta, options))
    for section in document.sections():
        blocks.append(encode_section(section, options))
    return "\n\n".join(blocks)


def safe_encode(document: ResponseDocument, options: EncodingOptions = DEFAULT_OPTIONS) -> EncodingResult:
    """encode() that reports failure instead of raising."""
    try:
        return EncodingResult(success=True, output=encode(document, options))
    except EncodingError as e:
        return EncodingResult(success=False, error=e)


def encode_response(
    document: ResponseDocument,
    data: Any = None,
    options: EncodingOptions = DEFAULT_OPTIONS,
) -> str:
    """Encode, falling back to JSON so the caller always gets usable output.

    Args:
        document: Response document to encode
        data: Raw data to embed in the fallback (defaults to the document itself)
        options: Encoding options
    """
    try:
        return encode(document, options)
    except ToonError as e:
        logger.warning("TOON encoding failed, falling back to JSON: %s", e.message)
        fallback = {
            "_fallback": "json",
            "_reason": e.message,
            "data": data if data is not None else document.to_dict(),
        }
        return json.dumps(fallback, indent=2, default=str)
