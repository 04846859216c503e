"""Pagination sections for list responses."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..toon.encoder import Section
from ..toon.schemas import PAGINATION_SCHEMA


def pagination_section(
    has_more: bool,
    fetched: int,
    cursor: Optional[str] = None,
    total: Optional[int] = None,
) -> Section:
    """``_pagination[1]{hasMore,cursor,fetched,total}`` section."""
    return Section(
        PAGINATION_SCHEMA,
        [{"hasMore": has_more, "cursor": cursor, "fetched": fetched, "total": total}],
    )


def paginate(items: Sequence[Any], limit: int, offset: int = 0) -> tuple[list[Any], Section]:
    """Slice items and describe the page.

    Offset-based: the cursor is the next offset, blank on the last page.
    """
    total_count = len(items)
    page = list(items[offset:offset + limit])
    has_more = offset + limit < total_count
    cursor = str(offset + limit) if has_more else None
    return page, pagination_section(has_more, len(page), cursor, total_count)
