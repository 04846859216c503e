"""Shared output formatting for CLI and MCP."""

from .format import format_response, render_cli
from .pagination import paginate, pagination_section

__all__ = ["format_response", "render_cli", "paginate", "pagination_section"]
