"""Main CLI for linear-toon."""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from .output import format_response, render_cli
from .pm_config import create_pm_config, resolve_context
from .services import (
    build_session_registry,
    encoding_options,
    encode_document_payload,
    link_text,
    resolve_context_info,
    resolve_keys,
    store_for_context,
    strip_text,
    workspace_document,
)
from .toon.errors import ToonError
from .toon.registry import ENTITY_TYPES, ShortKeyRegistry

app = typer.Typer(
    name="linear-toon",
    help="Compact TOON encoding and short keys for Linear workspace data",
)
console = Console()

CLI_SESSION = "cli"


def _emit(text: str) -> None:
    """Print raw output: no Rich markup or emoji codes (TOON uses brackets and colons), no wrapping."""
    console.print(text, markup=False, emoji=False, highlight=False, soft_wrap=True)


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _load_json(path: Path) -> dict:
    if not path.exists():
        _fail(f"File not found: {path}")
    try:
        return json.loads(path.read_text())
    except ValueError as e:
        _fail(f"Invalid JSON in {path}: {e}")


def _read_text(text: str) -> str:
    """Text argument, or stdin when it is '-'."""
    return sys.stdin.read() if text == "-" else text


def _load_registry(workspace: Path, team: Optional[str], path: Optional[Path]) -> ShortKeyRegistry:
    context = resolve_context(path)
    if team:
        context.default_team = team
    payload = _load_json(workspace)
    try:
        return build_session_registry(store_for_context(context), CLI_SESSION, payload, context)
    except ToonError as e:
        _fail(f"{e.message}" + (f" ({e.cause})" if e.cause else ""))


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging for all commands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Context Commands
# ============================================================================


@app.command("context")
def show_context(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Path to check context for"),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format (json|text)"),
):
    """Show detected configuration for current or specified directory."""
    target_path = path or Path.cwd()
    try:
        data = resolve_context_info(target_path)
    except ValueError as e:
        _fail(str(e))
    response = format_response(data, output_format)
    _emit(render_cli(response))


@app.command("init")
def init_config(
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory to initialize"),
    team: Optional[str] = typer.Option(None, "--team", "-t", help="Default team key (e.g. SQT)"),
    url_key: Optional[str] = typer.Option(None, "--url-key", help="Workspace URL slug"),
    transport: Optional[str] = typer.Option(None, "--transport", help="stdio or http"),
):
    """Initialize .pm/config.json in current or specified directory."""
    target_path = Path(path) if path else Path.cwd()

    if not target_path.exists():
        _fail(f"Directory not found: {target_path}")

    existing_config = target_path / ".pm" / "config.json"
    if existing_config.exists():
        if not typer.confirm(f"Config already exists at {existing_config}. Overwrite?"):
            raise typer.Exit(0)

    if not team:
        team = typer.prompt("Default team key", default="")
        team = team or None

    config_path = create_pm_config(
        path=target_path,
        default_team=team,
        url_key=url_key,
        transport=transport,
    )

    console.print(f"\n[green]Created:[/green] {config_path}")
    _emit(config_path.read_text())


# ============================================================================
# Registry Commands
# ============================================================================


@app.command("keys")
def show_keys(
    workspace: Path = typer.Argument(..., help="Workspace payload JSON (users, teams, projects, labels)"),
    team: Optional[str] = typer.Option(None, "--team", "-t", help="Default team key (overrides config)"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory for config detection"),
    output_format: str = typer.Option("toon", "--format", "-f", help="Output format (toon|json)"),
):
    """Build short keys for a workspace and print every lookup table."""
    registry = _load_registry(workspace, team, path)
    context = resolve_context(path)

    response = format_response(
        workspace_document(registry),
        output_format,
        options=encoding_options(context, registry),
    )
    _emit(render_cli(response))


@app.command("resolve")
def resolve_command(
    workspace: Path = typer.Argument(..., help="Workspace payload JSON"),
    entity_type: str = typer.Argument(..., help=f"Entity type ({'|'.join(ENTITY_TYPES)})"),
    keys: list[str] = typer.Argument(..., help="Short keys to resolve (e.g. u0 s1 sqm:s0)"),
    team: Optional[str] = typer.Option(None, "--team", "-t", help="Default team key (overrides config)"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory for config detection"),
):
    """Resolve short keys to canonical IDs."""
    if entity_type not in ENTITY_TYPES:
        _fail(f"Unknown entity type '{entity_type}' (expected one of: {', '.join(ENTITY_TYPES)})")
    registry = _load_registry(workspace, team, path)
    result = resolve_keys(registry, [{"type": entity_type, "key": k} for k in keys])

    for item in result["resolved"]:
        _emit(f"{item['key']}  {item['id']}")
    for error in result["errors"]:
        console.print(f"[red]✗[/red] {error['message']}")
        if error.get("hint"):
            console.print(f"  [dim]{error['hint']}[/dim]", highlight=False)
    if result["errors"]:
        raise typer.Exit(1)


@app.command("encode")
def encode_command(
    document: Path = typer.Argument(..., help="Response document JSON (meta, lookups, data)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Workspace payload for URL collapsing"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory for config detection"),
):
    """Encode a response document as TOON (JSON fallback on schema mismatch)."""
    context = resolve_context(path)
    registry = _load_registry(workspace, None, path) if workspace else None
    payload = _load_json(document)
    try:
        _emit(encode_document_payload(payload, context, registry))
    except ToonError as e:
        _fail(e.message)


@app.command("link")
def link_command(
    workspace: Path = typer.Argument(..., help="Workspace payload JSON"),
    text: str = typer.Argument(..., help="Text to link ('-' reads stdin)"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory for config detection"),
):
    """Expand bare issue identifiers and project keys to URLs."""
    registry = _load_registry(workspace, None, path)
    context = resolve_context(path)
    if not registry.url_key:
        _fail("Workspace URL key unknown: set url_key in .pm/config.json or LINEAR_URL_KEY")
    _emit(link_text(_read_text(text), registry, context))


@app.command("strip")
def strip_command(
    text: str = typer.Argument(..., help="Text to compact ('-' reads stdin)"),
    workspace: Optional[Path] = typer.Option(None, "--workspace", "-w", help="Workspace payload for project URLs"),
    path: Optional[Path] = typer.Option(None, "--path", "-p", help="Directory for config detection"),
):
    """Collapse issue and project URLs back to compact references."""
    context = resolve_context(path)
    registry = _load_registry(workspace, None, path) if workspace else None
    _emit(strip_text(_read_text(text), registry, context))


if __name__ == "__main__":
    app()
