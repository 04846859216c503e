"""Context resolution helpers shared by CLI and MCP."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..pm_config import ToonContext, get_context_help_message, resolve_context
from ..profiles import UserProfilesConfig, load_user_profiles
from ..toon.encoder import EncodingOptions
from ..toon.registry import ShortKeyRegistry
from ..toon.store import RegistryStore


def resolve_context_info(path: Optional[Path] = None) -> dict:
    """Return context info and help text if not configured."""
    context = resolve_context(path)
    ttl = context.registry_ttl()
    return {
        "config_source": context.config_source,
        "config_path": str(context.config_path) if context.config_path else None,
        "default_team": context.default_team,
        "url_base": context.url_base(),
        "transport": context.transport,
        "registry_ttl_minutes": int(ttl.total_seconds() // 60) if ttl is not None else None,
        "profiles_path": context.profiles_path,
        "title_limit": context.title_limit,
        "desc_limit": context.desc_limit,
        "help": get_context_help_message(context) if context.config_source == "none" else None,
    }


def load_context_profiles(context: ToonContext) -> UserProfilesConfig:
    return load_user_profiles(context.profiles_path)


def store_for_context(context: ToonContext) -> RegistryStore:
    """Fresh registry store using the context's transport and TTL."""
    return RegistryStore(ttl=context.registry_ttl(), transport=context.transport)


def encoding_options(
    context: ToonContext,
    registry: Optional[ShortKeyRegistry] = None,
) -> EncodingOptions:
    """Encoding options from config limits plus the registry's project slug index."""
    return EncodingOptions(
        title_limit=context.title_limit,
        desc_limit=context.desc_limit,
        reference_resolver=dict(registry.project_slugs) if registry is not None else None,
        reference_host=context.url_host,
    )
