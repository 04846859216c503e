"""Directory-based configuration for the TOON bridge.

## .pm/ Folder

```
.pm/
└── config.json
```

### config.json Structure

```json
{
  "toon": {
    "default_team": "SQT",
    "url_key": "acme",
    "transport": "stdio",
    "ttl_minutes": 30,
    "profiles_path": "~/.config/linear-toon/profiles.json",
    "title_limit": 500,
    "desc_limit": 3000
  }
}
```

### Resolution Order

1. .pm/config.json in the directory or its parents
2. <user config dir>/linear-toon/config.json
3. Environment variables (DEFAULT_TEAM, LINEAR_URL_KEY, TOON_TRANSPORT,
   USER_PROFILES_PATH) for anything still unset
"""

import json
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from platformdirs import user_config_dir

APP_NAME = "linear-toon"

# User-level config location
USER_CONFIG_DIR = Path(user_config_dir(APP_NAME))
USER_CONFIG_FILE = USER_CONFIG_DIR / "config.json"

# Directory-level config
PM_CONFIG_DIR = ".pm"
PM_CONFIG_FILE = "config.json"
CONFIG_SECTION = "toon"

TRANSPORTS = ("stdio", "http")

ENV_DEFAULT_TEAM = "DEFAULT_TEAM"
ENV_URL_KEY = "LINEAR_URL_KEY"
ENV_TRANSPORT = "TOON_TRANSPORT"
ENV_PROFILES_PATH = "USER_PROFILES_PATH"


@dataclass
class ToonContext:
    """Resolved configuration for a directory."""

    # Source of config
    config_path: Optional[Path] = None
    config_source: str = "none"  # "directory", "parent", "user", "none"

    default_team: Optional[str] = None  # team key (SQT) or UUID
    url_key: Optional[str] = None  # workspace URL slug
    url_host: str = "linear.app"
    transport: str = "stdio"
    ttl_minutes: int = 30  # http only
    profiles_path: Optional[str] = None

    # Truncation
    title_limit: int = 500
    desc_limit: int = 3000

    def registry_ttl(self) -> Optional[timedelta]:
        """TTL for session registries. None (never expires) over stdio."""
        if self.transport == "stdio":
            return None
        return timedelta(minutes=self.ttl_minutes)

    def url_base(self) -> Optional[str]:
        """Workspace URL used when linking references."""
        if not self.url_key:
            return None
        return f"https://{self.url_host}/{self.url_key}"


def find_pm_config(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the nearest .pm/config.json by walking up the directory tree.

    Args:
        start_path: Directory to start searching from (default: cwd)

    Returns:
        Path to config.json if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    current = Path(start_path).resolve()

    while current != current.parent:
        config_path = current / PM_CONFIG_DIR / PM_CONFIG_FILE
        if config_path.exists():
            return config_path
        current = current.parent

    # Check root
    config_path = current / PM_CONFIG_DIR / PM_CONFIG_FILE
    if config_path.exists():
        return config_path

    return None


def load_pm_config(config_path: Path) -> dict:
    """Load and parse a config.json file."""
    with open(config_path) as f:
        return json.load(f) or {}


def load_user_config() -> Optional[dict]:
    """Load the user-level config file, if present."""
    if USER_CONFIG_FILE.exists():
        return load_pm_config(USER_CONFIG_FILE)
    return None


_STR_FIELDS = ("default_team", "url_key", "url_host", "transport", "profiles_path")
_INT_FIELDS = ("ttl_minutes", "title_limit", "desc_limit")
_ENV_FIELDS = {
    "default_team": ENV_DEFAULT_TEAM,
    "url_key": ENV_URL_KEY,
    "transport": ENV_TRANSPORT,
    "profiles_path": ENV_PROFILES_PATH,
}


def _apply_section(context: ToonContext, section: dict, explicit: set) -> None:
    """Copy valid values from a config section; fields already in ``explicit`` win."""
    for name in _STR_FIELDS + _INT_FIELDS:
        if name in explicit:
            continue
        value = section.get(name)
        if name in _INT_FIELDS:
            valid = isinstance(value, int) and not isinstance(value, bool) and value > 0
        else:
            valid = isinstance(value, str) and bool(value.strip())
        if valid:
            setattr(context, name, value.strip() if isinstance(value, str) else value)
            explicit.add(name)


def resolve_context(path: Optional[Path] = None) -> ToonContext:
    """Resolve configuration for a path.

    Args:
        path: Directory to resolve context for (default: cwd)

    Returns:
        ToonContext with resolved configuration

    Raises:
        ValueError: if the resolved transport is not stdio or http
    """
    context = ToonContext()
    explicit: set = set()

    # Step 1: Look for .pm/config.json
    pm_config_path = find_pm_config(path)

    if pm_config_path:
        data = load_pm_config(pm_config_path)
        context.config_path = pm_config_path

        target_dir = Path(path).resolve() if path else Path.cwd().resolve()
        config_dir = pm_config_path.parent.parent  # .pm/config.json -> .pm -> parent
        context.config_source = "directory" if config_dir == target_dir else "parent"

        _apply_section(context, data.get(CONFIG_SECTION, {}), explicit)

    # Step 2: Fall back to user config for anything unset
    user_config = load_user_config()
    if user_config:
        if not context.config_path:
            context.config_path = USER_CONFIG_FILE
            context.config_source = "user"
        _apply_section(context, user_config.get(CONFIG_SECTION, user_config), explicit)

    # Step 3: Environment
    for name, env_var in _ENV_FIELDS.items():
        value = os.environ.get(env_var)
        if name not in explicit and value and value.strip():
            setattr(context, name, value.strip())

    context.transport = context.transport.lower()
    if context.transport not in TRANSPORTS:
        raise ValueError(f"Unknown transport '{context.transport}' (expected one of: {', '.join(TRANSPORTS)})")

    return context


def create_pm_config(
    path: Path,
    default_team: Optional[str] = None,
    url_key: Optional[str] = None,
    transport: Optional[str] = None,
    profiles_path: Optional[str] = None,
) -> Path:
    """Create a .pm/config.json file in the specified directory.

    Args:
        path: Directory to create .pm/ in
        default_team: Default team key or UUID
        url_key: Workspace URL slug
        transport: stdio or http
        profiles_path: Path to a user profiles JSON file

    Returns:
        Path to created config file
    """
    pm_dir = Path(path) / PM_CONFIG_DIR
    pm_dir.mkdir(exist_ok=True)

    section = {}
    if default_team:
        section["default_team"] = default_team
    if url_key:
        section["url_key"] = url_key
    if transport:
        section["transport"] = transport
    if profiles_path:
        section["profiles_path"] = profiles_path

    config_path = pm_dir / PM_CONFIG_FILE
    with open(config_path, "w") as f:
        json.dump({CONFIG_SECTION: section}, f, indent=2)

    return config_path


def get_context_help_message(context: ToonContext) -> str:
    """Generate a helpful message about the current context."""
    if context.config_source == "none" and not (context.default_team or context.url_key):
        return """No configuration found.

To configure this directory, create .pm/config.json:

```json
{
  "toon": {
    "default_team": "SQT",
    "url_key": "your-workspace"
  }
}
```

Or run: linear-toon init
"""

    lines = [f"TOON Context (from {context.config_source}):"]
    lines.append(f"  Config: {context.config_path}")
    lines.append(f"  Default team: {context.default_team or 'Not configured'}")
    lines.append(f"  Workspace URL: {context.url_base() or 'Not configured'}")
    ttl = context.registry_ttl()
    lines.append(f"  Transport: {context.transport} (registry TTL: {'none' if ttl is None else ttl})")
    if context.profiles_path:
        lines.append(f"  Profiles: {context.profiles_path}")
    lines.append(f"  Limits: title {context.title_limit}, description {context.desc_limit}")
    return "\n".join(lines)
