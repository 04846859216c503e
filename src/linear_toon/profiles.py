"""User profile metadata (role, skills, focus area) matched by email.

Profiles help the model decide who should get what work. They live in a JSON
file or an environment variable:

```json
{
  "version": 1,
  "profiles": {
    "dev@example.com": {"role": "Senior Developer", "skills": ["Python"], "focusArea": "API"}
  },
  "defaults": {"role": "", "skills": [], "focusArea": ""}
}
```

A missing or invalid file never fails a request; it logs a warning and yields
an empty config.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Sequence

from .toon.registry import UserSnapshot

logger = logging.getLogger(__name__)

ENV_PROFILES_JSON = "USER_PROFILES_JSON"


@dataclass(frozen=True)
class UserProfile:
    role: Optional[str] = None
    skills: tuple[str, ...] = ()
    focus_area: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "UserProfile":
        return cls(
            role=d.get("role") or None,
            skills=tuple(d.get("skills") or ()),
            focus_area=d.get("focusArea", d.get("focus_area")) or None,
        )


@dataclass
class UserProfilesConfig:
    version: int = 1
    profiles: dict[str, UserProfile] = field(default_factory=dict)  # lowercase email -> profile
    defaults: UserProfile = field(default_factory=UserProfile)

    @classmethod
    def from_dict(cls, d: dict) -> "UserProfilesConfig":
        """Parse a config dict.

        Raises:
            ValueError: if ``profiles`` is missing or not an object
        """
        profiles = d.get("profiles")
        if not isinstance(profiles, dict):
            raise ValueError("profiles must be an object mapping email -> profile")
        return cls(
            version=d.get("version", 1),
            profiles={email.lower(): UserProfile.from_dict(p or {}) for email, p in profiles.items()},
            defaults=UserProfile.from_dict(d.get("defaults") or {}),
        )


def load_user_profiles(
    path: Optional[str] = None,
    env_json: Optional[str] = None,
) -> UserProfilesConfig:
    """Load profiles from an inline JSON string, else from a file.

    Args:
        path: Path to a profiles JSON file
        env_json: JSON string (defaults to $USER_PROFILES_JSON)

    Returns:
        Parsed config, or an empty one if nothing usable was found
    """
    env_json = env_json if env_json is not None else os.environ.get(ENV_PROFILES_JSON)
    if env_json:
        try:
            return UserProfilesConfig.from_dict(json.loads(env_json))
        except (ValueError, AttributeError) as e:
            logger.warning("Ignoring invalid inline user profiles: %s", e)
            return UserProfilesConfig()

    if not path:
        return UserProfilesConfig()
    profile_path = Path(path).expanduser()
    if not profile_path.exists():
        return UserProfilesConfig()
    try:
        with open(profile_path) as f:
            return UserProfilesConfig.from_dict(json.load(f))
    except (OSError, ValueError, AttributeError) as e:
        logger.warning("Ignoring unreadable user profiles file %s: %s", profile_path, e)
        return UserProfilesConfig()


def get_user_profile(config: UserProfilesConfig, email: Optional[str]) -> UserProfile:
    """Profile for an email (case-insensitive), else the defaults."""
    if not email:
        return config.defaults
    return config.profiles.get(email.lower(), config.defaults)


def apply_profiles(users: Sequence[UserSnapshot], config: UserProfilesConfig) -> list[UserSnapshot]:
    """Merge profile data into user snapshots; profile values win when set."""
    merged = []
    for user in users:
        profile = get_user_profile(config, user.email)
        merged.append(replace(
            user,
            role=profile.role or user.role,
            skills=profile.skills or user.skills,
            focus_area=profile.focus_area or user.focus_area,
        ))
    return merged
