"""Session-scoped registry storage.

One registry per session id. Reads are TTL-checked lazily against the
registry's generation timestamp; nothing sweeps in the background. Two builds
racing within one session resolve as last-writer-wins, which is harmless
because rebuilding from the same upstream snapshot gives identical keys.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .errors import RegistryError
from .registry import RegistryBuildData, ShortKeyRegistry, build_registry, is_stale, remaining_ttl

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=30)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RegistryStore:
    """Keyed map of session id -> registry with an injected clock and TTL.

    Pass ``ttl=None`` for registries that never expire (stdio transport, where
    the user controls refresh).
    """

    def __init__(
        self,
        ttl: Optional[timedelta] = DEFAULT_TTL,
        clock: Clock = utc_now,
        transport: Optional[str] = None,
    ):
        self.ttl = ttl
        self.clock = clock
        self.transport = transport
        self._registries: dict[str, ShortKeyRegistry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._registries)

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def store(self, session_id: str, registry: ShortKeyRegistry) -> None:
        """Store (or replace) the registry for a session."""
        with self._lock:
            self._registries[session_id] = registry

    def get(self, session_id: str) -> Optional[ShortKeyRegistry]:
        """Registry for a session, or None if never stored or past TTL."""
        with self._lock:
            registry = self._registries.get(session_id)
            if registry is None:
                return None
            if is_stale(registry, self.ttl, self.clock()):
                logger.info("Registry for session %s expired, dropping it", session_id)
                del self._registries[session_id]
                return None
            return registry

    def require(self, session_id: str) -> ShortKeyRegistry:
        """Like get but raises RegistryError(SESSION_NOT_FOUND)."""
        registry = self.get(session_id)
        if registry is None:
            raise RegistryError(
                f"No registry for session '{session_id}'",
                code="SESSION_NOT_FOUND",
                hint="The registry was never built for this session or has expired",
                suggestion="Call workspace_metadata first to build short keys",
                session_id=session_id,
            )
        return registry

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._registries.pop(session_id, None)

    def clear_all(self) -> None:
        with self._lock:
            self._registries.clear()

    def remaining_ttl(self, session_id: str) -> Optional[timedelta]:
        """Time left for a session's registry (None if infinite or absent)."""
        registry = self.get(session_id)
        if registry is None:
            return None
        return remaining_ttl(registry, self.ttl, self.clock())

    def build(self, session_id: str, data: RegistryBuildData) -> ShortKeyRegistry:
        """Build a registry from snapshots and store it for the session."""
        registry = build_registry(data, now=self.clock(), transport=self.transport)
        self.store(session_id, registry)
        logger.info(
            "Built registry for session %s: %d users, %d states, %d projects, %d teams",
            session_id,
            len(registry.users),
            len(registry.states),
            len(registry.projects),
            len(registry.teams),
        )
        return registry

    def get_or_build(
        self,
        session_id: str,
        fetch: Callable[[], RegistryBuildData],
        force_refresh: bool = False,
    ) -> ShortKeyRegistry:
        """Return the session's registry, building it via ``fetch`` if needed.

        Args:
            session_id: Session identifier
            fetch: Callable returning already-fetched workspace snapshots
            force_refresh: Rebuild even if a fresh registry exists

        Raises:
            RegistryError: REGISTRY_INIT_FAILED if fetching or building fails
        """
        if not force_refresh:
            existing = self.get(session_id)
            if existing is not None:
                return existing
        try:
            data = fetch()
            return self.build(session_id, data)
        except RegistryError as e:
            if e.code == "MALFORMED_SNAPSHOT":
                raise
            raise RegistryError(
                "Failed to initialize short key registry",
                code="REGISTRY_INIT_FAILED",
                cause=e.message,
                hint="Check upstream connectivity and authentication",
                session_id=session_id,
            ) from e
        except Exception as e:
            raise RegistryError(
                "Failed to initialize short key registry",
                code="REGISTRY_INIT_FAILED",
                cause=str(e),
                hint="Check upstream connectivity and authentication",
                session_id=session_id,
            ) from e
