"""Write-path helpers: per-item results and cross-team key checks.

Batch writes partially succeed. A key that fails to resolve becomes an error
row for that item instead of aborting the batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from .encoder import Meta, ResponseDocument, Section
from .errors import ResolutionError, ToonError
from .registry import ShortKeyRegistry, parse_label_key, parse_short_key, resolve_or_raise
from .schemas import WRITE_RESULT_META_SCHEMA, WRITE_RESULT_SCHEMA


@dataclass
class WriteResult:
    index: int
    ok: bool
    identifier: Optional[str] = None
    error: Optional[str] = None
    code: Optional[str] = None


@dataclass
class WriteResults:
    """Collects per-item outcomes of a batch write."""
    results: list[WriteResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    def add_ok(self, index: int, identifier: Optional[str] = None) -> None:
        self.results.append(WriteResult(index=index, ok=True, identifier=identifier))

    def add_error(
        self,
        index: int,
        error: Union[str, ToonError],
        identifier: Optional[str] = None,
    ) -> None:
        if isinstance(error, ToonError):
            message, code = error.message, error.code
        else:
            message, code = error, None
        self.results.append(
            WriteResult(index=index, ok=False, identifier=identifier, error=message, code=code)
        )

    def resolve_item(
        self,
        index: int,
        registry: ShortKeyRegistry,
        entity_type: str,
        key: str,
    ) -> Optional[str]:
        """Resolve a key for one item, recording an error row on failure."""
        try:
            return resolve_or_raise(registry, entity_type, key)
        except ResolutionError as e:
            self.add_error(index, e)
            return None

    def to_document(
        self,
        action: str,
        extra_sections: Sequence[Section] = (),
    ) -> ResponseDocument:
        """``_meta{action,succeeded,failed,total}`` + ``results[...]`` (+ extras)."""
        meta = Meta(
            fields=WRITE_RESULT_META_SCHEMA.fields,
            values={
                "action": action,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "total": len(self.results),
            },
        )
        rows = [
            {
                "index": r.index,
                "status": "ok" if r.ok else "error",
                "identifier": r.identifier,
                "error": r.error,
            }
            for r in sorted(self.results, key=lambda r: r.index)
        ]
        return ResponseDocument(
            meta=meta,
            data=[Section(WRITE_RESULT_SCHEMA, rows), *extra_sections],
        )


# ============================================================================
# Cross-team validation
# ============================================================================


@dataclass(frozen=True)
class CrossTeamValidation:
    valid: bool
    error: Optional[str] = None
    suggestion: Optional[str] = None


VALID = CrossTeamValidation(valid=True)


def _team_display(registry: ShortKeyRegistry, team_id: Optional[str], fallback: str) -> str:
    key = registry.team_keys.get(team_id) if team_id else None
    return key.upper() if key else fallback


def validate_state_key_prefix(
    state_key: str,
    target_team_id: str,
    registry: ShortKeyRegistry,
) -> CrossTeamValidation:
    """Catch a state key meant for another team before resolving it.

    An unprefixed key belongs to the default team; a prefixed key to the
    team it names. Anything unparseable is left to normal resolution.
    """
    parsed = parse_short_key(state_key)
    if parsed is None or parsed.entity_type != "state":
        return VALID

    target_key = registry.team_keys.get(target_team_id)
    target_display = _team_display(registry, target_team_id, "the target team")

    if not parsed.team_prefix:
        if registry.default_team_id and target_team_id != registry.default_team_id:
            default_display = _team_display(registry, registry.default_team_id, "the default team")
            return CrossTeamValidation(
                valid=False,
                error=(
                    f"State '{state_key}' is a {default_display} state key, "
                    f"but the issue is in team {target_display}"
                ),
                suggestion=(
                    f"Use '{target_key}:s0', '{target_key}:s1', etc. for team {target_display} states"
                    if target_key
                    else f"Check workspace_metadata to see state keys for team {target_display}"
                ),
            )
        return VALID

    if target_key and parsed.team_prefix != target_key:
        return CrossTeamValidation(
            valid=False,
            error=(
                f"State '{state_key}' belongs to team {parsed.team_prefix.upper()}, "
                f"but the issue is in team {target_display}"
            ),
            suggestion=(
                f"Use '{target_key}:s0', '{target_key}:s1', etc. for team {target_display} states, "
                "or check workspace_metadata for available states"
            ),
        )
    return VALID


def validate_state_belongs_to_team(
    state_key: str,
    state_id: str,
    target_team_id: str,
    registry: ShortKeyRegistry,
) -> CrossTeamValidation:
    """Check a resolved state belongs to the issue's team (unknown team info passes)."""
    meta = registry.metadata["state"].get(state_id)
    if meta is None or not meta.team_id or meta.team_id == target_team_id:
        return VALID
    state_display = _team_display(registry, meta.team_id, "another team")
    target_display = _team_display(registry, target_team_id, "the target team")
    return CrossTeamValidation(
        valid=False,
        error=f"State '{state_key}' belongs to team {state_display}, but the issue is in team {target_display}",
        suggestion=f"Use workspace_metadata to see available states for team {target_display}",
    )


def validate_label_key_prefix(
    label_key: str,
    label_id: str,
    target_team_id: str,
    registry: ShortKeyRegistry,
) -> CrossTeamValidation:
    """Workspace labels fit any team; team labels only their own."""
    meta = registry.metadata["label"].get(label_id)
    if meta is not None and not meta.team_id:
        return VALID
    label_team_id = meta.team_id if meta is not None else None
    if not label_team_id:
        prefix, _ = parse_label_key(label_key)
        # Label outside the snapshot: trust a prefix naming a known team
        known = set(registry.team_keys.values())
        if prefix is None or prefix not in known or prefix == registry.team_keys.get(target_team_id):
            return VALID
        label_display = prefix.upper()
    elif label_team_id == target_team_id:
        return VALID
    else:
        label_display = _team_display(registry, label_team_id, "another team")
    target_display = _team_display(registry, target_team_id, "the target team")
    return CrossTeamValidation(
        valid=False,
        error=f"Label '{label_key}' belongs to team {label_display}, but the issue is in team {target_display}",
        suggestion=(
            f"Use workspace_metadata to see available labels for team {target_display}, "
            "or use a workspace-level label"
        ),
    )
