"""Inline reference rewriting for free text (descriptions, comments).

Write path (``forward_link``): bare references the model writes, such as
``SQT-297`` or a project key ``pr0``, become full URLs so the upstream UI
renders them as mentions.

Read path (``reverse_strip``): full URLs, bare or as markdown link targets,
collapse back to the compact form so they cost a handful of tokens.

Both run over the output of ``scan``, a single left-to-right pass that splits
text into segments tagged with one ``Mode``. Only ``NORMAL`` segments are ever
rewritten. Precedence is fence > inline code > link: whichever construct the
scanner meets first owns the span. Neither transform raises; anything that
does not match is left as plain text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Iterable, Mapping, Optional

from .registry import ShortKeyRegistry, project_slug_index, team_key_index

DEFAULT_HOST = "linear.app"

# Bare URLs are opaque tokens on the write path: never rewrite inside them
_URL = r"https?://[^\s)>\]]+"


class Mode(Enum):
    NORMAL = "normal"
    FENCED_CODE = "fenced_code"
    INLINE_CODE = "inline_code"
    MARKDOWN_LINK = "markdown_link"


@dataclass(frozen=True)
class Segment:
    """A run of text in one scanner mode."""
    mode: Mode
    text: str
    link_text: Optional[str] = None
    target: Optional[str] = None
    is_image: bool = False


# ============================================================================
# Scanner
# ============================================================================


def _at_line_start(text: str, i: int) -> bool:
    """True if only up to three spaces separate i from the start of its line."""
    j = i
    while j > 0 and text[j - 1] == " " and i - j < 3:
        j -= 1
    return j == 0 or text[j - 1] == "\n"


def _backtick_run(text: str, i: int) -> int:
    j = i
    while j < len(text) and text[j] == "`":
        j += 1
    return j - i


def _inline_code_end(text: str, i: int) -> Optional[int]:
    """End of a code span opened at i, closed by an equal backtick run on the same line."""
    run = _backtick_run(text, i)
    j = i + run
    while j < len(text) and text[j] != "\n":
        if text[j] == "`":
            closing = _backtick_run(text, j)
            if closing == run:
                return j + closing
            j += closing
            continue
        j += 1
    return None


def _fence_end(text: str, i: int) -> int:
    """End of a fenced block opened at i: through the closing ``` line, or end of text."""
    n = len(text)
    newline = text.find("\n", i)
    if newline == -1:
        return n
    pos = newline + 1
    while pos < n:
        line_end = text.find("\n", pos)
        line = text[pos:line_end if line_end != -1 else n]
        stripped = line.lstrip(" ")
        if stripped.startswith("```") and len(line) - len(stripped) <= 3:
            return line_end if line_end != -1 else n
        if line_end == -1:
            break
        pos = line_end + 1
    return n


def _parse_link(text: str, i: int) -> Optional[Segment]:
    """Parse ``[text](url)``, ``[text](<url>)`` or ``![alt](url)`` starting at i."""
    n = len(text)
    start = i
    is_image = text[i] == "!"
    if is_image:
        i += 1
    if i >= n or text[i] != "[":
        return None

    depth = 0
    close = None
    for j in range(i, n):
        ch = text[j]
        if ch == "\n":
            return None
        if ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                close = j
                break
    if close is None or close + 1 >= n or text[close + 1] != "(":
        return None

    link_text = text[i + 1:close]
    k = close + 2
    if k < n and text[k] == "<":
        gt = text.find(">", k + 1)
        if gt == -1 or "\n" in text[k:gt] or gt + 1 >= n or text[gt + 1] != ")":
            return None
        return Segment(Mode.MARKDOWN_LINK, text[start:gt + 2], link_text, text[k + 1:gt], is_image)

    depth = 1
    for j in range(k, n):
        ch = text[j]
        if ch == "\n":
            return None
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                target = text[k:j].strip()
                # Drop an optional link title: (url "title")
                target = target.split(" ", 1)[0] if target else target
                return Segment(Mode.MARKDOWN_LINK, text[start:j + 1], link_text, target, is_image)
    return None


def scan(text: str) -> list[Segment]:
    """Split text into mode-tagged segments in one left-to-right pass.

    Joining the segment texts always reproduces the input exactly.
    """
    segments: list[Segment] = []
    n = len(text)
    buf_start = 0
    i = 0

    def flush(upto: int) -> None:
        if upto > buf_start:
            segments.append(Segment(Mode.NORMAL, text[buf_start:upto]))

    while i < n:
        ch = text[i]
        if ch == "`":
            end = _inline_code_end(text, i)
            if end is not None:
                flush(i)
                segments.append(Segment(Mode.INLINE_CODE, text[i:end]))
                i = buf_start = end
                continue
            if text.startswith("```", i) and _at_line_start(text, i):
                end = _fence_end(text, i)
                flush(i)
                segments.append(Segment(Mode.FENCED_CODE, text[i:end]))
                i = buf_start = end
                continue
            # Unmatched run: literal backticks
            i += _backtick_run(text, i)
            continue
        if ch == "[" or (ch == "!" and text.startswith("[", i + 1)):
            link = _parse_link(text, i)
            if link is not None:
                flush(i)
                segments.append(link)
                i = buf_start = i + len(link.text)
                continue
        i += 1

    flush(n)
    return segments


# ============================================================================
# Write path
# ============================================================================


_FORWARD_RE = re.compile(
    rf"(?P<url>{_URL})"
    r"|(?<![\w/-])(?P<team>[A-Za-z][A-Za-z0-9_]*)-(?P<num>\d+)(?![\w-])"
    r"|(?<![\w/:-])(?P<project>pr\d+)(?![\w-])",
    re.IGNORECASE,
)


def forward_link(
    text: str,
    team_keys: Iterable[str],
    project_slugs: Optional[Mapping[str, str]],
    url_base: str,
) -> str:
    """Replace bare issue identifiers and project keys with full URLs.

    Args:
        text: Free text written by the model
        team_keys: Known team keys (any case), e.g. {"SQT", "SQM"}
        project_slugs: Project short key -> slugId, e.g. {"pr0": "launch-878d2a8b5972"}
        url_base: Workspace URL, e.g. "https://linear.app/acme"

    Returns:
        Text with references linked. Unknown teams/projects, code, links and
        existing URLs are left untouched.
    """
    if not text:
        return text
    teams = {key.upper() for key in team_keys}
    projects = {key.lower(): slug for key, slug in (project_slugs or {}).items()}
    if not teams and not projects:
        return text
    base = url_base.rstrip("/")

    def replace(match: re.Match) -> str:
        if match.group("url"):
            return match.group(0)
        if match.group("team"):
            team = match.group("team").upper()
            if team in teams:
                return f"{base}/issue/{team}-{match.group('num')}"
            return match.group(0)
        slug = projects.get(match.group("project").lower())
        return f"{base}/project/{slug}" if slug else match.group(0)

    return "".join(
        _FORWARD_RE.sub(replace, seg.text) if seg.mode is Mode.NORMAL else seg.text
        for seg in scan(text)
    )


# ============================================================================
# Read path
# ============================================================================


@lru_cache(maxsize=8)
def _reference_url_re(host: str) -> re.Pattern:
    return re.compile(
        # Optional angle brackets: an autolink <url> collapses as a whole
        r"(?P<lt><)?"
        rf"https?://(?:www\.)?{re.escape(host)}/(?P<ws>[^/\s)>\]]+)/"
        r"(?:issue/(?P<ident>[A-Za-z][A-Za-z0-9_]*-\d+)(?![\w-])"
        r"|project/(?P<slug>[A-Za-z0-9][A-Za-z0-9-]*))"
        r"(?P<rest>/[^\s)>\]]*)?"
        r"(?(lt)>)",
        re.IGNORECASE,
    )


def _hash_suffix(slug: str) -> Optional[str]:
    head, sep, tail = slug.rpartition("-")
    if sep and head and re.fullmatch(r"[a-f0-9]+", tail):
        return tail
    return None


def _compact(match: re.Match, resolver: Optional[Mapping[str, str]]) -> Optional[str]:
    """Compact form for a matched reference URL, or None if unresolvable."""
    if match.group("ident"):
        return match.group("ident").upper()
    if not resolver:
        return None
    slug = match.group("slug")
    key = resolver.get(slug) or resolver.get(slug.lower())
    if key is None:
        suffix = _hash_suffix(slug)
        if suffix:
            key = resolver.get(suffix)
    return key


def _strip_link(seg: Segment, url_re: re.Pattern, resolver: Optional[Mapping[str, str]]) -> str:
    if seg.is_image or not seg.target:
        return seg.text
    match = url_re.fullmatch(seg.target)
    if not match:
        return seg.text
    compact = _compact(match, resolver)
    if compact is None:
        return seg.text

    visible = (seg.link_text or "").strip()
    if visible == seg.target:
        return compact
    # [url](<url>): visible text is a URL for the same entity
    visible_match = url_re.fullmatch(visible)
    if visible_match and _compact(visible_match, resolver) == compact:
        return compact
    if visible.lower() == compact.lower():
        return compact
    # Known display name for a project
    if resolver and match.group("slug") and resolver.get(visible.lower()) == compact:
        return compact
    # Custom text is never discarded
    return seg.text


def reverse_strip(
    text: str,
    resolver: Optional[Mapping[str, str]] = None,
    host: str = DEFAULT_HOST,
) -> str:
    """Collapse full reference URLs back to compact identifiers.

    Args:
        text: Free text from the upstream API
        resolver: slugId / hash suffix / lowercase project name -> project key.
            Without it, project URLs are left as-is.
        host: Host whose URLs are references

    Returns:
        Text with issue URLs replaced by identifiers and resolvable project
        URLs by project keys. Links with custom visible text are untouched.
    """
    if not text:
        return text
    url_re = _reference_url_re(host)

    def replace(match: re.Match) -> str:
        compact = _compact(match, resolver)
        return compact if compact is not None else match.group(0)

    out = []
    for seg in scan(text):
        if seg.mode is Mode.NORMAL:
            out.append(url_re.sub(replace, seg.text))
        elif seg.mode is Mode.MARKDOWN_LINK:
            out.append(_strip_link(seg, url_re, resolver))
        else:
            out.append(seg.text)
    return "".join(out)


# ============================================================================
# Registry integration
# ============================================================================


@dataclass
class ReferenceIndex:
    """Everything both transforms need, derived from one registry."""
    url_base: Optional[str]
    team_keys: set[str] = field(default_factory=set)
    project_slugs: dict[str, str] = field(default_factory=dict)  # key -> slug
    slug_resolver: dict[str, str] = field(default_factory=dict)  # slug/hash/name -> key
    host: str = DEFAULT_HOST

    @classmethod
    def from_registry(cls, registry: ShortKeyRegistry, host: str = DEFAULT_HOST) -> "ReferenceIndex":
        url_base = f"https://{host}/{registry.url_key}" if registry.url_key else None
        return cls(
            url_base=url_base,
            team_keys=team_key_index(registry),
            project_slugs=project_slug_index(registry),
            slug_resolver=dict(registry.project_slugs),
            host=host,
        )

    def link(self, text: str) -> str:
        if not self.url_base:
            return text
        return forward_link(text, self.team_keys, self.project_slugs, self.url_base)

    def strip(self, text: str) -> str:
        return reverse_strip(text, self.slug_resolver, self.host)


def link_with_registry(
    text: str,
    registry: Optional[ShortKeyRegistry],
    host: str = DEFAULT_HOST,
) -> str:
    """forward_link using a registry; text unchanged without one or without a URL key."""
    if registry is None:
        return text
    return ReferenceIndex.from_registry(registry, host).link(text)


def strip_with_registry(
    text: str,
    registry: Optional[ShortKeyRegistry],
    host: str = DEFAULT_HOST,
) -> str:
    """reverse_strip using a registry's project slug index (issues only without one)."""
    resolver = registry.project_slugs if registry is not None else None
    return reverse_strip(text, resolver, host)
