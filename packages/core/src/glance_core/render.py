"""Markdown rendering of grouped release notes."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from glance_core.providers.base import KNOWN_TAGS

if TYPE_CHECKING:
    from glance_core.providers.base import TaggedSummary
    from glance_store.models import CommitRecord

_TAG_RANK = {tag: i for i, tag in enumerate(KNOWN_TAGS)}
_SHORT_ID_LEN = 6


def format_release_date(when: datetime) -> str:
    """Format like "June 3, 2024", no zero padding on the day."""
    return f"{when:%B} {when.day}, {when.year}"


def build_header(release: str, when: datetime | None = None) -> str:
    if when is None:
        return f"**{release}**"
    return f"**{release}** ({format_release_date(when)})"


def tag_order(tags: Iterable[str]) -> list[str]:
    """Known tags in their fixed priority order, then anything else alphabetically."""
    return sorted(set(tags), key=lambda t: (_TAG_RANK.get(t, len(KNOWN_TAGS)), t))


def group_by_tag(summaries: Iterable[TaggedSummary]) -> dict[str, list[TaggedSummary]]:
    """Group summaries by tag, in canonical tag order, each group ordered by PR number."""
    groups: dict[str, list[TaggedSummary]] = {}
    for s in summaries:
        groups.setdefault(s.tag, []).append(s)
    return {tag: sorted(groups[tag], key=lambda s: _pr_sort_key(s.pr_id)) for tag in tag_order(groups)}


def render_release_notes(
    summaries: Iterable[TaggedSummary],
    standalone: Iterable[CommitRecord],
    header: str | None = None,
) -> str:
    """Render the release notes as markdown.

    Output depends only on the inputs' contents, never on their iteration
    order, so rendering the same data twice is byte-identical.
    """
    sections: list[str] = []
    if header:
        sections.append(header)

    for tag, entries in group_by_tag(summaries).items():
        lines = [f"## {_heading(tag)}"]
        lines.extend(f"* {s.summary} [#{s.pr_id}]({s.url})" for s in entries)
        sections.append("\n".join(lines))

    others = sorted(standalone, key=lambda c: c.id)
    if others:
        lines = ["## Other"]
        lines.extend(f"* {c.headline} ({c.id[:_SHORT_ID_LEN]})" for c in others)
        sections.append("\n".join(lines))

    if not sections:
        return ""
    return "\n\n".join(sections) + "\n"


def _heading(tag: str) -> str:
    return tag[:1].upper() + tag[1:]


def _pr_sort_key(pr_id: str) -> tuple[int, int, str]:
    # Numeric ids sort numerically (#9 before #10); anything else after them.
    return (0, int(pr_id), "") if pr_id.isdigit() else (1, 0, pr_id)
