"""HTML rendering of review diffs for the copilot review surface."""
from __future__ import annotations

import html
from typing import TYPE_CHECKING, Sequence

from aiassistant.ai.diff import diff_stats
from aiassistant.ai.models import DiffLine, DiffLineKind

if TYPE_CHECKING:  # pragma: no cover - typing only
    from aiassistant.ai.review import ReviewCandidate

_DIFF_INLINE_STYLE = (
    "<style>"
    ".diff-inline {font-family: 'Courier New', monospace;}"
    ".diff-inline .diff-line {white-space: pre;}"
    ".diff-inline .diff-line.added {background-color: #e6ffed; color: #22863a;}"
    ".diff-inline .diff-line.removed {background-color: #ffeef0; color: #cb2431;}"
    ".diff-summary {color: #6a737d;}"
    "</style>"
)

_LINE_CLASSES = {
    DiffLineKind.ADDED: ("diff-line added", "+ "),
    DiffLineKind.REMOVED: ("diff-line removed", "- "),
    DiffLineKind.UNCHANGED: ("diff-line", ""),
}


def build_diff_html(diff: Sequence[DiffLine], *, include_style: bool = True) -> str:
    """Render ``diff`` as one ``<div>`` per line; all text is HTML-escaped."""

    rows = []
    for line in diff:
        css_class, marker = _LINE_CLASSES[line.kind]
        rows.append(f"<div class=\"{css_class}\">{marker}{html.escape(line.text)}</div>")
    body = f"<div class='diff-inline'>{''.join(rows)}</div>"
    return f"{_DIFF_INLINE_STYLE}{body}" if include_style else body


def build_review_html(candidate: "ReviewCandidate") -> str:
    """Diff plus a one-line change summary for a review candidate."""

    stats = diff_stats(candidate.diff)
    summary = html.escape(
        f"{stats.lines_added} added, {stats.lines_removed} removed, {stats.lines_unchanged} unchanged"
    )
    return (
        f"{build_diff_html(candidate.diff)}"
        f"<p class='diff-summary'>{summary}</p>"
    )
