"""Line-level differences between a document and a proposed replacement."""

from __future__ import annotations

import difflib
from typing import Sequence

from aiassistant.ai.errors import ValidationError
from aiassistant.ai.models import DiffLine, DiffLineKind, DiffStats

__all__ = [
    "Diff",
    "STRATEGIES",
    "compute_diff",
    "positional_diff",
    "aligned_diff",
    "diff_stats",
    "format_diff",
]

Diff = tuple[DiffLine, ...]

STRATEGIES = ("positional", "aligned")


def compute_diff(original: str, proposed: str, *, strategy: str = "positional") -> Diff:
    """Return the diff of ``original`` against ``proposed``.

    ``positional`` compares line *i* with line *i* and never realigns, so an
    insertion near the top shows every following line as changed.
    ``aligned`` uses :class:`difflib.SequenceMatcher` to pair up equal runs
    and produces a minimal-looking diff instead.
    """

    if strategy == "positional":
        return positional_diff(original, proposed)
    if strategy == "aligned":
        return aligned_diff(original, proposed)
    raise ValidationError(f"Unknown diff strategy: {strategy!r}")


def positional_diff(original: str, proposed: str) -> Diff:
    original_lines = original.splitlines()
    proposed_lines = proposed.splitlines()

    result: list[DiffLine] = []
    for index in range(max(len(original_lines), len(proposed_lines))):
        old = original_lines[index] if index < len(original_lines) else None
        new = proposed_lines[index] if index < len(proposed_lines) else None
        if old == new:
            result.append(DiffLine(DiffLineKind.UNCHANGED, old))
            continue
        if old is not None:
            result.append(DiffLine(DiffLineKind.REMOVED, old))
        if new is not None:
            result.append(DiffLine(DiffLineKind.ADDED, new))
    return tuple(result)


def aligned_diff(original: str, proposed: str) -> Diff:
    original_lines = original.splitlines()
    proposed_lines = proposed.splitlines()

    matcher = difflib.SequenceMatcher(a=original_lines, b=proposed_lines, autojunk=False)
    result: list[DiffLine] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            result.extend(DiffLine(DiffLineKind.UNCHANGED, line) for line in original_lines[i1:i2])
            continue
        # "replace", "delete" and "insert" all reduce to removals then additions.
        result.extend(DiffLine(DiffLineKind.REMOVED, line) for line in original_lines[i1:i2])
        result.extend(DiffLine(DiffLineKind.ADDED, line) for line in proposed_lines[j1:j2])
    return tuple(result)


def diff_stats(diff: Sequence[DiffLine]) -> DiffStats:
    added = removed = unchanged = 0
    for line in diff:
        if line.kind is DiffLineKind.ADDED:
            added += 1
        elif line.kind is DiffLineKind.REMOVED:
            removed += 1
        else:
            unchanged += 1
    return DiffStats(lines_added=added, lines_removed=removed, lines_unchanged=unchanged)


_PREFIXES = {
    DiffLineKind.ADDED: "+ ",
    DiffLineKind.REMOVED: "- ",
    DiffLineKind.UNCHANGED: "  ",
}


def format_diff(diff: Sequence[DiffLine]) -> str:
    """Render ``diff`` as plain text with ``+``/``-`` markers."""

    return "\n".join(_PREFIXES[line.kind] + line.text for line in diff)
