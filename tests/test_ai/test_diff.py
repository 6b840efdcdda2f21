"""Tests for the line diff engine."""
from __future__ import annotations

import pytest

from aiassistant.ai.diff import aligned_diff, compute_diff, diff_stats, format_diff, positional_diff
from aiassistant.ai.errors import ValidationError
from aiassistant.ai.models import DiffLine, DiffLineKind

ADDED = DiffLineKind.ADDED
REMOVED = DiffLineKind.REMOVED
UNCHANGED = DiffLineKind.UNCHANGED


def _kinds(diff) -> list[tuple[DiffLineKind, str]]:
    return [(line.kind, line.text) for line in diff]


def test_identical_texts_are_unchanged() -> None:
    text = "a\nb\nc"

    assert _kinds(positional_diff(text, text)) == [(UNCHANGED, "a"), (UNCHANGED, "b"), (UNCHANGED, "c")]


def test_changed_line_is_removed_then_added() -> None:
    diff = positional_diff("a\nb\nc", "a\nB\nc")

    assert _kinds(diff) == [(UNCHANGED, "a"), (REMOVED, "b"), (ADDED, "B"), (UNCHANGED, "c")]


def test_longer_proposal_appends_added_lines() -> None:
    diff = positional_diff("a", "a\nb\nc")

    assert _kinds(diff) == [(UNCHANGED, "a"), (ADDED, "b"), (ADDED, "c")]


def test_shorter_proposal_removes_trailing_lines() -> None:
    diff = positional_diff("a\nb\nc", "a")

    assert _kinds(diff) == [(UNCHANGED, "a"), (REMOVED, "b"), (REMOVED, "c")]


def test_empty_inputs() -> None:
    assert positional_diff("", "") == ()
    assert _kinds(positional_diff("", "x\ny")) == [(ADDED, "x"), (ADDED, "y")]
    assert _kinds(positional_diff("x", "")) == [(REMOVED, "x")]


def test_positional_diff_does_not_realign_insertions() -> None:
    diff = positional_diff("b\nc", "a\nb\nc")

    assert _kinds(diff) == [(REMOVED, "b"), (ADDED, "a"), (REMOVED, "c"), (ADDED, "b"), (ADDED, "c")]


def test_aligned_diff_realigns_insertions() -> None:
    diff = aligned_diff("b\nc", "a\nb\nc")

    assert _kinds(diff) == [(ADDED, "a"), (UNCHANGED, "b"), (UNCHANGED, "c")]


@pytest.mark.parametrize("strategy", ["positional", "aligned"])
def test_every_line_is_covered_exactly_once(strategy: str) -> None:
    original = "one\ntwo\nthree\nfour"
    proposed = "zero\none\n2\nthree"

    diff = compute_diff(original, proposed, strategy=strategy)

    old_side = [line.text for line in diff if line.kind is not ADDED]
    new_side = [line.text for line in diff if line.kind is not REMOVED]
    assert old_side == original.splitlines()
    assert new_side == proposed.splitlines()


def test_compute_diff_defaults_to_positional() -> None:
    assert compute_diff("b", "a\nb") == positional_diff("b", "a\nb")


def test_unknown_strategy_is_rejected() -> None:
    with pytest.raises(ValidationError):
        compute_diff("a", "b", strategy="semantic")


def test_diff_is_deterministic() -> None:
    assert positional_diff("x\ny", "y\nx") == positional_diff("x\ny", "y\nx")


def test_diff_stats_and_format() -> None:
    diff = positional_diff("a\nb", "a\nc\nd")

    stats = diff_stats(diff)

    assert (stats.lines_added, stats.lines_removed, stats.lines_unchanged) == (2, 1, 1)
    assert stats.lines_changed == 1
    assert format_diff(diff) == "  a\n- b\n+ c\n+ d"


def test_diff_lines_serialise() -> None:
    assert DiffLine(ADDED, "x").as_dict() == {"kind": "added", "text": "x"}
