"""Structural snapshot comparison.

The diff is keys-only: it reports keys and array positions that appeared or
disappeared, and recurses into containers present on both sides. Scalar value
changes are never reported.

A value that changes kind (object, array or scalar) is reported too, although
no key appeared or disappeared: the shape recorded in the snapshot is gone and
every path below it changed meaning. It counts as one removal and one addition,
so such a change classifies as an error.

Diff format (json-diff style):
    objects: {"key__deleted": old, "key__added": new, "key": <nested diff>}
    arrays:  [[" "], ["~", <nested diff>], ["-", old_item], ["+", new_item]]
    a value replaced by a value of another kind: {"__old": old, "__new": new}

Removals and additions are tallied while walking the data. Marker keys are
never parsed back, so data keys ending in a marker suffix are counted correctly.

Classification:
    no difference              -> success
    any removal                -> error (breaking change)
    additions only             -> warning (new data)
    no snapshot to compare to  -> warning
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .results import ExecutionStatus

DELETED_SUFFIX = "__deleted"
ADDED_SUFFIX = "__added"
OLD_KEY = "__old"
NEW_KEY = "__new"

SNAPSHOT_NOT_FOUND = "Snapshot not found."
BREAKING_CHANGES = "Workflow may contain breaking changes"
NEW_DATA = "Workflow contains new data that previously did not exist."


@dataclass
class DiffStats:
    """Removed and added paths found by a structural diff."""

    removals: int = 0
    additions: int = 0


def _kind(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    return "scalar"


def _diff_objects(
    expected: dict[str, Any], received: dict[str, Any], stats: DiffStats
) -> dict[str, Any] | None:
    changes: dict[str, Any] = {}
    for key, value in expected.items():
        if key not in received:
            changes[f"{key}{DELETED_SUFFIX}"] = value
            stats.removals += 1
            continue
        nested = _diff(value, received[key], stats)
        if nested is not None:
            changes[key] = nested
    for key, value in received.items():
        if key not in expected:
            changes[f"{key}{ADDED_SUFFIX}"] = value
            stats.additions += 1
    return changes or None


def _diff_arrays(
    expected: list[Any], received: list[Any], stats: DiffStats
) -> list[list[Any]] | None:
    changes: list[list[Any]] = []
    changed = False
    for old_item, new_item in zip(expected, received, strict=False):
        nested = _diff(old_item, new_item, stats)
        if nested is None:
            changes.append([" "])
        else:
            changes.append(["~", nested])
            changed = True
    for old_item in expected[len(received) :]:
        changes.append(["-", old_item])
        stats.removals += 1
        changed = True
    for new_item in received[len(expected) :]:
        changes.append(["+", new_item])
        stats.additions += 1
        changed = True
    return changes if changed else None


def _diff(expected: Any, received: Any, stats: DiffStats) -> Any | None:
    expected_kind, received_kind = _kind(expected), _kind(received)
    if expected_kind != received_kind:
        stats.removals += 1
        stats.additions += 1
        return {OLD_KEY: expected, NEW_KEY: received}
    if expected_kind == "object":
        return _diff_objects(expected, received, stats)
    if expected_kind == "array":
        return _diff_arrays(expected, received, stats)
    return None


def diff_with_stats(expected: Any, received: Any) -> tuple[Any | None, DiffStats]:
    """Keys-only structural diff plus the number of removed and added paths.

    Returns:
        (None when both values have the same structure else the diff tree, stats)
    """
    stats = DiffStats()
    return _diff(expected, received, stats), stats


def structural_diff(expected: Any, received: Any) -> Any | None:
    """Keys-only structural diff of two JSON values.

    Returns:
        None when both values have the same structure, else the diff tree
    """
    return diff_with_stats(expected, received)[0]


@dataclass(frozen=True)
class Comparison:
    """Outcome of comparing a fresh record with its stored snapshot."""

    status: ExecutionStatus
    error: str | None = None
    changes: Any | None = None
    removals: int = 0
    additions: int = 0


def compare_with_snapshot(
    expected: dict[str, Any] | None,
    received: dict[str, Any],
    ci_summary: bool = False,
) -> Comparison:
    """Classify a normalized record against its snapshot.

    Args:
        expected: Stored snapshot document, None when no snapshot exists
        received: Freshly normalized document
        ci_summary: Report the number of removed paths instead of a generic message

    Returns:
        Comparison with status success, warning or error
    """
    if expected is None:
        return Comparison(status=ExecutionStatus.WARNING, error=SNAPSHOT_NOT_FOUND)

    changes, stats = diff_with_stats(expected, received)
    if changes is None:
        return Comparison(status=ExecutionStatus.SUCCESS)

    if stats.removals > 0:
        error = (
            f"Workflow contains {stats.removals} deleted data." if ci_summary else BREAKING_CHANGES
        )
        return Comparison(
            status=ExecutionStatus.ERROR,
            error=error,
            changes=changes,
            removals=stats.removals,
            additions=stats.additions,
        )

    return Comparison(
        status=ExecutionStatus.WARNING,
        error=NEW_DATA,
        changes=changes,
        additions=stats.additions,
    )


__all__ = [
    "Comparison",
    "DiffStats",
    "compare_with_snapshot",
    "diff_with_stats",
    "structural_diff",
]
