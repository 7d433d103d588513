"""Output normalization applied before comparison and snapshotting.

Two modes:

- Targeted (default): only nodes carrying an edge-case rule are touched.
  Rows are capped, then ignored properties are stripped.
- Shallow: every node is touched. Cap, ignore and keep-only rules apply where
  declared, then every top-level field of each row is collapsed to a shape
  marker: lists become ``["json array"]``, objects become ``{"object": true}``,
  scalars are kept. Changes in field presence, field type and row counts are
  still detected while nested, volatile values are not.

Normalization works on a deep JSON copy of the record and only reshapes the
payload used for comparison. It never influences success/failure classification.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from typing import Any

from .edge_cases import NodeEdgeCaseRule
from .models import ExecutionRecord

ARRAY_MARKER: list[str] = ["json array"]
OBJECT_MARKER: dict[str, bool] = {"object": True}

_NO_RULE = NodeEdgeCaseRule()


def shallow_marker(value: Any) -> Any:
    """Collapse a top-level field value to its shape marker."""
    if isinstance(value, list):
        return list(ARRAY_MARKER)
    if isinstance(value, dict):
        return dict(OBJECT_MARKER)
    return value


def _iter_row_lists(task_outputs: list[dict[str, Any]]) -> Iterator[list[Any]]:
    """Yield every per-connection row list of a node's task outputs.

    Tasks without data and null connection entries are skipped.
    """
    for task in task_outputs:
        data = task.get("data")
        if not isinstance(data, dict):
            continue
        for connection in data.values():
            if not isinstance(connection, list):
                continue
            for rows in connection:
                if isinstance(rows, list):
                    yield rows


def _apply_rule(rows: list[Any], rule: NodeEdgeCaseRule, shallow: bool) -> None:
    """Apply one node's rule to a row list in place."""
    if rule.cap_results is not None:
        del rows[rule.cap_results :]

    for row in rows:
        if not isinstance(row, dict) or not isinstance(row.get("json"), dict):
            continue

        item: dict[str, Any] = row["json"]
        if rule.ignored_properties:
            for prop in rule.ignored_properties:
                item.pop(prop, None)

        if not shallow:
            continue

        if rule.keep_only_properties:
            item = {key: item[key] for key in rule.keep_only_properties if key in item}

        row["json"] = {key: shallow_marker(value) for key, value in item.items()}


def normalize_run_data(
    run_data: dict[str, list[dict[str, Any]]],
    rules: dict[str, NodeEdgeCaseRule],
    shallow: bool = False,
) -> dict[str, list[dict[str, Any]]]:
    """Return a normalized deep copy of the per-node run data."""
    normalized = copy.deepcopy(run_data)

    node_names = list(normalized) if shallow else [name for name in rules if name in normalized]
    for node_name in node_names:
        rule = rules.get(node_name, _NO_RULE)
        for rows in _iter_row_lists(normalized[node_name]):
            _apply_rule(rows, rule, shallow)

    return normalized


def normalize_record(
    record: ExecutionRecord,
    rules: dict[str, NodeEdgeCaseRule],
    shallow: bool = False,
) -> dict[str, Any]:
    """Normalize an execution record into the JSON document used for snapshots.

    Args:
        record: Execution record returned by the engine (left untouched)
        rules: Node name -> edge-case rule mapping
        shallow: Collapse every node's output to top-level shape markers

    Returns:
        JSON-compatible dict in wire format with normalized run data
    """
    document = record.to_json_dict()
    result_data = document.setdefault("resultData", {})
    result_data["runData"] = normalize_run_data(result_data.get("runData") or {}, rules, shallow)
    return document


__all__ = [
    "ARRAY_MARKER",
    "OBJECT_MARKER",
    "normalize_record",
    "normalize_run_data",
    "shallow_marker",
]
