"""Per-node normalization rules declared in node notes.

Each node may carry free-text notes. One rule per line, ``KEY=VALUE``:

    CAP_RESULTS_LENGTH=2            keep only the first 2 output rows
    IGNORED_PROPERTIES=id,createdAt strip these fields from every output row
    KEEP_ONLY_PROPERTIES=name,email keep only these fields (shallow mode)

Lines that do not contain exactly one ``=`` and unknown keys are ignored.
"""

from __future__ import annotations

import logging
from collections import Counter

from pydantic import BaseModel, ConfigDict

from .models import WorkflowDescriptor

logger = logging.getLogger(__name__)

CAP_RESULTS_LENGTH = "CAP_RESULTS_LENGTH"
IGNORED_PROPERTIES = "IGNORED_PROPERTIES"
KEEP_ONLY_PROPERTIES = "KEEP_ONLY_PROPERTIES"


class NodeEdgeCaseRule(BaseModel):
    """Normalization rule set for a single node."""

    model_config = ConfigDict(frozen=True)

    cap_results: int | None = None
    ignored_properties: tuple[str, ...] | None = None
    keep_only_properties: tuple[str, ...] | None = None

    def is_empty(self) -> bool:
        return (
            self.cap_results is None
            and self.ignored_properties is None
            and self.keep_only_properties is None
        )


def _split_properties(value: str) -> tuple[str, ...]:
    properties: list[str] = []
    for item in value.split(","):
        item = item.strip()
        if item and item not in properties:
            properties.append(item)
    return tuple(properties)


def parse_notes(notes: str | None) -> NodeEdgeCaseRule:
    """Parse a node's notes into a rule set (empty rule when nothing matches)."""
    updates: dict[str, object] = {}
    if not notes:
        return NodeEdgeCaseRule()

    for line in notes.splitlines():
        parts = line.split("=")
        if len(parts) != 2:
            continue

        key, value = parts[0].strip(), parts[1].strip()
        if key == CAP_RESULTS_LENGTH:
            try:
                cap = int(value)
            except ValueError:
                logger.debug(f"Ignoring non-numeric {CAP_RESULTS_LENGTH} value: {value!r}")
                continue
            if cap < 0:
                logger.debug(f"Ignoring negative {CAP_RESULTS_LENGTH} value: {cap}")
                continue
            updates["cap_results"] = cap
        elif key == IGNORED_PROPERTIES:
            updates["ignored_properties"] = _split_properties(value)
        elif key == KEEP_ONLY_PROPERTIES:
            updates["keep_only_properties"] = _split_properties(value)

    return NodeEdgeCaseRule.model_validate(updates)


def extract_edge_cases(workflow: WorkflowDescriptor) -> dict[str, NodeEdgeCaseRule]:
    """Build the node name -> rule mapping for a workflow.

    Nodes without any recognized rule are left out, so the mapping is empty
    when no node declares rules.
    """
    rules: dict[str, NodeEdgeCaseRule] = {}
    for node in workflow.nodes:
        rule = parse_notes(node.notes)
        if not rule.is_empty():
            rules[node.name] = rule
    return rules


def count_node_types(workflow: WorkflowDescriptor) -> dict[str, int]:
    """Occurrences of each node type in the workflow (coverage)."""
    return dict(Counter(node.type for node in workflow.nodes))


__all__ = [
    "NodeEdgeCaseRule",
    "count_node_types",
    "extract_edge_cases",
    "parse_notes",
]
