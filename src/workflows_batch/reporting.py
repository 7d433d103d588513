"""Report formatting for batch results.

- JSON report: machine-readable, camelCase keys, optionally without successes
- Text summary: human-readable counters and node coverage (written to the log
  when the JSON report goes to a file)
- CI output: key=value lines appended to the CI output file
"""

from __future__ import annotations

import json
from pathlib import Path

from .engine.results import BatchResult


def format_report_json(result: BatchResult, short: bool = False) -> str:
    """Format a batch result as an indented JSON report.

    Args:
        result: Final batch result
        short: Omit successful execution records

    Returns:
        JSON string
    """
    return json.dumps(result.to_report(short=short), indent=2)


def format_summary(result: BatchResult, output_file: Path | None = None) -> str:
    """Format the human-readable run summary.

    Args:
        result: Final batch result
        output_file: Where the JSON report was written (mentioned in the summary)

    Returns:
        Multi-line summary text
    """
    summary = result.summary
    lines = [
        "",
        "Execution finished.",
        "================================",
        f"Workflows: {result.total_workflows}",
        f"Success: {summary.successful_executions}",
        f"Failures: {summary.failed_executions}",
        f"Warnings: {summary.warning_executions}",
    ]

    if result.covered_nodes:
        lines.append("")
        lines.append("Nodes successfully tested:")
        for node_type, count in sorted(result.covered_nodes.items()):
            lines.append(f"  {node_type}: {count}")

    if output_file is not None:
        lines.append("")
        lines.append(f"Report written to {output_file}")
        lines.append("Check the JSON file for more details.")

    lines.append("================================")
    return "\n".join(lines)


def write_ci_output(key: str, value: str, path: Path) -> None:
    """Append a `key=value` line to a CI output file."""
    with path.open("a", encoding="utf-8") as f:
        f.write(f"{key}={value}\n")


__all__ = ["format_report_json", "format_summary", "write_ci_output"]
