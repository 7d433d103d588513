"""Live per-worker progress display (debug mode).

Each worker owns a slot listing the workflows it processed, coloured by status.
Every change redraws all slots; on a TTY the cursor is moved back so the board
updates in place.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TextIO

from .results import ExecutionStatus

RESET = "\x1b[0m"
STATUS_COLORS = {
    ExecutionStatus.SUCCESS: "\x1b[32m",
    ExecutionStatus.WARNING: "\x1b[33m",
    ExecutionStatus.ERROR: "\x1b[31m",
}


@dataclass
class ProgressEntry:
    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.RUNNING


class ProgressBoard:
    """Shared progress state written by workers and redrawn on every change.

    Updates and redraws happen synchronously on the event loop thread, so a
    redraw never observes a half-applied update.
    """

    def __init__(self, workers: int, stream: TextIO | None = None, enabled: bool = True) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._enabled = enabled
        self._frozen = False
        self._slots: list[list[ProgressEntry]] = [[] for _ in range(workers)]
        self._drawn = False

    @property
    def slots(self) -> list[list[ProgressEntry]]:
        return self._slots

    def reset(self, workers: int) -> None:
        """Start a new pass with empty slots."""
        self._slots = [[] for _ in range(workers)]
        self._drawn = False
        if self._enabled and not self._frozen:
            self._write_banner()

    def freeze(self) -> None:
        """Stop redrawing (cancellation in progress)."""
        self._frozen = True

    def start(self, worker_id: int, workflow_id: str) -> None:
        self._slots[worker_id].append(ProgressEntry(workflow_id))
        self.render()

    def finish(self, worker_id: int, workflow_id: str, status: ExecutionStatus) -> None:
        slot = self._slots[worker_id]
        if slot and slot[-1].workflow_id == workflow_id:
            slot[-1].status = status
        else:
            slot.append(ProgressEntry(workflow_id, status))
        self.render()

    def format_slot(self, worker_id: int) -> str:
        entries = []
        for entry in self._slots[worker_id]:
            color = STATUS_COLORS.get(entry.status, RESET)
            entries.append(f"{color}{entry.workflow_id}{RESET}")
        return f"{worker_id + 1}: {', '.join(entries)}"

    def render(self) -> None:
        if not self._enabled or self._frozen:
            return

        is_tty = self._stream.isatty()
        if is_tty and self._drawn:
            # Move back to the first slot line
            self._stream.write(f"\x1b[{len(self._slots)}F")

        for worker_id in range(len(self._slots)):
            if is_tty:
                self._stream.write("\x1b[2K")
            self._stream.write(f"{self.format_slot(worker_id)}\n")
        self._stream.flush()
        self._drawn = True

    def _write_banner(self) -> None:
        self._stream.write("*" * 46 + "\n")
        self._stream.write("              workflow batch run\n")
        self._stream.write("*" * 46 + "\n\n")
        self._stream.write("Batch number:\n")
        self._stream.flush()


__all__ = ["ProgressBoard", "ProgressEntry"]
