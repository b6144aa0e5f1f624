"""Apply streamed cell updates to row state and keep the screen in sync."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from queue import Queue
from typing import Any, TextIO

from wtls.collect import CLOSED, Message
from wtls.layout import Layout
from wtls.models import (
    AheadBehind,
    CellUpdate,
    CiStatus,
    CommitDetails,
    LineDiff,
    ListItem,
    UpstreamStatus,
    WorkingTreeStatus,
    WorktreeItem,
)
from wtls.progressive import RenderMode, Repaint
from wtls.render import format_header, format_row, format_summary

logger = logging.getLogger(__name__)


@dataclass
class ItemState:
    """Everything known about one row so far."""

    item: ListItem
    commit: CommitDetails = field(default_factory=CommitDetails)
    counts: AheadBehind = field(default_factory=AheadBehind)
    branch_diff: LineDiff = field(default_factory=LineDiff)
    working_tree: WorkingTreeStatus = field(default_factory=WorkingTreeStatus)
    has_conflicts: bool = False
    worktree_state: str | None = None
    user_status: str | None = None
    upstream: UpstreamStatus = field(default_factory=UpstreamStatus)
    ci: CiStatus | None = None
    filled: set[str] = field(default_factory=set)

    def apply(self, update: CellUpdate) -> None:
        assert update.cell not in self.filled, (
            f"duplicate {update.cell} update for row {self.item.index}"
        )
        setattr(self, update.cell, update.value)
        self.filled.add(update.cell)

    @property
    def complete(self) -> bool:
        return len(self.filled) >= self.item.expected_cells

    def to_json(self) -> dict[str, Any]:
        item = self.item
        data: dict[str, Any] = {
            "type": item.kind,
            "branch": item.branch,
            "head": item.head,
            "path": str(item.path) if item.path is not None else None,
            "is_primary": item.is_primary,
            "commit": {"timestamp": self.commit.timestamp, "message": self.commit.message},
            "ahead": self.counts.ahead,
            "behind": self.counts.behind,
            "branch_diff": {"added": self.branch_diff.added, "deleted": self.branch_diff.deleted},
            "upstream": {
                "remote": self.upstream.remote,
                "ahead": self.upstream.ahead,
                "behind": self.upstream.behind,
            },
            "has_conflicts": self.has_conflicts,
            "ci": None,
        }
        if self.ci is not None:
            data["ci"] = {
                "number": self.ci.number,
                "state": self.ci.state,
                "url": self.ci.url,
                "checks": self.ci.checks,
                "passed": self.ci.passed,
                "total": self.ci.total,
                "stale": self.ci.stale,
            }
        if isinstance(item, WorktreeItem):
            wt = self.working_tree
            data.update(
                {
                    "locked": item.locked,
                    "prunable": item.prunable,
                    "working_tree": {
                        "added": wt.diff.added,
                        "deleted": wt.diff.deleted,
                        "symbols": wt.symbols,
                        "dirty": wt.dirty,
                        "diff_with_base": None
                        if wt.diff_with_base is None
                        else {"added": wt.diff_with_base.added, "deleted": wt.diff_with_base.deleted},
                    },
                    "worktree_state": self.worktree_state,
                    "user_status": self.user_status,
                }
            )
        return data


class ListTable:
    """Row states plus the terminal lines that show them.

    In progressive mode the table is printed with placeholders up front and
    lines are rewritten as updates arrive. In buffered mode nothing is
    written until finish().
    """

    def __init__(
        self,
        items: Sequence[ListItem],
        layout: Layout,
        now: int,
        mode: RenderMode = RenderMode.BUFFERED,
        repaint: Repaint = Repaint.ROW,
        include_branches: bool = False,
        color: bool = True,
        current_path: Path | None = None,
        stream: TextIO | None = None,
    ) -> None:
        self.states = [ItemState(item) for item in items]
        self.layout = layout
        self.now = now
        self.mode = mode
        self.repaint = repaint
        self.include_branches = include_branches
        self.color = color
        self.current_path = current_path
        self.stream = stream or sys.stdout
        self.received = 0
        self.expected = sum(item.expected_cells for item in items)
        self._started = False

    # Lines

    def header_line(self) -> str:
        return format_header(self.layout, color=self.color)

    def row_line(self, idx: int) -> str:
        return format_row(
            self.states[idx],
            self.layout,
            self.now,
            color=self.color,
            current_path=self.current_path,
        )

    def summary_line(self) -> str:
        return format_summary(self.states, self.include_branches, color=self.color)

    def progress_line(self) -> str:
        done = sum(1 for state in self.states if state.complete)
        return f"Collecting {done}/{len(self.states)}…"

    def lines(self) -> list[str]:
        """Final screen: header, rows, blank line, summary."""
        rows = [self.row_line(idx) for idx in range(len(self.states))]
        return [self.header_line(), *rows, "", self.summary_line()]

    # Terminal output

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def _rewrite_line(self, lines_up: int, text: str) -> None:
        self.stream.write("\x1b[s")
        self.stream.write(f"\x1b[{lines_up}A")
        self.stream.write("\r\x1b[2K")
        self.stream.write(text)
        self.stream.write("\x1b[u")
        self.stream.flush()

    def _repaint_row(self, idx: int) -> None:
        # Cursor sits below the progress line: rows, then progress, then cursor.
        lines_up = len(self.states) - idx + 1
        self._rewrite_line(lines_up, self.row_line(idx))
        self._rewrite_line(1, self.progress_line())

    def _repaint_full(self) -> None:
        total = len(self.states) + 1
        self.stream.write(f"\x1b[{total}A\r")
        for idx in range(len(self.states)):
            self.stream.write("\x1b[2K" + self.row_line(idx) + "\n")
        self.stream.write("\x1b[2K" + self.progress_line() + "\n")
        self.stream.flush()

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        if self.mode is not RenderMode.PROGRESSIVE:
            return
        rows = [self.row_line(idx) for idx in range(len(self.states))]
        self._write("\n".join([self.header_line(), *rows, self.progress_line()]) + "\n")

    def apply(self, update: CellUpdate) -> None:
        self.states[update.item_idx].apply(update)
        self.received += 1
        if self.mode is not RenderMode.PROGRESSIVE or not self._started:
            return
        if self.repaint is Repaint.FULL:
            self._repaint_full()
        else:
            self._repaint_row(update.item_idx)

    def drain(self, channel: Queue[Message], expected: int | None = None) -> int:
        """Apply updates until the expected count arrives or the channel closes."""
        target = self.expected if expected is None else expected
        applied = 0
        while self.received < target:
            message = channel.get()
            if message is CLOSED:
                logger.debug("channel closed after %d of %d updates", self.received, target)
                break
            self.apply(message)
            applied += 1
        return applied

    def finish(self) -> None:
        """Leave the final screen on the stream."""
        if self.mode is RenderMode.PROGRESSIVE and self._started:
            # Replace the progress line with the blank separator, then redraw
            # every row so both modes end on identical text.
            total = len(self.states) + 1
            self.stream.write(f"\x1b[{total}A\r")
            for idx in range(len(self.states)):
                self.stream.write("\x1b[2K" + self.row_line(idx) + "\n")
            self.stream.write("\x1b[2K\n")
            self._write(self.summary_line() + "\n")
            return
        self._write("\n".join(self.lines()) + "\n")
