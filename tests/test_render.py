from __future__ import annotations

from pathlib import Path

import pytest
from rich.cells import cell_len

from wtls.consumer import ItemState
from wtls.layout import calculate_responsive_layout
from wtls.models import (
    AheadBehind,
    BranchItem,
    CiStatus,
    CommitDetails,
    LineDiff,
    UpstreamStatus,
    WorkingTreeStatus,
    WorktreeItem,
)
from wtls.render import (
    ANSI_RESET,
    format_ahead_behind,
    format_ci,
    format_diff,
    format_header,
    format_pick_label,
    format_row,
    format_status,
    format_summary,
)
from wtls.select import pick_labels
from wtls.shell import SHELLS, shell_init

NOW = 1_700_000_000

PRIMARY = WorktreeItem(index=0, path=Path("/w/repo"), head="a", branch="main", is_primary=True)
FEATURE = WorktreeItem(index=1, path=Path("/w/feature"), head="b", branch="feature")
TOPIC = BranchItem(index=2, name="topic", head="c")


@pytest.mark.parametrize(
    ("ahead", "behind", "expected"),
    [(2, 1, "2↑1↓"), (0, 3, "3↓"), (4, 0, "4↑"), (0, 0, "")],
)
def test_format_ahead_behind(ahead: int, behind: int, expected: str) -> None:
    assert format_ahead_behind(AheadBehind(ahead, behind)) == expected


def test_format_diff() -> None:
    assert format_diff(LineDiff(12, 3)) == "+12 -3"
    assert format_diff(LineDiff()) == ""
    assert format_diff(None) == ""


def test_format_status_combines_markers() -> None:
    state = ItemState(
        FEATURE,
        working_tree=WorkingTreeStatus(symbols="?!", dirty=True),
        has_conflicts=True,
        worktree_state="rebasing",
        user_status="wip",
    )
    assert format_status(state) == "?!=↻wip"
    assert format_status(ItemState(TOPIC, has_conflicts=True)) == "="


def test_format_ci() -> None:
    assert format_ci(None) == ""
    assert format_ci(CiStatus(number=12, state="OPEN", url=None, checks="ok")) == "#12 ✓"
    assert format_ci(CiStatus(number=3, state="MERGED", url=None)) == "#3 merged"


def test_summary_counts_upstream_divergence() -> None:
    states = [
        ItemState(PRIMARY),
        ItemState(
            FEATURE,
            counts=AheadBehind(2, 1),
            working_tree=WorkingTreeStatus(symbols="?", dirty=True),
        ),
        ItemState(TOPIC, upstream=UpstreamStatus(remote="origin", behind=3)),
    ]
    assert (
        format_summary(states, include_branches=True, color=False)
        == "Showing 2 worktrees, 1 branches, 1 with changes, 1 ahead, 2 behind"
    )


def test_summary_single_worktree() -> None:
    assert format_summary([ItemState(PRIMARY)], include_branches=False, color=False) == (
        "Showing 1 worktree"
    )
    colored = format_summary([ItemState(PRIMARY)], include_branches=False)
    assert colored.endswith(ANSI_RESET)


def test_row_uses_layout_widths() -> None:
    layout = calculate_responsive_layout((PRIMARY, FEATURE), 80, base_branch="main")
    state = ItemState(FEATURE, commit=CommitDetails(NOW - 60, "a long commit message " * 5))
    state.filled.update({"commit"})
    row = format_row(state, layout, NOW, color=False)
    header = format_header(layout, color=False)
    assert header.startswith("Branch")
    assert len(row) <= 80
    assert "1 minute ago" in row
    assert row.endswith("…")


def test_narrow_row_keeps_counts_and_cuts_message_at_word() -> None:
    layout = calculate_responsive_layout((PRIMARY, FEATURE), 40, base_branch="main")
    state = ItemState(
        FEATURE,
        counts=AheadBehind(100, 12),
        commit=CommitDetails(NOW - 60, "add a much longer feature description"),
    )
    state.filled.update(
        {"counts", "commit", "working_tree", "has_conflicts", "worktree_state", "user_status"}
    )
    row = format_row(state, layout, NOW, color=False)
    assert cell_len(row) <= 40
    assert "100↑12↓" in row
    assert row.endswith("add a much…")


def test_current_worktree_highlighted() -> None:
    layout = calculate_responsive_layout((PRIMARY, FEATURE), 80, base_branch="main")
    row = format_row(ItemState(FEATURE), layout, NOW, color=True, current_path=FEATURE.path)
    assert row.startswith("\x1b[1m\x1b[32mfeature")


def test_pick_labels_are_unique() -> None:
    twin = WorktreeItem(index=3, path=Path("/w/feature"), head="b", branch="feature")
    labels = pick_labels([ItemState(FEATURE), ItemState(twin)], NOW)
    assert len(labels) == 2
    assert all(label.startswith("feature") for label in labels)
    assert format_pick_label(ItemState(TOPIC), NOW).endswith("(branch)")


@pytest.mark.parametrize("shell", sorted(SHELLS))
def test_shell_init(shell: str) -> None:
    snippet = shell_init(shell)
    assert "WTLS_OUTPUT_FILE" in snippet
    assert "command wtls" in snippet


def test_shell_init_unknown() -> None:
    with pytest.raises(KeyError):
        shell_init("tcsh")
