from __future__ import annotations

from pathlib import Path

import pytest
from rich.cells import cell_len

from wtls.layout import (
    MAX_MESSAGE_WIDTH,
    MIN_MESSAGE_WIDTH,
    ColumnKind,
    calculate_responsive_layout,
    path_labels,
)
from wtls.models import BranchItem, WorktreeItem

ITEMS = (
    WorktreeItem(index=0, path=Path("/w/repo"), head="a", branch="main", is_primary=True),
    WorktreeItem(index=1, path=Path("/w/feature"), head="b", branch="feature"),
)


def test_wide_terminal_shows_default_columns() -> None:
    layout = calculate_responsive_layout(ITEMS, 200, base_branch="main")
    kinds = [column.kind for column in layout.columns]
    assert kinds == [
        ColumnKind.BRANCH,
        ColumnKind.STATUS,
        ColumnKind.WORKING_DIFF,
        ColumnKind.AHEAD_BEHIND,
        ColumnKind.PATH,
        ColumnKind.UPSTREAM,
        ColumnKind.AGE,
        ColumnKind.MESSAGE,
    ]
    assert layout.columns[-1].width == MAX_MESSAGE_WIDTH
    assert layout.columns[3].header == "main↕"
    assert not layout.show_optional


def test_optional_columns_when_requested() -> None:
    layout = calculate_responsive_layout(
        ITEMS, 200, base_branch="main", show_branch_diff=True, show_ci=True
    )
    assert layout.has(ColumnKind.CI)
    assert layout.has(ColumnKind.BRANCH_DIFF)
    assert layout.show_optional
    headers = [column.header for column in layout.columns]
    assert headers.index("main…±") == headers.index("main↕") + 1


def test_narrow_terminal_hides_in_priority_order() -> None:
    layout = calculate_responsive_layout(ITEMS, 40, base_branch="main")
    kinds = [column.kind for column in layout.columns]
    assert kinds == [
        ColumnKind.BRANCH,
        ColumnKind.STATUS,
        ColumnKind.AHEAD_BEHIND,
        ColumnKind.MESSAGE,
    ]
    assert layout.columns[-1].width == 13
    assert layout.line_width == 40


def test_narrow_terminal_drops_requested_optional_columns() -> None:
    layout = calculate_responsive_layout(
        ITEMS, 40, base_branch="main", show_branch_diff=True, show_ci=True
    )
    assert not layout.has(ColumnKind.CI)
    assert not layout.has(ColumnKind.BRANCH_DIFF)
    assert not layout.show_optional
    assert layout.has(ColumnKind.MESSAGE)
    assert layout.line_width <= 40


def test_ahead_behind_column_fits_three_digit_counts() -> None:
    layout = calculate_responsive_layout(ITEMS, 200, base_branch="main")
    (column,) = [c for c in layout.columns if c.kind == ColumnKind.AHEAD_BEHIND]
    assert column.width >= cell_len("999↑999↓")


def test_message_shrinks_before_hiding() -> None:
    layout = calculate_responsive_layout(ITEMS, 90, base_branch="main")
    message = layout.columns[-1]
    assert message.kind == ColumnKind.MESSAGE
    assert MIN_MESSAGE_WIDTH <= message.width < MAX_MESSAGE_WIDTH
    assert layout.has(ColumnKind.UPSTREAM)
    assert layout.line_width == 90


def test_branch_column_is_never_hidden() -> None:
    layout = calculate_responsive_layout(ITEMS, 8, base_branch="main")
    assert [column.kind for column in layout.columns] == [ColumnKind.BRANCH]


@pytest.mark.parametrize("full", [False, True])
def test_rows_never_exceed_width(full: bool) -> None:
    branch_width = len("feature")
    for width in range(branch_width, 220):
        layout = calculate_responsive_layout(
            ITEMS, width, base_branch="main", show_branch_diff=full, show_ci=full
        )
        assert layout.line_width <= width, width


def test_path_labels_share_prefix() -> None:
    items = (*ITEMS, BranchItem(index=2, name="topic", head="c"))
    assert path_labels(items) == {0: "./repo", 1: "./feature", 2: ""}


def test_single_path_label_is_directory_name() -> None:
    assert path_labels(ITEMS[:1]) == {0: "repo"}
