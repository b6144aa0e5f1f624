"""Responsive column layout for the list table."""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field

from rich.cells import cell_len

from wtls.display import find_common_prefix, shorten_path
from wtls.models import ListItem

GAP = 2
STATUS_WIDTH = 6
DIFF_WIDTH = 9
# Room for "999↑999↓".
AHEAD_BEHIND_WIDTH = 8
UPSTREAM_WIDTH = 9
CI_WIDTH = 10
AGE_WIDTH = 14
MAX_MESSAGE_WIDTH = 50
MIN_MESSAGE_WIDTH = 12


class ColumnKind(str, enum.Enum):
    BRANCH = "branch"
    STATUS = "status"
    WORKING_DIFF = "working_diff"
    AHEAD_BEHIND = "ahead_behind"
    BRANCH_DIFF = "branch_diff"
    PATH = "path"
    UPSTREAM = "upstream"
    CI = "ci"
    AGE = "age"
    MESSAGE = "message"


# First hidden when space runs out. BRANCH is never hidden.
HIDE_ORDER = (
    ColumnKind.CI,
    ColumnKind.BRANCH_DIFF,
    ColumnKind.UPSTREAM,
    ColumnKind.PATH,
    ColumnKind.AGE,
    ColumnKind.WORKING_DIFF,
    ColumnKind.STATUS,
    ColumnKind.MESSAGE,
    ColumnKind.AHEAD_BEHIND,
)

OPTIONAL_COLUMNS = frozenset({ColumnKind.CI, ColumnKind.BRANCH_DIFF})


@dataclass(frozen=True)
class Column:
    kind: ColumnKind
    header: str
    width: int


@dataclass(frozen=True)
class Layout:
    """Visible columns and their widths, decided before rendering starts."""

    columns: tuple[Column, ...]
    terminal_width: int
    show_optional: bool
    path_labels: dict[int, str] = field(default_factory=dict)

    def has(self, kind: ColumnKind) -> bool:
        return any(column.kind == kind for column in self.columns)

    @property
    def line_width(self) -> int:
        if not self.columns:
            return 0
        return sum(column.width for column in self.columns) + GAP * (len(self.columns) - 1)


def path_labels(items: Sequence[ListItem]) -> dict[int, str]:
    """Worktree paths shortened against their common prefix, keyed by item index."""
    paths = [item.path for item in items if item.path is not None]
    prefix = find_common_prefix(paths) if len(paths) > 1 else None
    labels: dict[int, str] = {}
    for item in items:
        if item.path is None:
            labels[item.index] = ""
        elif prefix is None:
            labels[item.index] = item.path.name or str(item.path)
        else:
            labels[item.index] = shorten_path(item.path, prefix)
    return labels


def _candidate_columns(
    items: Sequence[ListItem],
    labels: dict[int, str],
    base_branch: str | None,
    show_branch_diff: bool,
    show_ci: bool,
) -> list[Column]:
    base = base_branch or "main"
    branch_width = max([cell_len("Branch"), *(cell_len(item.branch_name) for item in items)])
    path_width = max([cell_len("Path"), *(cell_len(label) for label in labels.values())])
    ahead_behind_header = f"{base}↕"
    branch_diff_header = f"{base}…±"

    columns = [
        Column(ColumnKind.BRANCH, "Branch", branch_width),
        Column(ColumnKind.STATUS, "Status", STATUS_WIDTH),
        Column(ColumnKind.WORKING_DIFF, "HEAD±", DIFF_WIDTH),
        Column(
            ColumnKind.AHEAD_BEHIND,
            ahead_behind_header,
            max(cell_len(ahead_behind_header), AHEAD_BEHIND_WIDTH),
        ),
    ]
    if show_branch_diff:
        columns.append(
            Column(
                ColumnKind.BRANCH_DIFF,
                branch_diff_header,
                max(cell_len(branch_diff_header), DIFF_WIDTH),
            )
        )
    columns.append(Column(ColumnKind.PATH, "Path", path_width))
    columns.append(Column(ColumnKind.UPSTREAM, "Remote⇅", UPSTREAM_WIDTH))
    if show_ci:
        columns.append(Column(ColumnKind.CI, "CI", CI_WIDTH))
    columns.append(Column(ColumnKind.AGE, "Age", AGE_WIDTH))
    columns.append(Column(ColumnKind.MESSAGE, "Message", MAX_MESSAGE_WIDTH))
    return columns


def calculate_responsive_layout(
    items: Sequence[ListItem],
    terminal_width: int,
    base_branch: str | None = None,
    show_branch_diff: bool = False,
    show_ci: bool = False,
) -> Layout:
    """Choose visible columns so a row fits terminal_width.

    The message column absorbs whatever space is left (up to its maximum).
    When it cannot get its minimum, columns are hidden in HIDE_ORDER.
    """
    labels = path_labels(items)
    candidates = _candidate_columns(items, labels, base_branch, show_branch_diff, show_ci)
    requested_optional = {c.kind for c in candidates if c.kind in OPTIONAL_COLUMNS}
    visible = {column.kind for column in candidates}

    def _build(columns: list[Column]) -> Layout:
        kinds = {column.kind for column in columns}
        return Layout(
            columns=tuple(columns),
            terminal_width=terminal_width,
            show_optional=bool(requested_optional) and requested_optional <= kinds,
            path_labels=labels,
        )

    for hidden in (None, *HIDE_ORDER):
        if hidden is not None:
            if hidden not in visible:
                continue
            visible.discard(hidden)
        columns = [column for column in candidates if column.kind in visible]
        fixed = [column for column in columns if column.kind != ColumnKind.MESSAGE]
        used = sum(column.width for column in fixed) + GAP * (len(fixed) - 1)
        if ColumnKind.MESSAGE not in visible:
            if used <= terminal_width:
                return _build(columns)
            continue
        remaining = terminal_width - used - GAP
        if remaining >= MIN_MESSAGE_WIDTH:
            message_width = min(MAX_MESSAGE_WIDTH, remaining)
            return _build(
                [
                    Column(column.kind, column.header, message_width)
                    if column.kind == ColumnKind.MESSAGE
                    else column
                    for column in columns
                ]
            )

    return _build([candidates[0]])
