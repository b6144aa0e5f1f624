"""Turn row state into fixed-width table lines."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from wtls.display import fit, format_relative_time, truncate_at_word_boundary
from wtls.layout import GAP, ColumnKind, Layout
from wtls.models import AheadBehind, BranchItem, CiStatus, LineDiff

if TYPE_CHECKING:
    from wtls.consumer import ItemState

ANSI_RESET = "\x1b[0m"
ANSI_BOLD = "\x1b[1m"
ANSI_DIM = "\x1b[2m"
ANSI_RED = "\x1b[31m"
ANSI_GREEN = "\x1b[32m"
ANSI_YELLOW = "\x1b[33m"
ANSI_CYAN = "\x1b[36m"
ANSI_MUTED = "\x1b[38;5;245m"

PLACEHOLDER = "·"
CONFLICT_SYMBOL = "="
LOCKED_SYMBOL = "⊠"
PRUNABLE_SYMBOL = "⌫"

STATE_SYMBOLS = {
    "rebasing": "↻",
    "merging": "⋈",
    "cherry-picking": "↷",
    "reverting": "↶",
    "bisecting": "⇄",
}

CHECK_SYMBOLS = {"ok": "✓", "fail": "✗", "pend": "●"}
CHECK_COLORS = {"ok": ANSI_GREEN, "fail": ANSI_RED, "pend": ANSI_YELLOW}

# Cells a column needs before it shows real text instead of a placeholder.
WORKTREE_SOURCES = {
    ColumnKind.STATUS: ("working_tree", "has_conflicts", "worktree_state", "user_status"),
    ColumnKind.WORKING_DIFF: ("working_tree",),
    ColumnKind.AHEAD_BEHIND: ("counts",),
    ColumnKind.BRANCH_DIFF: ("branch_diff",),
    ColumnKind.UPSTREAM: ("upstream",),
    ColumnKind.CI: ("ci",),
    ColumnKind.AGE: ("commit",),
    ColumnKind.MESSAGE: ("commit",),
}
BRANCH_SOURCES = {
    **WORKTREE_SOURCES,
    ColumnKind.STATUS: ("has_conflicts",),
    ColumnKind.WORKING_DIFF: (),
}


def _colorize(text: str, color: str | None) -> str:
    if not color or not text:
        return text
    return f"{color}{text}{ANSI_RESET}"


def _link(label: str, url: str | None) -> str:
    if not url:
        return label
    return f"\x1b]8;;{url}\x1b\\{label}\x1b]8;;\x1b\\"


def format_ahead_behind(counts: AheadBehind) -> str:
    """Render counts as e.g. 2↑1↓, 3↓ or nothing when level."""
    text = ""
    if counts.ahead:
        text += f"{counts.ahead}↑"
    if counts.behind:
        text += f"{counts.behind}↓"
    return text


def format_diff(diff: LineDiff | None) -> str:
    if diff is None or diff.is_empty:
        return ""
    return f"+{diff.added} -{diff.deleted}"


def format_status(state: ItemState) -> str:
    item = state.item
    text = ""
    if item.has_working_tree:
        text += state.working_tree.symbols
    if state.has_conflicts:
        text += CONFLICT_SYMBOL
    if state.worktree_state:
        text += STATE_SYMBOLS.get(state.worktree_state, "")
    if item.locked:
        text += LOCKED_SYMBOL
    if item.prunable:
        text += PRUNABLE_SYMBOL
    if state.user_status:
        text += state.user_status
    return text


def format_upstream(state: ItemState) -> str:
    active = state.upstream.active()
    if active is None:
        return ""
    _, ahead, behind = active
    return format_ahead_behind(AheadBehind(ahead=ahead, behind=behind))


def format_ci(ci: CiStatus | None) -> str:
    if ci is None:
        return ""
    marker = CHECK_SYMBOLS.get(ci.checks or "", ci.state.lower())
    return f"#{ci.number} {marker}"


def _ci_color(ci: CiStatus | None) -> str | None:
    if ci is None:
        return None
    if ci.stale:
        return ANSI_MUTED
    return CHECK_COLORS.get(ci.checks or "")


def _column_ready(state: ItemState, kind: ColumnKind) -> bool:
    sources = BRANCH_SOURCES if isinstance(state.item, BranchItem) else WORKTREE_SOURCES
    return all(cell in state.filled for cell in sources.get(kind, ()))


def _cell_text(
    state: ItemState, kind: ColumnKind, layout: Layout, width: int, now: int
) -> tuple[str, str | None, str | None]:
    """(text, color, link url) of one cell."""
    item = state.item
    if kind == ColumnKind.BRANCH:
        return item.branch_name, None, None
    if kind == ColumnKind.PATH:
        return layout.path_labels.get(item.index, ""), None, None
    if kind == ColumnKind.STATUS:
        return format_status(state), ANSI_CYAN, None
    if kind == ColumnKind.WORKING_DIFF:
        diff = state.working_tree.diff if item.has_working_tree else None
        return format_diff(diff), ANSI_GREEN, None
    if kind == ColumnKind.AHEAD_BEHIND:
        return format_ahead_behind(state.counts), None, None
    if kind == ColumnKind.BRANCH_DIFF:
        return format_diff(state.branch_diff), ANSI_MUTED, None
    if kind == ColumnKind.UPSTREAM:
        return format_upstream(state), None, None
    if kind == ColumnKind.CI:
        return format_ci(state.ci), _ci_color(state.ci), state.ci.url if state.ci else None
    if kind == ColumnKind.AGE:
        return format_relative_time(state.commit.timestamp, now), ANSI_MUTED, None
    return truncate_at_word_boundary(state.commit.message, width), None, None


def _pad(text: str, width: int, color: str | None, url: str | None = None) -> str:
    fitted = fit(text, width)
    content = fitted.rstrip(" ")
    padding = fitted[len(content) :]
    return _link(_colorize(content, color), url) + padding


def format_row(
    state: ItemState,
    layout: Layout,
    now: int,
    color: bool = True,
    current_path: Path | None = None,
) -> str:
    cells: list[str] = []
    for column in layout.columns:
        if not _column_ready(state, column.kind):
            cells.append(_pad(PLACEHOLDER, column.width, ANSI_DIM if color else None))
            continue
        text, cell_color, url = _cell_text(state, column.kind, layout, column.width, now)
        if column.kind == ColumnKind.BRANCH:
            if current_path is not None and state.item.path == current_path:
                cell_color = ANSI_BOLD + ANSI_GREEN
            elif state.item.is_primary:
                cell_color = ANSI_BOLD
            elif isinstance(state.item, BranchItem):
                cell_color = ANSI_MUTED
        cells.append(_pad(text, column.width, cell_color if color else None, url if color else None))
    return (" " * GAP).join(cells).rstrip()


def format_header(layout: Layout, color: bool = True) -> str:
    cells = [_pad(column.header, column.width, ANSI_BOLD if color else None) for column in layout.columns]
    return (" " * GAP).join(cells).rstrip()


def format_summary(states: Iterable[ItemState], include_branches: bool, color: bool = True) -> str:
    """One line of totals, e.g. "Showing 3 worktrees, 1 with changes, 1 ahead"."""
    worktrees = branches = dirty = ahead = behind = 0
    for state in states:
        if isinstance(state.item, BranchItem):
            branches += 1
        else:
            worktrees += 1
            if state.working_tree.dirty:
                dirty += 1
        upstream = state.upstream.active()
        up_ahead, up_behind = (upstream[1], upstream[2]) if upstream else (0, 0)
        if state.counts.ahead or up_ahead:
            ahead += 1
        if state.counts.behind or up_behind:
            behind += 1

    if include_branches:
        parts = [f"{worktrees} worktrees"]
        if branches:
            parts.append(f"{branches} branches")
    else:
        parts = [f"{worktrees} worktree{'' if worktrees == 1 else 's'}"]
    if dirty:
        parts.append(f"{dirty} with changes")
    if ahead:
        parts.append(f"{ahead} ahead")
    if behind:
        parts.append(f"{behind} behind")
    text = "Showing " + ", ".join(parts)
    return _colorize(text, ANSI_DIM if color else None)


def format_pick_label(state: ItemState, now: int) -> str:
    """Plain one-line description used by the interactive picker."""
    item = state.item
    location = str(item.path) if item.path is not None else "(branch)"
    age = format_relative_time(state.commit.timestamp, now) or "unknown"
    counts = format_ahead_behind(state.counts) or "-"
    return f"{item.branch_name:30} {age:16} {counts:8} {location}"
