"""Build the ordered list of rows before any per-cell query runs."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from wtls import git_ops
from wtls.git_ops import GitError
from wtls.models import BranchItem, ListItem, ParsedWorktree, WorktreeItem

logger = logging.getLogger(__name__)


class ListError(Exception):
    """The listing cannot be produced at all."""


@dataclass(frozen=True)
class Listing:
    """Rows in display order plus what the collectors need to query them."""

    items: tuple[ListItem, ...]
    repo_root: Path
    primary: WorktreeItem | None = None
    current_path: Path | None = None

    @property
    def base_branch(self) -> str | None:
        return self.primary.branch if self.primary is not None else None

    def base_for(self, item: ListItem) -> str | None:
        """Branch the item is compared against; None for the primary worktree."""
        if item.is_primary:
            return None
        return self.base_branch


def _pick_primary(worktrees: Sequence[ParsedWorktree], default_branch: str | None) -> int | None:
    if not worktrees:
        return None
    if default_branch is not None:
        for idx, wt in enumerate(worktrees):
            if wt.branch == default_branch:
                return idx
    return 0


def assemble_items(
    worktrees: Sequence[ParsedWorktree],
    branches: Sequence[tuple[str, str]] = (),
    timestamps: dict[str, int] | None = None,
    default_branch: str | None = None,
    bare_layout: bool = False,
) -> tuple[tuple[ListItem, ...], WorktreeItem | None]:
    """Order worktrees and branch-only rows by commit time and index them.

    Bare entries are skipped. The primary worktree is the first one listed,
    or for a bare layout the one on default_branch. Branches already checked
    out in a worktree are dropped. The sort is stable, so equal timestamps
    (or no timestamps at all) keep listing order.
    """
    checked_out = [wt for wt in worktrees if not wt.bare]
    primary_idx = _pick_primary(checked_out, default_branch if bare_layout else None)
    occupied = {wt.branch for wt in checked_out if wt.branch}

    pending: list[tuple[str, ParsedWorktree | tuple[str, str], bool]] = []
    for idx, wt in enumerate(checked_out):
        pending.append((wt.head, wt, idx == primary_idx))
    for name, head in branches:
        if name in occupied:
            continue
        pending.append((head, (name, head), False))

    if timestamps:
        pending.sort(key=lambda entry: timestamps.get(entry[0], 0), reverse=True)

    items: list[ListItem] = []
    primary: WorktreeItem | None = None
    for index, (_, source, is_primary) in enumerate(pending):
        if isinstance(source, ParsedWorktree):
            item = WorktreeItem(
                index=index,
                path=source.path,
                head=source.head,
                branch=None if source.detached else source.branch,
                is_primary=is_primary,
                locked=source.locked,
                prunable=source.prunable,
            )
            if is_primary:
                primary = item
            items.append(item)
        else:
            name, head = source
            items.append(BranchItem(index=index, name=name, head=head))
    return tuple(items), primary


def build_listing(cwd: Path, include_branches: bool = False) -> Listing:
    """Discover the rows for the repository containing cwd."""
    repo_root = git_ops.get_repo_root(cwd)
    if repo_root is None:
        raise ListError("Not inside a git repository")

    try:
        worktrees = git_ops.list_worktrees(repo_root)
    except GitError as exc:
        raise ListError(f"Failed to list worktrees: {exc}") from exc
    if not any(not wt.bare for wt in worktrees):
        raise ListError("No worktrees found")

    branches: list[tuple[str, str]] = []
    if include_branches:
        try:
            branches = git_ops.list_local_branches_with_heads(repo_root)
        except GitError as exc:
            raise ListError(f"Failed to list branches: {exc}") from exc

    bare_layout = bool(worktrees) and worktrees[0].bare
    default_branch = git_ops.get_default_branch(repo_root) if bare_layout else None

    heads = [wt.head for wt in worktrees if not wt.bare] + [head for _, head in branches]
    try:
        timestamps = git_ops.commit_timestamps(repo_root, heads)
    except GitError as exc:
        logger.debug("commit timestamps unavailable, keeping listing order: %s", exc)
        timestamps = {}

    items, primary = assemble_items(
        worktrees,
        branches,
        timestamps,
        default_branch=default_branch,
        bare_layout=bare_layout,
    )
    current = git_ops.try_run(["rev-parse", "--show-toplevel"], cwd=cwd)
    return Listing(
        items=items,
        repo_root=repo_root,
        primary=primary,
        current_path=Path(current) if current else None,
    )
