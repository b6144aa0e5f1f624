from __future__ import annotations

from pathlib import Path

from wtls.items import Listing, assemble_items
from wtls.models import BranchItem, ParsedWorktree, WorktreeItem


def _wt(name: str, head: str, branch: str | None = None, **flags: bool) -> ParsedWorktree:
    return ParsedWorktree(path=Path(f"/repo/{name}"), head=head, branch=branch, **flags)


def test_sorted_by_commit_time_and_indexed() -> None:
    worktrees = [_wt("main", "a", "main"), _wt("feature", "b", "feature")]
    branches = [("main", "a"), ("feature", "b"), ("topic", "c")]
    items, primary = assemble_items(worktrees, branches, {"a": 100, "b": 300, "c": 200})

    assert [item.branch_name for item in items] == ["feature", "topic", "main"]
    assert [item.index for item in items] == [0, 1, 2]
    assert isinstance(items[1], BranchItem)
    assert primary is not None
    assert primary.branch == "main"
    assert primary.is_primary
    assert primary.index == 2


def test_ties_and_missing_timestamps_keep_listing_order() -> None:
    worktrees = [_wt("one", "a", "one"), _wt("two", "b", "two"), _wt("three", "c", "three")]
    items, _ = assemble_items(worktrees, timestamps={"a": 5, "b": 5, "c": 5})
    assert [item.branch_name for item in items] == ["one", "two", "three"]

    items, _ = assemble_items(worktrees, timestamps={})
    assert [item.branch_name for item in items] == ["one", "two", "three"]


def test_bare_entries_skipped_and_default_branch_is_primary() -> None:
    worktrees = [
        ParsedWorktree(path=Path("/repo/.git"), head="", bare=True),
        _wt("feature", "b", "feature"),
        _wt("main", "a", "main"),
    ]
    items, primary = assemble_items(worktrees, default_branch="main", bare_layout=True)
    assert all(isinstance(item, WorktreeItem) for item in items)
    assert [item.branch_name for item in items] == ["feature", "main"]
    assert primary is not None and primary.branch == "main"
    assert not items[0].is_primary


def test_first_worktree_is_primary_outside_bare_layout() -> None:
    worktrees = [_wt("main", "a", "develop"), _wt("other", "b", "main")]
    _, primary = assemble_items(worktrees, default_branch="main")
    assert primary is not None and primary.branch == "develop"


def test_detached_and_flags() -> None:
    worktrees = [
        _wt("main", "a", "main"),
        _wt("detached", "b", None, detached=True),
        _wt("old", "c", "old", locked=True, prunable=True),
    ]
    items, _ = assemble_items(worktrees)
    assert items[1].branch is None
    assert items[1].branch_name == "(detached)"
    assert items[2].locked and items[2].prunable


def test_listing_base_for() -> None:
    worktrees = [_wt("main", "a", "main"), _wt("feature", "b", "feature")]
    items, primary = assemble_items(worktrees, [("topic", "c")])
    listing = Listing(items=items, repo_root=Path("/repo/main"), primary=primary)

    assert listing.base_branch == "main"
    assert listing.base_for(items[0]) is None
    assert listing.base_for(items[1]) == "main"
    assert listing.base_for(items[2]) == "main"


def test_listing_without_primary_has_no_base() -> None:
    listing = Listing(items=(BranchItem(index=0, name="x", head="a"),), repo_root=Path("/r"))
    assert listing.base_branch is None
    assert listing.base_for(listing.items[0]) is None
