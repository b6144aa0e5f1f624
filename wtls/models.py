"""Data models for wtls."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Union

DETACHED = "(detached)"


@dataclass(frozen=True)
class ParsedWorktree:
    """Raw worktree data from git worktree list --porcelain."""

    path: Path
    head: str
    branch: str | None = None
    bare: bool = False
    detached: bool = False
    locked: bool = False
    prunable: bool = False


@dataclass(frozen=True)
class WorktreeItem:
    """A worktree row."""

    index: int
    path: Path
    head: str
    branch: str | None
    is_primary: bool = False
    locked: bool = False
    prunable: bool = False

    kind: ClassVar[str] = "worktree"
    has_working_tree: ClassVar[bool] = True

    @property
    def branch_name(self) -> str:
        return self.branch or DETACHED

    @property
    def expected_cells(self) -> int:
        return len(WORKTREE_CELLS)


@dataclass(frozen=True)
class BranchItem:
    """A local branch without a worktree."""

    index: int
    name: str
    head: str

    kind: ClassVar[str] = "branch"
    has_working_tree: ClassVar[bool] = False
    is_primary: ClassVar[bool] = False
    path: ClassVar[None] = None
    locked: ClassVar[bool] = False
    prunable: ClassVar[bool] = False

    @property
    def branch(self) -> str:
        return self.name

    @property
    def branch_name(self) -> str:
        return self.name

    @property
    def expected_cells(self) -> int:
        return len(BRANCH_CELLS)


ListItem = Union[WorktreeItem, BranchItem]


@dataclass(frozen=True)
class CommitDetails:
    """Timestamp and subject of a commit."""

    timestamp: int = 0
    message: str = ""


@dataclass(frozen=True)
class AheadBehind:
    """Commit counts ahead/behind a reference."""

    ahead: int = 0
    behind: int = 0


@dataclass(frozen=True)
class LineDiff:
    """Added/deleted line totals."""

    added: int = 0
    deleted: int = 0

    @property
    def is_empty(self) -> bool:
        return self.added == 0 and self.deleted == 0


@dataclass(frozen=True)
class WorkingTreeStatus:
    """Uncommitted changes of a worktree."""

    diff: LineDiff = field(default_factory=LineDiff)
    diff_with_base: LineDiff | None = None
    symbols: str = ""
    dirty: bool = False


@dataclass(frozen=True)
class UpstreamStatus:
    """Tracking branch and its divergence."""

    remote: str | None = None
    ahead: int = 0
    behind: int = 0

    def active(self) -> tuple[str, int, int] | None:
        if self.ahead == 0 and self.behind == 0:
            return None
        return self.remote or "origin", self.ahead, self.behind


@dataclass(frozen=True)
class CiStatus:
    """Pull request and check results for a branch."""

    number: int
    state: str
    url: str | None
    passed: int = 0
    total: int = 0
    checks: str | None = None  # "ok", "fail", "pend", or None
    stale: bool = False


# Cell updates. Each carries a single freshly computed value for one row.


@dataclass(frozen=True)
class CommitUpdate:
    item_idx: int
    value: CommitDetails
    cell: ClassVar[str] = "commit"


@dataclass(frozen=True)
class AheadBehindUpdate:
    item_idx: int
    value: AheadBehind
    cell: ClassVar[str] = "counts"


@dataclass(frozen=True)
class BranchDiffUpdate:
    item_idx: int
    value: LineDiff
    cell: ClassVar[str] = "branch_diff"


@dataclass(frozen=True)
class WorkingTreeUpdate:
    item_idx: int
    value: WorkingTreeStatus
    cell: ClassVar[str] = "working_tree"


@dataclass(frozen=True)
class ConflictsUpdate:
    item_idx: int
    value: bool
    cell: ClassVar[str] = "has_conflicts"


@dataclass(frozen=True)
class WorktreeStateUpdate:
    item_idx: int
    value: str | None
    cell: ClassVar[str] = "worktree_state"


@dataclass(frozen=True)
class UserStatusUpdate:
    item_idx: int
    value: str | None
    cell: ClassVar[str] = "user_status"


@dataclass(frozen=True)
class UpstreamUpdate:
    item_idx: int
    value: UpstreamStatus
    cell: ClassVar[str] = "upstream"


@dataclass(frozen=True)
class CiStatusUpdate:
    item_idx: int
    value: CiStatus | None
    cell: ClassVar[str] = "ci"


CellUpdate = Union[
    CommitUpdate,
    AheadBehindUpdate,
    BranchDiffUpdate,
    WorkingTreeUpdate,
    ConflictsUpdate,
    WorktreeStateUpdate,
    UserStatusUpdate,
    UpstreamUpdate,
    CiStatusUpdate,
]

WORKTREE_CELLS: tuple[str, ...] = (
    CommitUpdate.cell,
    AheadBehindUpdate.cell,
    BranchDiffUpdate.cell,
    WorkingTreeUpdate.cell,
    ConflictsUpdate.cell,
    WorktreeStateUpdate.cell,
    UserStatusUpdate.cell,
    UpstreamUpdate.cell,
    CiStatusUpdate.cell,
)

BRANCH_CELLS: tuple[str, ...] = (
    CommitUpdate.cell,
    AheadBehindUpdate.cell,
    BranchDiffUpdate.cell,
    UpstreamUpdate.cell,
    ConflictsUpdate.cell,
    CiStatusUpdate.cell,
)
