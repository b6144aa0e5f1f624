"""Progressive collection: one concurrent query per cell, streamed as updates.

Every item receives exactly one update per cell it displays (nine for a
worktree, six for a branch) whether its query ran, was skipped, or failed.
The consumer relies on that count to know when a row is complete.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from queue import Queue
from typing import Any, NamedTuple, Optional, Union

from wtls import gh_ops
from wtls.git_ops import Repository, parse_status_symbols
from wtls.items import Listing
from wtls.models import (
    AheadBehind,
    AheadBehindUpdate,
    BranchDiffUpdate,
    BranchItem,
    CellUpdate,
    CiStatus,
    CiStatusUpdate,
    CommitDetails,
    CommitUpdate,
    ConflictsUpdate,
    LineDiff,
    ListItem,
    UpstreamStatus,
    UpstreamUpdate,
    UserStatusUpdate,
    WorkingTreeStatus,
    WorkingTreeUpdate,
    WorktreeItem,
    WorktreeStateUpdate,
)

logger = logging.getLogger(__name__)


class _Closed:
    def __repr__(self) -> str:
        return "CLOSED"


# Put on the channel once every collector has returned.
CLOSED = _Closed()

Message = Union[CellUpdate, _Closed]

CiLookup = Callable[[Path, str, str, Optional[str]], Optional[CiStatus]]
WarningFactory = Callable[[BaseException], tuple[Optional[str], Optional[str]]]


@dataclass(frozen=True)
class CollectOptions:
    fetch_ci: bool = False
    check_conflicts: bool = False
    sequential: bool = False


@dataclass(frozen=True)
class QueryFailure:
    item_idx: int
    label: str
    query: str
    error: BaseException


@dataclass
class QueryFailures:
    """Failed queries and the warnings they produced, shared by all tasks."""

    failures: list[QueryFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(
        self,
        item: ListItem,
        query: str,
        error: BaseException,
        warning: str | None = None,
        hint: str | None = None,
    ) -> None:
        label = item.branch_name if item.path is None else str(item.path)
        logger.debug("%s failed for %s: %s", query, label, error)
        with self._lock:
            self.failures.append(QueryFailure(item.index, label, query, error))
            if warning:
                self.warnings.append(warning)
            if hint:
                self.warnings.append(hint)

    @property
    def first(self) -> QueryFailure | None:
        with self._lock:
            return self.failures[0] if self.failures else None

    def drain_warnings(self) -> list[str]:
        with self._lock:
            warnings, self.warnings = self.warnings, []
        return warnings


class TaskGroup:
    """Owns child tasks; leaving the block waits for every one of them.

    With sequential=True tasks run inline as they are spawned.
    """

    def __init__(self, max_workers: int, sequential: bool = False, name: str = "wtls") -> None:
        self.max_workers = max(1, max_workers)
        self.sequential = sequential
        self.name = name
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future[None]] = []

    def __enter__(self) -> TaskGroup:
        if not self.sequential:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix=self.name
            )
        return self

    def spawn(self, fn: Callable[..., None], *args: Any) -> None:
        if self._executor is None:
            fn(*args)
            return
        self._futures.append(self._executor.submit(fn, *args))

    def __exit__(self, *exc_info: object) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=True)
        self._executor = None
        for future in self._futures:
            # Tasks handle their own failures; anything left is a bug.
            future.result()


class CellQuery(NamedTuple):
    """How to fill one cell. A None query means: send the default right away."""

    make_update: Callable[[int, Any], CellUpdate]
    query: Callable[[], Any] | None
    default: Any
    name: str
    warning: WarningFactory | None = None


def _default_ci_lookup(
    repo_path: Path, branch: str, head: str, remote_url: str | None
) -> CiStatus | None:
    return gh_ops.detect_ci_status(repo_path, branch, head, remote_url)


def _upstream_status(repo: Repository, branch: str | None, head: str) -> UpstreamStatus:
    if not branch:
        return UpstreamStatus()
    upstream = repo.upstream_branch(branch)
    if upstream is None:
        return UpstreamStatus()
    remote = upstream.split("/", 1)[0] if "/" in upstream else None
    counts = repo.ahead_behind(upstream, head)
    return UpstreamStatus(remote=remote, ahead=counts.ahead, behind=counts.behind)


class Collector:
    """Fans out per-cell queries for list items and streams the results."""

    def __init__(
        self,
        options: CollectOptions,
        failures: QueryFailures | None = None,
        repo_factory: Callable[[Path], Repository] = Repository,
        ci_lookup: CiLookup | None = None,
    ) -> None:
        self.options = options
        self.failures = failures if failures is not None else QueryFailures()
        self.repo_factory = repo_factory
        self.ci_lookup = ci_lookup or _default_ci_lookup

    def _run_cells(
        self,
        item: ListItem,
        cells: list[CellQuery],
        channel: Queue[Message],
    ) -> None:
        group = TaskGroup(
            len(cells),
            sequential=self.options.sequential,
            name=f"wtls-{item.kind}{item.index}",
        )
        with group:
            for cell in cells:
                if cell.query is None:
                    channel.put(cell.make_update(item.index, cell.default))
                else:
                    group.spawn(self._run_cell, item, cell, channel)

    def _run_cell(self, item: ListItem, cell: CellQuery, channel: Queue[Message]) -> None:
        assert cell.query is not None
        try:
            value = cell.query()
        except Exception as exc:
            warning, hint = cell.warning(exc) if cell.warning else (None, None)
            self.failures.record(item, cell.name, exc, warning, hint)
            value = cell.default
        channel.put(cell.make_update(item.index, value))

    def collect_worktree_progressive(
        self,
        item: WorktreeItem,
        base_branch: str | None,
        channel: Queue[Message],
    ) -> None:
        """Send the nine cell updates of a worktree row; returns once all are sent."""
        repo = self.repo_factory(item.path)
        head = item.head
        branch = item.branch
        base = base_branch
        check_conflicts = self.options.check_conflicts and base is not None
        fetch_ci = self.options.fetch_ci and branch is not None

        def _working_tree() -> WorkingTreeStatus:
            symbols, dirty = parse_status_symbols(repo.status_porcelain())
            return WorkingTreeStatus(
                diff=repo.working_tree_diff_stats() if dirty else LineDiff(),
                diff_with_base=repo.working_tree_diff_with_base(base, dirty),
                symbols=symbols,
                dirty=dirty,
            )

        def _upstream_warning(exc: BaseException) -> tuple[str | None, str | None]:
            return f"Warning: upstream lookup failed for {item.path}: {exc}", None

        cells = [
            CellQuery(
                CommitUpdate,
                lambda: repo.commit_details(head),
                CommitDetails(),
                "commit details",
            ),
            CellQuery(
                AheadBehindUpdate,
                (lambda: repo.ahead_behind(base, head)) if base else None,
                AheadBehind(),
                "ahead/behind",
            ),
            CellQuery(
                BranchDiffUpdate,
                (lambda: repo.branch_diff_stats(base, head)) if base else None,
                LineDiff(),
                "branch diff",
            ),
            CellQuery(WorkingTreeUpdate, _working_tree, WorkingTreeStatus(), "working tree"),
            CellQuery(
                ConflictsUpdate,
                (lambda: repo.has_merge_conflicts(base, head)) if check_conflicts else None,
                False,
                "merge conflicts",
            ),
            CellQuery(WorktreeStateUpdate, repo.worktree_state, None, "worktree state"),
            CellQuery(UserStatusUpdate, lambda: repo.user_status(branch), None, "user status"),
            CellQuery(
                UpstreamUpdate,
                (lambda: _upstream_status(repo, branch, head)) if branch else None,
                UpstreamStatus(),
                "upstream",
                _upstream_warning,
            ),
            CellQuery(
                CiStatusUpdate,
                (lambda: self.ci_lookup(item.path, branch or "", head, repo.remote_url()))
                if fetch_ci
                else None,
                None,
                "CI status",
            ),
        ]
        self._run_cells(item, cells, channel)

    def collect_branch_progressive(
        self,
        item: BranchItem,
        base_branch: str | None,
        repo_path: Path,
        channel: Queue[Message],
    ) -> None:
        """Send the six cell updates of a branch row; returns once all are sent."""
        repo = self.repo_factory(repo_path)
        head = item.head
        base = base_branch
        check_conflicts = self.options.check_conflicts and base is not None

        def _enrich_warning(exc: BaseException) -> tuple[str | None, str | None]:
            return (
                f"Warning: failed to enrich branch {item.name}: {exc}",
                "Hint: this branch will be shown with limited information",
            )

        cells = [
            CellQuery(
                CommitUpdate,
                lambda: repo.commit_details(head),
                CommitDetails(),
                "commit details",
                _enrich_warning,
            ),
            CellQuery(
                AheadBehindUpdate,
                (lambda: repo.ahead_behind(base, head)) if base else None,
                AheadBehind(),
                "ahead/behind",
            ),
            CellQuery(
                BranchDiffUpdate,
                (lambda: repo.branch_diff_stats(base, head)) if base else None,
                LineDiff(),
                "branch diff",
            ),
            CellQuery(
                UpstreamUpdate,
                lambda: _upstream_status(repo, item.name, head),
                UpstreamStatus(),
                "upstream",
            ),
            CellQuery(
                ConflictsUpdate,
                (lambda: repo.has_merge_conflicts(base, head)) if check_conflicts else None,
                False,
                "merge conflicts",
            ),
            CellQuery(
                CiStatusUpdate,
                (lambda: self.ci_lookup(repo_path, item.name, head, repo.remote_url()))
                if self.options.fetch_ci
                else None,
                None,
                "CI status",
            ),
        ]
        self._run_cells(item, cells, channel)

    def collect_item(self, listing: Listing, item: ListItem, channel: Queue[Message]) -> None:
        base = listing.base_for(item)
        if isinstance(item, WorktreeItem):
            self.collect_worktree_progressive(item, base, channel)
        else:
            self.collect_branch_progressive(item, base, listing.repo_root, channel)

    def collect_all(self, listing: Listing, channel: Queue[Message]) -> None:
        """Collect every item concurrently, then close the channel."""
        items = listing.items
        workers = min(32, (os.cpu_count() or 4) * 4, len(items) or 1)
        try:
            with TaskGroup(workers, sequential=self.options.sequential, name="wtls-item") as group:
                for item in items:
                    group.spawn(self.collect_item, listing, item, channel)
        finally:
            channel.put(CLOSED)
