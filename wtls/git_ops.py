"""Git subprocess operations."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Iterable
from pathlib import Path
from typing import Sequence

from wtls.models import AheadBehind, CommitDetails, LineDiff, ParsedWorktree

logger = logging.getLogger(__name__)

# Markers in the git dir, checked in order.
WORKTREE_STATE_MARKERS = (
    ("rebase-merge", "rebasing"),
    ("rebase-apply", "rebasing"),
    ("MERGE_HEAD", "merging"),
    ("CHERRY_PICK_HEAD", "cherry-picking"),
    ("REVERT_HEAD", "reverting"),
    ("BISECT_LOG", "bisecting"),
)


class GitError(Exception):
    """Git command failed."""

    def __init__(self, cmd: Sequence[str], stderr: str) -> None:
        self.cmd = cmd
        self.stderr = stderr
        super().__init__(f"git {' '.join(cmd)}: {stderr}")


def _completed(args: Sequence[str], cwd: Path | None = None) -> subprocess.CompletedProcess[str]:
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        return subprocess.run(
            ["git", *args],
            cwd=cwd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise GitError(args, str(exc)) from exc


def run(args: Sequence[str], cwd: Path | None = None) -> str:
    """Run a git command and return stdout."""
    result = _completed(args, cwd=cwd)
    if result.returncode != 0:
        raise GitError(args, result.stderr.strip() or result.stdout.strip())
    return result.stdout.strip()


def try_run(args: Sequence[str], cwd: Path | None = None) -> str | None:
    """Run a git command, returning None on failure."""
    try:
        return run(args, cwd=cwd)
    except GitError:
        return None


def get_repo_root(cwd: Path) -> Path | None:
    """Get the directory holding the repository's common git dir."""
    common_dir = try_run(["rev-parse", "--git-common-dir"], cwd=cwd)
    if common_dir is None:
        return None
    common_path = Path(common_dir)
    if not common_path.is_absolute():
        common_path = (cwd / common_path).resolve()
    if common_path.name == ".git":
        return common_path.parent
    return common_path


def get_default_branch(repo_root: Path) -> str:
    """Get the default branch name (falls back to 'main')."""
    ref = try_run(["symbolic-ref", "--quiet", "--short", "refs/remotes/origin/HEAD"], cwd=repo_root)
    if ref and "/" in ref:
        return ref.split("/", 1)[1]
    for candidate in ("main", "master"):
        if try_run(["show-ref", "--verify", f"refs/heads/{candidate}"], cwd=repo_root) is not None:
            return candidate
    return "main"


def parse_worktree_list(output: str) -> list[ParsedWorktree]:
    """Parse the output of git worktree list --porcelain."""
    worktrees: list[ParsedWorktree] = []
    current: dict[str, str] | None = None

    def _finish(entry: dict[str, str]) -> None:
        worktrees.append(
            ParsedWorktree(
                path=Path(entry["worktree"]),
                head=entry.get("HEAD", ""),
                branch=entry.get("branch"),
                bare="bare" in entry,
                detached="detached" in entry,
                locked="locked" in entry,
                prunable="prunable" in entry,
            )
        )

    for line in output.splitlines():
        if not line.strip():
            if current is not None:
                _finish(current)
                current = None
            continue
        key, _, value = line.partition(" ")
        if key == "worktree":
            if current is not None:
                _finish(current)
            current = {"worktree": value}
        elif current is None:
            continue
        elif key == "branch":
            current["branch"] = value.removeprefix("refs/heads/")
        else:
            # Unknown attributes are kept but ignored.
            current[key] = value

    if current is not None:
        _finish(current)
    return worktrees


def list_worktrees(repo_root: Path) -> list[ParsedWorktree]:
    """List the repository's worktrees."""
    return parse_worktree_list(run(["worktree", "list", "--porcelain"], cwd=repo_root))


def list_local_branches_with_heads(repo_root: Path) -> list[tuple[str, str]]:
    """List local branches as (name, commit) pairs."""
    out = run(
        ["for-each-ref", "--format=%(refname:short)%00%(objectname)", "refs/heads"],
        cwd=repo_root,
    )
    branches: list[tuple[str, str]] = []
    for line in out.splitlines():
        name, _, sha = line.partition("\0")
        if name and sha:
            branches.append((name, sha))
    return branches


def commit_timestamps(repo_root: Path, revs: Iterable[str]) -> dict[str, int]:
    """Committer timestamps for many commits in a single git call."""
    unique = sorted({rev for rev in revs if rev})
    if not unique:
        return {}
    out = run(["log", "--no-walk=unsorted", "--format=%H %ct", *unique], cwd=repo_root)
    timestamps: dict[str, int] = {}
    for line in out.splitlines():
        sha, _, ts = line.partition(" ")
        if ts.isdigit():
            timestamps[sha] = int(ts)
    return timestamps


def parse_numstat(output: str) -> LineDiff:
    """Sum the added/deleted columns of git diff --numstat."""
    added = 0
    deleted = 0
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 3:
            continue
        # Binary files report "-".
        if parts[0].isdigit() and parts[1].isdigit():
            added += int(parts[0])
            deleted += int(parts[1])
    return LineDiff(added=added, deleted=deleted)


def parse_status_symbols(status: str) -> tuple[str, bool]:
    """Reduce git status --porcelain output to (symbols, dirty)."""
    untracked = modified = staged = renamed = deleted = False
    dirty = False
    for line in status.splitlines():
        if len(line) < 2:
            continue
        dirty = True
        index, worktree = line[0], line[1]
        if index == "?" and worktree == "?":
            untracked = True
        if worktree == "M":
            modified = True
        if index in "AMC":
            staged = True
        if index == "R":
            renamed = True
        if index == "D" or worktree == "D":
            deleted = True

    symbols = ""
    if untracked:
        symbols += "?"
    if modified:
        symbols += "!"
    if staged:
        symbols += "+"
    if renamed:
        symbols += "»"
    if deleted:
        symbols += "✘"
    return symbols, dirty


class Repository:
    """Read-only point queries against one worktree path.

    Every query raises GitError when the underlying command fails.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def run(self, args: Sequence[str]) -> str:
        return run(args, cwd=self.path)

    def commit_details(self, rev: str) -> CommitDetails:
        out = self.run(["show", "-s", "--format=%ct%n%s", rev])
        ts, _, message = out.partition("\n")
        if not ts.isdigit():
            raise GitError(["show", rev], f"unexpected timestamp {ts!r}")
        return CommitDetails(timestamp=int(ts), message=message.strip())

    def ahead_behind(self, base: str, head: str) -> AheadBehind:
        """Commits in head but not base (ahead) and in base but not head (behind)."""
        out = self.run(["rev-list", "--left-right", "--count", f"{base}...{head}"])
        parts = out.split()
        if len(parts) != 2 or not all(part.isdigit() for part in parts):
            raise GitError(["rev-list", f"{base}...{head}"], f"unexpected output {out!r}")
        return AheadBehind(ahead=int(parts[1]), behind=int(parts[0]))

    def branch_diff_stats(self, base: str, head: str) -> LineDiff:
        return parse_numstat(self.run(["diff", "--numstat", f"{base}...{head}"]))

    def status_porcelain(self) -> str:
        # No strip: the first porcelain column may be a space.
        result = _completed(["status", "--porcelain"], cwd=self.path)
        if result.returncode != 0:
            raise GitError(["status", "--porcelain"], result.stderr.strip())
        return result.stdout

    def working_tree_diff_stats(self) -> LineDiff:
        return parse_numstat(self.run(["diff", "--numstat", "HEAD"]))

    def working_tree_diff_with_base(self, base: str | None, dirty: bool) -> LineDiff | None:
        """Diff of the working tree against base; None when there is nothing to compare."""
        if base is None or not dirty:
            return None
        return parse_numstat(self.run(["diff", "--numstat", base]))

    def has_merge_conflicts(self, base: str, head: str) -> bool:
        args = ["merge-tree", "--write-tree", "--no-messages", base, head]
        result = _completed(args, cwd=self.path)
        if result.returncode == 0:
            return False
        if result.returncode == 1:
            return True
        raise GitError(args, result.stderr.strip())

    def git_dir(self) -> Path:
        git_dir = Path(self.run(["rev-parse", "--git-dir"]))
        if not git_dir.is_absolute():
            git_dir = self.path / git_dir
        return git_dir

    def worktree_state(self) -> str | None:
        git_dir = self.git_dir()
        for marker, state in WORKTREE_STATE_MARKERS:
            if (git_dir / marker).exists():
                return state
        return None

    def config_value(self, key: str) -> str | None:
        result = _completed(["config", "--get", key], cwd=self.path)
        if result.returncode == 1:
            return None
        if result.returncode != 0:
            raise GitError(["config", "--get", key], result.stderr.strip())
        return result.stdout.strip() or None

    def user_status(self, branch: str | None) -> str | None:
        if branch:
            value = self.config_value(f"wtls.status.{branch}")
            if value is not None:
                return value
        return self.config_value("wtls.status")

    def upstream_branch(self, branch: str) -> str | None:
        """Short name of the branch's upstream, or None when none is configured."""
        out = self.run(["for-each-ref", "--format=%(upstream:short)", f"refs/heads/{branch}"])
        return out or None

    def remote_url(self, remote: str = "origin") -> str | None:
        return self.config_value(f"remote.{remote}.url")
