"""GitHub CLI operations."""

from __future__ import annotations

import functools
import json
import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from wtls.models import CiStatus

logger = logging.getLogger(__name__)


class GhError(Exception):
    """gh command failed or returned unreadable output."""


@dataclass(frozen=True)
class RemoteUrl:
    """A git remote URL split into host, owner and repository."""

    host: str
    owner: str
    repo: str

    @property
    def project_identifier(self) -> str:
        return f"{self.host}/{self.owner}/{self.repo}"


def parse_remote_url(url: str) -> RemoteUrl | None:
    """Parse https, http, ssh:// and scp-style git@ remote URLs."""
    url = url.strip()
    if url.startswith(("https://", "http://")):
        rest = url.split("://", 1)[1]
        parts = rest.split("/")
    elif url.startswith("ssh://"):
        rest = url[len("ssh://") :].rsplit("@", 1)[-1]
        parts = rest.split("/")
        # ssh://host:2222/owner/repo does not fit host/owner/repo
        if ":" in parts[0]:
            return None
    elif url.startswith("git@"):
        host, sep, path = url[len("git@") :].partition(":")
        if not sep:
            return None
        parts = [host, *path.split("/")]
    else:
        return None

    if len(parts) < 3:
        return None
    host, owner, repo = parts[0], parts[1], parts[2].removesuffix(".git")
    if not host or not owner or not repo:
        return None
    return RemoteUrl(host=host, owner=owner, repo=repo)


@functools.cache
def gh_available() -> bool:
    """Whether the gh executable is on PATH (checked once per process)."""
    return shutil.which("gh") is not None


def _run_gh(args: list[str], cwd: Path) -> Any:
    logger.debug("gh %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["gh", *args],
            cwd=cwd,
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except subprocess.CalledProcessError as exc:
        raise GhError((exc.stderr or exc.stdout or "unknown error").strip()) from exc
    except OSError as exc:
        raise GhError(str(exc)) from exc
    try:
        return json.loads(result.stdout.strip() or "null")
    except json.JSONDecodeError as exc:
        raise GhError(f"gh {' '.join(args)}: invalid JSON") from exc


def classify_checks(
    conclusions: list[str | None], states: list[str | None]
) -> tuple[int, int, str | None]:
    """Classify check results into (passed, total, state)."""
    total = len(conclusions)
    passed = 0
    failed = False
    pending = False

    for conclusion, state in zip(conclusions, states):
        if state and state not in {"COMPLETED", "SUCCESS", "FAILURE", "ERROR"}:
            pending = True
        if conclusion is None:
            # Commit statuses carry only a state.
            if state == "SUCCESS":
                passed += 1
            elif state in {"FAILURE", "ERROR"}:
                failed = True
            else:
                pending = True
            continue
        if conclusion in {"SUCCESS", "NEUTRAL", "SKIPPED"}:
            passed += 1
        else:
            failed = True

    status: str | None = None
    if total == 0:
        status = None
    elif failed:
        status = "fail"
    elif pending:
        status = "pend"
    else:
        status = "ok"
    return passed, total, status


def detect_ci_status(repo_path: Path, branch: str, head: str, remote_url: str | None) -> CiStatus | None:
    """Look up the pull request for branch and summarize its checks.

    Returns None when gh is missing, the remote is not on GitHub, or the
    branch has no pull request. Raises GhError when gh itself fails.
    """
    if not gh_available():
        return None
    remote = parse_remote_url(remote_url or "")
    if remote is None or "github" not in remote.host:
        return None

    pr_list = _run_gh(
        [
            "pr",
            "list",
            "--state",
            "all",
            "--head",
            branch,
            "--json",
            "number,state,url,mergedAt,headRefOid",
            "--limit",
            "1",
            "--repo",
            remote.project_identifier,
        ],
        cwd=repo_path,
    )
    if not pr_list:
        return None
    pr = pr_list[0]
    number = pr.get("number")
    if number is None:
        return None
    state = "MERGED" if pr.get("mergedAt") else pr.get("state", "OPEN")

    view = _run_gh(
        ["pr", "view", str(number), "--json", "statusCheckRollup", "--repo", remote.project_identifier],
        cwd=repo_path,
    )
    rollup = (view or {}).get("statusCheckRollup") or []
    passed, total, checks = classify_checks(
        [item.get("conclusion") or None for item in rollup],
        [item.get("status") or item.get("state") for item in rollup],
    )
    head_oid = pr.get("headRefOid")
    return CiStatus(
        number=number,
        state=state,
        url=pr.get("url"),
        passed=passed,
        total=total,
        checks=checks,
        stale=bool(head_oid) and head_oid != head,
    )
