from __future__ import annotations

import json
from io import StringIO
from pathlib import Path

import pytest

from wtls import app as app_module
from wtls.app import App, ListRequest
from wtls.collect import Collector
from wtls.config import Settings
from wtls.git_ops import GitError
from wtls.items import ListError, Listing
from wtls.models import BranchItem, WorktreeItem

PRIMARY = WorktreeItem(index=0, path=Path("/w/repo"), head="a", branch="main", is_primary=True)
TOPIC = BranchItem(index=1, name="topic", head="c")


class FailingRepo:
    def __init__(self, path: Path) -> None:
        self.path = path

    def __getattr__(self, name: str):  # type: ignore[no-untyped-def]
        def _fail(*args: object, **kwargs: object) -> None:
            raise GitError([name], "unavailable")

        return _fail


@pytest.fixture
def failing_listing(monkeypatch: pytest.MonkeyPatch) -> Listing:
    listing = Listing(items=(PRIMARY, TOPIC), repo_root=Path("/w/repo"), primary=PRIMARY)
    monkeypatch.setattr(app_module, "build_listing", lambda cwd, include_branches=False: listing)

    class FailingCollector(Collector):
        def __init__(self, options, failures=None):  # type: ignore[no-untyped-def]
            super().__init__(options, failures=failures, repo_factory=FailingRepo)

    monkeypatch.setattr(app_module, "Collector", FailingCollector)
    return listing


def test_degraded_rows_still_render(failing_listing: Listing) -> None:
    out, err = StringIO(), StringIO()
    App(Path("/w/repo"), Settings(width_override=100), stream=out, err_stream=err).list_items(
        ListRequest(include_branches=True)
    )
    lines = out.getvalue().splitlines()
    assert lines[1].startswith("main")
    assert lines[2].startswith("topic")
    assert lines[-1] == "Showing 1 worktrees, 1 branches"
    warnings = err.getvalue().splitlines()
    assert sorted(warnings) == [
        "Hint: this branch will be shown with limited information",
        "Warning: failed to enrich branch topic: git commit_details: unavailable",
        "Warning: upstream lookup failed for /w/repo: git upstream_branch: unavailable",
    ]
    enrich = warnings.index("Warning: failed to enrich branch topic: git commit_details: unavailable")
    assert warnings[enrich + 1].startswith("Hint:")


def test_strict_raises_first_failure(failing_listing: Listing) -> None:
    out = StringIO()
    app = App(Path("/w/repo"), Settings(width_override=100), stream=out, err_stream=StringIO())
    with pytest.raises(ListError):
        app.list_items(ListRequest(strict=True))
    # the table is complete before the error surfaces
    assert out.getvalue().splitlines()[-1].startswith("Showing")


def test_strict_from_settings(failing_listing: Listing) -> None:
    app = App(Path("/w/repo"), Settings(strict=True), stream=StringIO(), err_stream=StringIO())
    with pytest.raises(ListError):
        app.list_items(ListRequest())


def test_json_output_is_buffered(failing_listing: Listing) -> None:
    out = StringIO()
    App(Path("/w/repo"), Settings(), stream=out, err_stream=StringIO()).list_items(
        ListRequest(progressive=True, output_format="json")
    )
    rows = json.loads(out.getvalue())
    assert [row["type"] for row in rows] == ["worktree", "branch"]
    assert rows[1]["commit"] == {"timestamp": 0, "message": ""}


def test_select_writes_output_file(
    failing_listing: Listing, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    target = tmp_path / "out"
    monkeypatch.setattr(app_module, "pick_item", lambda states, now: states[0])
    App(Path("/w/repo"), Settings(output_file=str(target)), stream=StringIO()).pick_and_print_path()
    assert target.read_text() == "/w/repo"


@pytest.mark.parametrize("sequential", [False, True])
def test_collector_defect_is_raised(monkeypatch: pytest.MonkeyPatch, sequential: bool) -> None:
    listing = Listing(items=(PRIMARY,), repo_root=Path("/w/repo"), primary=PRIMARY)
    monkeypatch.setattr(app_module, "build_listing", lambda cwd, include_branches=False: listing)

    def _broken_factory(path: Path) -> FailingRepo:
        raise RuntimeError("bug in collector")

    class BrokenCollector(Collector):
        def __init__(self, options, failures=None):  # type: ignore[no-untyped-def]
            super().__init__(options, failures=failures, repo_factory=_broken_factory)

    monkeypatch.setattr(app_module, "Collector", BrokenCollector)
    out = StringIO()
    app = App(
        Path("/w/repo"),
        Settings(width_override=100, sequential=sequential),
        stream=out,
        err_stream=StringIO(),
    )
    with pytest.raises(RuntimeError, match="bug in collector"):
        app.list_items(ListRequest())
    assert "Showing" not in out.getvalue()
