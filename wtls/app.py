"""Application layer: wires the listing, layout, collector and table together."""

from __future__ import annotations

import json
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from queue import Queue
from typing import TextIO

from wtls.collect import CollectOptions, Collector, Message, QueryFailures
from wtls.config import Settings
from wtls.consumer import ListTable
from wtls.display import terminal_width
from wtls.items import ListError, Listing, build_listing
from wtls.layout import calculate_responsive_layout
from wtls.progressive import RenderMode, Repaint
from wtls.select import pick_item

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListRequest:
    """Options for one `wtls list` run, as parsed by the CLI."""

    progressive: bool | None = None
    include_branches: bool = False
    fetch_ci: bool = False
    full: bool = False
    check_conflicts: bool = False
    output_format: str = "table"
    strict: bool = False


class App:
    """Runs list and select against the repository containing `cwd`."""

    def __init__(
        self,
        cwd: Path,
        settings: Settings | None = None,
        stream: TextIO | None = None,
        err_stream: TextIO | None = None,
    ) -> None:
        self.cwd = cwd
        self.settings = settings or Settings.from_env()
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr

    def list_items(self, request: ListRequest) -> None:
        """Collect every row and render it as a table or JSON.

        Query failures degrade to placeholder cells and deferred stderr warnings.
        In strict mode the first recorded failure is raised as `ListError` once
        output is complete. A defect in the collector itself propagates.
        """
        listing = build_listing(self.cwd, include_branches=request.include_branches)
        if request.output_format == "json":
            mode = RenderMode.BUFFERED
        else:
            mode = RenderMode.detect(request.progressive, self.stream)

        failures = QueryFailures()
        table = self._collect(listing, request, mode, failures)

        if request.output_format == "json":
            rows = [state.to_json() for state in table.states]
            self.stream.write(json.dumps(rows, indent=2) + "\n")
            self.stream.flush()
        else:
            table.finish()

        for warning in failures.drain_warnings():
            self.err_stream.write(warning + "\n")
        self.err_stream.flush()

        if request.strict or self.settings.strict:
            first = failures.first
            if first is not None:
                raise ListError(f"{first.query} failed for {first.label}: {first.error}")

    def pick_and_print_path(self) -> None:
        listing = build_listing(self.cwd, include_branches=True)
        table = self._collect(listing, ListRequest(), RenderMode.BUFFERED, QueryFailures())
        selection = pick_item(table.states, table.now)
        if selection is None:
            return
        item = selection.item
        target = str(item.path) if item.path is not None else item.branch_name
        if self.settings.output_file:
            with open(self.settings.output_file, "w", encoding="utf-8") as handle:
                handle.write(target)
        else:
            self.stream.write(target + "\n")
            self.stream.flush()

    def _collect(
        self,
        listing: Listing,
        request: ListRequest,
        mode: RenderMode,
        failures: QueryFailures,
    ) -> ListTable:
        width = terminal_width(self.stream, override=self.settings.width_override)
        layout = calculate_responsive_layout(
            listing.items,
            width,
            base_branch=listing.base_branch,
            show_branch_diff=request.full,
            show_ci=request.fetch_ci,
        )
        table = ListTable(
            listing.items,
            layout,
            now=int(time.time()),
            mode=mode,
            repaint=Repaint.detect(),
            include_branches=request.include_branches,
            color=self._use_color(),
            current_path=listing.current_path,
            stream=self.stream,
        )
        collector = Collector(
            CollectOptions(
                fetch_ci=request.fetch_ci,
                check_conflicts=request.check_conflicts,
                sequential=self.settings.sequential,
            ),
            failures=failures,
        )
        channel: Queue[Message] = Queue()
        table.start()
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="wtls-collect") as executor:
            producer = executor.submit(collector.collect_all, listing, channel)
            table.drain(channel)
            # Re-raises a defect from the collector thread.
            producer.result()
        logger.debug(
            "collected %d of %d updates for %d rows",
            table.received,
            table.expected,
            len(table.states),
        )
        return table

    def _use_color(self) -> bool:
        if self.settings.no_color:
            return False
        try:
            return self.stream.isatty()
        except (AttributeError, ValueError):
            return False
