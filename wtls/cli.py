"""Command-line entry point for wtls."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

import click

from wtls.app import App, ListRequest
from wtls.config import Settings
from wtls.items import ListError
from wtls.shell import SHELLS, shell_init


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )


def _run(fn: Callable[..., None], *args: object) -> None:
    try:
        fn(*args)
    except ListError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group(context_settings={"help_option_names": ["-h", "--help"]}, invoke_without_command=True)
@click.option("-v", "--verbose", is_flag=True, help="Log every git/gh call to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """wtls: list git worktrees with live status."""
    _setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        ctx.invoke(list_command)


@main.command("list")
@click.option(
    "--progressive/--no-progressive",
    default=None,
    help="Fill cells in place as data arrives (default: only on a terminal).",
)
@click.option("--branches", is_flag=True, help="Include local branches without a worktree.")
@click.option("--ci", "fetch_ci", is_flag=True, help="Show pull request checks via gh.")
@click.option("--full", is_flag=True, help="Show the diff against the base branch.")
@click.option("--check-conflicts", is_flag=True, help="Test-merge each row into the base branch.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
)
@click.option("--strict", is_flag=True, help="Fail if any query failed.")
@click.option("-v", "--verbose", is_flag=True, help="Log every git/gh call to stderr.")
def list_command(
    progressive: bool | None = None,
    branches: bool = False,
    fetch_ci: bool = False,
    full: bool = False,
    check_conflicts: bool = False,
    output_format: str = "table",
    strict: bool = False,
    verbose: bool = False,
) -> None:
    """List worktrees (and optionally branches) with their status."""
    _setup_logging(verbose)
    request = ListRequest(
        progressive=progressive,
        include_branches=branches,
        fetch_ci=fetch_ci,
        full=full,
        check_conflicts=check_conflicts,
        output_format=output_format,
        strict=strict,
    )
    _run(App(Path.cwd(), Settings.from_env()).list_items, request)


@main.command("select")
def select_command() -> None:
    """Pick a worktree and print its path."""
    if not sys.stdin.isatty():
        raise click.ClickException("select needs an interactive terminal")
    _run(App(Path.cwd(), Settings.from_env()).pick_and_print_path)


@main.command("init")
@click.argument("shell", type=click.Choice(sorted(SHELLS)))
def init_command(shell: str) -> None:
    """Print shell integration (eval it in your shell rc)."""
    click.echo(shell_init(shell), nl=False)


if __name__ == "__main__":
    main()
