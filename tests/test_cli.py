from __future__ import annotations

from click.testing import CliRunner

from wtls.cli import main


def test_init_prints_integration() -> None:
    result = CliRunner().invoke(main, ["init", "zsh"])
    assert result.exit_code == 0
    assert "wtls()" in result.output
    assert "WTLS_OUTPUT_FILE" in result.output


def test_init_fish() -> None:
    result = CliRunner().invoke(main, ["init", "fish"])
    assert result.exit_code == 0
    assert "function wtls" in result.output


def test_init_rejects_unknown_shell() -> None:
    result = CliRunner().invoke(main, ["init", "tcsh"])
    assert result.exit_code == 2


def test_list_rejects_unknown_format() -> None:
    result = CliRunner().invoke(main, ["list", "--format", "yaml"])
    assert result.exit_code == 2


def test_select_needs_terminal() -> None:
    result = CliRunner().invoke(main, ["select"])
    assert result.exit_code == 1
    assert "interactive terminal" in result.output
