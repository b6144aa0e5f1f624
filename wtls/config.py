"""Environment settings for wtls."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

TRUTHY = {"1", "true", "yes", "on"}


def _flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() in TRUTHY


def _positive_int(value: str | None) -> int | None:
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit() or int(value) <= 0:
        return None
    return int(value)


@dataclass(frozen=True)
class Settings:
    """Settings read from the process environment.

    COLUMNS overrides the detected terminal width, WTLS_SEQUENTIAL runs every
    query one after another, WTLS_STRICT turns the first failed query into an
    error, NO_COLOR disables styling and WTLS_OUTPUT_FILE receives the path
    chosen by `wtls select`.
    """

    width_override: int | None = None
    sequential: bool = False
    strict: bool = False
    no_color: bool = False
    output_file: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            width_override=_positive_int(env.get("COLUMNS")),
            sequential=_flag(env, "WTLS_SEQUENTIAL"),
            strict=_flag(env, "WTLS_STRICT"),
            no_color="NO_COLOR" in env,
            output_file=env.get("WTLS_OUTPUT_FILE") or None,
        )
