"""Display helpers: relative time, paths, truncation and terminal width."""

from __future__ import annotations

import os
import sys
import time
from pathlib import Path
from typing import TextIO

from rich.cells import cell_len, get_character_cell_size

DEFAULT_WIDTH = 80
ELLIPSIS = "…"

MINUTE = 60
HOUR = MINUTE * 60
DAY = HOUR * 24
WEEK = DAY * 7
MONTH = DAY * 30
YEAR = DAY * 365

_UNITS = (
    (YEAR, "year"),
    (MONTH, "month"),
    (WEEK, "week"),
    (DAY, "day"),
    (HOUR, "hour"),
    (MINUTE, "minute"),
)


def format_relative_time(timestamp: int, now: int | None = None) -> str:
    if timestamp <= 0:
        return ""
    if now is None:
        now = int(time.time())
    seconds_ago = now - timestamp
    if seconds_ago < 0:
        return "in the future"
    for unit_seconds, label in _UNITS:
        value = seconds_ago // unit_seconds
        if value > 0:
            plural = "" if value == 1 else "s"
            return f"{value} {label}{plural} ago"
    return "just now"


def find_common_prefix(paths: list[Path]) -> Path | None:
    """Longest path shared by every entry, or None for an empty list."""
    if not paths:
        return None
    prefix = paths[0]
    for path in paths[1:]:
        while prefix != prefix.parent and not path.is_relative_to(prefix):
            prefix = prefix.parent
    return prefix


def shorten_path(path: Path, prefix: Path | None) -> str:
    if prefix is None:
        return str(path)
    try:
        rel = path.relative_to(prefix)
    except ValueError:
        return str(path)
    if not rel.parts:
        return "."
    return f"./{rel}"


def truncate_at_word_boundary(text: str, max_width: int) -> str:
    """Fit text into max_width cells, cutting at a word boundary and adding an ellipsis."""
    if cell_len(text) <= max_width:
        return text
    if max_width <= 0:
        return ""

    target = max_width - cell_len(ELLIPSIS)
    current = 0
    last_space: int | None = None
    last_idx = 0
    for idx, ch in enumerate(text):
        width = get_character_cell_size(ch)
        if current + width > target:
            break
        if ch.isspace():
            last_space = idx
        current += width
        last_idx = idx + 1

    cut = last_space if last_space is not None else last_idx
    return f"{text[:cut].strip()}{ELLIPSIS}"


def fit(text: str, width: int) -> str:
    """Pad or hard-truncate text to exactly width cells."""
    length = cell_len(text)
    if length > width:
        if width <= 0:
            return ""
        out = ""
        used = 0
        for ch in text:
            size = get_character_cell_size(ch)
            if used + size > width - 1:
                break
            out += ch
            used += size
        return out + ELLIPSIS + " " * (width - 1 - used)
    return text + " " * (width - length)


def terminal_width(stream: TextIO | None = None, override: int | None = None) -> int:
    """Width from the override, else the stream's terminal, else 80."""
    if override is not None and override > 0:
        return override
    stream = stream or sys.stdout
    try:
        return os.get_terminal_size(stream.fileno()).columns or DEFAULT_WIDTH
    except (AttributeError, OSError, ValueError):
        return DEFAULT_WIDTH
