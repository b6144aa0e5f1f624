"""Choose between in-place progressive rendering and a single buffered print."""

from __future__ import annotations

import enum
import os
import sys
from collections.abc import Mapping
from typing import TextIO


class RenderMode(enum.Enum):
    BUFFERED = "buffered"
    PROGRESSIVE = "progressive"

    @classmethod
    def detect(cls, progressive: bool | None, stream: TextIO | None = None) -> RenderMode:
        """An explicit flag wins; otherwise progressive only on a terminal."""
        if progressive is True:
            return cls.PROGRESSIVE
        if progressive is False:
            return cls.BUFFERED
        stream = stream or sys.stdout
        try:
            is_tty = stream.isatty()
        except (AttributeError, ValueError):
            is_tty = False
        return cls.PROGRESSIVE if is_tty else cls.BUFFERED


class Repaint(enum.Enum):
    """How progressive mode redraws after an update."""

    ROW = "row"
    FULL = "full"

    @classmethod
    def detect(cls, environ: Mapping[str, str] | None = None) -> Repaint:
        env = os.environ if environ is None else environ
        if env.get("TERM") == "dumb":
            return cls.FULL
        return cls.ROW
