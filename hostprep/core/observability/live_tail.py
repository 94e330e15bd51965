"""
Live tail — a rolling "last N lines" view of a running command.

Backed by a bounded ring buffer. On a terminal the view is redrawn in
place with ANSI cursor movement; elsewhere each line is echoed once,
indented, so captured output stays readable.
"""

from __future__ import annotations

import shutil
import sys
from collections import deque
from typing import TextIO

import click

_CURSOR_UP = "\x1b[{n}F"
_CLEAR_LINE = "\x1b[2K"


class LiveTail:
    """Bounded in-memory view of the most recent output lines."""

    def __init__(
        self,
        size: int = 5,
        stream: TextIO | None = None,
        redraw: bool | None = None,
    ) -> None:
        self._lines: deque[str] = deque(maxlen=size)
        self._stream = stream or sys.stdout
        if redraw is None:
            redraw = hasattr(self._stream, "isatty") and self._stream.isatty()
        self._redraw = redraw
        self._drawn = 0

    @property
    def size(self) -> int:
        return self._lines.maxlen or 0

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def push(self, line: str) -> None:
        self._lines.append(line)
        if self._redraw:
            self._render()
        else:
            click.echo(f"    {line}", file=self._stream)

    def close(self) -> None:
        """Erase the live region; the full output is in the setup log."""
        if self._redraw and self._drawn:
            self._stream.write(_CURSOR_UP.format(n=self._drawn))
            for _ in range(self._drawn):
                self._stream.write(_CLEAR_LINE + "\n")
            self._stream.write(_CURSOR_UP.format(n=self._drawn))
            self._stream.flush()
        self._drawn = 0
        self._lines.clear()

    def _render(self) -> None:
        width = shutil.get_terminal_size((100, 20)).columns - 6
        if self._drawn:
            self._stream.write(_CURSOR_UP.format(n=self._drawn))
        for line in self._lines:
            text = click.style(f"    {line[:width]}", dim=True)
            self._stream.write(_CLEAR_LINE + text + "\n")
        self._drawn = len(self._lines)
        self._stream.flush()
