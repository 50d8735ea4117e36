"""Single-line live status rendered at the bottom of the console.

The line is redrawn in place so the countdown doesn't spam the log. When
stdout is not a terminal (redirected to a file, CI) the status is emitted as
an ordinary log record instead, and periodic redraws are dropped.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from power_bench.core.logging_utils import get_module_logger

logger = get_module_logger("Progress")

CLEAR_LINE = "\x1b[2K\r"

ANSI = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "red": "\x1b[31m",
    "green": "\x1b[32m",
    "blue": "\x1b[34m",
    "magenta": "\x1b[35m",
    "cyan": "\x1b[36m",
}

TAG_COLORS = {
    "[Preflight]": "cyan",
    "[Progress]": "cyan",
    "[EnergyTracker]": "blue",
    "[Runner]": "magenta",
    "[Results]": "green",
    "[Error]": "red",
}


def colorize_tagged_text(text: str, *, is_error: bool = False) -> str:
    """Colour well-known ``[Tag]`` markers; everything else is left as-is."""
    colored = text
    for tag, color in TAG_COLORS.items():
        colored = colored.replace(tag, f"{ANSI['bold']}{ANSI[color]}{tag}{ANSI['reset']}")
    if is_error and colored == text:
        colored = f"{ANSI['red']}{text}{ANSI['reset']}"
    return colored


def format_seconds(total_seconds: float) -> str:
    """Human readable duration: ``1h 5m``, ``2m 3s``, ``7s``.

    Hours drop the seconds to avoid second-level flicker on long runs.
    """
    whole = max(0, int(total_seconds))
    hours, rem = divmod(whole, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"
    if minutes > 0:
        return f"{minutes}m {seconds}s" if seconds > 0 else f"{minutes}m"
    return f"{seconds}s"


class LiveStatusLine:

    def __init__(self, stream: Optional[TextIO] = None, *, interactive: Optional[bool] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        if interactive is None:
            isatty = getattr(self.stream, "isatty", None)
            interactive = bool(isatty and isatty())
        self.interactive = interactive
        self._text = ""
        self._active = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def active(self) -> bool:
        return self._active

    def set(self, text: str) -> None:
        """Show ``text`` as the status; logged instead when not a terminal."""
        self._text = text
        if not self.interactive:
            logger.info(text)
            return
        self._active = True
        self.redraw()

    def update(self, text: str) -> None:
        """Replace the text and redraw without the non-terminal log fallback."""
        self._text = text
        self.redraw()

    def redraw(self) -> None:
        if not self.interactive or not self._active:
            return
        self.stream.write(f"{CLEAR_LINE}{colorize_tagged_text(self._text)}")
        self.stream.flush()

    def clear_line(self) -> None:
        if not self.interactive or not self._active:
            return
        self.stream.write(CLEAR_LINE)
        self.stream.flush()

    def stop(self) -> None:
        self.clear_line()
        self._active = False


class StatusLineHandler(logging.StreamHandler):
    """Console handler that keeps the live status line below log output."""

    def __init__(self, status_line: LiveStatusLine) -> None:
        super().__init__(status_line.stream)
        self.status_line = status_line

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if self.status_line.interactive:
            return colorize_tagged_text(text, is_error=record.levelno >= logging.ERROR)
        return text

    def emit(self, record: logging.LogRecord) -> None:
        self.status_line.clear_line()
        super().emit(record)
        self.status_line.redraw()


__all__ = [
    "LiveStatusLine",
    "StatusLineHandler",
    "colorize_tagged_text",
    "format_seconds",
]
