"""Simple UX helpers for CLI output - no external dependencies."""

from __future__ import annotations

import os
import sys
from typing import TextIO


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


def supports_color(stream: TextIO | None = None) -> bool:
    """Check if terminal supports color output."""
    stream = stream or sys.stdout
    # Disabled for NO_COLOR, non-TTY streams and dumb terminals
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return True


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    """Apply color to text if terminal supports it."""
    if not supports_color(stream):
        return text
    prefix = (Colors.BOLD if bold else "") + color
    return f"{prefix}{text}{Colors.RESET}"


def print_lines(lines: list[str], stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    for line in lines:
        print(line, file=stream)


__all__ = ["Colors", "colorize", "print_lines", "supports_color"]
