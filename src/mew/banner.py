"""Startup banner — mode-aware status output on stderr.

Detects ``NO_COLOR`` / ``TERM`` for safe fallback to plain text.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mew.config import ServerConfig
    from mew.content.index import ContentIndex


# ---------------------------------------------------------------------------
# ANSI helpers: respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""

_MODE_COLORS: dict[str, str] = {
    "serve": _CYAN,
    "check": _YELLOW,
}


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_banner(
    config: ServerConfig,
    index: ContentIndex,
    mode: str,
    *,
    watching: bool = False,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> str:
    """Build the banner text (without a trailing newline)."""
    from mew import __version__

    color = _MODE_COLORS.get(mode, _DIM)
    lines: list[str] = [
        "",
        f"  {_BOLD}mew{_RESET} {_DIM}v{__version__}{_RESET}  {color}[{mode}]{_RESET}",
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines.append(
        f"  {_DIM}├─{_RESET} {_plural(len(index.pages), 'page')}, "
        f"{_plural(len(index.posts), 'post')} loaded{timing}"
    )
    lines.append(
        f"  {_DIM}├─{_RESET} {_plural(len(index.tags), 'tag')}, "
        f"{_plural(len(index.redirects), 'redirect')}"
    )
    lines.append(f"  {_DIM}├─{_RESET} templates: {_DIM}{config.templates_path}{_RESET}")
    lines.append(f"  {_DIM}└─{_RESET} static: {_DIM}{config.static_files_path}{_RESET}")

    if mode == "serve":
        lines.append("")
        lines.append(f"  {_BOLD}{_CYAN}http://{config.bind_addr}:{config.bind_port}{_RESET}")
        if watching:
            lines.append("")
            lines.append(f"  {_GREEN}Watching for changes...{_RESET}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")
    return "\n".join(lines)


def print_banner(
    config: ServerConfig,
    index: ContentIndex,
    mode: str,
    *,
    watching: bool = False,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the mew startup banner to stderr.

    Args:
        config: Resolved ServerConfig.
        index: The freshly built index.
        mode: ``"serve"`` or ``"check"``.
        watching: Whether the reload coordinator is active.
        load_ms: Time spent on the initial build in milliseconds.
        warnings: Build warnings to display.

    """
    print(
        format_banner(
            config, index, mode, watching=watching, load_ms=load_ms, warnings=warnings
        ),
        file=sys.stderr,
    )
