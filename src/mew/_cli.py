"""Mew CLI — mew serve / mew check / mew syntax-css.

Entry point for the ``mew`` command-line interface.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from mew._errors import MewError


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the mew CLI."""
    parser = argparse.ArgumentParser(
        prog="mew",
        description="Serve a blog of pages and posts, reloaded as you edit.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # mew serve
    serve_parser = subparsers.add_parser("serve", help="Serve the site")
    serve_parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    serve_parser.add_argument("--host", default=None, help="Bind address (overrides server.yml)")
    serve_parser.add_argument(
        "--port", type=int, default=None, help="Bind port (overrides server.yml)",
    )
    serve_parser.add_argument(
        "--no-watch", action="store_true", help="Do not rebuild when files change",
    )

    # mew check
    check_parser = subparsers.add_parser(
        "check",
        help="Build the content index once and report problems",
    )
    check_parser.add_argument("root", nargs="?", default=".", help="Site root directory")
    check_parser.add_argument(
        "--strict", action="store_true", help="Fail on redirects that point at no content",
    )

    # mew syntax-css
    css_parser = subparsers.add_parser(
        "syntax-css",
        help="Write the stylesheet for a code highlighting palette",
    )
    css_parser.add_argument("palette", nargs="?", default=None, help="Palette name")
    css_parser.add_argument("-o", "--output", default=None, help="Output file (default stdout)")
    css_parser.add_argument(
        "--class-style",
        choices=("semantic", "pygments"),
        default="semantic",
        help="CSS class naming scheme",
    )
    css_parser.add_argument("--list", action="store_true", help="List available palettes")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from mew import __version__

    return __version__


def syntax_css(
    palette: str | None,
    *,
    output: str | None = None,
    class_style: str = "semantic",
    list_palettes: bool = False,
) -> None:
    """Print palette names, or write a palette's CSS to ``output`` or stdout."""
    from rosettes.themes import get_palette
    from rosettes.themes import list_palettes as available_palettes

    if list_palettes:
        for name in available_palettes():
            print(name)
        return

    if palette is None:
        msg = "a palette name is required (see --list)"
        raise MewError(msg)

    try:
        theme = get_palette(palette)
    except LookupError as exc:
        msg = f"unknown palette {palette!r} (see --list)"
        raise MewError(msg) from exc

    css = theme.generate_css(class_style=class_style)
    if output is None:
        sys.stdout.write(css)
        return
    Path(output).write_text(css, encoding="utf-8")
    print(f"  Wrote {output}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    from mew.app import check, serve

    try:
        if args.command == "serve":
            serve(
                root=args.root,
                watch=not args.no_watch,
                bind_addr=args.host,
                bind_port=args.port,
            )
        elif args.command == "check":
            check(root=args.root, strict_redirects=True if args.strict else None)
        elif args.command == "syntax-css":
            syntax_css(
                args.palette,
                output=args.output,
                class_style=args.class_style,
                list_palettes=args.list,
            )
    except MewError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
