"""Tests for mew._cli — argument parsing and command dispatch."""

from __future__ import annotations

from pathlib import Path

import pytest

from mew._cli import _build_parser, main, syntax_css
from mew._errors import MewError


class TestBuildParser:
    """_build_parser — CLI argument parsing."""

    def test_serve_default_args(self) -> None:
        args = _build_parser().parse_args(["serve"])
        assert args.command == "serve"
        assert args.root == "."
        assert args.host is None
        assert args.port is None
        assert args.no_watch is False

    def test_serve_all_flags(self) -> None:
        args = _build_parser().parse_args([
            "serve", "my-blog/",
            "--host", "0.0.0.0",
            "--port", "9000",
            "--no-watch",
        ])
        assert args.root == "my-blog/"
        assert args.host == "0.0.0.0"
        assert args.port == 9000
        assert args.no_watch is True

    def test_check_args(self) -> None:
        args = _build_parser().parse_args(["check", "site", "--strict"])
        assert args.command == "check"
        assert args.root == "site"
        assert args.strict is True

    def test_syntax_css_args(self) -> None:
        args = _build_parser().parse_args(["syntax-css", "monokai", "-o", "code.css"])
        assert args.palette == "monokai"
        assert args.output == "code.css"
        assert args.class_style == "semantic"
        assert args.list is False

    def test_syntax_css_rejects_unknown_class_style(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["syntax-css", "x", "--class-style", "fancy"])

    def test_no_command_returns_none(self) -> None:
        args = _build_parser().parse_args([])
        assert args.command is None


class TestMain:
    """main — command dispatch and exit codes."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "serve" in capsys.readouterr().out

    def test_check_reports_site(self, site_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["check", str(site_root)])
        err = capsys.readouterr().err
        assert "[check]" in err
        assert "1 page, 3 posts loaded" in err

    def test_check_invalid_site_exits_1(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(tmp_path)])
        assert exc_info.value.code == 1
        assert capsys.readouterr().err.startswith("error: ")

    def test_check_strict_fails_on_shadowing(
        self, site_root: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        from tests.conftest import DEFAULT_PAGES, write_content_config

        pages = [*DEFAULT_PAGES, {
            "file_path": "about.md",
            "title": "Legacy",
            "url": "/legacy",
            "alternate_urls": ["/2023/05/01/hello"],
        }]
        write_content_config(site_root, pages=pages)

        main(["check", str(site_root)])
        assert "shadows" in capsys.readouterr().err

        with pytest.raises(SystemExit) as exc_info:
            main(["check", str(site_root), "--strict"])
        assert exc_info.value.code == 1
        assert "Ambiguous URL" in capsys.readouterr().err

    def test_serve_passes_overrides(
        self, monkeypatch: pytest.MonkeyPatch, site_root: Path
    ) -> None:
        calls: list[dict[str, object]] = []

        def fake_serve(**kwargs: object) -> None:
            calls.append(kwargs)

        monkeypatch.setattr("mew.app.serve", fake_serve)
        main(["serve", str(site_root), "--port", "9001", "--no-watch"])
        assert calls == [{
            "root": str(site_root),
            "watch": False,
            "bind_addr": None,
            "bind_port": 9001,
        }]


class TestSyntaxCss:
    """syntax_css — Rosettes palette stylesheets."""

    def test_list_palettes(self, capsys: pytest.CaptureFixture[str]) -> None:
        from rosettes.themes import list_palettes

        syntax_css(None, list_palettes=True)
        out = capsys.readouterr().out.split()
        assert out == list(list_palettes())
        assert out

    def test_writes_css_to_file(self, tmp_path: Path) -> None:
        from rosettes.themes import list_palettes

        name = next(iter(list_palettes()))
        target = tmp_path / "code.css"
        syntax_css(name, output=str(target))
        assert "{" in target.read_text(encoding="utf-8")

    def test_writes_css_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        from rosettes.themes import list_palettes

        syntax_css(next(iter(list_palettes())))
        assert "{" in capsys.readouterr().out

    def test_missing_palette_name(self) -> None:
        with pytest.raises(MewError, match="palette name is required"):
            syntax_css(None)

    def test_unknown_palette(self) -> None:
        with pytest.raises(MewError, match="unknown palette"):
            syntax_css("definitely-not-a-palette")
