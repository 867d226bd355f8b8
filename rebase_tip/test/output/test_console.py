"""Tests for rebase_tip.output.console module."""

from __future__ import annotations

import pytest

from rebase_tip.output.console import Level, MockConsole, RichConsole, Style, parse_level


class TestParseLevel:
    def test_names(self) -> None:
        assert parse_level("debug") is Level.DEBUG
        assert parse_level("WARNING") is Level.WARNING

    def test_numbers_round_down(self) -> None:
        assert parse_level("20") is Level.INFO
        assert parse_level("25") is Level.INFO
        assert parse_level("40") is Level.ERROR
        assert parse_level("10") is Level.DEBUG

    def test_unknown_uses_default(self) -> None:
        assert parse_level("chatty") is Level.INFO
        assert parse_level(None, Level.ERROR) is Level.ERROR
        assert parse_level("", Level.WARNING) is Level.WARNING


class TestMockConsole:
    def test_records_prefixes(self) -> None:
        console = MockConsole()
        console.info("fetching")
        console.success("Tagged TIP: v1.2.4-alpha.3")
        console.warning("no tags")
        console.error("bad ref")

        assert console.messages == [
            "fetching",
            "OK Tagged TIP: v1.2.4-alpha.3",
            "warning: no tags",
            "error: bad ref",
        ]

    def test_styles(self) -> None:
        console = MockConsole()
        console.debug("d")
        console.print("p", Style.DIM)

        assert [o.style for o in console.outputs] == [Style.DEBUG, Style.DIM]

    def test_has_error_and_warning(self) -> None:
        console = MockConsole()
        assert console.has_error() is False
        console.warning("w")
        assert console.has_warning() is True
        assert console.has_error() is False
        console.error("e")
        assert console.has_error() is True

    def test_find_and_text(self) -> None:
        console = MockConsole()
        console.info("one tag")
        console.info("two")
        assert len(console.find("tag")) == 1
        assert console.text == "one tag\ntwo"


class TestRichConsole:
    def test_writes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.info("hello [bold]not markup[/bold]")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "hello [bold]not markup[/bold]" in captured.err

    def test_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(level=Level.INFO)
        console.debug("hidden")
        console.info("shown")

        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err

    def test_errors_always_shown(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(level=Level.ERROR)
        console.warning("quiet")
        console.error("loud")

        err = capsys.readouterr().err
        assert "quiet" not in err
        assert "error: loud" in err
