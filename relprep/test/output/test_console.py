"""Tests for relprep.output.console module."""

from __future__ import annotations

import pytest

from relprep.output.console import (
    ConsoleProtocol,
    MockConsole,
    OutputRecord,
    RichConsole,
    Style,
)


class TestStyle:
    def test_str_conversion(self) -> None:
        assert str(Style.SUCCESS) == "success"
        assert str(Style.HEADER) == "header"
        assert str(Style.DIFF) == "diff"


class TestMockConsole:
    """Test MockConsole for testing purposes."""

    def test_print_captures_message(self) -> None:
        console = MockConsole()
        console.print("hello")
        assert console.outputs == [OutputRecord("hello", Style.DEFAULT)]

    def test_prefixed_methods(self) -> None:
        console = MockConsole()
        console.success("done")
        console.error("broken")
        console.warning("careful")
        console.info("fyi")

        assert console.messages == ["OK done", "error: broken", "warning: careful", "info: fyi"]
        assert console.has_error() is True
        assert console.has_warning() is True

    def test_headers_in_order(self) -> None:
        console = MockConsole()
        console.header("Resolve versions")
        console.print("noise")
        console.header("Build and test")

        assert console.headers == ["Resolve versions", "Build and test"]

    def test_diff_and_newline(self) -> None:
        console = MockConsole()
        console.diff("-a\n+b\n")
        console.newline()

        assert console.outputs[0].style == Style.DIFF
        assert console.outputs[1] == OutputRecord("", Style.DEFAULT)

    def test_find_and_text(self) -> None:
        console = MockConsole()
        console.print("Found 2 merged PRs", Style.DIM)
        console.print("Wrote CHANGELOG.md", Style.DIM)

        assert len(console.find("merged")) == 1
        assert console.text == "Found 2 merged PRs\nWrote CHANGELOG.md"

    def test_satisfies_protocol(self) -> None:
        console: ConsoleProtocol = MockConsole()
        console.print("ok")


class TestRichConsole:
    def test_brackets_are_not_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole()
        console.print("* [#12](https://example.com/pull/12): Fix [bold] parsing")
        console.success("Created PR: [x]")

        out = capsys.readouterr().out
        assert "[#12](https://example.com/pull/12): Fix [bold] parsing" in out
        assert "Created PR: [x]" in out

    def test_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(stderr=True)
        console.print("Finding merged PRs after 1970-01-01")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Finding merged PRs" in captured.err

    def test_empty_diff(self, capsys: pytest.CaptureFixture[str]) -> None:
        RichConsole().diff("")
        assert "(no changes)" in capsys.readouterr().out
