"""
Test console output.
"""

from __future__ import annotations

import io

from extupgrade.diff import AbsentDiff, DiffSource, ValueDiff
from extupgrade.reporting import Reporter
from extupgrade.rendering import render_report


class TestReporter:
    """Messages, warnings and the report."""

    def test_report_is_printed_verbatim(self, reporter: Reporter, output: io.StringIO):
        diffs = [
            ValueDiff("[bold]a[/bold]", "b"),
            AbsentDiff(DiffSource.INSTALLED, "x" * 300),
        ]

        reporter.print_report(diffs)

        text = output.getvalue()
        assert text.startswith(render_report(diffs))
        assert "2 difference(s) found." in text

    def test_warning_is_recorded(self, reporter: Reporter, output: io.StringIO):
        reporter.warning("Shell type found for type [x]")

        assert reporter.warnings == ["Shell type found for type [x]"]
        assert "WARNING: Shell type found for type [x]" in output.getvalue()

    def test_error(self, reporter: Reporter, output: io.StringIO):
        reporter.print_error("boom")
        assert output.getvalue() == "ERROR:\nboom\n"

    def test_success(self, reporter: Reporter, output: io.StringIO):
        reporter.print_success()
        assert output.getvalue() == "No difference found.\n"

    def test_quiet(self, output: io.StringIO):
        from rich.console import Console

        console = Console(file=output, no_color=True)
        quiet = Reporter(quiet=True, console=console, err_console=console)

        quiet.print_success()
        quiet.print_header("myext", "1.0", "1.1", "16.1")
        quiet.warning("still shown")

        assert output.getvalue() == "WARNING: still shown\n"

    def test_header(self, reporter: Reporter, output: io.StringIO):
        reporter.print_header("myext", "1.0", "1.1", "16.1")

        text = output.getvalue()
        assert "myext 1.0 -> 1.1" in text
        assert "server version 16.1" in text
