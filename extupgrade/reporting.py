"""
Reporting and console output for extupgrade.

Uses the Rich library for colored status messages. The diff report itself
is printed verbatim: no markup, highlighting or wrapping is applied to it,
so the console output is exactly the rendered text.

The reporter is handed to the snapshot layer, which uses it for warnings
(non-fatal anomalies like shell types). Fatal errors are raised as
exceptions and printed by the CLI with print_error().
"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .diff import DiffNode, count_differences
from .rendering import render_report


class Reporter:
    """
    Console output of a validation run.

    Messages go to stdout, warnings and errors to stderr.
    """

    def __init__(
        self,
        quiet: bool = False,
        no_color: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """
        Initialize reporter.

        Args:
            quiet: Only print the report, warnings and errors
            no_color: Disable colored output
            console: Console for regular output (default: stdout)
            err_console: Console for warnings and errors (default: stderr)
        """
        self.quiet = quiet
        self.no_color = no_color
        self.console = console or Console(no_color=no_color, highlight=False)
        self.err_console = err_console or Console(
            stderr=True, no_color=no_color, highlight=False
        )
        self.warnings: List[str] = []

    def print(self, message: str, style: Optional[str] = None) -> None:
        """Print a message to the console."""
        if self.quiet:
            return
        if style:
            self.console.print(message, style=style)
        else:
            self.console.print(message)

    def warning(self, message: str) -> None:
        """Report a non-fatal anomaly."""
        self.warnings.append(message)
        self.err_console.print(f"[yellow]WARNING:[/yellow] {escape(message)}")

    def print_error(self, message: str) -> None:
        """Print an error message (always shown, even in quiet mode)."""
        self.err_console.print(f"[red]ERROR:[/red]\n{escape(message)}")

    def print_header(self, extname: str, from_version: str, to_version: str,
                     server_version: str) -> None:
        """Print the run header."""
        if self.quiet:
            return
        self.console.print(
            Panel(
                f"[bold]{escape(extname)}[/bold] "
                f"{escape(from_version)} -> {escape(to_version)}\n"
                f"[dim]Connected, server version {escape(server_version)}[/dim]",
                title="extupgrade",
                border_style="blue",
            )
        )

    def print_report(self, diffs: List[DiffNode]) -> None:
        """Print the rendered diffs, followed by a summary line."""
        self.console.print(
            render_report(diffs),
            markup=False,
            highlight=False,
            emoji=False,
            soft_wrap=True,
            end="",
        )
        self.err_console.print(
            f"[red]{count_differences(diffs)} difference(s) found.[/red]"
        )

    def print_success(self) -> None:
        self.print("No difference found.", style="green")
