"""Terminal reporter with rich output formatting."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from rich.status import Status

    from papers_please.config import PolicyConfig, ThresholdConfig
    from papers_please.models.coverage import CoverageFailure
    from papers_please.pipeline import PolicyResult

console = Console()

# (label, CoverageFailure attribute, ThresholdConfig attribute)
_METRIC_ROWS = (
    ("Branch", "branches", "branch"),
    ("Line", "lines", "line"),
    ("Function", "functions", "function"),
    ("Statement", "statements", "statement"),
)


def threshold_delta(actual: float, threshold: float) -> int:
    """Return ``floor(actual - threshold)``, the signed distance from the threshold."""
    return math.floor(actual - threshold)


def format_metric_line(label: str, actual: float, threshold: float) -> str:
    """Format e.g. ``Line Coverage: 79% (-1%)``."""
    return f"{label} Coverage: {actual:g}% ({threshold_delta(actual, threshold)}%)"


class CLIReporter:
    """Rich terminal output for policy runs."""

    def __init__(self, *, verbose: bool = False) -> None:
        """Initialize the CLI reporter."""
        self.console = console
        self.verbose = verbose

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    def print_verbose(self, message: str) -> None:
        """Print a diagnostic message, only in verbose mode."""
        if self.verbose:
            self.console.print(f"[dim]\\[verbose] {escape(message)}[/dim]", highlight=False)

    def create_status(self, message: str) -> Status:
        """Create a Rich Status spinner for long-running operations."""
        return self.console.status(message)

    # ── Run details ────────────────────────────────────────────────────

    def print_options(self, config: PolicyConfig) -> None:
        """Print the resolved options (verbose only)."""
        if not self.verbose:
            return

        table = Table(title="Options", title_style="bold cyan")
        table.add_column("Option", style="bold")
        table.add_column("Value")
        rows = (
            ("project root", str(config.project_root)),
            ("base branch", config.base_branch),
            ("coverage file", str(config.coverage_file)),
            ("skip coverage", str(config.skip_coverage)),
            ("track globs", ", ".join(config.track_globs)),
            ("line threshold", f"{config.thresholds.line:g}"),
            ("branch threshold", f"{config.thresholds.branch:g}"),
            ("function threshold", f"{config.thresholds.function:g}"),
            ("statement threshold", f"{config.thresholds.statement:g}"),
            ("expose metrics", str(config.metrics.expose)),
            ("test command", config.oracle.command),
            ("timeout", f"{config.oracle.timeout:g}s"),
            ("concurrency", str(config.oracle.concurrency)),
        )
        for name, value in rows:
            table.add_row(name, escape(value))
        self.console.print(table)

    def print_file_list(self, label: str, files: list[str]) -> None:
        """Print matched files (verbose only)."""
        self.print_verbose(f"{label}: {len(files)} file(s)")
        for file in files:
            self.print_verbose(f"  {file}")

    # ── Result ─────────────────────────────────────────────────────────

    def print_result(self, result: PolicyResult, thresholds: ThresholdConfig) -> None:
        """Print flagged files and the overall verdict."""
        self.console.print()
        self.console.print(Panel("[bold white]RESULT[/bold white]", border_style="cyan"))

        if result.files_without_tests:
            self.print_error("No test cases found for the following files:")
            for file in result.files_without_tests:
                self.console.print(f"  {escape(file)}", highlight=False)
            self.console.print()

        if result.threshold_failures:
            self.print_error("Coverage threshold not met for the following files:")
            for failure in result.threshold_failures:
                self.print_coverage_failure(failure, thresholds)

        if result.passed:
            self.print_success("[bold green]All good![/bold green]")

    def print_coverage_failure(self, failure: CoverageFailure, thresholds: ThresholdConfig) -> None:
        """Print one file's four metrics with their distance from the threshold.

        Metrics below their threshold are shown in red.
        """
        self.console.print(f"  [bold]{escape(failure.filename)}[/bold]", highlight=False)
        for label, attr, threshold_attr in _METRIC_ROWS:
            actual: float = getattr(failure, attr)
            threshold: float = getattr(thresholds, threshold_attr)
            line = format_metric_line(label, actual, threshold)
            color = "red" if actual < threshold else "green"
            self.console.print(f"    [{color}]{line}[/{color}]", highlight=False)
        self.console.print()


reporter = CLIReporter()
