"""Policy check pipeline.

How does this work?

Files modified or added between the working tree and the configured base
branch are collected and narrowed down to those matching ``track_globs``.

* Every tracked file, modified or new, must have at least one related test.
* Every tracked *new* file found in the coverage report must also meet the
  line, branch, function and statement thresholds.

The run fails if any file is flagged by either check.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from papers_please.adapters.coverage.istanbul import load_coverage_summary
from papers_please.adapters.unit.jest_adapter import JestRelatedTestsOracle
from papers_please.analyzers.coverage import evaluate_coverage
from papers_please.analyzers.related_tests import find_files_without_tests
from papers_please.reporters.metrics_json import MetricsReporter
from papers_please.reporters.terminal import CLIReporter
from papers_please.utils.git import ChangeKind, GitDiffSource
from papers_please.utils.globs import filter_files

if TYPE_CHECKING:
    from papers_please.adapters.base import TestOracle
    from papers_please.adapters.coverage.istanbul import CoverageSummary
    from papers_please.config import PolicyConfig
    from papers_please.models.coverage import CoverageFailure, FileCoverage
    from papers_please.utils.git import DiffSource

logger = logging.getLogger(__name__)


@dataclass
class PolicyResult:
    """Outcome of a policy run."""

    tracked_modified: list[str] = field(default_factory=list)
    """Modified files matching the track globs."""

    tracked_new: list[str] = field(default_factory=list)
    """Added files matching the track globs."""

    files_without_tests: list[str] = field(default_factory=list)
    """Tracked files with no related tests (modified first, then new)."""

    threshold_failures: list[CoverageFailure] = field(default_factory=list)
    """Tracked new files below at least one coverage threshold."""

    evaluated: list[FileCoverage] = field(default_factory=list)
    """Tracked new files found in the coverage report."""

    coverage_skipped: bool = False
    """True when coverage was not evaluated."""

    metrics_path: Path | None = None
    """Where ``coverage-metrics.json`` was written, if it was."""

    @property
    def has_tracked_files(self) -> bool:
        return bool(self.tracked_modified or self.tracked_new)

    @property
    def passed(self) -> bool:
        return not self.files_without_tests and not self.threshold_failures


class PolicyCheck:
    """Run the related-test and coverage checks for one configuration.

    Args:
        config: Settings for this run.
        diff_source: Where changed files come from. Defaults to ``git``.
        oracle: Related-test lookup. Defaults to Jest.
        reporter: Terminal output. Defaults to a reporter honouring
            ``config.verbose``.
    """

    def __init__(
        self,
        config: PolicyConfig,
        *,
        diff_source: DiffSource | None = None,
        oracle: TestOracle | None = None,
        reporter: CLIReporter | None = None,
    ) -> None:
        self.config = config
        self.diff_source = diff_source or GitDiffSource(
            config.project_root, timeout=config.oracle.timeout
        )
        self.oracle = oracle or JestRelatedTestsOracle(
            config.project_root,
            command=config.oracle.command,
            timeout=config.oracle.timeout,
        )
        self.reporter = reporter or CLIReporter(verbose=config.verbose)

    def run(self) -> PolicyResult:
        """Run the pipeline on a fresh event loop."""
        return asyncio.run(self.run_async())

    async def run_async(self) -> PolicyResult:
        """Run the pipeline.

        Raises:
            GitOperationError: If the changed files cannot be listed.
            CoverageReportError: If coverage is checked and the report is
                missing or malformed.
            OSError: If the metrics file cannot be written.
        """
        config = self.config
        result = PolicyResult(coverage_skipped=config.skip_coverage)

        self._collect_tracked_files(result)
        if not result.has_tracked_files:
            self.reporter.print_info("No files match provided --track-globs. Skipping...")
            return result

        summary = None if config.skip_coverage else self._load_coverage()

        result.files_without_tests = await self._check_related_tests(
            [*result.tracked_modified, *result.tracked_new]
        )

        if summary is None:
            self.reporter.print_info(
                "--skip-coverage is set. Skipping coverage metrics validation..."
            )
        else:
            self._check_coverage(summary, result)

        return result

    # ── Steps ──────────────────────────────────────────────────────────

    def _collect_tracked_files(self, result: PolicyResult) -> None:
        config = self.config

        if config.fetch:
            with self.reporter.create_status("Running git fetch"):
                self.diff_source.fetch()
            self.reporter.print_success("Fetched remote refs")

        with self.reporter.create_status(
            f"Looking for changed files against [blue]{config.base_branch}[/blue]"
        ):
            statuses = self.diff_source.changed_files(config.base_branch)

        modified = [s.path for s in statuses if s.change_kind is ChangeKind.MODIFIED]
        new = [s.path for s in statuses if s.change_kind is ChangeKind.ADDED]
        self.reporter.print_success(
            f"Found {len(modified)} modified and {len(new)} new file(s) "
            f"against {config.base_branch}"
        )

        result.tracked_modified = filter_files(modified, config.track_globs)
        result.tracked_new = filter_files(new, config.track_globs)
        self.reporter.print_success(
            f"{len(result.tracked_modified)} modified and {len(result.tracked_new)} new "
            "file(s) match --track-globs"
        )
        self.reporter.print_file_list("Tracked modified files", result.tracked_modified)
        self.reporter.print_file_list("Tracked new files", result.tracked_new)

    def _load_coverage(self) -> CoverageSummary:
        coverage_file = self.config.coverage_file
        with self.reporter.create_status(f"Reading coverage file {coverage_file}"):
            summary = load_coverage_summary(coverage_file)
        self.reporter.print_success(f"Coverage file found ({len(summary)} file(s) reported)")
        return summary

    async def _check_related_tests(self, files: list[str]) -> list[str]:
        total = len(files)
        checked = 0

        def _on_checked(path: str, has_tests: bool) -> None:
            nonlocal checked
            checked += 1
            outcome = "ok" if has_tests else "no related tests"
            self.reporter.print_verbose(f"({checked}/{total}) {path}: {outcome}")

        self.reporter.print_info("Based on the size of the codebase, this may take some time")
        with self.reporter.create_status(f"Checking for related tests ({total} file(s))"):
            missing = await find_files_without_tests(
                self.oracle,
                files,
                concurrency=self.config.oracle.concurrency,
                on_checked=_on_checked,
            )
        self.reporter.print_success(f"Checked related tests for {total} file(s)")
        return missing

    def _check_coverage(self, summary: CoverageSummary, result: PolicyResult) -> None:
        config = self.config
        thresholds = config.thresholds
        self.reporter.print_verbose(f"Branch Coverage Threshold: {thresholds.branch:g}")
        self.reporter.print_verbose(f"Line Coverage Threshold: {thresholds.line:g}")
        self.reporter.print_verbose(f"Statement Coverage Threshold: {thresholds.statement:g}")
        self.reporter.print_verbose(f"Function Coverage Threshold: {thresholds.function:g}")

        evaluation = evaluate_coverage(
            summary,
            result.tracked_new,
            str(config.project_root),
            thresholds,
        )
        result.threshold_failures = evaluation.failures
        result.evaluated = evaluation.evaluated
        self.reporter.print_success(
            f"Validated coverage metrics for {len(evaluation.evaluated)} new file(s)"
        )

        for coverage in evaluation.evaluated:
            self.reporter.print_verbose(
                f"{coverage.filename}: lines {coverage.lines.pct}%, "
                f"functions {coverage.functions.pct}%, "
                f"statements {coverage.statements.pct}%, "
                f"branches {coverage.branches.pct}%"
            )
        for missing in evaluation.missing:
            self.reporter.print_verbose(f"{missing}: not in coverage report, skipped")

        if config.metrics.expose and evaluation.evaluated:
            metrics_reporter = MetricsReporter(name=config.metrics.name)
            result.metrics_path = metrics_reporter.generate(
                config.project_root, evaluation.evaluated
            )
            self.reporter.print_success(f"Coverage metrics written to {result.metrics_path}")
