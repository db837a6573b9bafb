"""Coverage threshold evaluation for newly added files."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from papers_please.models.coverage import CoverageFailure, FileCoverage, percentage_of

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from papers_please.config import ThresholdConfig

logger = logging.getLogger(__name__)


@dataclass
class CoverageEvaluation:
    """Outcome of checking a set of files against coverage thresholds."""

    failures: list[CoverageFailure] = field(default_factory=list)
    """One entry per file below at least one threshold."""

    evaluated: list[FileCoverage] = field(default_factory=list)
    """Every file found in the report, renamed to its relative path."""

    missing: list[str] = field(default_factory=list)
    """Files absent from the report; these are never flagged."""


def report_key(project_root: str, relative_path: str) -> str:
    """Return the key a file is stored under in the coverage report."""
    return f"{project_root}/{relative_path}"


def below_threshold(coverage: FileCoverage, thresholds: ThresholdConfig) -> bool:
    """Return True if any of the four percentages is strictly below its threshold."""
    return (
        percentage_of(coverage.lines) < thresholds.line
        or percentage_of(coverage.functions) < thresholds.function
        or percentage_of(coverage.statements) < thresholds.statement
        or percentage_of(coverage.branches) < thresholds.branch
    )


def evaluate_coverage(
    report: Mapping[str, FileCoverage],
    files: Sequence[str],
    project_root: str,
    thresholds: ThresholdConfig,
) -> CoverageEvaluation:
    """Compare each file's coverage with the configured thresholds.

    Args:
        report: Coverage entries keyed by absolute path.
        files: Tracked new files, relative to *project_root*.
        project_root: Prefix used to build report keys.
        thresholds: Minimum percentages per metric.

    Returns:
        Failures in the order of *files*, plus the evaluated entries for
        metrics aggregation. Files missing from the report are skipped.
    """
    evaluation = CoverageEvaluation()

    for file in files:
        entry = report.get(report_key(project_root, file))
        if entry is None:
            logger.debug("No coverage entry for %s, skipping", file)
            evaluation.missing.append(file)
            continue

        coverage = replace(entry, filename=file)
        evaluation.evaluated.append(coverage)

        if below_threshold(coverage, thresholds):
            evaluation.failures.append(CoverageFailure.from_coverage(coverage))

    logger.debug(
        "Evaluated %d file(s): %d below threshold, %d not in report",
        len(evaluation.evaluated),
        len(evaluation.failures),
        len(evaluation.missing),
    )
    return evaluation
