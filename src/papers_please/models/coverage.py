"""Coverage data models."""

from __future__ import annotations

from dataclasses import dataclass, field

_PCT_DECIMALS = 2


def compute_pct(covered: int, total: int) -> float | None:
    """Return ``covered / total`` as a percentage rounded to two decimals.

    A whole percentage comes back as an ``int`` so it serializes as ``100``,
    not ``100.0``. Returns ``None`` when *total* is zero: there is nothing to
    measure, and reporting 0% or 100% would both be a guess.
    """
    if total == 0:
        return None
    if covered * 100 % total == 0:
        return covered * 100 // total
    return round(covered / total * 100, _PCT_DECIMALS)


@dataclass(frozen=True)
class MetricField:
    """Counts for one coverage metric (lines, functions, statements or branches)."""

    total: int = 0
    """Number of measurable items."""

    covered: int = 0
    """Items executed at least once."""

    skipped: int = 0
    """Items excluded from measurement."""

    pct: float | None = None
    """Covered percentage (0.0 to 100.0); ``None`` when nothing is measurable."""

    def __add__(self, other: MetricField) -> MetricField:
        total = self.total + other.total
        covered = self.covered + other.covered
        return MetricField(
            total=total,
            covered=covered,
            skipped=self.skipped + other.skipped,
            pct=compute_pct(covered, total),
        )


@dataclass(frozen=True)
class FileCoverage:
    """Coverage summary for a single source file."""

    filename: str
    """Path the entry is reported under."""

    lines: MetricField
    functions: MetricField
    statements: MetricField
    branches: MetricField


@dataclass(frozen=True)
class CoverageFailure:
    """The four percentages of a file that missed at least one threshold."""

    filename: str
    branches: float
    functions: float
    lines: float
    statements: float

    @classmethod
    def from_coverage(cls, coverage: FileCoverage) -> CoverageFailure:
        return cls(
            filename=coverage.filename,
            branches=percentage_of(coverage.branches),
            functions=percentage_of(coverage.functions),
            lines=percentage_of(coverage.lines),
            statements=percentage_of(coverage.statements),
        )


def percentage_of(metric: MetricField) -> float:
    """Return the metric's percentage, counting an empty metric as fully covered."""
    return 100.0 if metric.pct is None else metric.pct


@dataclass(frozen=True)
class AggregateMetric:
    """Project-wide rollup of line, function and branch counts.

    Statements are not aggregated. Each field's ``pct`` is recomputed from the
    summed counts, never averaged from per-file percentages.
    """

    lines: MetricField = field(default_factory=MetricField)
    functions: MetricField = field(default_factory=MetricField)
    branches: MetricField = field(default_factory=MetricField)

    def include(self, coverage: FileCoverage) -> AggregateMetric:
        """Return a new aggregate with *coverage*'s counts added."""
        return AggregateMetric(
            lines=self.lines + coverage.lines,
            functions=self.functions + coverage.functions,
            branches=self.branches + coverage.branches,
        )

    def merge(self, other: AggregateMetric) -> AggregateMetric:
        """Combine two aggregates; the result does not depend on order."""
        return AggregateMetric(
            lines=self.lines + other.lines,
            functions=self.functions + other.functions,
            branches=self.branches + other.branches,
        )
