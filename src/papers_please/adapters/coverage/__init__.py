"""Coverage report readers."""

from papers_please.adapters.coverage.istanbul import (
    CoverageReportError,
    CoverageSummary,
    load_coverage_summary,
)

__all__ = [
    "CoverageReportError",
    "CoverageSummary",
    "load_coverage_summary",
]
