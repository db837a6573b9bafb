"""Istanbul ``coverage-summary.json`` reader.

Jest (via Istanbul's ``json-summary`` reporter) writes one entry per source
file keyed by absolute path, plus a ``total`` entry::

    {
      "total": {...},
      "/repo/src/a.ts": {
        "lines":      {"total": 10, "covered": 8, "skipped": 0, "pct": 80},
        "functions":  {...},
        "statements": {...},
        "branches":   {...}
      }
    }

The file is validated on load so a malformed report fails fast with a message
naming the offending entry instead of surfacing later as a ``KeyError``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from papers_please.models.coverage import FileCoverage, MetricField

logger = logging.getLogger(__name__)

TOTAL_KEY = "total"

_METRIC_NAMES = ("lines", "functions", "statements", "branches")
_COUNT_FIELDS = ("total", "covered", "skipped")

# Istanbul reports ``"pct": "Unknown"`` for metrics with nothing to measure.
_UNKNOWN_PCT = "Unknown"
_FULL_PCT = 100


class CoverageReportError(Exception):
    """Raised when the coverage report is missing, unreadable, or malformed."""


@dataclass(frozen=True)
class CoverageSummary(Mapping[str, FileCoverage]):
    """Validated coverage report: absolute path -> :class:`FileCoverage`."""

    files: dict[str, FileCoverage] = field(default_factory=dict)
    """Per-file entries keyed by absolute path."""

    total: FileCoverage | None = None
    """Istanbul's project total, when present. Never treated as a file."""

    def __getitem__(self, key: str) -> FileCoverage:
        return self.files[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)


def _parse_number(value: Any, where: str) -> int | float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise CoverageReportError(f"{where} must be a number (got: {value!r})")
    return value


def _parse_metric(raw: Any, where: str) -> MetricField:
    if not isinstance(raw, dict):
        raise CoverageReportError(f"{where} must be an object")

    counts: dict[str, int] = {}
    for name in _COUNT_FIELDS:
        if name not in raw:
            raise CoverageReportError(f"{where}.{name} is missing")
        counts[name] = int(_parse_number(raw[name], f"{where}.{name}"))

    if "pct" not in raw:
        raise CoverageReportError(f"{where}.pct is missing")
    pct_raw = raw["pct"]
    pct = _FULL_PCT if pct_raw == _UNKNOWN_PCT else _parse_number(pct_raw, f"{where}.pct")

    return MetricField(
        total=counts["total"],
        covered=counts["covered"],
        skipped=counts["skipped"],
        pct=pct,
    )


def parse_file_entry(filename: str, raw: Any) -> FileCoverage:
    """Validate one report entry and convert it to :class:`FileCoverage`.

    Raises:
        CoverageReportError: If a metric or one of its fields is missing or
            not numeric.
    """
    if not isinstance(raw, dict):
        raise CoverageReportError(f"Entry for {filename!r} must be an object")

    metrics: dict[str, MetricField] = {}
    for name in _METRIC_NAMES:
        if name not in raw:
            raise CoverageReportError(f"Entry for {filename!r} has no {name!r} metric")
        metrics[name] = _parse_metric(raw[name], f"{filename}.{name}")

    return FileCoverage(filename=filename, **metrics)


def parse_coverage_summary(data: Any) -> CoverageSummary:
    """Build a :class:`CoverageSummary` from decoded JSON.

    Raises:
        CoverageReportError: If *data* is not a JSON object of valid entries.
    """
    if not isinstance(data, dict):
        raise CoverageReportError("Coverage report must be a JSON object keyed by file path")

    files: dict[str, FileCoverage] = {}
    total: FileCoverage | None = None
    for key, entry in data.items():
        if key == TOTAL_KEY:
            total = parse_file_entry(key, entry)
            continue
        files[key] = parse_file_entry(key, entry)

    return CoverageSummary(files=files, total=total)


def load_coverage_summary(coverage_file: Path) -> CoverageSummary:
    """Read and validate a ``coverage-summary.json`` file.

    Raises:
        CoverageReportError: If the file does not exist, cannot be read, is
            not valid JSON, or does not have the expected shape.
    """
    if not coverage_file.is_file():
        raise CoverageReportError(
            f"Coverage file not found at {coverage_file}. "
            "The path can be configured with the --coverage-file option."
        )

    try:
        text = coverage_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise CoverageReportError(f"Could not read coverage file {coverage_file}: {exc}") from exc

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CoverageReportError(
            f"Coverage file {coverage_file} is not valid JSON: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})"
        ) from exc

    summary = parse_coverage_summary(data)
    logger.debug("Loaded coverage for %d file(s) from %s", len(summary), coverage_file)
    return summary
