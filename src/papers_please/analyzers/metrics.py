"""Coverage metrics aggregation and the ``coverage-metrics.json`` document.

The document relabels Istanbul's fields for dashboards that expect
``line``/``branch``/``method`` stats with ``missed``/``covered``/``percentage``
values, each annotated with a display name and a type.
"""

from __future__ import annotations

from functools import reduce
from typing import TYPE_CHECKING, Any

from papers_please.models.coverage import AggregateMetric

if TYPE_CHECKING:
    from collections.abc import Iterable

    from papers_please.models.coverage import FileCoverage, MetricField

DEFAULT_REPORT_NAME = "MAP-UNIT_TEST"

_NAME_FIELD = {"text": "Name", "type": "string"}
_MISSED_FIELD = {"text": "Missed", "type": "integer"}
_COVERED_FIELD = {"text": "Covered", "type": "integer"}
_PERCENTAGE_FIELD = {"text": "Percentage", "type": "float"}


def aggregate_metrics(coverages: Iterable[FileCoverage]) -> AggregateMetric:
    """Sum line, function and branch counts across *coverages*.

    Percentages are recomputed from the sums. A metric with a zero total has
    ``pct`` set to ``None``.
    """
    return reduce(AggregateMetric.include, coverages, AggregateMetric())


def _name_entry(value: str) -> dict[str, Any]:
    return {**_NAME_FIELD, "value": value}


def format_metric(metric: MetricField) -> dict[str, Any]:
    """Render one metric as ``missed``/``covered``/``percentage`` entries."""
    return {
        "missed": {**_MISSED_FIELD, "value": metric.skipped},
        "covered": {**_COVERED_FIELD, "value": metric.covered},
        "percentage": {**_PERCENTAGE_FIELD, "value": metric.pct},
    }


def _format_stats(
    lines: MetricField, branches: MetricField, functions: MetricField
) -> dict[str, Any]:
    return {
        "line": format_metric(lines),
        "branch": format_metric(branches),
        "method": format_metric(functions),
    }


def build_metrics_document(
    coverages: Iterable[FileCoverage],
    *,
    name: str = DEFAULT_REPORT_NAME,
) -> dict[str, Any]:
    """Build the metrics document for *coverages*.

    Top-level ``stats`` hold the project aggregate; ``modules`` hold one entry
    per file, in input order, named by the file's relative path.
    """
    coverages = list(coverages)
    aggregate = aggregate_metrics(coverages)

    modules = [
        {
            "name": _name_entry(coverage.filename),
            "stats": _format_stats(coverage.lines, coverage.branches, coverage.functions),
        }
        for coverage in coverages
    ]

    return {
        "name": _name_entry(name),
        "stats": _format_stats(aggregate.lines, aggregate.branches, aggregate.functions),
        "modules": modules,
    }
