"""Metrics reporter: writes ``coverage-metrics.json``."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from papers_please.analyzers.metrics import DEFAULT_REPORT_NAME, build_metrics_document

if TYPE_CHECKING:
    from collections.abc import Iterable

    from papers_please.models.coverage import FileCoverage

logger = logging.getLogger(__name__)

METRICS_FILENAME = "coverage-metrics.json"


class MetricsReporter:
    """Write aggregated coverage metrics for evaluated files."""

    def __init__(self, *, name: str = DEFAULT_REPORT_NAME) -> None:
        self.name = name

    def output_path(self, project_root: Path) -> Path:
        return project_root / METRICS_FILENAME

    def generate(self, project_root: Path, coverages: Iterable[FileCoverage]) -> Path:
        """Write the metrics document under *project_root*.

        Args:
            project_root: Directory receiving ``coverage-metrics.json``.
            coverages: Per-file coverage, named by relative path.

        Returns:
            The path of the written file.

        Raises:
            OSError: If the file cannot be written.
        """
        document = build_metrics_document(coverages, name=self.name)
        output_path = self.output_path(project_root)
        output_path.write_text(
            json.dumps(document, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Coverage metrics written to %s", output_path)
        return output_path


def load_metrics_document(path: Path) -> dict[str, Any]:
    """Read a previously written metrics document."""
    data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    return data
