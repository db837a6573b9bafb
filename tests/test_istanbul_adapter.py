"""Tests for the Istanbul coverage-summary reader (adapters/coverage/istanbul.py)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from papers_please.adapters.coverage.istanbul import (
    CoverageReportError,
    load_coverage_summary,
    parse_coverage_summary,
    parse_file_entry,
)
from papers_please.models.coverage import MetricField


def _metric(total: int, covered: int, pct: Any = None, skipped: int = 0) -> dict[str, Any]:
    if pct is None:
        pct = round(covered / total * 100, 2) if total else 100
    return {"total": total, "covered": covered, "skipped": skipped, "pct": pct}


def _entry(**overrides: dict[str, Any]) -> dict[str, Any]:
    entry = {
        "lines": _metric(10, 8),
        "functions": _metric(4, 4),
        "statements": _metric(12, 9),
        "branches": _metric(6, 3),
    }
    entry.update(overrides)
    return entry


def _write(tmp_path: Path, data: Any) -> Path:
    path = tmp_path / "coverage-summary.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ── Loading ──────────────────────────────────────────────────────────


class TestLoadCoverageSummary:
    def test_loads_entries_keyed_by_path(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            {
                "total": _entry(),
                "/repo/src/a.ts": _entry(),
                "/repo/src/b.ts": _entry(lines=_metric(20, 15)),
            },
        )

        summary = load_coverage_summary(path)

        assert sorted(summary) == ["/repo/src/a.ts", "/repo/src/b.ts"]
        assert summary["/repo/src/a.ts"].lines == MetricField(10, 8, 0, 80.0)
        assert summary["/repo/src/b.ts"].lines.pct == 75.0
        assert summary["/repo/src/a.ts"].filename == "/repo/src/a.ts"

    def test_total_entry_is_not_a_file(self, tmp_path: Path) -> None:
        summary = load_coverage_summary(_write(tmp_path, {"total": _entry()}))

        assert len(summary) == 0
        assert "total" not in summary
        assert summary.total is not None
        assert summary.total.functions.pct == 100.0

    def test_get_returns_none_for_unknown_file(self, tmp_path: Path) -> None:
        summary = load_coverage_summary(_write(tmp_path, {"/repo/a.ts": _entry()}))

        assert summary.get("/repo/missing.ts") is None

    def test_missing_file_mentions_option(self, tmp_path: Path) -> None:
        with pytest.raises(CoverageReportError, match="--coverage-file"):
            load_coverage_summary(tmp_path / "nope.json")

    def test_directory_is_not_a_report(self, tmp_path: Path) -> None:
        with pytest.raises(CoverageReportError, match="not found"):
            load_coverage_summary(tmp_path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "coverage-summary.json"
        path.write_text("{ not json", encoding="utf-8")

        with pytest.raises(CoverageReportError, match="not valid JSON"):
            load_coverage_summary(path)

    def test_top_level_must_be_object(self, tmp_path: Path) -> None:
        with pytest.raises(CoverageReportError, match="JSON object"):
            load_coverage_summary(_write(tmp_path, [1, 2, 3]))


# ── Validation ───────────────────────────────────────────────────────


class TestParseFileEntry:
    def test_unknown_pct_counts_as_full(self) -> None:
        unknown = {"total": 0, "covered": 0, "skipped": 0, "pct": "Unknown"}

        coverage = parse_file_entry("/repo/a.ts", _entry(branches=unknown))

        assert coverage.branches.pct == 100.0
        assert coverage.branches.total == 0

    def test_missing_metric(self) -> None:
        raw = _entry()
        del raw["branches"]

        with pytest.raises(CoverageReportError, match="'branches'"):
            parse_file_entry("/repo/a.ts", raw)

    def test_numbers_kept_as_reported(self) -> None:
        coverage = parse_file_entry("/repo/a.ts", _entry(lines=_metric(4, 4, pct=100)))

        assert coverage.lines.pct == 100
        assert isinstance(coverage.lines.pct, int)

    def test_missing_field(self) -> None:
        raw = _entry()
        del raw["lines"]["covered"]

        with pytest.raises(CoverageReportError, match=r"lines\.covered is missing"):
            parse_file_entry("/repo/a.ts", raw)

    def test_missing_pct(self) -> None:
        raw = _entry()
        del raw["statements"]["pct"]

        with pytest.raises(CoverageReportError, match=r"statements\.pct is missing"):
            parse_file_entry("/repo/a.ts", raw)

    @pytest.mark.parametrize("bad", ["10", None, True, [1]])
    def test_non_numeric_count(self, bad: Any) -> None:
        raw = _entry()
        raw["lines"]["total"] = bad

        with pytest.raises(CoverageReportError, match="must be a number"):
            parse_file_entry("/repo/a.ts", raw)

    def test_metric_must_be_object(self) -> None:
        with pytest.raises(CoverageReportError, match="must be an object"):
            parse_file_entry("/repo/a.ts", _entry(lines=[10, 8]))

    def test_entry_must_be_object(self) -> None:
        with pytest.raises(CoverageReportError, match="must be an object"):
            parse_file_entry("/repo/a.ts", "oops")


def test_parse_coverage_summary_names_offending_entry() -> None:
    with pytest.raises(CoverageReportError, match="/repo/bad.ts"):
        parse_coverage_summary({"/repo/good.ts": _entry(), "/repo/bad.ts": {"lines": {}}})
