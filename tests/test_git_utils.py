"""Tests for git utilities (utils/git.py)."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest import mock

import pytest

from papers_please.utils.git import (
    ChangeKind,
    FileStatus,
    GitDiffSource,
    GitOperationError,
    _validate_git_ref,
    fetch,
    get_changed_files,
    parse_name_status,
)

_DIFF_OUTPUT = "M\tsrc/changed.ts\nA\tsrc/new.ts\nM\tsrc/other.ts\nD\tsrc/gone.ts\n\n"


def _completed(stdout: str) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=["git"], returncode=0, stdout=stdout, stderr="")


# ── Parsing ──────────────────────────────────────────────────────


class TestParseNameStatus:
    def test_parses_modified_and_added(self) -> None:
        assert parse_name_status(_DIFF_OUTPUT) == [
            FileStatus("src/changed.ts", ChangeKind.MODIFIED),
            FileStatus("src/new.ts", ChangeKind.ADDED),
            FileStatus("src/other.ts", ChangeKind.MODIFIED),
        ]

    def test_ignores_other_status_letters(self) -> None:
        output = "D\tsrc/a.ts\nR100\tsrc/old.ts\tsrc/new.ts\nC75\tx.ts\ty.ts\n"
        assert parse_name_status(output) == []

    def test_ignores_lines_without_tab(self) -> None:
        assert parse_name_status("M src/a.ts\nwarning: something\n") == []

    def test_empty_output(self) -> None:
        assert parse_name_status("") == []

    def test_path_with_spaces(self) -> None:
        assert parse_name_status("A\tsrc/my file.ts\n") == [
            FileStatus("src/my file.ts", ChangeKind.ADDED)
        ]


# ── Ref validation ───────────────────────────────────────────────


class TestValidateGitRef:
    @pytest.mark.parametrize("ref", ["main", "origin/main", "release/v1.2.3", "HEAD"])
    def test_accepts_safe_refs(self, ref: str) -> None:
        _validate_git_ref(ref)

    @pytest.mark.parametrize(
        "ref",
        ["", "-rf", "main..dev", "main; rm -rf /", "a b", "$(whoami)", "x" * 256],
    )
    def test_rejects_unsafe_refs(self, ref: str) -> None:
        with pytest.raises(GitOperationError):
            _validate_git_ref(ref)


# ── Commands ─────────────────────────────────────────────────────


class TestGetChangedFiles:
    @mock.patch("papers_please.utils.git.subprocess.run")
    def test_runs_name_status_diff(self, mock_run: mock.Mock, tmp_path: Path) -> None:
        mock_run.return_value = _completed(_DIFF_OUTPUT)

        result = get_changed_files(tmp_path, "origin/main", timeout=5.0)

        assert [s.path for s in result] == ["src/changed.ts", "src/new.ts", "src/other.ts"]
        cmd = mock_run.call_args[0][0]
        assert cmd[1:] == [
            "--no-pager",
            "diff",
            "--name-status",
            "--diff-filter=AM",
            "origin/main",
        ]
        assert mock_run.call_args[1]["cwd"] == tmp_path
        assert mock_run.call_args[1]["timeout"] == 5.0

    @mock.patch("papers_please.utils.git.subprocess.run")
    def test_failure_raises_git_error(self, mock_run: mock.Mock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.CalledProcessError(
            128, ["git"], stderr="fatal: bad revision 'nope'"
        )

        with pytest.raises(GitOperationError, match="bad revision"):
            get_changed_files(tmp_path, "nope")

    @mock.patch("papers_please.utils.git.subprocess.run")
    def test_timeout_raises_git_error(self, mock_run: mock.Mock, tmp_path: Path) -> None:
        mock_run.side_effect = subprocess.TimeoutExpired(["git"], 1.0)

        with pytest.raises(GitOperationError, match="Timed out"):
            get_changed_files(tmp_path, "main", timeout=1.0)

    @mock.patch("papers_please.utils.git.subprocess.run")
    def test_missing_git_raises_git_error(self, mock_run: mock.Mock, tmp_path: Path) -> None:
        mock_run.side_effect = FileNotFoundError("git")

        with pytest.raises(GitOperationError, match="not found"):
            get_changed_files(tmp_path, "main")

    @mock.patch("papers_please.utils.git.subprocess.run")
    def test_unsafe_ref_never_reaches_git(self, mock_run: mock.Mock, tmp_path: Path) -> None:
        with pytest.raises(GitOperationError):
            get_changed_files(tmp_path, "--output=/tmp/x")
        mock_run.assert_not_called()


@mock.patch("papers_please.utils.git.subprocess.run")
def test_fetch(mock_run: mock.Mock, tmp_path: Path) -> None:
    mock_run.return_value = _completed("")

    fetch(tmp_path)

    assert mock_run.call_args[0][0][1:] == ["--no-pager", "fetch"]


@mock.patch("papers_please.utils.git.subprocess.run")
def test_git_diff_source(mock_run: mock.Mock, tmp_path: Path) -> None:
    mock_run.return_value = _completed("A\tsrc/new.ts\n")

    source = GitDiffSource(tmp_path, timeout=3.0)

    assert source.changed_files("origin/main") == [FileStatus("src/new.ts", ChangeKind.ADDED)]
    assert mock_run.call_args[1]["timeout"] == 3.0

    source.fetch()

    assert mock_run.call_args[0][0][1:] == ["--no-pager", "fetch"]
    assert mock_run.call_args[1]["cwd"] == tmp_path


def test_get_changed_files_in_real_repository(tmp_path: Path) -> None:
    git = ["git", "-c", "user.name=t", "-c", "user.email=t@example.com"]

    def _git(*args: str) -> None:
        subprocess.run([*git, *args], cwd=tmp_path, check=True, capture_output=True)  # noqa: S603

    try:
        _git("init", "-q", "-b", "main")
    except (FileNotFoundError, subprocess.CalledProcessError):
        pytest.skip("git is not available")

    (tmp_path / "kept.ts").write_text("export const a = 1;\n")
    _git("add", ".")
    _git("commit", "-q", "-m", "init")

    (tmp_path / "kept.ts").write_text("export const a = 2;\n")
    (tmp_path / "added.ts").write_text("export const b = 1;\n")
    _git("add", "added.ts")

    statuses = get_changed_files(tmp_path, "main")

    assert FileStatus("kept.ts", ChangeKind.MODIFIED) in statuses
    assert FileStatus("added.ts", ChangeKind.ADDED) in statuses
