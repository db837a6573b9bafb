"""Git utilities for finding the files changed on the working branch.

The policy only cares about two kinds of change: files modified relative to
the base branch and files newly added on it. Both come from a single
``git diff --name-status`` call which is parsed into :class:`FileStatus`
records.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_DEFAULT_GIT_TIMEOUT = 120.0

_GIT_REF_MAX_LENGTH = 255
_GIT_REF_UNSAFE = re.compile(r"[\x00-\x1f\x7f \~\^:\?\*\[\]\\;|&$`()<>{}!#'\"]")


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


class ChangeKind(Enum):
    """Kind of change reported by ``git diff --name-status``."""

    MODIFIED = "M"
    ADDED = "A"


@dataclass(frozen=True)
class FileStatus:
    """A single changed file in the diff window."""

    path: str
    """Path relative to the repository root."""

    change_kind: ChangeKind
    """Whether the file was modified or added."""


class DiffSource(Protocol):
    """Anything that can list the files changed against a base branch."""

    def fetch(self) -> None:
        """Bring remote refs up to date before diffing."""
        ...

    def changed_files(self, base_branch: str) -> list[FileStatus]:
        """Return modified and added files, in diff order."""
        ...


def _validate_git_ref(ref: str) -> None:
    """Validate a git ref to prevent injection and malformed inputs.

    Raises:
        GitOperationError: If the ref is invalid.
    """
    if not ref:
        raise GitOperationError("Git ref must not be empty")
    if len(ref) > _GIT_REF_MAX_LENGTH:
        raise GitOperationError(f"Git ref exceeds {_GIT_REF_MAX_LENGTH} characters")
    if _GIT_REF_UNSAFE.search(ref):
        raise GitOperationError(f"Git ref contains unsafe characters: {ref!r}")
    if ref.startswith("-"):
        raise GitOperationError("Git ref must not start with a dash")
    if ".." in ref:
        raise GitOperationError("Git ref must not contain '..'")


def parse_name_status(output: str) -> list[FileStatus]:
    """Parse ``git diff --name-status`` output into :class:`FileStatus` records.

    Input::

        M\tsrc/a.ts
        A\tsrc/b.ts
        D\tsrc/c.ts

    yields a modified ``src/a.ts`` and an added ``src/b.ts``. Lines with any
    other status letter, blank lines, and lines without a tab are dropped.
    """
    statuses: list[FileStatus] = []
    for line in output.splitlines():
        letter, sep, path = line.partition("\t")
        if not sep or not path:
            continue
        try:
            kind = ChangeKind(letter.strip())
        except ValueError:
            continue
        statuses.append(FileStatus(path=path.strip(), change_kind=kind))
    return statuses


def _run_git(
    repo_path: Path, args: list[str], *, timeout: float, action: str
) -> subprocess.CompletedProcess[str]:
    """Run ``git --no-pager <args>`` and wrap failures in :class:`GitOperationError`.

    ``--no-pager`` keeps output inline regardless of the user's pager
    configuration; nothing in the user's git config is changed.
    """
    try:
        return subprocess.run(  # noqa: S603
            [_git_executable(), "--no-pager", *args],
            cwd=repo_path,
            capture_output=True,
            text=True,
            check=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise GitOperationError(f"Timed out after {timeout}s while trying to {action}") from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or str(exc)
        raise GitOperationError(f"Failed to {action}: {detail}") from exc
    except FileNotFoundError as exc:
        raise GitOperationError("git executable not found") from exc


def fetch(repo_path: Path, *, timeout: float = _DEFAULT_GIT_TIMEOUT) -> None:
    """Run ``git fetch`` so remote base branches are up to date.

    Raises:
        GitOperationError: If the fetch fails.
    """
    _run_git(repo_path, ["fetch"], timeout=timeout, action="fetch from remote")
    logger.info("Fetched remote refs in %s", repo_path)


def get_changed_files(
    repo_path: Path,
    base_branch: str,
    *,
    timeout: float = _DEFAULT_GIT_TIMEOUT,
) -> list[FileStatus]:
    """List files modified or added between *base_branch* and the working tree.

    Runs ``git diff --name-status --diff-filter=AM <base_branch>``.

    Raises:
        GitOperationError: If the ref is unsafe or the diff fails.
    """
    _validate_git_ref(base_branch)
    result = _run_git(
        repo_path,
        ["diff", "--name-status", "--diff-filter=AM", base_branch],
        timeout=timeout,
        action=f"diff against {base_branch}",
    )
    statuses = parse_name_status(result.stdout)
    logger.debug("git diff against %s listed %d file(s)", base_branch, len(statuses))
    return statuses


class GitDiffSource:
    """:class:`DiffSource` backed by the ``git`` executable."""

    def __init__(self, repo_path: Path, *, timeout: float = _DEFAULT_GIT_TIMEOUT) -> None:
        self._repo_path = repo_path
        self._timeout = timeout

    def fetch(self) -> None:
        fetch(self._repo_path, timeout=self._timeout)

    def changed_files(self, base_branch: str) -> list[FileStatus]:
        return get_changed_files(self._repo_path, base_branch, timeout=self._timeout)
