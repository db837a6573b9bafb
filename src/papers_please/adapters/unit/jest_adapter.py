"""Jest adapter: related-test lookup via ``--findRelatedTests``.

A test is related to a source file if Jest's dependency graph shows that the
file is imported, directly or transitively, by a test. ``--listTests`` makes
Jest print the test paths instead of running them.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import TYPE_CHECKING

from papers_please.utils.process import DEFAULT_TIMEOUT, ProcessLaunchError, run_process

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_JEST_COMMAND = "./node_modules/.bin/jest"

_RELATED_TESTS_ARGS = ("--findRelatedTests", "--listTests")


def count_listed_tests(stdout: str) -> int:
    """Count the non-blank lines Jest printed for ``--listTests``."""
    return sum(1 for line in stdout.splitlines() if line.strip())


class JestRelatedTestsOracle:
    """:class:`~papers_please.adapters.base.TestOracle` backed by Jest.

    Any failure to run Jest for a file (non-zero exit, timeout, missing
    executable) is logged and reported as "no related tests".
    """

    def __init__(
        self,
        project_root: Path,
        *,
        command: str | Sequence[str] = DEFAULT_JEST_COMMAND,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._project_root = project_root
        self._command = shlex.split(command) if isinstance(command, str) else list(command)
        self._timeout = timeout

    def build_command(self, path: str) -> list[str]:
        return [*self._command, *_RELATED_TESTS_ARGS, path]

    async def has_tests(self, path: str) -> bool:
        cmd = self.build_command(path)
        try:
            result = await run_process(cmd, cwd=self._project_root, timeout=self._timeout)
        except ProcessLaunchError as exc:
            logger.error("Related-test lookup failed for %s: %s", path, exc)
            return False

        if result.timed_out:
            logger.error("Related-test lookup for %s timed out after %ss", path, self._timeout)
            return False

        if not result.ok:
            logger.error(
                "Related-test lookup for %s exited with code %d: %s",
                path,
                result.returncode,
                result.stderr.strip(),
            )
            return False

        found = count_listed_tests(result.stdout)
        logger.debug("Jest listed %d related test(s) for %s", found, path)
        return found > 0
