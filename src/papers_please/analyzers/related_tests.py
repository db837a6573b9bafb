"""Check tracked files for related tests."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from papers_please.adapters.base import TestOracle

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


async def find_files_without_tests(
    oracle: TestOracle,
    files: Sequence[str],
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    on_checked: Callable[[str, bool], None] | None = None,
) -> list[str]:
    """Return the files for which *oracle* finds no related tests.

    Lookups run concurrently, at most *concurrency* at a time. The result
    keeps the order of *files* regardless of completion order. A lookup that
    raises counts as "no related tests" for that file only.

    Args:
        oracle: Related-test lookup.
        files: Paths relative to the project root.
        concurrency: Maximum number of lookups in flight.
        on_checked: Called with ``(path, has_tests)`` as each lookup finishes.

    Raises:
        ValueError: If *concurrency* is less than 1.
    """
    if concurrency < 1:
        raise ValueError(f"Concurrency must be at least 1, got {concurrency}")

    semaphore = asyncio.Semaphore(concurrency)

    async def _check(path: str) -> bool:
        async with semaphore:
            has_tests = await oracle.has_tests(path)
        if on_checked is not None:
            on_checked(path, has_tests)
        return has_tests

    outcomes = await asyncio.gather(*(_check(path) for path in files), return_exceptions=True)

    missing: list[str] = []
    for path, outcome in zip(files, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            logger.error("Related-test lookup raised for %s: %s", path, outcome)
            if on_checked is not None:
                on_checked(path, False)
            missing.append(path)
        elif not outcome:
            logger.debug("No related tests found for %s", path)
            missing.append(path)
    return missing
