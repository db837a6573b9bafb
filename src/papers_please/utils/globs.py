"""Glob matching for ``--track-globs``.

Patterns follow the usual shell-glob conventions extended with ``**``:

* ``*``, ``?`` and ``[...]`` match within a single path segment.
* ``**`` as a whole segment matches zero or more segments.
* A leading ``!`` turns the pattern into an exclusion.
* Wildcards never match a segment starting with ``.`` (dotfiles and dot
  directories). Name the dot explicitly to track them, e.g. ``.github/**/*.yml``.
"""

from __future__ import annotations

import fnmatch
import logging
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_GLOB = "**/*"

_NEGATION_PREFIX = "!"
_DOUBLE_STAR = "**"
_DOT = "."


def split_globs(raw: str) -> list[str]:
    """Split a comma-separated glob list, dropping blank entries."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _segments(path: str) -> tuple[str, ...]:
    return tuple(seg for seg in path.replace("\\", "/").split("/") if seg and seg != ".")


@lru_cache(maxsize=256)
def _pattern_segments(pattern: str) -> tuple[str, ...]:
    return _segments(pattern)


def _match_segment(segment: str, pattern: str) -> bool:
    if segment.startswith(_DOT) and not pattern.startswith(_DOT):
        return False
    return fnmatch.fnmatchcase(segment, pattern)


def _match_segments(path: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    """Match path segments against pattern segments, expanding ``**``."""
    if not pattern:
        return not path

    head, rest = pattern[0], pattern[1:]
    if head == _DOUBLE_STAR:
        # ``**`` swallows zero or more leading segments, stopping at a dot segment
        for i in range(len(path) + 1):
            if _match_segments(path[i:], rest):
                return True
            if i < len(path) and path[i].startswith(_DOT):
                return False
        return False

    if not path:
        return False
    return _match_segment(path[0], head) and _match_segments(path[1:], rest)


def match_glob(path: str, pattern: str) -> bool:
    """Return True if *path* matches a single (positive) glob *pattern*."""
    return _match_segments(_segments(path), _pattern_segments(pattern))


def filter_files(files: Sequence[str], patterns: Iterable[str]) -> list[str]:
    """Return the files matching at least one pattern, in their original order.

    Patterns starting with ``!`` exclude what they match. When every pattern
    is an exclusion, all remaining files are kept.

    Args:
        files: Candidate paths relative to the project root.
        patterns: Glob patterns, e.g. from :func:`split_globs`.

    Returns:
        The matching subset of *files*. Empty when nothing matches.
    """
    include: list[str] = []
    exclude: list[str] = []
    for pattern in patterns:
        if pattern.startswith(_NEGATION_PREFIX):
            exclude.append(pattern[len(_NEGATION_PREFIX) :])
        else:
            include.append(pattern)

    if not include:
        include = [DEFAULT_GLOB]

    matched = [
        path
        for path in files
        if any(match_glob(path, pat) for pat in include)
        and not any(match_glob(path, pat) for pat in exclude)
    ]
    logger.debug("Matched %d of %d file(s) against %s", len(matched), len(files), include)
    return matched
