"""Interfaces between the policy check and external test tooling."""

from __future__ import annotations

from typing import Protocol


class TestOracle(Protocol):
    """Answers whether a source file has at least one related test."""

    async def has_tests(self, path: str) -> bool:
        """Return True iff at least one test is related to *path*.

        Implementations must not raise for a failed lookup; they report
        ``False`` instead so one broken file cannot abort the whole check.
        """
        ...
