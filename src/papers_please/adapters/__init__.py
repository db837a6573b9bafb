"""Adapters for external test and coverage tooling."""

from papers_please.adapters.base import TestOracle

__all__ = ["TestOracle"]
