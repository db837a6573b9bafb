"""Unit test framework adapters."""
