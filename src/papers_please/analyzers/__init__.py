"""Checks applied to tracked files."""
