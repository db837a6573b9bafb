"""Utilities for git, glob matching, and subprocess execution."""
