"""papers-please: test and coverage policy checks for changed files."""

__version__ = "0.1.0"
