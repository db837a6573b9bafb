"""Terminal and file reporters."""

from papers_please.reporters.metrics_json import MetricsReporter
from papers_please.reporters.terminal import CLIReporter

__all__ = [
    "CLIReporter",
    "MetricsReporter",
]
