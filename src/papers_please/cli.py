"""papers-please CLI.

Example:
  papers-please --base-branch origin/main --track-globs "src/**/*.ts,!**/*.d.ts"
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import click
from click.core import ParameterSource
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from papers_please import __version__
from papers_please.adapters.coverage.istanbul import CoverageReportError
from papers_please.config import (
    DEFAULT_BASE_BRANCH,
    DEFAULT_COVERAGE_FILE,
    DEFAULT_THRESHOLD,
    ConfigError,
    load_config,
    validate_config,
)
from papers_please.pipeline import PolicyCheck
from papers_please.reporters.terminal import reporter
from papers_please.utils.git import GitOperationError
from papers_please.utils.globs import DEFAULT_GLOB

logger = logging.getLogger(__name__)

EXIT_POLICY_FAILURE = 1
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2

# click parameter name -> configuration key
_OVERRIDE_KEYS = {
    "base_branch": "base_branch",
    "coverage_file": "coverage_file",
    "skip_coverage": "skip_coverage",
    "track_globs": "track_globs",
    "fetch": "fetch",
    "line_coverage_threshold": "line_threshold",
    "branch_coverage_threshold": "branch_threshold",
    "function_coverage_threshold": "function_threshold",
    "statement_coverage_threshold": "statement_threshold",
    "expose_metrics": "expose_metrics",
    "metrics_name": "metrics_name",
    "test_command": "test_command",
    "timeout": "timeout",
    "concurrency": "concurrency",
    "verbose": "verbose",
}


def _configure_logging(*, verbose: bool) -> None:
    """Send package logs to stderr through rich; DEBUG only when verbose."""
    package_logger = logging.getLogger("papers_please")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
        markup=False,
    )
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    package_logger.propagate = False


def _collect_overrides(ctx: click.Context, params: dict[str, Any]) -> dict[str, Any]:
    """Return the options the user set explicitly (command line or environment)."""
    overrides: dict[str, Any] = {}
    for param_name, config_key in _OVERRIDE_KEYS.items():
        source = ctx.get_parameter_source(param_name)
        if source in (ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT):
            overrides[config_key] = params[param_name]
    return overrides


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--project-root",
    "--projectRoot",
    "project_root",
    default=".",
    show_default="current directory",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Root directory for the project. Assume this to be where the .git folder resides.",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="YAML configuration file (default: <project root>/.papers-please.yml).",
)
@click.option(
    "--base-branch",
    "--baseBranch",
    "base_branch",
    default=DEFAULT_BASE_BRANCH,
    show_default=True,
    help="Base branch to validate against.",
)
@click.option(
    "--coverage-file",
    "--coverageFile",
    "coverage_file",
    default=DEFAULT_COVERAGE_FILE,
    show_default=True,
    help=(
        "Path to the jest coverage summary report. "
        "Relative paths are resolved against --project-root, not the current directory."
    ),
)
@click.option(
    "--branch-coverage-threshold",
    "--branchCoverageThreshold",
    "branch_coverage_threshold",
    type=float,
    default=DEFAULT_THRESHOLD,
    show_default=True,
    help="Threshold value for branch coverage.",
)
@click.option(
    "--function-coverage-threshold",
    "--functionCoverageThreshold",
    "function_coverage_threshold",
    type=float,
    default=DEFAULT_THRESHOLD,
    show_default=True,
    help="Threshold value for function coverage.",
)
@click.option(
    "--line-coverage-threshold",
    "--lineCoverageThreshold",
    "line_coverage_threshold",
    type=float,
    default=DEFAULT_THRESHOLD,
    show_default=True,
    help="Threshold value for line coverage.",
)
@click.option(
    "--statement-coverage-threshold",
    "--statementCoverageThreshold",
    "statement_coverage_threshold",
    type=float,
    default=DEFAULT_THRESHOLD,
    show_default=True,
    help="Threshold value for statement coverage.",
)
@click.option(
    "--skip-coverage",
    "--skipCoverage",
    "skip_coverage",
    is_flag=True,
    help="Skip coverage metrics validation.",
)
@click.option(
    "--track-globs",
    "--trackGlobs",
    "track_globs",
    default=DEFAULT_GLOB,
    show_default=True,
    help=(
        "Comma-separated source files / globs to track. Any file that is modified or added "
        "and matches will be validated. Prefix a glob with ! to exclude."
    ),
)
@click.option(
    "--expose-metrics",
    "--exposeMetrics",
    "expose_metrics",
    is_flag=True,
    help="Write aggregated metrics for new files to coverage-metrics.json.",
)
@click.option(
    "--metrics-name",
    "metrics_name",
    default=None,
    help="Report name recorded in coverage-metrics.json.",
)
@click.option(
    "--test-command",
    "test_command",
    default=None,
    help="Jest executable used to find related tests (default: ./node_modules/.bin/jest).",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds allowed for each git or test-runner invocation (default: 120).",
)
@click.option(
    "--concurrency",
    type=int,
    default=None,
    help="Maximum related-test lookups run in parallel (default: 4).",
)
@click.option("--fetch", is_flag=True, help="Run `git fetch` before diffing.")
@click.option(
    "--verbose",
    is_flag=True,
    help="Display values for options and explicit step details.",
)
@click.version_option(version=__version__, prog_name="papers-please")
@click.pass_context
def cli(ctx: click.Context, **params: Any) -> None:
    """Flag changed files that lack tests or, when new, lack coverage.

    Modified files must have related tests. New files must have related tests
    and meet the configured coverage thresholds. Exits non-zero if any file
    is flagged.
    """
    verbose = bool(params["verbose"])
    _configure_logging(verbose=verbose)
    reporter.verbose = verbose

    overrides = _collect_overrides(ctx, params)
    logger.debug("Command-line overrides: %s", overrides)

    try:
        config = load_config(
            Path(params["project_root"]),
            config_path=params["config_path"],
            overrides=overrides,
        )
    except ConfigError as exc:
        reporter.print_error(escape(str(exc)))
        ctx.exit(EXIT_CONFIG_ERROR)

    errors = validate_config(config)
    if errors:
        reporter.print_error(f"Found {len(errors)} configuration error(s):")
        for idx, error in enumerate(errors, start=1):
            reporter.console.print(f"  {idx}. [red]{escape(error)}[/red]")
        ctx.exit(EXIT_CONFIG_ERROR)

    reporter.verbose = config.verbose
    reporter.print_options(config)

    try:
        result = PolicyCheck(config, reporter=reporter).run()
    except GitOperationError as exc:
        reporter.print_error(escape(f"Git error: {exc}"))
        ctx.exit(EXIT_RUNTIME_ERROR)
    except CoverageReportError as exc:
        reporter.print_error(escape(str(exc)))
        ctx.exit(EXIT_RUNTIME_ERROR)
    except OSError as exc:
        reporter.print_error(escape(f"I/O error: {exc}"))
        ctx.exit(EXIT_RUNTIME_ERROR)

    if not result.has_tracked_files:
        return

    reporter.print_result(result, config.thresholds)
    if not result.passed:
        ctx.exit(EXIT_POLICY_FAILURE)

