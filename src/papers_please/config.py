"""Configuration for a policy run.

Settings come from three layers, later ones winning:

1. Built-in defaults.
2. ``.papers-please.yml`` in the project root (or the file given with
   ``--config``). ``${VAR}`` placeholders are expanded from the environment.
3. Options passed on the command line.

The result is a single frozen :class:`PolicyConfig` that is passed to every
step of the pipeline.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from papers_please.adapters.unit.jest_adapter import DEFAULT_JEST_COMMAND
from papers_please.analyzers.metrics import DEFAULT_REPORT_NAME
from papers_please.analyzers.related_tests import DEFAULT_CONCURRENCY
from papers_please.utils.globs import DEFAULT_GLOB, split_globs
from papers_please.utils.process import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".papers-please.yml"

DEFAULT_BASE_BRANCH = "origin/main"
DEFAULT_COVERAGE_FILE = "./coverage/coverage-summary.json"
DEFAULT_THRESHOLD = 80.0

_MAX_PERCENTAGE = 100.0

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or parsed."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass(frozen=True)
class ThresholdConfig:
    """Minimum acceptable coverage percentage per metric."""

    line: float = DEFAULT_THRESHOLD
    branch: float = DEFAULT_THRESHOLD
    function: float = DEFAULT_THRESHOLD
    statement: float = DEFAULT_THRESHOLD


@dataclass(frozen=True)
class OracleConfig:
    """How related tests are looked up."""

    command: str = DEFAULT_JEST_COMMAND
    """Test runner executable (plus fixed leading arguments)."""

    timeout: float = DEFAULT_TIMEOUT
    """Seconds allowed per external process."""

    concurrency: int = DEFAULT_CONCURRENCY
    """Maximum related-test lookups in flight."""


@dataclass(frozen=True)
class MetricsConfig:
    """``coverage-metrics.json`` output."""

    expose: bool = False
    """Write the metrics file after evaluating coverage."""

    name: str = DEFAULT_REPORT_NAME
    """Value of the document's top-level ``name``."""


@dataclass(frozen=True)
class PolicyConfig:
    """Complete, immutable settings for one run."""

    project_root: Path
    """Repository root; report keys are built from it."""

    base_branch: str = DEFAULT_BASE_BRANCH
    """Branch the working tree is diffed against."""

    coverage_file: Path = Path(DEFAULT_COVERAGE_FILE)
    """Istanbul ``coverage-summary.json`` location."""

    skip_coverage: bool = False
    """Only check for related tests; ignore coverage entirely."""

    track_globs: tuple[str, ...] = (DEFAULT_GLOB,)
    """Patterns selecting the files the policy applies to."""

    fetch: bool = False
    """Run ``git fetch`` before diffing."""

    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)

    verbose: bool = False
    """Print diagnostic detail. Never affects the outcome."""


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _as_globs(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(split_globs(value))
    if isinstance(value, list | tuple):
        return tuple(str(item).strip() for item in value if str(item).strip())
    raise ConfigError(f"track_globs must be a string or a list (got: {value!r})")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc

    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return _resolve_dict(parsed)


def _flatten(raw: dict[str, Any]) -> dict[str, Any]:
    """Map the nested YAML layout onto the flat override keys."""
    flat: dict[str, Any] = {
        key: raw[key]
        for key in ("base_branch", "coverage_file", "skip_coverage", "track_globs", "fetch")
        if key in raw
    }

    thresholds = _section(raw, "thresholds")
    for metric in ("line", "branch", "function", "statement"):
        if metric in thresholds:
            flat[f"{metric}_threshold"] = thresholds[metric]

    metrics = _section(raw, "metrics")
    if "expose" in metrics:
        flat["expose_metrics"] = metrics["expose"]
    if "name" in metrics:
        flat["metrics_name"] = metrics["name"]

    oracle = _section(raw, "oracle")
    if "command" in oracle:
        flat["test_command"] = oracle["command"]
    for key in ("timeout", "concurrency"):
        if key in oracle:
            flat[key] = oracle[key]

    return flat


def _build(root_path: Path, values: dict[str, Any]) -> PolicyConfig:
    coverage_file = Path(str(values.get("coverage_file", DEFAULT_COVERAGE_FILE)))
    if not coverage_file.is_absolute():
        coverage_file = root_path / coverage_file

    return PolicyConfig(
        project_root=root_path,
        base_branch=str(values.get("base_branch", DEFAULT_BASE_BRANCH)),
        coverage_file=coverage_file,
        skip_coverage=_as_bool(values.get("skip_coverage", False)),
        track_globs=_as_globs(values.get("track_globs", DEFAULT_GLOB)),
        fetch=_as_bool(values.get("fetch", False)),
        thresholds=ThresholdConfig(
            line=float(values.get("line_threshold", DEFAULT_THRESHOLD)),
            branch=float(values.get("branch_threshold", DEFAULT_THRESHOLD)),
            function=float(values.get("function_threshold", DEFAULT_THRESHOLD)),
            statement=float(values.get("statement_threshold", DEFAULT_THRESHOLD)),
        ),
        oracle=OracleConfig(
            command=str(values.get("test_command", DEFAULT_JEST_COMMAND)),
            timeout=float(values.get("timeout", DEFAULT_TIMEOUT)),
            concurrency=int(values.get("concurrency", DEFAULT_CONCURRENCY)),
        ),
        metrics=MetricsConfig(
            expose=_as_bool(values.get("expose_metrics", False)),
            name=str(values.get("metrics_name", DEFAULT_REPORT_NAME)),
        ),
        verbose=_as_bool(values.get("verbose", False)),
    )


def load_config(
    root: str | Path,
    *,
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> PolicyConfig:
    """Load the configuration for a run rooted at *root*.

    Args:
        root: Project root directory.
        config_path: Explicit YAML file. Defaults to ``<root>/.papers-please.yml``
            when that file exists.
        overrides: Flat option values from the command line. Keys not present
            fall back to the YAML file, then to defaults.

    Raises:
        ConfigError: If the YAML file cannot be read, or a value has the
            wrong type.
    """
    root_path = Path(root).resolve()

    raw: dict[str, Any] = {}
    if config_path is not None:
        raw = _read_yaml(Path(config_path))
    elif (root_path / CONFIG_FILENAME).is_file():
        raw = _read_yaml(root_path / CONFIG_FILENAME)

    values = _flatten(raw)
    values.update({key: value for key, value in (overrides or {}).items() if value is not None})

    try:
        return _build(root_path, values)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc


def _validate_thresholds(thresholds: ThresholdConfig) -> list[str]:
    errors: list[str] = []
    for metric in ("line", "branch", "function", "statement"):
        value = getattr(thresholds, metric)
        if not 0.0 <= value <= _MAX_PERCENTAGE:
            errors.append(f"{metric} coverage threshold must be between 0 and 100 (got: {value})")
    return errors


def validate_config(config: PolicyConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.base_branch:
        errors.append("base_branch must not be empty")

    if not config.track_globs:
        errors.append("track_globs must contain at least one pattern")

    errors.extend(_validate_thresholds(config.thresholds))

    if config.oracle.timeout <= 0:
        errors.append(f"timeout must be positive (got: {config.oracle.timeout})")

    if config.oracle.concurrency < 1:
        errors.append(f"concurrency must be at least 1 (got: {config.oracle.concurrency})")

    if not config.oracle.command.strip():
        errors.append("test command must not be empty")

    return errors
