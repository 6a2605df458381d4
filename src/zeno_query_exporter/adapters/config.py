"""YAML job configuration loaders.

Two layouts are supported and produce the same ExporterConfig:

- a single file with a top-level ``jobs`` mapping (``load_config``)
- a directory holding one job per ``*.yml``/``*.yaml`` file, named after
  the file stem (``load_jobs_dir``)

Example job::

    query: SELECT bytes, requests FROM traffic GROUP BY country, proxy
    ignoreDims: [proxy]
    renameDims:
      country: client_country
    metrics:
      bytes:
        name: traffic_bytes_total
        help: Bytes transferred
        type: counter
        extraLabels:
          source: zeno
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from zeno_query_exporter.core.errors import ConfigError
from zeno_query_exporter.core.models import (
    ExporterConfig,
    JobDefinition,
    MetricDescriptor,
)

logger = logging.getLogger(__name__)

# Lowercase spellings written by older config files
_KEY_ALIASES = {
    "ignoredims": "ignoreDims",
    "renamedims": "renameDims",
    "extralabels": "extraLabels",
}
_JOB_KEYS = {"query", "ignoreDims", "renameDims", "metrics"}
_METRIC_KEYS = {"name", "help", "type", "extraLabels"}
_YAML_SUFFIXES = (".yml", ".yaml")


def _normalize_keys(raw: Mapping[str, Any], allowed: set[str], context: str) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in raw.items():
        key = _KEY_ALIASES.get(str(key), str(key))
        if key not in allowed:
            raise ConfigError(f"{context}: unknown key {key!r}")
        result[key] = value
    return result


def _expect_mapping(value: Any, context: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"{context}: expected a mapping, got {type(value).__name__}")
    return value


def _string_map(value: Any, context: str) -> dict[str, str]:
    return {
        str(k): "" if v is None else str(v)
        for k, v in _expect_mapping(value, context).items()
    }


def _parse_metric(raw: Any, context: str) -> MetricDescriptor:
    fields = _normalize_keys(_expect_mapping(raw, context), _METRIC_KEYS, context)
    if "name" not in fields:
        raise ConfigError(f"{context}: metric name is required")
    extra_labels = _string_map(fields.get("extraLabels"), f"{context}.extraLabels")
    try:
        return MetricDescriptor(
            name=fields["name"],
            help=str(fields.get("help") or ""),
            type=fields.get("type", "gauge"),
            extra_labels=extra_labels,
        )
    except ConfigError as e:
        raise ConfigError(f"{context}: {e.detail}") from e


def parse_job(raw: Any, context: str = "job") -> JobDefinition:
    """Build a JobDefinition from its decoded YAML form.

    Raises:
        ConfigError: The job is malformed or fails validation.
    """
    fields = _normalize_keys(_expect_mapping(raw, context), _JOB_KEYS, context)
    ignore = fields.get("ignoreDims") or []
    if not isinstance(ignore, list):
        raise ConfigError(f"{context}.ignoreDims: expected a list")
    metrics = {
        str(column): _parse_metric(metric, f"{context}.metrics.{column}")
        for column, metric in _expect_mapping(
            fields.get("metrics"), f"{context}.metrics"
        ).items()
    }
    try:
        return JobDefinition(
            query=fields.get("query", ""),
            ignore_dims=[str(dim) for dim in ignore],
            rename_dims=_string_map(fields.get("renameDims"), f"{context}.renameDims"),
            metrics=metrics,
        )
    except ConfigError as e:
        raise ConfigError(f"{context}: {e.detail}") from e


def _read_yaml(path: Path) -> Any:
    try:
        with path.open(encoding="utf-8") as f:
            return yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"{path}: {e.strerror or e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"{path}: invalid YAML: {e}") from e


def load_config(path: str | Path) -> ExporterConfig:
    """Load a single config file with a top-level ``jobs`` mapping.

    Args:
        path: Path of the YAML file.

    Returns:
        ExporterConfig with every declared job.

    Raises:
        ConfigError: The file cannot be read or a job is invalid.
    """
    path = Path(path)
    document = _expect_mapping(_read_yaml(path), str(path))
    jobs = {
        str(name): parse_job(raw, f"{path}: jobs.{name}")
        for name, raw in _expect_mapping(document.get("jobs"), f"{path}: jobs").items()
    }
    logger.info("Loaded %d jobs from %s", len(jobs), path)
    return ExporterConfig(jobs=jobs)


def load_jobs_dir(path: str | Path) -> ExporterConfig:
    """Load one job per YAML file from a directory.

    Args:
        path: Directory containing ``<job name>.yml`` files.

    Returns:
        ExporterConfig with one job per file.

    Raises:
        ConfigError: The directory cannot be read, a job is invalid, or
            two files declare the same job name.
    """
    path = Path(path)
    if not path.is_dir():
        raise ConfigError(f"{path}: not a directory")
    jobs: dict[str, JobDefinition] = {}
    for file in sorted(path.iterdir()):
        if file.suffix not in _YAML_SUFFIXES or not file.is_file():
            continue
        if file.stem in jobs:
            raise ConfigError(f"{file}: duplicate job {file.stem!r}")
        jobs[file.stem] = parse_job(_read_yaml(file), str(file))
    logger.info("Loaded %d jobs from %s", len(jobs), path)
    return ExporterConfig(jobs=jobs)
