"""Core domain models for query-to-metrics translation."""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from zeno_query_exporter.core.errors import ConfigError, JobNotFound

METRIC_NAME_RE = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")
LABEL_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class MetricType(str, Enum):
    """Prometheus metric types supported by the exporter."""

    COUNTER = "counter"
    GAUGE = "gauge"

    def __str__(self) -> str:
        return self.value


def _check_label_name(name: str, context: str) -> None:
    if not LABEL_NAME_RE.match(name):
        raise ConfigError(f"{context}: invalid label name {name!r}")


@dataclass(frozen=True)
class MetricDescriptor:
    """Static metadata describing one Prometheus series family.

    Attributes:
        name: Metric name (e.g., bytes_transferred_total).
        help: Free-form help text, may be empty.
        type: Counter or gauge.
        extra_labels: Labels added to every sample of this metric, after
            the labels derived from query dimensions.
    """

    name: str
    help: str = ""
    type: MetricType = MetricType.GAUGE
    extra_labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not METRIC_NAME_RE.match(self.name):
            raise ConfigError(f"invalid metric name {self.name!r}")
        try:
            metric_type = MetricType(self.type)
        except ValueError:
            raise ConfigError(
                f"metric {self.name}: unsupported type {self.type!r}"
            ) from None
        object.__setattr__(self, "type", metric_type)
        for label in self.extra_labels:
            _check_label_name(label, f"metric {self.name}")
        object.__setattr__(
            self,
            "extra_labels",
            MappingProxyType({k: str(v) for k, v in self.extra_labels.items()}),
        )


TOTAL_PARTITIONS = MetricDescriptor(
    name="zeno_query_exporter_zeno_partitions_total",
    type=MetricType.GAUGE,
)

MISSING_PARTITIONS = MetricDescriptor(
    name="zeno_query_exporter_zeno_partitions_missing",
    type=MetricType.GAUGE,
)


@dataclass(frozen=True)
class JobDefinition:
    """A named query plus the rules for turning its rows into samples.

    On construction ``ignore_dims`` is folded into ``rename_dims`` as
    mappings to the empty label name, so ``rename_dims`` alone decides
    whether a dimension is dropped, renamed or passed through.

    Attributes:
        query: Query template, rendered with request parameters.
        ignore_dims: Dimensions dropped from the labels.
        rename_dims: Dimension name to label name; "" drops the dimension.
        metrics: Result column name to the metric it populates.
    """

    query: str
    ignore_dims: Sequence[str] = ()
    rename_dims: Mapping[str, str] = field(default_factory=dict)
    metrics: Mapping[str, MetricDescriptor] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.query, str) or not self.query.strip():
            raise ConfigError("job query must be a non-empty string")
        rename = dict(self.rename_dims)
        for dim, label in rename.items():
            if label:
                _check_label_name(label, f"renameDims[{dim}]")
        for dim in self.ignore_dims:
            rename[dim] = ""
        object.__setattr__(self, "ignore_dims", tuple(self.ignore_dims))
        object.__setattr__(self, "rename_dims", MappingProxyType(rename))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))


@dataclass(frozen=True)
class Row:
    """A single query result row.

    Attributes:
        key: Dimension name to scalar value, in result order.
        values: Numeric values aligned with the result field names.
        ts: Timestamp in nanoseconds since the epoch.
    """

    key: Mapping[str, Any]
    values: Sequence[float]
    ts: int


@dataclass(frozen=True)
class PartitionStats:
    """How many store partitions answered a query."""

    num_partitions: int
    num_successful_partitions: int

    @property
    def num_missing_partitions(self) -> int:
        return self.num_partitions - self.num_successful_partitions


@dataclass(frozen=True)
class Sample:
    """One exposition line: a metric, its labels, value and timestamp.

    Attributes:
        descriptor: The metric family this sample belongs to.
        labels: Labels derived from the row (extra labels excluded).
        value: The sample value.
        timestamp_ms: Unix timestamp in milliseconds.
    """

    descriptor: MetricDescriptor
    labels: Mapping[str, str]
    value: float
    timestamp_ms: int


@dataclass(frozen=True)
class ExporterConfig:
    """The immutable job table, shared by all requests."""

    jobs: Mapping[str, JobDefinition] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "jobs", MappingProxyType(dict(self.jobs)))

    def job(self, name: str) -> JobDefinition:
        """Return the named job or raise JobNotFound."""
        try:
            return self.jobs[name]
        except KeyError:
            raise JobNotFound(f"job {name!r} is not configured", job=name) from None
