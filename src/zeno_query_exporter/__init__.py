"""Export ZenoDB query results in the Prometheus text exposition format."""

from zeno_query_exporter.adapters.config import load_config, load_jobs_dir
from zeno_query_exporter.adapters.frameworks.asgi import create_asgi_app
from zeno_query_exporter.adapters.query.in_memory import (
    InMemoryQueryClient,
    InMemoryQueryResult,
)
from zeno_query_exporter.core.errors import (
    ConfigError,
    ExporterError,
    JobNotFound,
    MissingParameter,
    QueryError,
    QueryTimeout,
    RowTranslationError,
    TemplateError,
)
from zeno_query_exporter.core.models import (
    ExporterConfig,
    JobDefinition,
    MetricDescriptor,
    MetricType,
    PartitionStats,
    Row,
    Sample,
)
from zeno_query_exporter.core.runner import JobRunner, RunSummary

__all__ = [
    "ConfigError",
    "ExporterConfig",
    "ExporterError",
    "InMemoryQueryClient",
    "InMemoryQueryResult",
    "JobDefinition",
    "JobNotFound",
    "JobRunner",
    "MetricDescriptor",
    "MetricType",
    "MissingParameter",
    "PartitionStats",
    "QueryError",
    "QueryTimeout",
    "Row",
    "RowTranslationError",
    "RunSummary",
    "Sample",
    "TemplateError",
    "create_asgi_app",
    "load_config",
    "load_jobs_dir",
]
