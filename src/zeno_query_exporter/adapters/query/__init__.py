"""Query client adapters."""

from zeno_query_exporter.adapters.query.in_memory import (
    InMemoryQueryClient,
    InMemoryQueryResult,
)

__all__ = [
    "InMemoryQueryClient",
    "InMemoryQueryResult",
]
