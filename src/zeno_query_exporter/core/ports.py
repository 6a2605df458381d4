"""Port interfaces for the query client and output sinks.

These protocols define the contracts that adapters must implement.
The core domain depends only on these interfaces, not concrete implementations.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol, runtime_checkable

from zeno_query_exporter.core.models import PartitionStats, Row

RowCallback = Callable[[Row], Awaitable[bool]]


@runtime_checkable
class QueryResultPort(Protocol):
    """An executed query whose rows can be iterated once.

    Adapters implementing this protocol hand rows to a callback one at a
    time. Examples: InMemoryQueryResult, or a wrapper around a ZenoDB
    RPC client.
    """

    field_names: Sequence[str]

    async def iterate(self, on_row: RowCallback) -> PartitionStats:
        """Drive ``on_row`` over every row of the result.

        Args:
            on_row: Awaited once per row. Returning False stops the
                iteration early; raising aborts it and propagates.

        Returns:
            Partition statistics for the whole query.
        """
        ...


@runtime_checkable
class QueryClientPort(Protocol):
    """Port for executing queries against the time-series store.

    Implementations are shared between concurrent requests and must be
    safe for concurrent use.
    """

    async def query(self, query: str, fresh: bool = True) -> QueryResultPort:
        """Submit a query.

        Args:
            query: The rendered query text.
            fresh: Bypass cached or stale partial results.
        """
        ...


@runtime_checkable
class TextSinkPort(Protocol):
    """Destination for exposition text, e.g. an HTTP response body."""

    async def write(self, chunk: str) -> None:
        """Write a chunk of text."""
        ...
