"""In-memory query client adapter."""

import asyncio
from collections.abc import Iterable, Mapping, Sequence

from zeno_query_exporter.core.models import PartitionStats, Row
from zeno_query_exporter.core.ports import RowCallback


class InMemoryQueryResult:
    """In-memory implementation of QueryResultPort.

    Holds a fixed set of rows. Suitable for testing, demos and running the
    exporter without a store.
    """

    def __init__(
        self,
        field_names: Sequence[str],
        rows: Iterable[Row] = (),
        stats: PartitionStats | None = None,
        row_delay: float = 0.0,
    ) -> None:
        self.field_names = list(field_names)
        self.rows = list(rows)
        self.stats = stats or PartitionStats(num_partitions=1, num_successful_partitions=1)
        self.row_delay = row_delay

    async def iterate(self, on_row: RowCallback) -> PartitionStats:
        """Hand every row to ``on_row`` until it returns False."""
        for row in self.rows:
            if self.row_delay:
                await asyncio.sleep(self.row_delay)
            if not await on_row(row):
                break
        return self.stats


class InMemoryQueryClient:
    """In-memory implementation of QueryClientPort.

    Maps exact query strings to prepared results and records every query
    it receives.
    """

    def __init__(
        self,
        results: Mapping[str, InMemoryQueryResult] | None = None,
        default: InMemoryQueryResult | None = None,
    ) -> None:
        self._results: dict[str, InMemoryQueryResult] = dict(results or {})
        self._default = default
        self.queries: list[tuple[str, bool]] = []

    def add(self, query: str, result: InMemoryQueryResult) -> None:
        """Register the result returned for ``query``."""
        self._results[query] = result

    async def query(self, query: str, fresh: bool = True) -> InMemoryQueryResult:
        """Return the prepared result for ``query``.

        Raises:
            LookupError: No result is registered and there is no default.
        """
        self.queries.append((query, fresh))
        result = self._results.get(query, self._default)
        if result is None:
            raise LookupError(f"no result registered for query {query!r}")
        return result


def create_client(**options: str) -> InMemoryQueryClient:
    """Client factory for running the exporter without a store.

    Every query answers with no rows from a single healthy partition, so
    scrapes return only the partition gauges. Connection options are
    accepted and ignored.
    """
    return InMemoryQueryClient(default=InMemoryQueryResult(field_names=[]))
