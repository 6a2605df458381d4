"""Partition completeness gauges appended after every query."""

import time

from zeno_query_exporter.core.models import (
    MISSING_PARTITIONS,
    TOTAL_PARTITIONS,
    PartitionStats,
    Sample,
)


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


def partition_samples(
    job_name: str,
    stats: PartitionStats,
    timestamp_ms: int | None = None,
) -> tuple[Sample, Sample]:
    """Create the total and missing partition gauges for a query.

    Args:
        job_name: Name of the job, used as the only label.
        stats: Partition statistics reported by the query client.
        timestamp_ms: Sample timestamp (default: now).

    Returns:
        (total partitions sample, missing partitions sample)
    """
    ts = now_ms() if timestamp_ms is None else timestamp_ms
    labels = {"job": job_name}
    total = Sample(
        descriptor=TOTAL_PARTITIONS,
        labels=labels,
        value=float(stats.num_partitions),
        timestamp_ms=ts,
    )
    missing = Sample(
        descriptor=MISSING_PARTITIONS,
        labels=labels,
        value=float(stats.num_missing_partitions),
        timestamp_ms=ts,
    )
    return total, missing
