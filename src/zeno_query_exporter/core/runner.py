"""Job runner: executes one job for one scrape request.

A run moves through the phases validating, templating, querying,
translating and accounting. Any failure ends the run; the raised
ExporterError records the job name and the phase it failed in.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from zeno_query_exporter.core.completeness import partition_samples
from zeno_query_exporter.core.encoding.prometheus import ExpositionWriter
from zeno_query_exporter.core.errors import (
    ExporterError,
    MissingParameter,
    QueryError,
    QueryTimeout,
)
from zeno_query_exporter.core.logs import timed_log
from zeno_query_exporter.core.models import (
    ExporterConfig,
    JobDefinition,
    PartitionStats,
    Row,
)
from zeno_query_exporter.core.ports import QueryClientPort, TextSinkPort
from zeno_query_exporter.core.templating import render_query
from zeno_query_exporter.core.translate import RowTranslator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 180.0


class Phase(str, Enum):
    """Phases of a job run."""

    VALIDATING = "validating"
    TEMPLATING = "templating"
    QUERYING = "querying"
    TRANSLATING = "translating"
    ACCOUNTING = "accounting"


@dataclass
class RunSummary:
    """What a completed run produced."""

    job: str
    query: str
    rows: int = 0
    samples: int = 0
    stats: PartitionStats | None = None


class JobRunner:
    """Runs configured jobs against an injected query client.

    Args:
        config: The job table.
        client: Query client shared by all runs.
        dedupe_preamble: Write HELP/TYPE once per metric name per run
            instead of before every sample.
    """

    def __init__(
        self,
        config: ExporterConfig,
        client: QueryClientPort,
        dedupe_preamble: bool = False,
    ) -> None:
        self.config = config
        self.client = client
        self.dedupe_preamble = dedupe_preamble

    def resolve(self, job_name: str | None) -> JobDefinition:
        """Look up a job by name.

        Raises:
            MissingParameter: No job name was given.
            JobNotFound: The job is not configured.
        """
        if not job_name:
            raise MissingParameter(phase=Phase.VALIDATING.value)
        try:
            return self.config.job(job_name)
        except ExporterError as e:
            e.phase = Phase.VALIDATING.value
            raise

    async def run(
        self,
        job_name: str | None,
        params: Mapping[str, str],
        sink: TextSinkPort,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> RunSummary:
        """Run a job and write its samples to ``sink``.

        Args:
            job_name: Name of the job to run.
            params: Template parameters for the job's query.
            sink: Destination for exposition text.
            timeout: Deadline in seconds for querying and translating.

        Returns:
            RunSummary for the completed run.

        Raises:
            ExporterError: Any failure; ``phase`` tells where it happened.
        """
        job = self.resolve(job_name)
        phase = Phase.TEMPLATING
        try:
            query = render_query(job.query, params)
            summary = RunSummary(job=job_name, query=query)
            writer = ExpositionWriter(sink, dedupe_preamble=self.dedupe_preamble)

            phase = Phase.QUERYING
            with timed_log(logger, "Running query", job=job_name) as timing:
                try:
                    async with asyncio.timeout(timeout) as deadline:
                        stats = await self._execute(job, query, writer, summary)
                except TimeoutError as e:
                    if deadline.expired():
                        raise QueryTimeout(
                            f"query did not finish within {timeout:g}s"
                        ) from e
                    raise QueryError(f"query failed: {e}") from e

            phase = Phase.ACCOUNTING
            await writer.write_all(partition_samples(job_name, stats))
            summary.stats = stats
            summary.samples = writer.samples_written
        except ExporterError as e:
            e.job = job_name
            e.phase = e.phase or phase.value
            raise

        logger.info(
            "Job %s completed",
            job_name,
            extra={
                "job": job_name,
                "rows": summary.rows,
                "samples": summary.samples,
                "partitions": stats.num_partitions,
                "missing_partitions": stats.num_missing_partitions,
                "elapsed_seconds": round(timing.elapsed_seconds, 6),
            },
        )
        return summary

    async def _execute(
        self,
        job: JobDefinition,
        query: str,
        writer: ExpositionWriter,
        summary: RunSummary,
    ) -> PartitionStats:
        try:
            result = await self.client.query(query, fresh=True)
        except ExporterError:
            raise
        except Exception as e:
            raise QueryError(f"query failed: {e}") from e

        translator = RowTranslator(job, result.field_names)

        async def on_row(row: Row) -> bool:
            try:
                samples = translator.translate(row)
            except ExporterError as e:
                e.phase = Phase.TRANSLATING.value
                raise
            await writer.write_all(samples)
            summary.rows += 1
            return True

        try:
            return await result.iterate(on_row)
        except ExporterError:
            raise
        except Exception as e:
            raise QueryError(f"iterating query results failed: {e}") from e
