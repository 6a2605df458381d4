"""Tests for the job runner."""

import pytest

from zeno_query_exporter.adapters.query.in_memory import (
    InMemoryQueryClient,
    InMemoryQueryResult,
)
from zeno_query_exporter.core.errors import (
    JobNotFound,
    MissingParameter,
    QueryError,
    QueryTimeout,
    RowTranslationError,
    TemplateError,
)
from zeno_query_exporter.core.models import ExporterConfig, PartitionStats, Row
from zeno_query_exporter.core.runner import JobRunner


class TestJobRunnerValidation:
    """Tests for job resolution."""

    @pytest.mark.core
    async def test_missing_job_name(self, exporter_config, query_client, sink) -> None:
        runner = JobRunner(exporter_config, query_client)
        with pytest.raises(MissingParameter) as excinfo:
            await runner.run(None, {}, sink)
        assert excinfo.value.phase == "validating"
        assert query_client.queries == []

    @pytest.mark.core
    async def test_empty_job_name(self, exporter_config, query_client, sink) -> None:
        runner = JobRunner(exporter_config, query_client)
        with pytest.raises(MissingParameter):
            await runner.run("", {}, sink)

    @pytest.mark.core
    async def test_unknown_job(self, exporter_config, query_client, sink) -> None:
        runner = JobRunner(exporter_config, query_client)
        with pytest.raises(JobNotFound) as excinfo:
            await runner.run("unknown", {}, sink)
        assert excinfo.value.job == "unknown"
        assert sink.chunks == []


class TestJobRunnerRun:
    """Tests for a full run."""

    @pytest.mark.core
    async def test_writes_row_samples_then_partition_gauges(
        self, exporter_config, query_client, sink, frozen_time
    ) -> None:
        runner = JobRunner(exporter_config, query_client)
        summary = await runner.run("traffic", {}, sink)

        text = sink.getvalue()
        ts = 1_702_300_000_000
        assert text == (
            "# HELP traffic_bytes_total Bytes transferred\n"
            "# TYPE traffic_bytes_total counter\n"
            'traffic_bytes_total{client_country="de",version="3",source="zeno"}'
            f" 1024.000000 {ts}\n"
            "# HELP traffic_requests Requests served\n"
            "# TYPE traffic_requests gauge\n"
            f'traffic_requests{{client_country="de",version="3"}} 7.000000 {ts}\n'
            "# HELP traffic_bytes_total Bytes transferred\n"
            "# TYPE traffic_bytes_total counter\n"
            'traffic_bytes_total{client_country="us",version="4",source="zeno"}'
            f" 2048.500000 {ts}\n"
            "# HELP traffic_requests Requests served\n"
            "# TYPE traffic_requests gauge\n"
            f'traffic_requests{{client_country="us",version="4"}} 9.000000 {ts}\n'
            "# HELP zeno_query_exporter_zeno_partitions_total \n"
            "# TYPE zeno_query_exporter_zeno_partitions_total gauge\n"
            f'zeno_query_exporter_zeno_partitions_total{{job="traffic"}} 5.000000 {ts}\n'
            "# HELP zeno_query_exporter_zeno_partitions_missing \n"
            "# TYPE zeno_query_exporter_zeno_partitions_missing gauge\n"
            f'zeno_query_exporter_zeno_partitions_missing{{job="traffic"}} 2.000000 {ts}\n'
        )
        assert summary.rows == 2
        assert summary.samples == 6
        assert summary.stats == PartitionStats(5, 3)

    @pytest.mark.core
    async def test_queries_are_fresh(
        self, exporter_config, query_client, traffic_job, sink
    ) -> None:
        await JobRunner(exporter_config, query_client).run("traffic", {}, sink)
        assert query_client.queries == [(traffic_job.query, True)]

    @pytest.mark.core
    async def test_renders_template_with_params(
        self, exporter_config, traffic_result, sink
    ) -> None:
        client = InMemoryQueryClient(default=traffic_result)
        runner = JobRunner(exporter_config, client)
        summary = await runner.run("by_country", {"country": "de"}, sink)

        expected = "SELECT bytes FROM traffic WHERE country = 'de'"
        assert client.queries == [(expected, True)]
        assert summary.query == expected

    @pytest.mark.core
    async def test_template_error_aborts_before_query(
        self, exporter_config, query_client, sink
    ) -> None:
        runner = JobRunner(exporter_config, query_client)
        with pytest.raises(TemplateError) as excinfo:
            await runner.run("by_country", {"proxy": "p1"}, sink)
        assert excinfo.value.phase == "templating"
        assert excinfo.value.job == "by_country"
        assert query_client.queries == []

    @pytest.mark.core
    async def test_zero_rows_still_writes_partition_gauges(
        self, exporter_config, sink
    ) -> None:
        client = InMemoryQueryClient(
            default=InMemoryQueryResult(
                field_names=["bytes"],
                stats=PartitionStats(num_partitions=2, num_successful_partitions=2),
            )
        )
        summary = await JobRunner(exporter_config, client).run("traffic", {}, sink)

        assert summary.rows == 0
        assert summary.samples == 2
        assert len(sink.chunks) == 2
        assert 'zeno_query_exporter_zeno_partitions_missing{job="traffic"} 0.000000' in (
            sink.getvalue()
        )

    @pytest.mark.core
    async def test_dedupe_preamble(self, exporter_config, query_client, sink) -> None:
        runner = JobRunner(exporter_config, query_client, dedupe_preamble=True)
        await runner.run("traffic", {}, sink)
        assert sink.getvalue().count("# HELP traffic_bytes_total") == 1

    @pytest.mark.core
    async def test_every_row_is_consumed(self, exporter_config, sink) -> None:
        rows = [Row(key={}, values=[i], ts=0) for i in range(3)]
        client = InMemoryQueryClient(
            default=InMemoryQueryResult(field_names=["bytes"], rows=rows)
        )
        summary = await JobRunner(exporter_config, client).run("traffic", {}, sink)
        assert summary.rows == 3


class TestJobRunnerFailures:
    """Tests for query and translation failures."""

    @pytest.mark.core
    async def test_client_error_becomes_query_error(
        self, exporter_config, sink
    ) -> None:
        client = InMemoryQueryClient()
        with pytest.raises(QueryError) as excinfo:
            await JobRunner(exporter_config, client).run("traffic", {}, sink)
        assert not isinstance(excinfo.value, QueryTimeout)
        assert excinfo.value.phase == "querying"
        assert isinstance(excinfo.value.__cause__, LookupError)

    @pytest.mark.core
    async def test_iteration_error_becomes_query_error(
        self, exporter_config, sink
    ) -> None:
        class BrokenResult(InMemoryQueryResult):
            async def iterate(self, on_row):
                raise ConnectionResetError("partition went away")

        client = InMemoryQueryClient(default=BrokenResult(field_names=["bytes"]))
        with pytest.raises(QueryError, match="partition went away"):
            await JobRunner(exporter_config, client).run("traffic", {}, sink)

    @pytest.mark.core
    async def test_bad_row_aborts_run(self, exporter_config, sink) -> None:
        rows = [
            Row(key={"country": "de"}, values=[1], ts=0),
            Row(key={"country": "us"}, values=["not a number"], ts=0),
            Row(key={"country": "fr"}, values=[3], ts=0),
        ]
        client = InMemoryQueryClient(
            default=InMemoryQueryResult(field_names=["bytes"], rows=rows)
        )
        with pytest.raises(RowTranslationError) as excinfo:
            await JobRunner(exporter_config, client).run("traffic", {}, sink)

        assert excinfo.value.phase == "translating"
        assert excinfo.value.job == "traffic"
        # the first row was already written, nothing after the failure
        assert len(sink.chunks) == 1
        assert "partitions" not in sink.getvalue()

    @pytest.mark.core
    async def test_deadline_raises_query_timeout(
        self, exporter_config, traffic_rows, sink
    ) -> None:
        client = InMemoryQueryClient(
            default=InMemoryQueryResult(
                field_names=["bytes"], rows=traffic_rows * 50, row_delay=0.05
            )
        )
        with pytest.raises(QueryTimeout) as excinfo:
            await JobRunner(exporter_config, client).run(
                "traffic", {}, sink, timeout=0.12
            )

        assert excinfo.value.message == "query timed out"
        written = len(sink.chunks)
        assert written < 100
        assert "partitions" not in sink.getvalue()

    @pytest.mark.core
    async def test_client_timeout_error_is_not_deadline(
        self, exporter_config, sink
    ) -> None:
        class TimingOutClient:
            async def query(self, query: str, fresh: bool = True):
                raise TimeoutError("connect timed out")

        with pytest.raises(QueryError) as excinfo:
            await JobRunner(exporter_config, TimingOutClient()).run(
                "traffic", {}, sink
            )
        assert not isinstance(excinfo.value, QueryTimeout)


@pytest.mark.core
async def test_runner_uses_injected_config(query_client, sink) -> None:
    runner = JobRunner(ExporterConfig(), query_client)
    with pytest.raises(JobNotFound):
        await runner.run("traffic", {}, sink)
