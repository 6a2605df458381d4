"""Shared test fixtures for all test modules."""

import pytest

try:
    import httpx
except ImportError:
    httpx = None

from zeno_query_exporter.adapters.query.in_memory import (
    InMemoryQueryClient,
    InMemoryQueryResult,
)
from zeno_query_exporter.core.models import (
    ExporterConfig,
    JobDefinition,
    MetricDescriptor,
    MetricType,
    PartitionStats,
    Row,
)

TRAFFIC_QUERY = "SELECT bytes, requests, errors FROM traffic GROUP BY country, proxy"

# 2023-12-11T13:06:40Z in nanoseconds
ROW_TS_NANOS = 1_702_300_000_000_000_000


@pytest.fixture
def bytes_metric() -> MetricDescriptor:
    """Counter fed by the 'bytes' column, with a static extra label."""
    return MetricDescriptor(
        name="traffic_bytes_total",
        help="Bytes transferred",
        type=MetricType.COUNTER,
        extra_labels={"source": "zeno"},
    )


@pytest.fixture
def requests_metric() -> MetricDescriptor:
    """Gauge fed by the 'requests' column."""
    return MetricDescriptor(name="traffic_requests", help="Requests served")


@pytest.fixture
def traffic_job(
    bytes_metric: MetricDescriptor, requests_metric: MetricDescriptor
) -> JobDefinition:
    """Job dropping 'proxy', renaming 'country' and mapping two columns."""
    return JobDefinition(
        query=TRAFFIC_QUERY,
        ignore_dims=["proxy"],
        rename_dims={"country": "client_country"},
        metrics={"bytes": bytes_metric, "requests": requests_metric},
    )


@pytest.fixture
def traffic_rows() -> list[Row]:
    return [
        Row(
            key={"country": "de", "proxy": "p1", "version": 3},
            values=[1024, 7, 0],
            ts=ROW_TS_NANOS,
        ),
        Row(
            key={"country": "us", "proxy": "p2", "version": 4},
            values=[2048.5, 9, 1],
            ts=ROW_TS_NANOS,
        ),
    ]


@pytest.fixture
def traffic_result(traffic_rows: list[Row]) -> InMemoryQueryResult:
    return InMemoryQueryResult(
        field_names=["bytes", "requests", "errors"],
        rows=traffic_rows,
        stats=PartitionStats(num_partitions=5, num_successful_partitions=3),
    )


@pytest.fixture
def exporter_config(traffic_job: JobDefinition) -> ExporterConfig:
    """Job table with a parameterized and an unparameterized job."""
    templated = JobDefinition(
        query="SELECT bytes FROM traffic WHERE country = '{{ country }}'",
        metrics=traffic_job.metrics,
    )
    return ExporterConfig(jobs={"traffic": traffic_job, "by_country": templated})


@pytest.fixture
def query_client(traffic_result: InMemoryQueryResult) -> InMemoryQueryClient:
    """In-memory client answering the traffic query."""
    return InMemoryQueryClient(results={TRAFFIC_QUERY: traffic_result})


@pytest.fixture
def frozen_time(monkeypatch: pytest.MonkeyPatch) -> float:
    """Freeze time.time() so completeness gauges get a known timestamp."""
    import time

    monkeypatch.setattr(time, "time", lambda: 1702300000.0)
    return 1702300000.0


class CapturingSink:
    """Text sink that records every chunk written to it."""

    def __init__(self) -> None:
        self.chunks: list[str] = []

    async def write(self, chunk: str) -> None:
        self.chunks.append(chunk)

    def getvalue(self) -> str:
        return "".join(self.chunks)


@pytest.fixture
def sink() -> CapturingSink:
    return CapturingSink()


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture.

    Returns a tuple of (send_func, responses_list) for recording ASGI messages.
    """

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""
    from zeno_query_exporter.adapters.frameworks.asgi import Scope

    def _scope(path: str = "/metrics", query_string: bytes = b"") -> Scope:
        return {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": query_string,
            "headers": [],
        }

    return _scope


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(config, client)
            async with asgi_test_client(app) as client:
                response = await client.get("/metrics?job=traffic")
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
