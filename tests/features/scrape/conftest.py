"""BDD step definitions for scrape features."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from pytest_bdd import given, parsers, then, when

from zeno_query_exporter.adapters.frameworks.asgi import create_asgi_app
from zeno_query_exporter.adapters.query.in_memory import (
    InMemoryQueryClient,
    InMemoryQueryResult,
)


@dataclass
class ScrapeScenarioContext:
    """Shared state between steps in a scrape scenario."""

    client: Any = None
    status_code: int = 0
    body: str = ""
    queries: list[tuple[str, bool]] = field(default_factory=list)


@pytest.fixture
def ctx() -> ScrapeScenarioContext:
    """Fresh scenario context for each test."""
    return ScrapeScenarioContext()


async def _get(app: Any, url: str) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        return await c.get(url)


@given("the traffic job is configured")
def step_traffic_job(ctx: ScrapeScenarioContext, traffic_result, frozen_time) -> None:
    ctx.client = InMemoryQueryClient(default=traffic_result)


@given("the query takes longer than the deadline")
def step_slow_query(ctx: ScrapeScenarioContext, traffic_rows) -> None:
    ctx.client = InMemoryQueryClient(
        default=InMemoryQueryResult(
            field_names=["bytes"], rows=traffic_rows * 20, row_delay=0.05
        )
    )


@when(parsers.parse('Prometheus scrapes "{url}"'))
def step_scrape(ctx: ScrapeScenarioContext, exporter_config, url: str) -> None:
    app = create_asgi_app(exporter_config, ctx.client)
    response = asyncio.run(_get(app, url))
    ctx.status_code = response.status_code
    ctx.body = response.text
    ctx.queries = list(ctx.client.queries)


@then(parsers.parse("the response status is {status:d}"))
def step_status(ctx: ScrapeScenarioContext, status: int) -> None:
    assert ctx.status_code == status


@then(parsers.parse('the body is "{body}"'))
def step_body(ctx: ScrapeScenarioContext, body: str) -> None:
    assert ctx.body == body


@then(parsers.re(r'the body contains the sample "(?P<line>.+)"'))
def step_body_contains(ctx: ScrapeScenarioContext, line: str) -> None:
    assert line.replace('\\"', '"') in ctx.body.splitlines()


@then(parsers.parse("the body reports {total:d} total and {missing:d} missing partitions"))
def step_partitions(ctx: ScrapeScenarioContext, total: int, missing: int) -> None:
    lines = ctx.body.splitlines()
    assert any(
        l.startswith(f'zeno_query_exporter_zeno_partitions_total{{job="traffic"}} {total}.')
        for l in lines
    )
    assert any(
        l.startswith(
            f'zeno_query_exporter_zeno_partitions_missing{{job="traffic"}} {missing}.'
        )
        for l in lines
    )


@then(parsers.parse('no sample carries the label "{label}"'))
def step_no_label(ctx: ScrapeScenarioContext, label: str) -> None:
    samples = [l for l in ctx.body.splitlines() if not l.startswith("#")]
    assert samples
    assert all(f"{label}=" not in l for l in samples)


@then(parsers.parse('the query sent to ZenoDB is "{query}"'))
def step_query(ctx: ScrapeScenarioContext, query: str) -> None:
    assert ctx.queries == [(query, True)]
