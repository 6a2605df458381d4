"""Example FastAPI application serving the scrape endpoint.

Run with:
    uvicorn examples.fastapi_example:app --reload

Endpoints:
    /metrics?job=traffic                      - samples of the traffic job
    /metrics?job=errors_by_country&country=de - templated job
    /metrics?job=traffic&timeout=5s           - custom query deadline

The demo client answers every query from memory, so no ZenoDB instance
is needed.
"""

import time
from pathlib import Path

from fastapi import FastAPI

from zeno_query_exporter import (
    InMemoryQueryClient,
    InMemoryQueryResult,
    PartitionStats,
    Row,
    load_config,
)
from zeno_query_exporter.adapters.frameworks.fastapi import create_exporter_router
from zeno_query_exporter.adapters.logging import configure_logging

CONFIG_PATH = Path(__file__).with_name("config.yml")


def create_demo_client(**options: object) -> InMemoryQueryClient:
    """Client factory returning canned rows for every query.

    Also usable from the CLI through ``--client-factory``.
    """
    now_ns = time.time_ns()
    result = InMemoryQueryResult(
        field_names=["bytes", "requests", "errors"],
        rows=[
            Row(key={"country": "de", "proxy": "p1"}, values=[1024, 7, 0], ts=now_ns),
            Row(key={"country": "us", "proxy": "p2"}, values=[2048, 9, 1], ts=now_ns),
        ],
        stats=PartitionStats(num_partitions=4, num_successful_partitions=4),
    )
    return InMemoryQueryClient(default=result)


configure_logging("INFO")

app = FastAPI(title="ZenoDB Query Exporter Example")
app.include_router(create_exporter_router(load_config(CONFIG_PATH), create_demo_client()))


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Scrape /metrics?job=traffic"}
