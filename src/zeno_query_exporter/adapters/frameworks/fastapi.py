"""FastAPI adapter for the scrape endpoint."""

from fastapi import APIRouter, Request, Response
from fastapi.responses import PlainTextResponse

from zeno_query_exporter.adapters.frameworks.asgi import (
    ERROR_CONTENT_TYPE,
    PROMETHEUS_CONTENT_TYPE,
    BufferedSink,
    _log_error,
    _status_for_error,
)
from zeno_query_exporter.adapters.frameworks.query_params import (
    _parse_job_param,
    _parse_timeout_param,
    _template_params,
)
from zeno_query_exporter.core.errors import ExporterError
from zeno_query_exporter.core.logs import log_exception
from zeno_query_exporter.core.models import ExporterConfig
from zeno_query_exporter.core.ports import QueryClientPort
from zeno_query_exporter.core.runner import DEFAULT_TIMEOUT_SECONDS, JobRunner


def create_exporter_router(
    config: ExporterConfig,
    client: QueryClientPort,
    path: str = "/metrics",
    dedupe_preamble: bool = False,
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> APIRouter:
    """Create a FastAPI router exposing configured jobs at ``path``.

    Responses are always buffered, so error statuses are reported even
    when some samples were produced before the failure.

    Args:
        config: The job table.
        client: Query client implementing QueryClientPort.
        path: HTTP path of the scrape endpoint (default: "/metrics").
        dedupe_preamble: Write HELP/TYPE once per metric name per response.
        default_timeout: Deadline in seconds when the request gives none.

    Returns:
        APIRouter with the scrape endpoint configured.
    """
    router = APIRouter()
    runner = JobRunner(config, client, dedupe_preamble=dedupe_preamble)

    @router.get(path)
    async def scrape(request: Request) -> Response:
        """Run the requested job and return its samples in Prometheus text format."""
        params: dict[str, list[str]] = {}
        for name, value in request.query_params.multi_items():
            params.setdefault(name, []).append(value)

        sink = BufferedSink()
        try:
            await runner.run(
                _parse_job_param(params),
                _template_params(params),
                sink,
                timeout=_parse_timeout_param(params, default_timeout),
            )
        except ExporterError as e:
            status = _status_for_error(e)
            _log_error(e, status)
            return PlainTextResponse(
                e.message, status_code=status, media_type=ERROR_CONTENT_TYPE
            )
        except Exception:
            log_exception("Unexpected error serving scrape")
            return PlainTextResponse(
                ExporterError.message, status_code=500, media_type=ERROR_CONTENT_TYPE
            )
        return Response(content=sink.getvalue(), media_type=PROMETHEUS_CONTENT_TYPE)

    return router
