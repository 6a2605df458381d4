"""ASGI adapter serving the scrape endpoint.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne) without requiring FastAPI
as a dependency.
"""

import logging
from collections.abc import Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

from zeno_query_exporter.adapters.frameworks.query_params import (
    _parse_job_param,
    _parse_timeout_param,
    _template_params,
)
from zeno_query_exporter.core.errors import (
    ExporterError,
    JobNotFound,
    MissingParameter,
    QueryTimeout,
)
from zeno_query_exporter.core.logs import log_exception
from zeno_query_exporter.core.models import ExporterConfig
from zeno_query_exporter.core.ports import QueryClientPort
from zeno_query_exporter.core.runner import DEFAULT_TIMEOUT_SECONDS, JobRunner

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"
ERROR_CONTENT_TYPE = "text/plain; charset=utf-8"


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Args:
        scope: ASGI scope dictionary containing request metadata.

    Returns:
        Dictionary mapping parameter names to lists of values, blank
        values included. Returns empty dict if query_string is missing
        or empty.
    """
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string, keep_blank_values=True)


def _status_for_error(error: ExporterError) -> int:
    """Map an exporter error to the HTTP status returned to the scraper."""
    if isinstance(error, MissingParameter):
        return 400
    if isinstance(error, JobNotFound):
        return 404
    if isinstance(error, QueryTimeout):
        return 504
    return 500


def _log_error(error: ExporterError, status: int) -> None:
    """Log a failed scrape: client errors at WARNING, server errors with traceback."""
    attributes = {
        "job": error.job or "",
        "phase": error.phase or "",
        "status_code": status,
    }
    if status < 500:
        logger.warning("Scrape rejected: %s", error.detail, extra=attributes)
    else:
        log_exception(f"Scrape failed: {error.detail}", **attributes)


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body as string (will be encoded to bytes).
    """
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


class BufferedSink:
    """Collects exposition text so the status can be chosen after the run."""

    def __init__(self) -> None:
        self._chunks: list[str] = []

    async def write(self, chunk: str) -> None:
        self._chunks.append(chunk)

    def getvalue(self) -> str:
        return "".join(self._chunks)


class StreamingSink:
    """Streams exposition text to the client as it is produced.

    The 200 status is committed with the first chunk. After that a failure
    can only end the body early.
    """

    def __init__(self, send: Send) -> None:
        self._send = send
        self.started = False

    async def _start(self) -> None:
        self.started = True
        headers = [(b"content-type", PROMETHEUS_CONTENT_TYPE.encode())]
        await self._send(
            {"type": "http.response.start", "status": 200, "headers": headers}
        )

    async def write(self, chunk: str) -> None:
        if not self.started:
            await self._start()
        await self._send(
            {"type": "http.response.body", "body": chunk.encode(), "more_body": True}
        )

    async def close(self) -> None:
        """Finish the response body, starting it first if nothing was written."""
        if not self.started:
            await self._start()
        await self._send({"type": "http.response.body", "body": b""})


async def handle_scrape(
    runner: JobRunner,
    scope: Scope,
    send: Send,
    streaming: bool = False,
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """Serve one scrape request.

    Args:
        runner: Job runner holding the job table and query client.
        scope: ASGI scope of the request.
        send: ASGI send callable for writing response.
        streaming: Stream output as produced instead of buffering it.
        default_timeout: Deadline used when the request gives none.
    """
    params = _parse_query_params(scope)
    job_name = _parse_job_param(params)
    timeout = _parse_timeout_param(params, default_timeout)
    template_params = _template_params(params)

    sink: BufferedSink | StreamingSink
    sink = StreamingSink(send) if streaming else BufferedSink()
    try:
        await runner.run(job_name, template_params, sink, timeout=timeout)
    except ExporterError as e:
        status = _status_for_error(e)
        _log_error(e, status)
        if isinstance(sink, StreamingSink) and sink.started:
            await sink.close()
            return
        await _send_response(send, status, ERROR_CONTENT_TYPE, e.message)
        return
    except Exception:
        log_exception("Unexpected error serving scrape", job=job_name or "")
        if isinstance(sink, StreamingSink) and sink.started:
            await sink.close()
            return
        await _send_response(send, 500, ERROR_CONTENT_TYPE, ExporterError.message)
        return

    if isinstance(sink, StreamingSink):
        await sink.close()
    else:
        await _send_response(send, 200, PROMETHEUS_CONTENT_TYPE, sink.getvalue())


def create_asgi_app(
    config: ExporterConfig,
    client: QueryClientPort,
    path: str = "/metrics",
    streaming: bool = False,
    dedupe_preamble: bool = False,
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> ASGIApp:
    """Create an ASGI app exposing configured jobs at ``path``.

    Args:
        config: The job table.
        client: Query client implementing QueryClientPort.
        path: HTTP path of the scrape endpoint (default: "/metrics").
        streaming: Stream output instead of buffering the whole response.
        dedupe_preamble: Write HELP/TYPE once per metric name per response.
        default_timeout: Deadline in seconds when the request gives none.

    Returns:
        ASGI application callable.
    """
    runner = JobRunner(config, client, dedupe_preamble=dedupe_preamble)

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        if scope["path"] == path:
            await handle_scrape(
                runner,
                scope,
                send,
                streaming=streaming,
                default_timeout=default_timeout,
            )
        else:
            await _send_response(send, 404, "text/plain", "Not Found")

    return app
