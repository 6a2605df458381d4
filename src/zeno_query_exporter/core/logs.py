"""Logging helpers shared by the core and the adapters."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

logger = logging.getLogger("zeno_query_exporter")


@dataclass
class TimedLogResult:
    """Result object for the timed_log context manager."""

    elapsed_seconds: float = 0.0


@contextmanager
def timed_log(
    log: logging.Logger,
    message: str,
    level: int = logging.DEBUG,
    **attributes: str | int | float | bool,
) -> Iterator[TimedLogResult]:
    """Context manager that logs entry and exit with elapsed time.

    The exit record is only written when the block completes without an
    exception.

    Args:
        log: Logger to write to.
        message: The base log message.
        level: Log level (default DEBUG).
        **attributes: Additional structured fields passed as ``extra``.

    Yields:
        TimedLogResult whose ``elapsed_seconds`` is set on exit.
    """
    result = TimedLogResult()
    start = time.perf_counter()
    log.log(level, "%s [entry]", message, extra={"phase": "entry", **attributes})
    yield result
    result.elapsed_seconds = time.perf_counter() - start
    log.log(
        level,
        "%s [exit]",
        message,
        extra={
            "phase": "exit",
            "elapsed_seconds": round(result.elapsed_seconds, 6),
            **attributes,
        },
    )


def log_exception(message: str, **attributes: str | int | float | bool) -> None:
    """Log the exception currently being handled at ERROR level.

    Args:
        message: The log message.
        **attributes: Additional structured fields, e.g. ``job``.
    """
    logger.exception(message, extra=attributes)
