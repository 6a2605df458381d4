"""Shared query parameter parsing utilities for framework adapters.

This module provides utilities for parsing and validating the scrape
request's query parameters, shared by the ASGI and FastAPI adapters.
"""

import math
import re

from zeno_query_exporter.core.runner import DEFAULT_TIMEOUT_SECONDS

# Parameters consumed by the exporter itself, never passed to templates
RESERVED_PARAMS = frozenset({"job", "timeout"})

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART_RE = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> float | None:
    """Parse a duration such as "30s", "1m30s" or "250ms" into seconds.

    Returns:
        Seconds as float, or None if the text is not a valid duration.
    """
    text = text.strip()
    if not text:
        return None
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART_RE.match(text, pos)
        if match is None:
            return None
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def _first(params: dict[str, list[str]], name: str) -> str | None:
    values = params.get(name)
    return values[0] if values else None


def _parse_job_param(params: dict[str, list[str]]) -> str | None:
    """Return the requested job name, or None if absent or empty."""
    return _first(params, "job") or None


def _parse_timeout_param(
    params: dict[str, list[str]], default: float = DEFAULT_TIMEOUT_SECONDS
) -> float:
    """Parse and validate the 'timeout' query parameter.

    Args:
        params: Parsed query string parameters (as returned by urllib.parse.parse_qs).
        default: Timeout used when the parameter is missing or invalid.

    Returns:
        Timeout in seconds. Missing, unparsable, non-positive and
        non-finite values fall back to ``default``.
    """
    raw = _first(params, "timeout")
    if raw is None:
        return default
    value = parse_duration(raw)
    if value is None or value <= 0 or not math.isfinite(value):
        return default
    return value


def _template_params(params: dict[str, list[str]]) -> dict[str, str]:
    """Collect template parameters, first value wins when repeated."""
    return {
        name: values[0]
        for name, values in params.items()
        if name not in RESERVED_PARAMS and values
    }
