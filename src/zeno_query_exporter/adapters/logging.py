"""Python logging setup for the exporter process.

Modules log through standard library loggers and attach structured context
(job name, phase, row counts) via ``extra=``. The formatter here renders
that context as ``key=value`` pairs after the message.
"""

import logging

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _format_attribute(value: object) -> str:
    text = str(value)
    if not text or any(c.isspace() for c in text) or '"' in text:
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return text


class KeyValueFormatter(logging.Formatter):
    """Formatter that appends extra record attributes as key=value pairs.

    Example:
        ```python
        handler = logging.StreamHandler()
        handler.setFormatter(KeyValueFormatter())
        logging.getLogger().addHandler(handler)
        logging.getLogger(__name__).info("done", extra={"job": "daily"})
        # ... INFO module: done job=daily
        ```
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the record, then append its structured fields."""
        base = super().format(record)
        attributes = [
            f"{key}={_format_attribute(value)}"
            for key, value in record.__dict__.items()
            if key not in _STANDARD_LOGRECORD_ATTRS
            and not key.startswith("_")
            and isinstance(value, (str, int, float, bool))
        ]
        if not attributes:
            return base
        first, sep, rest = base.partition("\n")
        return f"{first} {' '.join(attributes)}{sep}{rest}"


def configure_logging(level: str | int = logging.INFO) -> None:
    """Install a KeyValueFormatter stream handler on the root logger.

    Args:
        level: Log level name or number (default INFO).
    """
    handler = logging.StreamHandler()
    handler.setFormatter(KeyValueFormatter(DEFAULT_FORMAT))
    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
