"""Exception hierarchy for the exporter.

Every error raised while serving a scrape derives from ExporterError. The
``message`` attribute is the short, public text that may be returned to HTTP
clients; the full ``str()`` of the exception is for server-side logs only.
"""


class ExporterError(Exception):
    """Base class for all exporter errors."""

    message = "internal server error"

    def __init__(
        self, detail: str = "", *, job: str | None = None, phase: str | None = None
    ) -> None:
        super().__init__(detail or self.message)
        self.detail = detail or self.message
        self.job = job
        self.phase = phase


class ConfigError(ExporterError):
    """Job configuration could not be loaded or failed validation."""

    message = "invalid configuration"


class MissingParameter(ExporterError):
    """The scrape request did not name a job."""

    message = "job not specified"


class JobNotFound(ExporterError):
    """The scrape request named a job that is not configured."""

    message = "job not found"


class TemplateError(ExporterError):
    """The job query template is malformed or could not be rendered."""


class QueryError(ExporterError):
    """The query client failed to execute the query or iterate its rows."""


class QueryTimeout(QueryError):
    """The request deadline elapsed before the query finished."""

    message = "query timed out"


class RowTranslationError(ExporterError):
    """A result row could not be translated into samples."""
