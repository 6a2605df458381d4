"""Query templating with Jinja2.

Job queries may contain ``{{ name }}`` placeholders that are filled from the
scrape request's query parameters.
"""

import logging
from collections.abc import Mapping
from functools import lru_cache

import jinja2

from zeno_query_exporter.core.errors import TemplateError

logger = logging.getLogger(__name__)

_environment = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
)


@lru_cache(maxsize=256)
def _compile(source: str) -> jinja2.Template:
    return _environment.from_string(source)


def render_query(template: str, params: Mapping[str, str]) -> str:
    """Render a query template against request parameters.

    Args:
        template: The job's query template.
        params: Parameter name to value. When empty the template is
            returned verbatim without a rendering pass.

    Returns:
        The query text to execute.

    Raises:
        TemplateError: The template is malformed or references a name
            that was not supplied.
    """
    if not params:
        return template
    try:
        query = _compile(template).render(dict(params))
    except jinja2.TemplateError as e:
        raise TemplateError(f"failed to render query: {e}") from e
    logger.info("Executing query:\n%s", query)
    return query
