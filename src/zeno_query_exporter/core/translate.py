"""Translation of query result rows into metric samples."""

import math
from collections.abc import Mapping, Sequence
from typing import Any

from zeno_query_exporter.core.errors import RowTranslationError
from zeno_query_exporter.core.models import (
    JobDefinition,
    MetricDescriptor,
    Row,
    Sample,
)

NANOS_PER_MILLI = 1_000_000


def format_dimension(value: Any) -> str:
    """Render a dimension value the way it should appear in a label.

    Integers print without a decimal point, integral floats below 1e21
    print as integers, other floats use their shortest round-trip form.

    Args:
        value: A scalar dimension value from a result row.

    Returns:
        The label value string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "+Inf" if value > 0 else "-Inf"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def row_labels(key: Mapping[str, Any], rename_dims: Mapping[str, str]) -> dict[str, str]:
    """Map a row's dimensions to labels.

    A dimension renamed to "" is dropped, one renamed to a label name is
    emitted under that name, and any other dimension passes through.
    """
    labels: dict[str, str] = {}
    for dim, value in key.items():
        label = rename_dims.get(dim, dim)
        if not label:
            continue
        try:
            labels[label] = format_dimension(value)
        except (TypeError, ValueError, UnicodeDecodeError) as e:
            raise RowTranslationError(f"dimension {dim!r}: {e}") from e
    return labels


def column_metrics(
    field_names: Sequence[str], metrics: Mapping[str, MetricDescriptor]
) -> list[tuple[int, MetricDescriptor]]:
    """Align result columns with the metrics they populate.

    Returns:
        (column index, descriptor) pairs for every column that is mapped
        to a metric, in column order.
    """
    return [
        (idx, metrics[name]) for idx, name in enumerate(field_names) if name in metrics
    ]


class RowTranslator:
    """Translates rows of one query execution into samples.

    The column alignment is computed once from the result's field names
    and reused for every row.
    """

    def __init__(self, job: JobDefinition, field_names: Sequence[str]) -> None:
        self.job = job
        self.field_names = list(field_names)
        self._columns = column_metrics(self.field_names, job.metrics)

    @property
    def matched_columns(self) -> int:
        return len(self._columns)

    def translate(self, row: Row) -> list[Sample]:
        """Produce one sample per mapped column of ``row``.

        All samples of a row share the same label set and timestamp.

        Raises:
            RowTranslationError: A dimension or value could not be converted.
        """
        labels = row_labels(row.key, self.job.rename_dims)
        timestamp_ms = int(row.ts) // NANOS_PER_MILLI
        samples: list[Sample] = []
        for idx, descriptor in self._columns:
            if idx >= len(row.values):
                continue
            try:
                value = float(row.values[idx])
            except (TypeError, ValueError) as e:
                raise RowTranslationError(
                    f"column {self.field_names[idx]!r}: {e}"
                ) from e
            samples.append(
                Sample(
                    descriptor=descriptor,
                    labels=labels,
                    value=value,
                    timestamp_ms=timestamp_ms,
                )
            )
        return samples
