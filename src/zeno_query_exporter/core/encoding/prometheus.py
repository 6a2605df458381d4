"""Prometheus text exposition encoder for samples."""

import math
from collections.abc import Iterable, Mapping

from zeno_query_exporter.core.models import MetricDescriptor, Sample
from zeno_query_exporter.core.ports import TextSinkPort


def escape_label_value(value: str) -> str:
    """Escape backslash, double quote and newline in a label value."""
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def escape_help(text: str) -> str:
    """Escape backslash and newline in HELP text."""
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def format_value(value: float) -> str:
    """Format a sample value as fixed-point with six decimals."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:f}"


def encode_preamble(descriptor: MetricDescriptor) -> str:
    """Encode the HELP and TYPE lines for a metric."""
    return (
        f"# HELP {descriptor.name} {escape_help(descriptor.help)}\n"
        f"# TYPE {descriptor.name} {descriptor.type.value}\n"
    )


def _encode_labels(labels: Mapping[str, str], extra: Mapping[str, str]) -> str:
    pairs = [
        f'{name}="{escape_label_value(value)}"'
        for labelset in (labels, extra)
        for name, value in labelset.items()
    ]
    if not pairs:
        return ""
    return "{" + ",".join(pairs) + "}"


def encode_sample_line(sample: Sample) -> str:
    """Encode a single sample line without HELP/TYPE.

    Row labels come first, then the descriptor's extra labels. The
    braces are omitted when there are no labels at all.
    """
    descriptor = sample.descriptor
    labels = _encode_labels(sample.labels, descriptor.extra_labels)
    return (
        f"{descriptor.name}{labels} "
        f"{format_value(sample.value)} {sample.timestamp_ms}\n"
    )


def encode_sample(sample: Sample) -> str:
    """Encode a sample preceded by its HELP and TYPE lines.

    Example:
        # HELP x h
        # TYPE x gauge
        x{a="1"} 3.500000 1000
    """
    return encode_preamble(sample.descriptor) + encode_sample_line(sample)


def encode_samples(samples: Iterable[Sample]) -> str:
    """Encode samples to exposition text, one preamble per sample.

    Returns:
        Exposition text. Empty string if no samples.
    """
    return "".join(encode_sample(sample) for sample in samples)


class ExpositionWriter:
    """Writes samples to a text sink as they are produced.

    By default HELP and TYPE lines are repeated before every sample. With
    ``dedupe_preamble`` they are written only for the first sample of each
    metric name seen by this writer.
    """

    def __init__(self, sink: TextSinkPort, dedupe_preamble: bool = False) -> None:
        self._sink = sink
        self._dedupe_preamble = dedupe_preamble
        self._seen: set[str] = set()
        self.samples_written = 0

    async def write(self, sample: Sample) -> None:
        """Encode and write one sample."""
        name = sample.descriptor.name
        if self._dedupe_preamble and name in self._seen:
            chunk = encode_sample_line(sample)
        else:
            self._seen.add(name)
            chunk = encode_sample(sample)
        await self._sink.write(chunk)
        self.samples_written += 1

    async def write_all(self, samples: Iterable[Sample]) -> None:
        """Write samples in order."""
        for sample in samples:
            await self.write(sample)
