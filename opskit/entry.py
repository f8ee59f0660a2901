"""Metric entries and the formatting of their names."""

from __future__ import annotations

import enum
from typing import Callable, Mapping, Optional, Union

from opskit.metadata import Metadata
from opskit.metric_types import Metric


class Format(enum.Enum):
    """How a metric name should be rendered."""

    SIMPLE = "simple"
    PROMETHEUS = "prometheus"


Formatter = Callable[["MetricEntry", Format], str]


def default_formatter(entry: "MetricEntry", format: Format) -> str:
    """Render the name, with metadata labels in the Prometheus format."""
    if format is Format.PROMETHEUS:
        labels = ", ".join(f'{key}="{value}"' for key, value in entry.metadata)
        return f"{entry.name}{{{labels}}}" if labels else entry.name
    return entry.name


class MetricEntry:
    """A metric together with its name, description, metadata and formatter."""

    def __init__(
        self,
        metric: Metric,
        name: str,
        description: Optional[str] = None,
        metadata: Union[Metadata, Mapping[str, str], None] = None,
        formatter: Formatter = default_formatter,
    ) -> None:
        self.metric = metric
        self.name = name
        self.description = description
        self.metadata = metadata if isinstance(metadata, Metadata) else Metadata(metadata)
        self.formatter = formatter

    def formatted(self, format: Format) -> str:
        """Format the metric name with this entry's formatter."""
        return self.formatter(self, format)

    def refers_to(self, metric: Metric) -> bool:
        """Whether ``metric`` is the very metric held by this entry."""
        return self.metric is metric

    def __repr__(self) -> str:
        return f"MetricEntry(name={self.name!r}, metric=<Metric>)"