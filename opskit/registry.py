"""Registries of declared and dynamically created metrics."""

from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional, Tuple

from opskit.entry import Formatter, MetricEntry, default_formatter
from opskit.metadata import Metadata
from opskit.metric_types import Metric, NullMetric

_lock = threading.Lock()
_static_entries: List[MetricEntry] = []
_dynamic_entries: Dict[int, MetricEntry] = {}


def register_static(entry: MetricEntry) -> MetricEntry:
    """Add ``entry`` to the permanent list of declared metrics and return it."""
    if not isinstance(entry, MetricEntry):
        raise TypeError("expected a MetricEntry")
    with _lock:
        _static_entries.append(entry)
    return entry


def _register_dynamic(entry: MetricEntry) -> None:
    with _lock:
        _dynamic_entries[id(entry.metric)] = entry


def _unregister_dynamic(metric: Metric) -> None:
    with _lock:
        _dynamic_entries.pop(id(metric), None)


class Metrics:
    """A snapshot of every registered metric, declared and dynamic.

    Names are not guaranteed to be unique and no aggregation is done.
    """

    def __init__(
        self,
        static_entries: Tuple[MetricEntry, ...],
        dynamic_entries: Tuple[MetricEntry, ...],
    ) -> None:
        self._static = static_entries
        self._dynamic = dynamic_entries

    def static_metrics(self) -> Tuple[MetricEntry, ...]:
        """Entries for metrics that were declared."""
        return self._static

    def dynamic_metrics(self) -> List[MetricEntry]:
        """Entries for metrics that were registered at runtime."""
        return list(self._dynamic)

    def __iter__(self) -> Iterator[MetricEntry]:
        yield from self._static
        yield from self._dynamic

    def __repr__(self) -> str:
        return f"Metrics(static={len(self._static)}, dynamic={len(self._dynamic)})"


def metrics() -> Metrics:
    """A snapshot of all currently registered metrics."""
    with _lock:
        static_entries = tuple(_static_entries)
        dynamic_entries = tuple(
            entry for _, entry in sorted(_dynamic_entries.items(), key=lambda kv: kv[0])
        )
    return Metrics(static_entries, dynamic_entries)


class MetricBuilder:
    """Builder for a dynamic metric or a bare metric entry."""

    def __init__(self, name: str) -> None:
        self._name = str(name)
        self._description: Optional[str] = None
        self._metadata: Dict[str, str] = {}
        self._formatter: Formatter = default_formatter

    def description(self, desc: str) -> "MetricBuilder":
        """Set the description of the metric."""
        self._description = str(desc)
        return self

    def metadata(self, key: str, value: str) -> "MetricBuilder":
        """Add a key-value metadata entry."""
        self._metadata[str(key)] = str(value)
        return self

    def formatter(self, formatter: Formatter) -> "MetricBuilder":
        """Set the function used to format the metric name."""
        self._formatter = formatter
        return self

    def into_entry(self) -> MetricEntry:
        """An entry holding a disabled placeholder metric."""
        return MetricEntry(
            NullMetric(),
            self._name,
            self._description,
            Metadata(self._metadata),
            self._formatter,
        )

    def build(self, metric: Metric) -> "DynBoxedMetric":
        """Register ``metric`` under this builder's entry."""
        return DynBoxedMetric(metric, self.into_entry())


class DynPinnedMetric:
    """A metric that can be registered under entries and unregistered on close.

    Registering the same metric again replaces its previous entry. Attribute
    access not defined here is forwarded to the metric.
    """

    def __init__(self, metric: Metric) -> None:
        if not isinstance(metric, Metric):
            raise TypeError("expected a Metric")
        self._metric = metric
        self._registered = False

    @property
    def metric(self) -> Metric:
        return self._metric

    def register(self, entry: MetricEntry) -> None:
        """Register the metric in the dynamic registry under ``entry``."""
        bound = MetricEntry(
            self._metric,
            entry.name,
            entry.description,
            entry.metadata,
            entry.formatter,
        )
        _register_dynamic(bound)
        self._registered = True

    def close(self) -> None:
        """Remove every registration of this metric. Safe to call twice."""
        if self._registered:
            self._registered = False
            _unregister_dynamic(self._metric)

    def __enter__(self) -> "DynPinnedMetric":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._metric, name)

    def __repr__(self) -> str:
        return f"DynPinnedMetric({self._metric!r})"


class DynBoxedMetric:
    """A metric registered on creation and unregistered on close.

    Attribute access not defined here is forwarded to the metric.
    """

    def __init__(self, metric: Metric, entry: MetricEntry) -> None:
        self._pinned = DynPinnedMetric(metric)
        self._pinned.register(entry)

    @property
    def metric(self) -> Metric:
        return self._pinned.metric

    def close(self) -> None:
        """Unregister the metric. Safe to call twice."""
        self._pinned.close()

    def __enter__(self) -> "DynBoxedMetric":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._pinned.metric, name)

    def __repr__(self) -> str:
        return f"DynBoxedMetric({self._pinned.metric!r})"