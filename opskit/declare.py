"""Declaring metrics so that they appear in the global registry."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from opskit.entry import Formatter, MetricEntry, default_formatter
from opskit.metadata import Metadata
from opskit.metric_types import Metric
from opskit.registry import register_static

MetadataArg = Union[Metadata, Mapping[str, str], Iterable[Tuple[str, str]], None]


def _collect_metadata(metadata: MetadataArg) -> Dict[str, str]:
    """Check metadata entries and return them ordered by key.

    Duplicate keys are rejected, as are keys or values that are not strings.
    """
    if metadata is None:
        return {}
    if isinstance(metadata, (Metadata, Mapping)):
        pairs = list(metadata.items())
    else:
        pairs = list(metadata)

    collected: Dict[str, str] = {}
    for pair in pairs:
        try:
            key, value = pair
        except (TypeError, ValueError):
            raise TypeError("metadata entries must be (key, value) pairs") from None
        if not isinstance(key, str):
            raise TypeError(f"metadata key must be a string, got {type(key).__name__}")
        if not isinstance(value, str):
            raise TypeError(
                f"metadata value for `{key}` must be a string, got {type(value).__name__}"
            )
        if key in collected:
            raise ValueError(f"duplicate metadata entry `{key}`")
        collected[key] = value
    return dict(sorted(collected.items()))


def declare_metric(
    metric: Metric,
    name: str,
    description: Optional[str] = None,
    metadata: MetadataArg = None,
    formatter: Formatter = default_formatter,
) -> Metric:
    """Register ``metric`` permanently under ``name`` and return it."""
    if not isinstance(metric, Metric):
        raise TypeError(f"expected a Metric, got {type(metric).__name__}")
    if not isinstance(name, str):
        raise TypeError(f"metric name must be a string, got {type(name).__name__}")
    if description is not None and not isinstance(description, str):
        raise TypeError("metric description must be a string or None")
    if not callable(formatter):
        raise TypeError("formatter must be callable")

    entry = MetricEntry(
        metric,
        name,
        description,
        Metadata(_collect_metadata(metadata)),
        formatter,
    )
    register_static(entry)
    return metric


def metric(
    func: Optional[Callable[[], Metric]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    metadata: MetadataArg = None,
    formatter: Formatter = default_formatter,
) -> Any:
    """Decorate a factory so that the metric it builds is declared.

    The decorated name is bound to the metric itself. Without ``name`` the
    metric takes the name of the factory. Usable bare or with arguments.
    """
    checked_metadata = _collect_metadata(metadata)

    def decorate(factory: Callable[[], Metric]) -> Metric:
        if not callable(factory):
            raise TypeError("metric() decorates a callable that builds a metric")
        instance = factory()
        metric_name = name if name is not None else factory.__name__
        return declare_metric(
            instance, metric_name, description, checked_metadata, formatter
        )

    if func is None:
        return decorate
    return decorate(func)