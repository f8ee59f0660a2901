"""Core metric types: counters, gauges and lazily initialised metrics."""

from __future__ import annotations

import enum
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

_U64_MOD = 1 << 64
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1

T = TypeVar("T")


def _check_u64(value: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"expected an int, got {type(value).__name__}")
    if not 0 <= value < _U64_MOD:
        raise ValueError(f"{value} is outside the unsigned 64-bit range")
    return value


def _check_i64(value: int) -> int:
    if not isinstance(value, int):
        raise TypeError(f"expected an int, got {type(value).__name__}")
    if not _I64_MIN <= value <= _I64_MAX:
        raise ValueError(f"{value} is outside the signed 64-bit range")
    return value


def _wrap_i64(value: int) -> int:
    return ((value - _I64_MIN) % _U64_MOD) + _I64_MIN


class ValueKind(enum.Enum):
    """The kind of value a metric reports."""

    COUNTER = "counter"
    GAUGE = "gauge"
    OTHER = "other"


@dataclass(frozen=True)
class Value:
    """A reading of a metric.

    For ``COUNTER`` and ``GAUGE`` the data is an int; for ``OTHER`` it is the
    metric object itself, to be handled by consumers that know its type.
    """

    kind: ValueKind
    data: Any


class Metric(ABC):
    """Interface shared by every metric."""

    def is_enabled(self) -> bool:
        """Whether this metric has been set up."""
        return self.as_any() is not None

    @abstractmethod
    def as_any(self) -> Optional[Any]:
        """The underlying metric object, or None when it is not enabled."""

    @abstractmethod
    def reading(self) -> Optional[Value]:
        """The current value of the metric, or None when it is not enabled."""


class NullMetric(Metric):
    """A metric that always reports itself as disabled."""

    def as_any(self) -> None:
        return None

    def reading(self) -> None:
        return None

    def __repr__(self) -> str:
        return "NullMetric()"


class Counter(Metric):
    """An unsigned 64-bit counter which wraps around on overflow."""

    def __init__(self, value: int = 0) -> None:
        self._value = _check_u64(value)
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one; return the previous value."""
        return self.add(1)

    def add(self, value: int) -> int:
        """Add ``value``; return the previous value."""
        _check_u64(value)
        with self._lock:
            old = self._value
            self._value = (old + value) % _U64_MOD
        return old

    def value(self) -> int:
        return self._value

    def set(self, value: int) -> int:
        """Replace the value; return the previous one."""
        _check_u64(value)
        with self._lock:
            old, self._value = self._value, value
        return old

    def reset(self) -> int:
        """Set the counter to zero; return the previous value."""
        return self.set(0)

    def as_any(self) -> "Counter":
        return self

    def reading(self) -> Value:
        return Value(ValueKind.COUNTER, self.value())

    def __repr__(self) -> str:
        return f"Counter({self._value})"


class Gauge(Metric):
    """A signed 64-bit gauge which wraps around on overflow and underflow."""

    def __init__(self, value: int = 0) -> None:
        self._value = _check_i64(value)
        self._lock = threading.Lock()

    def increment(self) -> int:
        """Add one; return the previous value."""
        return self.add(1)

    def decrement(self) -> int:
        """Subtract one; return the previous value."""
        return self.sub(1)

    def add(self, value: int) -> int:
        """Add ``value``; return the previous value."""
        _check_i64(value)
        with self._lock:
            old = self._value
            self._value = _wrap_i64(old + value)
        return old

    def sub(self, value: int) -> int:
        """Subtract ``value``; return the previous value."""
        _check_i64(value)
        with self._lock:
            old = self._value
            self._value = _wrap_i64(old - value)
        return old

    def value(self) -> int:
        return self._value

    def set(self, value: int) -> int:
        """Replace the value; return the previous one."""
        _check_i64(value)
        with self._lock:
            old, self._value = self._value, value
        return old

    def reset(self) -> int:
        """Set the gauge to zero; return the previous value."""
        return self.set(0)

    def as_any(self) -> "Gauge":
        return self

    def reading(self) -> Value:
        return Value(ValueKind.GAUGE, self.value())

    def __repr__(self) -> str:
        return f"Gauge({self._value})"


_UNSET = object()


class Lazy(Metric, Generic[T]):
    """A value built on first access.

    Attribute access that is not defined here is forwarded to the value,
    building it if needed. Until then the metric reports itself as disabled.
    """

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory: Optional[Callable[[], T]] = factory
        self._value: Any = _UNSET
        self._lock = threading.Lock()

    def get(self) -> Optional[T]:
        """The value if it has been built, else None."""
        value = self._value
        return None if value is _UNSET else value

    def force(self) -> T:
        """Build the value if needed and return it."""
        value = self._value
        if value is not _UNSET:
            return value
        with self._lock:
            if self._value is _UNSET:
                factory, self._factory = self._factory, None
                if factory is None:
                    raise RuntimeError("Lazy instance has previously been poisoned")
                self._value = factory()
            return self._value

    def is_enabled(self) -> bool:
        return self.get() is not None

    def as_any(self) -> Optional[T]:
        return self.get()

    def reading(self) -> Optional[Value]:
        inner = self.get()
        return None if inner is None else inner.reading()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.force(), name)

    def __repr__(self) -> str:
        inner = self.get()
        return "Lazy(<uninitialised>)" if inner is None else f"Lazy({inner!r})"


def lazy_counter() -> Lazy[Counter]:
    """A counter that reports nothing until it is first used."""
    return Lazy(Counter)


def lazy_gauge() -> Lazy[Gauge]:
    """A gauge that reports nothing until it is first used."""
    return Lazy(Gauge)