"""Read-only key-value metadata attached to a metric."""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Tuple, Union

Entries = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


class Metadata:
    """An immutable mapping of string keys to string values.

    Iterating yields ``(key, value)`` pairs.
    """

    __slots__ = ("_map",)

    def __init__(self, entries: Entries = None) -> None:
        if isinstance(entries, Metadata):
            data = dict(entries._map)
        elif entries is None:
            data = {}
        elif isinstance(entries, Mapping):
            data = dict(entries.items())
        else:
            data = dict(entries)
        for key, value in data.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise TypeError("metadata keys and values must be strings")
        self._map = MappingProxyType(data)

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, key: object) -> bool:
        return key in self._map

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._map.items())

    def is_empty(self) -> bool:
        return not self._map

    def get(self, key: str) -> Optional[str]:
        """The value for ``key``, or None when it is absent."""
        return self._map.get(key)

    def items(self) -> Iterator[Tuple[str, str]]:
        """An iterator over the ``(key, value)`` pairs."""
        return iter(self._map.items())

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Metadata):
            return dict(self._map) == dict(other._map)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._map.items()))

    def __repr__(self) -> str:
        return f"Metadata({dict(self._map)!r})"