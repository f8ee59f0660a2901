"""Destinations that log lines are written to."""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, TextIO, Union

from opskit.ringlog import LOG_OPEN, LOG_OPEN_EX

_BUFFER_CAPACITY = 8192

PathLike = Union[str, "os.PathLike[str]"]


class Output(ABC):
    """A logging destination, such as standard out or a file."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write all of ``data``; return the number of bytes taken."""

    @abstractmethod
    def flush(self) -> None:
        """Push buffered data to the destination."""


class _BufferedStream:
    """Buffers bytes and writes them to a stream looked up at flush time."""

    def __init__(self, stream: Callable[[], TextIO]) -> None:
        self._stream = stream
        self._pending = bytearray()

    def write(self, data: bytes) -> int:
        self._pending += data
        if len(self._pending) >= _BUFFER_CAPACITY:
            self._drain()
        return len(data)

    def flush(self) -> None:
        self._drain()
        self._stream().flush()

    def _drain(self) -> None:
        if not self._pending:
            return
        stream = self._stream()
        binary = getattr(stream, "buffer", None)
        if binary is not None:
            stream.flush()
            binary.write(bytes(self._pending))
            binary.flush()
        else:
            stream.write(self._pending.decode("utf-8", "replace"))
        self._pending.clear()


class Stdout(Output):
    """An output that writes to standard out."""

    def __init__(self) -> None:
        self._writer = _BufferedStream(lambda: sys.stdout)

    def write(self, data: bytes) -> int:
        return self._writer.write(data)

    def flush(self) -> None:
        self._writer.flush()


class Stderr(Output):
    """An output that writes to standard error."""

    def __init__(self) -> None:
        self._writer = _BufferedStream(lambda: sys.stderr)

    def write(self, data: bytes) -> int:
        return self._writer.write(data)

    def flush(self) -> None:
        self._writer.flush()


def _open_counted(path: Path):
    LOG_OPEN.increment()
    try:
        return open(path, "wb")
    except OSError:
        LOG_OPEN_EX.increment()
        raise


class FileOutput(Output):
    """A file output whose live file is moved to a backup path when too big.

    The live file is created (truncated) on construction. Rotation is checked
    on every flush: once the live file holds ``max_size`` bytes or more it is
    renamed to ``backup`` and a fresh live file is started.
    """

    def __init__(self, active: PathLike, backup: PathLike, max_size: int) -> None:
        self._active = Path(active)
        self._backup = Path(backup)
        self._max_size = max_size
        self._writer = _open_counted(self._active)

    def write(self, data: bytes) -> int:
        return self._writer.write(data)

    def flush(self) -> None:
        self._writer.flush()
        self._rotate()

    def _size(self) -> int:
        return os.fstat(self._writer.fileno()).st_size

    def _rotate(self) -> None:
        if self._size() >= self._max_size:
            self._writer.close()
            os.replace(self._active, self._backup)
            self._writer = _open_counted(self._active)

    def __enter__(self) -> "FileOutput":
        return self

    def __exit__(self, *args: object) -> None:
        self._writer.close()

    def __del__(self) -> None:
        writer = getattr(self, "_writer", None)
        if writer is not None:
            try:
                writer.close()
            except Exception:
                pass

    def __repr__(self) -> str:
        return f"FileOutput({str(self._active)!r}, {str(self._backup)!r}, {self._max_size})"