"""An asynchronous logging backend built on a bounded message queue.

Records are formatted into bytes and queued without blocking; a drain, which
the application flushes periodically, writes them to an output.
"""

from __future__ import annotations

import enum
import io
import logging
import queue
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, NoReturn, Optional

from opskit.declare import declare_metric
from opskit.logformat import FormatFunction, _level_name, default_format
from opskit.metric_types import Counter, Gauge

if TYPE_CHECKING:
    from opskit.logoutputs import Output

_log = logging.getLogger(__name__)

LOG_CREATE = declare_metric(Counter(), "log_create", "logging targets initialized")
LOG_CREATE_EX = declare_metric(
    Counter(), "log_create_ex", "number of exceptions while initializing logging targets"
)
LOG_DESTROY = declare_metric(Counter(), "log_destroy", "logging targets destroyed")
LOG_CURR = declare_metric(Gauge(), "log_curr", "current number of logging targets")
LOG_OPEN = declare_metric(
    Counter(), "log_open", "number of logging destinations which have been opened"
)
LOG_OPEN_EX = declare_metric(
    Counter(), "log_open_ex", "number of exceptions while opening logging destinations"
)
LOG_WRITE = declare_metric(
    Counter(), "log_write", "number of writes to all logging destinations"
)
LOG_WRITE_BYTE = declare_metric(
    Counter(), "log_write_byte", "number of bytes written to all logging destinations"
)
LOG_WRITE_EX = declare_metric(
    Counter(), "log_write_ex", "number of exceptions while writing to logging destinations"
)
LOG_SKIP = declare_metric(
    Counter(), "log_skip", "number of log messages skipped due to sampling policy"
)
LOG_DROP = declare_metric(
    Counter(), "log_drop", "number of log messages dropped due to full queues"
)
LOG_DROP_BYTE = declare_metric(
    Counter(), "log_drop_byte", "number of bytes dropped due to full queues"
)
LOG_FLUSH = declare_metric(
    Counter(), "log_flush", "number of times logging destinations have been flushed"
)
LOG_FLUSH_EX = declare_metric(
    Counter(), "log_flush_ex", "number of times logging destinations have been flushed"
)


class LevelFilter(enum.IntEnum):
    """The most verbose level let through; records above it are dropped."""

    OFF = 0
    ERROR = 1
    WARN = 2
    INFO = 3
    DEBUG = 4
    TRACE = 5


_PYTHON_LEVELS = {
    LevelFilter.OFF: logging.CRITICAL + 10,
    LevelFilter.ERROR: logging.ERROR,
    LevelFilter.WARN: logging.WARNING,
    LevelFilter.INFO: logging.INFO,
    LevelFilter.DEBUG: logging.DEBUG,
    LevelFilter.TRACE: 1,
}


def _record_level(record: logging.LogRecord) -> LevelFilter:
    return LevelFilter[_level_name(record.levelno)]


class Drain(ABC):
    """Moves queued log messages to an output."""

    @abstractmethod
    def flush(self) -> None:
        """Write every queued message to the output and flush it.

        Call this periodically, away from any critical path, so that the
        queue has room for new messages.
        """


class _SingleLogger:
    """Formats records and queues them without blocking."""

    def __init__(
        self,
        messages: "queue.Queue[bytes]",
        buffer_size: int,
        format: FormatFunction,
        level_filter: LevelFilter,
    ) -> None:
        self._messages = messages
        self.buffer_size = buffer_size
        self._format = format
        self.level_filter = level_filter

    def enabled(self, record: logging.LogRecord) -> bool:
        return _record_level(record) <= self.level_filter

    def log(self, record: logging.LogRecord) -> None:
        if not self.enabled(record):
            return
        buffer = io.StringIO()
        try:
            self._format(buffer, datetime.now(timezone.utc), record)
        except Exception:
            return
        data = buffer.getvalue().encode("utf-8")
        # Dropping the newest message keeps the history that led up to a flood.
        try:
            self._messages.put_nowait(data)
        except queue.Full:
            LOG_DROP.increment()
            LOG_DROP_BYTE.add(len(data))
        else:
            LOG_WRITE.increment()
            LOG_WRITE_BYTE.add(len(data))

    def __del__(self) -> None:
        try:
            LOG_DESTROY.increment()
            LOG_CURR.decrement()
        except Exception:
            pass


class _LogDrain(Drain):
    """Writes queued messages to a single output."""

    def __init__(self, messages: "queue.Queue[bytes]", output: "Output") -> None:
        self._messages = messages
        self._output = output

    def flush(self) -> None:
        LOG_FLUSH.increment()
        while True:
            try:
                data = self._messages.get_nowait()
            except queue.Empty:
                break
            try:
                self._output.write(data)
            except OSError as exc:
                LOG_WRITE_EX.increment()
                _log.warning("failed write to log buffer: %s", exc)
                raise
        try:
            self._output.flush()
        except OSError as exc:
            LOG_FLUSH_EX.increment()
            _log.warning("failed to flush log: %s", exc)
            raise


class _RingLogHandler(logging.Handler):
    def __init__(self, logger: Any) -> None:
        super().__init__()
        self._logger = logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._logger.log(record)
        except Exception:
            self.handleError(record)


@dataclass
class RingLog:
    """A logger with its drain, ready to be installed.

    ``logger`` provides ``enabled(record)`` and ``log(record)``.
    """

    logger: Any
    drain: Drain
    level_filter: LevelFilter

    def start(self) -> Drain:
        """Install the logger on the root logger and return the drain.

        Only one RingLog can be installed; a second start raises RuntimeError.
        """
        root = logging.getLogger()
        if any(isinstance(handler, _RingLogHandler) for handler in root.handlers):
            raise RuntimeError("failed to start logger")
        root.addHandler(_RingLogHandler(self.logger))
        root.setLevel(_PYTHON_LEVELS[self.level_filter])
        return self.drain


def _positive(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an int")
    if value < 1:
        raise ValueError(f"{what} must be at least 1")
    return value


class LogBuilder:
    """Builds a RingLog that sends every message to one output."""

    def __init__(self) -> None:
        self._log_queue_depth = 4096
        self._single_message_size = 1024
        self._format: FormatFunction = default_format
        self._level_filter = LevelFilter.TRACE
        self._output: Optional["Output"] = None

    def log_queue_depth(self, messages: int) -> "LogBuilder":
        """Set how many messages may wait in the queue before new ones drop."""
        self._log_queue_depth = _positive(messages, "queue depth")
        return self

    def single_message_size(self, size: int) -> "LogBuilder":
        """Set the expected size in bytes of one message."""
        self._single_message_size = _positive(size, "message size")
        return self

    def output(self, output: "Output") -> "LogBuilder":
        """Set the destination of the messages."""
        self._output = output
        return self

    def format(self, format: FormatFunction) -> "LogBuilder":
        """Set the function that formats each record."""
        self._format = format
        return self

    def level_filter(self, level_filter: LevelFilter) -> "LogBuilder":
        """Set the most verbose level that is logged."""
        self._level_filter = LevelFilter(level_filter)
        return self

    def _build_raw(self) -> "tuple[_SingleLogger, _LogDrain]":
        LOG_CREATE.increment()
        LOG_CURR.increment()
        if self._output is None:
            LOG_CREATE_EX.increment()
            raise ValueError("no output configured")
        messages: "queue.Queue[bytes]" = queue.Queue(maxsize=self._log_queue_depth)
        logger = _SingleLogger(
            messages, self._single_message_size, self._format, self._level_filter
        )
        return logger, _LogDrain(messages, self._output)

    def build(self) -> RingLog:
        """Construct the RingLog; raises ValueError when no output is set."""
        logger, drain = self._build_raw()
        return RingLog(logger, drain, logger.level_filter)


def fatal(message: str, *args: object) -> NoReturn:
    """Log ``message`` at error level and exit with status 1."""
    logging.getLogger().error(message, *args)
    raise SystemExit(1)