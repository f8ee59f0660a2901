"""Log backends that drop, sample or route messages by target."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Dict, Optional

from opskit.logformat import FormatFunction
from opskit.ringlog import (
    LOG_SKIP,
    Drain,
    LevelFilter,
    LogBuilder,
    RingLog,
    _record_level,
)


class _NopLogger:
    """A logger that drops every message."""

    level_filter = LevelFilter.OFF

    def enabled(self, record: logging.LogRecord) -> bool:
        return False

    def log(self, record: logging.LogRecord) -> None:
        return None


class _NopDrain(Drain):
    """A drain with nothing to do."""

    def flush(self) -> None:
        return None


class NopLogBuilder:
    """Builds a RingLog that drops all log messages."""

    def build(self) -> RingLog:
        """Construct the RingLog."""
        logger = _NopLogger()
        return RingLog(logger, _NopDrain(), logger.level_filter)


class _SamplingLogger:
    """Passes one in every ``sample`` enabled records to an inner logger."""

    def __init__(self, inner, sample: int) -> None:
        self._inner = inner
        self._sample = sample
        # Start at one so that the first message taken is the Nth.
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def level_filter(self) -> LevelFilter:
        return self._inner.level_filter

    def enabled(self, record: logging.LogRecord) -> bool:
        return _record_level(record) <= self.level_filter

    def log(self, record: logging.LogRecord) -> None:
        if not self.enabled(record):
            return
        with self._lock:
            count = next(self._counter)
        if count % self._sample == 0:
            self._inner.log(record)
        else:
            LOG_SKIP.increment()


class SamplingLogBuilder:
    """Builds a RingLog that sends one in N messages to a single output."""

    def __init__(self) -> None:
        self._log_builder = LogBuilder()
        self._sample = 100

    def log_queue_depth(self, messages: int) -> "SamplingLogBuilder":
        """Set how many messages may wait in the queue before new ones drop."""
        self._log_builder.log_queue_depth(messages)
        return self

    def single_message_size(self, size: int) -> "SamplingLogBuilder":
        """Set the expected size in bytes of one message."""
        self._log_builder.single_message_size(size)
        return self

    def output(self, output) -> "SamplingLogBuilder":
        """Set the destination of the messages."""
        self._log_builder.output(output)
        return self

    def format(self, format: FormatFunction) -> "SamplingLogBuilder":
        """Set the function that formats each record."""
        self._log_builder.format(format)
        return self

    def sample(self, sample: int) -> "SamplingLogBuilder":
        """Log one in every ``sample`` messages."""
        if isinstance(sample, bool) or not isinstance(sample, int):
            raise TypeError("sample must be an int")
        if sample < 1:
            raise ValueError("sample must be at least 1")
        self._sample = sample
        return self

    def build(self) -> RingLog:
        """Construct the RingLog; raises ValueError when no output is set."""
        inner, drain = self._log_builder._build_raw()
        logger = _SamplingLogger(inner, self._sample)
        return RingLog(logger, drain, logger.level_filter)


class _MultiLogger:
    """Routes records to a logger chosen by the record's logger name."""

    def __init__(self, default, targets: Dict[str, object], level_filter: LevelFilter):
        self._default = default
        self._targets = targets
        self.level_filter = level_filter

    def _target(self, name: str):
        return self._targets.get(name, self._default)

    def enabled(self, record: logging.LogRecord) -> bool:
        if _record_level(record) > self.level_filter:
            return False
        target = self._target(record.name)
        return target is not None and target.enabled(record)

    def log(self, record: logging.LogRecord) -> None:
        if _record_level(record) > self.level_filter:
            return
        target = self._target(record.name)
        if target is not None and target.enabled(record):
            target.log(record)


class _MultiDrain(Drain):
    """Flushes the default drain and then every target drain."""

    def __init__(self, default: Optional[Drain], targets: Dict[str, Drain]) -> None:
        self._default = default
        self._targets = targets

    def flush(self) -> None:
        if self._default is not None:
            self._default.flush()
        for drain in self._targets.values():
            drain.flush()


class MultiLogBuilder:
    """Builds a RingLog that routes messages by target to other RingLogs.

    The target of a record is the name of the logger that made it. Records
    whose target has no RingLog of its own go to the default, or are dropped
    when there is none.
    """

    def __init__(self) -> None:
        self._default: Optional[RingLog] = None
        self._targets: Dict[str, RingLog] = {}
        self._level_filter = LevelFilter.TRACE

    def default(self, log: RingLog) -> "MultiLogBuilder":
        """Set the RingLog for records that match no target."""
        self._default = log
        return self

    def add_target(self, target: str, log: RingLog) -> "MultiLogBuilder":
        """Send records whose target is ``target`` to ``log``."""
        self._targets[str(target)] = log
        return self

    def level_filter(self, level_filter: LevelFilter) -> "MultiLogBuilder":
        """Set the most verbose level that is routed at all."""
        self._level_filter = LevelFilter(level_filter)
        return self

    def build(self) -> RingLog:
        """Construct the RingLog."""
        default = self._default
        logger = _MultiLogger(
            default.logger if default is not None else None,
            {name: log.logger for name, log in self._targets.items()},
            self._level_filter,
        )
        drain = _MultiDrain(
            default.drain if default is not None else None,
            {name: log.drain for name, log in self._targets.items()},
        )
        return RingLog(logger, drain, self._level_filter)