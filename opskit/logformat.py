"""Functions that turn a log record into one line of text."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, TextIO

FormatFunction = Callable[[TextIO, datetime, logging.LogRecord], None]


def _level_name(levelno: int) -> str:
    """The level name used in log lines for a standard logging level."""
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARN"
    if levelno >= logging.INFO:
        return "INFO"
    if levelno >= logging.DEBUG:
        return "DEBUG"
    return "TRACE"


def _timestamp(now: datetime) -> str:
    return now.isoformat(timespec="milliseconds")


def default_format(writer: TextIO, now: datetime, record: logging.LogRecord) -> None:
    """Write ``<time> <level> [<logger>] <message>`` and a newline."""
    module = record.name or "<unnamed>"
    writer.write(
        f"{_timestamp(now)} {_level_name(record.levelno)} [{module}] "
        f"{record.getMessage()}\n"
    )


def klog_format(writer: TextIO, now: datetime, record: logging.LogRecord) -> None:
    """Write ``<time> <message>`` and a newline."""
    writer.write(f"{_timestamp(now)} {record.getMessage()}\n")