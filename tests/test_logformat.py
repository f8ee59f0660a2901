import io
import logging
from datetime import datetime, timezone

import pytest

from opskit.logformat import default_format, klog_format
from opskit.ringlog import LevelFilter

NOW = datetime(2020, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


def _record(name="app.db", level=logging.INFO, msg="hello", args=()):
    return logging.LogRecord(name, level, __file__, 1, msg, args, None)


def test_default_format_full_line():
    writer = io.StringIO()
    default_format(writer, NOW, _record(msg="hello %d", args=(42,)))
    assert writer.getvalue() == "2020-01-02T03:04:05.678+00:00 INFO [app.db] hello 42\n"


def test_klog_format_full_line():
    writer = io.StringIO()
    klog_format(writer, NOW, _record(msg='"get 0" 0 0'))
    assert writer.getvalue() == '2020-01-02T03:04:05.678+00:00 "get 0" 0 0\n'


def test_default_format_unnamed_logger():
    writer = io.StringIO()
    default_format(writer, NOW, _record(name=""))
    assert "[<unnamed>]" in writer.getvalue()


@pytest.mark.parametrize(
    "levelno, expected",
    [
        (logging.CRITICAL, LevelFilter.ERROR),
        (logging.ERROR, LevelFilter.ERROR),
        (logging.WARNING, LevelFilter.WARN),
        (logging.INFO, LevelFilter.INFO),
        (logging.DEBUG, LevelFilter.DEBUG),
        (5, LevelFilter.TRACE),
    ],
)
def test_default_format_level_names(levelno, expected):
    writer = io.StringIO()
    default_format(writer, NOW, _record(level=levelno))
    assert writer.getvalue().split()[1] == expected.name


def test_klog_omits_level_and_logger():
    writer = io.StringIO()
    klog_format(writer, NOW, _record(name="audit", msg="entry"))
    line = writer.getvalue()
    assert "audit" not in line
    assert line.endswith(" entry\n")
    assert line.count("\n") == 1


def test_both_formats_share_timestamp_prefix():
    record = _record(msg="same")
    first = io.StringIO()
    second = io.StringIO()
    default_format(first, NOW, record)
    klog_format(second, NOW, record)
    assert first.getvalue().split()[0] == second.getvalue().split()[0]