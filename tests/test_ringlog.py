import logging

import pytest

from opskit.logformat import klog_format
from opskit.logoutputs import Output
from opskit.ringlog import (
    LOG_CREATE_EX,
    LOG_DROP,
    LOG_DROP_BYTE,
    LOG_WRITE,
    LOG_WRITE_EX,
    Drain,
    LevelFilter,
    LogBuilder,
    fatal,
)


class MemoryOutput(Output):
    def __init__(self):
        self.data = bytearray()
        self.flushes = 0

    def write(self, data):
        self.data += data
        return len(data)

    def flush(self):
        self.flushes += 1


class BrokenOutput(Output):
    def write(self, data):
        raise OSError("disk gone")

    def flush(self):
        pass


def _record(msg, level=logging.INFO, name="opskit.test"):
    return logging.LogRecord(name, level, __file__, 1, msg, (), None)


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_drain_is_abstract():
    with pytest.raises(TypeError):
        Drain()


def test_level_filter_ordering():
    assert LevelFilter.OFF < LevelFilter.ERROR < LevelFilter.WARN
    assert LevelFilter.INFO < LevelFilter.DEBUG < LevelFilter.TRACE
    ring = LogBuilder().output(MemoryOutput()).level_filter(LevelFilter.INFO).build()
    assert ring.level_filter == LevelFilter.INFO
    assert ring.logger.enabled(_record("err", level=logging.ERROR))
    assert ring.logger.enabled(_record("warn", level=logging.WARNING))
    assert ring.logger.enabled(_record("info", level=logging.INFO))
    assert not ring.logger.enabled(_record("debug", level=logging.DEBUG))


def test_build_without_output_fails():
    before = LOG_CREATE_EX.value()
    with pytest.raises(ValueError):
        LogBuilder().build()
    assert LOG_CREATE_EX.value() - before == 1


def test_messages_reach_output_after_flush():
    out = MemoryOutput()
    ring = LogBuilder().output(out).build()
    ring.logger.log(_record("queued message"))
    assert out.data == b""
    ring.drain.flush()
    assert b"queued message" in out.data
    assert out.data.endswith(b"\n")
    assert out.flushes == 1


def test_default_level_filter_is_trace():
    ring = LogBuilder().output(MemoryOutput()).build()
    assert ring.level_filter == LevelFilter.TRACE
    assert ring.logger.enabled(_record("deep", level=5))


def test_level_filter_drops_verbose_records():
    out = MemoryOutput()
    ring = LogBuilder().output(out).level_filter(LevelFilter.WARN).build()
    ring.logger.log(_record("kept warning", level=logging.WARNING))
    ring.logger.log(_record("dropped info", level=logging.INFO))
    ring.drain.flush()
    assert b"kept warning" in out.data
    assert b"dropped info" not in out.data


def test_custom_format_is_used():
    out = MemoryOutput()
    ring = LogBuilder().output(out).format(klog_format).build()
    ring.logger.log(_record("plain line", name="hidden.name"))
    ring.drain.flush()
    assert b"plain line" in out.data
    assert b"hidden.name" not in out.data


def test_full_queue_drops_newest():
    out = MemoryOutput()
    ring = LogBuilder().output(out).log_queue_depth(2).build()
    drops, drop_bytes, writes = LOG_DROP.value(), LOG_DROP_BYTE.value(), LOG_WRITE.value()
    for msg in ("one", "two", "three"):
        ring.logger.log(_record(msg))
    assert LOG_DROP.value() - drops == 1
    assert LOG_DROP_BYTE.value() > drop_bytes
    assert LOG_WRITE.value() - writes == 2
    ring.drain.flush()
    assert out.data.count(b"\n") == 2
    assert b"three" not in out.data


def test_invalid_queue_depth():
    with pytest.raises(ValueError):
        LogBuilder().log_queue_depth(0)


def test_failed_write_raises_and_counts():
    ring = LogBuilder().output(BrokenOutput()).build()
    ring.logger.log(_record("lost"))
    before = LOG_WRITE_EX.value()
    with pytest.raises(OSError):
        ring.drain.flush()
    assert LOG_WRITE_EX.value() - before == 1


def test_start_installs_logger(restore_root):
    out = MemoryOutput()
    drain = LogBuilder().output(out).level_filter(LevelFilter.INFO).build().start()
    assert restore_root.level == logging.INFO
    logger = logging.getLogger("opskit.test.start")
    logger.info("started message")
    logger.debug("hidden message")
    drain.flush()
    assert b"started message" in out.data
    assert b"hidden message" not in out.data


def test_second_start_fails(restore_root):
    LogBuilder().output(MemoryOutput()).build().start()
    with pytest.raises(RuntimeError):
        LogBuilder().output(MemoryOutput()).build().start()


def test_fatal_logs_and_exits(restore_root):
    out = MemoryOutput()
    drain = LogBuilder().output(out).build().start()
    with pytest.raises(SystemExit) as excinfo:
        fatal("fatal problem %s", "here")
    assert excinfo.value.code == 1
    drain.flush()
    assert b"fatal problem here" in out.data