import pytest

from opskit.logoutputs import FileOutput, Output, Stderr, Stdout
from opskit.ringlog import LOG_OPEN, LOG_OPEN_EX


def test_output_is_abstract():
    with pytest.raises(TypeError):
        Output()


def test_stdout_buffers_until_flush(capsys):
    out = Stdout()
    assert out.write(b"to stdout\n") == len(b"to stdout\n")
    assert capsys.readouterr().out == ""
    out.flush()
    assert capsys.readouterr().out == "to stdout\n"


def test_stderr_writes_on_flush(capsys):
    err = Stderr()
    err.write(b"to stderr\n")
    err.flush()
    captured = capsys.readouterr()
    assert captured.err == "to stderr\n"
    assert captured.out == ""


def test_file_output_writes_data(tmp_path):
    active = tmp_path / "live.log"
    backup = tmp_path / "old.log"
    with FileOutput(active, backup, 1000) as out:
        out.write(b"first line\n")
        out.flush()
        assert active.read_bytes() == b"first line\n"
        assert not backup.exists()


def test_file_output_truncates_existing(tmp_path):
    active = tmp_path / "live.log"
    active.write_bytes(b"stale contents")
    with FileOutput(active, tmp_path / "old.log", 1000) as out:
        out.flush()
        assert active.read_bytes() == b""


def test_file_output_counts_opens(tmp_path):
    before = LOG_OPEN.value()
    with FileOutput(tmp_path / "a.log", tmp_path / "b.log", 1) as out:
        out.write(b"abc")
        out.flush()
    assert LOG_OPEN.value() - before == 2


def test_file_output_open_failure(tmp_path):
    missing = tmp_path / "no-such-dir" / "live.log"
    before_ex = LOG_OPEN_EX.value()
    with pytest.raises(FileNotFoundError):
        FileOutput(missing, tmp_path / "old.log", 10)
    assert LOG_OPEN_EX.value() - before_ex == 1