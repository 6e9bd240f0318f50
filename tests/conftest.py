from datetime import datetime, timedelta, timezone

import pytest

from wtmp_sessions.records import RecordKind
from wtmp_sessions.wtmp import encode_record

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)  # a Friday


@pytest.fixture
def at():
    """Return a function mapping seconds after T0 to an aware datetime."""
    return lambda seconds: T0 + timedelta(seconds=seconds)


@pytest.fixture
def runlevel_pid():
    """pid whose second big-endian byte is the given runlevel character."""
    return lambda level: ord(level) << 16


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("WTMP_FILE", "WTMP_LIMIT", "WTMP_OUTPUT", "WTMP_UTC",
                "WTMP_ALGORITHM", "WTMP_SPLIT_SHUTDOWN", "WTMP_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def write_wtmp(tmp_path):
    """Write raw record bytes to a file under tmp_path and return its path."""
    def _write(records, name="wtmp", trailing=b""):
        path = tmp_path / name
        path.write_bytes(b"".join(records) + trailing)
        return str(path)
    return _write


@pytest.fixture
def sample_wtmp(write_wtmp, at):
    """A small history: logout, crash, reboot and one open session."""
    return write_wtmp([
        encode_record(RecordKind.BOOT_TIME, at(0), user="reboot", line="~"),
        encode_record(RecordKind.USER_PROCESS, at(60), user="alice", host="10.0.0.5", line="pts/0", pid=100),
        encode_record(RecordKind.DEAD_PROCESS, at(5460), line="pts/0", pid=100),
        encode_record(RecordKind.USER_PROCESS, at(6000), user="bob", host="", line="tty1", pid=200),
        encode_record(RecordKind.BOOT_TIME, at(7200), user="reboot", line="~"),
        encode_record(RecordKind.USER_PROCESS, at(7800), user="carol", host="laptop", line="pts/1", pid=300),
        encode_record(RecordKind.RUN_LVL, at(9000), user="shutdown", line="~~"),
        encode_record(RecordKind.BOOT_TIME, at(9600), user="reboot", line="~"),
        encode_record(RecordKind.USER_PROCESS, at(9700), user="dave", host="", line="tty2", pid=400),
    ])
