"""Tests for wtmp_sessions/wtmp.py: record layout, decoding, stream errors."""

import io
import re
import struct
from datetime import datetime, timezone

import pytest

from wtmp_sessions.records import (
    BootTime,
    DeadProcess,
    OtherRecord,
    RecordKind,
    RunLevel,
    ShutdownTime,
    UserProcess,
)
from wtmp_sessions.wtmp import (
    RECORD_FORMAT,
    RECORD_SIZE,
    WtmpParseError,
    decode_record,
    encode_record,
    iter_records,
    read_records,
)


# ── Layout ────────────────────────────────────────────────────────


class TestLayout:
    def test_record_size_is_384(self):
        assert RECORD_SIZE == 384
        assert struct.calcsize(RECORD_FORMAT) == 384

    def test_type_is_first_little_endian_short(self, at):
        raw = encode_record(RecordKind.DEAD_PROCESS, at(0))
        assert raw[:2] == b"\x08\x00"

    def test_line_offset(self, at):
        raw = encode_record(RecordKind.DEAD_PROCESS, at(0), line="pts/3")
        assert raw[8:13] == b"pts/3"
        assert raw[13:40] == b"\x00" * 27

    def test_tv_sec_offset(self, at):
        raw = encode_record(RecordKind.BOOT_TIME, at(0))
        (tv_sec,) = struct.unpack_from("<i", raw, 340)
        assert tv_sec == int(at(0).timestamp())


# ── decode_record ────────────────────────────────────────────────


class TestDecodeRecord:
    def test_user_process(self, at):
        raw = encode_record(RecordKind.USER_PROCESS, at(0), user="alice", host="10.0.0.5", line="pts/0", pid=4242)
        assert decode_record(raw) == UserProcess(
            user="alice", host="10.0.0.5", line="pts/0", time=at(0), pid=4242,
        )

    def test_dead_process(self, at):
        raw = encode_record(RecordKind.DEAD_PROCESS, at(5), line="tty1", pid=7)
        assert decode_record(raw) == DeadProcess(line="tty1", time=at(5), pid=7)

    def test_boot_time(self, at):
        raw = encode_record(RecordKind.BOOT_TIME, at(5), user="reboot", line="~")
        assert decode_record(raw) == BootTime(time=at(5))

    def test_run_level(self, at):
        raw = encode_record(RecordKind.RUN_LVL, at(5), user="runlevel", pid=0x00360000)
        assert decode_record(raw) == RunLevel(user="runlevel", time=at(5), pid=0x00360000)

    def test_shutdown_kept_as_run_level_by_default(self, at):
        raw = encode_record(RecordKind.RUN_LVL, at(5), user="shutdown")
        assert decode_record(raw) == RunLevel(user="shutdown", time=at(5), pid=0)

    def test_split_shutdown(self, at):
        raw = encode_record(RecordKind.RUN_LVL, at(5), user="shutdown")
        assert decode_record(raw, split_shutdown=True) == ShutdownTime(time=at(5))

    def test_split_shutdown_leaves_other_run_levels(self, at):
        raw = encode_record(RecordKind.RUN_LVL, at(5), user="runlevel")
        assert isinstance(decode_record(raw, split_shutdown=True), RunLevel)

    @pytest.mark.parametrize("kind", [
        RecordKind.EMPTY,
        RecordKind.NEW_TIME,
        RecordKind.OLD_TIME,
        RecordKind.INIT_PROCESS,
        RecordKind.LOGIN_PROCESS,
        RecordKind.ACCOUNTING,
    ])
    def test_other_kinds(self, at, kind):
        assert decode_record(encode_record(kind, at(1))) == OtherRecord(kind=kind, time=at(1))

    def test_microseconds(self):
        t = datetime(2024, 3, 1, 9, 0, 0, 250000, tzinfo=timezone.utc)
        assert decode_record(encode_record(RecordKind.BOOT_TIME, t)).time == t

    def test_time_is_utc_aware(self, at):
        record = decode_record(encode_record(RecordKind.BOOT_TIME, at(0)))
        assert record.time.tzinfo == timezone.utc

    def test_negative_pid(self, at):
        raw = encode_record(RecordKind.RUN_LVL, at(0), user="runlevel", pid=-1)
        assert decode_record(raw).pid == -1

    def test_invalid_utf8_is_replaced(self, at):
        raw = bytearray(encode_record(RecordKind.USER_PROCESS, at(0), line="tty1"))
        raw[44:47] = b"b\xffx"  # ut_user starts at offset 44
        assert decode_record(bytes(raw)).user == "b\ufffdx"

    def test_unknown_kind_raises(self, at):
        raw = encode_record(42, at(0))
        with pytest.raises(WtmpParseError, match="unsupported record kind 42 at offset 768"):
            decode_record(raw, offset=768)

    def test_wrong_size_raises(self):
        with pytest.raises(WtmpParseError, match="record must be 384 bytes, got 10"):
            decode_record(b"\x00" * 10)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode_record(b"")


# ── iter_records / read_records ──────────────────────────────────


class TestIterRecords:
    def test_empty_stream(self):
        assert list(iter_records(io.BytesIO(b""))) == []

    def test_yields_in_file_order(self, at):
        data = encode_record(RecordKind.BOOT_TIME, at(0)) + encode_record(RecordKind.DEAD_PROCESS, at(1), line="tty1")
        records = list(iter_records(io.BytesIO(data)))
        assert records == [BootTime(time=at(0)), DeadProcess(line="tty1", time=at(1))]

    def test_truncated_tail_raises_with_offset(self, at):
        data = encode_record(RecordKind.BOOT_TIME, at(0)) + b"\x07\x00\x00"
        with pytest.raises(WtmpParseError) as excinfo:
            list(iter_records(io.BytesIO(data), source="wtmp.1"))
        assert excinfo.value.offset == RECORD_SIZE
        assert excinfo.value.source == "wtmp.1"
        assert "truncated record (3 of 384 bytes)" in str(excinfo.value)

    def test_records_before_error_are_yielded(self, at):
        data = encode_record(RecordKind.BOOT_TIME, at(0)) + encode_record(99, at(1))
        stream = iter_records(io.BytesIO(data))
        assert next(stream) == BootTime(time=at(0))
        with pytest.raises(WtmpParseError, match="offset 384"):
            next(stream)


class TestReadRecords:
    def test_reads_sample(self, sample_wtmp):
        records = read_records(sample_wtmp)
        assert len(records) == 9
        assert sum(isinstance(r, UserProcess) for r in records) == 4

    def test_empty_file(self, write_wtmp):
        assert read_records(write_wtmp([])) == []

    def test_error_names_path(self, write_wtmp):
        path = write_wtmp([], trailing=b"\x00")
        with pytest.raises(WtmpParseError, match=re.escape(path)):
            read_records(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_records(str(tmp_path / "missing"))
