"""wtmp decoder: fixed 384-byte glibc ``struct utmp`` records (Linux x86_64).

Record layout (little endian):
  ut_type      int16 + 2 bytes padding
  ut_pid       int32
  ut_line      char[32]
  ut_id        char[4]
  ut_user      char[32]
  ut_host      char[256]
  ut_exit      int16 e_termination, int16 e_exit
  ut_session   int32
  ut_tv        int32 tv_sec, int32 tv_usec
  ut_addr_v6   int32[4]
  __unused     char[20]
"""

import logging
import struct
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Generator

from wtmp_sessions.records import (
    BootTime,
    DeadProcess,
    LogRecord,
    OtherRecord,
    RecordKind,
    RunLevel,
    ShutdownTime,
    UserProcess,
)

logger = logging.getLogger(__name__)

RECORD_FORMAT = "<h2xi32s4s32s256shhiii16s20s"
RECORD_STRUCT = struct.Struct(RECORD_FORMAT)
RECORD_SIZE = RECORD_STRUCT.size  # 384

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class WtmpParseError(ValueError):
    """The log could not be decoded (truncated record, unknown record kind)."""

    def __init__(self, message: str, source: str = "<stream>", offset: int = 0):
        super().__init__(f"{source}: {message} at offset {offset}")
        self.source = source
        self.offset = offset


def _cstr(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def _to_datetime(sec: int, usec: int) -> datetime:
    return EPOCH + timedelta(seconds=sec, microseconds=usec)


def decode_record(
    data: bytes,
    source: str = "<stream>",
    offset: int = 0,
    split_shutdown: bool = False,
) -> LogRecord:
    """Decode one record.

    Args:
        data: Exactly RECORD_SIZE bytes.
        source: Name used in error messages.
        offset: Byte offset of the record within the source.
        split_shutdown: Emit RUN_LVL records from user "shutdown" as
            ShutdownTime instead of RunLevel.

    Raises:
        WtmpParseError: Wrong buffer size or unknown ut_type.
    """
    if len(data) != RECORD_SIZE:
        raise WtmpParseError(
            f"record must be {RECORD_SIZE} bytes, got {len(data)}", source, offset
        )

    (ut_type, pid, line, _id, user, host,
     _term, _exit, _session, tv_sec, tv_usec, _addr, _unused) = RECORD_STRUCT.unpack(data)

    try:
        kind = RecordKind(ut_type)
    except ValueError:
        raise WtmpParseError(f"unsupported record kind {ut_type}", source, offset) from None

    time = _to_datetime(tv_sec, tv_usec)

    if kind is RecordKind.USER_PROCESS:
        return UserProcess(user=_cstr(user), host=_cstr(host), line=_cstr(line), time=time, pid=pid)
    if kind is RecordKind.DEAD_PROCESS:
        return DeadProcess(line=_cstr(line), time=time, pid=pid)
    if kind is RecordKind.BOOT_TIME:
        return BootTime(time=time)
    if kind is RecordKind.RUN_LVL:
        name = _cstr(user)
        if split_shutdown and name == "shutdown":
            return ShutdownTime(time=time)
        return RunLevel(user=name, time=time, pid=pid)
    return OtherRecord(kind=kind, time=time)


def encode_record(
    kind: RecordKind,
    time: datetime,
    user: str = "",
    host: str = "",
    line: str = "",
    pid: int = 0,
) -> bytes:
    """Pack one record; unset fields are zero-filled."""
    delta = time - EPOCH
    tv_sec = delta.days * 86400 + delta.seconds
    return RECORD_STRUCT.pack(
        int(kind), pid,
        line.encode("utf-8"), b"",
        user.encode("utf-8"), host.encode("utf-8"),
        0, 0, 0,
        tv_sec, delta.microseconds,
        b"", b"",
    )


def iter_records(
    stream: BinaryIO,
    source: str = "<stream>",
    split_shutdown: bool = False,
) -> Generator[LogRecord, None, None]:
    """Yield records from a binary stream, oldest first.

    Raises WtmpParseError when the stream ends inside a record.
    """
    offset = 0
    while True:
        chunk = stream.read(RECORD_SIZE)
        if not chunk:
            return
        if len(chunk) < RECORD_SIZE:
            raise WtmpParseError(
                f"truncated record ({len(chunk)} of {RECORD_SIZE} bytes)", source, offset
            )
        yield decode_record(chunk, source=source, offset=offset, split_shutdown=split_shutdown)
        offset += RECORD_SIZE


def read_records(path: str, split_shutdown: bool = False) -> list[LogRecord]:
    """Read every record of a wtmp file."""
    with open(path, "rb") as f:
        records = list(iter_records(f, source=path, split_shutdown=split_shutdown))
    logger.debug("Read %d records from %s", len(records), path)
    return records
