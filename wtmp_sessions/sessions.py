"""Session reconstruction: pair every login with the record that ended it.

Both algorithms return one Enter per UserProcess record, most recent login
first, so callers can truncate from the front to keep the N newest sessions.
"""

import logging
import string
from typing import Callable, Iterable

from wtmp_sessions.records import (
    BootTime,
    DeadProcess,
    Enter,
    Exit,
    LogRecord,
    RunLevel,
    ShutdownTime,
    UserProcess,
)
from wtmp_sessions.wtmp import read_records

logger = logging.getLogger(__name__)

REBOOT_RUNLEVELS = ("0", "6")
ALGORITHMS = ("scan", "sweep")


def runlevel_char(pid: int) -> str:
    """Second byte of the big-endian 32-bit pid, as a character.

    sysvinit packs the runlevel into the pid of "runlevel" records.
    """
    return chr((pid >> 16) & 0xFF)


def _is_reboot_runlevel(record: RunLevel) -> bool:
    level = runlevel_char(record.pid)
    if level not in string.digits:
        logger.debug("runlevel record at %s has non-digit level byte %r",
                     record.time.isoformat(), level)
        return False
    return level in REBOOT_RUNLEVELS


def _restart_exit(record: LogRecord) -> Exit | None:
    """Exit for records that close every open session, regardless of line."""
    if isinstance(record, RunLevel) and record.user == "shutdown":
        return Exit.reboot(record.time)
    if isinstance(record, BootTime):
        return Exit.crash(record.time)
    if isinstance(record, ShutdownTime):
        return Exit.reboot(record.time)
    if isinstance(record, RunLevel) and record.user == "runlevel" and _is_reboot_runlevel(record):
        return Exit.reboot(record.time)
    return None


def match_exit(record: LogRecord, line: str) -> Exit | None:
    """Exit that *record* gives a session on *line*, or None if it doesn't end it.

    Tests, first match wins:
      DeadProcess on the same line  -> logout
      RunLevel user "shutdown"      -> reboot
      BootTime                      -> crash
      ShutdownTime                  -> reboot
      RunLevel user "runlevel", 0/6 -> reboot
    """
    if isinstance(record, DeadProcess) and record.line == line:
        return Exit.logout(record.time)
    return _restart_exit(record)


def _enter(login: UserProcess, exit: Exit) -> Enter:
    return Enter(
        user=login.user,
        host=login.host,
        line=login.line,
        login_time=login.time,
        exit=exit,
    )


def find_exit(later: Iterable[LogRecord], line: str) -> Exit:
    """First exit among *later* records (oldest first) for a login on *line*."""
    for record in later:
        found = match_exit(record, line)
        if found is not None:
            return found
    return Exit.still_logged_in()


def reconstruct(records: Iterable[LogRecord]) -> list[Enter]:
    """Resolve every login with an independent forward scan. O(logins * records)."""
    entries = list(records)
    sessions = []
    for i in range(len(entries) - 1, -1, -1):
        record = entries[i]
        if not isinstance(record, UserProcess):
            continue
        exit = find_exit(entries[i + 1:], record.line)
        sessions.append(_enter(record, exit))
    logger.debug("Resolved %d sessions from %d records", len(sessions), len(entries))
    return sessions


def reconstruct_linear(records: Iterable[LogRecord]) -> list[Enter]:
    """Resolve every login in one backward sweep. O(records).

    Walking newest to oldest, ``pending`` maps a line to the nearest later
    logout on it and ``restart`` is the nearest later crash/reboot. A restart
    marker is nearer than any logout already seen, so it clears ``pending``.
    """
    entries = list(records)
    sessions = []
    pending: dict[str, Exit] = {}
    restart = Exit.still_logged_in()

    for record in reversed(entries):
        if isinstance(record, UserProcess):
            sessions.append(_enter(record, pending.get(record.line, restart)))
        elif isinstance(record, DeadProcess):
            pending[record.line] = Exit.logout(record.time)
        else:
            marker = _restart_exit(record)
            if marker is not None:
                restart = marker
                pending.clear()

    logger.debug("Resolved %d sessions from %d records", len(sessions), len(entries))
    return sessions


def get_reconstructor(algorithm: str) -> Callable[[Iterable[LogRecord]], list[Enter]]:
    """Map an algorithm name ("scan" or "sweep") to its function."""
    if algorithm == "scan":
        return reconstruct
    if algorithm == "sweep":
        return reconstruct_linear
    raise ValueError(f"Unknown algorithm {algorithm!r}, expected one of {ALGORITHMS}")


def load_sessions(path: str, split_shutdown: bool = False, algorithm: str = "sweep") -> list[Enter]:
    """Read a wtmp file and reconstruct its sessions.

    Raises:
        WtmpParseError: The file is malformed.
        FileNotFoundError: The file does not exist.
        ValueError: Unknown algorithm.
    """
    resolve = get_reconstructor(algorithm)
    return resolve(read_records(path, split_shutdown=split_shutdown))
