"""Typed wtmp records and the session result model.

Record kinds follow glibc ``ut_type`` values:

  0 EMPTY          5 INIT_PROCESS
  1 RUN_LVL        6 LOGIN_PROCESS
  2 BOOT_TIME      7 USER_PROCESS
  3 NEW_TIME       8 DEAD_PROCESS
  4 OLD_TIME       9 ACCOUNTING
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, IntEnum
from typing import Union


class RecordKind(IntEnum):
    EMPTY = 0
    RUN_LVL = 1
    BOOT_TIME = 2
    NEW_TIME = 3
    OLD_TIME = 4
    INIT_PROCESS = 5
    LOGIN_PROCESS = 6
    USER_PROCESS = 7
    DEAD_PROCESS = 8
    ACCOUNTING = 9


@dataclass(frozen=True)
class UserProcess:
    user: str
    host: str
    line: str
    time: datetime
    pid: int = 0


@dataclass(frozen=True)
class DeadProcess:
    line: str
    time: datetime
    pid: int = 0


@dataclass(frozen=True)
class BootTime:
    time: datetime


@dataclass(frozen=True)
class RunLevel:
    user: str
    time: datetime
    pid: int = 0


@dataclass(frozen=True)
class ShutdownTime:
    time: datetime


@dataclass(frozen=True)
class OtherRecord:
    """Any known record kind that never closes a session."""
    kind: RecordKind
    time: datetime


LogRecord = Union[UserProcess, DeadProcess, BootTime, RunLevel, ShutdownTime, OtherRecord]


class ExitKind(Enum):
    LOGOUT = "logout"
    CRASH = "crash"
    REBOOT = "reboot"
    STILL_LOGGED_IN = "still_logged_in"


@dataclass(frozen=True)
class Exit:
    kind: ExitKind
    time: datetime | None = None

    def __post_init__(self):
        if (self.kind is ExitKind.STILL_LOGGED_IN) != (self.time is None):
            raise ValueError(f"{self.kind.name} exit with time={self.time!r}")

    @classmethod
    def logout(cls, time: datetime) -> "Exit":
        return cls(ExitKind.LOGOUT, time)

    @classmethod
    def crash(cls, time: datetime) -> "Exit":
        return cls(ExitKind.CRASH, time)

    @classmethod
    def reboot(cls, time: datetime) -> "Exit":
        return cls(ExitKind.REBOOT, time)

    @classmethod
    def still_logged_in(cls) -> "Exit":
        return cls(ExitKind.STILL_LOGGED_IN)


@dataclass(frozen=True)
class Enter:
    """One login and the way it ended."""
    user: str
    host: str
    line: str
    login_time: datetime
    exit: Exit

    @property
    def duration(self) -> timedelta | None:
        if self.exit.time is None:
            return None
        return self.exit.time - self.login_time
