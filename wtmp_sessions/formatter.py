"""Output formatters: last(1)-style text and NDJSON."""

import json
import os
from datetime import datetime, timedelta, tzinfo
from typing import Callable

from wtmp_sessions.records import Enter, ExitKind

EXIT_LABELS = {
    ExitKind.CRASH: "crash",
    ExitKind.REBOOT: "down",
}


def _local(dt: datetime, tz: tzinfo | None) -> datetime:
    # astimezone(None) converts to the system local zone
    return dt.astimezone(tz)


def format_login_time(dt: datetime) -> str:
    """``%a %b %e %H:%M`` with a space-padded day, independent of libc."""
    return f"{dt:%a %b} {dt.day:>2} {dt:%H:%M}"


def format_delta(delta: timedelta) -> str:
    """``(D+HH:MM)`` for a day or more, `` (HH:MM)`` otherwise."""
    total_minutes = max(0, int(delta.total_seconds())) // 60
    days, minutes = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(minutes, 60)
    if days > 0:
        return f"({days}+{hours:02d}:{minutes:02d})"
    return f" ({hours:02d}:{minutes:02d})"


def format_exit(enter: Enter, tz: tzinfo | None = None) -> str:
    exit = enter.exit
    if exit.kind is ExitKind.STILL_LOGGED_IN:
        return "still logged in"
    if exit.kind is ExitKind.LOGOUT:
        label = f"{_local(exit.time, tz):%H:%M}"
    else:
        label = EXIT_LABELS[exit.kind]
    return f"{label:<6}{format_delta(enter.duration)}"


def format_text(enter: Enter, tz: tzinfo | None = None) -> str:
    """Return one last(1)-style line."""
    login = format_login_time(_local(enter.login_time, tz))
    return (
        f"{enter.user:<9}{enter.line:<13}{enter.host:<17}"
        f"{login} - {format_exit(enter, tz)}"
    )


def format_json(enter: Enter, tz: tzinfo | None = None) -> str:
    """Return NDJSON, one object per session."""
    exit_time = enter.exit.time
    duration = enter.duration
    return json.dumps({
        "user": enter.user,
        "host": enter.host,
        "line": enter.line,
        "login_time": _local(enter.login_time, tz).isoformat(),
        "exit": enter.exit.kind.value,
        "exit_time": _local(exit_time, tz).isoformat() if exit_time else None,
        "duration_seconds": duration.total_seconds() if duration is not None else None,
    })


def format_footer(path: str, first_time: datetime | None, tz: tzinfo | None = None) -> str:
    """Trailer naming the file and the time of its oldest record."""
    name = os.path.basename(path)
    if first_time is None:
        return f"\n{name} begins with no records"
    first = _local(first_time, tz)
    return f"\n{name} begins {first:%a %b} {first.day:>2} {first:%H:%M:%S %Y}"


def get_formatter(output_format: str = "text", tz: tzinfo | None = None) -> Callable[[Enter], str]:
    """Factory that returns the right formatter bound to a timezone."""
    if output_format == "json":
        return lambda enter: format_json(enter, tz)
    return lambda enter: format_text(enter, tz)
