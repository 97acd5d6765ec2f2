"""Conversion between WebVTT clock timestamps (HH:MM:SS.mmm) and seconds."""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.ingestion.exceptions import FormatError

MAX_HOURS = 99

_TIMESTAMP_RE = re.compile(r"^(\d{2,}):(\d{2}):(\d{2})\.(\d{3})$")
_STRICT_TIMESTAMP_RE = re.compile(r"^\d{2}:\d{2}:\d{2}\.\d{3}$")
_RANGE_RE = re.compile(r"^(\d{2}:\d{2}:\d{2}\.\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2}\.\d{3})")


@dataclass(frozen=True)
class TimestampRange:
    """Start and end timestamps of a single cue."""

    start_time: str
    end_time: str


def _to_milliseconds(timestamp: str) -> int:
    match = _TIMESTAMP_RE.match(timestamp)
    if not match:
        raise FormatError(f"Invalid timestamp format: {timestamp!r}")
    hours, minutes, seconds, millis = (int(g) for g in match.groups())
    if minutes >= 60 or seconds >= 60:
        raise FormatError(f"Invalid timestamp format: {timestamp!r}")
    return ((hours * 60 + minutes) * 60 + seconds) * 1000 + millis


def timestamp_to_seconds(timestamp: str) -> float:
    """Convert a VTT timestamp (``HH:MM:SS.mmm``) to seconds.

    Raises:
        FormatError: If *timestamp* is not three colon-delimited numeric groups
            followed by a dot and three millisecond digits.
    """
    return _to_milliseconds(timestamp) / 1000


def seconds_to_timestamp(seconds: float) -> str:
    """Convert seconds to a zero-padded ``HH:MM:SS.mmm`` timestamp.

    Rounds to the nearest millisecond so that
    ``timestamp_to_seconds(seconds_to_timestamp(x))`` is exact to the millisecond.

    Raises:
        FormatError: If *seconds* is negative or would need more than two
            hour digits, which ``is_valid_timestamp`` does not accept.
    """
    if seconds < 0:
        raise FormatError(f"Cannot format negative offset: {seconds}")
    total_ms = round(seconds * 1000)
    hours, rest = divmod(total_ms, 3_600_000)
    if hours > MAX_HOURS:
        raise FormatError(f"Offset {seconds} exceeds {MAX_HOURS}:59:59.999")
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def calculate_duration(start_time: str, end_time: str) -> float:
    """Seconds elapsed between two timestamps (negative if *end_time* is earlier)."""
    return (_to_milliseconds(end_time) - _to_milliseconds(start_time)) / 1000


def is_valid_timestamp(timestamp: str) -> bool:
    """Return True if *timestamp* is a well-formed ``HH:MM:SS.mmm`` string."""
    if not isinstance(timestamp, str) or not _STRICT_TIMESTAMP_RE.match(timestamp):
        return False
    try:
        _to_milliseconds(timestamp)
    except FormatError:
        return False
    return True


def parse_timestamp_line(line: str) -> TimestampRange | None:
    """Parse a cue timing line such as ``00:00:10.000 --> 00:00:15.000``.

    Trailing cue settings (``align:start`` etc.) are ignored. Returns ``None``
    instead of raising when the line is not a timing line, so it can be used as
    a check while scanning.
    """
    match = _RANGE_RE.match(line.strip())
    if not match:
        return None
    return TimestampRange(start_time=match.group(1), end_time=match.group(2))
