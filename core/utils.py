"""
General utility functions.

Date/time helpers, epoch-millisecond conversions, and text helpers for
embed-safe output.
"""
from __future__ import annotations

import datetime as dt
from typing import Any, Iterable, Optional

UTC = dt.timezone.utc

MS_PER_SECOND = 1000
MS_PER_HOUR = 60 * 60 * MS_PER_SECOND
MS_PER_DAY = 24 * MS_PER_HOUR


def utcnow() -> dt.datetime:
    return dt.datetime.now(tz=UTC)


def now_ms() -> int:
    return dt_to_ms(utcnow())


def dt_to_ms(value: dt.datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * MS_PER_SECOND)


def ms_to_dt(value: int) -> dt.datetime:
    return dt.datetime.fromtimestamp(value / MS_PER_SECOND, tz=UTC)


def ms_to_iso(value: int) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    text = ms_to_dt(value).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def iso_to_dt(value: Optional[str]) -> Optional[dt.datetime]:
    if not value:
        return None
    try:
        return dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None


def hours_to_ms(hours: float) -> int:
    return int(hours * MS_PER_HOUR)


def days_to_ms(days: float) -> int:
    return int(days * MS_PER_DAY)


def format_duration(seconds: float) -> str:
    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{hours}h {minutes}m {secs}s"


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def join_lines_limited(lines: Iterable[str], max_len: int) -> str:
    """Join lines with newlines, cutting the result to ``max_len``."""
    return truncate("\n".join(lines), max_len)


def is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_valid_id(value: Any) -> bool:
    return is_int(value) and 1 <= value <= 2**63 - 1


def safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            try:
                return int(stripped)
            except Exception:
                return default
    return default
