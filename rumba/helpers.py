"""Conversions between JSON values and UTC datetimes."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def deserialize_string_or_vec(value: Any) -> list[Any]:
    """Accept either a single value or a list of values and always return a list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if value is None:
        raise ValueError("expected a value or a list of values, got null")
    return [value]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _from_parts(secs: int, micros: int, value: Any, unit: str) -> datetime:
    try:
        return _EPOCH + timedelta(seconds=secs, microseconds=micros)
    except OverflowError as exc:
        raise ValueError(
            f"failed to parse `{value}` as UTC datetime (in {unit})"
        ) from exc


def utc_from_seconds_f(value: Any) -> datetime:
    """Read a number of seconds since the epoch, keeping millisecond precision."""
    if not _is_number(value):
        raise ValueError(f"failed to parse `{value}` as UTC datetime (in seconds)")
    if isinstance(value, int):
        return _from_parts(value, 0, value, "seconds")
    if not math.isfinite(value):
        raise ValueError(f"failed to parse `{value}` as UTC datetime (in seconds)")
    secs = math.trunc(value)
    millis = max(0, math.trunc((value - secs) * 1000))
    return _from_parts(secs, millis * 1000, value, "seconds")


def utc_from_milliseconds(value: Any) -> datetime:
    """Read an integer number of milliseconds since the epoch."""
    if not _is_number(value) or isinstance(value, float):
        raise ValueError(
            f"failed to parse `{value}` as UTC datetime (in milliseconds)"
        )
    secs = -((-value) // 1000) if value < 0 else value // 1000
    remainder = value - secs * 1000
    if remainder < 0:
        raise ValueError(
            f"failed to parse `{value}` as UTC datetime (in milliseconds)"
        )
    return _from_parts(secs, remainder * 1000, value, "milliseconds")


def utc_to_milliseconds(dt: datetime) -> int:
    """Milliseconds since the epoch; naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def to_utc(naive: datetime) -> str:
    """Render a datetime as an RFC 3339 UTC timestamp ending in ``Z``."""
    if naive.tzinfo is not None:
        naive = naive.astimezone(timezone.utc).replace(tzinfo=None)
    micros = naive.microsecond
    if micros == 0:
        fraction = ""
    elif micros % 1000 == 0:
        fraction = f".{micros // 1000:03d}"
    else:
        fraction = f".{micros:06d}"
    return (
        f"{naive.year:04d}-{naive.month:02d}-{naive.day:02d}"
        f"T{naive.hour:02d}:{naive.minute:02d}:{naive.second:02d}{fraction}Z"
    )


def maybe_to_utc(naive: datetime | None) -> str | None:
    """Like :func:`to_utc`, passing ``None`` through."""
    if naive is None:
        return None
    return to_utc(naive)