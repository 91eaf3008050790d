"""Text form of durations used in retry delay strings.

Formatting always writes whole milliseconds followed by ``ms``. Parsing
accepts a bare integer (taken as milliseconds) or one or more
``<integer><unit>`` parts such as ``1s500ms``; supported units are ``ns``,
``us``/``µs``, ``ms``, ``s``, ``m``/``min``, ``h`` and ``d``. Durations are
held as :class:`datetime.timedelta`, so precision below one microsecond is
truncated.
"""

from __future__ import annotations

import re
from datetime import timedelta

_U64_MAX = 2**64 - 1

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "min": 60 * 1_000_000_000,
    "h": 3_600 * 1_000_000_000,
    "d": 86_400 * 1_000_000_000,
}

_PART = re.compile(r"\s*(\d+)\s*(ns|us|µs|μs|ms|min|s|m|h|d)")
_ONE_MILLISECOND = timedelta(milliseconds=1)


def format_duration(duration: timedelta) -> str:
    """Return ``duration`` as whole milliseconds with an ``ms`` suffix."""
    if duration < timedelta(0):
        raise ValueError("duration cannot be negative")
    millis = min(duration // _ONE_MILLISECOND, _U64_MAX)
    return f"{millis}ms"


def _checked_number(digits: str) -> int:
    value = int(digits)
    if value > _U64_MAX:
        raise ValueError(f"duration value {digits} is too large")
    return value


def _to_timedelta(total_nanos: int) -> timedelta:
    try:
        return timedelta(microseconds=total_nanos // 1_000)
    except OverflowError as exc:
        raise ValueError("duration is too large") from exc


def parse_duration(text: str) -> timedelta:
    """Parse duration text; raise ``ValueError`` when it is malformed."""
    body = text.strip()
    if not body:
        raise ValueError("duration text is empty")
    if body.isascii() and body.isdigit():
        return _to_timedelta(_checked_number(body) * _NANOS_PER_UNIT["ms"])

    total_nanos = 0
    position = 0
    while position < len(body):
        match = _PART.match(body, position)
        if match is None:
            raise ValueError(f"invalid duration text {text!r}")
        total_nanos += _checked_number(match.group(1)) * _NANOS_PER_UNIT[match.group(2)]
        position = match.end()
    return _to_timedelta(total_nanos)