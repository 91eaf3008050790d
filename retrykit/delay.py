"""Base delay strategies used between retry attempts.

A :class:`RetryDelay` produces the base sleep duration after a failed
attempt, before any jitter is applied. Every strategy has a canonical text
form shared by :func:`str` and :meth:`RetryDelay.parse`:

- ``none``
- ``fixed(<duration>)``
- ``random(<min>..=<max>)``
- ``exponential(initial=<duration>, max=<duration>, multiplier=<float>)``

Durations are written as whole milliseconds with an ``ms`` suffix and are
parsed with :func:`retrykit.duration_format.parse_duration`.
"""

from __future__ import annotations

import math
import random as _random
import re
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any, Mapping

from .duration_format import format_duration, parse_duration

DEFAULT_RETRY_DELAY = "exponential(initial=1000ms, max=60000ms, multiplier=2)"

_ZERO = timedelta(0)
_ONE_MICROSECOND = timedelta(microseconds=1)
_ONE_MILLISECOND = timedelta(milliseconds=1)

_FIXED_PATTERN = re.compile(r"fixed\((.*?)\)")
_RANDOM_PATTERN = re.compile(r"random\((.*?)\.\.=(.*?)\)")
_EXPONENTIAL_PATTERN = re.compile(
    r"exponential\(initial=(.*?), max=(.*?), multiplier=(.*?)\)"
)


def _format_float(value: float) -> str:
    """Write a float in plain decimal notation without an exponent."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        if value == 0 and math.copysign(1.0, value) < 0:
            return "-0"
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


def _parse_float(text: str) -> float:
    """Parse a float literal strictly: no surrounding space, no underscores."""
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid float literal {text!r}")
    return float(text)


def _parse_delay_duration(text: str) -> timedelta:
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise ValueError(f"invalid retry delay duration {text!r}") from exc


def _millis(duration: timedelta) -> int:
    return duration // _ONE_MILLISECOND


def _duration_from_millis(value: Any, field: str) -> timedelta:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{field} must be a non-negative integer of milliseconds")
    return timedelta(milliseconds=value)


def _require_non_negative(value: timedelta, field: str) -> None:
    if value < _ZERO:
        raise ValueError(f"{field} cannot be negative")


class RetryDelay:
    """Base delay strategy applied before jitter."""

    __slots__ = ()

    @classmethod
    def none(cls) -> NoDelay:
        """Create a strategy that retries immediately."""
        return NoDelay()

    @classmethod
    def fixed(cls, delay: timedelta) -> FixedDelay:
        """Create a strategy that always waits ``delay``."""
        return FixedDelay(delay)

    @classmethod
    def random(cls, minimum: timedelta, maximum: timedelta) -> RandomDelay:
        """Create a strategy that picks a delay uniformly from an inclusive range."""
        return RandomDelay(minimum, maximum)

    @classmethod
    def exponential(
        cls, initial: timedelta, maximum: timedelta, multiplier: float
    ) -> ExponentialDelay:
        """Create an exponential-backoff strategy capped by ``maximum``."""
        return ExponentialDelay(initial, maximum, multiplier)

    @classmethod
    def parse(cls, text: str) -> RetryDelay:
        """Parse the canonical text form; raise ``ValueError`` when malformed."""
        if text == "none":
            return NoDelay()
        match = _FIXED_PATTERN.fullmatch(text)
        if match:
            return FixedDelay(_parse_delay_duration(match.group(1)))
        match = _RANDOM_PATTERN.fullmatch(text)
        if match:
            return RandomDelay(
                _parse_delay_duration(match.group(1)),
                _parse_delay_duration(match.group(2)),
            )
        match = _EXPONENTIAL_PATTERN.fullmatch(text)
        if match:
            return ExponentialDelay(
                _parse_delay_duration(match.group(1)),
                _parse_delay_duration(match.group(2)),
                _parse_float(match.group(3)),
            )
        raise ValueError(f"invalid retry delay {text!r}")

    @classmethod
    def default(cls) -> RetryDelay:
        """Return the default exponential-backoff strategy."""
        return cls.parse(DEFAULT_RETRY_DELAY)

    def base_delay(self, attempt: int) -> timedelta:
        """Return the delay before jitter for a failed attempt numbered from 1.

        Attempts 0 and 1 both yield the first exponential step. Random
        strategies draw a fresh value on every call.
        """
        match self:
            case NoDelay():
                return _ZERO
            case FixedDelay(delay=delay):
                return delay
            case RandomDelay(minimum=minimum, maximum=maximum):
                if minimum >= maximum:
                    return minimum
                low = minimum // _ONE_MICROSECOND
                high = maximum // _ONE_MICROSECOND
                return timedelta(microseconds=_random.randint(low, high))
            case ExponentialDelay(initial=initial, maximum=maximum, multiplier=multiplier):
                return _exponential_delay(initial, maximum, multiplier, attempt)
        raise TypeError(f"unsupported delay strategy {type(self).__name__}")

    def validate(self) -> None:
        """Raise ``ValueError`` when the strategy cannot be used by an executor."""
        match self:
            case NoDelay():
                return
            case FixedDelay(delay=delay):
                if delay == _ZERO:
                    raise ValueError("fixed delay cannot be zero")
            case RandomDelay(minimum=minimum, maximum=maximum):
                if minimum == _ZERO:
                    raise ValueError("random delay minimum cannot be zero")
                if minimum > maximum:
                    raise ValueError(
                        "random delay minimum cannot be greater than maximum"
                    )
            case ExponentialDelay(initial=initial, maximum=maximum, multiplier=multiplier):
                if initial == _ZERO:
                    raise ValueError("exponential delay initial value cannot be zero")
                if maximum < initial:
                    raise ValueError(
                        "exponential delay maximum cannot be smaller than initial"
                    )
                if not math.isfinite(multiplier) or multiplier <= 1.0:
                    raise ValueError(
                        "exponential delay multiplier must be finite and greater than 1.0"
                    )

    def to_data(self) -> Any:
        """Return a plain value with durations in whole milliseconds."""
        match self:
            case NoDelay():
                return "None"
            case FixedDelay(delay=delay):
                return {"Fixed": _millis(delay)}
            case RandomDelay(minimum=minimum, maximum=maximum):
                return {"Random": {"min": _millis(minimum), "max": _millis(maximum)}}
            case ExponentialDelay(initial=initial, maximum=maximum, multiplier=multiplier):
                return {
                    "Exponential": {
                        "initial": _millis(initial),
                        "max": _millis(maximum),
                        "multiplier": multiplier,
                    }
                }
        raise TypeError(f"unsupported delay strategy {type(self).__name__}")

    @classmethod
    def from_data(cls, data: Any) -> RetryDelay:
        """Build a strategy from the value produced by :meth:`to_data`."""
        if data == "None":
            return NoDelay()
        if not isinstance(data, Mapping) or len(data) != 1:
            raise ValueError(f"invalid retry delay data {data!r}")
        ((name, body),) = data.items()
        try:
            if name == "Fixed":
                return FixedDelay(_duration_from_millis(body, "Fixed"))
            if name == "Random":
                return RandomDelay(
                    _duration_from_millis(body["min"], "min"),
                    _duration_from_millis(body["max"], "max"),
                )
            if name == "Exponential":
                multiplier = body["multiplier"]
                if isinstance(multiplier, bool) or not isinstance(
                    multiplier, (int, float)
                ):
                    raise ValueError("multiplier must be a number")
                return ExponentialDelay(
                    _duration_from_millis(body["initial"], "initial"),
                    _duration_from_millis(body["max"], "max"),
                    float(multiplier),
                )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid retry delay data {data!r}") from exc
        raise ValueError(f"unknown retry delay variant {name!r}")

    def __str__(self) -> str:
        match self:
            case NoDelay():
                return "none"
            case FixedDelay(delay=delay):
                return f"fixed({format_duration(delay)})"
            case RandomDelay(minimum=minimum, maximum=maximum):
                return f"random({format_duration(minimum)}..={format_duration(maximum)})"
            case ExponentialDelay(initial=initial, maximum=maximum, multiplier=multiplier):
                return (
                    f"exponential(initial={format_duration(initial)}, "
                    f"max={format_duration(maximum)}, "
                    f"multiplier={_format_float(multiplier)})"
                )
        return object.__str__(self)


def _exponential_delay(
    initial: timedelta, maximum: timedelta, multiplier: float, attempt: int
) -> timedelta:
    power = max(attempt - 1, 0)
    try:
        factor = multiplier**power
    except OverflowError:
        return maximum
    if not math.isfinite(factor):
        return maximum
    seconds = initial.total_seconds() * factor
    if not math.isfinite(seconds) or seconds >= maximum.total_seconds() or seconds < 0:
        return maximum
    return min(timedelta(seconds=seconds), maximum)


@dataclass(frozen=True)
class NoDelay(RetryDelay):
    """Retry immediately."""


@dataclass(frozen=True)
class FixedDelay(RetryDelay):
    """Wait the same duration after every failed attempt."""

    delay: timedelta

    def __post_init__(self) -> None:
        _require_non_negative(self.delay, "fixed delay")

    __str__ = RetryDelay.__str__


@dataclass(frozen=True)
class RandomDelay(RetryDelay):
    """Pick a delay uniformly from ``[minimum, maximum]``."""

    minimum: timedelta
    maximum: timedelta

    def __post_init__(self) -> None:
        _require_non_negative(self.minimum, "random delay minimum")
        _require_non_negative(self.maximum, "random delay maximum")

    __str__ = RetryDelay.__str__


@dataclass(frozen=True)
class ExponentialDelay(RetryDelay):
    """Exponential backoff starting at ``initial`` and capped by ``maximum``."""

    initial: timedelta
    maximum: timedelta
    multiplier: float

    def __post_init__(self) -> None:
        _require_non_negative(self.initial, "exponential delay initial value")
        _require_non_negative(self.maximum, "exponential delay maximum")
        object.__setattr__(self, "multiplier", float(self.multiplier))

    __str__ = RetryDelay.__str__


NoDelay.__str__ = RetryDelay.__str__  # type: ignore[method-assign]