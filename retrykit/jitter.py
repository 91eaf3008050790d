"""Jitter applied on top of a base retry delay.

Text form shared by :func:`str` and :meth:`RetryJitter.parse`:

- ``none`` in any letter case, with surrounding whitespace allowed;
- ``factor:`` followed by a float in ``[0.0, 1.0]``; whitespace may follow
  the colon. The ``factor:`` prefix is case-sensitive.
"""

from __future__ import annotations

import math
import random as _random
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from .delay import RetryDelay, _format_float, _parse_float
from .errors import ParseRetryJitterError

DEFAULT_RETRY_JITTER = "none"

_U64_MAX = 2**64 - 1
_ZERO = timedelta(0)
_ONE_MICROSECOND = timedelta(microseconds=1)

_NONE_PATTERN = re.compile(r"(?i)\s*none\s*")
_FACTOR_PATTERN = re.compile(r"\s*factor:\s*(\S(?:.*\S)?)\s*")


class RetryJitter:
    """Jitter strategy applied after a base delay has been calculated."""

    __slots__ = ()

    @classmethod
    def none(cls) -> NoJitter:
        """Create a strategy that leaves delays unchanged."""
        return NoJitter()

    @classmethod
    def factor(cls, factor: float) -> FactorJitter:
        """Create symmetric relative jitter, e.g. ``0.2`` for base ±20%."""
        return FactorJitter(factor)

    @classmethod
    def parse(cls, text: str) -> RetryJitter:
        """Parse jitter text; raise :class:`ParseRetryJitterError` when invalid."""
        if _NONE_PATTERN.fullmatch(text):
            return NoJitter()
        match = _FACTOR_PATTERN.fullmatch(text)
        if match is None:
            raise ParseRetryJitterError(f"invalid retry jitter {text!r}")
        try:
            value = _parse_float(match.group(1))
        except ValueError:
            raise ParseRetryJitterError("invalid retry jitter factor") from None
        if not 0.0 <= value <= 1.0:
            raise ParseRetryJitterError("retry jitter factor must be in range [0.0, 1.0]")
        return FactorJitter(value)

    @classmethod
    def default(cls) -> RetryJitter:
        """Return the default jitter, which is no jitter."""
        return cls.parse(DEFAULT_RETRY_JITTER)

    def apply(self, base: timedelta) -> timedelta:
        """Return ``base`` perturbed by the jitter, never below zero.

        Non-finite or non-positive factors, zero bases and bases larger than
        the 64-bit nanosecond range are returned unchanged.
        """
        if not isinstance(self, FactorJitter):
            return base
        factor = self.value
        if not math.isfinite(factor) or factor <= 0.0 or base <= _ZERO:
            return base
        base_micros = base // _ONE_MICROSECOND
        if base_micros * 1_000 > _U64_MAX:
            return base
        span = base_micros * factor
        jitter = _random.uniform(-span, span)
        micros = int(min(max(base_micros + jitter, 0.0), _U64_MAX / 1_000))
        return timedelta(microseconds=micros)

    def delay_for_attempt(self, delay_strategy: RetryDelay, attempt: int) -> timedelta:
        """Compute the base delay for ``attempt`` and apply the jitter."""
        return self.apply(delay_strategy.base_delay(attempt))

    def validate(self) -> None:
        """Raise ``ValueError`` unless the factor is finite and in ``[0.0, 1.0]``."""
        if isinstance(self, FactorJitter):
            value = self.value
            if not math.isfinite(value) or value < 0.0 or value > 1.0:
                raise ValueError("jitter factor must be finite and in range [0.0, 1.0]")

    def to_data(self) -> Any:
        """Return ``"None"`` or ``{"Factor": value}``."""
        if isinstance(self, FactorJitter):
            return {"Factor": self.value}
        return "None"

    @classmethod
    def from_data(cls, data: Any) -> RetryJitter:
        """Build a strategy from the value produced by :meth:`to_data`."""
        if data == "None":
            return NoJitter()
        if isinstance(data, Mapping) and set(data) == {"Factor"}:
            value = data["Factor"]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError("jitter factor must be a number")
            return FactorJitter(float(value))
        raise ValueError(f"invalid retry jitter data {data!r}")

    def __str__(self) -> str:
        if isinstance(self, FactorJitter):
            return f"factor:{_format_float(self.value)}"
        return "none"


@dataclass(frozen=True)
class NoJitter(RetryJitter):
    """Leave delays unchanged."""

    __str__ = RetryJitter.__str__


@dataclass(frozen=True)
class FactorJitter(RetryJitter):
    """Symmetric jitter drawn from ``[-base * value, base * value]``."""

    value: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", float(self.value))

    __str__ = RetryJitter.__str__