"""Immutable retry option snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from .delay import ExponentialDelay, FixedDelay, NoDelay, RandomDelay, RetryDelay
from .errors import RetryConfigError
from .jitter import RetryJitter
from .timeout import AttemptTimeoutOption

DEFAULT_RETRY_MAX_ATTEMPTS = 5
DEFAULT_RETRY_MAX_OPERATION_ELAPSED: timedelta | None = None
DEFAULT_RETRY_MAX_TOTAL_ELAPSED: timedelta | None = None
DEFAULT_RETRY_WORKER_CANCEL_GRACE_MILLIS = 100

KEY_MAX_ATTEMPTS = "max_attempts"
KEY_DELAY = "delay"
KEY_JITTER_FACTOR = "jitter_factor"
KEY_ATTEMPT_TIMEOUT_MILLIS = "attempt_timeout_millis"

_ZERO = timedelta(0)


@dataclass(frozen=True)
class RetryOptions:
    """Attempt limits, elapsed budgets, delay and jitter used by a retry executor.

    Construction validates every value and raises :class:`RetryConfigError`
    naming the offending configuration key.

    ``max_operation_elapsed`` bounds the cumulative time spent in the user
    operation; ``max_total_elapsed`` bounds the whole retry flow including
    sleeps and listeners. ``None`` means unlimited for both.
    """

    max_attempts: int = DEFAULT_RETRY_MAX_ATTEMPTS
    max_operation_elapsed: timedelta | None = DEFAULT_RETRY_MAX_OPERATION_ELAPSED
    max_total_elapsed: timedelta | None = DEFAULT_RETRY_MAX_TOTAL_ELAPSED
    delay: RetryDelay = field(default_factory=RetryDelay.default)
    jitter: RetryJitter = field(default_factory=RetryJitter.default)
    attempt_timeout: AttemptTimeoutOption | None = None
    worker_cancel_grace: timedelta = field(
        default_factory=lambda: timedelta(
            milliseconds=DEFAULT_RETRY_WORKER_CANCEL_GRACE_MILLIS
        )
    )

    def __post_init__(self) -> None:
        if (
            isinstance(self.max_attempts, bool)
            or not isinstance(self.max_attempts, int)
            or self.max_attempts <= 0
        ):
            raise RetryConfigError.invalid_value(
                KEY_MAX_ATTEMPTS, "max_attempts must be greater than zero"
            )
        self.validate()

    @classmethod
    def default(cls) -> RetryOptions:
        """Return five attempts, unlimited budgets, default delay and no jitter."""
        return cls()

    def validate(self) -> None:
        """Raise :class:`RetryConfigError` when delay, jitter or timeout is invalid."""
        try:
            self.delay.validate()
        except ValueError as exc:
            raise RetryConfigError.invalid_value(KEY_DELAY, str(exc)) from exc
        try:
            self.jitter.validate()
        except ValueError as exc:
            raise RetryConfigError.invalid_value(KEY_JITTER_FACTOR, str(exc)) from exc
        if self.attempt_timeout is not None:
            try:
                self.attempt_timeout.validate()
            except ValueError as exc:
                raise RetryConfigError.invalid_value(
                    KEY_ATTEMPT_TIMEOUT_MILLIS, str(exc)
                ) from exc

    def base_delay_for_attempt(self, attempt: int) -> timedelta:
        """Return the delay before jitter for a failed attempt numbered from 1."""
        return self.delay.base_delay(attempt)

    def delay_for_attempt(self, attempt: int) -> timedelta:
        """Return the delay for a failed attempt after jitter."""
        return self.jitter.delay_for_attempt(self.delay, attempt)

    def next_base_delay_from_current(self, current: timedelta) -> timedelta:
        """Return the base delay that follows ``current``.

        Exponential delays advance one multiplier step from ``current`` and are
        capped at the maximum; other strategies use their per-attempt value.
        """
        match self.delay:
            case NoDelay():
                return _ZERO
            case FixedDelay(delay=delay):
                return delay
            case RandomDelay():
                return self.delay.base_delay(1)
            case ExponentialDelay(maximum=maximum, multiplier=multiplier):
                bounded = min(current, maximum)
                try:
                    following = bounded * multiplier
                except OverflowError:
                    return maximum
                return maximum if following > maximum else following
        return self.delay.base_delay(1)

    def jittered_delay(self, base_delay: timedelta) -> timedelta:
        """Apply the configured jitter to ``base_delay``."""
        return self.jitter.apply(base_delay)

    def next_delay_from_current(self, current: timedelta) -> timedelta:
        """Return the next base delay after ``current`` with jitter applied."""
        return self.jittered_delay(self.next_base_delay_from_current(current))