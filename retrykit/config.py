"""Raw retry configuration values and their merge into :class:`RetryOptions`."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from .delay import RetryDelay
from .errors import RetryConfigError
from .jitter import RetryJitter
from .options import (
    KEY_ATTEMPT_TIMEOUT_MILLIS,
    KEY_DELAY,
    KEY_JITTER_FACTOR,
    KEY_MAX_ATTEMPTS,
    RetryOptions,
)
from .timeout import AttemptTimeoutOption, AttemptTimeoutPolicy

KEY_MAX_OPERATION_ELAPSED_MILLIS = "max_operation_elapsed_millis"
KEY_MAX_OPERATION_ELAPSED_UNLIMITED = "max_operation_elapsed_unlimited"
KEY_MAX_TOTAL_ELAPSED_MILLIS = "max_total_elapsed_millis"
KEY_MAX_TOTAL_ELAPSED_UNLIMITED = "max_total_elapsed_unlimited"
KEY_ATTEMPT_TIMEOUT_POLICY = "attempt_timeout_policy"
KEY_WORKER_CANCEL_GRACE_MILLIS = "worker_cancel_grace_millis"
KEY_DELAY_STRATEGY = "delay_strategy"
KEY_FIXED_DELAY_MILLIS = "fixed_delay_millis"
KEY_RANDOM_MIN_DELAY_MILLIS = "random_min_delay_millis"
KEY_RANDOM_MAX_DELAY_MILLIS = "random_max_delay_millis"
KEY_EXPONENTIAL_INITIAL_DELAY_MILLIS = "exponential_initial_delay_millis"
KEY_EXPONENTIAL_MAX_DELAY_MILLIS = "exponential_max_delay_millis"
KEY_EXPONENTIAL_MULTIPLIER = "exponential_multiplier"

DEFAULT_RETRY_RANDOM_MIN_DELAY_MILLIS = 1_000
DEFAULT_RETRY_RANDOM_MAX_DELAY_MILLIS = 10_000
DEFAULT_RETRY_EXPONENTIAL_INITIAL_DELAY_MILLIS = 1_000
DEFAULT_RETRY_EXPONENTIAL_MAX_DELAY_MILLIS = 60_000
DEFAULT_RETRY_EXPONENTIAL_MULTIPLIER = 2.0
DEFAULT_RETRY_JITTER_FACTOR = 0.0

_U32_MAX = 2**32 - 1
_U64_MAX = 2**64 - 1


def _type_error(key: str, kind: str, raw: Any) -> RetryConfigError:
    return RetryConfigError.invalid_value(key, f"expected {kind}, got {raw!r}")


def _read_int(config: Mapping[str, Any], key: str, upper: int) -> int | None:
    raw = config.get(key)
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise _type_error(key, "an unsigned integer", raw)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not (text.isascii() and text.isdigit()):
            raise _type_error(key, "an unsigned integer", raw)
        value = int(text)
    else:
        raise _type_error(key, "an unsigned integer", raw)
    if not 0 <= value <= upper:
        raise RetryConfigError.invalid_value(key, f"value {value} is out of range")
    return value


def _read_float(config: Mapping[str, Any], key: str) -> float | None:
    raw = config.get(key)
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise _type_error(key, "a number", raw)
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            raise _type_error(key, "a number", raw) from None
    raise _type_error(key, "a number", raw)


def _read_bool(config: Mapping[str, Any], key: str) -> bool | None:
    raw = config.get(key)
    if raw is None:
        return None
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text == "true":
            return True
        if text == "false":
            return False
    raise _type_error(key, "a boolean", raw)


def _read_str(config: Mapping[str, Any], key: str) -> str | None:
    raw = config.get(key)
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    raise _type_error(key, "a string", raw)


def _millis(key: str, value: int) -> timedelta:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise RetryConfigError.invalid_value(
            key, "value must be a non-negative integer of milliseconds"
        )
    return timedelta(milliseconds=value)


def _require(key: str, value: Any, message: str) -> Any:
    if value is None:
        raise RetryConfigError.invalid_value(key, message)
    return value


def _parse_attempt_timeout_policy(text: str) -> AttemptTimeoutPolicy:
    try:
        return AttemptTimeoutPolicy.parse(text)
    except ValueError as exc:
        raise RetryConfigError.invalid_value(KEY_ATTEMPT_TIMEOUT_POLICY, str(exc)) from exc


@dataclass
class RetryConfigValues:
    """Raw retry settings as read from configuration; ``None`` means absent."""

    max_attempts: int | None = None
    max_operation_elapsed_millis: int | None = None
    max_operation_elapsed_unlimited: bool | None = None
    max_total_elapsed_millis: int | None = None
    max_total_elapsed_unlimited: bool | None = None
    attempt_timeout_millis: int | None = None
    attempt_timeout_policy: str | None = None
    worker_cancel_grace_millis: int | None = None
    delay: str | None = None
    delay_strategy: str | None = None
    fixed_delay_millis: int | None = None
    random_min_delay_millis: int | None = None
    random_max_delay_millis: int | None = None
    exponential_initial_delay_millis: int | None = None
    exponential_max_delay_millis: int | None = None
    exponential_multiplier: float | None = None
    jitter_factor: float | None = None

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> RetryConfigValues:
        """Read every retry key from ``config``.

        Keys are relative to the retry section. Values may be native types or
        their text forms; a present value of the wrong type raises
        :class:`RetryConfigError` naming the key.
        """
        if not isinstance(config, Mapping):
            raise TypeError("retry configuration must be a mapping")
        return cls(
            max_attempts=_read_int(config, KEY_MAX_ATTEMPTS, _U32_MAX),
            max_operation_elapsed_millis=_read_int(
                config, KEY_MAX_OPERATION_ELAPSED_MILLIS, _U64_MAX
            ),
            max_operation_elapsed_unlimited=_read_bool(
                config, KEY_MAX_OPERATION_ELAPSED_UNLIMITED
            ),
            max_total_elapsed_millis=_read_int(
                config, KEY_MAX_TOTAL_ELAPSED_MILLIS, _U64_MAX
            ),
            max_total_elapsed_unlimited=_read_bool(
                config, KEY_MAX_TOTAL_ELAPSED_UNLIMITED
            ),
            attempt_timeout_millis=_read_int(
                config, KEY_ATTEMPT_TIMEOUT_MILLIS, _U64_MAX
            ),
            attempt_timeout_policy=_read_str(config, KEY_ATTEMPT_TIMEOUT_POLICY),
            worker_cancel_grace_millis=_read_int(
                config, KEY_WORKER_CANCEL_GRACE_MILLIS, _U64_MAX
            ),
            delay=_read_str(config, KEY_DELAY),
            delay_strategy=_read_str(config, KEY_DELAY_STRATEGY),
            fixed_delay_millis=_read_int(config, KEY_FIXED_DELAY_MILLIS, _U64_MAX),
            random_min_delay_millis=_read_int(
                config, KEY_RANDOM_MIN_DELAY_MILLIS, _U64_MAX
            ),
            random_max_delay_millis=_read_int(
                config, KEY_RANDOM_MAX_DELAY_MILLIS, _U64_MAX
            ),
            exponential_initial_delay_millis=_read_int(
                config, KEY_EXPONENTIAL_INITIAL_DELAY_MILLIS, _U64_MAX
            ),
            exponential_max_delay_millis=_read_int(
                config, KEY_EXPONENTIAL_MAX_DELAY_MILLIS, _U64_MAX
            ),
            exponential_multiplier=_read_float(config, KEY_EXPONENTIAL_MULTIPLIER),
            jitter_factor=_read_float(config, KEY_JITTER_FACTOR),
        )

    def to_options(self, default: RetryOptions) -> RetryOptions:
        """Merge these values over ``default`` and return validated options."""
        max_attempts = (
            self.max_attempts if self.max_attempts is not None else default.max_attempts
        )
        return RetryOptions(
            max_attempts=max_attempts,
            max_operation_elapsed=self._max_operation_elapsed(default),
            max_total_elapsed=self._max_total_elapsed(default),
            delay=self._delay(default),
            jitter=self._jitter(default),
            attempt_timeout=self._attempt_timeout(default),
            worker_cancel_grace=self._worker_cancel_grace(default),
        )

    def _max_operation_elapsed(self, default: RetryOptions) -> timedelta | None:
        if self.max_operation_elapsed_unlimited:
            return None
        if self.max_operation_elapsed_millis is None:
            return default.max_operation_elapsed
        return _millis(KEY_MAX_OPERATION_ELAPSED_MILLIS, self.max_operation_elapsed_millis)

    def _max_total_elapsed(self, default: RetryOptions) -> timedelta | None:
        if self.max_total_elapsed_unlimited:
            return None
        if self.max_total_elapsed_millis is None:
            return default.max_total_elapsed
        return _millis(KEY_MAX_TOTAL_ELAPSED_MILLIS, self.max_total_elapsed_millis)

    def _attempt_timeout(self, default: RetryOptions) -> AttemptTimeoutOption | None:
        default_timeout = default.attempt_timeout
        policy = (
            _parse_attempt_timeout_policy(self.attempt_timeout_policy)
            if self.attempt_timeout_policy is not None
            else None
        )
        if self.attempt_timeout_millis is not None:
            if policy is None:
                policy = (
                    default_timeout.policy
                    if default_timeout is not None
                    else AttemptTimeoutPolicy.default()
                )
            return AttemptTimeoutOption(
                _millis(KEY_ATTEMPT_TIMEOUT_MILLIS, self.attempt_timeout_millis), policy
            )
        if policy is None:
            return default_timeout
        if default_timeout is None:
            raise RetryConfigError.invalid_value(
                KEY_ATTEMPT_TIMEOUT_POLICY,
                "attempt_timeout_policy requires attempt_timeout_millis "
                "when the default has no attempt timeout",
            )
        return default_timeout.with_policy(policy)

    def _worker_cancel_grace(self, default: RetryOptions) -> timedelta:
        if self.worker_cancel_grace_millis is None:
            return default.worker_cancel_grace
        return _millis(KEY_WORKER_CANCEL_GRACE_MILLIS, self.worker_cancel_grace_millis)

    def _delay(self, default: RetryOptions) -> RetryDelay:
        if self.delay is not None:
            key, raw = KEY_DELAY, self.delay
        elif self.delay_strategy is not None:
            key, raw = KEY_DELAY_STRATEGY, self.delay_strategy
        else:
            implicit = self._implicit_delay()
            return implicit if implicit is not None else default.delay

        strategy = raw.strip().lower()
        if strategy == "none":
            return RetryDelay.none()
        if strategy == "fixed":
            millis = _require(
                KEY_FIXED_DELAY_MILLIS,
                self.fixed_delay_millis,
                "fixed delay strategy requires fixed_delay_millis",
            )
            return RetryDelay.fixed(_millis(KEY_FIXED_DELAY_MILLIS, millis))
        if strategy == "random":
            minimum = _require(
                KEY_RANDOM_MIN_DELAY_MILLIS,
                self.random_min_delay_millis,
                "random delay strategy requires random_min_delay_millis",
            )
            maximum = _require(
                KEY_RANDOM_MAX_DELAY_MILLIS,
                self.random_max_delay_millis,
                "random delay strategy requires random_max_delay_millis",
            )
            return RetryDelay.random(
                _millis(KEY_RANDOM_MIN_DELAY_MILLIS, minimum),
                _millis(KEY_RANDOM_MAX_DELAY_MILLIS, maximum),
            )
        if strategy in ("exponential", "exponential_backoff"):
            initial = _require(
                KEY_EXPONENTIAL_INITIAL_DELAY_MILLIS,
                self.exponential_initial_delay_millis,
                "exponential delay strategy requires exponential_initial_delay_millis",
            )
            maximum = _require(
                KEY_EXPONENTIAL_MAX_DELAY_MILLIS,
                self.exponential_max_delay_millis,
                "exponential delay strategy requires exponential_max_delay_millis",
            )
            multiplier = _require(
                KEY_EXPONENTIAL_MULTIPLIER,
                self.exponential_multiplier,
                "exponential delay strategy requires exponential_multiplier",
            )
            return RetryDelay.exponential(
                _millis(KEY_EXPONENTIAL_INITIAL_DELAY_MILLIS, initial),
                _millis(KEY_EXPONENTIAL_MAX_DELAY_MILLIS, maximum),
                multiplier,
            )
        raise RetryConfigError.invalid_value(
            key, f"unsupported delay strategy '{strategy}'"
        )

    def _implicit_delay(self) -> RetryDelay | None:
        if self.fixed_delay_millis is not None:
            return RetryDelay.fixed(
                _millis(KEY_FIXED_DELAY_MILLIS, self.fixed_delay_millis)
            )
        if self.random_min_delay_millis is not None or self.random_max_delay_millis is not None:
            minimum = (
                self.random_min_delay_millis
                if self.random_min_delay_millis is not None
                else DEFAULT_RETRY_RANDOM_MIN_DELAY_MILLIS
            )
            maximum = (
                self.random_max_delay_millis
                if self.random_max_delay_millis is not None
                else DEFAULT_RETRY_RANDOM_MAX_DELAY_MILLIS
            )
            return RetryDelay.random(
                _millis(KEY_RANDOM_MIN_DELAY_MILLIS, minimum),
                _millis(KEY_RANDOM_MAX_DELAY_MILLIS, maximum),
            )
        if (
            self.exponential_initial_delay_millis is not None
            or self.exponential_max_delay_millis is not None
            or self.exponential_multiplier is not None
        ):
            initial = (
                self.exponential_initial_delay_millis
                if self.exponential_initial_delay_millis is not None
                else DEFAULT_RETRY_EXPONENTIAL_INITIAL_DELAY_MILLIS
            )
            maximum = (
                self.exponential_max_delay_millis
                if self.exponential_max_delay_millis is not None
                else DEFAULT_RETRY_EXPONENTIAL_MAX_DELAY_MILLIS
            )
            multiplier = (
                self.exponential_multiplier
                if self.exponential_multiplier is not None
                else DEFAULT_RETRY_EXPONENTIAL_MULTIPLIER
            )
            return RetryDelay.exponential(
                _millis(KEY_EXPONENTIAL_INITIAL_DELAY_MILLIS, initial),
                _millis(KEY_EXPONENTIAL_MAX_DELAY_MILLIS, maximum),
                multiplier,
            )
        return None

    def _jitter(self, default: RetryOptions) -> RetryJitter:
        if self.jitter_factor is None:
            return default.jitter
        if self.jitter_factor == DEFAULT_RETRY_JITTER_FACTOR:
            return RetryJitter.none()
        return RetryJitter.factor(self.jitter_factor)


def options_from_config(config: Mapping[str, Any]) -> RetryOptions:
    """Read retry options from ``config``; absent keys use the defaults."""
    values = RetryConfigValues.from_mapping(config)
    return values.to_options(RetryOptions.default())