"""Per-attempt timeout policy and option."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Any, Mapping

_ONE_MILLISECOND = timedelta(milliseconds=1)


class AttemptTimeoutPolicy(enum.Enum):
    """Action taken when one attempt exceeds its per-attempt timeout."""

    RETRY = "retry"
    ABORT = "abort"

    @classmethod
    def parse(cls, text: str) -> AttemptTimeoutPolicy:
        """Parse ``retry`` or ``abort``, ignoring case and outer whitespace."""
        normalized = text.strip().lower()
        for policy in cls:
            if policy.value == normalized:
                return policy
        raise ValueError("attempt timeout policy must be `retry` or `abort`")

    @classmethod
    def default(cls) -> AttemptTimeoutPolicy:
        """Return the default policy, which retries timed-out attempts."""
        return cls.RETRY

    def __str__(self) -> str:
        return self.value


def _policy_data_name(policy: AttemptTimeoutPolicy) -> str:
    return policy.name.title()


def _policy_from_data_name(name: Any) -> AttemptTimeoutPolicy:
    for policy in AttemptTimeoutPolicy:
        if _policy_data_name(policy) == name:
            return policy
    raise ValueError(f"unknown attempt timeout policy {name!r}")


@dataclass(frozen=True)
class AttemptTimeoutOption:
    """A per-attempt timeout together with the policy applied when it fires."""

    timeout: timedelta
    policy: AttemptTimeoutPolicy = AttemptTimeoutPolicy.RETRY

    @classmethod
    def retry(cls, timeout: timedelta) -> AttemptTimeoutOption:
        """Create an option that retries timed-out attempts."""
        return cls(timeout, AttemptTimeoutPolicy.RETRY)

    @classmethod
    def abort(cls, timeout: timedelta) -> AttemptTimeoutOption:
        """Create an option that aborts on the first timed-out attempt."""
        return cls(timeout, AttemptTimeoutPolicy.ABORT)

    def with_policy(self, policy: AttemptTimeoutPolicy) -> AttemptTimeoutOption:
        """Return a copy with the same timeout and another policy."""
        return replace(self, policy=policy)

    def validate(self) -> None:
        """Raise ``ValueError`` unless the timeout is greater than zero."""
        if self.timeout <= timedelta(0):
            raise ValueError("attempt timeout must be greater than zero")

    def to_data(self) -> dict[str, Any]:
        """Return a plain mapping with the timeout in whole milliseconds."""
        return {
            "timeout": self.timeout // _ONE_MILLISECOND,
            "policy": _policy_data_name(self.policy),
        }

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> AttemptTimeoutOption:
        """Build an option from the mapping produced by :meth:`to_data`."""
        try:
            millis = data["timeout"]
            policy_name = data["policy"]
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r}") from exc
        if isinstance(millis, bool) or not isinstance(millis, int) or millis < 0:
            raise ValueError("timeout must be a non-negative integer of milliseconds")
        return cls(timedelta(milliseconds=millis), _policy_from_data_name(policy_name))