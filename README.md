# retrykit

`retrykit` describes *how* an operation should be retried: how many attempts
it gets, how long to wait between them, how much random jitter to add, how
long each attempt may run, and which elapsed-time budgets apply. Every option
is validated, and options can be parsed from text, turned into plain data and
back, or merged from a configuration mapping.

Durations are `datetime.timedelta` values throughout.

## Installation

```
pip install retrykit
```

## Delay strategies (`retrykit.delay`)

```python
from datetime import timedelta
from retrykit.delay import RetryDelay

RetryDelay.none()
RetryDelay.fixed(timedelta(milliseconds=200))
RetryDelay.random(timedelta(milliseconds=100), timedelta(milliseconds=500))
backoff = RetryDelay.exponential(
    timedelta(milliseconds=100), timedelta(seconds=5), 2.0
)

backoff.base_delay(1)   # 100 ms (attempts 0 and 1 both give the initial delay)
backoff.base_delay(3)   # 400 ms, never more than the 5 s maximum
str(backoff)            # "exponential(initial=100ms, max=5000ms, multiplier=2)"
RetryDelay.parse("fixed(1s)")  # FixedDelay of one second
RetryDelay.default()    # exponential(initial=1000ms, max=60000ms, multiplier=2)
```

Every strategy is one of `NoDelay`, `FixedDelay`, `RandomDelay` or
`ExponentialDelay`. `validate()` raises `ValueError` when a strategy's
parameters cannot be used: a zero fixed delay, a zero or inverted random
range, or an exponential delay with a zero initial value, a maximum below
the initial value, or a multiplier that is not finite and greater than 1.0.

`to_data()` and `RetryDelay.from_data()` convert a strategy to and from
plain values with durations in whole milliseconds, for example
`{"Fixed": 200}`.

### Duration text (`retrykit.duration_format`)

`format_duration()` writes whole milliseconds with an `ms` suffix.
`parse_duration()` accepts a bare integer (milliseconds) or one or more
`<integer><unit>` parts such as `1s500ms`, with units `ns`, `us`/`µs`, `ms`,
`s`, `m`/`min`, `h` and `d`. Precision below one microsecond is dropped.

## Jitter (`retrykit.jitter`)

```python
from datetime import timedelta
from retrykit.jitter import RetryJitter

jitter = RetryJitter.parse("factor:0.2")   # spread the delay by +/- 20 %
jitter.apply(timedelta(milliseconds=100))  # somewhere from 80 ms to 120 ms
RetryJitter.parse(" NONE ")                # NoJitter
str(RetryJitter.factor(0.25))              # "factor:0.25"
```

A strategy is either `NoJitter` or `FactorJitter`. Jittered delays never go
below zero. Text that cannot be parsed, including factors outside
`[0.0, 1.0]`, raises `retrykit.errors.ParseRetryJitterError`. `to_data()`
gives `"None"` or `{"Factor": value}`, and `RetryJitter.from_data()` reads
them back.

## Attempt timeouts (`retrykit.timeout`)

```python
from datetime import timedelta
from retrykit.timeout import AttemptTimeoutOption, AttemptTimeoutPolicy

AttemptTimeoutOption.retry(timedelta(seconds=2))
AttemptTimeoutOption.abort(timedelta(seconds=2))
AttemptTimeoutPolicy.parse(" ABORT ")  # AttemptTimeoutPolicy.ABORT
AttemptTimeoutPolicy.default()         # AttemptTimeoutPolicy.RETRY
```

`validate()` raises `ValueError` for a timeout that is not greater than zero.

## Retry options (`retrykit.options`)

`RetryOptions` brings everything together and checks it when it is built:

```python
from datetime import timedelta
from retrykit.delay import RetryDelay
from retrykit.jitter import RetryJitter
from retrykit.options import RetryOptions

options = RetryOptions(
    max_attempts=3,
    delay=RetryDelay.fixed(timedelta(milliseconds=50)),
    jitter=RetryJitter.factor(0.1),
)
options.delay_for_attempt(1)        # 45 ms to 55 ms
options.base_delay_for_attempt(1)   # 50 ms
RetryOptions.default()  # five attempts, exponential backoff, no jitter
```

Invalid options raise `retrykit.errors.RetryConfigError`. Its `path`
attribute names the configuration key at fault (`max_attempts`, `delay`,
`jitter_factor` or `attempt_timeout_millis`) and `message` says what is
wrong.

`next_base_delay_from_current()` and `next_delay_from_current()` step an
exponential delay one multiplier on from the current value, capped at its
maximum.

## Loading from configuration (`retrykit.config`)

```python
from retrykit.config import options_from_config

options = options_from_config({
    "max_attempts": 4,
    "delay": "exponential",
    "exponential_initial_delay_millis": 100,
    "exponential_max_delay_millis": 2000,
    "exponential_multiplier": 2.0,
    "jitter_factor": 0.2,
    "attempt_timeout_millis": 1500,
    "attempt_timeout_policy": "abort",
})
```

Values may be native types or their text forms (`"4"`, `"true"`). Keys that
are missing keep the values from `RetryOptions.default()`. When no `delay`
(or `delay_strategy`) name is given, the presence of fixed, random or
exponential parameter keys selects that strategy. A `jitter_factor` of `0`
means no jitter. The `max_operation_elapsed_unlimited` and
`max_total_elapsed_unlimited` switches remove the matching budget.

For a different fallback, build the values with
`RetryConfigValues.from_mapping(...)` and call `to_options(default)`.

## What it does not do

`retrykit` only describes and validates retry settings. It has no executor:
it does not run operations, sleep between attempts, enforce timeouts or
elapsed budgets, or call listeners. Code that performs the retries reads the
options and delays from it.