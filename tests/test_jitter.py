import math
from datetime import timedelta

import pytest

from retrykit.delay import RetryDelay
from retrykit.errors import ParseRetryJitterError
from retrykit.jitter import (
    DEFAULT_RETRY_JITTER,
    FactorJitter,
    NoJitter,
    RetryJitter,
)


def ms(value):
    return timedelta(milliseconds=value)


def test_apply_symmetric_factor_and_validate_bounds():
    base = ms(100)
    assert RetryJitter.none().apply(base) == base
    assert RetryJitter.factor(0.0).apply(base) == base
    assert RetryJitter.factor(0.5).apply(timedelta(0)) == timedelta(0)
    assert RetryJitter.default() == NoJitter()

    for _ in range(30):
        delay = RetryJitter.factor(0.2).apply(base)
        assert ms(80) <= delay <= ms(120)

    assert RetryJitter.factor(0.0).validate() is None
    assert RetryJitter.factor(1.0).validate() is None
    for bad in (-0.1, 1.1, math.nan):
        with pytest.raises(ValueError, match="jitter factor"):
            RetryJitter.factor(bad).validate()


def test_apply_invalid_factor_falls_back_to_base_delay():
    base = ms(100)
    assert RetryJitter.factor(math.nan).apply(base) == base
    assert RetryJitter.factor(math.inf).apply(base) == base
    assert RetryJitter.factor(-math.inf).apply(base) == base


def test_apply_large_duration_factor_returns_base():
    base = timedelta(seconds=20_000_000_000)
    assert RetryJitter.factor(0.5).apply(base) == base


def test_apply_full_factor_never_negative():
    for _ in range(30):
        assert RetryJitter.factor(1.0).apply(ms(10)) >= timedelta(0)


def test_delay_for_attempt_combines_delay_strategy_and_jitter():
    fixed = RetryDelay.fixed(ms(50))
    assert RetryJitter.none().delay_for_attempt(fixed, 1) == ms(50)

    exponential = RetryDelay.exponential(ms(10), ms(80), 2.0)
    assert RetryJitter.none().delay_for_attempt(exponential, 1) == ms(10)
    assert RetryJitter.none().delay_for_attempt(exponential, 4) == ms(80)

    for _ in range(30):
        delay = RetryJitter.factor(0.2).delay_for_attempt(fixed, 2)
        assert ms(40) <= delay <= ms(60)


def test_retry_jitter_parse():
    assert RetryJitter.parse("none") == NoJitter()
    assert RetryJitter.parse("  none  ") == NoJitter()
    assert RetryJitter.parse("NONE") == NoJitter()
    assert RetryJitter.parse("factor:0.2") == RetryJitter.factor(0.2)
    assert RetryJitter.parse("factor: 0.25 ") == RetryJitter.factor(0.25)
    for text in ("factor", "factor()", "factor(0.2)", "factor:", ""):
        with pytest.raises(ParseRetryJitterError):
            RetryJitter.parse(text)
    for text in ("factor:1.1", "factor:-0.1"):
        with pytest.raises(ParseRetryJitterError) as info:
            RetryJitter.parse(text)
        assert str(info.value) == "parse failed."


@pytest.mark.parametrize(
    "text, expected",
    [
        ("factor:0", 0.0),
        ("factor:1", 1.0),
        ("factor:1.0", 1.0),
        ("factor:0.0", 0.0),
        ("factor:.5", 0.5),
        ("factor:+0.25", 0.25),
        ("factor:1e0", 1.0),
        ("factor:5e-1", 0.5),
        ("  \t factor:0.3 \n ", 0.3),
        ("  factor:0.4  ", 0.4),
    ],
)
def test_retry_jitter_parse_boundaries_and_numeric_forms(text, expected):
    assert RetryJitter.parse(text) == RetryJitter.factor(expected)


def test_retry_jitter_parse_mixed_case_none():
    assert RetryJitter.parse("NoNe") == NoJitter()


@pytest.mark.parametrize("text", ["FACTOR:0.5", "Factor:0.5", "not-factor:0.5"])
def test_retry_jitter_factor_prefix_is_case_sensitive(text):
    with pytest.raises(ParseRetryJitterError):
        RetryJitter.parse(text)


@pytest.mark.parametrize("text", ["", "   ", "other", "nonee", "fact", "factor", "factor:  "])
def test_retry_jitter_parse_invalid_format(text):
    with pytest.raises(ParseRetryJitterError):
        RetryJitter.parse(text)


@pytest.mark.parametrize(
    "text",
    ["factor:2", "factor:-1", "factor:nan", "factor:inf", "factor:Infinity", "factor:xyz"],
)
def test_retry_jitter_parse_out_of_range_and_bad_number(text):
    with pytest.raises(ParseRetryJitterError) as info:
        RetryJitter.parse(text)
    assert str(info.value) == "parse failed."


@pytest.mark.parametrize("text", ["nope", "factor:3", "factor:not-a-number"])
def test_parse_retry_jitter_error_display_and_source(text):
    with pytest.raises(ParseRetryJitterError) as info:
        RetryJitter.parse(text)
    assert str(info.value) == "parse failed."
    assert info.value.__cause__ is None


@pytest.mark.parametrize(
    "jitter",
    [NoJitter(), RetryJitter.factor(0.0), RetryJitter.factor(1.0), RetryJitter.factor(0.125)],
)
def test_retry_jitter_display_parse_round_trip(jitter):
    assert RetryJitter.parse(str(jitter)) == jitter


def test_retry_jitter_display():
    assert str(NoJitter()) == "none"
    assert str(RetryJitter.none()) == "none"
    assert str(RetryJitter.factor(0.25)) == "factor:0.25"
    assert str(RetryJitter.factor(1.0)) == "factor:1"
    assert RetryJitter.parse(str(RetryJitter.factor(0.25))) == RetryJitter.factor(0.25)


def test_retry_jitter_data_shapes():
    assert RetryJitter.none().to_data() == "None"
    assert RetryJitter.factor(0.25).to_data() == {"Factor": 0.25}
    assert RetryJitter.from_data("None") == NoJitter()
    assert RetryJitter.from_data({"Factor": 0.25}) == RetryJitter.factor(0.25)


@pytest.mark.parametrize("data", ["none", {"Factor": "x"}, {"Other": 0.1}, 3])
def test_retry_jitter_from_data_rejects_invalid(data):
    with pytest.raises(ValueError):
        RetryJitter.from_data(data)


def test_default_retry_jitter_string_matches_default():
    assert RetryJitter.parse(DEFAULT_RETRY_JITTER) == RetryJitter.default()
    assert RetryJitter.default() == RetryJitter.none()


def test_factor_constructor_builds_factor_jitter():
    assert RetryJitter.factor(0.5) == FactorJitter(0.5)
    assert RetryJitter.factor(0.5).value == 0.5