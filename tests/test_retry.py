"""Tests for the exponential backoff policy."""

from __future__ import annotations

import asyncio
import random

import pytest

from fitcomposer.errors import OracleError, SchemaViolation
from fitcomposer.nlp.retry import RetryPolicy, RetryState, backoff_delay, retry_async


class _Recorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def sleep(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.mark.asyncio
async def test_transient_failures_exhaust_after_max_attempts() -> None:
    recorder = _Recorder()
    calls = 0

    async def _always_overloaded() -> str:
        nonlocal calls
        calls += 1
        raise OracleError("503 overloaded", status_code=503)

    with pytest.raises(OracleError) as excinfo:
        await retry_async(_always_overloaded, max_attempts=3, base_delay=0.2, sleep=recorder.sleep)

    assert calls == 3
    assert excinfo.value.attempts == 3
    assert excinfo.value.status_code == 503
    assert isinstance(excinfo.value.__cause__, OracleError)
    assert len(recorder.delays) == 2
    assert 0.2 <= sum(recorder.delays) <= 1.4


@pytest.mark.asyncio
async def test_recovers_after_transient_failure() -> None:
    recorder = _Recorder()
    outcomes: list[object] = [OracleError("429 rate limited", status_code=429), "ok"]
    seen: list[int] = []

    async def _flaky() -> str:
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return str(outcome)

    def _on_retry(state: RetryState) -> None:
        seen.append(state.attempt)

    result = await retry_async(_flaky, on_retry=_on_retry, sleep=recorder.sleep, rng=random.Random(7))

    assert result == "ok"
    assert seen == [1]
    assert len(recorder.delays) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        SchemaViolation("not json"),
        OracleError("401 unauthorized", status_code=401, transient=False),
        ValueError("programming error"),
    ],
)
async def test_non_transient_errors_are_not_retried(error: Exception) -> None:
    recorder = _Recorder()
    calls = 0

    async def _broken() -> None:
        nonlocal calls
        calls += 1
        raise error

    with pytest.raises(type(error)) as excinfo:
        await retry_async(_broken, sleep=recorder.sleep)

    assert excinfo.value is error
    assert calls == 1
    assert recorder.delays == []


def test_backoff_grows_exponentially_and_is_capped() -> None:
    rng = random.Random(0)
    delays = [
        backoff_delay(attempt, base_delay=1.0, backoff_factor=2.0, max_delay=5.0, jitter=0.3, rng=rng)
        for attempt in (1, 2, 3, 4)
    ]

    assert 1.0 <= delays[0] <= 1.3
    assert 2.0 <= delays[1] <= 2.3
    assert 4.0 <= delays[2] <= 4.3
    assert delays[3] == 5.0


@pytest.mark.asyncio
async def test_cancellation_interrupts_backoff_wait() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay=10.0, max_delay=10.0)

    async def _overloaded() -> None:
        raise OracleError("overloaded")

    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(policy.run(_overloaded), timeout=0.05)


@pytest.mark.asyncio
async def test_max_attempts_must_be_positive() -> None:
    async def _noop() -> None:
        return None

    with pytest.raises(ValueError):
        await retry_async(_noop, max_attempts=0)
