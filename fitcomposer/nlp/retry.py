"""Exponential backoff with jitter for calls to the generative model."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from fitcomposer.config.settings import Settings
from fitcomposer.errors import OracleError, is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class RetryState:
    """Progress of a single logical call; never shared between calls."""

    attempt: int = 0
    last_error: BaseException | None = None
    next_delay: float = 0.0


def backoff_delay(
    attempt: int,
    *,
    base_delay: float,
    backoff_factor: float,
    max_delay: float,
    jitter: float,
    rng: random.Random | None = None,
) -> float:
    """Return the wait after failed ``attempt`` (1-based)."""

    source = rng or random
    exponential = base_delay * backoff_factor ** (attempt - 1)
    return min(exponential + source.uniform(0, jitter * base_delay), max_delay)


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    is_transient: Callable[[BaseException], bool] = is_transient,
    max_attempts: int = 3,
    base_delay: float = 0.2,
    backoff_factor: float = 2.0,
    max_delay: float = 8.0,
    jitter: float = 0.3,
    on_retry: Callable[[RetryState], None] | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    rng: random.Random | None = None,
) -> T:
    """
    Await ``operation`` until it succeeds, retrying transient failures.

    Errors rejected by ``is_transient`` propagate unchanged on the first
    occurrence. After ``max_attempts`` transient failures an ``OracleError``
    carrying the attempt count is raised from the last error.
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    state = RetryState()
    while True:
        state.attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if not is_transient(exc):
                raise
            state.last_error = exc
            if state.attempt >= max_attempts:
                break
            state.next_delay = backoff_delay(
                state.attempt,
                base_delay=base_delay,
                backoff_factor=backoff_factor,
                max_delay=max_delay,
                jitter=jitter,
                rng=rng,
            )
            if on_retry is not None:
                on_retry(state)
            await sleep(state.next_delay)

    last_error = state.last_error
    status_code = getattr(last_error, "status_code", None)
    raise OracleError(
        f"Model request failed after {state.attempt} attempts: {last_error}",
        status_code=status_code,
        attempts=state.attempt,
        transient=True,
    ) from last_error


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry parameters shared by every strategy."""

    max_attempts: int = 3
    base_delay: float = 0.2
    backoff_factor: float = 2.0
    max_delay: float = 8.0
    jitter: float = 0.3

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
            jitter=settings.retry_jitter,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_retry: Callable[[RetryState], None] | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> T:
        return await retry_async(
            operation,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            backoff_factor=self.backoff_factor,
            max_delay=self.max_delay,
            jitter=self.jitter,
            on_retry=on_retry,
            sleep=sleep,
            rng=rng,
        )
