"""
Exponential-backoff retry around a single logical provider call.

Only retryable taxonomy errors are retried. Anything else, including
``asyncio.CancelledError`` (not an ``Exception``), propagates on the first
occurrence.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import TypeVar

from llm_gateway.core import get_logger, metrics
from llm_gateway.providers.errors import LLMError

logger = get_logger(__name__)

T = TypeVar("T")

JITTER_FRACTION = 0.25


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters for one logical call."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.initial_delay < 0:
            raise ValueError("initial_delay must be non-negative")
        if self.max_delay < self.initial_delay:
            raise ValueError("max_delay must be >= initial_delay")
        if self.backoff_multiplier <= 1:
            raise ValueError("backoff_multiplier must be greater than 1")


DEFAULT_RETRY_POLICY = RetryPolicy()


def backoff_schedule(policy: RetryPolicy) -> Iterator[float]:
    """Yield the pre-jitter delays: initial, then multiplied and capped, forever."""
    delay = policy.initial_delay
    while True:
        yield delay
        delay = min(delay * policy.backoff_multiplier, policy.max_delay)


def jittered_delay(delay: float, uniform: Callable[[float, float], float] = random.uniform) -> float:
    """Add up to 25% positive jitter to ``delay``."""
    return delay + delay * uniform(0, JITTER_FRACTION)


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, LLMError) and error.retryable


class RetryDriver:
    """
    Run an async operation, retrying retryable provider errors with backoff.

    ``sleep`` and ``uniform`` are injectable so tests can observe delays
    without waiting.
    """

    def __init__(
        self,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ):
        self.policy = policy
        self._sleep = sleep
        self._uniform = uniform

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy | None = None,
    ) -> T:
        """
        Await ``operation()`` until it succeeds or a non-retryable outcome.

        Args:
            operation: Zero-argument coroutine function; called once per attempt.
            policy: Overrides the driver's policy for this call.

        Raises:
            The last error unchanged once attempts are exhausted, or the first
            non-retryable error.
        """
        policy = policy or self.policy
        delays = backoff_schedule(policy)
        attempt = 1

        while True:
            try:
                return await operation()
            except Exception as exc:
                if attempt >= policy.max_attempts or not is_retryable(exc):
                    raise

                delay = next(delays)
                sleep_for = jittered_delay(delay, self._uniform)
                logger.warning(
                    "Retrying provider call",
                    data={
                        "error": str(exc),
                        "kind": exc.kind.value,
                        "attempt": attempt,
                        "delay": delay,
                        "sleep_seconds": sleep_for,
                    },
                )
                metrics.increment("provider_retries_total")
                await self._sleep(sleep_for)
                attempt += 1
