"""
Retry policy — how many attempts, how long to wait, which errors qualify.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from dataclasses import dataclass

from stockroom._errors import is_transient


type RetryOn = Callable[[Exception], bool]


# ═══════════════════════════════════════════════════════════════════════════════
# Backoff
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Backoff:
    """
    Exponential backoff with additive jitter, in seconds.

        delay(attempt) = initial * factor ** attempt   (capped at max_delay)
                         + uniform(0, jitter)

    `attempt` is zero-based: the wait after the first failure uses attempt 0.
    Defaults give 1s, 2s, 4s, 8s … plus up to 1s of noise.
    """

    initial: float = 1.0
    factor: float = 2.0
    jitter: float = 1.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.initial < 0 or self.jitter < 0:
            raise ValueError("backoff delays must be >= 0")
        if self.factor < 1.0:
            raise ValueError("backoff factor must be >= 1.0")

    def delay(self, attempt: int, rng: random.Random | None = None) -> float:
        base = self.initial * self.factor ** attempt
        if self.max_delay is not None:
            base = min(base, self.max_delay)
        if not self.jitter:
            return base
        return base + (rng or random).uniform(0.0, self.jitter)

    @classmethod
    def none(cls) -> Backoff:
        """Retry immediately. Useful in tests."""
        return cls(initial=0.0, jitter=0.0)


# ═══════════════════════════════════════════════════════════════════════════════
# Policy
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Fluent builder — each method returns a new policy.

    Example:
        policy = (
            RetryPolicy()
            .with_max_attempts(8)
            .with_backoff(Backoff(initial=0.05, max_delay=2.0))
        )

    retry_on=None retries every error (see `retry_everything`).
    """

    max_attempts: int = 5
    backoff: Backoff = Backoff()
    retry_on: RetryOn | None = is_transient

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    def with_max_attempts(self, max_attempts: int) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=max_attempts,
            backoff=self.backoff,
            retry_on=self.retry_on,
        )

    def with_backoff(self, backoff: Backoff) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff=backoff,
            retry_on=self.retry_on,
        )

    def with_retry_on(self, retry_on: RetryOn | None) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            backoff=self.backoff,
            retry_on=retry_on,
        )

    def retry_everything(self) -> RetryPolicy:
        """Retry validation and not-found errors too, not just transient ones."""
        return self.with_retry_on(None)

    def should_retry(self, error: Exception) -> bool:
        return self.retry_on is None or self.retry_on(error)


__all__ = ("RetryOn", "Backoff", "RetryPolicy")
