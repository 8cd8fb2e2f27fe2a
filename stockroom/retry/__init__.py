"""
Retry — bounded, classified retries with exponential backoff.

    from stockroom import retry as R

    executor = R.Executor(R.RetryPolicy().with_max_attempts(5))
    result = await executor.execute(attempt, name="place_order")

Transient errors (conflicts, unavailable store, timeouts) are retried up to
max_attempts; anything else is returned immediately. The result is
Ok(value) or Error(last exception).
"""

from stockroom.retry._policy import RetryOn, Backoff, RetryPolicy
from stockroom.retry._executor import Operation, RetryHook, Executor, execute


__all__ = (
    "RetryOn",
    "Backoff",
    "RetryPolicy",
    "Operation",
    "RetryHook",
    "Executor",
    "execute",
)
