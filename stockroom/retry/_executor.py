"""
Transaction executor — runs an attempt under a RetryPolicy.

Built on `combinators.retry`: each attempt is wrapped with
`lift.catching_async`, so a raised exception becomes an Error value the
retry loop can inspect, and cancellation still propagates.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable

import combinators as C
from combinators import lift as L
from kungfu import Error, LazyCoroResult, Ok, Result

from stockroom.retry._policy import RetryPolicy


logger = logging.getLogger("stockroom.retry")


type Operation[T] = Callable[[], Awaitable[T]]
type RetryHook = Callable[[int, Exception, float], None]
"""(failed attempt number starting at 1, error, delay before next attempt)."""


def _keep(error: Exception) -> Exception:
    return error


class Executor:
    """
    Example:
        executor = Executor(RetryPolicy().with_max_attempts(3))

        result = await executor.execute(lambda: place(store, ns, pid, 2), name="place_order")
        match result:
            case Ok(order): ...
            case Error(e): ...   # the last attempt's exception, unchanged

    Only errors accepted by `policy.retry_on` consume retry budget; anything
    else is returned after the first attempt.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        rng: random.Random | None = None,
        on_retry: RetryHook | None = None,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._rng = rng
        self._on_retry = on_retry

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def execute[T](
        self,
        operation: Operation[T],
        *,
        name: str = "operation",
    ) -> LazyCoroResult[T, Exception]:
        policy = self._policy

        def backoff(index: int, error: Exception) -> float:
            delay = policy.backoff.delay(index, self._rng)
            logger.warning(
                "%s: attempt %d/%d failed (%s: %s), retrying in %.3fs",
                name, index + 1, policy.max_attempts, type(error).__name__, error, delay,
            )
            if self._on_retry is not None:
                self._on_retry(index + 1, error, delay)
            return delay

        retry_policy = C.RetryPolicy(
            times=policy.max_attempts,
            backoff=backoff,
            retry_on=policy.retry_on,
        )

        async def run() -> Result[T, Exception]:
            # Counted per run: the lazy result may be awaited more than once
            attempts = 0

            async def attempt() -> T:
                nonlocal attempts
                attempts += 1
                return await operation()

            result = await C.retry(L.catching_async(attempt, on_error=_keep), policy=retry_policy)
            if isinstance(result, Error):
                error = result.error
                if policy.should_retry(error):
                    logger.error(
                        "%s: giving up after %d attempt(s): %s: %s",
                        name, attempts, type(error).__name__, error,
                    )
                else:
                    logger.debug("%s: not retrying %s: %s", name, type(error).__name__, error)
            return result

        return LazyCoroResult(run)

    async def run[T](self, operation: Operation[T], *, name: str = "operation") -> T:
        """Like execute, but returns the value or raises the last error."""
        match await self.execute(operation, name=name):
            case Ok(value):
                return value
            case Error(error):
                raise error


def execute[T](
    operation: Operation[T],
    policy: RetryPolicy | None = None,
    *,
    name: str = "operation",
) -> LazyCoroResult[T, Exception]:
    """One-off shortcut for Executor(policy).execute(operation)."""
    return Executor(policy).execute(operation, name=name)


__all__ = ("Operation", "RetryHook", "Executor", "execute")
