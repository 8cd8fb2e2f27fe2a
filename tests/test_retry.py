from __future__ import annotations

import asyncio
import random

import pytest
from kungfu import Error, Ok

from stockroom import InsufficientStock, NotFound, TransactionConflict, TransientStoreError
from stockroom.retry import Backoff, Executor, RetryPolicy, execute


TINY = Backoff(initial=0.001, factor=2.0, jitter=0.0)


class Flaky:
    """Fails `failures` times with errors from `make_error`, then returns `value`."""

    def __init__(self, failures: int, make_error=lambda n: TransientStoreError(f"blip {n}"), value="done"):
        self.failures = failures
        self.make_error = make_error
        self.value = value
        self.calls = 0
        self.raised: list[Exception] = []

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            error = self.make_error(self.calls)
            self.raised.append(error)
            raise error
        return self.value


# ═══════════════════════════════════════════════════════════════════════════════
# Backoff
# ═══════════════════════════════════════════════════════════════════════════════


def test_backoff_doubles_from_one_second() -> None:
    backoff = Backoff(jitter=0.0)
    assert [backoff.delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]


def test_backoff_jitter_is_bounded() -> None:
    backoff = Backoff()
    rng = random.Random(7)
    for attempt in range(5):
        delay = backoff.delay(attempt, rng)
        assert 2 ** attempt <= delay < 2 ** attempt + 1.0


def test_backoff_cap_applies_before_jitter() -> None:
    backoff = Backoff(initial=1.0, jitter=0.5, max_delay=3.0)
    delay = backoff.delay(10, random.Random(1))
    assert 3.0 <= delay < 3.5


def test_policy_rejects_zero_attempts() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


# ═══════════════════════════════════════════════════════════════════════════════
# Executor
# ═══════════════════════════════════════════════════════════════════════════════


def test_succeeds_on_last_attempt_after_increasing_waits() -> None:
    op = Flaky(failures=4)
    waits: list[float] = []
    executor = Executor(
        RetryPolicy(max_attempts=5, backoff=TINY),
        on_retry=lambda attempt, error, delay: waits.append(delay),
    )

    result = asyncio.run(executor.execute(op, name="flaky"))

    assert result == Ok("done")
    assert op.calls == 5
    assert len(waits) == 4
    assert waits == sorted(waits) and len(set(waits)) == 4


def test_exhausted_attempts_surface_last_error_unchanged() -> None:
    op = Flaky(failures=10)
    executor = Executor(RetryPolicy(max_attempts=5, backoff=TINY))

    result = asyncio.run(executor.execute(op))

    assert op.calls == 5
    match result:
        case Error(error):
            assert error is op.raised[-1]
        case Ok(_):
            pytest.fail("expected an error")


def test_run_raises_final_error() -> None:
    op = Flaky(failures=10)
    executor = Executor(RetryPolicy(max_attempts=3, backoff=TINY))

    with pytest.raises(TransientStoreError) as info:
        asyncio.run(executor.run(op))

    assert info.value is op.raised[-1]


@pytest.mark.parametrize(
    "error",
    [
        InsufficientStock("p1", requested=5, available=2),
        NotFound("products", "p1"),
        ValueError("bug"),
    ],
)
def test_permanent_errors_do_not_consume_retry_budget(error: Exception) -> None:
    op = Flaky(failures=10, make_error=lambda n: error)
    retries: list[int] = []
    executor = Executor(
        RetryPolicy(max_attempts=5, backoff=TINY),
        on_retry=lambda attempt, e, delay: retries.append(attempt),
    )

    result = asyncio.run(executor.execute(op))

    assert op.calls == 1
    assert retries == []
    assert result == Error(error)


@pytest.mark.parametrize(
    "make_error",
    [
        lambda n: TransactionConflict("artifacts/a/users/u/products/p1"),
        lambda n: ConnectionError("reset"),
        lambda n: TimeoutError(),
    ],
)
def test_transient_errors_are_retried(make_error) -> None:
    op = Flaky(failures=2, make_error=make_error)
    result = asyncio.run(execute(op, RetryPolicy(backoff=TINY)))

    assert result == Ok("done")
    assert op.calls == 3


def test_retry_everything_retries_business_errors() -> None:
    op = Flaky(failures=10, make_error=lambda n: InsufficientStock("p1", 5, 2))
    policy = RetryPolicy(max_attempts=3, backoff=TINY).retry_everything()

    result = asyncio.run(Executor(policy).execute(op))

    assert op.calls == 3
    assert isinstance(result, Error)


def test_execution_is_lazy_and_repeatable() -> None:
    op = Flaky(failures=0)
    lazy = Executor(RetryPolicy(backoff=TINY)).execute(op)
    assert op.calls == 0

    async def twice() -> None:
        assert await lazy == Ok("done")
        assert await lazy == Ok("done")

    asyncio.run(twice())
    assert op.calls == 2


def test_concurrent_runs_count_their_own_attempts(caplog: pytest.LogCaptureFixture) -> None:
    op = Flaky(failures=100)
    lazy = Executor(RetryPolicy(max_attempts=3, backoff=TINY)).execute(op, name="burst")

    async def together() -> None:
        await asyncio.gather(lazy(), lazy())

    with caplog.at_level("ERROR", logger="stockroom.retry"):
        asyncio.run(together())

    assert op.calls == 6
    giving_up = [r.getMessage() for r in caplog.records if "giving up" in r.getMessage()]
    assert len(giving_up) == 2
    assert all("after 3 attempt(s)" in message for message in giving_up)
