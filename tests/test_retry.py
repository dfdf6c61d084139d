import asyncio
import logging
import time

import pytest

from conftest import StubRandomizer
from core.errors import ErrorKind, ExhaustedRetries, TransientNetworkError
from core.retry import RetryPolicy, retry_action


def failing_action(calls, succeed_on=None):
    async def action():
        calls.append(len(calls) + 1)
        if succeed_on is not None and len(calls) >= succeed_on:
            return "ok"
        raise TransientNetworkError(f"attempt {len(calls)} failed")
    return action


def test_permanent_failure_runs_max_attempts_with_fixed_delays(sleep):
    calls = []
    policy = RetryPolicy.fixed(4, 5)

    with pytest.raises(ExhaustedRetries) as exc:
        asyncio.run(retry_action(failing_action(calls), policy, "mint", sleep=sleep))

    assert calls == [1, 2, 3, 4]
    assert sleep.delays == [5, 5, 5]
    assert exc.value.kind is ErrorKind.EXHAUSTED_RETRIES
    assert exc.value.operation == "mint"
    assert exc.value.attempts == 4
    assert isinstance(exc.value.cause, TransientNetworkError)
    assert exc.value.__cause__ is exc.value.cause
    assert "attempt 4 failed" in str(exc.value.cause)


def test_exponential_delays_are_capped():
    policy = RetryPolicy.exponential(5, 2, 10)
    assert [policy.delay_for(k) for k in range(5)] == [2, 4, 8, 10, 10]


def test_faucet_style_schedule_between_attempts(sleep):
    with pytest.raises(ExhaustedRetries):
        asyncio.run(retry_action(failing_action([]), RetryPolicy.exponential(5, 2, 10), "claim", sleep=sleep))
    assert sleep.delays == [2, 4, 8, 10]


@pytest.mark.parametrize("succeed_on", [1, 2, 3])
def test_success_stops_further_attempts(sleep, succeed_on):
    calls = []
    result = asyncio.run(retry_action(failing_action(calls, succeed_on), RetryPolicy.fixed(3, 1), "op", sleep=sleep))

    assert result == "ok"
    assert len(calls) == succeed_on
    assert len(sleep.delays) == succeed_on - 1


def test_single_attempt_never_sleeps(sleep):
    calls = []
    with pytest.raises(ExhaustedRetries):
        asyncio.run(retry_action(failing_action(calls), RetryPolicy.fixed(1, 5), "op", sleep=sleep))
    assert calls == [1]
    assert sleep.delays == []


def test_returned_false_counts_as_failure(sleep):
    results = [False, False, "done"]

    async def action():
        return results.pop(0)

    assert asyncio.run(retry_action(action, RetryPolicy.fixed(3, 1), "op", sleep=sleep)) == "done"
    assert sleep.delays == [1, 1]


def test_sync_action_runs_in_thread(sleep):
    calls = []

    def action():
        calls.append(1)
        if len(calls) < 2:
            raise ValueError("not yet")
        return 42

    assert asyncio.run(retry_action(action, RetryPolicy.fixed(3, 0), "sync", sleep=sleep)) == 42
    assert len(calls) == 2


def test_randomized_delay_comes_from_randomizer(sleep):
    randomizer = StubRandomizer(floats=[0.7, 2.9])
    with pytest.raises(ExhaustedRetries):
        asyncio.run(retry_action(failing_action([]), RetryPolicy.randomized(3, 0.5, 3.0), "deploy",
                                 randomizer=randomizer, sleep=sleep))
    assert sleep.delays == [0.7, 2.9]


def test_real_sleep_total_matches_fixed_delays():
    start = time.monotonic()
    with pytest.raises(ExhaustedRetries):
        asyncio.run(retry_action(failing_action([]), RetryPolicy.fixed(3, 0.05), "timed"))
    assert time.monotonic() - start >= 0.09


@pytest.mark.parametrize("attempts", [0, -1])
def test_policy_requires_at_least_one_attempt(attempts):
    with pytest.raises(ValueError):
        RetryPolicy.fixed(attempts, 1)


def test_each_failed_attempt_is_logged(caplog, monkeypatch, sleep):
    monkeypatch.setattr(logging.getLogger("Retry"), "propagate", True)
    with caplog.at_level(logging.WARNING, logger="Retry"):
        with pytest.raises(ExhaustedRetries):
            asyncio.run(retry_action(failing_action([]), RetryPolicy.fixed(3, 1), "mint", sleep=sleep))

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(warnings) == 2
    assert all("retrying" in r.getMessage() for r in warnings)
    assert len(errors) == 1
    assert "exhausted" in errors[0].getMessage()
