import asyncio

import pytest

from LLM_API.decorators import RetryPolicy, with_retry
from LLM_API.exceptions import LLMAPIError, LLMTimeoutError

from tests.llm_stubs import fast_retry, remote_error


def _flaky(failures, result="ok"):
    calls = []

    async def operation():
        calls.append(len(calls) + 1)
        if len(calls) <= failures:
            raise remote_error(f"failure {len(calls)}")
        return result

    return operation, calls


def test_retry_succeeds_after_transient_failures():
    operation, calls = _flaky(failures=2)
    sleeps = []

    result = asyncio.run(fast_retry(sleeps=sleeps).call(operation))

    assert result == "ok"
    assert len(calls) == 3
    assert sleeps == [3.0, 6.0]


def test_retry_exhaustion_reraises_last_error_unchanged():
    errors = [remote_error(f"failure {idx}") for idx in range(1, 5)]
    seen = []

    async def operation():
        error = errors[len(seen)]
        seen.append(error)
        raise error

    sleeps = []
    with pytest.raises(LLMAPIError) as excinfo:
        asyncio.run(fast_retry(sleeps=sleeps).call(operation))

    assert len(seen) == 4
    assert excinfo.value is errors[-1]
    assert sleeps == [3.0, 6.0, 12.0]


def test_single_attempt_policy_does_not_sleep():
    operation, calls = _flaky(failures=5)
    sleeps = []

    with pytest.raises(LLMAPIError):
        asyncio.run(fast_retry(max_attempts=1, sleeps=sleeps).call(operation))

    assert len(calls) == 1
    assert sleeps == []


def test_policy_rejects_zero_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)


def test_per_attempt_timeout_raises_timeout_error():
    async def _no_sleep(_seconds):
        return None

    attempts = []

    async def operation():
        attempts.append(1)
        await asyncio.sleep(10)

    policy = RetryPolicy(max_attempts=2, delay=0.0, timeout=0.01, sleep=_no_sleep)
    with pytest.raises(LLMTimeoutError) as excinfo:
        asyncio.run(policy.call(operation))

    assert len(attempts) == 2
    assert excinfo.value.error_type == "timeout"


def test_with_retry_decorator_wraps_coroutine_functions():
    calls = []

    @with_retry(max_attempts=3, delay=0.0)
    async def fetch(value):
        calls.append(value)
        if len(calls) < 2:
            raise remote_error()
        return value * 2

    assert asyncio.run(fetch(21)) == 42
    assert calls == [21, 21]
    assert fetch.__name__ == "fetch"
