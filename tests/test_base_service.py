"""Tests for the optimistic retry loop shared by every write."""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm.exc import StaleDataError

from floodscore.services.base import BaseService
from floodscore.utils.exceptions import DatabaseError, TransactionError, TransactionTimeoutError


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    async def _sleep(delay):
        return None
    monkeypatch.setattr('floodscore.services.base.asyncio.sleep', _sleep)


def _service(**kwargs):
    return BaseService(session_factory=None, **kwargs)


async def test_retries_conflicts_until_success():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise StaleDataError("row version changed")
        return 'done'

    assert await _service(max_retries=3).execute_with_retry(flaky, "flaky write") == 'done'
    assert len(calls) == 3


async def test_exhausted_retries_raise_transaction_error():
    calls = []

    async def always_conflicts():
        calls.append(1)
        raise OperationalError("UPDATE", {}, Exception("database is locked"))

    with pytest.raises(TransactionError) as exc_info:
        await _service(max_retries=4).execute_with_retry(always_conflicts, "locked write")

    assert len(calls) == 4
    assert exc_info.value.retryable is True
    assert exc_info.value.attempts == 4


async def test_slow_attempt_raises_timeout():
    async def slow():
        await asyncio.Event().wait()

    with pytest.raises(TransactionTimeoutError) as exc_info:
        await _service(timeout=0.05).execute_with_retry(slow, "slow write")
    assert exc_info.value.retryable is True


async def test_other_database_errors_are_not_retried():
    calls = []

    async def broken():
        calls.append(1)
        raise ProgrammingError("SELECT", {}, Exception("no such table"))

    with pytest.raises(DatabaseError):
        await _service(max_retries=5).execute_with_retry(broken, "broken read")
    assert len(calls) == 1


async def test_non_database_errors_propagate():
    async def bug():
        raise KeyError('missing')

    with pytest.raises(KeyError):
        await _service().execute_with_retry(bug, "buggy write")
