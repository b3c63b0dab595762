import asyncio

import pytest

from core.resilience import CollaboratorTimeout, RetryManager


class FlakyCall:
    """Fails with the given errors, then returns 'ok'"""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return 'ok'


def test_exponential_delay_is_capped():
    manager = RetryManager(base_delay=1, backoff_factor=2, max_delay=10, jitter=False)
    assert [manager.calculate_delay(n) for n in (1, 2, 3, 4, 5)] == [1, 2, 4, 8, 10]


def test_jitter_stays_within_twenty_percent():
    manager = RetryManager(base_delay=1, backoff_factor=2, max_delay=10, jitter=True)
    for _ in range(50):
        assert 1.6 <= manager.calculate_delay(2) <= 2.4


async def test_idempotent_read_retries_transient_errors():
    manager = RetryManager(max_attempts=3, base_delay=0, max_delay=0, jitter=False)
    call = FlakyCall(ConnectionError("connection reset"), ConnectionError("connection reset"))

    assert await manager.execute('bugs.list', call, idempotent=True) == 'ok'
    assert call.calls == 3

    stats = manager.get_statistics()
    assert stats['total_calls'] == 1
    assert stats['retries'] == 2
    assert stats['failed'] == 0


async def test_writes_run_exactly_once():
    manager = RetryManager(max_attempts=3, base_delay=0, max_delay=0, jitter=False)
    call = FlakyCall(ConnectionError("service unavailable"))

    with pytest.raises(ConnectionError):
        await manager.execute('bugs.create', call)
    assert call.calls == 1
    assert manager.stats['bugs.create']['failures'] == 1


async def test_permission_errors_are_not_retried():
    manager = RetryManager(max_attempts=3, base_delay=0, max_delay=0, jitter=False)
    call = FlakyCall(PermissionError("access denied"))

    with pytest.raises(PermissionError):
        await manager.execute('teams.details', call, idempotent=True)
    assert call.calls == 1


async def test_attempts_are_bounded():
    manager = RetryManager(max_attempts=2, base_delay=0, max_delay=0, jitter=False)
    call = FlakyCall(*[ConnectionError("network unreachable")] * 5)

    with pytest.raises(ConnectionError):
        await manager.execute('users.search', call, idempotent=True)
    assert call.calls == 2


async def test_slow_call_times_out():
    manager = RetryManager(max_attempts=1, base_delay=0, jitter=False)

    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(CollaboratorTimeout) as info:
        await manager.execute('bugs.stats', slow, idempotent=True, timeout=0.01)
    assert info.value.operation == 'bugs.stats'
    assert 'timed out' in str(info.value)
