"""타이머 워치독 테스트"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from app.exceptions import InvalidStateTransition
from app.services.timer_watchdog import TimerWatchdog, WatchdogRegistry
from tests.factories import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


def make_watchdog(clock, on_expire, limit: int = 60) -> TimerWatchdog:
    return TimerWatchdog(
        attempt_id=1,
        started_at=clock.now(),
        time_limit_seconds=limit,
        clock=clock,
        on_expire=on_expire,
    )


def test_remaining_seconds_recomputed_from_start(clock):
    watchdog = make_watchdog(clock, AsyncMock())

    assert watchdog.remaining_seconds() == 60
    clock.advance(0.2)
    assert watchdog.remaining_seconds() == 60  # 올림
    clock.advance(44.8)
    assert watchdog.remaining_seconds() == 15
    clock.advance(100)
    assert watchdog.remaining_seconds() == 0


def test_remaining_seconds_never_increases(clock):
    """시계가 뒤로 가도 남은 시간은 늘어나지 않는다"""
    watchdog = make_watchdog(clock, AsyncMock())
    clock.advance(30)
    assert watchdog.remaining_seconds() == 30

    clock.advance(-20)

    assert watchdog.remaining_seconds() == 30


def test_invalid_time_limit(clock):
    with pytest.raises(ValueError):
        make_watchdog(clock, AsyncMock(), limit=0)


@pytest.mark.asyncio
async def test_tick_before_deadline_does_nothing(clock):
    on_expire = AsyncMock()
    watchdog = make_watchdog(clock, on_expire)
    clock.advance(59)

    assert await watchdog.tick() is False
    on_expire.assert_not_awaited()


@pytest.mark.asyncio
async def test_tick_fires_exactly_once(clock):
    on_expire = AsyncMock()
    watchdog = make_watchdog(clock, on_expire)
    clock.advance(60)

    assert await watchdog.tick() is True
    assert await watchdog.tick() is False
    clock.advance(60)
    assert await watchdog.tick() is False

    on_expire.assert_awaited_once_with(1)
    assert watchdog.fired is True


@pytest.mark.asyncio
async def test_concurrent_ticks_fire_once(clock):
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_expire(attempt_id):
        started.set()
        await release.wait()

    watchdog = make_watchdog(clock, AsyncMock(side_effect=slow_expire))
    clock.advance(61)

    first = asyncio.create_task(watchdog.tick())
    await started.wait()
    second = await watchdog.tick()
    release.set()

    assert await first is True
    assert second is False


@pytest.mark.asyncio
async def test_tick_lost_race_to_submit(clock):
    """제출이 먼저 끝났으면 만료는 조용히 생략"""
    on_expire = AsyncMock(side_effect=InvalidStateTransition(1, "graded", "expire"))
    watchdog = make_watchdog(clock, on_expire)
    clock.advance(60)

    assert await watchdog.tick() is False
    assert watchdog.fired is True
    assert await watchdog.tick() is False
    on_expire.assert_awaited_once()


@pytest.mark.asyncio
async def test_tick_failure_allows_retry(clock):
    on_expire = AsyncMock(side_effect=[RuntimeError("db down"), None])
    watchdog = make_watchdog(clock, on_expire)
    clock.advance(60)

    with pytest.raises(RuntimeError):
        await watchdog.tick()
    assert watchdog.fired is False

    assert await watchdog.tick() is True
    assert on_expire.await_count == 2


@pytest.mark.asyncio
async def test_tick_uses_override_callback(clock):
    default = AsyncMock()
    override = AsyncMock()
    watchdog = make_watchdog(clock, default)
    clock.advance(60)

    await watchdog.tick(override)

    override.assert_awaited_once_with(1)
    default.assert_not_awaited()


@pytest.mark.asyncio
async def test_stopped_watchdog_never_fires(clock):
    on_expire = AsyncMock()
    watchdog = make_watchdog(clock, on_expire)
    watchdog.stop()
    clock.advance(120)

    assert await watchdog.tick() is False
    on_expire.assert_not_awaited()


@pytest.mark.asyncio
async def test_registry_arm_is_idempotent(clock):
    registry = WatchdogRegistry(clock, AsyncMock(), run_in_background=False)

    first = registry.arm(1, clock.now(), 60)
    second = registry.arm(1, clock.now(), 60)

    assert first is second
    assert 1 in registry
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_registry_dispatches_to_on_expire(clock):
    on_expire = AsyncMock()
    registry = WatchdogRegistry(clock, on_expire, run_in_background=False)
    watchdog = registry.arm(7, clock.now(), 30)
    clock.advance(30)

    await watchdog.tick()

    on_expire.assert_awaited_once_with(7)


@pytest.mark.asyncio
async def test_registry_disarm_stops_watchdog(clock):
    on_expire = AsyncMock()
    registry = WatchdogRegistry(clock, on_expire, run_in_background=False)
    watchdog = registry.arm(1, clock.now(), 60)

    registry.disarm(1)
    clock.advance(60)

    assert 1 not in registry
    assert watchdog.stopped is True
    assert await watchdog.tick() is False


@pytest.mark.asyncio
async def test_background_task_expires_attempt(clock):
    """백그라운드 태스크가 시간이 지나면 스스로 만료 처리"""
    expired = asyncio.Event()

    async def on_expire(attempt_id):
        expired.set()

    registry = WatchdogRegistry(clock, on_expire, tick_seconds=0.01)
    registry.arm(1, clock.now(), 60)
    clock.advance(60)

    await asyncio.wait_for(expired.wait(), timeout=1)
    await registry.shutdown()

    assert len(registry) == 0


@pytest.mark.asyncio
async def test_shutdown_cancels_tasks(clock):
    on_expire = AsyncMock()
    registry = WatchdogRegistry(clock, on_expire, tick_seconds=0.01)
    watchdog = registry.arm(1, clock.now(), 60)

    await registry.shutdown()

    assert watchdog.stopped is True
    on_expire.assert_not_awaited()
