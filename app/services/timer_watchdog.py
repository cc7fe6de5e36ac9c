"""응시 시간 제한 워치독

남은 시간은 매 틱마다 감소시키지 않고 `제한 - (현재 - 시작 시각)`으로 다시 계산한다.
이벤트 루프가 멈추거나 지연되어도 남은 시간이 실제 경과 시간과 어긋나지 않는다.
"""
import asyncio
import logging
import math
from datetime import datetime
from typing import Awaitable, Callable

from app.core.clock import Clock, elapsed_seconds
from app.exceptions import InvalidStateTransition

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[int], Awaitable[object]]


class TimerWatchdog:
    """응시 하나의 시간 초과 감시자

    시간이 0이 되면 on_expire(attempt_id)를 정확히 한 번 호출한다.
    """

    def __init__(
        self,
        attempt_id: int,
        started_at: datetime,
        time_limit_seconds: int,
        clock: Clock,
        on_expire: ExpireCallback,
    ):
        if time_limit_seconds <= 0:
            raise ValueError(f"시간 제한은 양수여야 합니다: {time_limit_seconds}")
        self.attempt_id = attempt_id
        self.started_at = started_at
        self.time_limit_seconds = time_limit_seconds
        self._clock = clock
        self._on_expire = on_expire
        self._last_remaining = time_limit_seconds
        self._fired = False
        self._stopped = False
        self._task: asyncio.Task | None = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def stopped(self) -> bool:
        return self._stopped

    def remaining_seconds(self) -> int:
        """남은 시간 (초, 0 이상, 시계가 뒤로 가도 증가하지 않음)"""
        elapsed = elapsed_seconds(self.started_at, self._clock.now())
        remaining = max(0, math.ceil(self.time_limit_seconds - elapsed))
        self._last_remaining = min(self._last_remaining, remaining)
        return self._last_remaining

    async def tick(self, on_expire: ExpireCallback | None = None) -> bool:
        """시간 초과 여부를 확인하고 필요하면 만료 처리, 이번 틱에서 만료시켰는지 반환

        on_expire를 넘기면 기본 콜백 대신 사용한다 (요청 처리 중 같은 DB 세션으로 만료할 때).
        """
        if self._fired or self._stopped:
            return False
        if self.remaining_seconds() > 0:
            return False

        # await 이전에 표시해야 같은 루프의 다른 틱이 중복 호출하지 않는다
        self._fired = True
        callback = on_expire or self._on_expire
        logger.info(f"응시 시간 초과: attempt_id={self.attempt_id}")
        try:
            await callback(self.attempt_id)
        except InvalidStateTransition as e:
            # 제출이 먼저 끝난 경우
            logger.info(f"만료 생략 (이미 종료됨): attempt_id={self.attempt_id}, status={e.current_status}")
            return False
        except Exception:
            self._fired = False
            raise
        return True

    def start(self, tick_seconds: float) -> asyncio.Task:
        """백그라운드 감시 태스크 시작"""
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(tick_seconds), name=f"attempt-timer-{self.attempt_id}"
            )
        return self._task

    async def _run(self, tick_seconds: float) -> None:
        while not self._fired and not self._stopped:
            remaining = self.remaining_seconds()
            await asyncio.sleep(min(tick_seconds, remaining) if remaining > 0 else 0)
            try:
                await self.tick()
            except Exception as e:
                logger.error(
                    f"응시 만료 처리 실패, 재시도 예정: attempt_id={self.attempt_id}, error={e.__class__.__name__}",
                    exc_info=True,
                )
                await asyncio.sleep(tick_seconds)

    def stop(self) -> None:
        """감시 중지 (응시가 active를 벗어나면 호출)"""
        self._stopped = True
        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def wait_stopped(self) -> None:
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class WatchdogRegistry:
    """응시 ID별 워치독 보관소

    run_in_background=False이면 태스크를 띄우지 않으므로 테스트에서 tick()을 직접 호출한다.
    """

    def __init__(
        self,
        clock: Clock,
        on_expire: ExpireCallback | None = None,
        *,
        run_in_background: bool = True,
        tick_seconds: float = 1.0,
    ):
        self.clock = clock
        self.on_expire = on_expire
        self.run_in_background = run_in_background
        self.tick_seconds = tick_seconds
        self._watchdogs: dict[int, TimerWatchdog] = {}

    def __contains__(self, attempt_id: int) -> bool:
        return attempt_id in self._watchdogs

    def __len__(self) -> int:
        return len(self._watchdogs)

    async def _dispatch_expire(self, attempt_id: int) -> object:
        if self.on_expire is None:
            raise RuntimeError("워치독 만료 콜백이 설정되지 않았습니다")
        return await self.on_expire(attempt_id)

    def arm(self, attempt_id: int, started_at: datetime, time_limit_seconds: int) -> TimerWatchdog:
        """워치독 생성 (이미 있으면 기존 것을 반환)"""
        watchdog = self._watchdogs.get(attempt_id)
        if watchdog is not None:
            return watchdog

        watchdog = TimerWatchdog(
            attempt_id=attempt_id,
            started_at=started_at,
            time_limit_seconds=time_limit_seconds,
            clock=self.clock,
            on_expire=self._dispatch_expire,
        )
        self._watchdogs[attempt_id] = watchdog
        if self.run_in_background:
            watchdog.start(self.tick_seconds)
        logger.debug(f"워치독 시작: attempt_id={attempt_id}, limit={time_limit_seconds}s")
        return watchdog

    def get(self, attempt_id: int) -> TimerWatchdog | None:
        return self._watchdogs.get(attempt_id)

    def disarm(self, attempt_id: int) -> None:
        watchdog = self._watchdogs.pop(attempt_id, None)
        if watchdog is not None:
            watchdog.stop()
            logger.debug(f"워치독 중지: attempt_id={attempt_id}")

    async def shutdown(self) -> None:
        """모든 워치독 중지 (애플리케이션 종료 시)"""
        watchdogs = list(self._watchdogs.values())
        self._watchdogs.clear()
        for watchdog in watchdogs:
            watchdog.stop()
        for watchdog in watchdogs:
            await watchdog.wait_stopped()
