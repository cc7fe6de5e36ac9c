"""시간 소스

타이머 워치독과 시도 컨트롤러는 모두 주입된 Clock으로 현재 시각을 얻는다.
테스트에서는 수동으로 진행시키는 가짜 시계를 주입한다.
"""
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """실제 벽시계 (UTC)"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """naive datetime은 UTC로 간주 (SQLite는 tzinfo를 보존하지 않음)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_seconds(start: datetime, end: datetime) -> float:
    return (as_utc(end) - as_utc(start)).total_seconds()
