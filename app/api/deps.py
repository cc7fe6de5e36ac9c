from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.clock import Clock
from app.core.config import settings
from app.models.base import get_db
from app.services.attempt_service import AttemptSessionController
from app.services.timer_watchdog import WatchdogRegistry


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_watchdog_registry(request: Request) -> WatchdogRegistry:
    return request.app.state.watchdogs


def get_current_user_id(request: Request) -> str:
    """상위 인증 계층이 넣어 준 사용자 ID 헤더"""
    user_id = request.headers.get(settings.user_id_header)
    if not user_id or not user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"인증 정보가 없습니다 ({settings.user_id_header} 헤더 필요)",
        )
    return user_id.strip()


def get_attempt_controller(
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    timers: WatchdogRegistry = Depends(get_watchdog_registry),
) -> AttemptSessionController:
    return AttemptSessionController(db, clock=clock, timers=timers)
