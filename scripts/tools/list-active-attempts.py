#!/usr/bin/env python3
"""진행 중인 응시와 남은 시간 조회 (운영 점검용)"""
import asyncio
import sys
from pathlib import Path

# 프로젝트 루트를 Python 경로에 추가
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

from app.core.clock import SystemClock, elapsed_seconds
from app.crud import attempt as attempt_crud
from app.models.base import get_async_session_maker, get_engine


async def list_active_attempts():
    clock = SystemClock()
    async with get_async_session_maker()() as session:
        attempts = await attempt_crud.get_active_attempts(session)

    print(f"[INFO] 진행 중인 응시: {len(attempts)}건")
    for attempt in attempts:
        if attempt.time_limit_seconds is None:
            remaining = "제한 없음"
        else:
            left = attempt.time_limit_seconds - elapsed_seconds(attempt.started_at, clock.now())
            remaining = f"{max(0, int(left))}초" if left > 0 else "만료 대기"
        print(
            f"  - attempt_id={attempt.id}, user_id={attempt.user_id}, quiz_id={attempt.quiz_id}, "
            f"attempt_number={attempt.attempt_number}, 남은 시간={remaining}"
        )

    await get_engine().dispose()


if __name__ == "__main__":
    asyncio.run(list_active_attempts())
