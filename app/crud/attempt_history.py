from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attempt import AttemptHistory
from app.schemas.attempt import AttemptStatus, GradingResult


async def count_attempts(session: AsyncSession, user_id: str, quiz_id: int) -> int:
    """사용자/퀴즈별 종료된 응시 횟수"""
    count_stmt = select(func.count(AttemptHistory.id)).where(
        AttemptHistory.user_id == user_id,
        AttemptHistory.quiz_id == quiz_id,
    )
    return await session.scalar(count_stmt) or 0


async def append_entry(
    session: AsyncSession,
    *,
    user_id: str,
    quiz_id: int,
    attempt_id: int,
    attempt_number: int,
    status: AttemptStatus,
    grading_result: GradingResult,
    started_at: datetime,
    completed_at: datetime,
) -> AttemptHistory:
    """이력 추가 (수정/삭제 함수는 두지 않는다, commit은 호출자가 담당)"""
    entry = AttemptHistory(
        user_id=user_id,
        quiz_id=quiz_id,
        attempt_id=attempt_id,
        attempt_number=attempt_number,
        status=status.value,
        total_score=grading_result.total_score,
        max_score=grading_result.max_score,
        percentage_score=grading_result.percentage_score,
        passed=grading_result.passed,
        started_at=started_at,
        completed_at=completed_at,
    )
    session.add(entry)
    await session.flush()
    return entry


async def list_attempts(session: AsyncSession, user_id: str, quiz_id: int) -> Sequence[AttemptHistory]:
    """응시 이력 목록 (회차 순)"""
    stmt = (
        select(AttemptHistory)
        .where(AttemptHistory.user_id == user_id, AttemptHistory.quiz_id == quiz_id)
        .order_by(AttemptHistory.attempt_number)
    )
    result = await session.execute(stmt)
    return result.scalars().all()


async def get_best_attempt(session: AsyncSession, user_id: str, quiz_id: int) -> AttemptHistory | None:
    """최고 점수 응시 (동점이면 먼저 응시한 회차)"""
    stmt = (
        select(AttemptHistory)
        .where(AttemptHistory.user_id == user_id, AttemptHistory.quiz_id == quiz_id)
        .order_by(AttemptHistory.percentage_score.desc(), AttemptHistory.attempt_number.asc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_latest_attempt(session: AsyncSession, user_id: str, quiz_id: int) -> AttemptHistory | None:
    """가장 최근 응시"""
    stmt = (
        select(AttemptHistory)
        .where(AttemptHistory.user_id == user_id, AttemptHistory.quiz_id == quiz_id)
        .order_by(AttemptHistory.attempt_number.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()
