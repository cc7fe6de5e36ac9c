from datetime import datetime
from typing import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attempt import QuizAnswer, QuizAttempt, QuizResult
from app.schemas.attempt import AnswerRecord, AttemptStatus, GradingResult


async def create_attempt(
    session: AsyncSession,
    *,
    quiz_id: int,
    user_id: str,
    attempt_number: int,
    started_at: datetime,
    time_limit_seconds: int | None,
    question_order: list[int],
    definition_version: int,
    definition_snapshot: dict,
) -> QuizAttempt:
    """응시 생성 (commit은 호출자가 담당)"""
    attempt = QuizAttempt(
        quiz_id=quiz_id,
        user_id=user_id,
        attempt_number=attempt_number,
        status=AttemptStatus.ACTIVE.value,
        started_at=started_at,
        time_limit_seconds=time_limit_seconds,
        current_question_index=0,
        question_entered_at=started_at,
        question_order=question_order,
        definition_version=definition_version,
        definition_snapshot=definition_snapshot,
    )
    session.add(attempt)
    await session.flush()
    return attempt


async def get_attempt_by_id(session: AsyncSession, attempt_id: int) -> QuizAttempt | None:
    """ID로 응시 조회"""
    # 다른 세션(워치독)이 바꾼 상태를 반영하도록 항상 다시 읽는다
    stmt = select(QuizAttempt).where(QuizAttempt.id == attempt_id).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_attempt(
    session: AsyncSession,
    user_id: str,
    quiz_id: int,
) -> QuizAttempt | None:
    """사용자의 진행 중(active/submitting) 응시 조회"""
    stmt = (
        select(QuizAttempt)
        .where(
            QuizAttempt.user_id == user_id,
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.status.in_([AttemptStatus.ACTIVE.value, AttemptStatus.SUBMITTING.value]),
        )
        .order_by(QuizAttempt.id.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_active_attempts(session: AsyncSession) -> Sequence[QuizAttempt]:
    """진행 중인 모든 응시 (서버 재시작 시 타이머 복구용)"""
    stmt = select(QuizAttempt).where(QuizAttempt.status == AttemptStatus.ACTIVE.value)
    result = await session.execute(stmt)
    return result.scalars().all()


async def transition_status(
    session: AsyncSession,
    attempt_id: int,
    expected: AttemptStatus,
    new: AttemptStatus,
) -> bool:
    """상태 조건부 전이 (compare-and-set)

    현재 상태가 expected일 때만 new로 바꾸고, 실제로 바뀌었는지 반환한다.
    세션에 로드된 객체의 status는 갱신하지 않으므로 호출자가 직접 맞춘다.
    """
    stmt = (
        update(QuizAttempt)
        .where(QuizAttempt.id == attempt_id, QuizAttempt.status == expected.value)
        .values(status=new.value)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount == 1


async def get_answer(
    session: AsyncSession,
    attempt_id: int,
    question_id: int,
) -> QuizAnswer | None:
    """응시 ID와 문제 ID로 답안 조회"""
    stmt = select(QuizAnswer).where(
        QuizAnswer.attempt_id == attempt_id,
        QuizAnswer.question_id == question_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_answers(session: AsyncSession, attempt_id: int) -> Sequence[QuizAnswer]:
    """응시의 전체 답안 (Answer Ledger)"""
    stmt = select(QuizAnswer).where(QuizAnswer.attempt_id == attempt_id).order_by(QuizAnswer.id)
    result = await session.execute(stmt)
    return result.scalars().all()


async def count_answers(session: AsyncSession, attempt_id: int) -> int:
    count_stmt = select(func.count(QuizAnswer.id)).where(QuizAnswer.attempt_id == attempt_id)
    return await session.scalar(count_stmt) or 0


async def upsert_answer(
    session: AsyncSession,
    attempt_id: int,
    record: AnswerRecord,
) -> QuizAnswer:
    """문제별 답안 저장 (기존 답안은 덮어씀, commit은 호출자가 담당)"""
    answer = await get_answer(session, attempt_id, record.question_id)
    if answer is None:
        answer = QuizAnswer(attempt_id=attempt_id, question_id=record.question_id)
        session.add(answer)

    answer.selected_option_id = record.selected_option_id
    answer.text_answer = record.text_answer
    answer.file_url = record.file_url
    answer.time_spent_seconds = record.time_spent_seconds
    answer.last_modified_at = record.last_modified_at
    await session.flush()
    return answer


async def create_result(
    session: AsyncSession,
    attempt_id: int,
    grading_result: GradingResult,
) -> QuizResult:
    """채점 결과 스냅샷 저장 (commit은 호출자가 담당)"""
    result = QuizResult(
        attempt_id=attempt_id,
        total_score=grading_result.total_score,
        max_score=grading_result.max_score,
        percentage_score=grading_result.percentage_score,
        passed=grading_result.passed,
        result=grading_result.model_dump(mode="json"),
    )
    session.add(result)
    await session.flush()
    return result


async def get_result_by_attempt(session: AsyncSession, attempt_id: int) -> QuizResult | None:
    """응시 ID로 채점 결과 조회"""
    result = await session.execute(select(QuizResult).where(QuizResult.attempt_id == attempt_id))
    return result.scalar_one_or_none()


async def reset_stale_submissions(session: AsyncSession) -> int:
    """커밋된 채로 남은 submitting 응시를 active로 되돌림 (commit은 호출자가 담당)

    종료 처리는 한 트랜잭션에서 끝나므로 커밋된 submitting은 비정상 종료의 흔적이다.
    """
    stmt = (
        update(QuizAttempt)
        .where(QuizAttempt.status == AttemptStatus.SUBMITTING.value)
        .values(status=AttemptStatus.ACTIVE.value)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return result.rowcount or 0
