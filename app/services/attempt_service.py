"""응시 세션 컨트롤러

응시 상태 머신: (없음) → active → submitting → graded | expired
graded/expired 에서는 어떤 전이도 허용하지 않는다.
제출과 시간 만료는 같은 조건부 UPDATE(active → submitting)를 거치므로
둘이 경쟁해도 종료 전이와 채점 결과는 정확히 하나만 생긴다.
submitting은 종료 트랜잭션 안에서만 존재하며, 커밋된 submitting은 active로 복구한다.
"""
import logging
import math
import random
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.clock import Clock, elapsed_seconds
from app.crud import attempt as attempt_crud, attempt_history as history_crud, quiz as quiz_crud
from app.exceptions import (
    AttemptAlreadyActive,
    AttemptLimitExceeded,
    AttemptNotFoundError,
    EmptyAttempt,
    InvalidStateTransition,
    QuizDefinitionInvalidError,
    ResultNotFoundError,
    StaleQuizDefinition,
    ValidationError,
)
from app.models.attempt import QuizAttempt
from app.models.base import get_async_session_maker
from app.schemas import attempt as attempt_schema
from app.schemas.quiz import QuizDefinition
from app.services import answer_reducer, grading_service, quiz_service
from app.services.question_types import get_strategy, is_auto_gradable
from app.services.timer_watchdog import TimerWatchdog, WatchdogRegistry

logger = logging.getLogger(__name__)


def _snapshot(attempt: QuizAttempt) -> QuizDefinition:
    return QuizDefinition.model_validate(attempt.definition_snapshot)


def _status(attempt: QuizAttempt) -> attempt_schema.AttemptStatus:
    return attempt_schema.AttemptStatus(attempt.status)


class AttemptSessionController:
    """응시 시작/답안/이동/제출/만료를 조율

    Args:
        session: 요청 단위 DB 세션
        clock: 현재 시각 소스
        timers: 응시별 타이머 워치독 보관소
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Clock,
        timers: WatchdogRegistry,
        rng: random.Random | None = None,
    ):
        self.session = session
        self.clock = clock
        self.timers = timers
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # 내부 헬퍼
    # ------------------------------------------------------------------

    async def _load_attempt(self, attempt_id: int, user_id: str | None = None) -> QuizAttempt:
        attempt = await attempt_crud.get_attempt_by_id(self.session, attempt_id)
        # 다른 사용자의 응시는 존재 자체를 노출하지 않는다
        if not attempt or (user_id is not None and attempt.user_id != user_id):
            raise AttemptNotFoundError(attempt_id)
        return attempt

    def _watchdog_for(self, attempt: QuizAttempt) -> TimerWatchdog | None:
        if attempt.time_limit_seconds is None or _status(attempt) != attempt_schema.AttemptStatus.ACTIVE:
            return None
        # 서버 재시작 등으로 워치독이 없으면 다시 건다
        return self.timers.arm(attempt.id, attempt.started_at, attempt.time_limit_seconds)

    async def _recover_stale_submission(self, attempt: QuizAttempt) -> None:
        if _status(attempt) != attempt_schema.AttemptStatus.SUBMITTING:
            return
        await attempt_crud.transition_status(
            self.session,
            attempt.id,
            expected=attempt_schema.AttemptStatus.SUBMITTING,
            new=attempt_schema.AttemptStatus.ACTIVE,
        )
        await self.session.commit()
        await self.session.refresh(attempt)
        logger.warning(f"중단된 제출 복구: attempt_id={attempt.id}, status={attempt.status}")

    async def _enforce_deadline(self, attempt: QuizAttempt) -> None:
        """시간이 다 된 active 응시는 먼저 만료시킨다"""
        await self._recover_stale_submission(attempt)
        watchdog = self._watchdog_for(attempt)
        if watchdog is None:
            return
        await watchdog.tick(self.expire)
        if watchdog.fired:
            await self.session.refresh(attempt)
            self.timers.disarm(attempt.id)

    def _require_active(self, attempt: QuizAttempt, action: str) -> None:
        if _status(attempt) != attempt_schema.AttemptStatus.ACTIVE:
            raise InvalidStateTransition(attempt.id, attempt.status, action)

    def _time_remaining(self, attempt: QuizAttempt) -> int | None:
        if attempt.time_limit_seconds is None:
            return None
        status = _status(attempt)
        if status == attempt_schema.AttemptStatus.EXPIRED:
            return 0
        if status == attempt_schema.AttemptStatus.ACTIVE:
            watchdog = self.timers.get(attempt.id)
            if watchdog is not None:
                return watchdog.remaining_seconds()
        end = attempt.completed_at or self.clock.now()
        return max(0, math.ceil(attempt.time_limit_seconds - elapsed_seconds(attempt.started_at, end)))

    async def _ledger(self, attempt_id: int) -> list[attempt_schema.AnswerRecord]:
        answers = await attempt_crud.get_answers(self.session, attempt_id)
        return [attempt_schema.AnswerRecord.model_validate(a) for a in answers]

    async def _build_state(self, attempt: QuizAttempt) -> attempt_schema.AttemptStateResponse:
        ledger = await self._ledger(attempt.id)
        return attempt_schema.AttemptStateResponse(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            attempt_number=attempt.attempt_number,
            status=_status(attempt),
            current_question_index=attempt.current_question_index,
            question_count=len(attempt.question_order),
            time_remaining_seconds=self._time_remaining(attempt),
            answered_question_ids=sorted(record.question_id for record in ledger),
            definition_version=attempt.definition_version,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
        )

    # ------------------------------------------------------------------
    # 응시 시작
    # ------------------------------------------------------------------

    async def start(self, quiz_id: int, user_id: str) -> attempt_schema.AttemptStateResponse:
        """응시 시작

        Raises:
            QuizNotFoundError: 퀴즈가 없을 때
            QuizDefinitionInvalidError: 문제가 없는 퀴즈
            AttemptAlreadyActive: 진행 중인 응시가 있을 때
            AttemptLimitExceeded: 최대 응시 횟수를 모두 사용했을 때
        """
        definition = await quiz_service.get_quiz_definition(self.session, quiz_id)
        if not definition.questions:
            raise QuizDefinitionInvalidError(f"문제가 없는 퀴즈는 응시할 수 없습니다: {quiz_id}")

        active = await attempt_crud.get_active_attempt(self.session, user_id, quiz_id)
        if active is not None:
            await self._enforce_deadline(active)
            if _status(active) in (attempt_schema.AttemptStatus.ACTIVE, attempt_schema.AttemptStatus.SUBMITTING):
                raise AttemptAlreadyActive(quiz_id, active.id)

        settings = definition.settings
        prior_count = await history_crud.count_attempts(self.session, user_id, quiz_id)
        if prior_count >= settings.max_attempts:
            logger.warning(
                f"응시 횟수 초과: user_id={user_id}, quiz_id={quiz_id}, "
                f"count={prior_count}, max={settings.max_attempts}"
            )
            raise AttemptLimitExceeded(quiz_id, settings.max_attempts)

        question_order = [q.id for q in definition.questions]
        if settings.shuffle_questions:
            self.rng.shuffle(question_order)

        time_limit_seconds = (
            settings.time_limit_minutes * 60 if settings.time_limit_minutes is not None else None
        )
        started_at = self.clock.now()

        try:
            attempt = await attempt_crud.create_attempt(
                self.session,
                quiz_id=quiz_id,
                user_id=user_id,
                attempt_number=prior_count + 1,
                started_at=started_at,
                time_limit_seconds=time_limit_seconds,
                question_order=question_order,
                definition_version=definition.version,
                definition_snapshot=definition.model_dump(mode="json"),
            )
            await self.session.commit()
        except IntegrityError:
            # 같은 회차 번호로 동시에 시작한 경우
            await self.session.rollback()
            logger.warning(f"동시 응시 시작 충돌: user_id={user_id}, quiz_id={quiz_id}")
            raise AttemptAlreadyActive(quiz_id)

        if time_limit_seconds is not None:
            self.timers.arm(attempt.id, started_at, time_limit_seconds)

        logger.info(
            f"응시 시작: attempt_id={attempt.id}, user_id={user_id}, quiz_id={quiz_id}, "
            f"attempt_number={attempt.attempt_number}, time_limit={time_limit_seconds}"
        )
        return await self._build_state(attempt)

    # ------------------------------------------------------------------
    # 응시 중 조작
    # ------------------------------------------------------------------

    async def get_state(self, attempt_id: int, user_id: str) -> attempt_schema.AttemptStateResponse:
        """응시 상태 조회 (읽기 전용, 시간이 다 됐으면 만료가 먼저 반영됨)"""
        attempt = await self._load_attempt(attempt_id, user_id)
        await self._enforce_deadline(attempt)
        return await self._build_state(attempt)

    async def get_questions(self, attempt_id: int, user_id: str) -> attempt_schema.AttemptQuestionsResponse:
        """응시자용 문제 목록 (응시 순서, 정답/해설 제외)"""
        attempt = await self._load_attempt(attempt_id, user_id)
        await self._enforce_deadline(attempt)
        definition = _snapshot(attempt)
        ledger = {record.question_id: record for record in await self._ledger(attempt.id)}

        questions = []
        for position, question_id in enumerate(attempt.question_order):
            question = definition.get_question(question_id)
            if question is None:
                continue
            answer = ledger.get(question_id)
            selection = answer_reducer.selection_state(question, answer)
            questions.append(
                attempt_schema.LearnerQuestionView(
                    id=question.id,
                    position=position,
                    type=question.type,
                    prompt=question.prompt,
                    points=question.points,
                    options=[
                        attempt_schema.LearnerOptionView(id=o.id, text=o.text, selected=selection[o.id])
                        for o in question.options
                    ],
                    answer=answer,
                )
            )

        return attempt_schema.AttemptQuestionsResponse(
            attempt_id=attempt.id,
            definition_version=attempt.definition_version,
            questions=questions,
            total=len(questions),
        )

    async def record_answer(
        self,
        attempt_id: int,
        user_id: str,
        question_id: int,
        payload: attempt_schema.AnswerSubmitRequest,
    ) -> attempt_schema.AnswerRecord:
        """답안 저장 (같은 문제의 이전 답안을 대체)

        Raises:
            InvalidStateTransition: active가 아닌 응시
            StaleQuizDefinition: 클라이언트의 정의 버전이 응시 스냅샷과 다를 때
            ValidationError: 문제 유형과 맞지 않는 답안
        """
        attempt = await self._load_attempt(attempt_id, user_id)
        await self._enforce_deadline(attempt)
        self._require_active(attempt, "record_answer")

        if payload.definition_version is not None and payload.definition_version != attempt.definition_version:
            raise StaleQuizDefinition(attempt.id, attempt.definition_version, payload.definition_version)

        question = _snapshot(attempt).get_question(question_id)
        if question is None:
            raise ValidationError(f"이 응시에 없는 문제입니다: question_id={question_id}")
        get_strategy(question.type).validate_answer(question, payload)

        now = self.clock.now()
        # 현재 보고 있는 문제일 때만 마지막 이동 시점부터의 경과 시간을 기록
        current_question_id = attempt.question_order[attempt.current_question_index]
        elapsed = (
            int(elapsed_seconds(attempt.question_entered_at, now))
            if current_question_id == question_id
            else None
        )

        prior_row = await attempt_crud.get_answer(self.session, attempt.id, question_id)
        prior = attempt_schema.AnswerRecord.model_validate(prior_row) if prior_row else None
        record = answer_reducer.apply_answer(prior, question_id, payload, now, elapsed)

        await attempt_crud.upsert_answer(self.session, attempt.id, record)
        await self.session.commit()
        logger.debug(f"답안 저장: attempt_id={attempt.id}, question_id={question_id}")
        return record

    async def navigate(self, attempt_id: int, user_id: str, index: int) -> attempt_schema.AttemptStateResponse:
        """문제 이동 (점수에는 영향 없음)"""
        attempt = await self._load_attempt(attempt_id, user_id)
        await self._enforce_deadline(attempt)
        self._require_active(attempt, "navigate")

        question_count = len(attempt.question_order)
        if not 0 <= index < question_count:
            raise ValidationError(f"문제 위치가 범위를 벗어났습니다: index={index}, count={question_count}")

        attempt.current_question_index = index
        attempt.question_entered_at = self.clock.now()
        await self.session.commit()
        return await self._build_state(attempt)

    # ------------------------------------------------------------------
    # 종료 (제출 / 만료)
    # ------------------------------------------------------------------

    async def submit(self, attempt_id: int, user_id: str) -> attempt_schema.AttemptResultResponse:
        """제출 후 채점

        Raises:
            InvalidStateTransition: 이미 종료됐거나 만료된 응시
            EmptyAttempt: 답안이 하나도 없을 때
        """
        attempt = await self._load_attempt(attempt_id, user_id)
        await self._enforce_deadline(attempt)
        self._require_active(attempt, "submit")

        if await attempt_crud.count_answers(self.session, attempt.id) == 0:
            raise EmptyAttempt(attempt.id)

        await self._terminate(attempt, attempt_schema.AttemptStatus.GRADED)
        return await self._build_result(attempt)

    async def expire(self, attempt_id: int) -> attempt_schema.GradingResult:
        """시간 만료로 강제 제출 (워치독 전용)

        답안이 없어도 0점 결과로 기록한다.
        """
        attempt = await self._load_attempt(attempt_id)
        await self._recover_stale_submission(attempt)
        self._require_active(attempt, "expire")
        return await self._terminate(attempt, attempt_schema.AttemptStatus.EXPIRED)

    async def _terminate(
        self,
        attempt: QuizAttempt,
        final_status: attempt_schema.AttemptStatus,
    ) -> attempt_schema.GradingResult:
        # 선점(조건부 UPDATE)부터 최종 상태까지 하나의 트랜잭션으로 처리한다.
        # 경쟁한 다른 호출은 행 잠금이 풀린 뒤 rowcount 0을 보게 된다.
        claimed = await attempt_crud.transition_status(
            self.session,
            attempt.id,
            expected=attempt_schema.AttemptStatus.ACTIVE,
            new=attempt_schema.AttemptStatus.SUBMITTING,
        )
        if not claimed:
            await self.session.rollback()
            await self.session.refresh(attempt)
            raise InvalidStateTransition(attempt.id, attempt.status, final_status.value)

        try:
            grading_result = grading_service.grade(_snapshot(attempt), await self._ledger(attempt.id))
            completed_at = self.clock.now()

            await attempt_crud.create_result(self.session, attempt.id, grading_result)
            await history_crud.append_entry(
                self.session,
                user_id=attempt.user_id,
                quiz_id=attempt.quiz_id,
                attempt_id=attempt.id,
                attempt_number=attempt.attempt_number,
                status=final_status,
                grading_result=grading_result,
                started_at=attempt.started_at,
                completed_at=completed_at,
            )
            attempt.status = final_status.value
            attempt.completed_at = completed_at
            await self.session.commit()
        except Exception:
            logger.error(f"채점 결과 저장 실패: attempt_id={attempt.id}", exc_info=True)
            # 선점도 함께 취소되므로 응시는 active로 남는다
            await self.session.rollback()
            await self.session.refresh(attempt)
            raise

        self.timers.disarm(attempt.id)
        logger.info(
            f"응시 종료: attempt_id={attempt.id}, status={final_status.value}, "
            f"score={grading_result.total_score}/{grading_result.max_score} "
            f"({grading_result.percentage_score}%), passed={grading_result.passed}, "
            f"pending={grading_result.pending_count}"
        )
        return grading_result

    # ------------------------------------------------------------------
    # 결과 / 이력
    # ------------------------------------------------------------------

    async def _build_result(self, attempt: QuizAttempt) -> attempt_schema.AttemptResultResponse:
        stored = await attempt_crud.get_result_by_attempt(self.session, attempt.id)
        if stored is None:
            raise ResultNotFoundError(attempt.id)

        definition = _snapshot(attempt)
        result, revealed = grading_service.result_for_learner(
            attempt_schema.GradingResult.model_validate(stored.result),
            definition.settings,
        )

        live_version = await quiz_crud.get_quiz_version(self.session, attempt.quiz_id)
        definition_changed = live_version != attempt.definition_version
        if definition_changed:
            logger.warning(
                f"응시 이후 퀴즈 정의 변경됨: attempt_id={attempt.id}, "
                f"snapshot_version={attempt.definition_version}, live_version={live_version}"
            )

        return attempt_schema.AttemptResultResponse(
            attempt_id=attempt.id,
            quiz_id=attempt.quiz_id,
            attempt_number=attempt.attempt_number,
            status=_status(attempt),
            result=result,
            answers_revealed=revealed,
            definition_changed=definition_changed,
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
        )

    async def get_result(self, attempt_id: int, user_id: str) -> attempt_schema.AttemptResultResponse:
        """저장된 채점 결과 조회 (정답 공개 설정 반영)"""
        attempt = await self._load_attempt(attempt_id, user_id)
        await self._enforce_deadline(attempt)
        if not _status(attempt).is_terminal:
            raise ResultNotFoundError(attempt.id)
        return await self._build_result(attempt)

    async def list_pending_answers(self, attempt_id: int, user_id: str) -> attempt_schema.PendingAnswerListResponse:
        """수동 채점 대상 답안 목록 (자동 채점 불가 문제 전체)"""
        attempt = await self._load_attempt(attempt_id, user_id)
        definition = _snapshot(attempt)
        ledger = {record.question_id: record for record in await self._ledger(attempt.id)}

        pending = [
            attempt_schema.PendingAnswerResponse(
                question_id=question.id,
                question_type=question.type,
                prompt=question.prompt,
                points=question.points,
                answer=ledger.get(question.id),
            )
            for question in definition.questions
            if not is_auto_gradable(question.type)
        ]
        return attempt_schema.PendingAnswerListResponse(
            attempt_id=attempt.id,
            status=_status(attempt),
            pending_answers=pending,
            total=len(pending),
        )

    async def get_history(self, quiz_id: int, user_id: str) -> attempt_schema.AttemptHistoryResponse:
        """사용자의 퀴즈 응시 이력 (최고/최근 응시 포함)"""
        entries = await history_crud.list_attempts(self.session, user_id, quiz_id)
        best = await history_crud.get_best_attempt(self.session, user_id, quiz_id)
        latest = await history_crud.get_latest_attempt(self.session, user_id, quiz_id)

        quiz = await quiz_crud.get_quiz_by_id(self.session, quiz_id)
        max_attempts = quiz.max_attempts if quiz else None
        remaining = max(0, max_attempts - len(entries)) if max_attempts is not None else None

        return attempt_schema.AttemptHistoryResponse(
            quiz_id=quiz_id,
            attempts=[attempt_schema.AttemptHistoryEntry.model_validate(e) for e in entries],
            total=len(entries),
            max_attempts=max_attempts,
            attempts_remaining=remaining,
            best_attempt=attempt_schema.AttemptHistoryEntry.model_validate(best) if best else None,
            latest_attempt=attempt_schema.AttemptHistoryEntry.model_validate(latest) if latest else None,
        )


def create_watchdog_registry(
    clock: Clock,
    *,
    run_in_background: bool = True,
    tick_seconds: float = 1.0,
    session_maker: Callable[[], async_sessionmaker[AsyncSession]] = get_async_session_maker,
) -> WatchdogRegistry:
    """만료 시 새 DB 세션으로 expire()를 호출하는 워치독 보관소 생성"""
    registry = WatchdogRegistry(clock, run_in_background=run_in_background, tick_seconds=tick_seconds)

    async def expire_in_new_session(attempt_id: int) -> attempt_schema.GradingResult:
        async with session_maker()() as session:
            controller = AttemptSessionController(session, clock=clock, timers=registry)
            return await controller.expire(attempt_id)

    registry.on_expire = expire_in_new_session
    return registry


async def restore_watchdogs(session: AsyncSession, registry: WatchdogRegistry) -> int:
    """서버 시작 시 진행 중인 시간 제한 응시의 워치독 복구

    중단된 제출(submitting)은 먼저 active로 되돌린 뒤 워치독을 건다.
    """
    reset = await attempt_crud.reset_stale_submissions(session)
    if reset:
        await session.commit()
        logger.warning(f"중단된 제출 복구: {reset}건")

    restored = 0
    for attempt in await attempt_crud.get_active_attempts(session):
        if attempt.time_limit_seconds is not None:
            registry.arm(attempt.id, attempt.started_at, attempt.time_limit_seconds)
            restored += 1
    if restored:
        logger.info(f"워치독 복구: {restored}건")
    return restored
