import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.crud import quiz as quiz_crud
from app.exceptions import QuizNotFoundError
from app.models.quiz import Quiz
from app.schemas import quiz as quiz_schema
from app.services.question_types import registered_strategies

logger = logging.getLogger(__name__)


def definition_from_model(quiz: Quiz) -> quiz_schema.QuizDefinition:
    """ORM 퀴즈(문제/선택지 로드 필요)를 불변 정의 모델로 변환"""
    return quiz_schema.QuizDefinition(
        id=quiz.id,
        title=quiz.title,
        version=quiz.version,
        settings=quiz_schema.QuizSettings(
            time_limit_minutes=quiz.time_limit_minutes,
            passing_score_percent=quiz.passing_score_percent,
            max_attempts=quiz.max_attempts,
            shuffle_questions=quiz.shuffle_questions,
            show_correct_answers=quiz.show_correct_answers,
        ),
        questions=tuple(
            quiz_schema.QuestionDefinition(
                id=question.id,
                type=quiz_schema.QuestionType(question.question_type),
                prompt=question.prompt,
                points=question.points,
                order_index=question.order_index,
                explanation=question.explanation,
                correct_text=question.correct_text,
                options=tuple(
                    quiz_schema.OptionDefinition.model_validate(option) for option in question.options
                ),
            )
            for question in quiz.questions
        ),
    )


def _to_response(quiz: Quiz) -> quiz_schema.QuizResponse:
    definition = definition_from_model(quiz)
    return quiz_schema.QuizResponse(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        version=quiz.version,
        settings=definition.settings,
        questions=[
            quiz_schema.QuestionResponse(
                id=q.id,
                type=q.type,
                prompt=q.prompt,
                points=q.points,
                order_index=q.order_index,
                explanation=q.explanation,
                correct_text=q.correct_text,
                options=[quiz_schema.OptionResponse.model_validate(o) for o in q.options],
            )
            for q in definition.questions
        ],
        total_points=sum(q.points for q in definition.questions),
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
    )


async def get_quiz_definition(session: AsyncSession, quiz_id: int) -> quiz_schema.QuizDefinition:
    """응시용 퀴즈 정의 조회"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_questions=True)
    if not quiz:
        raise QuizNotFoundError(quiz_id)
    return definition_from_model(quiz)


async def create_quiz(
    session: AsyncSession,
    request: quiz_schema.QuizCreateRequest,
) -> quiz_schema.QuizResponse:
    """퀴즈 정의 생성"""
    quiz = await quiz_crud.create_quiz(session, request)
    logger.info(f"퀴즈 생성: quiz_id={quiz.id}, question_count={len(quiz.questions)}")
    return _to_response(quiz)


async def get_quiz(session: AsyncSession, quiz_id: int) -> quiz_schema.QuizResponse:
    """퀴즈 정의 조회 (출제자용, 정답 포함)"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_questions=True)
    if not quiz:
        raise QuizNotFoundError(quiz_id)
    return _to_response(quiz)


async def update_quiz(
    session: AsyncSession,
    quiz_id: int,
    request: quiz_schema.QuizCreateRequest,
) -> quiz_schema.QuizResponse:
    """퀴즈 정의 교체"""
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_questions=True)
    if not quiz:
        raise QuizNotFoundError(quiz_id)

    quiz = await quiz_crud.replace_quiz(session, quiz, request)
    logger.info(f"퀴즈 수정: quiz_id={quiz_id}, version={quiz.version}")
    return _to_response(quiz)


async def delete_quiz(session: AsyncSession, quiz_id: int) -> None:
    """퀴즈 정의 삭제 (진행 중 응시는 스냅샷으로 계속 진행)"""
    # cascade 삭제를 위해 문제/선택지를 함께 로드
    quiz = await quiz_crud.get_quiz_by_id(session, quiz_id, load_questions=True)
    if not quiz:
        raise QuizNotFoundError(quiz_id)

    await quiz_crud.delete_quiz(session, quiz)
    logger.info(f"퀴즈 삭제: quiz_id={quiz_id}")


def list_question_types() -> quiz_schema.QuestionTypeListResponse:
    """지원하는 문제 유형 목록"""
    question_types = [
        quiz_schema.QuestionTypeInfo(
            type=strategy.question_type,
            auto_gradable=strategy.auto_gradable,
            answer_field=strategy.answer_field,
        )
        for strategy in registered_strategies()
    ]
    return quiz_schema.QuestionTypeListResponse(question_types=question_types, total=len(question_types))
