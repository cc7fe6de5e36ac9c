from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.quiz import Quiz, QuizQuestion, QuizQuestionOption
from app.schemas.quiz import QuestionCreateRequest, QuizCreateRequest


async def get_quiz_by_id(
    session: AsyncSession,
    quiz_id: int,
    load_questions: bool = False,
) -> Quiz | None:
    """ID로 퀴즈 조회

    Args:
        session: 데이터베이스 세션
        quiz_id: 퀴즈 ID
        load_questions: 문제/선택지를 eager load할지 여부
    """
    stmt = select(Quiz).where(Quiz.id == quiz_id)

    if load_questions:
        stmt = stmt.options(
            selectinload(Quiz.questions).selectinload(QuizQuestion.options),
        ).execution_options(populate_existing=True)

    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_quiz_version(session: AsyncSession, quiz_id: int) -> int | None:
    """퀴즈 정의 현재 버전 (삭제된 경우 None)"""
    return await session.scalar(select(Quiz.version).where(Quiz.id == quiz_id))


def _build_questions(questions: list[QuestionCreateRequest]) -> list[QuizQuestion]:
    built = []
    for order_index, question in enumerate(questions):
        built.append(
            QuizQuestion(
                question_type=question.type.value,
                prompt=question.prompt,
                points=question.points,
                order_index=order_index,
                explanation=question.explanation,
                correct_text=question.correct_text,
                options=[
                    QuizQuestionOption(text=option.text, is_correct=option.is_correct, order_index=i)
                    for i, option in enumerate(question.options)
                ],
            )
        )
    return built


def _apply_settings(quiz: Quiz, request: QuizCreateRequest) -> None:
    quiz.title = request.title
    quiz.description = request.description
    quiz.time_limit_minutes = request.settings.time_limit_minutes
    quiz.passing_score_percent = request.settings.passing_score_percent
    quiz.max_attempts = request.settings.max_attempts
    quiz.shuffle_questions = request.settings.shuffle_questions
    quiz.show_correct_answers = request.settings.show_correct_answers


async def create_quiz(session: AsyncSession, request: QuizCreateRequest) -> Quiz:
    """퀴즈 정의 생성 (문제/선택지 포함)"""
    quiz = Quiz(version=1, questions=_build_questions(request.questions))
    _apply_settings(quiz, request)
    session.add(quiz)
    await session.commit()
    return await get_quiz_by_id(session, quiz.id, load_questions=True)


async def replace_quiz(session: AsyncSession, quiz: Quiz, request: QuizCreateRequest) -> Quiz:
    """퀴즈 정의 전체 교체 (버전 증가)

    진행 중인 응시는 시작 시점 스냅샷을 쓰므로 영향을 받지 않는다.
    """
    _apply_settings(quiz, request)
    quiz.questions = _build_questions(request.questions)
    quiz.version = quiz.version + 1
    await session.commit()
    return await get_quiz_by_id(session, quiz.id, load_questions=True)


async def delete_quiz(session: AsyncSession, quiz: Quiz) -> None:
    """퀴즈 정의 삭제 (문제/선택지 cascade)"""
    await session.delete(quiz)
    await session.commit()

