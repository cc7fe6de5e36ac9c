from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_attempt_controller, get_current_user_id
from app.models.base import get_db
from app.schemas import attempt as attempt_schema, quiz as quiz_schema
from app.services import quiz_service
from app.services.attempt_service import AttemptSessionController

router = APIRouter(prefix="/quizzes", tags=["quizzes"])


@router.get("/question-types", response_model=quiz_schema.QuestionTypeListResponse)
async def get_question_types():
    """지원 문제 유형 목록 API"""
    return quiz_service.list_question_types()


@router.post("", response_model=quiz_schema.QuizResponse, status_code=status.HTTP_201_CREATED)
async def create_quiz(
    request: quiz_schema.QuizCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 정의 생성 API"""
    return await quiz_service.create_quiz(db, request)


@router.get("/{quiz_id}", response_model=quiz_schema.QuizResponse)
async def get_quiz(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 정의 조회 API (출제자용)"""
    return await quiz_service.get_quiz(db, quiz_id)


@router.put("/{quiz_id}", response_model=quiz_schema.QuizResponse)
async def update_quiz(
    quiz_id: int,
    request: quiz_schema.QuizCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 정의 수정 API (버전 증가, 진행 중 응시에는 영향 없음)"""
    return await quiz_service.update_quiz(db, quiz_id, request)


@router.delete("/{quiz_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quiz(
    quiz_id: int,
    db: AsyncSession = Depends(get_db),
):
    """퀴즈 정의 삭제 API"""
    await quiz_service.delete_quiz(db, quiz_id)


@router.post(
    "/{quiz_id}/attempts",
    response_model=attempt_schema.AttemptStateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_attempt(
    quiz_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """응시 시작 API"""
    return await controller.start(quiz_id, user_id)


@router.get("/{quiz_id}/history", response_model=attempt_schema.AttemptHistoryResponse)
async def get_attempt_history(
    quiz_id: int,
    user_id: str = Depends(get_current_user_id),
    controller: AttemptSessionController = Depends(get_attempt_controller),
):
    """내 응시 이력 조회 API"""
    return await controller.get_history(quiz_id, user_id)
