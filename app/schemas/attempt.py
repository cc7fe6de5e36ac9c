from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.quiz import QuestionType


class AttemptStatus(str, Enum):
    """응시 상태 (NotStarted는 행이 없는 상태)"""
    ACTIVE = "active"
    SUBMITTING = "submitting"
    GRADED = "graded"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in (AttemptStatus.GRADED, AttemptStatus.EXPIRED)


class AnswerSubmitRequest(BaseModel):
    """답안 저장 요청 스키마 (문제 유형에 맞는 필드 하나를 채운다)"""
    selected_option_id: int | None = Field(None, description="선택한 선택지 ID (객관식/OX)")
    text_answer: str | None = Field(None, max_length=20000, description="텍스트 답안 (빈칸/서술)")
    file_url: str | None = Field(None, max_length=1024, description="업로드 파일/녹화 URL")
    definition_version: int | None = Field(
        None, description="클라이언트가 보고 있는 퀴즈 정의 버전 (불일치 시 409)"
    )


class AnswerRecord(BaseModel):
    """문제별 최신 답안"""
    question_id: int
    selected_option_id: int | None = None
    text_answer: str | None = None
    file_url: str | None = None
    time_spent_seconds: int = 0
    last_modified_at: datetime

    model_config = {"from_attributes": True, "frozen": True}


class NavigateRequest(BaseModel):
    """문제 이동 요청 스키마"""
    index: int = Field(..., description="이동할 문제 위치 (0부터)")


class AttemptStateResponse(BaseModel):
    """응시 상태 응답 스키마"""
    attempt_id: int
    quiz_id: int
    attempt_number: int
    status: AttemptStatus
    current_question_index: int
    question_count: int
    time_remaining_seconds: int | None
    answered_question_ids: list[int]
    definition_version: int
    started_at: datetime
    completed_at: datetime | None = None


class QuestionResult(BaseModel):
    """문제별 채점 결과 (is_correct=None 이면 수동 채점 대기)"""
    question_id: int
    question_type: QuestionType
    answered: bool
    is_correct: bool | None
    pending_review: bool = False
    points_awarded: int
    points_possible: int
    correct_option_id: int | None = None
    correct_text: str | None = None
    explanation: str | None = None

    model_config = {"frozen": True}


class GradingResult(BaseModel):
    """채점 결과"""
    question_results: tuple[QuestionResult, ...]
    total_score: int
    max_score: int
    percentage_score: int = Field(..., ge=0, le=100)
    passed: bool
    correct_count: int
    incorrect_count: int
    unanswered_count: int
    pending_count: int

    model_config = {"frozen": True}

    @property
    def pending_question_ids(self) -> list[int]:
        return [r.question_id for r in self.question_results if r.pending_review]


class AttemptResultResponse(BaseModel):
    """채점 결과 응답 스키마"""
    attempt_id: int
    quiz_id: int
    attempt_number: int
    status: AttemptStatus
    result: GradingResult
    answers_revealed: bool = Field(..., description="정답/해설 포함 여부")
    definition_changed: bool = Field(False, description="응시 이후 퀴즈 정의가 변경/삭제되었는지")
    started_at: datetime
    completed_at: datetime | None


class LearnerOptionView(BaseModel):
    """응시자용 선택지 (정답 여부 미포함)"""
    id: int
    text: str
    selected: bool


class LearnerQuestionView(BaseModel):
    """응시자용 문제"""
    id: int
    position: int
    type: QuestionType
    prompt: str
    points: int
    options: list[LearnerOptionView]
    answer: AnswerRecord | None = None


class AttemptQuestionsResponse(BaseModel):
    """응시 문제 목록 응답 스키마"""
    attempt_id: int
    definition_version: int
    questions: list[LearnerQuestionView]
    total: int


class PendingAnswerResponse(BaseModel):
    """수동 채점 대상 답안"""
    question_id: int
    question_type: QuestionType
    prompt: str
    points: int
    answer: AnswerRecord | None


class PendingAnswerListResponse(BaseModel):
    """수동 채점 대상 목록 응답 스키마"""
    attempt_id: int
    status: AttemptStatus
    pending_answers: list[PendingAnswerResponse]
    total: int


class AttemptHistoryEntry(BaseModel):
    """응시 이력 항목"""
    attempt_id: int
    user_id: str
    quiz_id: int
    attempt_number: int
    status: AttemptStatus
    total_score: int
    max_score: int
    percentage_score: int
    passed: bool
    started_at: datetime
    completed_at: datetime

    model_config = {"from_attributes": True}


class AttemptHistoryResponse(BaseModel):
    """응시 이력 응답 스키마"""
    quiz_id: int
    attempts: list[AttemptHistoryEntry]
    total: int
    max_attempts: int | None
    attempts_remaining: int | None
    best_attempt: AttemptHistoryEntry | None
    latest_attempt: AttemptHistoryEntry | None
