from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class QuestionType(str, Enum):
    """문제 유형"""
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    TEXT_ASSIGNMENT = "text_assignment"
    FILE_ASSIGNMENT = "file_assignment"
    VIDEO_RECORDING = "video_recording"
    AUDIO_RECORDING = "audio_recording"


CHOICE_TYPES = frozenset({QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE})

TRUE_FALSE_LABELS = ("True", "False")


def check_question_shape(
    question_type: QuestionType,
    options: list,
    correct_text: str | None,
) -> list[str]:
    """문제 유형별 구조 검증, 오류 메시지 목록 반환

    options 원소는 text / is_correct 속성을 가진 객체여야 한다.
    """
    errors: list[str] = []
    if question_type in CHOICE_TYPES:
        if question_type == QuestionType.TRUE_FALSE and len(options) != 2:
            errors.append("true_false 문제는 선택지가 정확히 2개여야 합니다")
        elif len(options) < 2:
            errors.append("multiple_choice 문제는 선택지가 2개 이상이어야 합니다")
        correct_count = sum(1 for option in options if option.is_correct)
        if correct_count != 1:
            errors.append(f"정답 선택지는 정확히 1개여야 합니다 (현재 {correct_count}개)")
        for position, option in enumerate(options, start=1):
            if not option.text or not option.text.strip():
                errors.append(f"{position}번 선택지 텍스트가 비어 있습니다")
    elif question_type == QuestionType.FILL_BLANK:
        if not correct_text or not correct_text.strip():
            errors.append("fill_blank 문제에는 정답 텍스트가 필요합니다")
        if options:
            errors.append("fill_blank 문제에는 선택지를 둘 수 없습니다")
    elif options:
        errors.append(f"{question_type.value} 문제에는 선택지를 둘 수 없습니다")
    return errors


# ---------------------------------------------------------------------------
# 응시 스냅샷용 정의 모델 (불변)
# ---------------------------------------------------------------------------

class OptionDefinition(BaseModel):
    id: int
    text: str
    is_correct: bool = False
    order_index: int = 0

    model_config = {"from_attributes": True, "frozen": True}


class QuestionDefinition(BaseModel):
    id: int
    type: QuestionType
    prompt: str
    points: int = Field(..., ge=1)
    order_index: int = 0
    explanation: str | None = None
    options: tuple[OptionDefinition, ...] = ()
    correct_text: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_shape(self) -> "QuestionDefinition":
        errors = check_question_shape(self.type, list(self.options), self.correct_text)
        if errors:
            raise ValueError("; ".join(errors))
        return self

    @property
    def correct_option_id(self) -> int | None:
        return next((option.id for option in self.options if option.is_correct), None)

    def has_option(self, option_id: int) -> bool:
        return any(option.id == option_id for option in self.options)


class QuizSettings(BaseModel):
    time_limit_minutes: int | None = Field(None, ge=1)
    passing_score_percent: int = Field(70, ge=0, le=100)
    max_attempts: int = Field(1, ge=1)
    shuffle_questions: bool = False
    show_correct_answers: bool = True

    model_config = {"frozen": True}


class QuizDefinition(BaseModel):
    """응시 시작 시점에 고정되는 퀴즈 정의"""
    id: int
    title: str
    version: int = 1
    settings: QuizSettings
    questions: tuple[QuestionDefinition, ...] = ()

    model_config = {"frozen": True}

    @field_validator("questions")
    @classmethod
    def sort_questions(cls, v: tuple[QuestionDefinition, ...]) -> tuple[QuestionDefinition, ...]:
        return tuple(sorted(v, key=lambda q: (q.order_index, q.id)))

    def get_question(self, question_id: int) -> QuestionDefinition | None:
        return next((q for q in self.questions if q.id == question_id), None)


# ---------------------------------------------------------------------------
# 출제(authoring) API 스키마
# ---------------------------------------------------------------------------

class OptionCreateRequest(BaseModel):
    """선택지 생성 요청 스키마"""
    text: str = Field(..., min_length=1, description="선택지 텍스트")
    is_correct: bool = Field(False, description="정답 여부")


class QuestionCreateRequest(BaseModel):
    """문제 생성 요청 스키마"""
    type: QuestionType = Field(..., description="문제 유형")
    prompt: str = Field(..., min_length=1, description="문제 본문")
    points: int = Field(1, ge=1, description="배점")
    explanation: str | None = Field(None, description="해설")
    options: list[OptionCreateRequest] = Field(default_factory=list, description="선택지 (객관식/OX)")
    correct_text: str | None = Field(None, description="빈칸 채우기 정답")
    correct_answer: bool | None = Field(
        None, description="OX 문제 정답 (지정 시 True/False 선택지를 자동 생성)"
    )

    @model_validator(mode="after")
    def build_true_false_options(self) -> "QuestionCreateRequest":
        if self.correct_answer is not None:
            if self.type != QuestionType.TRUE_FALSE:
                raise ValueError("correct_answer는 true_false 문제에서만 사용할 수 있습니다")
            if self.options:
                raise ValueError("correct_answer와 options를 함께 지정할 수 없습니다")
            self.options = [
                OptionCreateRequest(text=TRUE_FALSE_LABELS[0], is_correct=self.correct_answer is True),
                OptionCreateRequest(text=TRUE_FALSE_LABELS[1], is_correct=self.correct_answer is False),
            ]
        errors = check_question_shape(self.type, self.options, self.correct_text)
        if errors:
            raise ValueError("; ".join(errors))
        return self


class QuizCreateRequest(BaseModel):
    """퀴즈 정의 생성/수정 요청 스키마"""
    title: str = Field(..., min_length=1, max_length=255, description="퀴즈 제목")
    description: str | None = Field(None, description="퀴즈 설명")
    settings: QuizSettings = Field(default_factory=QuizSettings, description="응시 설정")
    questions: list[QuestionCreateRequest] = Field(..., min_length=1, description="문제 목록 (순서대로)")


class OptionResponse(BaseModel):
    """선택지 응답 스키마 (출제자용)"""
    id: int
    text: str
    is_correct: bool
    order_index: int

    model_config = {"from_attributes": True}


class QuestionResponse(BaseModel):
    """문제 응답 스키마 (출제자용)"""
    id: int
    type: QuestionType
    prompt: str
    points: int
    order_index: int
    explanation: str | None
    correct_text: str | None
    options: list[OptionResponse]


class QuizResponse(BaseModel):
    """퀴즈 정의 응답 스키마 (출제자용)"""
    id: int
    title: str
    description: str | None
    version: int
    settings: QuizSettings
    questions: list[QuestionResponse]
    total_points: int
    created_at: datetime
    updated_at: datetime


class QuestionTypeInfo(BaseModel):
    """문제 유형 정보"""
    type: QuestionType
    auto_gradable: bool
    answer_field: str = Field(..., description="답안에 사용하는 필드")


class QuestionTypeListResponse(BaseModel):
    """문제 유형 목록 응답 스키마"""
    question_types: list[QuestionTypeInfo]
    total: int
