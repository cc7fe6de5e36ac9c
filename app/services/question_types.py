"""문제 유형별 채점 전략

문제 유형마다 GradingStrategy 구현을 하나씩 두고 유형 태그로 조회한다.
새 유형을 추가할 때는 구현 클래스를 만들어 @register_strategy 만 붙이면 된다.
"""
from abc import ABC, abstractmethod
from typing import ClassVar

from app.exceptions import ValidationError
from app.schemas.attempt import AnswerRecord, AnswerSubmitRequest, QuestionResult
from app.schemas.quiz import QuestionDefinition, QuestionType

ANSWER_FIELDS = ("selected_option_id", "text_answer", "file_url")

_STRATEGIES: dict[QuestionType, "GradingStrategy"] = {}


def register_strategy(cls: type["GradingStrategy"]) -> type["GradingStrategy"]:
    """전략 클래스를 유형 레지스트리에 등록"""
    if cls.question_type in _STRATEGIES:
        raise ValueError(f"이미 등록된 문제 유형입니다: {cls.question_type.value}")
    _STRATEGIES[cls.question_type] = cls()
    return cls


def get_strategy(question_type: QuestionType) -> "GradingStrategy":
    try:
        return _STRATEGIES[question_type]
    except KeyError:
        raise ValueError(f"채점 전략이 없는 문제 유형입니다: {question_type}") from None


def registered_strategies() -> list["GradingStrategy"]:
    return [_STRATEGIES[t] for t in QuestionType if t in _STRATEGIES]


def is_auto_gradable(question_type: QuestionType) -> bool:
    return get_strategy(question_type).auto_gradable


class GradingStrategy(ABC):
    """문제 유형 하나의 답안 검증과 채점 규칙"""

    question_type: ClassVar[QuestionType]
    answer_field: ClassVar[str]
    auto_gradable: ClassVar[bool]

    def validate_answer(self, question: QuestionDefinition, answer: AnswerSubmitRequest) -> None:
        """답안 페이로드 형식 검증 (실패 시 ValidationError)"""
        for field in ANSWER_FIELDS:
            if field != self.answer_field and getattr(answer, field) is not None:
                raise ValidationError(
                    f"{question.type.value} 문제에는 {field}를 보낼 수 없습니다 (question_id={question.id})"
                )
        if getattr(answer, self.answer_field) is None:
            raise ValidationError(
                f"{question.type.value} 문제에는 {self.answer_field}가 필요합니다 (question_id={question.id})"
            )

    def is_answered(self, answer: AnswerRecord | None) -> bool:
        return answer is not None and getattr(answer, self.answer_field) is not None

    @abstractmethod
    def grade(self, question: QuestionDefinition, answer: AnswerRecord | None) -> QuestionResult:
        """문제 하나의 채점 결과"""


class AutoGradedStrategy(GradingStrategy):
    """정답과 비교해 즉시 채점하는 유형"""

    auto_gradable = True

    @abstractmethod
    def evaluate(self, question: QuestionDefinition, answer: AnswerRecord) -> bool:
        """응답된 문제의 정답 여부"""

    def grade(self, question: QuestionDefinition, answer: AnswerRecord | None) -> QuestionResult:
        answered = self.is_answered(answer)
        is_correct = self.evaluate(question, answer) if answered else False
        return QuestionResult(
            question_id=question.id,
            question_type=question.type,
            answered=answered,
            is_correct=is_correct,
            points_awarded=question.points if is_correct else 0,
            points_possible=question.points,
            correct_option_id=question.correct_option_id,
            correct_text=question.correct_text,
            explanation=question.explanation,
        )


@register_strategy
class MultipleChoiceStrategy(AutoGradedStrategy):
    question_type = QuestionType.MULTIPLE_CHOICE
    answer_field = "selected_option_id"

    def validate_answer(self, question: QuestionDefinition, answer: AnswerSubmitRequest) -> None:
        super().validate_answer(question, answer)
        if not question.has_option(answer.selected_option_id):
            raise ValidationError(
                f"문제에 없는 선택지입니다: option_id={answer.selected_option_id}, question_id={question.id}"
            )

    def evaluate(self, question: QuestionDefinition, answer: AnswerRecord) -> bool:
        return answer.selected_option_id == question.correct_option_id


@register_strategy
class TrueFalseStrategy(MultipleChoiceStrategy):
    question_type = QuestionType.TRUE_FALSE


def normalize_blank(text: str) -> str:
    return text.strip().casefold()


@register_strategy
class FillBlankStrategy(AutoGradedStrategy):
    question_type = QuestionType.FILL_BLANK
    answer_field = "text_answer"

    def validate_answer(self, question: QuestionDefinition, answer: AnswerSubmitRequest) -> None:
        super().validate_answer(question, answer)
        if not answer.text_answer.strip():
            raise ValidationError(f"빈 답안은 저장할 수 없습니다 (question_id={question.id})")

    def evaluate(self, question: QuestionDefinition, answer: AnswerRecord) -> bool:
        # 부분 점수/유사 일치 없음
        return normalize_blank(answer.text_answer) == normalize_blank(question.correct_text or "")


class ManualReviewStrategy(GradingStrategy):
    """자동 채점 불가 유형: 항상 수동 채점 대기, 자동 점수 0점"""

    auto_gradable = False

    def validate_answer(self, question: QuestionDefinition, answer: AnswerSubmitRequest) -> None:
        super().validate_answer(question, answer)
        if not getattr(answer, self.answer_field).strip():
            raise ValidationError(f"빈 답안은 저장할 수 없습니다 (question_id={question.id})")

    def grade(self, question: QuestionDefinition, answer: AnswerRecord | None) -> QuestionResult:
        return QuestionResult(
            question_id=question.id,
            question_type=question.type,
            answered=self.is_answered(answer),
            is_correct=None,
            pending_review=True,
            points_awarded=0,
            points_possible=question.points,
            explanation=question.explanation,
        )


@register_strategy
class TextAssignmentStrategy(ManualReviewStrategy):
    question_type = QuestionType.TEXT_ASSIGNMENT
    answer_field = "text_answer"


@register_strategy
class FileAssignmentStrategy(ManualReviewStrategy):
    question_type = QuestionType.FILE_ASSIGNMENT
    answer_field = "file_url"


@register_strategy
class VideoRecordingStrategy(ManualReviewStrategy):
    question_type = QuestionType.VIDEO_RECORDING
    answer_field = "file_url"


@register_strategy
class AudioRecordingStrategy(ManualReviewStrategy):
    question_type = QuestionType.AUDIO_RECORDING
    answer_field = "file_url"
