from app.schemas.attempt import (
    AnswerRecord,
    AnswerSubmitRequest,
    AttemptHistoryResponse,
    AttemptQuestionsResponse,
    AttemptResultResponse,
    AttemptStateResponse,
    AttemptStatus,
    GradingResult,
    NavigateRequest,
    PendingAnswerListResponse,
    QuestionResult,
)
from app.schemas.quiz import (
    QuestionDefinition,
    QuestionType,
    QuestionTypeListResponse,
    QuizCreateRequest,
    QuizDefinition,
    QuizResponse,
    QuizSettings,
)

__all__ = [
    "QuestionType",
    "QuestionDefinition",
    "QuizSettings",
    "QuizDefinition",
    "QuizCreateRequest",
    "QuizResponse",
    "QuestionTypeListResponse",
    "AttemptStatus",
    "AnswerSubmitRequest",
    "AnswerRecord",
    "NavigateRequest",
    "AttemptStateResponse",
    "AttemptQuestionsResponse",
    "QuestionResult",
    "GradingResult",
    "AttemptResultResponse",
    "PendingAnswerListResponse",
    "AttemptHistoryResponse",
]
