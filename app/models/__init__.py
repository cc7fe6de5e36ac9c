from app.models.attempt import AttemptHistory, QuizAnswer, QuizAttempt, QuizResult
from app.models.base import Base, get_db
from app.models.quiz import Quiz, QuizQuestion, QuizQuestionOption

__all__ = [
    "Base",
    "Quiz",
    "QuizQuestion",
    "QuizQuestionOption",
    "QuizAttempt",
    "QuizAnswer",
    "QuizResult",
    "AttemptHistory",
    "get_db",
]
