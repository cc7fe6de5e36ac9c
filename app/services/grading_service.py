"""채점 엔진

grade()는 순수 함수다. 같은 정의와 답안이면 항상 같은 결과를 내며
DB나 시계에 접근하지 않으므로 미리보기 채점에도 그대로 쓸 수 있다.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from app.core.clock import as_utc
from app.schemas.attempt import AnswerRecord, GradingResult
from app.schemas.quiz import QuizDefinition, QuizSettings
from app.services.question_types import get_strategy


def calculate_percentage(total_score: int, max_score: int) -> int:
    """백분율 점수 (0.5는 올림, 만점 0이면 0)"""
    if max_score <= 0:
        return 0
    ratio = Decimal(total_score) * 100 / Decimal(max_score)
    percentage = int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return min(max(percentage, 0), 100)


def build_ledger(answers: Iterable[AnswerRecord]) -> dict[int, AnswerRecord]:
    """문제 ID별 최신 답안만 남긴다"""
    ledger: dict[int, AnswerRecord] = {}
    for answer in answers:
        current = ledger.get(answer.question_id)
        if current is None or as_utc(answer.last_modified_at) >= as_utc(current.last_modified_at):
            ledger[answer.question_id] = answer
    return ledger


def grade(definition: QuizDefinition, answers: Iterable[AnswerRecord]) -> GradingResult:
    """퀴즈 정의와 답안 목록으로 채점 결과 계산

    정의에 없는 문제의 답안은 무시한다.
    """
    ledger = build_ledger(answers)

    question_results = tuple(
        get_strategy(question.type).grade(question, ledger.get(question.id))
        for question in definition.questions
    )

    total_score = sum(r.points_awarded for r in question_results)
    max_score = sum(r.points_possible for r in question_results)
    percentage_score = calculate_percentage(total_score, max_score)
    passed = max_score > 0 and percentage_score >= definition.settings.passing_score_percent

    return GradingResult(
        question_results=question_results,
        total_score=total_score,
        max_score=max_score,
        percentage_score=percentage_score,
        passed=passed,
        correct_count=sum(1 for r in question_results if r.is_correct is True),
        incorrect_count=sum(1 for r in question_results if r.is_correct is False and r.answered),
        unanswered_count=sum(1 for r in question_results if not r.answered),
        pending_count=sum(1 for r in question_results if r.pending_review),
    )


def redact_result(result: GradingResult) -> GradingResult:
    """정답/해설 필드를 제거한 사본"""
    return result.model_copy(
        update={
            "question_results": tuple(
                r.model_copy(update={"correct_option_id": None, "correct_text": None, "explanation": None})
                for r in result.question_results
            )
        }
    )


def result_for_learner(result: GradingResult, settings: QuizSettings) -> tuple[GradingResult, bool]:
    """응시자에게 돌려줄 결과와 정답 공개 여부"""
    if settings.show_correct_answers:
        return result, True
    return redact_result(result), False
