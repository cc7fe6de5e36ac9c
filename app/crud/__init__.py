from app.crud.attempt import (
    count_answers,
    create_attempt,
    create_result,
    get_active_attempt,
    get_active_attempts,
    get_answer,
    get_answers,
    get_attempt_by_id,
    get_result_by_attempt,
    reset_stale_submissions,
    transition_status,
    upsert_answer,
)
from app.crud.attempt_history import (
    append_entry,
    count_attempts,
    get_best_attempt,
    get_latest_attempt,
    list_attempts,
)
from app.crud.quiz import (
    create_quiz,
    delete_quiz,
    get_quiz_by_id,
    get_quiz_version,
    replace_quiz,
)

__all__ = [
    "get_quiz_by_id",
    "get_quiz_version",
    "create_quiz",
    "replace_quiz",
    "delete_quiz",
    "create_attempt",
    "get_attempt_by_id",
    "get_active_attempt",
    "get_active_attempts",
    "transition_status",
    "reset_stale_submissions",
    "get_answer",
    "get_answers",
    "count_answers",
    "upsert_answer",
    "create_result",
    "get_result_by_attempt",
    "count_attempts",
    "append_entry",
    "list_attempts",
    "get_best_attempt",
    "get_latest_attempt",
]
