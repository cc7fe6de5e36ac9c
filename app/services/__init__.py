from app.services.attempt_service import (
    AttemptSessionController,
    create_watchdog_registry,
    restore_watchdogs,
)
from app.services.grading_service import calculate_percentage, grade
from app.services.question_types import get_strategy, is_auto_gradable
from app.services.timer_watchdog import TimerWatchdog, WatchdogRegistry

__all__ = [
    "AttemptSessionController",
    "create_watchdog_registry",
    "restore_watchdogs",
    "grade",
    "calculate_percentage",
    "get_strategy",
    "is_auto_gradable",
    "TimerWatchdog",
    "WatchdogRegistry",
]
