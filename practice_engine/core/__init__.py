"""
Core Module - Shared domain models and interfaces.

Components:
- models: questions, wrong items, review schedules, selection I/O
- exceptions: InvalidArgument / NotFound / Conflict / UpstreamUnavailable
- interfaces: QuestionPool and WrongItemStore protocols
"""

from practice_engine.core.exceptions import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    PracticeEngineError,
    UpstreamUnavailableError,
)
from practice_engine.core.interfaces import QuestionPool, WrongItemStore
from practice_engine.core.models import (
    MASTERY_RETRY_COUNT,
    Difficulty,
    DifficultyDistribution,
    ErrorType,
    GradingOutcome,
    PracticeMode,
    Question,
    ReviewSchedule,
    SelectionResult,
    SelectionStrategy,
    WrongItem,
    WrongItemStatus,
)

__all__ = [
    # Errors
    "PracticeEngineError",
    "InvalidArgumentError",
    "NotFoundError",
    "ConflictError",
    "UpstreamUnavailableError",
    # Interfaces
    "QuestionPool",
    "WrongItemStore",
    # Models
    "MASTERY_RETRY_COUNT",
    "Difficulty",
    "DifficultyDistribution",
    "ErrorType",
    "GradingOutcome",
    "PracticeMode",
    "Question",
    "ReviewSchedule",
    "SelectionResult",
    "SelectionStrategy",
    "WrongItem",
    "WrongItemStatus",
]
