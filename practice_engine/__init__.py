"""
Adaptive practice generation and spaced-repetition review engine.

Decides the difficulty mix of practice sets and tracks every missed
question through a forgetting-curve review schedule until mastered.
"""
from practice_engine.core import (
    ConflictError,
    Difficulty,
    DifficultyDistribution,
    ErrorType,
    GradingOutcome,
    InvalidArgumentError,
    NotFoundError,
    PracticeEngineError,
    PracticeMode,
    Question,
    ReviewSchedule,
    SelectionResult,
    SelectionStrategy,
    UpstreamUnavailableError,
    WrongItem,
    WrongItemStatus,
)
from practice_engine.engine import ReviewEngine

__version__ = "1.0.0"

__all__ = [
    "ReviewEngine",
    "ConflictError",
    "Difficulty",
    "DifficultyDistribution",
    "ErrorType",
    "GradingOutcome",
    "InvalidArgumentError",
    "NotFoundError",
    "PracticeEngineError",
    "PracticeMode",
    "Question",
    "ReviewSchedule",
    "SelectionResult",
    "SelectionStrategy",
    "UpstreamUnavailableError",
    "WrongItem",
    "WrongItemStatus",
]
