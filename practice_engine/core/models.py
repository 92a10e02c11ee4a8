"""
Domain models for practice generation and wrong-item review.

- Difficulty / WrongItemStatus / ErrorType / PracticeMode: persisted by value
- Question: read-only question owned by the external pool
- ReviewSchedule: immutable forgetting-curve schedule embedded in a WrongItem
- WrongItem: lifecycle record of a previously missed question
- DifficultyDistribution, SelectionStrategy, SelectionResult: selection I/O
- GradingOutcome: what the grading oracle reports for one submission
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from practice_engine.core.exceptions import InvalidArgumentError

MASTERY_RETRY_COUNT = 5

# =============================================================================
# Enums
# =============================================================================


class Difficulty(str, Enum):
    """Difficulty band of a question."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @property
    def score(self) -> int:
        """Numeric weight used for averages (Easy=1, Medium=2, Hard=3)."""
        return {Difficulty.EASY: 1, Difficulty.MEDIUM: 2, Difficulty.HARD: 3}[self]

    @classmethod
    def for_level(cls, user_level: int) -> Difficulty:
        """Collapse a learner level band to a single difficulty."""
        if user_level <= 10:
            return cls.EASY
        if user_level <= 25:
            return cls.MEDIUM
        return cls.HARD


class WrongItemStatus(str, Enum):
    """Lifecycle state of a wrong item."""

    PENDING = "pending"
    REVIEWING = "reviewing"
    MASTERED = "mastered"
    ARCHIVED = "archived"

    @property
    def is_terminal(self) -> bool:
        return self in (WrongItemStatus.MASTERED, WrongItemStatus.ARCHIVED)


class ErrorType(str, Enum):
    """Classification of why a question was missed."""

    CONCEPTUAL = "conceptual"
    CALCULATION = "calculation"
    CARELESS = "careless"
    METHOD = "method"
    UNKNOWN = "unknown"

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return {
            ErrorType.CONCEPTUAL: "Conceptual gap",
            ErrorType.CALCULATION: "Calculation error",
            ErrorType.CARELESS: "Careless slip",
            ErrorType.METHOD: "Wrong method",
            ErrorType.UNKNOWN: "Unclassified",
        }[self]


class PracticeMode(str, Enum):
    """How a practice set is assembled."""

    STANDARD = "standard"
    ADAPTIVE = "adaptive"
    WRONG = "wrong"


# =============================================================================
# Questions
# =============================================================================


@dataclass(frozen=True)
class Question:
    """A question supplied by the question pool."""

    id: str
    knowledge_point_id: str
    difficulty: Difficulty
    content: str = ""
    standard_answer: str = ""


@dataclass(frozen=True)
class GradingOutcome:
    """Result of grading one submission (opaque oracle output)."""

    is_correct: bool
    mistakes: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()


# =============================================================================
# Review Schedule
# =============================================================================


@dataclass(frozen=True)
class ReviewSchedule:
    """
    Forgetting-curve review schedule.

    Each recorded review appends its timestamp to ``review_dates`` and the
    interval it produced to ``intervals``; both grow in lockstep.
    """

    next_review_date: datetime
    review_count: int = 0
    review_dates: tuple[datetime, ...] = ()
    intervals: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if self.review_count < 0:
            raise InvalidArgumentError("review_count must be non-negative")
        if len(self.review_dates) != len(self.intervals):
            raise InvalidArgumentError(
                f"review_dates ({len(self.review_dates)}) and intervals "
                f"({len(self.intervals)}) must have equal length"
            )
        if self.review_dates and self.next_review_date < self.review_dates[-1]:
            raise InvalidArgumentError("next_review_date precedes the last review")

    @property
    def last_reviewed_at(self) -> datetime | None:
        return self.review_dates[-1] if self.review_dates else None


# =============================================================================
# Wrong Items
# =============================================================================


@dataclass
class WrongItem:
    """A previously missed question tracked until mastered."""

    id: str
    question_id: str
    review_schedule: ReviewSchedule
    created_at: datetime
    updated_at: datetime
    status: WrongItemStatus = WrongItemStatus.PENDING
    retry_count: int = 0
    last_retry_at: datetime | None = None
    error_type: ErrorType = ErrorType.UNKNOWN
    question: Question | None = None
    knowledge_point_id: str | None = None
    wrong_count: int = 1
    last_wrong_at: datetime | None = None
    error_tags: list[str] = field(default_factory=list)
    similar_question_ids: list[str] = field(default_factory=list)
    learning_note: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.retry_count <= MASTERY_RETRY_COUNT:
            raise InvalidArgumentError(f"retry_count out of range: {self.retry_count}")
        if self.wrong_count < 1:
            raise InvalidArgumentError(f"wrong_count must be at least 1: {self.wrong_count}")
        if self.knowledge_point_id is None and self.question is not None:
            self.knowledge_point_id = self.question.knowledge_point_id

    @property
    def mastered(self) -> bool:
        return self.status == WrongItemStatus.MASTERED

    @property
    def difficulty(self) -> Difficulty | None:
        return self.question.difficulty if self.question else None


# =============================================================================
# Selection
# =============================================================================


@dataclass(frozen=True)
class DifficultyDistribution:
    """Per-band item counts of a practice set."""

    easy: int = 0
    medium: int = 0
    hard: int = 0

    @property
    def total(self) -> int:
        return self.easy + self.medium + self.hard

    def for_difficulty(self, difficulty: Difficulty) -> int:
        return {
            Difficulty.EASY: self.easy,
            Difficulty.MEDIUM: self.medium,
            Difficulty.HARD: self.hard,
        }[difficulty]

    def as_dict(self) -> dict[str, int]:
        return {"easy": self.easy, "medium": self.medium, "hard": self.hard}

    @classmethod
    def tally(cls, questions: list[Question]) -> DifficultyDistribution:
        """Count the difficulties actually present in a question list."""
        return cls(
            easy=sum(1 for q in questions if q.difficulty == Difficulty.EASY),
            medium=sum(1 for q in questions if q.difficulty == Difficulty.MEDIUM),
            hard=sum(1 for q in questions if q.difficulty == Difficulty.HARD),
        )


@dataclass
class SelectionStrategy:
    """Input to question selection."""

    knowledge_point_ids: list[str]
    target_count: int
    mode: PracticeMode = PracticeMode.STANDARD
    fixed_difficulty: Difficulty | None = None
    user_level: int = 1
    recent_wrong_items: list[WrongItem] | None = None


@dataclass
class SelectionResult:
    """Questions served plus the distribution actually realized."""

    questions: list[Question]
    distribution: DifficultyDistribution
    estimated_time_seconds: int
