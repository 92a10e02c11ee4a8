"""
Wrong Item Ledger.

Owns the lifecycle of every missed question:

    PENDING ──retry──▶ REVIEWING ──5 correct in a row──▶ MASTERED
        │                 │  ▲
        │                 └──┘ incorrect: retry count back to 0
        └─────────── archive (from any state) ──────────▶ ARCHIVED

A repeat miss of a question that already has an open item bumps its
wrong count instead of opening a second item.

Transitions return new WrongItem instances; persisting them is the
caller's job (see ReviewEngine, which holds the per-item lock).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime

from loguru import logger

from practice_engine.core.exceptions import ConflictError, InvalidArgumentError
from practice_engine.core.models import (
    MASTERY_RETRY_COUNT,
    ErrorType,
    GradingOutcome,
    Question,
    WrongItem,
    WrongItemStatus,
)
from practice_engine.delivery.review_scheduler import ReviewScheduler

# Checked in this order; first family with a hit wins
ERROR_KEYWORDS: tuple[tuple[ErrorType, tuple[str, ...]], ...] = (
    (ErrorType.CONCEPTUAL, ("concept", "definition", "understanding")),
    (ErrorType.CALCULATION, ("calculation", "operation", "result error")),
    (ErrorType.CARELESS, ("careless", "sign", "copy")),
    (ErrorType.METHOD, ("method", "approach", "steps")),
)

FREQUENT_MISTAKE_RETRIES = 3

# Per-mistake tags; a mistake matching none of them is tagged "other"
ERROR_TAG_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("concept understanding", ("concept", "definition")),
    ("calculation error", ("calculation", "operation")),
    ("sign issue", ("sign",)),
    ("missed steps", ("steps",)),
)
OTHER_TAG = "other"


def analyze_error_type(
    mistakes: Iterable[str] | None,
    suggestions: Iterable[str] | None,
) -> ErrorType:
    """
    Classify a miss from the grader's free-text diagnosis.

    Args:
        mistakes: Mistake descriptions from the grader
        suggestions: Improvement suggestions from the grader

    Returns:
        ErrorType of the first keyword family found, else UNKNOWN
    """
    text = " ".join([*(mistakes or []), *(suggestions or [])]).lower()
    if not text.strip():
        return ErrorType.UNKNOWN

    for error_type, keywords in ERROR_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return error_type
    return ErrorType.UNKNOWN


def error_tags(mistakes: Iterable[str] | None) -> list[str]:
    """One tag per mistake description, deduplicated in first-seen order."""
    tags: list[str] = []
    for mistake in mistakes or []:
        text = mistake.lower()
        tag = next(
            (tag for tag, keywords in ERROR_TAG_KEYWORDS if any(k in text for k in keywords)),
            OTHER_TAG,
        )
        if tag not in tags:
            tags.append(tag)
    return tags


class WrongItemLedger:
    """State machine for wrong items."""

    def __init__(self, scheduler: ReviewScheduler | None = None):
        self.scheduler = scheduler or ReviewScheduler()

    def create_from_submission(
        self,
        item_id: str,
        question: Question,
        outcome: GradingOutcome,
        now: datetime,
    ) -> WrongItem:
        """Open a wrong item for the first incorrect grading of a question."""
        if outcome.is_correct:
            raise InvalidArgumentError(
                f"question {question.id} was answered correctly; no wrong item to create"
            )

        item = WrongItem(
            id=item_id,
            question_id=question.id,
            question=question,
            knowledge_point_id=question.knowledge_point_id,
            status=WrongItemStatus.PENDING,
            retry_count=0,
            error_type=analyze_error_type(outcome.mistakes, outcome.suggestions),
            error_tags=error_tags(outcome.mistakes),
            last_wrong_at=now,
            review_schedule=self.scheduler.create_schedule(now),
            created_at=now,
            updated_at=now,
        )

        logger.info(f"Wrong item {item_id} opened for question {question.id} ({item.error_type.value})")
        return item

    def record_repeat_miss(self, item: WrongItem, outcome: GradingOutcome, now: datetime) -> WrongItem:
        """
        Fold another incorrect submission of the same question into an open item.

        The wrong count and tags grow; status, retries and the review
        schedule are left as they are. The error type follows the latest
        diagnosis unless that diagnosis is unclassifiable.

        Raises:
            InvalidArgumentError: If the outcome is correct
            ConflictError: If the item is archived
        """
        if outcome.is_correct:
            raise InvalidArgumentError(f"question {item.question_id} was answered correctly")
        if item.status == WrongItemStatus.ARCHIVED:
            raise ConflictError(f"wrong item {item.id} is archived; open a new item instead")

        error_type = analyze_error_type(outcome.mistakes, outcome.suggestions)
        tags = list(item.error_tags)
        tags.extend(tag for tag in error_tags(outcome.mistakes) if tag not in tags)

        updated = replace(
            item,
            wrong_count=item.wrong_count + 1,
            last_wrong_at=now,
            error_type=item.error_type if error_type == ErrorType.UNKNOWN else error_type,
            error_tags=tags,
            updated_at=now,
        )

        logger.info(f"Wrong item {item.id} missed again (wrong_count={updated.wrong_count})")
        return updated

    def record_retry(self, item: WrongItem, is_correct: bool, now: datetime) -> WrongItem:
        """
        Apply one retry outcome.

        Args:
            item: Current item state
            is_correct: Whether the retry was answered correctly
            now: Time of the retry

        Returns:
            Updated WrongItem (the input is not modified)

        Raises:
            ConflictError: If the item is already mastered or archived
        """
        if item.status.is_terminal:
            logger.warning(f"Retry rejected for wrong item {item.id} in state {item.status.value}")
            raise ConflictError(f"wrong item {item.id} is {item.status.value}; retries are closed")

        schedule = self.scheduler.record_review(item.review_schedule, is_correct, now)

        if is_correct:
            retry_count = item.retry_count + 1
            status = (
                WrongItemStatus.MASTERED
                if retry_count >= MASTERY_RETRY_COUNT
                else WrongItemStatus.REVIEWING
            )
        else:
            retry_count = 0
            status = WrongItemStatus.REVIEWING

        updated = replace(
            item,
            status=status,
            retry_count=retry_count,
            last_retry_at=now,
            review_schedule=schedule,
            updated_at=now,
        )

        if status != item.status:
            logger.info(f"Wrong item {item.id}: {item.status.value} -> {status.value}")
        return updated

    def archive(self, item: WrongItem, now: datetime) -> WrongItem:
        """Move an item to ARCHIVED from any state."""
        if item.status == WrongItemStatus.ARCHIVED:
            return item
        logger.info(f"Wrong item {item.id} archived from {item.status.value}")
        return replace(item, status=WrongItemStatus.ARCHIVED, updated_at=now)

    # =========================================================================
    # Derived views
    # =========================================================================

    @staticmethod
    def is_frequent_mistake(item: WrongItem) -> bool:
        """Retried three or more times and still not mastered."""
        return item.retry_count >= FREQUENT_MISTAKE_RETRIES and not item.mastered

    @staticmethod
    def review_progress(item: WrongItem) -> int:
        """Progress toward mastery, 0-100."""
        return min(int(item.retry_count / MASTERY_RETRY_COUNT * 100), 100)

    def review_progress_text(self, item: WrongItem, now: datetime) -> str:
        if item.status == WrongItemStatus.MASTERED:
            return "mastered"
        if item.status == WrongItemStatus.ARCHIVED:
            return "archived"

        days = self.scheduler.days_until_next_review(item.review_schedule, now)
        if days < 0:
            return "overdue"
        if days == 0:
            return "due today"
        return f"in {days} day" + ("s" if days != 1 else "")
