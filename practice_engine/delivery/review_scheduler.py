"""
Ebbinghaus Review Scheduler.

Implements a fixed forgetting-curve interval table for wrong-item review:

Review count:  0  1  2  3  4+
Interval days: 1  2  4  7  15

A correct review advances one step along the table; an incorrect review
resets to the first step. Counts beyond the table repeat the last interval.

All methods are pure: the caller passes ``now`` and receives a new
ReviewSchedule, nothing is read from the clock or stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from practice_engine.core.models import ReviewSchedule

# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class ReviewConfig:
    """Configuration for the review interval table."""

    intervals_days: tuple[int, ...] = (1, 2, 4, 7, 15)

    @property
    def first_interval(self) -> int:
        return self.intervals_days[0]


# =============================================================================
# Scheduler
# =============================================================================


class ReviewScheduler:
    """
    Forgetting-curve interval calculator.

    Each schedule carries:
    - review_count: step reached on the interval table
    - review_dates / intervals: history of reviews and the interval each produced
    - next_review_date: when the item is next due
    """

    def __init__(self, config: ReviewConfig | None = None):
        """
        Initialize the scheduler.

        Args:
            config: Custom interval table (uses defaults if None)
        """
        self.config = config or ReviewConfig()

    def interval_for(self, review_count: int) -> int:
        """Interval in days for a review count, clamped to the last table entry."""
        table = self.config.intervals_days
        return table[min(max(review_count, 0), len(table) - 1)]

    def create_schedule(self, now: datetime) -> ReviewSchedule:
        """Schedule for a freshly missed question: first review tomorrow."""
        return ReviewSchedule(
            next_review_date=now + timedelta(days=self.config.first_interval),
            review_count=0,
        )

    def record_review(
        self,
        schedule: ReviewSchedule,
        is_correct: bool,
        now: datetime,
    ) -> ReviewSchedule:
        """
        Advance or reset a schedule from one review outcome.

        Args:
            schedule: Current schedule
            is_correct: Whether the review was answered correctly
            now: Time of the review

        Returns:
            New ReviewSchedule with the review appended
        """
        if is_correct:
            new_count = schedule.review_count + 1
            interval = self.interval_for(new_count)
        else:
            new_count = 0
            interval = self.config.first_interval

        updated = ReviewSchedule(
            next_review_date=now + timedelta(days=interval),
            review_count=new_count,
            review_dates=(*schedule.review_dates, now),
            intervals=(*schedule.intervals, interval),
        )

        logger.debug(
            f"Review recorded: correct={is_correct}, count={new_count}, "
            f"interval={interval}d, next={updated.next_review_date.date()}"
        )

        return updated

    @staticmethod
    def needs_review(schedule: ReviewSchedule, now: datetime) -> bool:
        """True when the scheduled day is today or earlier."""
        return schedule.next_review_date.date() <= now.date()

    @staticmethod
    def days_until_next_review(schedule: ReviewSchedule, now: datetime) -> int:
        """Calendar days until the next review; negative when overdue."""
        return (schedule.next_review_date.date() - now.date()).days
