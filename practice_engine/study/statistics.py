"""Aggregate counts over a learner's wrong items."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from practice_engine.core.models import ErrorType, WrongItem, WrongItemStatus
from practice_engine.delivery.review_scheduler import ReviewScheduler

# Reviews on the last seven calendar days, today included
WEEK_DAYS = 7


@dataclass
class WrongItemStatistics:
    """Wrong-book summary used by progress views."""

    total_count: int = 0
    pending_count: int = 0
    reviewing_count: int = 0
    mastered_count: int = 0
    archived_count: int = 0
    by_knowledge_point: dict[str, int] = field(default_factory=dict)
    by_difficulty: dict[str, int] = field(default_factory=dict)
    by_error_type: dict[str, int] = field(default_factory=dict)
    today_review_count: int = 0
    weekly_completed_count: int = 0
    error_tags: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_items(cls, items: Iterable[WrongItem], now: datetime) -> WrongItemStatistics:
        items = list(items)
        statuses = Counter(item.status for item in items)

        return cls(
            total_count=len(items),
            pending_count=statuses[WrongItemStatus.PENDING],
            reviewing_count=statuses[WrongItemStatus.REVIEWING],
            mastered_count=statuses[WrongItemStatus.MASTERED],
            archived_count=statuses[WrongItemStatus.ARCHIVED],
            by_knowledge_point=dict(
                Counter(item.knowledge_point_id for item in items if item.knowledge_point_id)
            ),
            by_difficulty=dict(
                Counter(item.difficulty.value for item in items if item.difficulty is not None)
            ),
            by_error_type=dict(Counter(item.error_type.value for item in items)),
            today_review_count=sum(
                1
                for item in items
                if item.status != WrongItemStatus.ARCHIVED
                and ReviewScheduler.needs_review(item.review_schedule, now)
            ),
            weekly_completed_count=sum(
                1
                for item in items
                for reviewed_at in item.review_schedule.review_dates
                if 0 <= (now.date() - reviewed_at.date()).days < WEEK_DAYS
            ),
            error_tags=dict(Counter(tag for item in items for tag in item.error_tags)),
        )

    @property
    def pending_rate(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.pending_count / self.total_count

    @property
    def mastered_rate(self) -> float:
        if self.total_count == 0:
            return 0.0
        return self.mastered_count / self.total_count

    @property
    def review_completion_rate(self) -> float:
        """Mastered items plus this week's reviews, over everything still in play."""
        completed = self.mastered_count + self.weekly_completed_count
        in_play = self.pending_count + self.reviewing_count + completed
        if in_play == 0:
            return 0.0
        return completed / in_play

    @property
    def weak_knowledge_points(self) -> list[str]:
        """The three knowledge points with the most wrong items."""
        ranked = sorted(self.by_knowledge_point.items(), key=lambda kv: kv[1], reverse=True)
        return [kp for kp, _ in ranked[:3]]

    @property
    def most_common_error_type(self) -> ErrorType | None:
        if not self.by_error_type:
            return None
        top = max(self.by_error_type.items(), key=lambda kv: kv[1])[0]
        return ErrorType(top)
