"""
Wrong Item Priority Ranking.

priority = status weight + difficulty weight + retry_count * 5 + recency weight

Status:     Pending 100, Reviewing 50, Mastered 10, Archived 0
Difficulty: Hard 30, Medium 20, Easy 10, no joined question 0
Recency:    2 per calendar day since the last retry, or 50 if never retried

Higher scores are served first. Equal scores keep their input order.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from practice_engine.core.models import Difficulty, WrongItem, WrongItemStatus


@dataclass(frozen=True)
class PriorityWeights:
    """Weights for the composite urgency score."""

    status: dict[WrongItemStatus, float] = field(
        default_factory=lambda: {
            WrongItemStatus.PENDING: 100.0,
            WrongItemStatus.REVIEWING: 50.0,
            WrongItemStatus.MASTERED: 10.0,
            WrongItemStatus.ARCHIVED: 0.0,
        }
    )
    difficulty: dict[Difficulty, float] = field(
        default_factory=lambda: {
            Difficulty.HARD: 30.0,
            Difficulty.MEDIUM: 20.0,
            Difficulty.EASY: 10.0,
        }
    )
    per_retry: float = 5.0
    per_day_since_retry: float = 2.0
    never_retried: float = 50.0


class PriorityRanker:
    """Scores and orders wrong items by urgency."""

    def __init__(self, weights: PriorityWeights | None = None):
        self.weights = weights or PriorityWeights()

    def priority_score(self, item: WrongItem, now: datetime) -> float:
        w = self.weights
        score = w.status[item.status]

        if item.question is not None:
            score += w.difficulty[item.question.difficulty]

        score += item.retry_count * w.per_retry

        if item.last_retry_at is not None:
            days_since = (now.date() - item.last_retry_at.date()).days
            score += days_since * w.per_day_since_retry
        else:
            score += w.never_retried

        return score

    def rank(self, items: Sequence[WrongItem], now: datetime) -> list[WrongItem]:
        """Items by descending score; ties keep their original order."""
        scored = [(self.priority_score(item, now), index, item) for index, item in enumerate(items)]
        scored.sort(key=lambda entry: (-entry[0], entry[1]))
        return [item for _, _, item in scored]
