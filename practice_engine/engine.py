"""
Review Engine - caller-facing entrypoints.

Wires the planner, controller, ledger, scheduler and ranker to the
injected QuestionPool and WrongItemStore:

- select_questions(strategy)          practice set for a mode
- record_submission(...)              open or update the wrong item for a miss
- record_review_outcome(id, ok, now)  advance or reset a wrong item
- get_due_reviews(as_of)              items due on or before a day
- priority_score(item)                urgency of one wrong item

Mutations run under the item's lock; reads are snapshot copies.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime

from loguru import logger

from practice_engine.adaptive.adaptive_controller import AdaptiveController
from practice_engine.adaptive.difficulty_planner import (
    DifficultyPlanner,
    DistributionPreset,
    LearningProgress,
)
from practice_engine.config import Settings, get_settings
from practice_engine.core.exceptions import ConflictError, NotFoundError
from practice_engine.core.interfaces import QuestionPool, WrongItemStore
from practice_engine.core.models import (
    GradingOutcome,
    Question,
    SelectionResult,
    SelectionStrategy,
    WrongItem,
    WrongItemStatus,
)
from practice_engine.delivery.item_locks import ItemLockRegistry
from practice_engine.delivery.review_scheduler import ReviewConfig, ReviewScheduler
from practice_engine.study.priority_ranker import PriorityRanker
from practice_engine.study.question_selector import QuestionSelector, SelectionConfig
from practice_engine.study.statistics import WrongItemStatistics
from practice_engine.study.wrong_item_ledger import WrongItemLedger

# Serializes first-miss handling per question
QUESTION_LOCK_PREFIX = "question:"


class ReviewEngine:
    """Adaptive practice generation and wrong-item review."""

    def __init__(
        self,
        pool: QuestionPool,
        store: WrongItemStore,
        settings: Settings | None = None,
        locks: ItemLockRegistry | None = None,
        selector: QuestionSelector | None = None,
    ):
        """
        Initialize the engine.

        Args:
            pool: Question source
            store: Wrong-item persistence
            settings: Tunables (cached application settings if None)
            locks: Per-item lock registry (new registry if None)
            selector: Custom selector (built from settings if None)
        """
        self.settings = settings or get_settings()
        self.pool = pool
        self.store = store
        self.locks = locks or ItemLockRegistry()

        self.scheduler = ReviewScheduler(ReviewConfig(tuple(self.settings.review_intervals_days)))
        self.ledger = WrongItemLedger(self.scheduler)
        self.ranker = PriorityRanker()
        self.planner = DifficultyPlanner()
        self.selector = selector or QuestionSelector(
            pool=pool,
            store=store,
            planner=self.planner,
            controller=AdaptiveController(self.settings.adaptive_reevaluation_every),
            ranker=self.ranker,
            config=SelectionConfig(
                borrow_from_adjacent=self.settings.borrow_from_adjacent,
                backfill_seed_count=self.settings.wrong_backfill_seed_count,
                max_target_count=self.settings.max_target_count,
                base_seconds=self.settings.base_seconds_per_question,
                seconds_per_point=self.settings.seconds_per_difficulty_point,
            ),
        )

    # =========================================================================
    # Selection (read-only)
    # =========================================================================

    async def select_questions(
        self,
        strategy: SelectionStrategy,
        now: datetime | None = None,
    ) -> SelectionResult:
        return await self.selector.select_questions(strategy, now)

    async def generate_comprehensive(
        self,
        knowledge_point_ids: Sequence[str],
        total_count: int = 20,
        preset: DistributionPreset | tuple[float, float, float] = DistributionPreset.BALANCED,
    ) -> SelectionResult:
        return await self.selector.generate_comprehensive(knowledge_point_ids, total_count, preset)

    async def generate_for_progress(
        self,
        knowledge_point_id: str,
        count: int = 10,
        progress: LearningProgress | None = None,
    ) -> SelectionResult:
        return await self.selector.generate_for_progress(knowledge_point_id, count, progress)

    def priority_score(self, item: WrongItem, now: datetime | None = None) -> float:
        return self.ranker.priority_score(item, now or datetime.now())

    def get_due_reviews(self, as_of: datetime) -> list[WrongItem]:
        """
        Non-archived items whose next review day is on or before ``as_of``'s day.

        Returned most urgent first.
        """
        due = [
            item
            for item in self.store.list_all()
            if item.status != WrongItemStatus.ARCHIVED
            and self.scheduler.needs_review(item.review_schedule, as_of)
        ]
        logger.debug(f"{len(due)} wrong items due as of {as_of.date()}")
        return self.ranker.rank(due, as_of)

    def get_statistics(self, now: datetime | None = None) -> WrongItemStatistics:
        return WrongItemStatistics.from_items(self.store.list_all(), now or datetime.now())

    # =========================================================================
    # Mutation (per-item lock)
    # =========================================================================

    def _persist(self, item: WrongItem) -> None:
        self.locks.require(item.id)
        self.store.save(item)

    def _exists(self, item_id: str) -> bool:
        try:
            self.store.get(item_id)
        except NotFoundError:
            return False
        return True

    def record_submission(
        self,
        question: Question,
        outcome: GradingOutcome,
        now: datetime,
        item_id: str | None = None,
    ) -> WrongItem | None:
        """
        Track an incorrect submission.

        The first miss of a question opens a wrong item. Later misses while
        that item is open are folded into it (see
        WrongItemLedger.record_repeat_miss), so its retries and schedule
        survive. Returns None for correct submissions.

        Raises:
            ConflictError: ``item_id`` is already taken
        """
        if outcome.is_correct:
            return None

        with self.locks.hold(QUESTION_LOCK_PREFIX + question.id):
            if item_id is not None and self._exists(item_id):
                raise ConflictError(f"wrong item {item_id} already exists")

            existing = self.store.find_by_question(question.id)
            if existing is not None:
                with self.locks.hold(existing.id):
                    item = self.ledger.record_repeat_miss(self.store.get(existing.id), outcome, now)
                    self._persist(item)
                return item

            item_id = item_id or uuid.uuid4().hex
            with self.locks.hold(item_id):
                item = self.ledger.create_from_submission(item_id, question, outcome, now)
                self._persist(item)
        return item

    def record_review_outcome(self, wrong_item_id: str, is_correct: bool, now: datetime) -> WrongItem:
        """
        Apply one retry outcome to a stored wrong item and persist it.

        Raises:
            NotFoundError: Unknown wrong item id
            ConflictError: Item already mastered or archived
        """
        with self.locks.hold(wrong_item_id):
            item = self.store.get(wrong_item_id)
            updated = self.ledger.record_retry(item, is_correct, now)
            self._persist(updated)

        logger.info(
            f"Review recorded for {wrong_item_id}: correct={is_correct}, "
            f"status={updated.status.value}, retry={updated.retry_count}, "
            f"next={updated.review_schedule.next_review_date.date()}"
        )
        return updated

    def archive_item(self, wrong_item_id: str, now: datetime) -> WrongItem:
        with self.locks.hold(wrong_item_id):
            item = self.store.get(wrong_item_id)
            archived = self.ledger.archive(item, now)
            self._persist(archived)
        return archived
