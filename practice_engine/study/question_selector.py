"""
Question Selection for Practice Sets.

Assembles a practice set in one of three modes:
- Standard: planner distribution (fixed or level-balanced), shuffled
- Adaptive: controller difficulty sequence, drawn in order
- Wrong: ranked wrong items first, backfilled with similar questions

The returned distribution is always the tally of questions actually
served. A pool that under-returns produces a smaller, truthful result,
never an error. Pool failures propagate unchanged.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from itertools import groupby

from loguru import logger

from practice_engine.adaptive.adaptive_controller import AdaptiveController
from practice_engine.adaptive.difficulty_planner import (
    DifficultyPlanner,
    DistributionPreset,
    LearningProgress,
)
from practice_engine.core.exceptions import InvalidArgumentError
from practice_engine.core.interfaces import QuestionPool, WrongItemStore
from practice_engine.core.models import (
    Difficulty,
    DifficultyDistribution,
    PracticeMode,
    Question,
    SelectionResult,
    SelectionStrategy,
    WrongItem,
    WrongItemStatus,
)
from practice_engine.study.priority_ranker import PriorityRanker

# Nearest difficulties to borrow from when a bucket underfills
BORROW_ORDER: dict[Difficulty, tuple[Difficulty, ...]] = {
    Difficulty.EASY: (Difficulty.MEDIUM, Difficulty.HARD),
    Difficulty.MEDIUM: (Difficulty.EASY, Difficulty.HARD),
    Difficulty.HARD: (Difficulty.MEDIUM, Difficulty.EASY),
}


@dataclass
class SelectionConfig:
    """Configuration for practice set assembly."""

    borrow_from_adjacent: bool = True
    backfill_seed_count: int = 5
    max_target_count: int = 50
    base_seconds: int = 30
    seconds_per_point: int = 30


def estimate_time_seconds(
    questions: Sequence[Question],
    base_seconds: int = 30,
    seconds_per_point: int = 30,
) -> int:
    """
    Estimated completion time in seconds.

    Per-question time is ``base + avg * per_point`` with avg the mean of
    Easy=1, Medium=2, Hard=3 over the set (2.0 for an empty set).
    """
    if questions:
        average = sum(q.difficulty.score for q in questions) / len(questions)
    else:
        average = 2.0
    per_question = base_seconds + int(average * seconds_per_point)
    return per_question * len(questions)


class QuestionSelector:
    """Builds practice sets from the question pool and the wrong-item book."""

    def __init__(
        self,
        pool: QuestionPool,
        store: WrongItemStore | None = None,
        planner: DifficultyPlanner | None = None,
        controller: AdaptiveController | None = None,
        ranker: PriorityRanker | None = None,
        config: SelectionConfig | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the selector.

        Args:
            pool: Question source
            store: Wrong-item store used when a wrong-mode request carries no items
            planner: Difficulty planner (default if None)
            controller: Adaptive controller (default if None)
            ranker: Priority ranker (default if None)
            config: Selection configuration
            rng: Random source for presentation shuffling
        """
        self.pool = pool
        self.store = store
        self.planner = planner or DifficultyPlanner()
        self.controller = controller or AdaptiveController()
        self.ranker = ranker or PriorityRanker()
        self.config = config or SelectionConfig()
        self.rng = rng or random.Random()

    # =========================================================================
    # Entry point
    # =========================================================================

    async def select_questions(
        self,
        strategy: SelectionStrategy,
        now: datetime | None = None,
    ) -> SelectionResult:
        """
        Assemble a practice set for a strategy.

        Args:
            strategy: Mode, scope and size of the request
            now: Reference time for wrong-item ranking (defaults to now)

        Returns:
            SelectionResult with the realized distribution

        Raises:
            InvalidArgumentError: Non-positive count, or no knowledge points
                in standard/adaptive mode
        """
        self._validate(strategy)

        if strategy.mode == PracticeMode.STANDARD:
            questions = await self._select_standard(strategy)
        elif strategy.mode == PracticeMode.ADAPTIVE:
            questions = await self._select_adaptive(strategy)
        else:
            questions = await self._select_wrong(strategy, now or datetime.now())

        return self._build_result(questions, strategy.target_count, strategy.mode.value)

    def _validate(self, strategy: SelectionStrategy) -> None:
        if strategy.target_count <= 0:
            logger.warning(f"Rejected selection with target_count={strategy.target_count}")
            raise InvalidArgumentError(
                f"target_count must be positive, got {strategy.target_count}"
            )
        if strategy.mode != PracticeMode.WRONG and not strategy.knowledge_point_ids:
            logger.warning(f"Rejected {strategy.mode.value} selection without knowledge points")
            raise InvalidArgumentError(
                f"{strategy.mode.value} mode requires at least one knowledge point"
            )

    def _build_result(self, questions: list[Question], requested: int, label: str) -> SelectionResult:
        result = SelectionResult(
            questions=questions,
            distribution=DifficultyDistribution.tally(questions),
            estimated_time_seconds=estimate_time_seconds(
                questions, self.config.base_seconds, self.config.seconds_per_point
            ),
        )

        if len(questions) < requested:
            logger.warning(f"{label} selection underfilled: {len(questions)}/{requested} questions")
        logger.info(
            f"{label} selection: {len(questions)} questions {result.distribution.as_dict()} "
            f"(~{result.estimated_time_seconds}s)"
        )
        return result

    # =========================================================================
    # Standard mode
    # =========================================================================

    async def _select_standard(self, strategy: SelectionStrategy) -> list[Question]:
        if strategy.fixed_difficulty is not None:
            plan = self.planner.compute_fixed_distribution(
                strategy.target_count, strategy.fixed_difficulty
            )
        else:
            plan = self.planner.compute_balanced_distribution(
                strategy.target_count, strategy.user_level
            )

        questions = await self._fill_distribution(strategy.knowledge_point_ids, plan)
        self.rng.shuffle(questions)
        return questions

    async def _fill_distribution(
        self,
        knowledge_point_ids: Sequence[str],
        plan: DifficultyDistribution,
    ) -> list[Question]:
        """Fetch each bucket, then refill shortfalls from the nearest difficulty."""
        questions: list[Question] = []
        seen: set[str] = set()
        taken: dict[Difficulty, int] = {d: 0 for d in Difficulty}
        exhausted: set[Difficulty] = set()
        shortfalls: dict[Difficulty, int] = {}

        for difficulty in Difficulty:
            wanted = plan.for_difficulty(difficulty)
            if wanted == 0:
                continue
            fetched = await self._fetch_new(knowledge_point_ids, difficulty, wanted, taken, seen)
            questions.extend(fetched)
            if len(fetched) < wanted:
                exhausted.add(difficulty)
                shortfalls[difficulty] = wanted - len(fetched)

        if not shortfalls or not self.config.borrow_from_adjacent:
            return questions

        for difficulty, missing in shortfalls.items():
            for neighbour in BORROW_ORDER[difficulty]:
                if missing == 0:
                    break
                if neighbour in exhausted:
                    continue
                borrowed = await self._fetch_new(
                    knowledge_point_ids, neighbour, missing, taken, seen
                )
                if len(borrowed) < missing:
                    exhausted.add(neighbour)
                if borrowed:
                    logger.debug(
                        f"Borrowed {len(borrowed)} {neighbour.value} for {difficulty.value} shortfall"
                    )
                questions.extend(borrowed)
                missing -= len(borrowed)

        return questions

    async def _fetch_new(
        self,
        knowledge_point_ids: Sequence[str],
        difficulty: Difficulty,
        count: int,
        taken: dict[Difficulty, int],
        seen: set[str],
    ) -> list[Question]:
        """Fetch ``count`` questions not already in the set."""
        results = await self.pool.fetch(knowledge_point_ids, difficulty, taken[difficulty] + count)
        fresh: list[Question] = []
        for question in results:
            if question.id in seen:
                continue
            seen.add(question.id)
            fresh.append(question)
            if len(fresh) == count:
                break
        taken[difficulty] += len(fresh)
        return fresh

    # =========================================================================
    # Adaptive mode
    # =========================================================================

    async def _select_adaptive(self, strategy: SelectionStrategy) -> list[Question]:
        sequence = self.controller.plan_sequence(strategy.target_count, strategy.user_level)

        questions: list[Question] = []
        seen: set[str] = set()
        taken: dict[Difficulty, int] = {d: 0 for d in Difficulty}

        # Consecutive draws at the same difficulty share one pool request
        for difficulty, run in groupby(sequence):
            wanted = len(list(run))
            fetched = await self._fetch_new(
                strategy.knowledge_point_ids, difficulty, wanted, taken, seen
            )
            questions.extend(fetched)

        return questions

    # =========================================================================
    # Wrong-question mode
    # =========================================================================

    async def _select_wrong(self, strategy: SelectionStrategy, now: datetime) -> list[Question]:
        candidates = self._wrong_candidates(strategy)
        ranked = self.ranker.rank(candidates, now)

        questions: list[Question] = []
        seen: set[str] = set()
        for item in ranked:
            if len(questions) >= strategy.target_count:
                break
            if item.question is None or item.question.id in seen:
                continue
            seen.add(item.question.id)
            questions.append(item.question)

        needed = strategy.target_count - len(questions)
        if needed > 0:
            seeds = [
                item.question
                for item in ranked[: self.config.backfill_seed_count]
                if item.question is not None
            ]
            similar = await self.pool.find_similar(seeds, needed)
            backfill = [q for q in similar if q.id not in seen][:needed]
            logger.debug(f"Backfilled {len(backfill)} similar questions from {len(seeds)} seeds")
            questions.extend(backfill)

        return questions

    def _wrong_candidates(self, strategy: SelectionStrategy) -> list[WrongItem]:
        if strategy.recent_wrong_items is not None:
            items = list(strategy.recent_wrong_items)
        elif self.store is not None:
            items = self.store.list_by_knowledge_points(strategy.knowledge_point_ids)
        else:
            items = []

        scope = set(strategy.knowledge_point_ids)
        return [
            item
            for item in items
            if item.status != WrongItemStatus.ARCHIVED
            and (not scope or item.knowledge_point_id in scope)
        ]

    # =========================================================================
    # Comprehensive and progress-based generation
    # =========================================================================

    def _check_generation_size(self, knowledge_point_ids: Sequence[str], count: int) -> None:
        if not knowledge_point_ids:
            raise InvalidArgumentError("at least one knowledge point is required")
        if not 0 < count <= self.config.max_target_count:
            raise InvalidArgumentError(
                f"question count must be between 1 and {self.config.max_target_count}, got {count}"
            )

    async def generate_comprehensive(
        self,
        knowledge_point_ids: Sequence[str],
        total_count: int = 20,
        preset: DistributionPreset | tuple[float, float, float] = DistributionPreset.BALANCED,
    ) -> SelectionResult:
        """
        Draw all difficulty buckets concurrently and merge them.

        The draw is all-or-nothing: if any bucket fails or is cancelled the
        remaining draws are cancelled and the error propagates; no partial
        set is returned.
        """
        self._check_generation_size(knowledge_point_ids, total_count)
        plan = self.planner.compute_preset_distribution(total_count, preset)

        tasks: list[asyncio.Future[list[Question]]] = []
        for difficulty in Difficulty:
            count = plan.for_difficulty(difficulty)
            if count > 0:
                tasks.append(
                    asyncio.ensure_future(self.pool.fetch(knowledge_point_ids, difficulty, count))
                )

        try:
            buckets = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.warning("Comprehensive draw aborted; partial results discarded")
            raise

        questions = [question for bucket in buckets for question in bucket]
        self.rng.shuffle(questions)
        return self._build_result(questions, total_count, "comprehensive")

    async def generate_for_progress(
        self,
        knowledge_point_id: str,
        count: int = 10,
        progress: LearningProgress | None = None,
    ) -> SelectionResult:
        """Standard set at the single difficulty suggested by learner progress."""
        self._check_generation_size([knowledge_point_id], count)
        difficulty = self.planner.difficulty_from_progress(progress)
        logger.info(f"Progress-based difficulty for {knowledge_point_id}: {difficulty.value}")

        return await self.select_questions(
            SelectionStrategy(
                knowledge_point_ids=[knowledge_point_id],
                target_count=count,
                mode=PracticeMode.STANDARD,
                fixed_difficulty=difficulty,
            )
        )
