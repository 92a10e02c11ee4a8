"""
Unit tests for practice set selection.

Uses the in-memory pool from conftest: six questions per difficulty on
kp-a and two per difficulty on kp-b.
"""

import asyncio
import random

import pytest

from practice_engine.adaptive.difficulty_planner import DistributionPreset, LearningProgress
from practice_engine.core.exceptions import InvalidArgumentError, UpstreamUnavailableError
from practice_engine.core.models import (
    Difficulty,
    DifficultyDistribution,
    PracticeMode,
    SelectionStrategy,
    WrongItemStatus,
)
from practice_engine.delivery.question_pool import InMemoryQuestionPool
from practice_engine.study.question_selector import (
    QuestionSelector,
    SelectionConfig,
    estimate_time_seconds,
)


class RecordingPool(InMemoryQuestionPool):
    def __init__(self, questions):
        super().__init__(questions)
        self.fetch_calls = []

    async def fetch(self, knowledge_point_ids, difficulty, count):
        self.fetch_calls.append((difficulty, count))
        return await super().fetch(knowledge_point_ids, difficulty, count)


class FailingPool(InMemoryQuestionPool):
    async def fetch(self, knowledge_point_ids, difficulty, count):
        raise UpstreamUnavailableError("question service down")


def make_selector(pool, **kwargs):
    return QuestionSelector(pool, rng=random.Random(7), **kwargs)


class TestStandardMode:
    @pytest.mark.asyncio
    async def test_fixed_easy_ten(self, pool):
        result = await make_selector(pool).select_questions(
            SelectionStrategy(["kp-a", "kp-b"], 10, fixed_difficulty=Difficulty.EASY)
        )

        assert result.distribution == DifficultyDistribution(8, 2, 0)
        assert len(result.questions) == 10
        assert len({q.id for q in result.questions}) == 10

    @pytest.mark.asyncio
    async def test_balanced_by_level(self, pool):
        result = await make_selector(pool).select_questions(SelectionStrategy(["kp-a"], 9, user_level=5))

        assert result.distribution == DifficultyDistribution(4, 5, 0)

    @pytest.mark.asyncio
    async def test_underfill_reports_what_was_served(self, pool):
        selector = make_selector(pool, config=SelectionConfig(borrow_from_adjacent=False))

        result = await selector.select_questions(
            SelectionStrategy(["kp-b"], 10, fixed_difficulty=Difficulty.EASY)
        )

        assert len(result.questions) == 4
        assert result.distribution == DifficultyDistribution(2, 2, 0)
        assert result.distribution.total == len(result.questions)

    @pytest.mark.asyncio
    async def test_shortfall_borrows_from_nearest_difficulty(self, pool):
        result = await make_selector(pool).select_questions(
            SelectionStrategy(["kp-b"], 10, fixed_difficulty=Difficulty.EASY)
        )

        # kp-b holds two per difficulty: medium is drained first, then hard
        assert result.distribution == DifficultyDistribution(2, 2, 2)
        assert len({q.id for q in result.questions}) == 6

    @pytest.mark.asyncio
    async def test_scope_is_respected(self, pool):
        result = await make_selector(pool).select_questions(SelectionStrategy(["kp-b"], 4, user_level=30))

        assert {q.knowledge_point_id for q in result.questions} == {"kp-b"}

    @pytest.mark.asyncio
    async def test_time_estimate_uses_served_questions(self, pool):
        result = await make_selector(pool).select_questions(
            SelectionStrategy(["kp-a"], 5, fixed_difficulty=Difficulty.HARD)
        )

        assert result.estimated_time_seconds == estimate_time_seconds(result.questions)


class TestAdaptiveMode:
    @pytest.mark.asyncio
    async def test_draws_follow_level(self, question_bank):
        pool = RecordingPool(question_bank)
        result = await make_selector(pool).select_questions(
            SelectionStrategy(["kp-a"], 5, mode=PracticeMode.ADAPTIVE, user_level=30)
        )

        assert result.distribution == DifficultyDistribution(0, 0, 5)
        # consecutive equal difficulties share one request
        assert pool.fetch_calls == [(Difficulty.HARD, 5)]

    @pytest.mark.asyncio
    async def test_underfilled_pool_tallies_actual_items(self, pool):
        result = await make_selector(pool).select_questions(
            SelectionStrategy(["kp-a"], 9, mode=PracticeMode.ADAPTIVE, user_level=1)
        )

        assert result.distribution == DifficultyDistribution(6, 0, 0)
        assert len(result.questions) == 6


class TestWrongMode:
    @pytest.fixture
    def wrong_items(self, question_bank, wrong_item_factory, day0):
        by_id = {q.id: q for q in question_bank}
        return [
            wrong_item_factory("w-easy", day0, by_id["a-easy-0"]),
            wrong_item_factory("w-arch", day0, by_id["a-medium-0"], status=WrongItemStatus.ARCHIVED),
            wrong_item_factory("w-hard", day0, by_id["a-hard-0"]),
            wrong_item_factory("w-other-kp", day0, by_id["b-easy-0"]),
            wrong_item_factory("w-no-question", day0),
        ]

    @pytest.mark.asyncio
    async def test_ranked_then_backfilled(self, pool, wrong_items, day0):
        result = await make_selector(pool).select_questions(
            SelectionStrategy(["kp-a"], 4, mode=PracticeMode.WRONG, recent_wrong_items=wrong_items),
            now=day0,
        )

        ids = [q.id for q in result.questions]
        assert ids[:2] == ["a-hard-0", "a-easy-0"]
        assert len(ids) == 4 and len(set(ids)) == 4
        assert "a-medium-0" not in ids
        assert all(q.knowledge_point_id == "kp-a" for q in result.questions)

    @pytest.mark.asyncio
    async def test_no_backfill_when_enough_items(self, pool, wrong_items, day0):
        result = await make_selector(pool).select_questions(
            SelectionStrategy([], 2, mode=PracticeMode.WRONG, recent_wrong_items=wrong_items),
            now=day0,
        )

        assert [q.id for q in result.questions] == ["a-hard-0", "a-easy-0"]

    @pytest.mark.asyncio
    async def test_reads_store_when_no_items_given(self, pool, memory_store, wrong_items, day0):
        for item in wrong_items:
            memory_store.save(item)

        result = await make_selector(pool, store=memory_store).select_questions(
            SelectionStrategy(["kp-b"], 1, mode=PracticeMode.WRONG), now=day0
        )

        assert [q.id for q in result.questions] == ["b-easy-0"]

    @pytest.mark.asyncio
    async def test_empty_book_returns_empty_result(self, pool, day0):
        result = await make_selector(pool).select_questions(
            SelectionStrategy([], 5, mode=PracticeMode.WRONG), now=day0
        )

        assert result.questions == []
        assert result.distribution == DifficultyDistribution(0, 0, 0)
        assert result.estimated_time_seconds == 0


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, -5])
    async def test_non_positive_count(self, pool, count):
        with pytest.raises(InvalidArgumentError):
            await make_selector(pool).select_questions(SelectionStrategy(["kp-a"], count))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [PracticeMode.STANDARD, PracticeMode.ADAPTIVE])
    async def test_knowledge_points_required(self, pool, mode):
        with pytest.raises(InvalidArgumentError):
            await make_selector(pool).select_questions(SelectionStrategy([], 5, mode=mode))

    @pytest.mark.asyncio
    async def test_pool_failure_propagates(self, question_bank):
        with pytest.raises(UpstreamUnavailableError):
            await make_selector(FailingPool(question_bank)).select_questions(SelectionStrategy(["kp-a"], 5))


class TestComprehensive:
    @pytest.mark.asyncio
    async def test_preset_mix(self, pool):
        result = await make_selector(pool).generate_comprehensive(["kp-a"], 10, DistributionPreset.BALANCED)

        assert result.distribution == DifficultyDistribution(3, 5, 2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [0, 51])
    async def test_count_bounds(self, pool, count):
        with pytest.raises(InvalidArgumentError):
            await make_selector(pool).generate_comprehensive(["kp-a"], count)

    @pytest.mark.asyncio
    async def test_requires_knowledge_points(self, pool):
        with pytest.raises(InvalidArgumentError):
            await make_selector(pool).generate_comprehensive([], 10)

    @pytest.mark.asyncio
    async def test_failed_bucket_cancels_the_rest(self, question_bank):
        cancelled = []

        class PartlyFailingPool(InMemoryQuestionPool):
            async def fetch(self, knowledge_point_ids, difficulty, count):
                if difficulty == Difficulty.MEDIUM:
                    raise UpstreamUnavailableError("medium bucket failed")
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    cancelled.append(difficulty)
                    raise
                return await super().fetch(knowledge_point_ids, difficulty, count)

        with pytest.raises(UpstreamUnavailableError):
            await make_selector(PartlyFailingPool(question_bank)).generate_comprehensive(["kp-a"], 10)

        assert sorted(d.value for d in cancelled) == ["easy", "hard"]


class TestProgressBased:
    @pytest.mark.asyncio
    async def test_strong_learner_gets_hard_set(self, pool):
        progress = LearningProgress(mastery_level=0.9, correct_count=9, practice_count=10)

        result = await make_selector(pool).generate_for_progress("kp-a", 5, progress)

        assert result.distribution == DifficultyDistribution(0, 1, 4)

    @pytest.mark.asyncio
    async def test_new_learner_starts_easy(self, pool):
        result = await make_selector(pool).generate_for_progress("kp-a", 5)

        assert result.distribution == DifficultyDistribution(4, 1, 0)


class TestTimeEstimate:
    def test_mixed_set(self, question_factory):
        questions = [
            question_factory("q-1", difficulty=Difficulty.EASY),
            question_factory("q-2", difficulty=Difficulty.HARD),
        ]
        assert estimate_time_seconds(questions) == 180

    def test_empty_set(self):
        assert estimate_time_seconds([]) == 0

    def test_custom_rates(self, question_factory):
        questions = [question_factory("q-1", difficulty=Difficulty.MEDIUM)]
        assert estimate_time_seconds(questions, base_seconds=10, seconds_per_point=5) == 20
