"""
Integration tests for ReviewEngine over the SQLite-backed store.

Covers the full wrong-item flow: submission, retries to mastery, due
review queries and per-item serialization of concurrent recordings.
"""

import threading
from datetime import datetime, timedelta

import pytest

from practice_engine.config import Settings
from practice_engine.core.exceptions import ConflictError, NotFoundError
from practice_engine.core.models import (
    Difficulty,
    ErrorType,
    GradingOutcome,
    PracticeMode,
    SelectionStrategy,
    WrongItemStatus,
)
from practice_engine.delivery.state_store import SqlWrongItemStore
from practice_engine.engine import ReviewEngine

MISSED = GradingOutcome(is_correct=False, mistakes=("Calculation error in the final result",))


@pytest.fixture
def store(tmp_path):
    return SqlWrongItemStore(f"sqlite:///{tmp_path / 'practice.db'}")


@pytest.fixture
def engine(pool, store):
    return ReviewEngine(pool, store, settings=Settings(_env_file=None))


class TestSubmissionAndRetries:
    def test_correct_submission_is_not_tracked(self, engine, question_factory, day0):
        assert engine.record_submission(question_factory("q-1"), GradingOutcome(is_correct=True), day0) is None
        assert engine.store.list_all() == []

    def test_item_survives_round_trip(self, engine, question_factory, day0):
        question = question_factory("q-1", "kp-a", Difficulty.HARD)
        created = engine.record_submission(question, MISSED, day0, item_id="w-1")

        loaded = engine.store.get("w-1")

        assert loaded == created
        assert loaded.error_type == ErrorType.CALCULATION
        assert loaded.question.difficulty == Difficulty.HARD

    def test_retries_to_mastery(self, engine, question_factory, day0):
        engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")

        now = day0
        for _ in range(5):
            now = engine.store.get("w-1").review_schedule.next_review_date
            item = engine.record_review_outcome("w-1", True, now)

        stored = engine.store.get("w-1")
        assert stored.status == WrongItemStatus.MASTERED
        assert stored.retry_count == 5
        assert stored.review_schedule.intervals == (2, 4, 7, 15, 15)
        assert stored.review_schedule.review_dates[-1] == now
        assert item == stored

        with pytest.raises(ConflictError):
            engine.record_review_outcome("w-1", True, now + timedelta(days=30))

    def test_walkthrough_dates(self, engine, question_factory, day0):
        engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")
        assert engine.store.get("w-1").review_schedule.next_review_date == day0 + timedelta(days=1)

        item = engine.record_review_outcome("w-1", True, day0 + timedelta(days=1))
        assert item.review_schedule.next_review_date == day0 + timedelta(days=3)

        item = engine.record_review_outcome("w-1", False, day0 + timedelta(days=3))
        assert item.retry_count == 0
        assert item.review_schedule.next_review_date == day0 + timedelta(days=4)

    def test_unknown_item(self, engine, day0):
        with pytest.raises(NotFoundError):
            engine.record_review_outcome("missing", True, day0)

    def test_archived_item_is_closed(self, engine, question_factory, day0):
        engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")
        engine.archive_item("w-1", day0)

        assert engine.store.get("w-1").status == WrongItemStatus.ARCHIVED
        with pytest.raises(ConflictError):
            engine.record_review_outcome("w-1", True, day0 + timedelta(days=1))


class TestRepeatSubmissions:
    @pytest.fixture(params=["sql", "memory"])
    def any_engine(self, request, pool, store, memory_store):
        backing = store if request.param == "sql" else memory_store
        return ReviewEngine(pool, backing, settings=Settings(_env_file=None))

    def test_repeat_miss_updates_the_open_item(self, any_engine, question_factory, day0):
        question = question_factory("q-1")

        first = any_engine.record_submission(question, MISSED, day0)
        second = any_engine.record_submission(
            question, GradingOutcome(is_correct=False, mistakes=("Skipped steps",)), day0 + timedelta(hours=1)
        )

        stored = any_engine.store.list_all()
        assert [item.id for item in stored] == [first.id]
        assert second.id == first.id
        assert stored[0].wrong_count == 2
        assert stored[0].last_wrong_at == day0 + timedelta(hours=1)
        assert stored[0].error_tags == ["calculation error", "missed steps"]

    def test_repeat_miss_keeps_review_history(self, any_engine, question_factory, day0):
        question = question_factory("q-1")
        any_engine.record_submission(question, MISSED, day0, item_id="w-1")
        now = day0
        for _ in range(4):
            now = any_engine.store.get("w-1").review_schedule.next_review_date
            any_engine.record_review_outcome("w-1", True, now)

        any_engine.record_submission(question, MISSED, now)

        stored = any_engine.store.get("w-1")
        assert stored.status == WrongItemStatus.REVIEWING
        assert stored.retry_count == 4
        assert len(stored.review_schedule.review_dates) == 4
        assert stored.wrong_count == 2

    def test_taken_item_id_conflicts(self, any_engine, question_factory, day0):
        any_engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")
        any_engine.record_review_outcome("w-1", True, day0 + timedelta(days=1))

        with pytest.raises(ConflictError):
            any_engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")
        with pytest.raises(ConflictError):
            any_engine.record_submission(question_factory("q-2"), MISSED, day0, item_id="w-1")

        stored = any_engine.store.get("w-1")
        assert stored.retry_count == 1
        assert stored.wrong_count == 1

    def test_archived_item_is_not_reopened(self, any_engine, question_factory, day0):
        question = question_factory("q-1")
        any_engine.record_submission(question, MISSED, day0, item_id="w-1")
        any_engine.archive_item("w-1", day0)

        fresh = any_engine.record_submission(question, MISSED, day0 + timedelta(days=1), item_id="w-2")

        assert fresh.status == WrongItemStatus.PENDING
        assert any_engine.store.get("w-1").status == WrongItemStatus.ARCHIVED
        assert any_engine.store.find_by_question("q-1").id == "w-2"

    def test_concurrent_first_misses_open_one_item(self, engine, question_factory, day0):
        question = question_factory("q-1")

        threads = [
            threading.Thread(target=engine.record_submission, args=(question, MISSED, day0)) for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        stored = engine.store.list_all()
        assert len(stored) == 1
        assert stored[0].wrong_count == 4
        assert engine.locks.active_count == 0


class TestDueReviews:
    def test_due_means_calendar_day_on_or_before(self, engine, question_factory, day0):
        # due dates: day1 09:00, day2 09:00, day3 09:00
        for offset in range(3):
            engine.record_submission(
                question_factory(f"q-{offset}"), MISSED, day0 + timedelta(days=offset), item_id=f"w-{offset}"
            )
        engine.record_submission(question_factory("q-arch"), MISSED, day0, item_id="w-arch")
        engine.archive_item("w-arch", day0)

        as_of = datetime(2024, 3, 3, 0, 5)
        due_ids = {item.id for item in engine.get_due_reviews(as_of)}

        assert due_ids == {"w-0", "w-1"}

    def test_due_reviews_ranked_by_priority(self, engine, question_factory, day0):
        engine.record_submission(question_factory("q-e", difficulty=Difficulty.EASY), MISSED, day0, item_id="easy")
        engine.record_submission(question_factory("q-h", difficulty=Difficulty.HARD), MISSED, day0, item_id="hard")

        ranked = engine.get_due_reviews(day0 + timedelta(days=2))

        assert [item.id for item in ranked] == ["hard", "easy"]
        assert engine.priority_score(ranked[0], day0) > engine.priority_score(ranked[1], day0)

    def test_statistics(self, engine, question_factory, day0):
        engine.record_submission(question_factory("q-1", "kp-a"), MISSED, day0, item_id="w-1")
        engine.record_submission(question_factory("q-2", "kp-b"), MISSED, day0, item_id="w-2")
        engine.archive_item("w-2", day0)

        stats = engine.get_statistics(day0 + timedelta(days=1))

        assert stats.total_count == 2
        assert stats.archived_count == 1
        assert stats.today_review_count == 1


class TestConcurrency:
    def test_persist_requires_item_lock(self, engine, question_factory, day0):
        item = engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")

        with pytest.raises(ConflictError):
            engine._persist(item)

    def test_concurrent_recordings_are_serialized(self, engine, question_factory, day0):
        engine.record_submission(question_factory("q-1"), MISSED, day0, item_id="w-1")
        errors = []

        def record(offset):
            try:
                engine.record_review_outcome("w-1", True, day0 + timedelta(days=offset))
            except ConflictError as e:
                errors.append(e)

        threads = [threading.Thread(target=record, args=(1,)) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(10)

        stored = engine.store.get("w-1")
        assert errors == []
        assert stored.retry_count == 3
        assert len(stored.review_schedule.review_dates) == 3


class TestWrongModeSelection:
    @pytest.mark.asyncio
    async def test_selects_from_stored_items(self, engine, question_bank, day0):
        by_id = {q.id: q for q in question_bank}
        engine.record_submission(by_id["a-hard-0"], MISSED, day0, item_id="w-1")
        engine.record_submission(by_id["a-easy-0"], MISSED, day0, item_id="w-2")

        result = await engine.select_questions(
            SelectionStrategy(["kp-a"], 3, mode=PracticeMode.WRONG), now=day0
        )

        ids = [q.id for q in result.questions]
        assert ids[:2] == ["a-hard-0", "a-easy-0"]
        assert len(ids) == 3
