"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from practice_engine.core.models import (  # noqa: E402
    Difficulty,
    Question,
    ReviewSchedule,
    WrongItem,
    WrongItemStatus,
)
from practice_engine.delivery.question_pool import InMemoryQuestionPool  # noqa: E402
from practice_engine.delivery.state_store import InMemoryWrongItemStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite-backed store)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def day0():
    """Fixed reference time: 2024-03-01 09:00."""
    return datetime(2024, 3, 1, 9, 0)


def _make_question(qid: str, kp: str = "kp-a", difficulty: Difficulty = Difficulty.MEDIUM) -> Question:
    return Question(id=qid, knowledge_point_id=kp, difficulty=difficulty, content=f"Question {qid}")


def _make_wrong_item(
    item_id: str,
    now: datetime,
    question: Question | None = None,
    status: WrongItemStatus = WrongItemStatus.PENDING,
    retry_count: int = 0,
    last_retry_at: datetime | None = None,
    next_review_date: datetime | None = None,
) -> WrongItem:
    return WrongItem(
        id=item_id,
        question_id=question.id if question else f"q-{item_id}",
        question=question,
        status=status,
        retry_count=retry_count,
        last_retry_at=last_retry_at,
        review_schedule=ReviewSchedule(next_review_date=next_review_date or now + timedelta(days=1)),
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def question_factory():
    return _make_question


@pytest.fixture
def wrong_item_factory():
    return _make_wrong_item


@pytest.fixture
def question_bank():
    """Six questions per difficulty on kp-a, two per difficulty on kp-b."""
    questions = []
    for difficulty in Difficulty:
        for i in range(6):
            questions.append(_make_question(f"a-{difficulty.value}-{i}", "kp-a", difficulty))
        for i in range(2):
            questions.append(_make_question(f"b-{difficulty.value}-{i}", "kp-b", difficulty))
    return questions


@pytest.fixture
def pool(question_bank):
    return InMemoryQuestionPool(question_bank)


@pytest.fixture
def memory_store():
    return InMemoryWrongItemStore()
