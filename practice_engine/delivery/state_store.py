"""
Wrong-Item State Stores.

Provides persistence for wrong items and their review schedules:
- SqlWrongItemStore: SQLAlchemy-backed store (SQLite by default)
- InMemoryWrongItemStore: dict-backed store for tests and local runs

Both return fresh copies on every read, so callers always work on a
point-in-time snapshot that later saves cannot tear.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from loguru import logger
from sqlalchemy import JSON, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from practice_engine.core.exceptions import NotFoundError
from practice_engine.core.models import (
    Difficulty,
    ErrorType,
    Question,
    ReviewSchedule,
    WrongItem,
    WrongItemStatus,
)

# =============================================================================
# ORM Model
# =============================================================================


class Base(DeclarativeBase):
    pass


class WrongItemRecord(Base):
    """
    One row per wrong item.

    The embedded review schedule is stored as JSON lists; the joined
    question is denormalized so items can be ranked without the pool.
    """

    __tablename__ = "wrong_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    question_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    knowledge_point_id: Mapped[str | None] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending")
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    last_retry_at: Mapped[datetime | None] = mapped_column(DateTime)
    error_type: Mapped[str] = mapped_column(String(16), default="unknown")

    # Review schedule
    next_review_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    review_count: Mapped[int] = mapped_column(Integer, default=0)
    review_dates: Mapped[list[str]] = mapped_column(JSON, default=list)
    intervals: Mapped[list[int]] = mapped_column(JSON, default=list)

    # Question snapshot
    question_difficulty: Mapped[str | None] = mapped_column(String(16))
    question_content: Mapped[str | None] = mapped_column(Text)
    question_answer: Mapped[str | None] = mapped_column(Text)

    wrong_count: Mapped[int] = mapped_column(Integer, default=1)
    last_wrong_at: Mapped[datetime | None] = mapped_column(DateTime)
    error_tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    similar_question_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    learning_note: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<WrongItemRecord id={self.id} status={self.status} retry={self.retry_count}>"


def _to_record_fields(item: WrongItem) -> dict[str, Any]:
    schedule = item.review_schedule
    question = item.question
    return {
        "id": item.id,
        "question_id": item.question_id,
        "knowledge_point_id": item.knowledge_point_id,
        "status": item.status.value,
        "retry_count": item.retry_count,
        "last_retry_at": item.last_retry_at,
        "error_type": item.error_type.value,
        "next_review_date": schedule.next_review_date,
        "review_count": schedule.review_count,
        "review_dates": [d.isoformat() for d in schedule.review_dates],
        "intervals": list(schedule.intervals),
        "question_difficulty": question.difficulty.value if question else None,
        "question_content": question.content if question else None,
        "question_answer": question.standard_answer if question else None,
        "wrong_count": item.wrong_count,
        "last_wrong_at": item.last_wrong_at,
        "error_tags": list(item.error_tags),
        "similar_question_ids": list(item.similar_question_ids),
        "learning_note": item.learning_note,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


def _from_record(record: WrongItemRecord) -> WrongItem:
    question = None
    if record.question_difficulty is not None:
        question = Question(
            id=record.question_id,
            knowledge_point_id=record.knowledge_point_id or "",
            difficulty=Difficulty(record.question_difficulty),
            content=record.question_content or "",
            standard_answer=record.question_answer or "",
        )

    return WrongItem(
        id=record.id,
        question_id=record.question_id,
        question=question,
        knowledge_point_id=record.knowledge_point_id,
        status=WrongItemStatus(record.status),
        retry_count=record.retry_count,
        last_retry_at=record.last_retry_at,
        error_type=ErrorType(record.error_type),
        review_schedule=ReviewSchedule(
            next_review_date=record.next_review_date,
            review_count=record.review_count,
            review_dates=tuple(datetime.fromisoformat(d) for d in record.review_dates or []),
            intervals=tuple(record.intervals or []),
        ),
        wrong_count=record.wrong_count or 1,
        last_wrong_at=record.last_wrong_at,
        error_tags=list(record.error_tags or []),
        similar_question_ids=list(record.similar_question_ids or []),
        learning_note=record.learning_note,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


# =============================================================================
# SQL Store
# =============================================================================


class SqlWrongItemStore:
    """
    SQLAlchemy-backed wrong-item persistence.

    Handles:
    - Wrong item lifecycle fields (status, retries, error type)
    - Embedded review schedule
    - Denormalized question snapshot for ranking
    """

    def __init__(self, database_url: str = "sqlite:///practice_engine.db", echo: bool = False):
        """
        Initialize the store.

        Args:
            database_url: SQLAlchemy URL (e.g. sqlite:///:memory:)
            echo: Log emitted SQL
        """
        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
        self._session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        self.init_db()

        logger.info(f"Wrong-item store initialized at {database_url}")

    def init_db(self) -> None:
        """Create tables if missing."""
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            session.rollback()
            raise
        finally:
            session.close()

    def get(self, item_id: str) -> WrongItem:
        with self.session_scope() as session:
            record = session.get(WrongItemRecord, item_id)
            if record is None:
                raise NotFoundError("wrong item", item_id)
            return _from_record(record)

    def list_by_knowledge_points(self, knowledge_point_ids: Sequence[str]) -> list[WrongItem]:
        stmt = select(WrongItemRecord).order_by(WrongItemRecord.created_at, WrongItemRecord.id)
        if knowledge_point_ids:
            stmt = stmt.where(WrongItemRecord.knowledge_point_id.in_(list(knowledge_point_ids)))
        with self.session_scope() as session:
            return [_from_record(r) for r in session.scalars(stmt)]

    def find_by_question(self, question_id: str) -> WrongItem | None:
        """Newest non-archived item tracking the question, if any."""
        stmt = (
            select(WrongItemRecord)
            .where(
                WrongItemRecord.question_id == question_id,
                WrongItemRecord.status != WrongItemStatus.ARCHIVED.value,
            )
            .order_by(WrongItemRecord.created_at.desc(), WrongItemRecord.id.desc())
            .limit(1)
        )
        with self.session_scope() as session:
            record = session.scalars(stmt).first()
            return _from_record(record) if record is not None else None

    def list_all(self) -> list[WrongItem]:
        return self.list_by_knowledge_points([])

    def save(self, item: WrongItem) -> None:
        with self.session_scope() as session:
            session.merge(WrongItemRecord(**_to_record_fields(item)))
        logger.debug(f"Saved wrong item {item.id} ({item.status.value}, retry={item.retry_count})")


# =============================================================================
# In-Memory Store
# =============================================================================


class InMemoryWrongItemStore:
    """Dict-backed wrong-item store; preserves insertion order."""

    def __init__(self, items: Sequence[WrongItem] = ()):
        self._items: dict[str, WrongItem] = {}
        self._guard = threading.Lock()
        for item in items:
            self._items[item.id] = copy.deepcopy(item)

    def get(self, item_id: str) -> WrongItem:
        with self._guard:
            item = self._items.get(item_id)
            if item is None:
                raise NotFoundError("wrong item", item_id)
            return copy.deepcopy(item)

    def list_by_knowledge_points(self, knowledge_point_ids: Sequence[str]) -> list[WrongItem]:
        scope = set(knowledge_point_ids)
        with self._guard:
            return [
                copy.deepcopy(item)
                for item in self._items.values()
                if not scope or item.knowledge_point_id in scope
            ]

    def find_by_question(self, question_id: str) -> WrongItem | None:
        with self._guard:
            open_items = [
                item
                for item in self._items.values()
                if item.question_id == question_id and item.status != WrongItemStatus.ARCHIVED
            ]
            if not open_items:
                return None
            return copy.deepcopy(max(open_items, key=lambda item: (item.created_at, item.id)))

    def list_all(self) -> list[WrongItem]:
        return self.list_by_knowledge_points([])

    def save(self, item: WrongItem) -> None:
        with self._guard:
            self._items[item.id] = copy.deepcopy(item)
