"""
Collaborator interfaces injected into the engine.

The engine never constructs these itself; hosts pass concrete adapters
(see ``practice_engine.delivery`` for in-memory and SQL reference versions).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from practice_engine.core.models import Difficulty, Question, WrongItem


@runtime_checkable
class QuestionPool(Protocol):
    """Supplies concrete questions by knowledge point and difficulty."""

    async def fetch(
        self,
        knowledge_point_ids: Sequence[str],
        difficulty: Difficulty,
        count: int,
    ) -> list[Question]:
        """Return up to ``count`` questions; may return fewer."""
        ...

    async def find_similar(
        self,
        seed_questions: Sequence[Question],
        count: int,
    ) -> list[Question]:
        """Return up to ``count`` questions resembling the seeds."""
        ...


@runtime_checkable
class WrongItemStore(Protocol):
    """Persistence boundary for wrong items."""

    def get(self, item_id: str) -> WrongItem:
        """Return the item or raise NotFoundError."""
        ...

    def list_by_knowledge_points(self, knowledge_point_ids: Sequence[str]) -> list[WrongItem]:
        """Return items tagged with any of the ids (all items when empty)."""
        ...

    def list_all(self) -> list[WrongItem]:
        ...

    def find_by_question(self, question_id: str) -> WrongItem | None:
        """Return the newest non-archived item for the question, or None."""
        ...

    def save(self, item: WrongItem) -> None:
        ...
