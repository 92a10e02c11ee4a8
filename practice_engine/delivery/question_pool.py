"""
In-memory question pool.

Reference QuestionPool for local runs and tests. Questions are served in
insertion order; a request for more than the pool holds under-returns.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from pathlib import Path

from loguru import logger

from practice_engine.core.exceptions import InvalidArgumentError, NotFoundError
from practice_engine.core.models import Difficulty, Question


class InMemoryQuestionPool:
    """QuestionPool backed by a list of questions."""

    def __init__(self, questions: Iterable[Question] = ()):
        self._questions: list[Question] = list(questions)

    @classmethod
    def from_json_file(cls, path: Path) -> InMemoryQuestionPool:
        """
        Load questions from a JSON file.

        Accepts a list of question objects or {"questions": [...]}. Entries
        missing a field or carrying an unknown difficulty are skipped.

        Raises:
            InvalidArgumentError: File cannot be read or is not JSON
        """
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InvalidArgumentError(f"cannot load questions from {path}: {e}") from e

        entries = data if isinstance(data, list) else data.get("questions", [])
        pool = cls()
        for entry in entries:
            try:
                pool.add(
                    Question(
                        id=str(entry["id"]),
                        knowledge_point_id=str(entry["knowledge_point_id"]),
                        difficulty=Difficulty(entry["difficulty"]),
                        content=entry.get("content", ""),
                        standard_answer=entry.get("standard_answer", ""),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Invalid question in {path}: {e}")
                continue

        logger.info(f"Question pool loaded: {len(pool)} questions from {Path(path).name}")
        return pool

    def add(self, question: Question) -> None:
        self._questions.append(question)

    def get(self, question_id: str) -> Question:
        for question in self._questions:
            if question.id == question_id:
                return question
        raise NotFoundError("question", question_id)

    def __len__(self) -> int:
        return len(self._questions)

    async def fetch(
        self,
        knowledge_point_ids: Sequence[str],
        difficulty: Difficulty,
        count: int,
    ) -> list[Question]:
        scope = set(knowledge_point_ids)
        matches = [
            q
            for q in self._questions
            if q.difficulty == difficulty and (not scope or q.knowledge_point_id in scope)
        ]
        if len(matches) < count:
            logger.debug(f"Pool has {len(matches)}/{count} {difficulty.value} questions for {sorted(scope)}")
        return matches[: max(count, 0)]

    async def find_similar(
        self,
        seed_questions: Sequence[Question],
        count: int,
    ) -> list[Question]:
        """
        Questions sharing a knowledge point with the seeds.

        Same-difficulty matches come first; the seeds themselves are excluded.
        """
        if count <= 0 or not seed_questions:
            return []

        seed_ids = {q.id for q in seed_questions}
        seed_points = {q.knowledge_point_id for q in seed_questions}
        seed_levels = {(q.knowledge_point_id, q.difficulty) for q in seed_questions}

        related = [
            q for q in self._questions
            if q.id not in seed_ids and q.knowledge_point_id in seed_points
        ]
        related.sort(key=lambda q: (q.knowledge_point_id, q.difficulty) not in seed_levels)
        return related[:count]
