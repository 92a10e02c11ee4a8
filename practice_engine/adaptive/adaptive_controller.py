"""
Adaptive Difficulty Controller.

Produces the per-item difficulty sequence for adaptive practice. The
starting difficulty comes from the learner level band and is re-evaluated
every N drawn items.

Known limitation: re-evaluation reapplies the same static level mapping and
does not yet consider how the learner actually answered, so the sequence is
constant for a given level.
"""

from __future__ import annotations

from loguru import logger

from practice_engine.core.exceptions import InvalidArgumentError
from practice_engine.core.models import Difficulty


class AdaptiveController:
    """Generates an ordered difficulty draw list for adaptive mode."""

    def __init__(self, reevaluate_every: int = 5):
        if reevaluate_every <= 0:
            raise InvalidArgumentError("reevaluate_every must be positive")
        self.reevaluate_every = reevaluate_every

    @staticmethod
    def initial_difficulty(user_level: int) -> Difficulty:
        return Difficulty.for_level(user_level)

    def adjust_difficulty(self, current: Difficulty, user_level: int) -> Difficulty:
        """Re-evaluation hook; currently maps the level band again."""
        return Difficulty.for_level(user_level)

    def plan_sequence(self, target_count: int, user_level: int) -> list[Difficulty]:
        """
        Difficulty for each of ``target_count`` draws, in order.

        The difficulty is re-evaluated after every ``reevaluate_every``-th
        draw (after draw index 5, 10, ... with the default).
        """
        if target_count <= 0:
            raise InvalidArgumentError(f"target count must be positive, got {target_count}")

        current = self.initial_difficulty(user_level)
        sequence: list[Difficulty] = []

        for index in range(target_count):
            sequence.append(current)
            if index > 0 and index % self.reevaluate_every == 0:
                current = self.adjust_difficulty(current, user_level)

        logger.debug(
            f"Adaptive sequence for level {user_level}: {target_count} draws starting at "
            f"{sequence[0].value}"
        )
        return sequence
