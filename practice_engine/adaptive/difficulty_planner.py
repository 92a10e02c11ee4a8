"""
Difficulty Planner.

Splits a requested question count into Easy/Medium/Hard buckets:

- Fixed: 80% of the set at one target difficulty, 20% at its neighbours
- Balanced: ratios chosen by learner level band
- Preset: named ratio profiles used for comprehensive practice sets

Every distribution sums exactly to the requested target. Flooring each
bucket independently loses items (9 * (.5, .4, .1) floors to 4+3+0 = 7),
so the remainder is always deposited in a designated bucket.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from practice_engine.core.exceptions import InvalidArgumentError
from practice_engine.core.models import Difficulty, DifficultyDistribution

MAIN_SHARE = 0.8
SIDE_SHARE = 0.1  # each neighbour of a Medium set

# (easy, medium, hard) by learner level band
LEVEL_BAND_RATIOS: dict[Difficulty, tuple[float, float, float]] = {
    Difficulty.EASY: (0.5, 0.4, 0.1),  # levels 1-10
    Difficulty.MEDIUM: (0.3, 0.5, 0.2),  # levels 11-25
    Difficulty.HARD: (0.2, 0.4, 0.4),  # levels 26+
}


class DistributionPreset(str, Enum):
    """Named difficulty mixes for comprehensive practice."""

    EASY = "easy"
    BALANCED = "balanced"
    CHALLENGING = "challenging"

    @property
    def ratios(self) -> tuple[float, float, float]:
        return {
            DistributionPreset.EASY: (0.7, 0.25, 0.05),
            DistributionPreset.BALANCED: (0.3, 0.5, 0.2),
            DistributionPreset.CHALLENGING: (0.1, 0.4, 0.5),
        }[self]


@dataclass(frozen=True)
class LearningProgress:
    """Learner progress on a knowledge point."""

    mastery_level: float = 0.0  # 0-1
    correct_count: int = 0
    practice_count: int = 0

    @property
    def accuracy(self) -> float:
        if self.practice_count == 0:
            return 0.0
        return self.correct_count / self.practice_count


def _require_positive(target: int) -> None:
    if target <= 0:
        logger.warning(f"Rejected distribution request with target={target}")
        raise InvalidArgumentError(f"target count must be positive, got {target}")


def _floor(target: int, ratio: float) -> int:
    # Tolerate binary float error (10 * 0.7 == 6.999...)
    return math.floor(target * ratio + 1e-9)


class DifficultyPlanner:
    """Computes per-difficulty counts for a practice set."""

    def compute_fixed_distribution(
        self,
        target: int,
        main_difficulty: Difficulty,
    ) -> DifficultyDistribution:
        """
        80% at the main difficulty, 20% at adjacent bands.

        Easy and Hard spill into Medium. Medium takes floor(10%) on each side
        and keeps every rounding remainder, so 5 at Medium is (0, 5, 0).
        """
        _require_positive(target)

        main_count = _floor(target, MAIN_SHARE)
        adjacent = target - main_count

        if main_difficulty == Difficulty.EASY:
            distribution = DifficultyDistribution(easy=main_count, medium=adjacent, hard=0)
        elif main_difficulty == Difficulty.HARD:
            distribution = DifficultyDistribution(easy=0, medium=adjacent, hard=main_count)
        else:
            side = _floor(target, SIDE_SHARE)
            distribution = DifficultyDistribution(easy=side, medium=target - 2 * side, hard=side)

        logger.debug(f"Fixed distribution ({main_difficulty.value}, {target}): {distribution.as_dict()}")
        return distribution

    def compute_balanced_distribution(
        self,
        target: int,
        user_level: int,
    ) -> DifficultyDistribution:
        """Ratios by level band; flooring shortfall goes to Medium."""
        _require_positive(target)

        easy_ratio, medium_ratio, hard_ratio = LEVEL_BAND_RATIOS[Difficulty.for_level(user_level)]
        easy = _floor(target, easy_ratio)
        medium = _floor(target, medium_ratio)
        hard = _floor(target, hard_ratio)

        medium += target - (easy + medium + hard)

        distribution = DifficultyDistribution(easy=easy, medium=medium, hard=hard)
        logger.debug(f"Balanced distribution (level {user_level}, {target}): {distribution.as_dict()}")
        return distribution

    def compute_preset_distribution(
        self,
        target: int,
        preset: DistributionPreset | tuple[float, float, float] = DistributionPreset.BALANCED,
    ) -> DifficultyDistribution:
        """
        Named or custom ratio mix; Easy and Medium are floored, Hard takes the rest.

        Args:
            target: Total questions
            preset: A DistributionPreset or custom (easy, medium, hard) weights

        Returns:
            DifficultyDistribution summing to target
        """
        _require_positive(target)

        if isinstance(preset, DistributionPreset):
            easy_ratio, medium_ratio, _ = preset.ratios
        else:
            weights = tuple(preset)
            if len(weights) != 3 or any(w < 0 for w in weights) or sum(weights) <= 0:
                raise InvalidArgumentError(f"invalid custom ratios: {preset}")
            total_weight = sum(weights)
            easy_ratio, medium_ratio = weights[0] / total_weight, weights[1] / total_weight

        easy = _floor(target, easy_ratio)
        medium = _floor(target, medium_ratio)
        return DifficultyDistribution(easy=easy, medium=medium, hard=target - easy - medium)

    @staticmethod
    def difficulty_from_progress(progress: LearningProgress | None) -> Difficulty:
        """Pick one difficulty from mastery and accuracy; no progress starts Easy."""
        if progress is None:
            return Difficulty.EASY

        score = (progress.mastery_level + progress.accuracy) / 2
        if score < 0.5:
            return Difficulty.EASY
        if score < 0.75:
            return Difficulty.MEDIUM
        return Difficulty.HARD
