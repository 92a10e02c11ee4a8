"""
Adaptive Difficulty.

Components:
- DifficultyPlanner: Easy/Medium/Hard count splits (fixed, balanced, preset)
- AdaptiveController: per-item difficulty sequence for adaptive practice
"""
from practice_engine.adaptive.adaptive_controller import AdaptiveController
from practice_engine.adaptive.difficulty_planner import (
    DifficultyPlanner,
    DistributionPreset,
    LearningProgress,
)

__all__ = [
    "AdaptiveController",
    "DifficultyPlanner",
    "DistributionPreset",
    "LearningProgress",
]
