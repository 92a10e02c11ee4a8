"""
Study Module - wrong-item review and practice set assembly.

Components:
- WrongItemLedger: wrong-item lifecycle and error classification
- PriorityRanker: composite urgency score over wrong items
- QuestionSelector: standard / adaptive / wrong-mode practice sets
- WrongItemStatistics: aggregate wrong-book counts
"""
from practice_engine.study.priority_ranker import PriorityRanker, PriorityWeights
from practice_engine.study.question_selector import (
    QuestionSelector,
    SelectionConfig,
    estimate_time_seconds,
)
from practice_engine.study.statistics import WrongItemStatistics
from practice_engine.study.wrong_item_ledger import WrongItemLedger, analyze_error_type

__all__ = [
    "PriorityRanker",
    "PriorityWeights",
    "QuestionSelector",
    "SelectionConfig",
    "estimate_time_seconds",
    "WrongItemStatistics",
    "WrongItemLedger",
    "analyze_error_type",
]
