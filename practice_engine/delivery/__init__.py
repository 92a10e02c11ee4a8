"""
Delivery Module - review scheduling and collaborator adapters.

Components:
- ReviewScheduler: Ebbinghaus interval calculator
- ItemLockRegistry: per-item mutation locks
- InMemoryQuestionPool: reference QuestionPool
- SqlWrongItemStore / InMemoryWrongItemStore: reference WrongItemStores
"""
from practice_engine.delivery.item_locks import ItemLockRegistry
from practice_engine.delivery.question_pool import InMemoryQuestionPool
from practice_engine.delivery.review_scheduler import ReviewConfig, ReviewScheduler
from practice_engine.delivery.state_store import InMemoryWrongItemStore, SqlWrongItemStore

__all__ = [
    "ItemLockRegistry",
    "InMemoryQuestionPool",
    "ReviewConfig",
    "ReviewScheduler",
    "InMemoryWrongItemStore",
    "SqlWrongItemStore",
]
