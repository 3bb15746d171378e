from event_matching.store.base import BehaviorQuery, FeedbackQuery, MatchingStore
from event_matching.store.memory import InMemoryStore
from event_matching.store.sql import SqlStore

__all__ = [
    "BehaviorQuery",
    "FeedbackQuery",
    "MatchingStore",
    "InMemoryStore",
    "SqlStore",
]
