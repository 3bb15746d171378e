"""Event networking matching and feedback-learning engine."""

from event_matching.engine import MatchingEngine

__all__ = ["MatchingEngine"]
