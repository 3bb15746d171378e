"""Dagster resources for the event matching pipeline."""

from event_matching.resources.matching import MatchingEngineResource

__all__ = [
    "MatchingEngineResource",
]
