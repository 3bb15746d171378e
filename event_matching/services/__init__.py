"""Services composed from the scoring functions and the store."""

from event_matching.services.matching import (
    MatchHistory,
    MatchHistoryOptions,
    MatchingService,
    MatchOptions,
    MatchRun,
    PreferenceRecommendations,
)
from event_matching.services.personalization import Personalizer
from event_matching.services.preferences import PreferencesService

__all__ = [
    "MatchHistory",
    "MatchHistoryOptions",
    "MatchingService",
    "MatchOptions",
    "MatchRun",
    "PreferenceRecommendations",
    "Personalizer",
    "PreferencesService",
]
