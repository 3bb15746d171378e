"""SQLAlchemy models for the event matching database."""

from event_matching.models.base import Base
from event_matching.models.enums import (
    BehaviorType,
    ColdStartPhase,
    CompanySize,
    ExperienceLevel,
    FeedbackType,
    InsightType,
    ParticipantStatus,
    ReasonType,
    RecommendationStrength,
    SortStrategy,
)
from event_matching.models.participants import (
    Event,
    EventParticipant,
    MatchingPreferences,
    Participant,
)
from event_matching.models.matches import Match
from event_matching.models.learning import (
    AlgorithmInsightRow,
    ColdStartProfileRow,
    Feedback,
    FeedbackLearningStatsRow,
    UserBehavior,
    UserPreferenceWeights,
)

__all__ = [
    # Base
    "Base",
    # Enums
    "BehaviorType",
    "ColdStartPhase",
    "CompanySize",
    "ExperienceLevel",
    "FeedbackType",
    "InsightType",
    "ParticipantStatus",
    "ReasonType",
    "RecommendationStrength",
    "SortStrategy",
    # Participants
    "Participant",
    "Event",
    "EventParticipant",
    "MatchingPreferences",
    # Matches
    "Match",
    # Learning
    "UserBehavior",
    "Feedback",
    "UserPreferenceWeights",
    "AlgorithmInsightRow",
    "ColdStartProfileRow",
    "FeedbackLearningStatsRow",
]
