"""Enums shared by the matching engine, its schemas and the database schema."""

import enum


class CompanySize(str, enum.Enum):
    """Company size bucket a user can target."""

    STARTUP = "STARTUP"
    SME = "SME"
    ENTERPRISE = "ENTERPRISE"


class ExperienceLevel(str, enum.Enum):
    """Experience level a user can target (inferred from titles for targets)."""

    JUNIOR = "JUNIOR"
    MID = "MID"
    SENIOR = "SENIOR"
    EXECUTIVE = "EXECUTIVE"


class RecommendationStrength(str, enum.Enum):
    """Three-tier coarsening of the 0-100 match score."""

    HIGH = "HIGH"  # score >= 80
    MEDIUM = "MEDIUM"  # score >= 60
    LOW = "LOW"


class ReasonType(str, enum.Enum):
    """Dimension tag attached to a match reason."""

    INDUSTRY = "INDUSTRY"
    POSITION = "POSITION"
    SKILLS = "SKILLS"
    BUSINESS_GOALS = "BUSINESS_GOALS"
    INTERESTS = "INTERESTS"


class SortStrategy(str, enum.Enum):
    """Ranking strategy selectable by the caller."""

    SCORE_DESC = "SCORE_DESC"
    PREFERENCE_FIRST = "PREFERENCE_FIRST"
    DIVERSITY = "DIVERSITY"
    BALANCED = "BALANCED"


class BehaviorType(str, enum.Enum):
    """Interaction events recorded by the behavior tracker."""

    VIEW_PROFILE = "VIEW_PROFILE"
    SEND_CONNECTION = "SEND_CONNECTION"
    ACCEPT_CONNECTION = "ACCEPT_CONNECTION"
    REJECT_CONNECTION = "REJECT_CONNECTION"
    START_CONVERSATION = "START_CONVERSATION"
    SCHEDULE_MEETING = "SCHEDULE_MEETING"
    ATTEND_MEETING = "ATTEND_MEETING"
    SEARCH_USERS = "SEARCH_USERS"
    FILTER_RESULTS = "FILTER_RESULTS"
    SORT_RESULTS = "SORT_RESULTS"
    VIEW_MATCH_DETAILS = "VIEW_MATCH_DETAILS"


class FeedbackType(str, enum.Enum):
    """What a feedback record is about."""

    MATCH_QUALITY = "MATCH_QUALITY"
    CONNECTION_OUTCOME = "CONNECTION_OUTCOME"
    MEETING_OUTCOME = "MEETING_OUTCOME"
    RECOMMENDATION_RELEVANCE = "RECOMMENDATION_RELEVANCE"
    PROFILE_ACCURACY = "PROFILE_ACCURACY"
    ALGORITHM_PREFERENCE = "ALGORITHM_PREFERENCE"


class InsightType(str, enum.Enum):
    """Kinds of mined per-user insights."""

    DIMENSION_PREFERENCE = "DIMENSION_PREFERENCE"
    REJECTION_PATTERN = "REJECTION_PATTERN"
    CONNECTION_SUCCESS_PATTERN = "CONNECTION_SUCCESS_PATTERN"
    MEETING_OUTCOME_PATTERN = "MEETING_OUTCOME_PATTERN"
    TEMPORAL_PATTERN = "TEMPORAL_PATTERN"


class ColdStartPhase(str, enum.Enum):
    """Personalization phase of a user. Ordered; never regresses automatically."""

    INITIAL = "INITIAL"
    LEARNING = "LEARNING"
    ADAPTING = "ADAPTING"
    ESTABLISHED = "ESTABLISHED"

    @property
    def rank(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER = [
    ColdStartPhase.INITIAL,
    ColdStartPhase.LEARNING,
    ColdStartPhase.ADAPTING,
    ColdStartPhase.ESTABLISHED,
]


# Score bands used for history statistics (0-1 scale, same cut-offs as strength).
HIGH_SCORE_THRESHOLD = 0.8
MEDIUM_SCORE_THRESHOLD = 0.6


class ParticipantStatus(str, enum.Enum):
    """Membership status of a user in an event. Only ACTIVE members are matched."""

    ACTIVE = "ACTIVE"
    LEFT = "LEFT"
    REMOVED = "REMOVED"
