"""Domain records passed between the matching engine and its store.

These are plain dataclasses. ORM rows (event_matching.models) are converted
to and from these at the store boundary so the scoring code never touches a
session.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from event_matching.models.enums import (
    BehaviorType,
    ColdStartPhase,
    CompanySize,
    ExperienceLevel,
    FeedbackType,
    InsightType,
    ReasonType,
    RecommendationStrength,
)
from event_matching.schemas import (
    BehaviorContext,
    FeedbackContext,
    FeedbackDimensions,
    InitialPreferences,
    InsightPayload,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Profile:
    """Participant profile, owned by the profile collaborator."""

    id: str
    name: str | None = None
    industry: str | None = None
    position: str | None = None
    company: str | None = None
    bio: str | None = None
    skills: list[str] = field(default_factory=list)
    interests: list[str] = field(default_factory=list)
    business_goals: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Preferences:
    """A user's stated matching preferences. At most one per user."""

    user_id: str
    target_positions: list[str] = field(default_factory=list)
    target_industries: list[str] = field(default_factory=list)
    company_size_preference: list[CompanySize] = field(default_factory=list)
    experience_level_preference: list[ExperienceLevel] = field(default_factory=list)
    business_goal_alignment: list[str] = field(default_factory=list)
    geographic_preference: list[str] = field(default_factory=list)


WEIGHT_KEYS = (
    "industry",
    "position",
    "business_goal",
    "skills",
    "experience",
    "company_size",
    "user_preference",
)


@dataclass(frozen=True)
class WeightVector:
    """Seven dimension weights plus the number of adaptations applied."""

    industry: float = 0.25
    position: float = 0.20
    business_goal: float = 0.20
    skills: float = 0.15
    experience: float = 0.10
    company_size: float = 0.05
    user_preference: float = 0.05
    learning_count: int = 0
    user_id: str | None = None
    updated_at: datetime | None = None

    def as_dict(self) -> dict[str, float]:
        return {key: getattr(self, key) for key in WEIGHT_KEYS}

    def with_weights(self, weights: dict[str, float], **changes: Any) -> "WeightVector":
        return replace(self, **weights, **changes)

    def total(self) -> float:
        return sum(self.as_dict().values())


DEFAULT_WEIGHTS = WeightVector()


@dataclass(frozen=True)
class Reason:
    type: ReasonType
    description: str
    score: float


@dataclass(frozen=True)
class PartialMatch:
    matched_criteria: list[str]
    missed_criteria: list[str]
    match_percentage: int
    explanation: str


@dataclass(frozen=True)
class MatchResult:
    """One ranked recommendation as returned to callers."""

    target_user: Profile
    match_score: int  # 0-100
    match_reasons: list[Reason] = field(default_factory=list)
    common_interests: list[str] = field(default_factory=list)
    business_synergies: list[str] = field(default_factory=list)
    recommendation_strength: RecommendationStrength = RecommendationStrength.LOW
    partial_match: PartialMatch | None = None

    def with_score(self, score: float) -> "MatchResult":
        return replace(self, match_score=round_half_up(min(100.0, max(0.0, score))))


@dataclass(frozen=True)
class MatchRecord:
    """Persisted history row, keyed by (event, user, target). Score is 0-1."""

    event_id: str
    user_id: str
    target_user_id: str
    match_score: float
    match_reasons: list[str] = field(default_factory=list)
    common_interests: list[str] = field(default_factory=list)
    business_synergies: list[str] = field(default_factory=list)
    recommendation_strength: RecommendationStrength = RecommendationStrength.LOW
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class EventMatchStats:
    total_matches: int = 0
    average_score: float = 0.0  # 0-1
    high_quality_matches: int = 0
    active_matchers: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0


@dataclass(frozen=True)
class BehaviorEvent:
    user_id: str
    behavior_type: BehaviorType
    target_user_id: str | None = None
    event_id: str | None = None
    context: BehaviorContext | None = None
    session_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None


@dataclass(frozen=True)
class FeedbackRecord:
    user_id: str
    target_user_id: str
    feedback_type: FeedbackType
    event_id: str | None = None
    match_id: int | None = None
    rating: int | None = None
    dimensions: FeedbackDimensions | None = None
    comments: str | None = None
    context: FeedbackContext | None = None
    is_implicit: bool = False
    confidence_score: float = 1.0
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None


@dataclass(frozen=True)
class BehaviorStats:
    total_behaviors: int = 0
    behavior_counts: dict[BehaviorType, int] = field(default_factory=dict)
    active_sessions: int = 0


@dataclass(frozen=True)
class RatingDistribution:
    excellent: int = 0  # 5
    good: int = 0  # 4
    average: int = 0  # 3
    poor: int = 0  # 2
    terrible: int = 0  # 1

    def total(self) -> int:
        return self.excellent + self.good + self.average + self.poor + self.terrible


@dataclass(frozen=True)
class FeedbackLearningStats:
    user_id: str
    event_id: str | None = None
    total_feedback_count: int = 0
    positive_feedback_count: int = 0
    negative_feedback_count: int = 0
    avg_match_quality_rating: float = 0.0
    connection_success_rate: float = 0.0
    meeting_success_rate: float = 0.0
    algorithm_accuracy_score: float = 0.0
    last_learning_update: datetime | None = None


@dataclass(frozen=True)
class ColdStartProfile:
    user_id: str
    initial_preferences: InitialPreferences | None = None
    industry_similarity_score: float = 0.0
    position_similarity_score: float = 0.0
    profile_completeness: float = 0.0
    behavior_activity_score: float = 0.0
    recommendation_diversity_factor: float = 0.8
    cold_start_phase: ColdStartPhase = ColdStartPhase.INITIAL
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class AlgorithmInsight:
    user_id: str
    insight_type: InsightType
    payload: InsightPayload
    confidence_level: float
    impact_score: float
    expires_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow())
