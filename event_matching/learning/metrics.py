"""Read-only reports on how far personalization has progressed for a user."""

from dataclasses import dataclass, field

from event_matching.domain import (
    AlgorithmInsight,
    ColdStartProfile,
    FeedbackLearningStats,
    RatingDistribution,
    WeightVector,
)
from event_matching.models.enums import ColdStartPhase
from event_matching.store.base import MatchingStore

SATISFACTION_WEIGHTS = {
    "excellent": 1.0,
    "good": 0.8,
    "average": 0.6,
    "poor": 0.4,
    "terrible": 0.2,
}

PHASE_PROGRESS = {
    ColdStartPhase.INITIAL: 0.2,
    ColdStartPhase.LEARNING: 0.5,
    ColdStartPhase.ADAPTING: 0.8,
    ColdStartPhase.ESTABLISHED: 1.0,
}

MAX_EXPECTED_IMPROVEMENT = 30.0

OPPORTUNITY_MORE_FEEDBACK = "Rate more of your matches to improve your recommendations"
OPPORTUNITY_COMPLETE_PROFILE = "Complete your profile to get more precise matches"
OPPORTUNITY_MORE_ACTIVITY = "Use the platform more often to sharpen personalization"
OPPORTUNITY_ADJUST_PREFERENCES = "Adjust your matching preferences to improve connection success"


@dataclass(frozen=True)
class LearningMetrics:
    overall_satisfaction: float
    recommendation_accuracy: float
    connection_success_rate: float
    learning_velocity: float
    personalization_effectiveness: float


@dataclass(frozen=True)
class LearningProgress:
    learning_phase: ColdStartPhase
    feedback_count: int
    accuracy_improvement: float
    personalization_level: float


@dataclass(frozen=True)
class RecommendationImprovements:
    weight_adjustments: WeightVector
    expected_improvement: float
    confidence_level: float


@dataclass(frozen=True)
class FeedbackAnalysis:
    user_learning_progress: LearningProgress
    algorithm_insights: list[AlgorithmInsight]
    recommendation_improvements: RecommendationImprovements
    next_learning_opportunities: list[str] = field(default_factory=list)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def _quality_factor(stats: FeedbackLearningStats) -> float:
    """Average rating mapped from [1, 5] to [-1, 1]."""
    return (stats.avg_match_quality_rating - 3) / 2


def overall_satisfaction(distribution: RatingDistribution) -> float:
    total = distribution.total()
    if total == 0:
        return 0.5
    weighted = sum(getattr(distribution, bucket) * w for bucket, w in SATISFACTION_WEIGHTS.items())
    return weighted / total


def learning_velocity(
    stats: FeedbackLearningStats | None, profile: ColdStartProfile | None
) -> float:
    if stats is None or profile is None:
        return 0.0
    return PHASE_PROGRESS[profile.cold_start_phase] * min(1.0, stats.total_feedback_count / 20)


def personalization_effectiveness(
    stats: FeedbackLearningStats | None, profile: ColdStartProfile | None
) -> float:
    if stats is None or profile is None:
        return 0.0
    return _clamp01(
        _quality_factor(stats) * 0.4
        + profile.behavior_activity_score * 0.3
        + PHASE_PROGRESS[profile.cold_start_phase] * 0.3
    )


def accuracy_improvement(stats: FeedbackLearningStats | None) -> float:
    if stats is None or stats.total_feedback_count < 5:
        return 0.0
    return max(0.0, min(1.0, stats.total_feedback_count / 20) * _quality_factor(stats))


def personalization_level(
    weights: WeightVector | None, stats: FeedbackLearningStats | None
) -> float:
    if weights is None or stats is None:
        return 0.0
    return _clamp01(min(1.0, weights.learning_count / 10) * 0.6 + _quality_factor(stats) * 0.4)


def expected_improvement(
    stats: FeedbackLearningStats | None, insights: list[AlgorithmInsight]
) -> float:
    """Percent improvement expected from the current insights, capped at 30."""
    if stats is None:
        return 0.0
    score = sum(i.confidence_level * i.impact_score for i in insights) / max(1, len(insights))
    return min(MAX_EXPECTED_IMPROVEMENT, score * 100)


def confidence_level(
    stats: FeedbackLearningStats | None, insights: list[AlgorithmInsight]
) -> float:
    if stats is None:
        return 0.3
    data_confidence = min(1.0, stats.total_feedback_count / 15)
    if insights:
        insight_confidence = sum(i.confidence_level for i in insights) / len(insights)
    else:
        insight_confidence = 0.3
    return data_confidence * 0.7 + insight_confidence * 0.3


def learning_opportunities(
    profile: ColdStartProfile | None, stats: FeedbackLearningStats | None
) -> list[str]:
    opportunities = []
    if stats is None or stats.total_feedback_count < 5:
        opportunities.append(OPPORTUNITY_MORE_FEEDBACK)
    if profile is None or profile.profile_completeness < 0.8:
        opportunities.append(OPPORTUNITY_COMPLETE_PROFILE)
    if profile is not None and profile.behavior_activity_score < 0.5:
        opportunities.append(OPPORTUNITY_MORE_ACTIVITY)
    if stats is not None and stats.connection_success_rate < 0.3:
        opportunities.append(OPPORTUNITY_ADJUST_PREFERENCES)
    return opportunities


class LearningReporter:
    def __init__(self, store: MatchingStore):
        self.store = store

    def metrics(self, user_id: str, event_id: str | None = None) -> LearningMetrics:
        stats = self.store.get_learning_stats(user_id, event_id)
        profile = self.store.get_cold_start_profile(user_id)
        distribution = self.store.feedback_rating_distribution(user_id, event_id)
        return LearningMetrics(
            overall_satisfaction=overall_satisfaction(distribution),
            recommendation_accuracy=(stats.algorithm_accuracy_score if stats else 0.0) or 0.5,
            connection_success_rate=stats.connection_success_rate if stats else 0.0,
            learning_velocity=learning_velocity(stats, profile),
            personalization_effectiveness=personalization_effectiveness(stats, profile),
        )

    def analyze(self, user_id: str) -> FeedbackAnalysis:
        profile = self.store.get_cold_start_profile(user_id)
        insights = self.store.list_insights(user_id)
        weights = self.store.get_weights(user_id)
        stats = self.store.get_learning_stats(user_id)

        return FeedbackAnalysis(
            user_learning_progress=LearningProgress(
                learning_phase=profile.cold_start_phase if profile else ColdStartPhase.INITIAL,
                feedback_count=stats.total_feedback_count if stats else 0,
                accuracy_improvement=accuracy_improvement(stats),
                personalization_level=personalization_level(weights, stats),
            ),
            algorithm_insights=insights,
            recommendation_improvements=RecommendationImprovements(
                weight_adjustments=weights or WeightVector(user_id=user_id),
                expected_improvement=expected_improvement(stats, insights),
                confidence_level=confidence_level(stats, insights),
            ),
            next_learning_opportunities=learning_opportunities(profile, stats),
        )
