"""Weighted combination of dimension scores into one match score."""

from event_matching.domain import DEFAULT_WEIGHTS, WeightVector, round_half_up
from event_matching.models.enums import (
    HIGH_SCORE_THRESHOLD,
    MEDIUM_SCORE_THRESHOLD,
    RecommendationStrength,
)
from event_matching.scoring.dimensions import MatchDimensions


def resolve_weights(
    explicit: WeightVector | None = None, personalized: WeightVector | None = None
) -> WeightVector:
    """Explicit weights win; personalized weights only once they have been adapted at least once."""
    if explicit is not None:
        return explicit
    if personalized is not None and personalized.learning_count >= 1:
        return personalized
    return DEFAULT_WEIGHTS


def combine(dimensions: MatchDimensions, weights: WeightVector) -> float:
    """Σ dimension × weight, clamped to [0, 1]."""
    scores = dimensions.as_dict()
    total = sum(scores[key] * weight for key, weight in weights.as_dict().items())
    return max(0.0, min(1.0, total))


def to_api_score(score: float) -> int:
    return round_half_up(max(0.0, min(1.0, score)) * 100)


def recommendation_strength(score: float) -> RecommendationStrength:
    """HIGH ≥ 0.8, MEDIUM ≥ 0.6, otherwise LOW (score on the 0-1 scale)."""
    if score >= HIGH_SCORE_THRESHOLD:
        return RecommendationStrength.HIGH
    if score >= MEDIUM_SCORE_THRESHOLD:
        return RecommendationStrength.MEDIUM
    return RecommendationStrength.LOW
