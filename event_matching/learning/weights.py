"""Per-user weight adaptation from explicit sub-ratings.

Each update nudges the mapped weights toward dimensions the user rates
highly, clamps, and renormalizes. The result always sums to 1 and keeps every
component in [MIN_WEIGHT, MAX_WEIGHT], so repeated updates cannot diverge.
"""

import logging

from event_matching.config import Settings
from event_matching.domain import WEIGHT_KEYS, WeightVector
from event_matching.learning.patterns import analyze_patterns
from event_matching.store.base import FeedbackQuery, MatchingStore

logger = logging.getLogger(__name__)

ADJUSTMENT_FACTOR = 0.1
BASELINE_PREFERENCE = 0.6
MIN_WEIGHT = 0.01
MAX_WEIGHT = 0.5
_BISECTION_STEPS = 100
_MAX_SCALE = 1e12

# Sub-rating → weight it nudges. Other sub-ratings have no weight of their own.
DIMENSION_TO_WEIGHT = {
    "industry_relevance": "industry",
    "position_compatibility": "position",
    "business_goal_alignment": "business_goal",
    "skills_match": "skills",
}


def _clamp(value: float) -> float:
    return max(MIN_WEIGHT, min(MAX_WEIGHT, value))


def bounded_normalize(weights: dict[str, float]) -> dict[str, float]:
    """Scale ``weights`` to sum to 1 while keeping each in [MIN_WEIGHT, MAX_WEIGHT].

    Finds, by bisection, the common factor for which the scaled weights sum to
    1 once each is clamped into the band. Components that would leave the band
    are pinned to the bound and the rest share what is left in proportion.
    """
    if not weights:
        return {}
    if sum(weights.values()) <= 0:
        weights = {key: 1.0 for key in weights}

    def clamped_total(scale: float) -> float:
        return sum(_clamp(value * scale) for value in weights.values())

    low, high = 0.0, 1.0
    while clamped_total(high) < 1.0 and high < _MAX_SCALE:
        high *= 2
    for _ in range(_BISECTION_STEPS):
        middle = (low + high) / 2
        if clamped_total(middle) < 1.0:
            low = middle
        else:
            high = middle
    return {key: _clamp(value * high) for key, value in weights.items()}


def adjust_weights(current: WeightVector, dimension_preferences: dict[str, float]) -> WeightVector:
    """One adaptation step: nudge, clamp, renormalize, count."""
    weights = current.as_dict()
    for dimension, average in dimension_preferences.items():
        key = DIMENSION_TO_WEIGHT.get(dimension)
        if key is None:
            continue
        weights[key] += (average / 5 - BASELINE_PREFERENCE) * ADJUSTMENT_FACTOR

    clamped = {key: _clamp(weights[key]) for key in WEIGHT_KEYS}
    normalized = bounded_normalize(clamped)
    return current.with_weights(normalized, learning_count=current.learning_count + 1)


class WeightAdapter:
    def __init__(self, store: MatchingStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or Settings()

    def current(self, user_id: str) -> WeightVector:
        """Stored vector, or the defaults (persisted) when the user has none."""
        weights = self.store.get_weights(user_id)
        if weights is None:
            weights = self.store.save_weights(WeightVector(user_id=user_id))
        return weights

    def update(self, user_id: str) -> WeightVector:
        """Adapt the user's weights from their latest feedback and persist them."""
        current = self.current(user_id)
        records = self.store.query_feedback(
            user_id, FeedbackQuery(limit=self.settings.feedback_window)
        )
        patterns = analyze_patterns(records)
        updated = self.store.save_weights(adjust_weights(current, patterns.dimension_preferences))
        logger.info(
            "Updated weights for %s from %d feedback records (learning_count=%d)",
            user_id,
            patterns.records_analyzed,
            updated.learning_count,
        )
        return updated
