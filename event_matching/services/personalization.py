"""Phase-dependent re-ranking applied after the generic sort.

Each pass takes the sorted results and returns a new list; none of them
mutates its input. Scores stay integers in [0, 100].
"""

import logging

from event_matching.domain import AlgorithmInsight, ColdStartProfile, MatchResult
from event_matching.models.enums import ColdStartPhase, InsightType
from event_matching.schemas import (
    ConnectionSuccessPayload,
    DimensionPreferencePayload,
    RejectionPatternPayload,
)
from event_matching.scoring.ranking import ensure_diversity
from event_matching.scoring.tables import normalize
from event_matching.store.base import FeedbackQuery, MatchingStore

logger = logging.getLogger(__name__)

COLD_START_BOOST = 1.1

LEARNING_FEEDBACK_WINDOW = 10
LEARNING_POSITIVE_RATING = 4
LEARNING_INDUSTRY_BONUS = 10
LEARNING_POSITION_BONUS = 5

ADAPTING_MIN_CONFIDENCE = 0.6
ESTABLISHED_MIN_CONFIDENCE = 0.5

# Bonus per preferred sub-rating dimension
DIMENSION_BONUSES = {
    "industry_relevance": 5,
    "position_compatibility": 5,
    "business_goal_alignment": 8,
    "skills_match": 3,
}
REJECTION_SCORE_FLOOR = 60
SUCCESS_FACTOR_THRESHOLD = 0.7
SUCCESS_FACTOR_BONUS = 8

HIGH_SUCCESS_RATE = 0.7
HIGH_SUCCESS_MIN_SCORE = 70


# ═══════════════════════════════════════════════════════════════════
# INSIGHT TRANSFORMS
# ═══════════════════════════════════════════════════════════════════


def boost_by_dimension_preference(
    results: list[MatchResult], payload: DimensionPreferencePayload
) -> list[MatchResult]:
    bonus = sum(DIMENSION_BONUSES.get(d, 0) for d in payload.preferred_dimensions)
    if not bonus:
        return list(results)
    return [r.with_score(r.match_score + bonus) for r in results]


def filter_by_rejection_pattern(
    results: list[MatchResult], payload: RejectionPatternPayload
) -> list[MatchResult]:
    """Drop weak candidates that look like profiles the user keeps rejecting.

    Without any repeated rejected attribute every candidate below the floor
    is dropped.
    """
    industries = {normalize(i) for i in payload.rejected_industries}
    positions = {normalize(p) for p in payload.rejected_positions}

    def keep(result: MatchResult) -> bool:
        if result.match_score >= REJECTION_SCORE_FLOOR:
            return True
        if not industries and not positions:
            return False
        target = result.target_user
        return (
            normalize(target.industry) not in industries
            and normalize(target.position) not in positions
        )

    return [r for r in results if keep(r)]


def boost_by_success_pattern(
    results: list[MatchResult], payload: ConnectionSuccessPayload
) -> list[MatchResult]:
    strong = sum(1 for value in payload.success_factors.values() if value > SUCCESS_FACTOR_THRESHOLD)
    if not strong:
        return list(results)
    return [r.with_score(r.match_score + strong * SUCCESS_FACTOR_BONUS) for r in results]


def apply_insight(results: list[MatchResult], insight: AlgorithmInsight) -> list[MatchResult]:
    payload = insight.payload
    if isinstance(payload, DimensionPreferencePayload):
        return boost_by_dimension_preference(results, payload)
    if isinstance(payload, RejectionPatternPayload):
        return filter_by_rejection_pattern(results, payload)
    if isinstance(payload, ConnectionSuccessPayload):
        return boost_by_success_pattern(results, payload)
    return list(results)


# ═══════════════════════════════════════════════════════════════════
# PHASE PASSES
# ═══════════════════════════════════════════════════════════════════


def optimize_for_cold_start(
    results: list[MatchResult], profile: ColdStartProfile
) -> list[MatchResult]:
    """Spread the list out, then lift every score by 10%."""
    diversified = ensure_diversity(results, profile.recommendation_diversity_factor)
    return [r.with_score(min(100.0, r.match_score * COLD_START_BOOST)) for r in diversified]


def rerank_by_affinity(
    results: list[MatchResult], industries: set[str], positions: set[str]
) -> list[MatchResult]:
    """Stable re-rank by score plus bonuses for liked industries and positions."""

    def key(result: MatchResult) -> int:
        bonus = 0
        if normalize(result.target_user.industry) in industries:
            bonus += LEARNING_INDUSTRY_BONUS
        if normalize(result.target_user.position) in positions:
            bonus += LEARNING_POSITION_BONUS
        return -(result.match_score + bonus)

    return sorted(results, key=key)


class Personalizer:
    """Dispatches to the pass for the user's cold-start phase."""

    def __init__(self, store: MatchingStore):
        self.store = store

    def apply(self, user_id: str, results: list[MatchResult]) -> list[MatchResult]:
        profile = self.store.get_cold_start_profile(user_id)
        if profile is None:
            return list(results)

        phase = profile.cold_start_phase
        if phase == ColdStartPhase.INITIAL:
            return optimize_for_cold_start(results, profile)
        if phase == ColdStartPhase.LEARNING:
            return self._learning(user_id, results)
        if phase == ColdStartPhase.ADAPTING:
            return self._adapting(user_id, results)
        return self._established(user_id, results)

    def _learning(self, user_id: str, results: list[MatchResult]) -> list[MatchResult]:
        recent = self.store.query_feedback(user_id, FeedbackQuery(limit=LEARNING_FEEDBACK_WINDOW))
        industries: set[str] = set()
        positions: set[str] = set()
        for record in recent:
            if not record.rating or record.rating < LEARNING_POSITIVE_RATING:
                continue
            target = self.store.get_profile(record.target_user_id)
            if target is None:
                continue
            if normalize(target.industry):
                industries.add(normalize(target.industry))
            if normalize(target.position):
                positions.add(normalize(target.position))

        if not industries and not positions:
            return list(results)
        return rerank_by_affinity(results, industries, positions)

    def _adapting(self, user_id: str, results: list[MatchResult]) -> list[MatchResult]:
        insights = self.store.list_insights(
            user_id, types=(InsightType.DIMENSION_PREFERENCE, InsightType.REJECTION_PATTERN)
        )
        optimized = list(results)
        for insight in insights:
            if insight.confidence_level > ADAPTING_MIN_CONFIDENCE:
                optimized = apply_insight(optimized, insight)
        return optimized

    def _established(self, user_id: str, results: list[MatchResult]) -> list[MatchResult]:
        optimized = list(results)
        for insight in self.store.list_insights(user_id):
            if insight.confidence_level > ESTABLISHED_MIN_CONFIDENCE:
                optimized = apply_insight(optimized, insight)

        stats = self.store.get_learning_stats(user_id)
        if stats is not None and stats.connection_success_rate > HIGH_SUCCESS_RATE:
            logger.debug("High connection success for %s, keeping scores >= 70", user_id)
            optimized = [r for r in optimized if r.match_score >= HIGH_SUCCESS_MIN_SCORE]
        return optimized
