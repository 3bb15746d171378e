"""Tests for weight adaptation, cold-start phases, insight mining and learning reports."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from event_matching.domain import (
    DEFAULT_WEIGHTS,
    WEIGHT_KEYS,
    BehaviorEvent,
    ColdStartProfile,
    FeedbackLearningStats,
    FeedbackRecord,
    RatingDistribution,
    WeightVector,
    utcnow,
)
from event_matching.errors import NotFoundError
from event_matching.learning.cold_start import (
    activity_score,
    advance_phase,
    determine_phase,
    diversity_factor,
    infer_initial_preferences,
    profile_completeness,
)
from event_matching.learning.metrics import (
    OPPORTUNITY_MORE_FEEDBACK,
    learning_velocity,
    overall_satisfaction,
    personalization_effectiveness,
)
from event_matching.learning.patterns import analyze_patterns, feedback_consistency
from event_matching.learning.weights import MAX_WEIGHT, MIN_WEIGHT, adjust_weights, bounded_normalize
from event_matching.models.enums import BehaviorType, ColdStartPhase, FeedbackType, InsightType
from event_matching.schemas import FeedbackDimensions


def _rated(user_id="ceo", target="investor", rating=5, feedback_type=FeedbackType.MATCH_QUALITY, **dims):
    return FeedbackRecord(
        user_id=user_id,
        target_user_id=target,
        feedback_type=feedback_type,
        rating=rating,
        dimensions=FeedbackDimensions(**dims) if dims else None,
    )


def _behavior(behavior_type, target, user_id="ceo"):
    return BehaviorEvent(user_id=user_id, behavior_type=behavior_type, target_user_id=target)


class TestWeightAdaptation:
    """Weights stay bounded and normalized however often they are updated."""

    def test_bounded_normalize_pins_outliers(self):
        weights = bounded_normalize({"a": 10.0, "b": 0.1, "c": 0.1})
        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights["a"] == MAX_WEIGHT
        assert weights["b"] == pytest.approx(0.25)

    def test_single_step(self):
        updated = adjust_weights(DEFAULT_WEIGHTS, {"business_goal_alignment": 5.0})

        assert updated.learning_count == 1
        assert updated.total() == pytest.approx(1.0)
        assert updated.business_goal == pytest.approx(0.24 / 1.04)
        assert updated.industry == pytest.approx(0.25 / 1.04)

    def test_unmapped_dimensions_are_ignored(self):
        updated = adjust_weights(DEFAULT_WEIGHTS, {"meeting_value": 5.0})
        assert updated.as_dict() == pytest.approx(DEFAULT_WEIGHTS.as_dict())

    def test_repeated_updates_stay_in_bounds(self):
        weights = WeightVector(user_id="u")
        for _ in range(200):
            weights = adjust_weights(
                weights,
                {"industry_relevance": 5.0, "position_compatibility": 1.0, "skills_match": 1.0},
            )
            assert weights.total() == pytest.approx(1.0)
            for key in WEIGHT_KEYS:
                assert MIN_WEIGHT - 1e-9 <= getattr(weights, key) <= MAX_WEIGHT + 1e-9
        assert weights.learning_count == 200

    def test_update_persists_and_increments(self, engine, store):
        for _ in range(3):
            store.append_feedback(_rated(industry_relevance=5))

        first = engine.update_user_weights("ceo")
        second = engine.update_user_weights("ceo")

        assert first.learning_count == 1
        assert second.learning_count == 2
        assert store.get_weights("ceo") == second
        assert second.industry > DEFAULT_WEIGHTS.industry

    def test_update_without_feedback_renormalizes_defaults(self, engine):
        weights = engine.update_user_weights("engineer")
        assert weights.as_dict() == pytest.approx(DEFAULT_WEIGHTS.as_dict())
        assert weights.learning_count == 1


class TestFeedbackPatterns:
    """Tests for feedback aggregation."""

    def test_empty_window(self):
        patterns = analyze_patterns([])
        assert patterns.positive_feedback_ratio == 0.5
        assert patterns.feedback_consistency == 1.0
        assert patterns.records_analyzed == 0

    def test_dimension_preferences_divide_by_all_records(self):
        records = [_rated(skills_match=4), _rated(), _rated(rating=1)]
        patterns = analyze_patterns(records)

        assert patterns.dimension_preferences == {"skills_match": pytest.approx(4 / 3)}
        assert patterns.positive_feedback_ratio == pytest.approx(2 / 3)

    def test_consistency(self):
        assert feedback_consistency([_rated(rating=5), _rated(rating=5)]) == 1.0
        assert feedback_consistency([_rated(rating=5), _rated(rating=1)]) == 0.0
        assert feedback_consistency([_rated(rating=3)]) == 1.0

    def test_correlations_need_three_samples(self):
        records = [_rated(skills_match=5), _rated(skills_match=4), _rated(skills_match=3, meeting_value=5)]
        correlations = analyze_patterns(records).dimension_correlations
        assert correlations == {"skills_match": pytest.approx(0.8)}


class TestColdStart:
    """Tests for phases, activity and initial preferences."""

    def test_initialize(self, engine):
        profile = engine.initialize_cold_start_profile("ceo")

        assert profile.cold_start_phase == ColdStartPhase.INITIAL
        assert profile.recommendation_diversity_factor >= 0.7
        assert profile.profile_completeness == 1.0
        assert profile.initial_preferences.inferred_target_industries[0] == "Tech"
        assert profile.initial_preferences.profile_based_interests == ["golf", "AI"]

    def test_initialize_unknown_user(self, engine):
        with pytest.raises(NotFoundError):
            engine.initialize_cold_start_profile("nobody")

    def test_completeness(self, designer):
        # name, company, position, industry, skills, goals; no bio or interests
        assert profile_completeness(designer) == pytest.approx(6 / 8)

    def test_infer_initial_preferences_for_founder(self, ceo):
        inferred = infer_initial_preferences(ceo)
        assert inferred.inferred_target_positions
        assert inferred.similarity_based_weights == {
            "industry_weight": 0.3,
            "position_weight": 0.25,
            "skills_weight": 0.2,
        }

    @pytest.mark.parametrize(
        "feedback,behaviors,phase",
        [
            (0, 0, ColdStartPhase.INITIAL),
            (3, 9, ColdStartPhase.INITIAL),
            (3, 10, ColdStartPhase.LEARNING),
            (8, 25, ColdStartPhase.ADAPTING),
            (15, 50, ColdStartPhase.ESTABLISHED),
            (100, 24, ColdStartPhase.LEARNING),
        ],
    )
    def test_determine_phase(self, feedback, behaviors, phase):
        assert determine_phase(feedback, behaviors) == phase

    def test_phase_never_regresses(self):
        assert advance_phase(ColdStartPhase.ADAPTING, ColdStartPhase.INITIAL) == ColdStartPhase.ADAPTING
        assert advance_phase(ColdStartPhase.LEARNING, ColdStartPhase.ADAPTING) == ColdStartPhase.ADAPTING

    def test_activity_score_is_capped(self):
        assert activity_score(0, 0, 0) == 0.0
        assert activity_score(100, 100, 100) == pytest.approx(1.0)

    def test_diversity_factor_bounds(self):
        assert diversity_factor(ColdStartPhase.INITIAL, 0.0) == 0.95
        assert diversity_factor(ColdStartPhase.ESTABLISHED, 1.0) == pytest.approx(0.4)
        assert diversity_factor(ColdStartPhase.LEARNING, 0.5) == pytest.approx(0.9)

    def test_progress_reaches_learning(self, engine, store):
        """Ten connection requests leave ten behaviors and ten implicit feedbacks."""
        engine.initialize_cold_start_profile("ceo")
        for _ in range(10):
            engine.track_behavior("ceo", {"behavior_type": "SEND_CONNECTION", "target_user_id": "investor"})

        profile = store.get_cold_start_profile("ceo")
        assert profile.cold_start_phase == ColdStartPhase.LEARNING

    def test_stored_phase_is_kept_when_counts_are_lower(self, engine, store):
        store.save_cold_start_profile(
            ColdStartProfile(user_id="ceo", cold_start_phase=ColdStartPhase.ADAPTING)
        )
        outcome = engine.update_cold_start_progress("ceo")

        assert outcome.ok
        assert outcome.value.cold_start_phase == ColdStartPhase.ADAPTING

    def test_progress_without_profile_is_skipped(self, engine):
        outcome = engine.update_cold_start_progress("ceo")
        assert outcome.skipped

    def test_progress_failure_is_degraded(self, engine, store):
        engine.initialize_cold_start_profile("ceo")
        with patch.object(store, "behavior_stats", side_effect=RuntimeError("timeout")):
            outcome = engine.update_cold_start_progress("ceo")
        assert outcome.is_degraded


class TestInsights:
    """Tests for the three insight passes."""

    def test_dimension_preference(self, engine, store):
        for _ in range(5):
            store.append_feedback(_rated(business_goal_alignment=5, skills_match=2))
        now = utcnow()

        insights = engine.generate_algorithm_insights("ceo", now)

        assert len(insights) == 1
        insight = insights[0]
        assert insight.insight_type == InsightType.DIMENSION_PREFERENCE
        assert insight.payload.preferred_dimensions == ["business_goal_alignment"]
        assert insight.payload.weight_adjustments == {"business_goal_alignment": pytest.approx(0.2)}
        assert insight.confidence_level == pytest.approx(0.25)
        assert insight.impact_score == pytest.approx(0.1)
        assert insight.expires_at == now + timedelta(days=30)

    def test_dimension_preference_needs_five_records(self, engine, store):
        for _ in range(4):
            store.append_feedback(_rated(business_goal_alignment=5))
        assert engine.generate_algorithm_insights("ceo") == []

    def test_rejection_pattern(self, engine, store):
        for target in ("designer", "designer", "banker"):
            store.append_behavior(_behavior(BehaviorType.REJECT_CONNECTION, target))

        insights = engine.generate_algorithm_insights("ceo")

        assert [i.insight_type for i in insights] == [InsightType.REJECTION_PATTERN]
        payload = insights[0].payload
        assert payload.rejected_industries == ["Retail"]
        assert payload.rejected_positions == ["Designer"]
        assert len(payload.rejected_profiles) == 3
        assert insights[0].confidence_level == pytest.approx(0.3)

    def test_connection_success(self, engine, store):
        store.append_behavior(_behavior(BehaviorType.ACCEPT_CONNECTION, "investor"))
        store.append_behavior(_behavior(BehaviorType.ATTEND_MEETING, "investor"))

        insights = engine.generate_algorithm_insights("ceo")

        assert [i.insight_type for i in insights] == [InsightType.CONNECTION_SUCCESS_PATTERN]
        payload = insights[0].payload
        assert payload.successful_profile_types == ["Investor in Tech"]
        assert payload.success_factors == {
            "industry_match": 1.0,
            "position_complementarity": 1.0,
            "skills_overlap": 1.0,
        }

    def test_failing_pass_does_not_stop_the_others(self, engine, store):
        store.append_behavior(_behavior(BehaviorType.ACCEPT_CONNECTION, "investor"))
        store.append_behavior(_behavior(BehaviorType.ACCEPT_CONNECTION, "banker"))

        with patch.object(engine.insights, "dimension_preference", side_effect=RuntimeError("bad row")):
            insights = engine.generate_algorithm_insights("ceo")

        assert [i.insight_type for i in insights] == [InsightType.CONNECTION_SUCCESS_PATTERN]
        assert store.list_insights("ceo") == insights

    def test_expired_insights_are_not_listed(self, engine, store):
        for _ in range(5):
            store.append_feedback(_rated(industry_relevance=5))
        engine.generate_algorithm_insights("ceo", utcnow() - timedelta(days=31))
        assert store.list_insights("ceo") == []


class TestLearningReports:
    """Tests for metrics and feedback analysis."""

    def test_satisfaction(self):
        assert overall_satisfaction(RatingDistribution()) == 0.5
        assert overall_satisfaction(RatingDistribution(excellent=1, poor=1)) == pytest.approx(0.7)

    @pytest.mark.parametrize(
        "phase,progress",
        [
            (ColdStartPhase.INITIAL, 0.2),
            (ColdStartPhase.LEARNING, 0.5),
            (ColdStartPhase.ADAPTING, 0.8),
            (ColdStartPhase.ESTABLISHED, 1.0),
        ],
    )
    def test_phase_progress_drives_velocity_and_effectiveness(self, phase, progress):
        stats = FeedbackLearningStats(
            user_id="ceo", total_feedback_count=20, avg_match_quality_rating=3.0
        )
        profile = ColdStartProfile(user_id="ceo", cold_start_phase=phase)

        assert learning_velocity(stats, profile) == pytest.approx(progress)
        assert personalization_effectiveness(stats, profile) == pytest.approx(progress * 0.3)

    def test_metrics_without_history(self, engine):
        metrics = engine.get_learning_metrics("ceo")

        assert metrics.overall_satisfaction == 0.5
        assert metrics.recommendation_accuracy == 0.5
        assert metrics.connection_success_rate == 0.0
        assert metrics.learning_velocity == 0.0
        assert metrics.personalization_effectiveness == 0.0

    def test_metrics_after_feedback(self, engine, store):
        engine.initialize_cold_start_profile("ceo")
        for rating in (5, 5, 4, 2):
            engine.submit_feedback(
                "ceo", {"target_user_id": "investor", "feedback_type": "MATCH_QUALITY", "rating": rating}
            )

        metrics = engine.get_learning_metrics("ceo")
        assert metrics.connection_success_rate == pytest.approx(0.75)
        assert metrics.overall_satisfaction == pytest.approx((1 + 1 + 0.8 + 0.4) / 4)
        assert metrics.learning_velocity == pytest.approx(0.2 * 4 / 20)

    def test_analysis_for_new_user(self, engine):
        analysis = engine.analyze_feedback_patterns("designer")

        progress = analysis.user_learning_progress
        assert progress.learning_phase == ColdStartPhase.INITIAL
        assert progress.feedback_count == 0
        assert analysis.recommendation_improvements.confidence_level == pytest.approx(0.3)
        assert analysis.recommendation_improvements.weight_adjustments.as_dict() == DEFAULT_WEIGHTS.as_dict()
        assert OPPORTUNITY_MORE_FEEDBACK in analysis.next_learning_opportunities

    def test_analysis_reports_insights(self, engine, store):
        store.upsert_learning_stats(FeedbackLearningStats(user_id="ceo", total_feedback_count=15))
        for _ in range(5):
            store.append_feedback(_rated(industry_relevance=5))
        engine.generate_algorithm_insights("ceo")

        analysis = engine.analyze_feedback_patterns("ceo")

        assert len(analysis.algorithm_insights) == 1
        assert OPPORTUNITY_MORE_FEEDBACK not in analysis.next_learning_opportunities
