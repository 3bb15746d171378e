"""Tests for filtering, sort strategies, diversity enforcement and personalization passes."""

from itertools import combinations

import pytest
from conftest import make_result

from event_matching.domain import (
    ColdStartProfile,
    FeedbackLearningStats,
    FeedbackRecord,
    MatchResult,
    PartialMatch,
)
from event_matching.models.enums import (
    ColdStartPhase,
    FeedbackType,
    RecommendationStrength,
    SortStrategy,
)
from event_matching.schemas import (
    ConnectionSuccessPayload,
    DimensionPreferencePayload,
    RejectionPatternPayload,
)
from event_matching.scoring.ranking import (
    FilterOptions,
    apply_filters,
    balanced_key,
    diversity_score,
    ensure_diversity,
    similarity_ratio,
    sort_results,
)
from event_matching.services.personalization import (
    Personalizer,
    boost_by_dimension_preference,
    boost_by_success_pattern,
    filter_by_rejection_pattern,
    optimize_for_cold_start,
)
from event_matching.store.memory import InMemoryStore


def _with_preference(result, percentage):
    return MatchResult(
        target_user=result.target_user,
        match_score=result.match_score,
        recommendation_strength=result.recommendation_strength,
        partial_match=PartialMatch([], [], percentage, ""),
    )


def _collision_rate(results) -> float:
    pairs = list(combinations([r.target_user for r in results], 2))
    same = sum(
        (a.industry == b.industry) + (a.position == b.position) + (a.company == b.company)
        for a, b in pairs
    )
    return same / (len(pairs) * 3)


@pytest.fixture
def clustered():
    """Three near-identical top results followed by two distinct ones."""
    return [
        make_result("a", 90, "Tech", "CEO", "X"),
        make_result("b", 89, "Tech", "CEO", "X"),
        make_result("c", 88, "Tech", "CEO", "X"),
        make_result("d", 70, "Finance", "CFO", "Y"),
        make_result("e", 69, "Health", "CTO", "Z"),
    ]


class TestFilters:
    """Tests for apply_filters."""

    def test_min_score(self, clustered):
        kept = apply_filters(clustered, FilterOptions(min_score=80), has_preferences=False)
        assert [r.target_user.id for r in kept] == ["a", "b", "c"]

    def test_excluded_users(self, clustered):
        kept = apply_filters(
            clustered, FilterOptions(exclude_user_ids=frozenset({"a", "d"})), has_preferences=False
        )
        assert [r.target_user.id for r in kept] == ["b", "c", "e"]

    def test_preference_match_only(self):
        results = [
            _with_preference(make_result("a", 90), 0),
            _with_preference(make_result("b", 60), 50),
        ]
        kept = apply_filters(results, FilterOptions(preference_match_only=True), has_preferences=True)
        assert [r.target_user.id for r in kept] == ["b"]

    def test_preference_match_only_ignored_without_preferences(self, clustered):
        kept = apply_filters(clustered, FilterOptions(preference_match_only=True), has_preferences=False)
        assert len(kept) == len(clustered)

    def test_input_is_not_mutated(self, clustered):
        before = list(clustered)
        apply_filters(clustered, FilterOptions(min_score=100), has_preferences=False)
        assert clustered == before


class TestSortStrategies:
    """Tests for sort_results."""

    def test_score_desc_is_non_increasing(self, clustered):
        ordered = sort_results(list(reversed(clustered)), SortStrategy.SCORE_DESC)
        scores = [r.match_score for r in ordered]
        assert scores == sorted(scores, reverse=True)

    def test_preference_first(self):
        results = [
            _with_preference(make_result("a", 95), 0),
            _with_preference(make_result("b", 60), 100),
            _with_preference(make_result("c", 70), 100),
        ]
        ordered = sort_results(results, SortStrategy.PREFERENCE_FIRST)
        assert [r.target_user.id for r in ordered] == ["c", "b", "a"]

    def test_balanced_key(self):
        result = make_result("a", 80, strength=RecommendationStrength.LOW)
        # 80 * 0.6 + 50 (missing preference) * 0.3 + 30 * 0.1
        assert balanced_key(result) == pytest.approx(66.0)

    def test_balanced_prefers_strong_preference_match(self):
        low_pref = _with_preference(make_result("a", 80, strength=RecommendationStrength.HIGH), 10)
        high_pref = _with_preference(make_result("b", 75, strength=RecommendationStrength.MEDIUM), 100)
        ordered = sort_results([low_pref, high_pref], SortStrategy.BALANCED)
        assert ordered[0].target_user.id == "b"

    def test_balanced_zero_preference_is_not_missing(self):
        third = _with_preference(make_result("third", 70), 33)
        zero = _with_preference(make_result("zero", 70), 0)
        ordered = sort_results([zero, third], SortStrategy.BALANCED)
        assert [r.target_user.id for r in ordered] == ["third", "zero"]
        assert balanced_key(zero) == pytest.approx(70 * 0.6 + 30 * 0.1)

    def test_diversity_lowers_collisions_at_the_top(self, clustered):
        by_score = sort_results(clustered, SortStrategy.SCORE_DESC)
        by_diversity = sort_results(clustered, SortStrategy.DIVERSITY)
        assert _collision_rate(by_diversity[:3]) < _collision_rate(by_score[:3])

    def test_diversity_order(self, clustered):
        ordered = sort_results(clustered, SortStrategy.DIVERSITY)
        assert [r.target_user.id for r in ordered] == ["a", "d", "b", "e", "c"]

    def test_diversity_score_penalties(self, clustered):
        a, b, d = clustered[0].target_user, clustered[1].target_user, clustered[3].target_user
        assert diversity_score(b, [a]) == 55
        assert diversity_score(d, [a]) == 100
        assert diversity_score(b, [a, a, a]) == 0

    def test_empty_input(self):
        for strategy in SortStrategy:
            assert sort_results([], strategy) == []


class TestEnsureDiversity:
    """Tests for diversity enforcement."""

    def test_similarity_ratio(self, clustered):
        a, b, d = clustered[0].target_user, clustered[1].target_user, clustered[3].target_user
        assert similarity_ratio(b, []) == 0.0
        assert similarity_ratio(b, [a]) == 1.0
        assert similarity_ratio(b, [a, d]) == 0.5

    def test_defers_too_similar_candidates(self):
        results = [
            make_result("a", 90, "Tech", "CEO", "X"),
            make_result("b", 85, "Tech", "CEO", "X"),
            make_result("c", 80, "Finance", "CFO", "Y"),
        ]
        ordered = ensure_diversity(results, 0.5)
        assert [r.target_user.id for r in ordered] == ["a", "c", "b"]

    def test_zero_factor_keeps_order(self, clustered):
        assert ensure_diversity(clustered, 0.0) == clustered

    def test_identical_candidates_terminate_as_permutation(self):
        results = [make_result(uid, 80, "Tech", "CEO", "X") for uid in "abcdef"]
        ordered = ensure_diversity(results, 0.95)
        assert sorted(r.target_user.id for r in ordered) == list("abcdef")

    def test_empty_input(self):
        assert ensure_diversity([], 0.8) == []


class TestInsightTransforms:
    """Tests for the pure personalization transforms."""

    def test_cold_start_boost_is_capped(self):
        results = [make_result("a", 95, "Tech"), make_result("b", 50, "Finance")]
        boosted = optimize_for_cold_start(results, ColdStartProfile(user_id="u"))
        assert {r.target_user.id: r.match_score for r in boosted} == {"a": 100, "b": 55}

    def test_dimension_preference_bonus(self):
        payload = DimensionPreferencePayload(
            preferred_dimensions=["business_goal_alignment", "skills_match", "meeting_value"]
        )
        boosted = boost_by_dimension_preference([make_result("a", 60)], payload)
        assert boosted[0].match_score == 71

    def test_rejection_pattern_drops_weak_rejected_profiles(self):
        payload = RejectionPatternPayload(rejected_industries=["Retail"])
        results = [
            make_result("weak-retail", 50, "Retail"),
            make_result("weak-tech", 50, "Tech"),
            make_result("strong-retail", 70, "Retail"),
        ]
        kept = filter_by_rejection_pattern(results, payload)
        assert [r.target_user.id for r in kept] == ["weak-tech", "strong-retail"]

    def test_rejection_pattern_without_attributes_drops_all_weak(self):
        results = [make_result("a", 50, "Tech"), make_result("b", 65, "Tech")]
        kept = filter_by_rejection_pattern(results, RejectionPatternPayload())
        assert [r.target_user.id for r in kept] == ["b"]

    def test_success_pattern_bonus(self):
        payload = ConnectionSuccessPayload(
            success_factors={"industry_match": 0.9, "position_complementarity": 0.75, "skills_overlap": 0.2}
        )
        boosted = boost_by_success_pattern([make_result("a", 60)], payload)
        assert boosted[0].match_score == 76


class TestPersonalizer:
    """Tests for the phase dispatch."""

    def test_no_cold_start_profile_passes_through(self, clustered):
        assert Personalizer(InMemoryStore()).apply("u", clustered) == clustered

    def test_learning_phase_reranks_by_liked_profiles(self, banker):
        store = InMemoryStore()
        store.add_profile(banker)
        store.save_cold_start_profile(
            ColdStartProfile(user_id="u", cold_start_phase=ColdStartPhase.LEARNING)
        )
        store.append_feedback(
            FeedbackRecord(
                user_id="u",
                target_user_id=banker.id,
                feedback_type=FeedbackType.MATCH_QUALITY,
                rating=5,
            )
        )
        results = [
            make_result("tech", 80, "Tech", "CTO"),
            make_result("fin", 75, "Finance", "Analyst"),
        ]
        ordered = Personalizer(store).apply("u", results)
        assert [r.target_user.id for r in ordered] == ["fin", "tech"]
        assert [r.match_score for r in ordered] == [75, 80]

    def test_established_phase_keeps_strong_matches_for_successful_users(self):
        store = InMemoryStore()
        store.save_cold_start_profile(
            ColdStartProfile(user_id="u", cold_start_phase=ColdStartPhase.ESTABLISHED)
        )
        store.upsert_learning_stats(FeedbackLearningStats(user_id="u", connection_success_rate=0.8))
        results = [make_result("a", 85), make_result("b", 65)]
        assert [r.target_user.id for r in Personalizer(store).apply("u", results)] == ["a"]
