"""Tests for the SQLAlchemy-backed store, run against in-memory SQLite."""

from datetime import timedelta

import pytest
from conftest import EVENT_ID

from event_matching.domain import (
    AlgorithmInsight,
    BehaviorEvent,
    ColdStartProfile,
    FeedbackLearningStats,
    FeedbackRecord,
    MatchRecord,
    Preferences,
    WeightVector,
    utcnow,
)
from event_matching.engine import MatchingEngine
from event_matching.models import Event, EventParticipant, Participant
from event_matching.models.enums import (
    BehaviorType,
    ColdStartPhase,
    CompanySize,
    FeedbackType,
    InsightType,
    ParticipantStatus,
    RecommendationStrength,
)
from event_matching.schemas import (
    DimensionPreferencePayload,
    FeedbackDimensions,
    InitialPreferences,
    MeetingContext,
    RejectionPatternPayload,
)
from event_matching.store.base import BehaviorQuery, FeedbackQuery


@pytest.fixture
def seeded(session_factory, participants):
    """Every sample profile joined to the event; an extra member who left."""
    session = session_factory()
    try:
        session.add(Event(id=EVENT_ID, name="Founders Summit"))
        for profile in participants:
            session.add(
                Participant(
                    id=profile.id,
                    name=profile.name,
                    company=profile.company,
                    position=profile.position,
                    industry=profile.industry,
                    bio=profile.bio,
                    skills=profile.skills,
                    interests=profile.interests,
                    business_goals=profile.business_goals,
                )
            )
        session.add(Participant(id="gone", name="Gone", industry="Tech", position="CTO"))
        session.flush()
        for profile in participants:
            session.add(EventParticipant(event_id=EVENT_ID, user_id=profile.id))
        session.add(EventParticipant(event_id=EVENT_ID, user_id="gone", status=ParticipantStatus.LEFT))
        session.commit()
    finally:
        session.close()
    return participants


def _feedback(rating=5, is_implicit=False, event_id=EVENT_ID, **fields):
    return FeedbackRecord(
        user_id="ceo",
        target_user_id="investor",
        feedback_type=fields.pop("feedback_type", FeedbackType.MATCH_QUALITY),
        event_id=event_id,
        rating=rating,
        is_implicit=is_implicit,
        confidence_score=0.7 if is_implicit else 1.0,
        **fields,
    )


class TestProfilesAndEvents:
    """Tests for profile and participant reads."""

    def test_get_profile(self, sql_store, seeded, ceo):
        assert sql_store.get_profile("ceo") == ceo
        assert sql_store.get_profile("nobody") is None

    def test_event_exists(self, sql_store, seeded):
        assert sql_store.event_exists(EVENT_ID)
        assert not sql_store.event_exists("other")

    def test_only_active_participants_in_join_order(self, sql_store, seeded):
        ids = [p.id for p in sql_store.list_event_participants(EVENT_ID)]
        assert ids == [p.id for p in seeded]


class TestPreferences:
    """Tests for preference rows."""

    def test_round_trip(self, sql_store, seeded):
        prefs = Preferences(
            user_id="ceo",
            target_positions=["Investor"],
            company_size_preference=[CompanySize.STARTUP, CompanySize.SME],
        )
        sql_store.upsert_preferences(prefs)
        assert sql_store.get_preferences("ceo") == prefs

    def test_upsert_replaces(self, sql_store, seeded):
        sql_store.upsert_preferences(Preferences(user_id="ceo", target_positions=["Investor"]))
        sql_store.upsert_preferences(Preferences(user_id="ceo", target_industries=["Finance"]))

        prefs = sql_store.get_preferences("ceo")
        assert prefs.target_positions == []
        assert prefs.target_industries == ["Finance"]

    def test_delete(self, sql_store, seeded):
        sql_store.upsert_preferences(Preferences(user_id="ceo"))
        assert sql_store.delete_preferences("ceo")
        assert not sql_store.delete_preferences("ceo")
        assert sql_store.get_preferences("ceo") is None


class TestMatches:
    """Tests for match history rows."""

    def test_save_and_get(self, sql_store, seeded):
        saved = sql_store.save_match(
            MatchRecord(
                event_id=EVENT_ID,
                user_id="ceo",
                target_user_id="investor",
                match_score=0.87,
                match_reasons=["Both work in Tech"],
                recommendation_strength=RecommendationStrength.HIGH,
            )
        )
        fetched = sql_store.get_match(EVENT_ID, "ceo", "investor")

        assert fetched.id == saved.id
        assert fetched.match_score == pytest.approx(0.87)
        assert fetched.match_reasons == ["Both work in Tech"]
        assert fetched.created_at.tzinfo is not None

    def test_save_is_keyed_by_event_user_target(self, sql_store, seeded):
        first = sql_store.save_match(MatchRecord(EVENT_ID, "ceo", "investor", 0.5))
        second = sql_store.save_match(MatchRecord(EVENT_ID, "ceo", "investor", 0.7))

        assert first.id == second.id
        assert len(sql_store.list_matches("ceo")) == 1

    def test_update_score(self, sql_store, seeded):
        saved = sql_store.save_match(MatchRecord(EVENT_ID, "ceo", "investor", 0.5))
        sql_store.update_match_score(saved.id, 0.9, RecommendationStrength.HIGH)

        updated = sql_store.get_match(EVENT_ID, "ceo", "investor")
        assert updated.match_score == pytest.approx(0.9)
        assert updated.recommendation_strength == RecommendationStrength.HIGH
        assert updated.updated_at is not None

    def test_update_missing_row_is_ignored(self, sql_store, seeded):
        sql_store.update_match_score(999, 0.9, RecommendationStrength.HIGH)

    def test_list_is_best_first(self, sql_store, seeded):
        sql_store.save_match(MatchRecord(EVENT_ID, "ceo", "banker", 0.4))
        sql_store.save_match(MatchRecord(EVENT_ID, "ceo", "investor", 0.9))

        assert [m.target_user_id for m in sql_store.list_matches("ceo", EVENT_ID)] == [
            "investor",
            "banker",
        ]

    def test_event_stats(self, sql_store, seeded):
        sql_store.save_match(
            MatchRecord(EVENT_ID, "ceo", "investor", 0.9, recommendation_strength=RecommendationStrength.HIGH)
        )
        sql_store.save_match(MatchRecord(EVENT_ID, "ceo", "banker", 0.4))
        sql_store.save_match(
            MatchRecord(EVENT_ID, "banker", "ceo", 0.65, recommendation_strength=RecommendationStrength.MEDIUM)
        )

        stats = sql_store.event_match_stats(EVENT_ID)
        assert stats.total_matches == 3
        assert stats.average_score == pytest.approx(0.65)
        assert stats.active_matchers == 2
        assert (stats.high, stats.medium, stats.low) == (1, 1, 1)
        assert stats.high_quality_matches == 1

    def test_event_stats_without_matches(self, sql_store, seeded):
        stats = sql_store.event_match_stats(EVENT_ID)
        assert stats.total_matches == 0
        assert stats.average_score == 0.0


class TestBehaviorsAndFeedback:
    """Tests for behavior and feedback logs."""

    def test_behavior_context_is_typed_on_read(self, sql_store, seeded):
        sql_store.append_behavior(
            BehaviorEvent(
                user_id="ceo",
                behavior_type=BehaviorType.ATTEND_MEETING,
                target_user_id="investor",
                context=MeetingContext(duration_minutes=25),
                session_id="s1",
            )
        )
        [behavior] = sql_store.query_behaviors("ceo", BehaviorQuery())
        assert isinstance(behavior.context, MeetingContext)
        assert behavior.context.duration_minutes == 25

    def test_behavior_query_and_stats(self, sql_store, seeded):
        for behavior_type, session_id in [
            (BehaviorType.VIEW_PROFILE, "s1"),
            (BehaviorType.VIEW_PROFILE, "s1"),
            (BehaviorType.REJECT_CONNECTION, "s2"),
        ]:
            sql_store.append_behavior(
                BehaviorEvent(user_id="ceo", behavior_type=behavior_type, session_id=session_id)
            )

        rejected = sql_store.query_behaviors(
            "ceo", BehaviorQuery(types=(BehaviorType.REJECT_CONNECTION,))
        )
        stats = sql_store.behavior_stats("ceo")

        assert len(rejected) == 1
        assert stats.total_behaviors == 3
        assert stats.behavior_counts[BehaviorType.VIEW_PROFILE] == 2
        assert stats.active_sessions == 2

    def test_feedback_round_trip(self, sql_store, seeded):
        sql_store.append_feedback(
            _feedback(dimensions=FeedbackDimensions(skills_match=4), comments="Great chat")
        )
        [record] = sql_store.query_feedback("ceo", FeedbackQuery())

        assert record.dimensions.skills_match == 4
        assert record.dimensions.industry_relevance is None
        assert record.comments == "Great chat"
        assert record.created_at.tzinfo is not None

    def test_explicit_only_counts(self, sql_store, seeded):
        sql_store.append_feedback(_feedback())
        sql_store.append_feedback(_feedback(rating=4, is_implicit=True))
        sql_store.append_feedback(_feedback(rating=2, event_id=None))

        assert sql_store.count_feedback("ceo") == 3
        assert sql_store.count_feedback("ceo", explicit_only=True) == 2
        assert sql_store.count_feedback("ceo", explicit_only=True, event_id=EVENT_ID) == 1

    def test_feedback_filters(self, sql_store, seeded):
        sql_store.append_feedback(_feedback(rating=5))
        sql_store.append_feedback(_feedback(rating=2))
        sql_store.append_feedback(_feedback(rating=4, feedback_type=FeedbackType.MEETING_OUTCOME))

        high = sql_store.query_feedback("ceo", FeedbackQuery(min_rating=4))
        meetings = sql_store.query_feedback(
            "ceo", FeedbackQuery(types=(FeedbackType.MEETING_OUTCOME,))
        )
        assert sorted(r.rating for r in high) == [4, 5]
        assert [r.rating for r in meetings] == [4]

    def test_rating_distribution(self, sql_store, seeded):
        for rating in (5, 5, 2, None):
            sql_store.append_feedback(_feedback(rating=rating))

        distribution = sql_store.feedback_rating_distribution("ceo")
        assert distribution.excellent == 2
        assert distribution.poor == 1
        assert distribution.total() == 3

    def test_users_with_recent_feedback(self, sql_store, seeded):
        sql_store.append_feedback(_feedback())
        sql_store.append_feedback(
            FeedbackRecord(
                user_id="banker",
                target_user_id="ceo",
                feedback_type=FeedbackType.MATCH_QUALITY,
                created_at=utcnow() - timedelta(days=3),
            )
        )
        assert sql_store.users_with_feedback_since(utcnow() - timedelta(days=1)) == ["ceo"]


class TestLearningState:
    """Tests for stats, weights, cold-start profiles and insights."""

    def test_stats_rows_are_scoped(self, sql_store, seeded):
        sql_store.upsert_learning_stats(
            FeedbackLearningStats(user_id="ceo", event_id=EVENT_ID, total_feedback_count=1)
        )
        sql_store.upsert_learning_stats(FeedbackLearningStats(user_id="ceo", total_feedback_count=4))
        sql_store.upsert_learning_stats(FeedbackLearningStats(user_id="ceo", total_feedback_count=5))

        assert sql_store.get_learning_stats("ceo", EVENT_ID).total_feedback_count == 1
        assert sql_store.get_learning_stats("ceo").total_feedback_count == 5
        assert sql_store.get_learning_stats("banker") is None

    def test_weights_round_trip(self, sql_store, seeded):
        weights = WeightVector(user_id="ceo", industry=0.3, position=0.15, learning_count=2)
        saved = sql_store.save_weights(weights)

        assert saved.updated_at is not None
        assert sql_store.get_weights("ceo").as_dict() == weights.as_dict()
        assert sql_store.get_weights("ceo").learning_count == 2

    def test_cold_start_round_trip(self, sql_store, seeded):
        profile = ColdStartProfile(
            user_id="ceo",
            initial_preferences=InitialPreferences(inferred_target_positions=["Investor"]),
            profile_completeness=0.75,
            cold_start_phase=ColdStartPhase.LEARNING,
        )
        first = sql_store.save_cold_start_profile(profile)
        second = sql_store.save_cold_start_profile(profile)

        fetched = sql_store.get_cold_start_profile("ceo")
        assert fetched.cold_start_phase == ColdStartPhase.LEARNING
        assert fetched.initial_preferences.inferred_target_positions == ["Investor"]
        assert second.created_at == first.created_at

    def test_insights(self, sql_store, seeded):
        now = utcnow()
        sql_store.save_insight(
            AlgorithmInsight(
                user_id="ceo",
                insight_type=InsightType.DIMENSION_PREFERENCE,
                payload=DimensionPreferencePayload(preferred_dimensions=["skills_match"]),
                confidence_level=0.5,
                impact_score=0.1,
                expires_at=now + timedelta(days=30),
            )
        )
        sql_store.save_insight(
            AlgorithmInsight(
                user_id="ceo",
                insight_type=InsightType.REJECTION_PATTERN,
                payload=RejectionPatternPayload(rejected_industries=["Retail"]),
                confidence_level=0.8,
                impact_score=0.15,
                expires_at=now + timedelta(days=20),
            )
        )
        sql_store.save_insight(
            AlgorithmInsight(
                user_id="ceo",
                insight_type=InsightType.REJECTION_PATTERN,
                payload=RejectionPatternPayload(),
                confidence_level=0.9,
                impact_score=0.15,
                expires_at=now - timedelta(days=1),
            )
        )

        insights = sql_store.list_insights("ceo")
        assert [i.confidence_level for i in insights] == [0.8, 0.5]
        assert isinstance(insights[0].payload, RejectionPatternPayload)

        only_dimensions = sql_store.list_insights("ceo", types=(InsightType.DIMENSION_PREFERENCE,))
        assert [i.payload.preferred_dimensions for i in only_dimensions] == [["skills_match"]]


class TestEngineOverSql:
    """End-to-end runs through the SQL store."""

    def test_generate_matches_writes_history(self, sql_store, seeded):
        engine = MatchingEngine(sql_store)
        results = engine.generate_matches("ceo", EVENT_ID)

        assert "gone" not in [r.target_user.id for r in results]
        assert len(sql_store.list_matches("ceo", EVENT_ID)) == 4
        assert sql_store.get_cold_start_profile("ceo").cold_start_phase == ColdStartPhase.INITIAL

    def test_feedback_learning_cycle(self, sql_store, seeded):
        engine = MatchingEngine(sql_store)
        for _ in range(5):
            submission = engine.submit_feedback(
                "ceo",
                {
                    "target_user_id": "investor",
                    "feedback_type": "MATCH_QUALITY",
                    "event_id": EVENT_ID,
                    "rating": 5,
                    "feedback_dimensions": {"business_goal_alignment": 5},
                },
            )

        assert submission.learning_updated
        assert sql_store.get_weights("ceo").learning_count == 1
        assert sql_store.get_learning_stats("ceo", EVENT_ID).total_feedback_count == 5
        assert len(sql_store.list_insights("ceo")) == 1
