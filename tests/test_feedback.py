"""Tests for explicit feedback submission and the learning trigger."""

from unittest.mock import patch

import pytest
from conftest import EVENT_ID

from event_matching.config import Settings
from event_matching.domain import DEFAULT_WEIGHTS
from event_matching.engine import MatchingEngine
from event_matching.errors import MatchingError, ValidationError
from event_matching.models.enums import BehaviorType, FeedbackType
from event_matching.schemas import FeedbackContextPayload, SubmitFeedbackRequest


def _feedback(target="investor", rating=5, **extra):
    return {
        "target_user_id": target,
        "feedback_type": "MATCH_QUALITY",
        "event_id": EVENT_ID,
        "rating": rating,
        "feedback_dimensions": {"business_goal_alignment": 5},
        **extra,
    }


class TestSubmitFeedback:
    """Tests for storing explicit feedback."""

    def test_feedback_is_stored_as_explicit(self, engine, store):
        submission = engine.submit_feedback("ceo", _feedback())

        assert submission.feedback.id is not None
        assert not submission.feedback.is_implicit
        assert submission.feedback.confidence_score == 1.0
        assert submission.feedback.dimensions.business_goal_alignment == 5
        assert [f.target_user_id for f in store.feedback] == ["investor"]

    def test_accepts_a_request_model(self, engine, store):
        request = SubmitFeedbackRequest(
            target_user_id="banker", feedback_type=FeedbackType.CONNECTION_OUTCOME, rating=3
        )
        engine.submit_feedback("ceo", request)
        assert store.feedback[0].feedback_type == FeedbackType.CONNECTION_OUTCOME

    def test_rating_out_of_range_is_rejected(self, engine, store):
        with pytest.raises(ValidationError) as exc_info:
            engine.submit_feedback("ceo", _feedback(rating=6))

        assert any("rating" in problem for problem in exc_info.value.problems)
        assert store.feedback == []
        assert store.behaviors == []

    def test_missing_target_is_rejected(self, engine, store):
        with pytest.raises(ValidationError):
            engine.submit_feedback("ceo", {"feedback_type": "MATCH_QUALITY", "rating": 4})
        assert store.feedback == []

    def test_unknown_feedback_type_is_rejected(self, engine):
        with pytest.raises(ValidationError):
            engine.submit_feedback("ceo", _feedback(feedback_type="GREAT_VIBES"))

    def test_storage_failure_is_fatal(self, engine, store):
        with patch.object(store, "append_feedback", side_effect=RuntimeError("db down")):
            with pytest.raises(MatchingError) as exc_info:
                engine.submit_feedback("ceo", _feedback())

        assert not isinstance(exc_info.value, ValidationError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_view_match_details_is_tracked(self, engine, store):
        engine.submit_feedback("ceo", _feedback(rating=4))

        assert len(store.behaviors) == 1
        behavior = store.behaviors[0]
        assert behavior.behavior_type == BehaviorType.VIEW_MATCH_DETAILS
        assert behavior.target_user_id == "investor"
        assert isinstance(behavior.context, FeedbackContextPayload)
        assert behavior.context.rating == 4

    def test_stats_rows_for_event_and_all_events(self, engine, store):
        engine.submit_feedback("ceo", _feedback(rating=5))
        engine.submit_feedback("ceo", _feedback(target="banker", rating=2, event_id=None))

        event_stats = store.get_learning_stats("ceo", EVENT_ID)
        overall = store.get_learning_stats("ceo")

        assert event_stats.total_feedback_count == 1
        assert event_stats.positive_feedback_count == 1
        assert overall.total_feedback_count == 2
        assert overall.negative_feedback_count == 1
        assert overall.avg_match_quality_rating == pytest.approx(3.5)
        assert overall.connection_success_rate == pytest.approx(0.5)


class TestLearningTrigger:
    """Weights and insights refresh on every fifth explicit feedback."""

    def test_fifth_explicit_feedback_triggers_one_update(self, engine):
        with (
            patch.object(engine.weights, "update", wraps=engine.weights.update) as update,
            patch.object(engine.insights, "generate", wraps=engine.insights.generate) as generate,
        ):
            submissions = [engine.submit_feedback("ceo", _feedback()) for _ in range(4)]
            assert update.call_count == 0
            assert not any(s.learning_updated for s in submissions)

            fifth = engine.submit_feedback("ceo", _feedback())

        assert update.call_count == 1
        assert generate.call_count == 1
        assert fifth.learning_updated
        assert fifth.weights.learning_count == 1
        assert fifth.weights.business_goal > DEFAULT_WEIGHTS.business_goal
        assert fifth.weights.total() == pytest.approx(1.0)

    def test_fifth_update_emits_dimension_insight(self, engine):
        for _ in range(5):
            submission = engine.submit_feedback("ceo", _feedback())
        types = [i.insight_type.value for i in submission.insights]
        assert types == ["DIMENSION_PREFERENCE"]

    def test_implicit_feedback_does_not_count(self, engine, store):
        for _ in range(5):
            engine.track_behavior(
                "ceo", {"behavior_type": "SEND_CONNECTION", "target_user_id": "investor"}
            )
        assert len(store.feedback) == 5

        submission = engine.submit_feedback("ceo", _feedback())
        assert not submission.learning_updated

    def test_learning_failure_does_not_fail_submission(self, engine, store):
        with patch.object(engine.weights, "update", side_effect=RuntimeError("boom")):
            for _ in range(5):
                submission = engine.submit_feedback("ceo", _feedback())

        assert not submission.learning_updated
        assert len(store.feedback) == 5

    def test_interval_comes_from_settings(self, store):
        engine = MatchingEngine(store, settings=Settings(learning_interval=2))
        first = engine.submit_feedback("ceo", _feedback())
        second = engine.submit_feedback("ceo", _feedback())

        assert not first.learning_updated
        assert second.learning_updated
