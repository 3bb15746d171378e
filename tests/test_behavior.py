"""Tests for behavior tracking and the implicit feedback it leaves behind."""

import re
from unittest.mock import patch

import pytest

from event_matching.errors import ValidationError
from event_matching.learning.behavior import generate_session_id, meeting_rating
from event_matching.models.enums import BehaviorType, FeedbackType
from event_matching.schemas import GenericContext, MeetingContext, SearchContext


def _track(engine, behavior_type, target="investor", **extra):
    return engine.track_behavior(
        "ceo", {"behavior_type": behavior_type, "target_user_id": target, **extra}
    )


class TestImplicitFeedback:
    """Connection and meeting behaviors produce implicit feedback."""

    @pytest.mark.parametrize(
        "behavior,feedback_type,rating,confidence",
        [
            ("SEND_CONNECTION", FeedbackType.MATCH_QUALITY, 4, 0.7),
            ("ACCEPT_CONNECTION", FeedbackType.CONNECTION_OUTCOME, 5, 0.9),
            ("REJECT_CONNECTION", FeedbackType.MATCH_QUALITY, 2, 0.6),
        ],
    )
    def test_connection_rules(self, engine, store, behavior, feedback_type, rating, confidence):
        _track(engine, behavior)

        assert len(store.feedback) == 1
        feedback = store.feedback[0]
        assert feedback.is_implicit
        assert feedback.feedback_type == feedback_type
        assert feedback.rating == rating
        assert feedback.confidence_score == pytest.approx(confidence)
        assert feedback.target_user_id == "investor"

    def test_plain_views_leave_no_feedback(self, engine, store):
        _track(engine, "VIEW_PROFILE")
        assert store.feedback == []
        assert len(store.behaviors) == 1

    def test_no_target_no_feedback(self, engine, store):
        _track(engine, "SEND_CONNECTION", target=None)
        assert store.feedback == []

    @pytest.mark.parametrize("duration,rating", [(45, 5), (30, 5), (20, 4), (15, 4), (10, 3), (0, 3)])
    def test_meeting_rating_by_duration(self, duration, rating):
        assert meeting_rating(duration) == rating

    def test_attended_meeting(self, engine, store):
        _track(engine, "ATTEND_MEETING", behavior_data={"duration_minutes": 20})

        feedback = store.feedback[0]
        assert feedback.feedback_type == FeedbackType.MEETING_OUTCOME
        assert feedback.rating == 4
        assert feedback.confidence_score == pytest.approx(0.8)
        assert feedback.context.meeting_duration == 20
        assert feedback.context.connection_method == "IN_PERSON"

    def test_meeting_without_duration_assumes_half_an_hour(self, engine, store):
        _track(engine, "ATTEND_MEETING")
        assert store.feedback[0].rating == 5
        assert store.feedback[0].context.meeting_duration == 30

    def test_zero_minute_meeting_is_not_defaulted(self, engine, store):
        _track(engine, "ATTEND_MEETING", behavior_data={"duration_minutes": 0})
        assert store.feedback[0].rating == 3


class TestBehaviorContext:
    """Untagged behavior payloads are typed by behavior."""

    def test_meeting_payload(self, engine, store):
        _track(engine, "SCHEDULE_MEETING", behavior_data={"duration_minutes": 15, "location": "Hall B"})
        context = store.behaviors[0].context
        assert isinstance(context, MeetingContext)
        assert context.location == "Hall B"

    def test_search_payload(self, engine, store):
        _track(engine, "SEARCH_USERS", target=None, behavior_data={"query": "fintech", "result_count": 3})
        assert isinstance(store.behaviors[0].context, SearchContext)

    def test_unknown_keys_fall_back_to_generic(self, engine, store):
        _track(engine, "VIEW_PROFILE", behavior_data={"source": "email", "position": 2})
        context = store.behaviors[0].context
        assert isinstance(context, GenericContext)
        assert context.data == {"source": "email", "position": 2}

    def test_meeting_with_extra_keys_is_generic(self, engine, store):
        _track(engine, "SCHEDULE_MEETING", behavior_data={"duration_minutes": 15, "agenda": "intro"})
        assert isinstance(store.behaviors[0].context, GenericContext)


class TestTrack:
    """Tests for the tracking entry point."""

    def test_session_id_is_generated(self, engine, store):
        _track(engine, "VIEW_PROFILE")
        assert re.fullmatch(r"ceo_\d{13}_[a-z0-9]{9}", store.behaviors[0].session_id)

    def test_given_session_id_is_kept(self, engine, store):
        _track(engine, "VIEW_PROFILE", session_id="booth-7")
        assert store.behaviors[0].session_id == "booth-7"

    def test_generated_ids_differ(self):
        assert generate_session_id("u") != generate_session_id("u")

    def test_unknown_behavior_type_is_rejected(self, engine, store):
        with pytest.raises(ValidationError):
            _track(engine, "WAVE_HELLO")
        assert store.behaviors == []

    def test_storage_failure_is_degraded(self, engine, store):
        with patch.object(store, "append_behavior", side_effect=RuntimeError("db down")):
            outcome = _track(engine, "SEND_CONNECTION")

        assert outcome.is_degraded
        assert "db down" in outcome.error
        assert store.feedback == []

    def test_implicit_feedback_failure_does_not_fail_tracking(self, engine, store):
        with patch.object(store, "append_feedback", side_effect=RuntimeError("db down")):
            outcome = _track(engine, "SEND_CONNECTION")

        assert outcome.ok
        assert outcome.value.behavior_type == BehaviorType.SEND_CONNECTION

    def test_tracking_updates_cold_start_activity(self, engine, store):
        engine.initialize_cold_start_profile("ceo")
        _track(engine, "VIEW_PROFILE")

        # one behavior (0.05) + no feedback + one session (0.2)
        assert store.get_cold_start_profile("ceo").behavior_activity_score == pytest.approx(0.25)

    def test_behavior_stats(self, engine, store):
        _track(engine, "VIEW_PROFILE", session_id="s1")
        _track(engine, "VIEW_PROFILE", session_id="s1")
        _track(engine, "SEND_CONNECTION", session_id="s2")

        stats = store.behavior_stats("ceo")
        assert stats.total_behaviors == 3
        assert stats.behavior_counts[BehaviorType.VIEW_PROFILE] == 2
        assert stats.active_sessions == 2
