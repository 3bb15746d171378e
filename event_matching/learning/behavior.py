"""Behavior tracking and implicit feedback.

Tracking is best effort: once a request has validated, nothing here raises.
Connection and meeting behaviors toward another user also leave an implicit
feedback record with a fixed confidence below 1.0.
"""

import logging
import random
import string
import time
from typing import Any

from event_matching.domain import BehaviorEvent, FeedbackRecord
from event_matching.learning.cold_start import ColdStartManager
from event_matching.models.enums import BehaviorType, FeedbackType
from event_matching.outcome import Outcome
from event_matching.schemas import (
    FeedbackContext,
    MeetingContext,
    TrackBehaviorRequest,
    parse_request,
)
from event_matching.store.base import MatchingStore

logger = logging.getLogger(__name__)

DEFAULT_MEETING_MINUTES = 30

# behavior → (feedback type, rating, confidence); meetings are rated by duration
IMPLICIT_FEEDBACK_RULES = {
    BehaviorType.SEND_CONNECTION: (FeedbackType.MATCH_QUALITY, 4, 0.7),
    BehaviorType.ACCEPT_CONNECTION: (FeedbackType.CONNECTION_OUTCOME, 5, 0.9),
    BehaviorType.REJECT_CONNECTION: (FeedbackType.MATCH_QUALITY, 2, 0.6),
}
MEETING_CONFIDENCE = 0.8

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


def generate_session_id(user_id: str) -> str:
    """``{user}_{epoch_ms}_{9 random base-36 chars}``."""
    suffix = "".join(random.choices(_SESSION_ALPHABET, k=9))
    return f"{user_id}_{int(time.time() * 1000)}_{suffix}"


def meeting_rating(duration_minutes: int) -> int:
    if duration_minutes >= 30:
        return 5
    if duration_minutes >= 15:
        return 4
    return 3


def implicit_feedback(user_id: str, request: TrackBehaviorRequest) -> FeedbackRecord | None:
    """The implicit feedback a behavior implies, if any. Needs a target user."""
    if not request.target_user_id:
        return None

    if request.behavior_type == BehaviorType.ATTEND_MEETING:
        duration = None
        if isinstance(request.behavior_data, MeetingContext):
            duration = request.behavior_data.duration_minutes
        if duration is None:
            duration = DEFAULT_MEETING_MINUTES
        return FeedbackRecord(
            user_id=user_id,
            target_user_id=request.target_user_id,
            event_id=request.event_id,
            feedback_type=FeedbackType.MEETING_OUTCOME,
            rating=meeting_rating(duration),
            context=FeedbackContext(meeting_duration=duration, connection_method="IN_PERSON"),
            is_implicit=True,
            confidence_score=MEETING_CONFIDENCE,
        )

    rule = IMPLICIT_FEEDBACK_RULES.get(request.behavior_type)
    if rule is None:
        return None
    feedback_type, rating, confidence = rule
    return FeedbackRecord(
        user_id=user_id,
        target_user_id=request.target_user_id,
        event_id=request.event_id,
        feedback_type=feedback_type,
        rating=rating,
        is_implicit=True,
        confidence_score=confidence,
    )


class BehaviorTracker:
    def __init__(self, store: MatchingStore, cold_start: ColdStartManager):
        self.store = store
        self.cold_start = cold_start

    def track(
        self, user_id: str, request: TrackBehaviorRequest | dict[str, Any]
    ) -> Outcome[BehaviorEvent]:
        """Record a behavior, its implicit feedback, and the cold-start side effects.

        Raises:
            ValidationError: If the request is malformed (nothing is recorded)
        """
        request = parse_request(TrackBehaviorRequest, request)

        try:
            event = self.store.append_behavior(
                BehaviorEvent(
                    user_id=user_id,
                    behavior_type=request.behavior_type,
                    target_user_id=request.target_user_id,
                    event_id=request.event_id,
                    context=request.behavior_data,
                    session_id=request.session_id or generate_session_id(user_id),
                )
            )
        except Exception as exc:
            logger.warning(
                "Failed to track %s for user %s: %s", request.behavior_type.value, user_id, exc
            )
            return Outcome.degraded(exc)

        feedback = implicit_feedback(user_id, request)
        if feedback is not None:
            try:
                self.store.append_feedback(feedback)
            except Exception as exc:
                logger.warning("Failed to record implicit feedback for %s: %s", user_id, exc)

        self.cold_start.nudge_activity(user_id)
        self.cold_start.update_progress(user_id)
        return Outcome.succeeded(event)
