"""Explicit feedback submission and the learning trigger."""

import logging
from dataclasses import dataclass, field
from typing import Any

from event_matching.config import Settings
from event_matching.domain import AlgorithmInsight, FeedbackRecord, WeightVector, utcnow
from event_matching.errors import MatchingError
from event_matching.learning.behavior import BehaviorTracker
from event_matching.learning.insights import InsightGenerator
from event_matching.learning.patterns import compute_learning_stats
from event_matching.learning.weights import WeightAdapter
from event_matching.models.enums import BehaviorType
from event_matching.outcome import Outcome
from event_matching.schemas import (
    FeedbackContextPayload,
    SubmitFeedbackRequest,
    TrackBehaviorRequest,
    parse_request,
)
from event_matching.store.base import FeedbackQuery, MatchingStore

logger = logging.getLogger(__name__)

STATS_WINDOW = 1000


@dataclass(frozen=True)
class FeedbackSubmission:
    feedback: FeedbackRecord
    learning_updated: bool = False
    weights: WeightVector | None = None
    insights: list[AlgorithmInsight] = field(default_factory=list)


class FeedbackService:
    def __init__(
        self,
        store: MatchingStore,
        weights: WeightAdapter,
        insights: InsightGenerator,
        tracker: BehaviorTracker,
        settings: Settings | None = None,
    ):
        self.store = store
        self.weights = weights
        self.insights = insights
        self.tracker = tracker
        self.settings = settings or Settings()

    def submit(
        self, user_id: str, request: SubmitFeedbackRequest | dict[str, Any]
    ) -> FeedbackSubmission:
        """Store explicit feedback, refresh stats, and learn on every Nth submission.

        Raises:
            ValidationError: If the request is malformed (nothing is stored)
            MatchingError: If the feedback row itself cannot be stored
        """
        request = parse_request(SubmitFeedbackRequest, request)

        try:
            saved = self.store.append_feedback(
                FeedbackRecord(
                    user_id=user_id,
                    target_user_id=request.target_user_id,
                    feedback_type=request.feedback_type,
                    event_id=request.event_id,
                    match_id=request.match_id,
                    rating=request.rating,
                    dimensions=request.feedback_dimensions,
                    comments=request.comments,
                    context=request.feedback_context,
                    is_implicit=False,
                    confidence_score=1.0,
                )
            )
        except Exception as exc:
            logger.exception("Error submitting feedback for user %s", user_id)
            raise MatchingError("Failed to submit feedback") from exc

        self.refresh_learning_stats(user_id, request.event_id)
        submission = self._maybe_learn(user_id, saved)

        self.tracker.track(
            user_id,
            TrackBehaviorRequest(
                behavior_type=BehaviorType.VIEW_MATCH_DETAILS,
                target_user_id=request.target_user_id,
                event_id=request.event_id,
                behavior_data=FeedbackContextPayload(
                    feedback_type=request.feedback_type, rating=request.rating
                ),
            ),
        )
        return submission

    def refresh_learning_stats(self, user_id: str, event_id: str | None = None) -> Outcome[None]:
        """Recompute the all-events stats row, and the event's row when ``event_id`` is given."""
        try:
            scopes = [None] if event_id is None else [event_id, None]
            for scope in scopes:
                records = self.store.query_feedback(
                    user_id, FeedbackQuery(event_id=scope, limit=STATS_WINDOW)
                )
                previous = self.store.get_learning_stats(user_id, scope)
                self.store.upsert_learning_stats(
                    compute_learning_stats(user_id, scope, records, previous, now=utcnow())
                )
            return Outcome.succeeded()
        except Exception as exc:
            logger.warning("Error updating feedback learning stats for %s: %s", user_id, exc)
            return Outcome.degraded(exc)

    def _maybe_learn(self, user_id: str, saved: FeedbackRecord) -> FeedbackSubmission:
        interval = self.settings.learning_interval
        count = self.store.count_feedback(user_id, explicit_only=True)
        if count == 0 or count % interval != 0:
            return FeedbackSubmission(feedback=saved)

        logger.info("User %s reached %d explicit feedbacks, updating weights", user_id, count)
        try:
            weights = self.weights.update(user_id)
            insights = self.insights.generate(user_id)
        except Exception as exc:
            logger.warning("Learning update failed for user %s: %s", user_id, exc)
            return FeedbackSubmission(feedback=saved)
        return FeedbackSubmission(
            feedback=saved, learning_updated=True, weights=weights, insights=insights
        )
