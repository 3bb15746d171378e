"""MatchingEngine: the public entry point wiring every service over one store.

    engine = MatchingEngine(SqlStore())
    matches = engine.generate_matches("u1", "event-42")

The engine holds no state of its own; everything it remembers lives in the
store, so one engine per request (or per process) is equally fine.
"""

from datetime import datetime
from typing import Any

from event_matching.config import Settings
from event_matching.domain import (
    AlgorithmInsight,
    BehaviorEvent,
    ColdStartProfile,
    MatchResult,
    Preferences,
    WeightVector,
)
from event_matching.learning.behavior import BehaviorTracker
from event_matching.learning.cold_start import ColdStartManager
from event_matching.learning.feedback import FeedbackService, FeedbackSubmission
from event_matching.learning.insights import InsightGenerator
from event_matching.learning.metrics import FeedbackAnalysis, LearningMetrics, LearningReporter
from event_matching.learning.weights import WeightAdapter
from event_matching.outcome import Outcome
from event_matching.schemas import PreferencesRequest, SubmitFeedbackRequest, TrackBehaviorRequest
from event_matching.scoring.tables import HeuristicTables, load_tables
from event_matching.services.matching import (
    EventMatchingStats,
    MatchHistory,
    MatchHistoryOptions,
    MatchingService,
    MatchOptions,
    MatchRun,
    PreferenceRecommendations,
)
from event_matching.services.preferences import PreferencesService
from event_matching.store.base import MatchingStore


class MatchingEngine:
    def __init__(
        self,
        store: MatchingStore,
        tables: HeuristicTables | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.tables = tables or load_tables(self.settings.tables_path)

        self.cold_start = ColdStartManager(store, self.tables)
        self.tracker = BehaviorTracker(store, self.cold_start)
        self.weights = WeightAdapter(store, self.settings)
        self.insights = InsightGenerator(store, self.tables)
        self.feedback = FeedbackService(
            store, self.weights, self.insights, self.tracker, self.settings
        )
        self.reporter = LearningReporter(store)
        self.matching = MatchingService(store, self.cold_start, self.tables, self.settings)
        self.preferences = PreferencesService(store)

    # ── matching ─────────────────────────────────────────────────────

    def generate_matches(
        self, user_id: str, event_id: str, options: MatchOptions | None = None
    ) -> list[MatchResult]:
        return self.generate_matches_detailed(user_id, event_id, options).results

    def generate_matches_detailed(
        self, user_id: str, event_id: str, options: MatchOptions | None = None
    ) -> MatchRun:
        options = options or MatchOptions(limit=self.settings.default_limit)
        return self.matching.generate_matches_detailed(user_id, event_id, options)

    def get_preference_based_recommendations(
        self, user_id: str, event_id: str, strict: bool = False
    ) -> PreferenceRecommendations:
        return self.matching.get_preference_based_recommendations(user_id, event_id, strict)

    def get_match_history(
        self,
        user_id: str,
        event_id: str | None = None,
        options: MatchHistoryOptions | None = None,
    ) -> MatchHistory:
        return self.matching.get_match_history(user_id, event_id, options)

    def get_event_matching_stats(self, event_id: str) -> EventMatchingStats:
        return self.matching.get_event_matching_stats(event_id)

    # ── feedback learning ────────────────────────────────────────────

    def submit_feedback(
        self, user_id: str, request: SubmitFeedbackRequest | dict[str, Any]
    ) -> FeedbackSubmission:
        return self.feedback.submit(user_id, request)

    def track_behavior(
        self, user_id: str, request: TrackBehaviorRequest | dict[str, Any]
    ) -> Outcome[BehaviorEvent]:
        return self.tracker.track(user_id, request)

    def update_user_weights(self, user_id: str) -> WeightVector:
        return self.weights.update(user_id)

    def generate_algorithm_insights(
        self, user_id: str, now: datetime | None = None
    ) -> list[AlgorithmInsight]:
        return self.insights.generate(user_id, now)

    def initialize_cold_start_profile(self, user_id: str) -> ColdStartProfile:
        return self.cold_start.initialize(user_id)

    def update_cold_start_progress(self, user_id: str) -> Outcome[ColdStartProfile]:
        return self.cold_start.update_progress(user_id)

    def analyze_feedback_patterns(self, user_id: str) -> FeedbackAnalysis:
        return self.reporter.analyze(user_id)

    def get_learning_metrics(self, user_id: str, event_id: str | None = None) -> LearningMetrics:
        return self.reporter.metrics(user_id, event_id)

    # ── preferences ──────────────────────────────────────────────────

    def get_preferences(self, user_id: str) -> Preferences | None:
        return self.preferences.get(user_id)

    def set_preferences(
        self, user_id: str, request: PreferencesRequest | dict[str, Any]
    ) -> Preferences:
        return self.preferences.set(user_id, request)

    def delete_preferences(self, user_id: str) -> bool:
        return self.preferences.delete(user_id)
