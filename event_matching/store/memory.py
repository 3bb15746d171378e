"""Dict-backed MatchingStore for tests, scripts and local experiments."""

import itertools
from collections import Counter
from dataclasses import replace
from datetime import datetime

from event_matching.domain import (
    AlgorithmInsight,
    BehaviorEvent,
    BehaviorStats,
    ColdStartProfile,
    EventMatchStats,
    FeedbackLearningStats,
    FeedbackRecord,
    MatchRecord,
    Preferences,
    Profile,
    RatingDistribution,
    WeightVector,
    utcnow,
)
from event_matching.models.enums import InsightType, RecommendationStrength
from event_matching.store.base import BehaviorQuery, FeedbackQuery, MatchingStore

_RATING_BUCKETS = {5: "excellent", 4: "good", 3: "average", 2: "poor", 1: "terrible"}


def _newest_first(items):
    return sorted(items, key=lambda item: (item.created_at, item.id or 0), reverse=True)


class InMemoryStore(MatchingStore):
    def __init__(self) -> None:
        self.profiles: dict[str, Profile] = {}
        self.events: dict[str, list[str]] = {}
        self.preferences: dict[str, Preferences] = {}
        self.matches: dict[tuple[str, str, str], MatchRecord] = {}
        self.behaviors: list[BehaviorEvent] = []
        self.feedback: list[FeedbackRecord] = []
        self.learning_stats: dict[tuple[str, str | None], FeedbackLearningStats] = {}
        self.weights: dict[str, WeightVector] = {}
        self.cold_start: dict[str, ColdStartProfile] = {}
        self.insights: list[AlgorithmInsight] = []
        self._ids = itertools.count(1)

    # ── seeding helpers ──────────────────────────────────────────────

    def add_profile(self, profile: Profile) -> Profile:
        self.profiles[profile.id] = profile
        return profile

    def add_event(self, event_id: str, participant_ids: list[str] | None = None) -> None:
        self.events[event_id] = list(participant_ids or [])

    def join_event(self, event_id: str, user_id: str) -> None:
        members = self.events.setdefault(event_id, [])
        if user_id not in members:
            members.append(user_id)

    # ── profiles & events ────────────────────────────────────────────

    def get_profile(self, user_id: str) -> Profile | None:
        return self.profiles.get(user_id)

    def event_exists(self, event_id: str) -> bool:
        return event_id in self.events

    def list_event_participants(self, event_id: str) -> list[Profile]:
        return [self.profiles[uid] for uid in self.events.get(event_id, []) if uid in self.profiles]

    # ── preferences ──────────────────────────────────────────────────

    def get_preferences(self, user_id: str) -> Preferences | None:
        return self.preferences.get(user_id)

    def upsert_preferences(self, preferences: Preferences) -> Preferences:
        self.preferences[preferences.user_id] = preferences
        return preferences

    def delete_preferences(self, user_id: str) -> bool:
        return self.preferences.pop(user_id, None) is not None

    # ── match history ────────────────────────────────────────────────

    def get_match(self, event_id: str, user_id: str, target_user_id: str) -> MatchRecord | None:
        return self.matches.get((event_id, user_id, target_user_id))

    def save_match(self, record: MatchRecord) -> MatchRecord:
        key = (record.event_id, record.user_id, record.target_user_id)
        existing = self.matches.get(key)
        saved = replace(
            record,
            id=existing.id if existing else next(self._ids),
            created_at=existing.created_at if existing else utcnow(),
        )
        self.matches[key] = saved
        return saved

    def update_match_score(
        self, match_id: int, score: float, strength: RecommendationStrength
    ) -> None:
        for key, record in self.matches.items():
            if record.id == match_id:
                self.matches[key] = replace(
                    record, match_score=score, recommendation_strength=strength, updated_at=utcnow()
                )
                return

    def list_matches(self, user_id: str, event_id: str | None = None) -> list[MatchRecord]:
        rows = [
            r
            for r in self.matches.values()
            if r.user_id == user_id and (event_id is None or r.event_id == event_id)
        ]
        return sorted(rows, key=lambda r: (-r.match_score, r.id or 0))

    def event_match_stats(self, event_id: str) -> EventMatchStats:
        rows = [r for r in self.matches.values() if r.event_id == event_id]
        if not rows:
            return EventMatchStats()
        strengths = Counter(r.recommendation_strength for r in rows)
        return EventMatchStats(
            total_matches=len(rows),
            average_score=sum(r.match_score for r in rows) / len(rows),
            high_quality_matches=strengths[RecommendationStrength.HIGH],
            active_matchers=len({r.user_id for r in rows}),
            high=strengths[RecommendationStrength.HIGH],
            medium=strengths[RecommendationStrength.MEDIUM],
            low=strengths[RecommendationStrength.LOW],
        )

    # ── behaviors ────────────────────────────────────────────────────

    def append_behavior(self, event: BehaviorEvent) -> BehaviorEvent:
        saved = replace(event, id=next(self._ids))
        self.behaviors.append(saved)
        return saved

    def query_behaviors(self, user_id: str, query: BehaviorQuery) -> list[BehaviorEvent]:
        rows = [
            b
            for b in self.behaviors
            if b.user_id == user_id
            and (not query.types or b.behavior_type in query.types)
            and (query.event_id is None or b.event_id == query.event_id)
            and (query.since is None or b.created_at >= query.since)
        ]
        return _newest_first(rows)[: query.limit]

    def behavior_stats(self, user_id: str, event_id: str | None = None) -> BehaviorStats:
        rows = [
            b
            for b in self.behaviors
            if b.user_id == user_id and (event_id is None or b.event_id == event_id)
        ]
        return BehaviorStats(
            total_behaviors=len(rows),
            behavior_counts=dict(Counter(b.behavior_type for b in rows)),
            active_sessions=len({b.session_id for b in rows if b.session_id}),
        )

    # ── feedback ─────────────────────────────────────────────────────

    def append_feedback(self, record: FeedbackRecord) -> FeedbackRecord:
        saved = replace(record, id=next(self._ids))
        self.feedback.append(saved)
        return saved

    def _feedback_rows(self, user_id: str, event_id: str | None, explicit_only: bool):
        return [
            f
            for f in self.feedback
            if f.user_id == user_id
            and (event_id is None or f.event_id == event_id)
            and not (explicit_only and f.is_implicit)
        ]

    def query_feedback(self, user_id: str, query: FeedbackQuery) -> list[FeedbackRecord]:
        rows = [
            f
            for f in self._feedback_rows(user_id, query.event_id, query.explicit_only)
            if (not query.types or f.feedback_type in query.types)
            and (query.min_rating is None or (f.rating or 0) >= query.min_rating)
            and (query.since is None or f.created_at >= query.since)
        ]
        return _newest_first(rows)[: query.limit]

    def count_feedback(
        self, user_id: str, explicit_only: bool = False, event_id: str | None = None
    ) -> int:
        return len(self._feedback_rows(user_id, event_id, explicit_only))

    def feedback_rating_distribution(
        self, user_id: str, event_id: str | None = None
    ) -> RatingDistribution:
        counts = Counter(
            _RATING_BUCKETS[f.rating]
            for f in self._feedback_rows(user_id, event_id, explicit_only=False)
            if f.rating in _RATING_BUCKETS
        )
        return RatingDistribution(**counts)

    def users_with_feedback_since(self, since: datetime) -> list[str]:
        return sorted({f.user_id for f in self.feedback if f.created_at >= since})

    # ── learning state ───────────────────────────────────────────────

    def get_learning_stats(
        self, user_id: str, event_id: str | None = None
    ) -> FeedbackLearningStats | None:
        return self.learning_stats.get((user_id, event_id))

    def upsert_learning_stats(self, stats: FeedbackLearningStats) -> FeedbackLearningStats:
        self.learning_stats[(stats.user_id, stats.event_id)] = stats
        return stats

    def get_weights(self, user_id: str) -> WeightVector | None:
        return self.weights.get(user_id)

    def save_weights(self, weights: WeightVector) -> WeightVector:
        saved = replace(weights, updated_at=utcnow())
        self.weights[weights.user_id] = saved
        return saved

    def get_cold_start_profile(self, user_id: str) -> ColdStartProfile | None:
        return self.cold_start.get(user_id)

    def save_cold_start_profile(self, profile: ColdStartProfile) -> ColdStartProfile:
        existing = self.cold_start.get(profile.user_id)
        now = utcnow()
        saved = replace(
            profile,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self.cold_start[profile.user_id] = saved
        return saved

    def save_insight(self, insight: AlgorithmInsight) -> AlgorithmInsight:
        saved = replace(insight, id=next(self._ids))
        self.insights.append(saved)
        return saved

    def list_insights(
        self,
        user_id: str,
        types: tuple[InsightType, ...] = (),
        now: datetime | None = None,
    ) -> list[AlgorithmInsight]:
        now = now or utcnow()
        rows = [
            i
            for i in self.insights
            if i.user_id == user_id
            and (not types or i.insight_type in types)
            and not i.is_expired(now)
        ]
        return sorted(rows, key=lambda i: (i.confidence_level, i.impact_score), reverse=True)
