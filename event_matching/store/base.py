"""Persistence port used by every matching and learning service.

Services only ever talk to a ``MatchingStore``. Two adapters ship with the
package: ``InMemoryStore`` for tests and local experiments, and ``SqlStore``
over the SQLAlchemy models.

Query results are newest first unless stated otherwise.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
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
)
from event_matching.models.enums import (
    BehaviorType,
    FeedbackType,
    InsightType,
    RecommendationStrength,
)


@dataclass(frozen=True)
class BehaviorQuery:
    types: tuple[BehaviorType, ...] = ()
    event_id: str | None = None
    limit: int = 50
    since: datetime | None = None


@dataclass(frozen=True)
class FeedbackQuery:
    types: tuple[FeedbackType, ...] = ()
    event_id: str | None = None
    explicit_only: bool = False
    min_rating: int | None = None
    limit: int = 50
    since: datetime | None = None


class MatchingStore(ABC):
    # ── profiles & events ────────────────────────────────────────────

    @abstractmethod
    def get_profile(self, user_id: str) -> Profile | None: ...

    @abstractmethod
    def event_exists(self, event_id: str) -> bool: ...

    @abstractmethod
    def list_event_participants(self, event_id: str) -> list[Profile]:
        """Active participants of the event, in join order (requester included)."""

    # ── preferences ──────────────────────────────────────────────────

    @abstractmethod
    def get_preferences(self, user_id: str) -> Preferences | None: ...

    @abstractmethod
    def upsert_preferences(self, preferences: Preferences) -> Preferences: ...

    @abstractmethod
    def delete_preferences(self, user_id: str) -> bool: ...

    # ── match history ────────────────────────────────────────────────

    @abstractmethod
    def get_match(self, event_id: str, user_id: str, target_user_id: str) -> MatchRecord | None: ...

    @abstractmethod
    def save_match(self, record: MatchRecord) -> MatchRecord: ...

    @abstractmethod
    def update_match_score(
        self, match_id: int, score: float, strength: RecommendationStrength
    ) -> None: ...

    @abstractmethod
    def list_matches(self, user_id: str, event_id: str | None = None) -> list[MatchRecord]:
        """Rows where user_id is the source, best score first."""

    @abstractmethod
    def event_match_stats(self, event_id: str) -> EventMatchStats: ...

    # ── behaviors ────────────────────────────────────────────────────

    @abstractmethod
    def append_behavior(self, event: BehaviorEvent) -> BehaviorEvent: ...

    @abstractmethod
    def query_behaviors(self, user_id: str, query: BehaviorQuery) -> list[BehaviorEvent]: ...

    @abstractmethod
    def behavior_stats(self, user_id: str, event_id: str | None = None) -> BehaviorStats: ...

    # ── feedback ─────────────────────────────────────────────────────

    @abstractmethod
    def append_feedback(self, record: FeedbackRecord) -> FeedbackRecord: ...

    @abstractmethod
    def query_feedback(self, user_id: str, query: FeedbackQuery) -> list[FeedbackRecord]: ...

    @abstractmethod
    def count_feedback(
        self, user_id: str, explicit_only: bool = False, event_id: str | None = None
    ) -> int: ...

    @abstractmethod
    def feedback_rating_distribution(
        self, user_id: str, event_id: str | None = None
    ) -> RatingDistribution: ...

    @abstractmethod
    def users_with_feedback_since(self, since: datetime) -> list[str]: ...

    # ── learning state ───────────────────────────────────────────────

    @abstractmethod
    def get_learning_stats(
        self, user_id: str, event_id: str | None = None
    ) -> FeedbackLearningStats | None: ...

    @abstractmethod
    def upsert_learning_stats(self, stats: FeedbackLearningStats) -> FeedbackLearningStats: ...

    @abstractmethod
    def get_weights(self, user_id: str) -> WeightVector | None: ...

    @abstractmethod
    def save_weights(self, weights: WeightVector) -> WeightVector: ...

    @abstractmethod
    def get_cold_start_profile(self, user_id: str) -> ColdStartProfile | None: ...

    @abstractmethod
    def save_cold_start_profile(self, profile: ColdStartProfile) -> ColdStartProfile: ...

    @abstractmethod
    def save_insight(self, insight: AlgorithmInsight) -> AlgorithmInsight: ...

    @abstractmethod
    def list_insights(
        self,
        user_id: str,
        types: tuple[InsightType, ...] = (),
        now: datetime | None = None,
    ) -> list[AlgorithmInsight]:
        """Unexpired insights, highest confidence then impact first."""
