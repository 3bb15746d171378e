"""SQLAlchemy-backed MatchingStore.

One session per call, closed in ``finally``. Rows are converted to the
domain dataclasses before they leave this module, and JSON payload columns
are validated through the pydantic schemas on the way out.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from sqlalchemy import delete, distinct, func, or_, select
from sqlalchemy.orm import Session

from event_matching.db import get_session
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
from event_matching.models import (
    AlgorithmInsightRow,
    ColdStartProfileRow,
    Event,
    EventParticipant,
    Feedback,
    FeedbackLearningStatsRow,
    Match,
    MatchingPreferences,
    Participant,
    UserBehavior,
    UserPreferenceWeights,
)
from event_matching.models.enums import (
    CompanySize,
    ExperienceLevel,
    InsightType,
    ParticipantStatus,
    RecommendationStrength,
)
from event_matching.schemas import (
    FeedbackContext,
    FeedbackDimensions,
    InitialPreferences,
    behavior_context_adapter,
    insight_payload_adapter,
)
from event_matching.store.base import BehaviorQuery, FeedbackQuery, MatchingStore

logger = logging.getLogger(__name__)

_RATING_BUCKETS = {5: "excellent", 4: "good", 3: "average", 2: "poor", 1: "terrible"}


def _aware(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; every timestamp this package writes is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ═══════════════════════════════════════════════════════════════════
# ROW <-> DOMAIN
# ═══════════════════════════════════════════════════════════════════


def _profile(row: Participant) -> Profile:
    return Profile(
        id=row.id,
        name=row.name,
        industry=row.industry,
        position=row.position,
        company=row.company,
        bio=row.bio,
        skills=list(row.skills or []),
        interests=list(row.interests or []),
        business_goals=list(row.business_goals or []),
    )


def _preferences(row: MatchingPreferences) -> Preferences:
    return Preferences(
        user_id=row.user_id,
        target_positions=list(row.target_positions or []),
        target_industries=list(row.target_industries or []),
        company_size_preference=[CompanySize(v) for v in row.company_size_preference or []],
        experience_level_preference=[
            ExperienceLevel(v) for v in row.experience_level_preference or []
        ],
        business_goal_alignment=list(row.business_goal_alignment or []),
        geographic_preference=list(row.geographic_preference or []),
    )


def _match(row: Match) -> MatchRecord:
    return MatchRecord(
        id=row.id,
        event_id=row.event_id,
        user_id=row.user_id,
        target_user_id=row.target_user_id,
        match_score=row.match_score,
        match_reasons=list(row.match_reasons or []),
        common_interests=list(row.common_interests or []),
        business_synergies=list(row.business_synergies or []),
        recommendation_strength=row.recommendation_strength,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _behavior(row: UserBehavior) -> BehaviorEvent:
    context = None
    if row.behavior_data is not None:
        context = behavior_context_adapter.validate_python(row.behavior_data)
    return BehaviorEvent(
        id=row.id,
        user_id=row.user_id,
        behavior_type=row.behavior_type,
        target_user_id=row.target_user_id,
        event_id=row.event_id,
        context=context,
        session_id=row.session_id,
        created_at=_aware(row.created_at),
    )


def _feedback(row: Feedback) -> FeedbackRecord:
    return FeedbackRecord(
        id=row.id,
        user_id=row.user_id,
        target_user_id=row.target_user_id,
        feedback_type=row.feedback_type,
        event_id=row.event_id,
        match_id=row.match_id,
        rating=row.rating,
        dimensions=(
            FeedbackDimensions.model_validate(row.feedback_dimensions)
            if row.feedback_dimensions
            else None
        ),
        comments=row.comments,
        context=(
            FeedbackContext.model_validate(row.feedback_context) if row.feedback_context else None
        ),
        is_implicit=row.is_implicit,
        confidence_score=row.confidence_score,
        created_at=_aware(row.created_at),
    )


def _learning_stats(row: FeedbackLearningStatsRow) -> FeedbackLearningStats:
    return FeedbackLearningStats(
        user_id=row.user_id,
        event_id=row.event_id,
        total_feedback_count=row.total_feedback_count,
        positive_feedback_count=row.positive_feedback_count,
        negative_feedback_count=row.negative_feedback_count,
        avg_match_quality_rating=row.avg_match_quality_rating,
        connection_success_rate=row.connection_success_rate,
        meeting_success_rate=row.meeting_success_rate,
        algorithm_accuracy_score=row.algorithm_accuracy_score,
        last_learning_update=_aware(row.last_learning_update),
    )


def _weights(row: UserPreferenceWeights) -> WeightVector:
    return WeightVector(
        industry=row.industry_weight,
        position=row.position_weight,
        business_goal=row.business_goal_weight,
        skills=row.skills_weight,
        experience=row.experience_weight,
        company_size=row.company_size_weight,
        user_preference=row.user_preference_weight,
        learning_count=row.learning_count,
        user_id=row.user_id,
        updated_at=_aware(row.last_updated),
    )


def _cold_start(row: ColdStartProfileRow) -> ColdStartProfile:
    return ColdStartProfile(
        user_id=row.user_id,
        initial_preferences=(
            InitialPreferences.model_validate(row.initial_preferences)
            if row.initial_preferences is not None
            else None
        ),
        industry_similarity_score=row.industry_similarity_score,
        position_similarity_score=row.position_similarity_score,
        profile_completeness=row.profile_completeness,
        behavior_activity_score=row.behavior_activity_score,
        recommendation_diversity_factor=row.recommendation_diversity_factor,
        cold_start_phase=row.cold_start_phase,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _insight(row: AlgorithmInsightRow) -> AlgorithmInsight:
    return AlgorithmInsight(
        id=row.id,
        user_id=row.user_id,
        insight_type=row.insight_type,
        payload=insight_payload_adapter.validate_python(row.insight_data),
        confidence_level=row.confidence_level,
        impact_score=row.impact_score,
        expires_at=_aware(row.expires_at),
        created_at=_aware(row.created_at),
    )


class SqlStore(MatchingStore):
    """MatchingStore over the event_matching SQLAlchemy models."""

    def __init__(self, session_factory: Callable[[], Session] | None = None):
        self._session_factory = session_factory or get_session

    def _session(self) -> Session:
        return self._session_factory()

    # ── profiles & events ────────────────────────────────────────────

    def get_profile(self, user_id: str) -> Profile | None:
        session = self._session()
        try:
            row = session.get(Participant, user_id)
            return _profile(row) if row is not None else None
        finally:
            session.close()

    def event_exists(self, event_id: str) -> bool:
        session = self._session()
        try:
            return session.get(Event, event_id) is not None
        finally:
            session.close()

    def list_event_participants(self, event_id: str) -> list[Profile]:
        session = self._session()
        try:
            rows = session.scalars(
                select(Participant)
                .join(EventParticipant, EventParticipant.user_id == Participant.id)
                .where(
                    EventParticipant.event_id == event_id,
                    EventParticipant.status == ParticipantStatus.ACTIVE,
                )
                .order_by(EventParticipant.joined_at, EventParticipant.id)
            ).all()
            return [_profile(row) for row in rows]
        finally:
            session.close()

    # ── preferences ──────────────────────────────────────────────────

    def get_preferences(self, user_id: str) -> Preferences | None:
        session = self._session()
        try:
            row = session.scalars(
                select(MatchingPreferences).where(MatchingPreferences.user_id == user_id)
            ).one_or_none()
            return _preferences(row) if row is not None else None
        finally:
            session.close()

    def upsert_preferences(self, preferences: Preferences) -> Preferences:
        session = self._session()
        try:
            row = session.scalars(
                select(MatchingPreferences).where(MatchingPreferences.user_id == preferences.user_id)
            ).one_or_none()
            if row is None:
                row = MatchingPreferences(user_id=preferences.user_id)
                session.add(row)
            row.target_positions = list(preferences.target_positions)
            row.target_industries = list(preferences.target_industries)
            row.company_size_preference = [v.value for v in preferences.company_size_preference]
            row.experience_level_preference = [
                v.value for v in preferences.experience_level_preference
            ]
            row.business_goal_alignment = list(preferences.business_goal_alignment)
            row.geographic_preference = list(preferences.geographic_preference)
            session.commit()
            return _preferences(row)
        finally:
            session.close()

    def delete_preferences(self, user_id: str) -> bool:
        session = self._session()
        try:
            result = session.execute(
                delete(MatchingPreferences).where(MatchingPreferences.user_id == user_id)
            )
            session.commit()
            return result.rowcount > 0
        finally:
            session.close()

    # ── match history ────────────────────────────────────────────────

    def get_match(self, event_id: str, user_id: str, target_user_id: str) -> MatchRecord | None:
        session = self._session()
        try:
            row = session.scalars(
                select(Match).where(
                    Match.event_id == event_id,
                    Match.user_id == user_id,
                    Match.target_user_id == target_user_id,
                )
            ).one_or_none()
            return _match(row) if row is not None else None
        finally:
            session.close()

    def save_match(self, record: MatchRecord) -> MatchRecord:
        session = self._session()
        try:
            row = session.scalars(
                select(Match).where(
                    Match.event_id == record.event_id,
                    Match.user_id == record.user_id,
                    Match.target_user_id == record.target_user_id,
                )
            ).one_or_none()
            if row is None:
                row = Match(
                    event_id=record.event_id,
                    user_id=record.user_id,
                    target_user_id=record.target_user_id,
                    created_at=record.created_at or utcnow(),
                )
                session.add(row)
            else:
                row.updated_at = utcnow()
            row.match_score = record.match_score
            row.recommendation_strength = record.recommendation_strength
            row.match_reasons = list(record.match_reasons)
            row.common_interests = list(record.common_interests)
            row.business_synergies = list(record.business_synergies)
            session.commit()
            return _match(row)
        finally:
            session.close()

    def update_match_score(
        self, match_id: int, score: float, strength: RecommendationStrength
    ) -> None:
        session = self._session()
        try:
            row = session.get(Match, match_id)
            if row is None:
                logger.warning("Match %s vanished before its score could be updated", match_id)
                return
            row.match_score = score
            row.recommendation_strength = strength
            row.updated_at = utcnow()
            session.commit()
        finally:
            session.close()

    def list_matches(self, user_id: str, event_id: str | None = None) -> list[MatchRecord]:
        session = self._session()
        try:
            stmt = select(Match).where(Match.user_id == user_id)
            if event_id is not None:
                stmt = stmt.where(Match.event_id == event_id)
            rows = session.scalars(stmt.order_by(Match.match_score.desc(), Match.id)).all()
            return [_match(row) for row in rows]
        finally:
            session.close()

    def event_match_stats(self, event_id: str) -> EventMatchStats:
        session = self._session()
        try:
            total, average, matchers = session.execute(
                select(
                    func.count(Match.id),
                    func.avg(Match.match_score),
                    func.count(distinct(Match.user_id)),
                ).where(Match.event_id == event_id)
            ).one()
            by_strength = dict(
                session.execute(
                    select(Match.recommendation_strength, func.count(Match.id))
                    .where(Match.event_id == event_id)
                    .group_by(Match.recommendation_strength)
                ).all()
            )
            high = by_strength.get(RecommendationStrength.HIGH, 0)
            return EventMatchStats(
                total_matches=total or 0,
                average_score=float(average or 0.0),
                high_quality_matches=high,
                active_matchers=matchers or 0,
                high=high,
                medium=by_strength.get(RecommendationStrength.MEDIUM, 0),
                low=by_strength.get(RecommendationStrength.LOW, 0),
            )
        finally:
            session.close()

    # ── behaviors ────────────────────────────────────────────────────

    def append_behavior(self, event: BehaviorEvent) -> BehaviorEvent:
        session = self._session()
        try:
            row = UserBehavior(
                user_id=event.user_id,
                event_id=event.event_id,
                target_user_id=event.target_user_id,
                behavior_type=event.behavior_type,
                behavior_data=(
                    event.context.model_dump(mode="json") if event.context is not None else None
                ),
                session_id=event.session_id,
                created_at=event.created_at,
            )
            session.add(row)
            session.commit()
            return _behavior(row)
        finally:
            session.close()

    def query_behaviors(self, user_id: str, query: BehaviorQuery) -> list[BehaviorEvent]:
        session = self._session()
        try:
            stmt = select(UserBehavior).where(UserBehavior.user_id == user_id)
            if query.types:
                stmt = stmt.where(UserBehavior.behavior_type.in_(query.types))
            if query.event_id is not None:
                stmt = stmt.where(UserBehavior.event_id == query.event_id)
            if query.since is not None:
                stmt = stmt.where(UserBehavior.created_at >= query.since)
            stmt = stmt.order_by(UserBehavior.created_at.desc(), UserBehavior.id.desc())
            rows = session.scalars(stmt.limit(query.limit)).all()
            return [_behavior(row) for row in rows]
        finally:
            session.close()

    def behavior_stats(self, user_id: str, event_id: str | None = None) -> BehaviorStats:
        session = self._session()
        try:
            scope = [UserBehavior.user_id == user_id]
            if event_id is not None:
                scope.append(UserBehavior.event_id == event_id)
            counts = dict(
                session.execute(
                    select(UserBehavior.behavior_type, func.count(UserBehavior.id))
                    .where(*scope)
                    .group_by(UserBehavior.behavior_type)
                ).all()
            )
            sessions = session.scalar(
                select(func.count(distinct(UserBehavior.session_id))).where(*scope)
            )
            return BehaviorStats(
                total_behaviors=sum(counts.values()),
                behavior_counts=counts,
                active_sessions=sessions or 0,
            )
        finally:
            session.close()

    # ── feedback ─────────────────────────────────────────────────────

    def append_feedback(self, record: FeedbackRecord) -> FeedbackRecord:
        session = self._session()
        try:
            row = Feedback(
                user_id=record.user_id,
                target_user_id=record.target_user_id,
                event_id=record.event_id,
                match_id=record.match_id,
                feedback_type=record.feedback_type,
                rating=record.rating,
                feedback_dimensions=(
                    record.dimensions.model_dump(mode="json", exclude_none=True)
                    if record.dimensions is not None
                    else None
                ),
                comments=record.comments,
                feedback_context=(
                    record.context.model_dump(mode="json", exclude_none=True)
                    if record.context is not None
                    else None
                ),
                is_implicit=record.is_implicit,
                confidence_score=record.confidence_score,
                created_at=record.created_at,
            )
            session.add(row)
            session.commit()
            return _feedback(row)
        finally:
            session.close()

    @staticmethod
    def _feedback_scope(user_id: str, event_id: str | None, explicit_only: bool) -> list:
        scope = [Feedback.user_id == user_id]
        if event_id is not None:
            scope.append(Feedback.event_id == event_id)
        if explicit_only:
            scope.append(Feedback.is_implicit.is_(False))
        return scope

    def query_feedback(self, user_id: str, query: FeedbackQuery) -> list[FeedbackRecord]:
        session = self._session()
        try:
            stmt = select(Feedback).where(
                *self._feedback_scope(user_id, query.event_id, query.explicit_only)
            )
            if query.types:
                stmt = stmt.where(Feedback.feedback_type.in_(query.types))
            if query.min_rating is not None:
                stmt = stmt.where(Feedback.rating >= query.min_rating)
            if query.since is not None:
                stmt = stmt.where(Feedback.created_at >= query.since)
            stmt = stmt.order_by(Feedback.created_at.desc(), Feedback.id.desc())
            rows = session.scalars(stmt.limit(query.limit)).all()
            return [_feedback(row) for row in rows]
        finally:
            session.close()

    def count_feedback(
        self, user_id: str, explicit_only: bool = False, event_id: str | None = None
    ) -> int:
        session = self._session()
        try:
            return session.scalar(
                select(func.count(Feedback.id)).where(
                    *self._feedback_scope(user_id, event_id, explicit_only)
                )
            ) or 0
        finally:
            session.close()

    def feedback_rating_distribution(
        self, user_id: str, event_id: str | None = None
    ) -> RatingDistribution:
        session = self._session()
        try:
            rows = session.execute(
                select(Feedback.rating, func.count(Feedback.id))
                .where(*self._feedback_scope(user_id, event_id, False), Feedback.rating.is_not(None))
                .group_by(Feedback.rating)
            ).all()
            counts = {_RATING_BUCKETS[rating]: n for rating, n in rows if rating in _RATING_BUCKETS}
            return RatingDistribution(**counts)
        finally:
            session.close()

    def users_with_feedback_since(self, since: datetime) -> list[str]:
        session = self._session()
        try:
            return list(
                session.scalars(
                    select(distinct(Feedback.user_id))
                    .where(Feedback.created_at >= since)
                    .order_by(Feedback.user_id)
                ).all()
            )
        finally:
            session.close()

    # ── learning state ───────────────────────────────────────────────

    @staticmethod
    def _stats_row(session: Session, user_id: str, event_id: str | None):
        stmt = select(FeedbackLearningStatsRow).where(FeedbackLearningStatsRow.user_id == user_id)
        if event_id is None:
            stmt = stmt.where(FeedbackLearningStatsRow.event_id.is_(None))
        else:
            stmt = stmt.where(FeedbackLearningStatsRow.event_id == event_id)
        return session.scalars(stmt).one_or_none()

    def get_learning_stats(
        self, user_id: str, event_id: str | None = None
    ) -> FeedbackLearningStats | None:
        session = self._session()
        try:
            row = self._stats_row(session, user_id, event_id)
            return _learning_stats(row) if row is not None else None
        finally:
            session.close()

    def upsert_learning_stats(self, stats: FeedbackLearningStats) -> FeedbackLearningStats:
        session = self._session()
        try:
            row = self._stats_row(session, stats.user_id, stats.event_id)
            if row is None:
                row = FeedbackLearningStatsRow(user_id=stats.user_id, event_id=stats.event_id)
                session.add(row)
            row.total_feedback_count = stats.total_feedback_count
            row.positive_feedback_count = stats.positive_feedback_count
            row.negative_feedback_count = stats.negative_feedback_count
            row.avg_match_quality_rating = stats.avg_match_quality_rating
            row.connection_success_rate = stats.connection_success_rate
            row.meeting_success_rate = stats.meeting_success_rate
            row.algorithm_accuracy_score = stats.algorithm_accuracy_score
            row.last_learning_update = stats.last_learning_update or utcnow()
            session.commit()
            return _learning_stats(row)
        finally:
            session.close()

    def get_weights(self, user_id: str) -> WeightVector | None:
        session = self._session()
        try:
            row = session.scalars(
                select(UserPreferenceWeights).where(UserPreferenceWeights.user_id == user_id)
            ).one_or_none()
            return _weights(row) if row is not None else None
        finally:
            session.close()

    def save_weights(self, weights: WeightVector) -> WeightVector:
        session = self._session()
        try:
            row = session.scalars(
                select(UserPreferenceWeights).where(UserPreferenceWeights.user_id == weights.user_id)
            ).one_or_none()
            if row is None:
                row = UserPreferenceWeights(user_id=weights.user_id)
                session.add(row)
            row.industry_weight = weights.industry
            row.position_weight = weights.position
            row.business_goal_weight = weights.business_goal
            row.skills_weight = weights.skills
            row.experience_weight = weights.experience
            row.company_size_weight = weights.company_size
            row.user_preference_weight = weights.user_preference
            row.learning_count = weights.learning_count
            row.last_updated = utcnow()
            session.commit()
            return _weights(row)
        finally:
            session.close()

    def get_cold_start_profile(self, user_id: str) -> ColdStartProfile | None:
        session = self._session()
        try:
            row = session.scalars(
                select(ColdStartProfileRow).where(ColdStartProfileRow.user_id == user_id)
            ).one_or_none()
            return _cold_start(row) if row is not None else None
        finally:
            session.close()

    def save_cold_start_profile(self, profile: ColdStartProfile) -> ColdStartProfile:
        session = self._session()
        try:
            row = session.scalars(
                select(ColdStartProfileRow).where(ColdStartProfileRow.user_id == profile.user_id)
            ).one_or_none()
            now = utcnow()
            if row is None:
                row = ColdStartProfileRow(user_id=profile.user_id, created_at=now)
                session.add(row)
            row.initial_preferences = (
                profile.initial_preferences.model_dump(mode="json")
                if profile.initial_preferences is not None
                else None
            )
            row.industry_similarity_score = profile.industry_similarity_score
            row.position_similarity_score = profile.position_similarity_score
            row.profile_completeness = profile.profile_completeness
            row.behavior_activity_score = profile.behavior_activity_score
            row.recommendation_diversity_factor = profile.recommendation_diversity_factor
            row.cold_start_phase = profile.cold_start_phase
            row.updated_at = now
            session.commit()
            return _cold_start(row)
        finally:
            session.close()

    def save_insight(self, insight: AlgorithmInsight) -> AlgorithmInsight:
        session = self._session()
        try:
            row = AlgorithmInsightRow(
                user_id=insight.user_id,
                insight_type=insight.insight_type,
                insight_data=insight.payload.model_dump(mode="json"),
                confidence_level=insight.confidence_level,
                impact_score=insight.impact_score,
                expires_at=insight.expires_at,
                created_at=insight.created_at,
            )
            session.add(row)
            session.commit()
            return _insight(row)
        finally:
            session.close()

    def list_insights(
        self,
        user_id: str,
        types: tuple[InsightType, ...] = (),
        now: datetime | None = None,
    ) -> list[AlgorithmInsight]:
        now = now or utcnow()
        session = self._session()
        try:
            stmt = select(AlgorithmInsightRow).where(
                AlgorithmInsightRow.user_id == user_id,
                or_(AlgorithmInsightRow.expires_at.is_(None), AlgorithmInsightRow.expires_at > now),
            )
            if types:
                stmt = stmt.where(AlgorithmInsightRow.insight_type.in_(types))
            stmt = stmt.order_by(
                AlgorithmInsightRow.confidence_level.desc(), AlgorithmInsightRow.impact_score.desc()
            )
            return [_insight(row) for row in session.scalars(stmt).all()]
        finally:
            session.close()
