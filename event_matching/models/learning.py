"""Feedback-learning tables: behaviors, feedback, weights, insights, cold start."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from event_matching.models.base import Base
from event_matching.models.enums import (
    BehaviorType,
    ColdStartPhase,
    FeedbackType,
    InsightType,
)


class UserBehavior(Base):
    """Append-only interaction log."""

    __tablename__ = "user_behaviors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("events.id", ondelete="SET NULL"), nullable=True, index=True
    )
    target_user_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="SET NULL"), nullable=True
    )
    behavior_type: Mapped[BehaviorType] = mapped_column(
        Enum(BehaviorType, name="behavior_type_enum"), nullable=False, index=True
    )
    behavior_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    session_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


class Feedback(Base):
    """Append-only explicit and implicit feedback."""

    __tablename__ = "feedback"
    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_feedback_rating"),
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1", name="ck_feedback_confidence"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target_user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("events.id", ondelete="SET NULL"), nullable=True
    )
    match_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("matches.id", ondelete="SET NULL"), nullable=True
    )
    feedback_type: Mapped[FeedbackType] = mapped_column(
        Enum(FeedbackType, name="feedback_type_enum"), nullable=False, index=True
    )
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_dimensions: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback_context: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_implicit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, default=1.0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )


class UserPreferenceWeights(Base):
    """Personalized dimension weights; one row per user."""

    __tablename__ = "user_preference_weights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("participants.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    industry_weight: Mapped[float] = mapped_column(Float, default=0.25)
    position_weight: Mapped[float] = mapped_column(Float, default=0.20)
    business_goal_weight: Mapped[float] = mapped_column(Float, default=0.20)
    skills_weight: Mapped[float] = mapped_column(Float, default=0.15)
    experience_weight: Mapped[float] = mapped_column(Float, default=0.10)
    company_size_weight: Mapped[float] = mapped_column(Float, default=0.05)
    user_preference_weight: Mapped[float] = mapped_column(Float, default=0.05)
    learning_count: Mapped[int] = mapped_column(Integer, default=0)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class AlgorithmInsightRow(Base):
    __tablename__ = "algorithm_insights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    insight_type: Mapped[InsightType] = mapped_column(
        Enum(InsightType, name="insight_type_enum"), nullable=False
    )
    insight_data: Mapped[dict] = mapped_column(JSON, nullable=False)
    confidence_level: Mapped[float] = mapped_column(Float, default=0.5)
    impact_score: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )


class ColdStartProfileRow(Base):
    __tablename__ = "user_cold_start_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("participants.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    initial_preferences: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    industry_similarity_score: Mapped[float] = mapped_column(Float, default=0.0)
    position_similarity_score: Mapped[float] = mapped_column(Float, default=0.0)
    profile_completeness: Mapped[float] = mapped_column(Float, default=0.0)
    behavior_activity_score: Mapped[float] = mapped_column(Float, default=0.0)
    recommendation_diversity_factor: Mapped[float] = mapped_column(Float, default=0.8)
    cold_start_phase: Mapped[ColdStartPhase] = mapped_column(
        Enum(ColdStartPhase, name="cold_start_phase_enum"), default=ColdStartPhase.INITIAL
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class FeedbackLearningStatsRow(Base):
    """Per (user, event) rollup of explicit feedback. event_id NULL means all events."""

    __tablename__ = "feedback_learning_stats"
    __table_args__ = (UniqueConstraint("user_id", "event_id", name="uq_learning_stats_user_event"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    event_id: Mapped[str | None] = mapped_column(
        String(64), ForeignKey("events.id", ondelete="SET NULL"), nullable=True
    )
    total_feedback_count: Mapped[int] = mapped_column(Integer, default=0)
    positive_feedback_count: Mapped[int] = mapped_column(Integer, default=0)
    negative_feedback_count: Mapped[int] = mapped_column(Integer, default=0)
    avg_match_quality_rating: Mapped[float] = mapped_column(Float, default=0.0)
    connection_success_rate: Mapped[float] = mapped_column(Float, default=0.0)
    meeting_success_rate: Mapped[float] = mapped_column(Float, default=0.0)
    algorithm_accuracy_score: Mapped[float] = mapped_column(Float, default=0.0)
    last_learning_update: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
