"""Match history rows."""

from datetime import datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from event_matching.models.base import Base
from event_matching.models.enums import RecommendationStrength


class Match(Base):
    """Persisted recommendation of target_user_id to user_id within an event."""

    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", "target_user_id", name="uq_event_user_target"),
        CheckConstraint("match_score >= 0 AND match_score <= 1", name="ck_match_score_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    target_user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )

    # ═══════════════════════════════════════════════════════════════════
    # SCORING (0-1; the API exposes 0-100)
    # ═══════════════════════════════════════════════════════════════════
    match_score: Mapped[float] = mapped_column(Float, nullable=False)
    recommendation_strength: Mapped[RecommendationStrength] = mapped_column(
        Enum(RecommendationStrength, name="recommendation_strength_enum"),
        default=RecommendationStrength.LOW,
    )

    # ═══════════════════════════════════════════════════════════════════
    # EXPLANATION (snapshot at write time; reads regenerate reasons)
    # ═══════════════════════════════════════════════════════════════════
    match_reasons: Mapped[list[str]] = mapped_column(JSON, default=list)
    common_interests: Mapped[list[str]] = mapped_column(JSON, default=list)
    business_synergies: Mapped[list[str]] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
