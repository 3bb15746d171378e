"""create_event_matching_tables

Revision ID: a1c4e7d2b9f0
Revises:
Create Date: 2026-10-19 09:00:00.000000+00:00

Creates the full event matching schema:
- participants, events, event_participants, matching_preferences
- matches (history, score stored 0-1)
- user_behaviors, feedback (append-only logs)
- user_preference_weights, algorithm_insights, user_cold_start_profiles,
  feedback_learning_stats (learning state)
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "a1c4e7d2b9f0"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

participant_status_enum = sa.Enum("ACTIVE", "LEFT", "REMOVED", name="participant_status_enum")
recommendation_strength_enum = sa.Enum("HIGH", "MEDIUM", "LOW", name="recommendation_strength_enum")
behavior_type_enum = sa.Enum(
    "VIEW_PROFILE",
    "SEND_CONNECTION",
    "ACCEPT_CONNECTION",
    "REJECT_CONNECTION",
    "START_CONVERSATION",
    "SCHEDULE_MEETING",
    "ATTEND_MEETING",
    "SEARCH_USERS",
    "FILTER_RESULTS",
    "SORT_RESULTS",
    "VIEW_MATCH_DETAILS",
    name="behavior_type_enum",
)
feedback_type_enum = sa.Enum(
    "MATCH_QUALITY",
    "CONNECTION_OUTCOME",
    "MEETING_OUTCOME",
    "RECOMMENDATION_RELEVANCE",
    "PROFILE_ACCURACY",
    "ALGORITHM_PREFERENCE",
    name="feedback_type_enum",
)
insight_type_enum = sa.Enum(
    "DIMENSION_PREFERENCE",
    "REJECTION_PATTERN",
    "CONNECTION_SUCCESS_PATTERN",
    "MEETING_OUTCOME_PATTERN",
    "TEMPORAL_PATTERN",
    name="insight_type_enum",
)
cold_start_phase_enum = sa.Enum(
    "INITIAL", "LEARNING", "ADAPTING", "ESTABLISHED", name="cold_start_phase_enum"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _participant_fk(name: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        sa.String(length=64),
        sa.ForeignKey("participants.id", ondelete=ondelete),
        nullable=nullable,
    )


def _event_fk(name: str = "event_id", nullable: bool = True, ondelete: str = "SET NULL") -> sa.Column:
    return sa.Column(
        name,
        sa.String(length=64),
        sa.ForeignKey("events.id", ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create every event matching table."""
    # ═══════════════════════════════════════════════════════════════════
    # PARTICIPANTS AND EVENTS
    # ═══════════════════════════════════════════════════════════════════
    op.create_table(
        "participants",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("position", sa.String(length=255), nullable=True),
        sa.Column("industry", sa.String(length=255), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=True),
        sa.Column("interests", sa.JSON(), nullable=True),
        sa.Column("business_goals", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "events",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "event_participants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _event_fk(nullable=False, ondelete="CASCADE"),
        _participant_fk("user_id"),
        sa.Column("status", participant_status_enum, nullable=True),
        sa.Column(
            "joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.UniqueConstraint("event_id", "user_id", name="uq_event_participant"),
    )
    op.create_table(
        "matching_preferences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("participants.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("target_positions", sa.JSON(), nullable=True),
        sa.Column("target_industries", sa.JSON(), nullable=True),
        sa.Column("company_size_preference", sa.JSON(), nullable=True),
        sa.Column("experience_level_preference", sa.JSON(), nullable=True),
        sa.Column("business_goal_alignment", sa.JSON(), nullable=True),
        sa.Column("geographic_preference", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    )

    # ═══════════════════════════════════════════════════════════════════
    # MATCH HISTORY
    # ═══════════════════════════════════════════════════════════════════
    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _event_fk(nullable=False, ondelete="CASCADE"),
        _participant_fk("user_id"),
        _participant_fk("target_user_id"),
        sa.Column("match_score", sa.Float(), nullable=False),
        sa.Column("recommendation_strength", recommendation_strength_enum, nullable=True),
        sa.Column("match_reasons", sa.JSON(), nullable=True),
        sa.Column("common_interests", sa.JSON(), nullable=True),
        sa.Column("business_synergies", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("event_id", "user_id", "target_user_id", name="uq_event_user_target"),
        sa.CheckConstraint("match_score >= 0 AND match_score <= 1", name="ck_match_score_range"),
    )
    op.create_index("ix_matches_event_id", "matches", ["event_id"])
    op.create_index("ix_matches_user_id", "matches", ["user_id"])

    # ═══════════════════════════════════════════════════════════════════
    # BEHAVIOR AND FEEDBACK LOGS
    # ═══════════════════════════════════════════════════════════════════
    op.create_table(
        "user_behaviors",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _participant_fk("user_id"),
        _event_fk(),
        _participant_fk("target_user_id", nullable=True, ondelete="SET NULL"),
        sa.Column("behavior_type", behavior_type_enum, nullable=False),
        sa.Column("behavior_data", sa.JSON(), nullable=True),
        sa.Column("session_id", sa.String(length=128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_user_behaviors_user_id", "user_behaviors", ["user_id"])
    op.create_index("ix_user_behaviors_event_id", "user_behaviors", ["event_id"])
    op.create_index("ix_user_behaviors_behavior_type", "user_behaviors", ["behavior_type"])
    op.create_index("ix_user_behaviors_created_at", "user_behaviors", ["created_at"])

    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _participant_fk("user_id"),
        _participant_fk("target_user_id"),
        _event_fk(),
        sa.Column(
            "match_id",
            sa.Integer(),
            sa.ForeignKey("matches.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("feedback_type", feedback_type_enum, nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("feedback_dimensions", sa.JSON(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("feedback_context", sa.JSON(), nullable=True),
        sa.Column("is_implicit", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("confidence_score", sa.Float(), nullable=False, server_default="1.0"),
        *_timestamps(),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_feedback_rating"
        ),
        sa.CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1", name="ck_feedback_confidence"
        ),
    )
    op.create_index("ix_feedback_user_id", "feedback", ["user_id"])
    op.create_index("ix_feedback_target_user_id", "feedback", ["target_user_id"])
    op.create_index("ix_feedback_feedback_type", "feedback", ["feedback_type"])
    op.create_index("ix_feedback_created_at", "feedback", ["created_at"])

    # ═══════════════════════════════════════════════════════════════════
    # LEARNING STATE
    # ═══════════════════════════════════════════════════════════════════
    op.create_table(
        "user_preference_weights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("participants.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("industry_weight", sa.Float(), server_default="0.25"),
        sa.Column("position_weight", sa.Float(), server_default="0.20"),
        sa.Column("business_goal_weight", sa.Float(), server_default="0.20"),
        sa.Column("skills_weight", sa.Float(), server_default="0.15"),
        sa.Column("experience_weight", sa.Float(), server_default="0.10"),
        sa.Column("company_size_weight", sa.Float(), server_default="0.05"),
        sa.Column("user_preference_weight", sa.Float(), server_default="0.05"),
        sa.Column("learning_count", sa.Integer(), server_default="0"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "algorithm_insights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _participant_fk("user_id"),
        sa.Column("insight_type", insight_type_enum, nullable=False),
        sa.Column("insight_data", sa.JSON(), nullable=False),
        sa.Column("confidence_level", sa.Float(), server_default="0.5"),
        sa.Column("impact_score", sa.Float(), server_default="0.0"),
        *_timestamps(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_algorithm_insights_user_id", "algorithm_insights", ["user_id"])
    op.create_index("ix_algorithm_insights_expires_at", "algorithm_insights", ["expires_at"])

    op.create_table(
        "user_cold_start_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("participants.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("initial_preferences", sa.JSON(), nullable=True),
        sa.Column("industry_similarity_score", sa.Float(), server_default="0.0"),
        sa.Column("position_similarity_score", sa.Float(), server_default="0.0"),
        sa.Column("profile_completeness", sa.Float(), server_default="0.0"),
        sa.Column("behavior_activity_score", sa.Float(), server_default="0.0"),
        sa.Column("recommendation_diversity_factor", sa.Float(), server_default="0.8"),
        sa.Column("cold_start_phase", cold_start_phase_enum, nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "feedback_learning_stats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        _participant_fk("user_id"),
        _event_fk(),
        sa.Column("total_feedback_count", sa.Integer(), server_default="0"),
        sa.Column("positive_feedback_count", sa.Integer(), server_default="0"),
        sa.Column("negative_feedback_count", sa.Integer(), server_default="0"),
        sa.Column("avg_match_quality_rating", sa.Float(), server_default="0.0"),
        sa.Column("connection_success_rate", sa.Float(), server_default="0.0"),
        sa.Column("meeting_success_rate", sa.Float(), server_default="0.0"),
        sa.Column("algorithm_accuracy_score", sa.Float(), server_default="0.0"),
        sa.Column("last_learning_update", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "event_id", name="uq_learning_stats_user_event"),
    )


def downgrade() -> None:
    """Drop every event matching table and enum type."""
    op.drop_table("feedback_learning_stats")
    op.drop_table("user_cold_start_profiles")
    op.drop_index("ix_algorithm_insights_expires_at", table_name="algorithm_insights")
    op.drop_index("ix_algorithm_insights_user_id", table_name="algorithm_insights")
    op.drop_table("algorithm_insights")
    op.drop_table("user_preference_weights")
    op.drop_table("feedback")
    op.drop_table("user_behaviors")
    op.drop_table("matches")
    op.drop_table("matching_preferences")
    op.drop_table("event_participants")
    op.drop_table("events")
    op.drop_table("participants")

    bind = op.get_bind()
    for enum in (
        cold_start_phase_enum,
        insight_type_enum,
        feedback_type_enum,
        behavior_type_enum,
        recommendation_strength_enum,
        participant_status_enum,
    ):
        enum.drop(bind, checkfirst=True)
