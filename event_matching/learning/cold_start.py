"""Cold-start handling: per-user phase, activity and diversity tracking.

A user moves INITIAL → LEARNING → ADAPTING → ESTABLISHED as feedback and
behavior counts grow. The stored phase only ever moves forward.
"""

import logging
from dataclasses import replace

from event_matching.domain import ColdStartProfile, Profile
from event_matching.errors import NotFoundError
from event_matching.models.enums import ColdStartPhase
from event_matching.outcome import Outcome
from event_matching.schemas import InitialPreferences
from event_matching.scoring.tables import HeuristicTables, contains_any, default_tables, normalize
from event_matching.store.base import MatchingStore

logger = logging.getLogger(__name__)

# (phase, min feedback, min behaviors), checked top to bottom
PHASE_THRESHOLDS = [
    (ColdStartPhase.ESTABLISHED, 15, 50),
    (ColdStartPhase.ADAPTING, 8, 25),
    (ColdStartPhase.LEARNING, 3, 10),
]

BASE_DIVERSITY = {
    ColdStartPhase.INITIAL: 0.9,
    ColdStartPhase.LEARNING: 0.8,
    ColdStartPhase.ADAPTING: 0.6,
    ColdStartPhase.ESTABLISHED: 0.4,
}
DIVERSITY_ACTIVITY_SPAN = 0.2
MIN_DIVERSITY = 0.3
MAX_DIVERSITY = 0.95
INITIAL_DIVERSITY = 0.8

ACTIVITY_NUDGE = 0.01

SIMILARITY_BASED_WEIGHTS = {
    "industry_weight": 0.3,
    "position_weight": 0.25,
    "skills_weight": 0.2,
}

_COMPLETENESS_FIELDS = (
    "name",
    "company",
    "position",
    "industry",
    "bio",
    "skills",
    "interests",
    "business_goals",
)


def profile_completeness(profile: Profile) -> float:
    """Fraction of the eight profile fields that are filled in."""
    filled = 0
    for name in _COMPLETENESS_FIELDS:
        value = getattr(profile, name)
        if isinstance(value, str):
            filled += bool(value.strip())
        else:
            filled += bool(value)
    return filled / len(_COMPLETENESS_FIELDS)


def activity_score(total_behaviors: int, total_feedback: int, active_sessions: int) -> float:
    score = (
        min(0.5, total_behaviors / 20)
        + min(0.3, total_feedback / 10)
        + min(0.2, active_sessions / 5)
    )
    return min(1.0, score)


def determine_phase(feedback_count: int, behavior_count: int) -> ColdStartPhase:
    for phase, min_feedback, min_behaviors in PHASE_THRESHOLDS:
        if feedback_count >= min_feedback and behavior_count >= min_behaviors:
            return phase
    return ColdStartPhase.INITIAL


def advance_phase(current: ColdStartPhase, computed: ColdStartPhase) -> ColdStartPhase:
    return computed if computed.rank > current.rank else current


def diversity_factor(phase: ColdStartPhase, activity: float) -> float:
    """Phase base plus up to 0.2 for inactive users, clamped to [0.3, 0.95]."""
    value = BASE_DIVERSITY[phase] + (1 - activity) * DIVERSITY_ACTIVITY_SPAN
    return min(MAX_DIVERSITY, max(MIN_DIVERSITY, value))


def infer_initial_preferences(
    profile: Profile, tables: HeuristicTables | None = None
) -> InitialPreferences:
    """Guess whom a newcomer wants to meet from their own industry and title."""
    tables = tables or default_tables()
    industries: list[str] = []
    positions: list[str] = []

    industry = normalize(profile.industry)
    if industry:
        industries.append(profile.industry.strip())
        for expansion in tables.related_industries:
            if contains_any(industry, expansion.keywords):
                industries.extend(expansion.related)
                break

    position = normalize(profile.position)
    if position:
        for expansion in tables.complementary_positions:
            if contains_any(position, expansion.keywords):
                positions.extend(expansion.related)
                break

    return InitialPreferences(
        inferred_target_industries=list(dict.fromkeys(industries)),
        inferred_target_positions=positions,
        similarity_based_weights=dict(SIMILARITY_BASED_WEIGHTS),
        profile_based_interests=list(profile.interests),
    )


class ColdStartManager:
    """Creates cold-start profiles and moves users through the phases."""

    def __init__(self, store: MatchingStore, tables: HeuristicTables | None = None):
        self.store = store
        self.tables = tables or default_tables()

    def initialize(self, user_id: str) -> ColdStartProfile:
        """Create (or reset) the user's cold-start profile in the INITIAL phase."""
        profile = self.store.get_profile(user_id)
        if profile is None:
            raise NotFoundError("User", user_id)

        cold_start = ColdStartProfile(
            user_id=user_id,
            initial_preferences=infer_initial_preferences(profile, self.tables),
            profile_completeness=profile_completeness(profile),
            behavior_activity_score=0.0,
            recommendation_diversity_factor=INITIAL_DIVERSITY,
            cold_start_phase=ColdStartPhase.INITIAL,
        )
        saved = self.store.save_cold_start_profile(cold_start)
        logger.info(
            "Initialized cold-start profile for %s (completeness=%.2f)",
            user_id,
            saved.profile_completeness,
        )
        return saved

    def ensure(self, user_id: str) -> Outcome[ColdStartProfile]:
        """Existing profile, or a freshly initialized one. Never raises."""
        try:
            existing = self.store.get_cold_start_profile(user_id)
            if existing is not None:
                return Outcome.succeeded(existing)
            return Outcome.succeeded(self.initialize(user_id))
        except Exception as exc:
            logger.warning("Could not ensure cold-start profile for %s: %s", user_id, exc)
            return Outcome.degraded(exc)

    def nudge_activity(self, user_id: str) -> Outcome[ColdStartProfile]:
        """Bump the activity score by 0.01 (capped at 1) after a tracked behavior."""
        try:
            profile = self.store.get_cold_start_profile(user_id)
            if profile is None:
                return Outcome.skip("no cold-start profile")
            bumped = replace(
                profile,
                behavior_activity_score=min(1.0, profile.behavior_activity_score + ACTIVITY_NUDGE),
            )
            return Outcome.succeeded(self.store.save_cold_start_profile(bumped))
        except Exception as exc:
            logger.warning("Could not update behavior activity for %s: %s", user_id, exc)
            return Outcome.degraded(exc)

    def update_progress(self, user_id: str) -> Outcome[ColdStartProfile]:
        """Recompute activity, phase and diversity from the user's history. Never raises.

        The phase feedback count includes implicit feedback.
        """
        try:
            profile = self.store.get_cold_start_profile(user_id)
            if profile is None:
                return Outcome.skip("no cold-start profile")

            behaviors = self.store.behavior_stats(user_id)
            feedback_count = self.store.count_feedback(user_id)

            activity = activity_score(
                behaviors.total_behaviors, feedback_count, behaviors.active_sessions
            )
            computed = determine_phase(feedback_count, behaviors.total_behaviors)
            phase = advance_phase(profile.cold_start_phase, computed)
            if phase != profile.cold_start_phase:
                logger.info(
                    "User %s moved from %s to %s",
                    user_id,
                    profile.cold_start_phase.value,
                    phase.value,
                )

            updated = replace(
                profile,
                behavior_activity_score=activity,
                cold_start_phase=phase,
                recommendation_diversity_factor=diversity_factor(phase, activity),
            )
            return Outcome.succeeded(self.store.save_cold_start_profile(updated))
        except Exception as exc:
            logger.warning("Could not update cold-start progress for %s: %s", user_id, exc)
            return Outcome.degraded(exc)
