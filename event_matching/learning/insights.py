"""Mines per-user insights from feedback and behavior history.

Three passes run independently; each needs a minimum sample before it emits
anything, and a failing pass does not stop the others.
"""

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta

from event_matching.domain import AlgorithmInsight, Profile, utcnow
from event_matching.models.enums import BehaviorType, FeedbackType, InsightType
from event_matching.schemas import (
    ConnectionSuccessPayload,
    DimensionPreferencePayload,
    RejectedProfile,
    RejectionPatternPayload,
)
from event_matching.scoring.dimensions import position_complementarity
from event_matching.scoring.preferences import infer_experience_level
from event_matching.scoring.reasons import find_common_elements
from event_matching.scoring.tables import HeuristicTables, default_tables, normalize
from event_matching.store.base import BehaviorQuery, FeedbackQuery, MatchingStore

logger = logging.getLogger(__name__)

# Dimension preference
DIMENSION_WINDOW = 50
DIMENSION_MIN_SAMPLES = 5
PREFERRED_DIMENSION_AVG = 4.0
DIMENSION_CONFIDENCE_CAP = 0.9
DIMENSION_IMPACT_STEP = 0.1
DIMENSION_TTL = timedelta(days=30)

# Rejection pattern
REJECTION_WINDOW = 30
REJECTION_MIN_SAMPLES = 3
REJECTION_CONFIDENCE_CAP = 0.8
REJECTION_IMPACT = 0.15
REJECTION_TTL = timedelta(days=20)
REPEATED_REJECTION = 2  # an attribute counts as a pattern once rejected this often

# Connection success
SUCCESS_WINDOW = 20
SUCCESS_MIN_SAMPLES = 2
SUCCESS_CONFIDENCE_CAP = 0.9
SUCCESS_IMPACT = 0.2
SUCCESS_TTL = timedelta(days=45)
COMPLEMENTARY_POSITION_SCORE = 0.8
TOP_PROFILE_TYPES = 3
TOP_HOURS = 2


def _most_common(values: list[str], minimum: int = 1, top: int | None = None) -> list[str]:
    counts = Counter(v for v in values if v)
    return [value for value, count in counts.most_common(top) if count >= minimum]


class InsightGenerator:
    def __init__(self, store: MatchingStore, tables: HeuristicTables | None = None):
        self.store = store
        self.tables = tables or default_tables()

    def generate(self, user_id: str, now: datetime | None = None) -> list[AlgorithmInsight]:
        """Run every pass and persist what they emit."""
        now = now or utcnow()
        saved: list[AlgorithmInsight] = []
        for name, miner in (
            ("dimension preference", self.dimension_preference),
            ("rejection pattern", self.rejection_pattern),
            ("connection success", self.connection_success),
        ):
            try:
                insight = miner(user_id, now)
                if insight is not None:
                    saved.append(self.store.save_insight(insight))
            except Exception:
                logger.exception("Insight pass '%s' failed for user %s", name, user_id)
        logger.info("Generated %d insights for user %s", len(saved), user_id)
        return saved

    # ═══════════════════════════════════════════════════════════════
    # PASSES
    # ═══════════════════════════════════════════════════════════════

    def dimension_preference(self, user_id: str, now: datetime) -> AlgorithmInsight | None:
        records = self.store.query_feedback(
            user_id,
            FeedbackQuery(types=(FeedbackType.MATCH_QUALITY,), limit=DIMENSION_WINDOW),
        )
        if len(records) < DIMENSION_MIN_SAMPLES:
            return None

        scores: dict[str, list[int]] = defaultdict(list)
        for record in records:
            if record.dimensions is not None:
                for dimension, score in record.dimensions.rated().items():
                    scores[dimension].append(score)

        preferred: list[str] = []
        adjustments: dict[str, float] = {}
        for dimension, values in scores.items():
            average = sum(values) / len(values)
            if average >= PREFERRED_DIMENSION_AVG:
                preferred.append(dimension)
                adjustments[dimension] = (average - 3) / 10

        if not preferred:
            return None

        return AlgorithmInsight(
            user_id=user_id,
            insight_type=InsightType.DIMENSION_PREFERENCE,
            payload=DimensionPreferencePayload(
                preferred_dimensions=preferred, weight_adjustments=adjustments
            ),
            confidence_level=min(DIMENSION_CONFIDENCE_CAP, len(records) / 20),
            impact_score=len(preferred) * DIMENSION_IMPACT_STEP,
            expires_at=now + DIMENSION_TTL,
            created_at=now,
        )

    def rejection_pattern(self, user_id: str, now: datetime) -> AlgorithmInsight | None:
        behaviors = self.store.query_behaviors(
            user_id,
            BehaviorQuery(types=(BehaviorType.REJECT_CONNECTION,), limit=REJECTION_WINDOW),
        )
        if len(behaviors) < REJECTION_MIN_SAMPLES:
            return None

        targets = self._targets(b.target_user_id for b in behaviors)
        rejected = [
            RejectedProfile(
                industry=t.industry,
                position=t.position,
                experience_level=infer_experience_level(t.position, self.tables),
            )
            for t in targets
        ]
        industries = _most_common([t.industry for t in targets], minimum=REPEATED_REJECTION)
        positions = _most_common([t.position for t in targets], minimum=REPEATED_REJECTION)
        reasons = [f"Often declines people in {industry}" for industry in industries] + [
            f"Often declines people working as {position}" for position in positions
        ]

        return AlgorithmInsight(
            user_id=user_id,
            insight_type=InsightType.REJECTION_PATTERN,
            payload=RejectionPatternPayload(
                common_rejection_reasons=reasons,
                rejected_profiles=rejected,
                rejected_industries=industries,
                rejected_positions=positions,
            ),
            confidence_level=min(REJECTION_CONFIDENCE_CAP, len(behaviors) / 10),
            impact_score=REJECTION_IMPACT,
            expires_at=now + REJECTION_TTL,
            created_at=now,
        )

    def connection_success(self, user_id: str, now: datetime) -> AlgorithmInsight | None:
        behaviors = self.store.query_behaviors(
            user_id,
            BehaviorQuery(
                types=(BehaviorType.ACCEPT_CONNECTION, BehaviorType.ATTEND_MEETING),
                limit=SUCCESS_WINDOW,
            ),
        )
        if len(behaviors) < SUCCESS_MIN_SAMPLES:
            return None

        user = self.store.get_profile(user_id)
        targets = self._targets(b.target_user_id for b in behaviors)
        profile_types = _most_common(
            [
                f"{t.position} in {t.industry}" if t.position and t.industry else ""
                for t in targets
            ],
            top=TOP_PROFILE_TYPES,
        )
        hours = _most_common([f"{b.created_at.hour:02d}:00" for b in behaviors], top=TOP_HOURS)

        return AlgorithmInsight(
            user_id=user_id,
            insight_type=InsightType.CONNECTION_SUCCESS_PATTERN,
            payload=ConnectionSuccessPayload(
                successful_profile_types=profile_types,
                success_factors=self._success_factors(user, targets),
                optimal_timing=hours,
            ),
            confidence_level=min(SUCCESS_CONFIDENCE_CAP, len(behaviors) / 10),
            impact_score=SUCCESS_IMPACT,
            expires_at=now + SUCCESS_TTL,
            created_at=now,
        )

    # ═══════════════════════════════════════════════════════════════
    # HELPERS
    # ═══════════════════════════════════════════════════════════════

    def _targets(self, target_ids) -> list[Profile]:
        """Profiles of the given targets, skipping missing ids and deleted users."""
        profiles = []
        for target_id in target_ids:
            if not target_id:
                continue
            profile = self.store.get_profile(target_id)
            if profile is not None:
                profiles.append(profile)
        return profiles

    def _success_factors(self, user: Profile | None, targets: list[Profile]) -> dict[str, float]:
        """Share of successful targets that share an industry, complement the role, or share a skill."""
        if user is None or not targets:
            return {}
        industry = normalize(user.industry)
        same_industry = sum(1 for t in targets if industry and normalize(t.industry) == industry)
        complementary = sum(
            1
            for t in targets
            if position_complementarity(user.position, t.position, self.tables)
            >= COMPLEMENTARY_POSITION_SCORE
        )
        shared_skills = sum(1 for t in targets if find_common_elements(user.skills, t.skills))
        total = len(targets)
        return {
            "industry_match": same_industry / total,
            "position_complementarity": complementary / total,
            "skills_overlap": shared_skills / total,
        }
