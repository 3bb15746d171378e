"""Matching orchestration: score every co-participant, rank, personalize.

generate_matches runs these stages in order:

    load source profile → score candidates (+ history upsert) → filter →
    sort → personalize → diversify → drop weak preference matches → truncate

Only a missing source user or event is fatal. History writes, the cold-start
check, personalization and diversity enforcement are best effort; their
failures are logged and reported in MatchRun.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from event_matching.config import Settings
from event_matching.domain import (
    MatchRecord,
    MatchResult,
    Preferences,
    Profile,
    WeightVector,
    round_half_up,
)
from event_matching.errors import NotFoundError
from event_matching.learning.cold_start import ColdStartManager
from event_matching.models.enums import (
    RecommendationStrength,
    SortStrategy,
)
from event_matching.outcome import Outcome
from event_matching.scoring.combiner import (
    combine,
    recommendation_strength,
    resolve_weights,
    to_api_score,
)
from event_matching.scoring.dimensions import score_dimensions
from event_matching.scoring.preferences import calculate_partial_match
from event_matching.scoring.ranking import FilterOptions, apply_filters, ensure_diversity, sort_results
from event_matching.scoring.reasons import (
    find_business_synergies,
    find_common_elements,
    generate_reasons,
)
from event_matching.scoring.tables import HeuristicTables, default_tables
from event_matching.services.personalization import Personalizer
from event_matching.store.base import MatchingStore

logger = logging.getLogger(__name__)

MIN_PARTIAL_MATCH = 50

PREFERENCE_RUN_LIMIT = 50
PERFECT_MATCH = 90
PARTIAL_MATCH = 50
CAPS = {"perfect": 5, "partial": 8, "alternative": 7}
STRICT_CAPS = {"perfect": 10, "partial": 5, "alternative": 0}


@dataclass(frozen=True)
class MatchOptions:
    limit: int = 10
    sort_strategy: SortStrategy = SortStrategy.BALANCED
    filter_options: FilterOptions = field(default_factory=FilterOptions)
    include_partial_matches: bool = True
    save_to_history: bool = True


@dataclass(frozen=True)
class MatchRun:
    """Results of one generate_matches call plus how each best-effort step went."""

    results: list[MatchResult]
    cold_start: Outcome = field(default_factory=Outcome.skip)
    history: Outcome = field(default_factory=Outcome.skip)
    personalization: Outcome = field(default_factory=Outcome.skip)
    diversity: Outcome = field(default_factory=Outcome.skip)


@dataclass(frozen=True)
class PreferenceRecommendations:
    perfect: list[MatchResult]
    partial: list[MatchResult]
    alternative: list[MatchResult]


@dataclass(frozen=True)
class MatchHistoryOptions:
    limit: int = 50
    min_score: int = 0  # 0-100
    strength_filter: tuple[RecommendationStrength, ...] | None = None


@dataclass(frozen=True)
class MatchHistoryStatistics:
    total_matches: int = 0
    average_score: int = 0  # 0-100
    high_quality_matches: int = 0
    top_recommendation_strength: RecommendationStrength = RecommendationStrength.LOW


@dataclass(frozen=True)
class MatchHistory:
    matches: list[MatchResult]
    statistics: MatchHistoryStatistics


@dataclass(frozen=True)
class ParticipantStats:
    total_participants: int
    active_matchers: int
    average_matches_per_participant: float


@dataclass(frozen=True)
class ScoreDistribution:
    high: int = 0  # 80-100
    medium: int = 0  # 60-79
    low: int = 0  # 0-59


@dataclass(frozen=True)
class EventMatchingStats:
    total_matches: int
    average_score: int  # 0-100
    high_quality_matches: int
    participant_stats: ParticipantStats
    score_distribution: ScoreDistribution


class MatchingService:
    def __init__(
        self,
        store: MatchingStore,
        cold_start: ColdStartManager,
        tables: HeuristicTables | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.cold_start = cold_start
        self.tables = tables or default_tables()
        self.settings = settings or Settings()
        self.personalizer = Personalizer(store)

    # ═══════════════════════════════════════════════════════════════
    # RECOMMENDATIONS
    # ═══════════════════════════════════════════════════════════════

    def generate_matches(
        self, user_id: str, event_id: str, options: MatchOptions | None = None
    ) -> list[MatchResult]:
        return self.generate_matches_detailed(user_id, event_id, options).results

    def generate_matches_detailed(
        self, user_id: str, event_id: str, options: MatchOptions | None = None
    ) -> MatchRun:
        """Ranked recommendations for ``user_id`` among the event's other participants.

        Raises:
            NotFoundError: If the user or the event doesn't exist
        """
        options = options or MatchOptions()

        source = self.store.get_profile(user_id)
        if source is None:
            raise NotFoundError("User", user_id)
        if not self.store.event_exists(event_id):
            raise NotFoundError("Event", event_id)

        preferences = self.store.get_preferences(user_id)
        cold_start = self.cold_start.ensure(user_id)

        candidates = [p for p in self.store.list_event_participants(event_id) if p.id != user_id]
        if not candidates:
            logger.info("No other participants in event %s for user %s", event_id, user_id)
            return MatchRun(results=[], cold_start=cold_start)

        weights = resolve_weights(None, self.store.get_weights(user_id))
        results = [self.score_candidate(source, target, preferences, weights) for target in candidates]

        history = Outcome.skip("history disabled")
        if options.save_to_history:
            history = self._save_history(user_id, event_id, results)

        results = apply_filters(results, options.filter_options, preferences is not None)
        results = sort_results(results, options.sort_strategy)
        results, personalization = self._personalize(user_id, results)
        results, diversity = self._diversify(results, options.filter_options.diversity_factor)

        if not options.include_partial_matches and preferences is not None:
            results = [
                r
                for r in results
                if r.partial_match is not None and r.partial_match.match_percentage >= MIN_PARTIAL_MATCH
            ]

        logger.info(
            "Generated %d matches for user %s in event %s (%d candidates)",
            min(len(results), options.limit),
            user_id,
            event_id,
            len(candidates),
        )
        return MatchRun(
            results=results[: options.limit],
            cold_start=cold_start,
            history=history,
            personalization=personalization,
            diversity=diversity,
        )

    def score_candidate(
        self,
        source: Profile,
        target: Profile,
        preferences: Preferences | None,
        weights: WeightVector,
    ) -> MatchResult:
        dimensions = score_dimensions(source, target, preferences, self.tables)
        score = combine(dimensions, weights)
        return MatchResult(
            target_user=target,
            match_score=to_api_score(score),
            match_reasons=generate_reasons(source, target, self.tables),
            common_interests=find_common_elements(source.interests, target.interests),
            business_synergies=find_business_synergies(
                source.business_goals, target.business_goals, self.tables
            ),
            recommendation_strength=recommendation_strength(score),
            partial_match=(
                calculate_partial_match(target, preferences, self.tables) if preferences else None
            ),
        )

    def get_preference_based_recommendations(
        self, user_id: str, event_id: str, strict: bool = False
    ) -> PreferenceRecommendations:
        """Split a preference-first run into perfect (≥90%), partial (≥50%) and alternative buckets."""
        results = self.generate_matches(
            user_id,
            event_id,
            MatchOptions(
                limit=PREFERENCE_RUN_LIMIT,
                sort_strategy=SortStrategy.PREFERENCE_FIRST,
                include_partial_matches=True,
            ),
        )
        buckets: dict[str, list[MatchResult]] = {"perfect": [], "partial": [], "alternative": []}
        for result in results:
            percentage = result.partial_match.match_percentage if result.partial_match else 0
            if percentage >= PERFECT_MATCH:
                buckets["perfect"].append(result)
            elif percentage >= PARTIAL_MATCH:
                buckets["partial"].append(result)
            else:
                buckets["alternative"].append(result)

        caps = STRICT_CAPS if strict else CAPS
        return PreferenceRecommendations(**{name: buckets[name][: caps[name]] for name in buckets})

    # ═══════════════════════════════════════════════════════════════
    # HISTORY & STATS
    # ═══════════════════════════════════════════════════════════════

    def get_match_history(
        self,
        user_id: str,
        event_id: str | None = None,
        options: MatchHistoryOptions | None = None,
    ) -> MatchHistory:
        """Stored matches with reasons regenerated from the current profiles.

        Statistics cover every stored row, before filtering and truncation.
        """
        options = options or MatchHistoryOptions()
        rows = self.store.list_matches(user_id, event_id)

        selected = [
            row
            for row in rows
            if row.match_score >= options.min_score / 100
            and (not options.strength_filter or row.recommendation_strength in options.strength_filter)
        ][: options.limit]

        source = self.store.get_profile(user_id)
        matches: list[MatchResult] = []
        for row in selected:
            target = self.store.get_profile(row.target_user_id)
            if target is None:
                continue
            matches.append(
                MatchResult(
                    target_user=target,
                    match_score=to_api_score(row.match_score),
                    match_reasons=generate_reasons(source, target, self.tables) if source else [],
                    common_interests=list(row.common_interests),
                    business_synergies=list(row.business_synergies),
                    recommendation_strength=row.recommendation_strength,
                )
            )

        return MatchHistory(matches=matches, statistics=_history_statistics(rows))

    def get_event_matching_stats(self, event_id: str) -> EventMatchingStats:
        if not self.store.event_exists(event_id):
            raise NotFoundError("Event", event_id)
        stats = self.store.event_match_stats(event_id)
        participants = len(self.store.list_event_participants(event_id))
        return EventMatchingStats(
            total_matches=stats.total_matches,
            average_score=round_half_up(stats.average_score * 100),
            high_quality_matches=stats.high_quality_matches,
            participant_stats=ParticipantStats(
                total_participants=participants,
                active_matchers=stats.active_matchers,
                average_matches_per_participant=(
                    stats.total_matches / participants if participants else 0.0
                ),
            ),
            score_distribution=ScoreDistribution(high=stats.high, medium=stats.medium, low=stats.low),
        )

    # ═══════════════════════════════════════════════════════════════
    # BEST-EFFORT STAGES
    # ═══════════════════════════════════════════════════════════════

    def _save_history(self, user_id: str, event_id: str, results: list[MatchResult]) -> Outcome:
        """Insert new rows; rewrite an existing row only when its score drifted enough."""
        failures = 0
        last_error: Exception | None = None
        written = 0
        for result in results:
            score = result.match_score / 100
            try:
                existing = self.store.get_match(event_id, user_id, result.target_user.id)
                if existing is None:
                    self.store.save_match(
                        MatchRecord(
                            event_id=event_id,
                            user_id=user_id,
                            target_user_id=result.target_user.id,
                            match_score=score,
                            match_reasons=[r.description for r in result.match_reasons],
                            common_interests=result.common_interests,
                            business_synergies=result.business_synergies,
                            recommendation_strength=result.recommendation_strength,
                        )
                    )
                    written += 1
                elif abs(existing.match_score - score) > self.settings.history_drift:
                    self.store.update_match_score(existing.id, score, result.recommendation_strength)
                    written += 1
            except Exception as exc:
                failures += 1
                last_error = exc
                logger.warning(
                    "Error saving match %s -> %s to history: %s",
                    user_id,
                    result.target_user.id,
                    exc,
                )
        if failures:
            return Outcome.degraded(f"{failures} history writes failed, last: {last_error}")
        return Outcome.succeeded(written)

    def _personalize(
        self, user_id: str, results: list[MatchResult]
    ) -> tuple[list[MatchResult], Outcome]:
        try:
            return self.personalizer.apply(user_id, results), Outcome.succeeded()
        except Exception as exc:
            logger.warning("Personalization failed for user %s: %s", user_id, exc)
            return results, Outcome.degraded(exc)

    def _diversify(
        self, results: list[MatchResult], factor: float | None
    ) -> tuple[list[MatchResult], Outcome]:
        if not factor or factor <= 0:
            return results, Outcome.skip("no diversity factor")
        try:
            return ensure_diversity(results, factor), Outcome.succeeded()
        except Exception as exc:
            logger.warning("Diversity enforcement failed: %s", exc)
            return results, Outcome.degraded(exc)


def _history_statistics(rows: list[MatchRecord]) -> MatchHistoryStatistics:
    if not rows:
        return MatchHistoryStatistics()
    strengths = Counter(row.recommendation_strength for row in rows)
    return MatchHistoryStatistics(
        total_matches=len(rows),
        average_score=round_half_up(sum(row.match_score for row in rows) / len(rows) * 100),
        high_quality_matches=strengths[RecommendationStrength.HIGH],
        top_recommendation_strength=strengths.most_common(1)[0][0],
    )
