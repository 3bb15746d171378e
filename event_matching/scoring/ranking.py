"""Filtering, ordering and diversity enforcement over scored match results.

All functions take a list of results and return a new list; inputs are never
mutated.
"""

from collections import deque
from dataclasses import dataclass, field

from event_matching.domain import MatchResult, Profile
from event_matching.models.enums import RecommendationStrength, SortStrategy

# BALANCED blend
BALANCED_SCORE_WEIGHT = 0.6
BALANCED_PREFERENCE_WEIGHT = 0.3
BALANCED_STRENGTH_WEIGHT = 0.1
BALANCED_MISSING_PREFERENCE = 50

# DIVERSITY greedy selection
DIVERSITY_SCORE_WEIGHT = 0.7
DIVERSITY_SPREAD_WEIGHT = 0.3
DIVERSITY_START = 100
SAME_INDUSTRY_PENALTY = 15
SAME_POSITION_PENALTY = 10
SAME_COMPANY_PENALTY = 20

STRENGTH_SCORES = {
    RecommendationStrength.HIGH: 100,
    RecommendationStrength.MEDIUM: 60,
    RecommendationStrength.LOW: 30,
}


@dataclass(frozen=True)
class FilterOptions:
    min_score: int | None = None  # 0-100
    preference_match_only: bool = False
    diversity_factor: float | None = None  # 0-1
    exclude_user_ids: frozenset[str] = field(default_factory=frozenset)


def strength_score(strength: RecommendationStrength) -> int:
    return STRENGTH_SCORES.get(strength, STRENGTH_SCORES[RecommendationStrength.LOW])


def _preference_percentage(result: MatchResult, missing: int) -> int:
    if result.partial_match is None:
        return missing
    return result.partial_match.match_percentage


def apply_filters(
    results: list[MatchResult], options: FilterOptions, has_preferences: bool
) -> list[MatchResult]:
    """Drop results below ``min_score``, excluded users, and (with preferences) 0% preference matches."""
    filtered = list(results)
    if options.exclude_user_ids:
        filtered = [r for r in filtered if r.target_user.id not in options.exclude_user_ids]
    if options.min_score is not None:
        filtered = [r for r in filtered if r.match_score >= options.min_score]
    if options.preference_match_only and has_preferences:
        filtered = [r for r in filtered if _preference_percentage(r, 0) > 0]
    return filtered


def balanced_key(result: MatchResult) -> float:
    """score × 0.6 + preference% × 0.3 + strength × 0.1; missing preference counts as 50."""
    return (
        result.match_score * BALANCED_SCORE_WEIGHT
        + _preference_percentage(result, BALANCED_MISSING_PREFERENCE) * BALANCED_PREFERENCE_WEIGHT
        + strength_score(result.recommendation_strength) * BALANCED_STRENGTH_WEIGHT
    )


def diversity_score(candidate: Profile, selected: list[Profile]) -> int:
    """100 minus penalties for each already-selected profile sharing industry, position or company."""
    score = DIVERSITY_START
    for other in selected:
        if candidate.industry == other.industry:
            score -= SAME_INDUSTRY_PENALTY
        if candidate.position == other.position:
            score -= SAME_POSITION_PENALTY
        if candidate.company == other.company:
            score -= SAME_COMPANY_PENALTY
    return max(0, score)


def sort_by_diversity(results: list[MatchResult]) -> list[MatchResult]:
    """Greedy selection: highest score first, then best 0.7·score + 0.3·diversity each round."""
    remaining = sorted(results, key=lambda r: -r.match_score)
    ordered: list[MatchResult] = []
    while remaining:
        if not ordered:
            pick = remaining[0]
        else:
            chosen = [r.target_user for r in ordered]
            pick = remaining[0]
            best = 0.0
            for candidate in remaining:
                combined = (
                    candidate.match_score * DIVERSITY_SCORE_WEIGHT
                    + diversity_score(candidate.target_user, chosen) * DIVERSITY_SPREAD_WEIGHT
                )
                if combined > best:
                    best = combined
                    pick = candidate
        ordered.append(pick)
        remaining.remove(pick)
    return ordered


def sort_results(results: list[MatchResult], strategy: SortStrategy) -> list[MatchResult]:
    if strategy == SortStrategy.SCORE_DESC:
        return sorted(results, key=lambda r: -r.match_score)
    if strategy == SortStrategy.PREFERENCE_FIRST:
        return sorted(results, key=lambda r: (-_preference_percentage(r, 0), -r.match_score))
    if strategy == SortStrategy.DIVERSITY:
        return sort_by_diversity(results)
    return sorted(results, key=lambda r: -balanced_key(r))


def similarity_ratio(candidate: Profile, selected: list[Profile]) -> float:
    """Share of (selected profile × {industry, position, company}) comparisons that are equal."""
    if not selected:
        return 0.0
    same = 0
    for other in selected:
        same += candidate.industry == other.industry
        same += candidate.position == other.position
        same += candidate.company == other.company
    return same / (len(selected) * 3)


def ensure_diversity(results: list[MatchResult], factor: float) -> list[MatchResult]:
    """Defer candidates too similar to those already admitted.

    A candidate is admitted when its similarity ratio is at most ``1 - factor``.
    Too-similar candidates go to the back of the queue; once every remaining
    candidate has been deferred in a row, the one at the front is admitted
    anyway. The output is always a permutation of the input.
    """
    threshold = 1 - factor
    queue = deque(results)
    admitted: list[MatchResult] = []
    deferred_in_a_row = 0
    while queue:
        candidate = queue.popleft()
        profiles = [r.target_user for r in admitted]
        if not admitted or similarity_ratio(candidate.target_user, profiles) <= threshold:
            admitted.append(candidate)
            deferred_in_a_row = 0
        elif deferred_in_a_row > len(queue):
            admitted.append(candidate)
            deferred_in_a_row = 0
        else:
            queue.append(candidate)
            deferred_in_a_row += 1
    return admitted
