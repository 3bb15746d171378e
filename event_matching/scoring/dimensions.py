"""Per-dimension compatibility scorers.

Every scorer is pure, returns a value in [0, 1] and never raises. Missing or
empty inputs get a low but non-zero default, so an incomplete profile ranks
lower instead of disappearing.
"""

from dataclasses import dataclass

from event_matching.domain import Preferences, Profile
from event_matching.scoring.tables import (
    HeuristicTables,
    contains_any,
    contains_keyword,
    default_tables,
    normalize,
    pair_matches,
)

# Industry
INDUSTRY_EXACT = 1.0
INDUSTRY_RELATED = 0.7
INDUSTRY_COMPLEMENTARY = 0.5
INDUSTRY_NONE = 0.1

# Position
POSITION_RELATION = 1.0
POSITION_SAME_TIER = 0.8
POSITION_SAME_TITLE = 0.6
POSITION_NONE = 0.3

# Business goals
GOALS_OVERLAP = 1.0
GOALS_SIMILAR = 0.7
GOALS_COMPLEMENTARY = 0.5
GOALS_NONE = 0.2
GOALS_OVERLAP_RATIO = 0.5

# Skills: per-item credit and cap for each component
SKILLS_EMPTY = 0.2
SKILLS_COMMON_STEP, SKILLS_COMMON_CAP = 0.3, 1.0
SKILLS_SIMILAR_STEP, SKILLS_SIMILAR_CAP = 0.2, 0.6
SKILLS_COMPLEMENTARY_STEP, SKILLS_COMPLEMENTARY_CAP = 0.1, 0.4

EXPERIENCE_MISSING = 0.5
EXPERIENCE_FLOOR = 0.3
EXPERIENCE_STEP = 0.2

# No company-size source is wired in; every pair gets the same neutral score.
COMPANY_SIZE_NEUTRAL = 0.6

# User preference: credit per satisfied category
PREFERENCE_POSITION_CREDIT = 0.3
PREFERENCE_INDUSTRY_CREDIT = 0.3
PREFERENCE_GOALS_CREDIT = 0.4
PREFERENCE_UNSET = 0.5

# Floor for scorers whose raw arithmetic can reach 0
MIN_SCORE = 0.05


@dataclass(frozen=True)
class MatchDimensions:
    """The seven dimension scores for one (source, target) pair."""

    industry: float
    position: float
    business_goal: float
    skills: float
    experience: float
    company_size: float
    user_preference: float

    def as_dict(self) -> dict[str, float]:
        return {
            "industry": self.industry,
            "position": self.position,
            "business_goal": self.business_goal,
            "skills": self.skills,
            "experience": self.experience,
            "company_size": self.company_size,
            "user_preference": self.user_preference,
        }


def _normalized(values: list[str] | None) -> list[str]:
    return [v for v in (normalize(x) for x in values or []) if v]


def _dedupe(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def industry_alignment(
    industry_a: str | None, industry_b: str | None, tables: HeuristicTables | None = None
) -> float:
    """Exact 1.0, same cluster 0.7, complementary pair 0.5, otherwise 0.1."""
    a, b = normalize(industry_a), normalize(industry_b)
    if not a or not b:
        return INDUSTRY_NONE
    if a == b:
        return INDUSTRY_EXACT
    tables = tables or default_tables()
    for keywords in tables.industry_clusters.values():
        if contains_any(a, keywords) and contains_any(b, keywords):
            return INDUSTRY_RELATED
    for pair in tables.complementary_industries:
        if pair_matches(a, b, pair):
            return INDUSTRY_COMPLEMENTARY
    return INDUSTRY_NONE


def position_complementarity(
    position_a: str | None, position_b: str | None, tables: HeuristicTables | None = None
) -> float:
    """Same title 0.6, upstream/downstream 1.0, same tier 0.8, otherwise 0.3.

    Identical titles are checked first, so two CEOs score 0.6 rather than the
    tier score.
    """
    a, b = normalize(position_a), normalize(position_b)
    if not a or not b:
        return POSITION_NONE
    if a == b:
        return POSITION_SAME_TITLE
    tables = tables or default_tables()
    for relation in tables.position_relations:
        if pair_matches(a, b, (relation.upstream, relation.downstream)):
            return POSITION_RELATION
    for keywords in tables.position_tiers.values():
        if contains_any(a, keywords) and contains_any(b, keywords):
            return POSITION_SAME_TIER
    return POSITION_NONE


def similar_goals(
    goals_a: list[str], goals_b: list[str], tables: HeuristicTables | None = None
) -> list[str]:
    """Goals of ``goals_a`` that contain, are contained by, or share a category with a goal of ``goals_b``."""
    tables = tables or default_tables()
    a_norm, b_norm = _normalized(goals_a), _normalized(goals_b)
    matches: list[str] = []
    for g1 in a_norm:
        for g2 in b_norm:
            if g1 in g2 or g2 in g1:
                matches.append(g1)
                continue
            for terms in tables.goal_categories.values():
                if contains_any(g1, terms) and contains_any(g2, terms):
                    matches.append(g1)
                    break
    return _dedupe(matches)


def complementary_goals(
    goals_a: list[str], goals_b: list[str], tables: HeuristicTables | None = None
) -> list[str]:
    tables = tables or default_tables()
    a_norm, b_norm = _normalized(goals_a), _normalized(goals_b)
    matches = [
        g1
        for g1 in a_norm
        for g2 in b_norm
        if any(pair_matches(g1, g2, pair) for pair in tables.complementary_goals)
    ]
    return _dedupe(matches)


def business_goal_synergy(
    goals_a: list[str] | None, goals_b: list[str] | None, tables: HeuristicTables | None = None
) -> float:
    """≥50% exact overlap of the smaller set 1.0, similar 0.7, complementary 0.5, otherwise 0.2."""
    a_norm, b_norm = _normalized(goals_a), _normalized(goals_b)
    if not a_norm or not b_norm:
        return GOALS_NONE
    exact = [g for g in a_norm if g in set(b_norm)]
    if exact and len(exact) / min(len(a_norm), len(b_norm)) >= GOALS_OVERLAP_RATIO:
        return GOALS_OVERLAP
    tables = tables or default_tables()
    if similar_goals(a_norm, b_norm, tables):
        return GOALS_SIMILAR
    if complementary_goals(a_norm, b_norm, tables):
        return GOALS_COMPLEMENTARY
    return GOALS_NONE


def similar_skills(
    skills_a: list[str], skills_b: list[str], tables: HeuristicTables | None = None
) -> list[str]:
    """Skills of ``skills_a`` sharing a category with a different skill of ``skills_b``."""
    tables = tables or default_tables()
    a_norm, b_norm = _normalized(skills_a), _normalized(skills_b)
    matches: list[str] = []
    for s1 in a_norm:
        for s2 in b_norm:
            if s1 == s2:
                continue
            if any(
                contains_any(s1, keywords) and contains_any(s2, keywords)
                for keywords in tables.skill_categories.values()
            ):
                matches.append(s1)
    return _dedupe(matches)


def complementary_skills(
    skills_a: list[str], skills_b: list[str], tables: HeuristicTables | None = None
) -> list[str]:
    tables = tables or default_tables()
    a_norm, b_norm = _normalized(skills_a), _normalized(skills_b)
    matches = [
        s1
        for s1 in a_norm
        for s2 in b_norm
        if any(pair_matches(s1, s2, pair) for pair in tables.complementary_skills)
    ]
    return _dedupe(matches)


def skills_relevance(
    skills_a: list[str] | None, skills_b: list[str] | None, tables: HeuristicTables | None = None
) -> float:
    """Common (exact or substring), same-category and complementary skill credit, capped at 1.0."""
    a_norm, b_norm = _normalized(skills_a), _normalized(skills_b)
    if not a_norm or not b_norm:
        return SKILLS_EMPTY
    tables = tables or default_tables()
    common = [s1 for s1 in a_norm if any(s1 == s2 or s1 in s2 or s2 in s1 for s2 in b_norm)]
    similar = similar_skills(a_norm, b_norm, tables)
    complementary = complementary_skills(a_norm, b_norm, tables)

    score = (
        min(SKILLS_COMMON_CAP, len(common) * SKILLS_COMMON_STEP)
        + min(SKILLS_SIMILAR_CAP, len(similar) * SKILLS_SIMILAR_STEP)
        + min(SKILLS_COMPLEMENTARY_CAP, len(complementary) * SKILLS_COMPLEMENTARY_STEP)
    )
    return max(MIN_SCORE, min(1.0, score))


def seniority_level(position: str | None, tables: HeuristicTables | None = None) -> int:
    """Numeric seniority 1-5 inferred from title keywords."""
    title = normalize(position)
    tables = tables or default_tables()
    for level in sorted(tables.experience_levels, reverse=True):
        if contains_any(title, tables.experience_levels[level]):
            return level
    return 1


def experience_alignment(
    position_a: str | None, position_b: str | None, tables: HeuristicTables | None = None
) -> float:
    """max(0.3, 1 - 0.2 * level gap); 0.5 when either title is missing."""
    if not normalize(position_a) or not normalize(position_b):
        return EXPERIENCE_MISSING
    gap = abs(seniority_level(position_a, tables) - seniority_level(position_b, tables))
    return max(EXPERIENCE_FLOOR, 1.0 - gap * EXPERIENCE_STEP)


def company_size_alignment(company_a: str | None, company_b: str | None) -> float:
    return COMPANY_SIZE_NEUTRAL


def _matches_any_target(value: str | None, targets: list[str]) -> bool:
    text = normalize(value)
    return bool(text) and any(t and t in text for t in _normalized(targets))


def position_preferred(target: Profile, preferences: Preferences) -> bool:
    return _matches_any_target(target.position, preferences.target_positions)


def industry_preferred(target: Profile, preferences: Preferences) -> bool:
    return _matches_any_target(target.industry, preferences.target_industries)


def goals_preferred(target: Profile, preferences: Preferences) -> bool:
    return any(
        _matches_any_target(goal, preferences.business_goal_alignment)
        for goal in target.business_goals
    )


def user_preference_match(target: Profile, preferences: Preferences | None) -> float:
    """Credit per satisfied preference category averaged over the evaluated ones."""
    if preferences is None:
        return PREFERENCE_UNSET
    score = 0.0
    evaluated = 0
    if preferences.target_positions:
        evaluated += 1
        if position_preferred(target, preferences):
            score += PREFERENCE_POSITION_CREDIT
    if preferences.target_industries:
        evaluated += 1
        if industry_preferred(target, preferences):
            score += PREFERENCE_INDUSTRY_CREDIT
    if preferences.business_goal_alignment:
        evaluated += 1
        if goals_preferred(target, preferences):
            score += PREFERENCE_GOALS_CREDIT
    if evaluated == 0:
        return PREFERENCE_UNSET
    return max(MIN_SCORE, score / evaluated)


def score_dimensions(
    source: Profile,
    target: Profile,
    preferences: Preferences | None = None,
    tables: HeuristicTables | None = None,
) -> MatchDimensions:
    tables = tables or default_tables()
    return MatchDimensions(
        industry=industry_alignment(source.industry, target.industry, tables),
        position=position_complementarity(source.position, target.position, tables),
        business_goal=business_goal_synergy(source.business_goals, target.business_goals, tables),
        skills=skills_relevance(source.skills, target.skills, tables),
        experience=experience_alignment(source.position, target.position, tables),
        company_size=company_size_alignment(source.company, target.company),
        user_preference=user_preference_match(target, preferences),
    )
