"""Human-readable explanations for a match.

Reasons are always computed from the current profiles; stored history rows
keep a text snapshot but it is never served back.
"""

from event_matching.domain import Profile, Reason
from event_matching.models.enums import ReasonType
from event_matching.scoring.dimensions import (
    business_goal_synergy,
    complementary_goals,
    complementary_skills,
    industry_alignment,
    position_complementarity,
    similar_goals,
    skills_relevance,
)
from event_matching.scoring.tables import HeuristicTables, default_tables, normalize

INDUSTRY_REASON_THRESHOLD = 0.7
POSITION_REASON_THRESHOLD = 0.8
SKILLS_REASON_THRESHOLD = 0.6
GOALS_REASON_THRESHOLD = 0.7
INTEREST_STEP = 0.3


def find_common_elements(items_a: list[str] | None, items_b: list[str] | None) -> list[str]:
    """Items of ``items_a`` also in ``items_b`` (case-insensitive, trimmed), input spelling kept."""
    if not items_a or not items_b:
        return []
    other = {normalize(item) for item in items_b}
    return [item for item in items_a if normalize(item) in other]


def find_business_synergies(
    goals_a: list[str] | None, goals_b: list[str] | None, tables: HeuristicTables | None = None
) -> list[str]:
    """Similar plus complementary goals of ``goals_a`` relative to ``goals_b``, deduplicated."""
    tables = tables or default_tables()
    goals_a, goals_b = goals_a or [], goals_b or []
    synergies = similar_goals(goals_a, goals_b, tables) + complementary_goals(goals_a, goals_b, tables)
    return list(dict.fromkeys(synergies))


def _industry_reason(source: Profile, target: Profile, score: float) -> str:
    if score >= 1.0:
        return f"You both work in {source.industry} and share an industry background"
    if score >= 0.8:
        return (
            f"Your {source.industry} background is closely related to their {target.industry} "
            "work, which makes collaboration easy"
        )
    return "Your industries are related, with room for cross-sector collaboration"


def _position_reason(source: Profile, target: Profile, score: float) -> str:
    if score >= 1.0:
        return (
            f"Your role as {source.position} and their role as {target.position} "
            "form a natural upstream/downstream pairing"
        )
    if score >= 0.9:
        return (
            f"As {source.position}, you complement {target.position} at a strategic level"
        )
    return "You hold peer-level roles in different areas, a good fit for lateral collaboration"


def _skills_reason(source: Profile, target: Profile) -> str:
    common = find_common_elements(source.skills, target.skills)
    if common:
        return f"You share skills such as {', '.join(common[:3])}"
    if complementary_skills(source.skills, target.skills):
        return "Your skill sets complement each other well"
    return "Your skill backgrounds are related, a solid base for exchanging expertise"


def _goals_reason(source: Profile, target: Profile, score: float, synergies: list[str]) -> str:
    common = find_common_elements(source.business_goals, target.business_goals)
    if score >= 1.0:
        return f"Your business goals are strongly aligned, especially around {', '.join(common[:2])}"
    if common:
        return f"You pursue shared business goals such as {', '.join(common[:2])}"
    if synergies:
        return "Your business goals reinforce each other"
    return "Your business goals complement each other"


def generate_reasons(
    source: Profile, target: Profile, tables: HeuristicTables | None = None
) -> list[Reason]:
    """One reason per dimension that clears its threshold, plus shared interests."""
    tables = tables or default_tables()
    reasons: list[Reason] = []

    industry = industry_alignment(source.industry, target.industry, tables)
    if industry >= INDUSTRY_REASON_THRESHOLD:
        reasons.append(
            Reason(ReasonType.INDUSTRY, _industry_reason(source, target, industry), industry)
        )

    position = position_complementarity(source.position, target.position, tables)
    if position >= POSITION_REASON_THRESHOLD:
        reasons.append(
            Reason(ReasonType.POSITION, _position_reason(source, target, position), position)
        )

    skills = skills_relevance(source.skills, target.skills, tables)
    if skills >= SKILLS_REASON_THRESHOLD:
        reasons.append(Reason(ReasonType.SKILLS, _skills_reason(source, target), skills))

    goals = business_goal_synergy(source.business_goals, target.business_goals, tables)
    if goals >= GOALS_REASON_THRESHOLD:
        synergies = find_business_synergies(source.business_goals, target.business_goals, tables)
        reasons.append(
            Reason(
                ReasonType.BUSINESS_GOALS,
                _goals_reason(source, target, goals, synergies),
                goals,
            )
        )

    interests = find_common_elements(source.interests, target.interests)
    if interests:
        reasons.append(
            Reason(
                ReasonType.INTERESTS,
                f"You share interests in {', '.join(interests[:3])}, an easy conversation starter",
                min(1.0, len(interests) * INTEREST_STEP),
            )
        )

    return reasons
