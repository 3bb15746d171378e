"""Partial preference matching: which stated preferences a candidate satisfies."""

from event_matching.domain import PartialMatch, Preferences, Profile, round_half_up
from event_matching.models.enums import ExperienceLevel
from event_matching.scoring.dimensions import goals_preferred, industry_preferred, position_preferred
from event_matching.scoring.tables import HeuristicTables, contains_any, default_tables, normalize

CRITERION_POSITION = "target position"
CRITERION_INDUSTRY = "target industry"
CRITERION_GOALS = "business goals"
CRITERION_EXPERIENCE = "experience level"


def infer_experience_level(position: str | None, tables: HeuristicTables | None = None) -> ExperienceLevel:
    """Coarse level from title keywords; JUNIOR when nothing matches."""
    title = normalize(position)
    if not title:
        return ExperienceLevel.JUNIOR
    tables = tables or default_tables()
    for level, keywords in tables.experience_level_inference.items():
        if contains_any(title, keywords):
            return level
    return ExperienceLevel.JUNIOR


def _explanation(percentage: int, matched: list[str], missed: list[str]) -> str:
    if percentage == 100:
        return "Fully matches your preferences"
    if percentage >= 80:
        return f"Closely matches your preferences ({', '.join(matched)})"
    if percentage >= 50:
        return (
            f"Partly matches your preferences ({', '.join(matched)}) "
            f"but not on {', '.join(missed)}"
        )
    if percentage > 0:
        return f"Only matches your preferences on {', '.join(matched)}"
    return "Does not match your preferences but is recommended on other factors"


def calculate_partial_match(
    target: Profile, preferences: Preferences, tables: HeuristicTables | None = None
) -> PartialMatch:
    """Matched/missed preference categories and the matched percentage (100 when none are set).

    Company-size preferences are stored but not evaluated: there is no
    company-size data for targets.
    """
    matched: list[str] = []
    missed: list[str] = []

    def record(criterion: str, satisfied: bool) -> None:
        (matched if satisfied else missed).append(criterion)

    if preferences.target_positions:
        record(CRITERION_POSITION, position_preferred(target, preferences))
    if preferences.target_industries:
        record(CRITERION_INDUSTRY, industry_preferred(target, preferences))
    if preferences.business_goal_alignment:
        record(CRITERION_GOALS, goals_preferred(target, preferences))
    if preferences.experience_level_preference:
        level = infer_experience_level(target.position, tables)
        record(CRITERION_EXPERIENCE, level in preferences.experience_level_preference)

    evaluated = len(matched) + len(missed)
    percentage = round_half_up(len(matched) / evaluated * 100) if evaluated else 100
    return PartialMatch(
        matched_criteria=matched,
        missed_criteria=missed,
        match_percentage=percentage,
        explanation=_explanation(percentage, matched, missed),
    )
