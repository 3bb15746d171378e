"""Pure scoring functions: dimensions, weighting, reasons, preference match and ranking.

Nothing in this package touches the store; every function takes profiles and
tables and returns plain values.
"""

from event_matching.scoring.combiner import (
    combine,
    recommendation_strength,
    resolve_weights,
    to_api_score,
)
from event_matching.scoring.dimensions import MatchDimensions, score_dimensions
from event_matching.scoring.preferences import calculate_partial_match, infer_experience_level
from event_matching.scoring.ranking import (
    FilterOptions,
    apply_filters,
    ensure_diversity,
    sort_results,
)
from event_matching.scoring.reasons import (
    find_business_synergies,
    find_common_elements,
    generate_reasons,
)
from event_matching.scoring.tables import HeuristicTables, default_tables, load_tables

__all__ = [
    # Dimensions
    "MatchDimensions",
    "score_dimensions",
    # Combination
    "combine",
    "recommendation_strength",
    "resolve_weights",
    "to_api_score",
    # Explanations
    "find_business_synergies",
    "find_common_elements",
    "generate_reasons",
    # Preferences
    "calculate_partial_match",
    "infer_experience_level",
    # Ranking
    "FilterOptions",
    "apply_filters",
    "ensure_diversity",
    "sort_results",
    # Tables
    "HeuristicTables",
    "default_tables",
    "load_tables",
]
