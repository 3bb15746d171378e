"""Keyword lookup tables behind the heuristic scorers.

The tables are data, not code: they live in ``default_tables.yaml`` and can
be swapped for another file (``MATCHING_TABLES_PATH`` or ``load_tables``)
without touching the scorers.
"""

import functools
import logging
import re
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field

from event_matching.models.enums import ExperienceLevel

logger = logging.getLogger(__name__)

DEFAULT_TABLES_PATH = Path(__file__).with_name("default_tables.yaml")

Keywords = list[str]


class KeywordRelation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    upstream: Keywords
    downstream: Keywords


class KeywordExpansion(BaseModel):
    model_config = ConfigDict(extra="forbid")

    keywords: Keywords
    related: list[str]


class HeuristicTables(BaseModel):
    """Validated contents of a tables file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    industry_clusters: dict[str, Keywords]
    complementary_industries: list[tuple[Keywords, Keywords]]
    position_relations: list[KeywordRelation]
    position_tiers: dict[str, Keywords]
    experience_levels: dict[int, Keywords]
    experience_level_inference: dict[ExperienceLevel, Keywords]
    goal_categories: dict[str, Keywords]
    complementary_goals: list[tuple[Keywords, Keywords]]
    skill_categories: dict[str, Keywords]
    complementary_skills: list[tuple[Keywords, Keywords]]
    related_industries: list[KeywordExpansion] = Field(default_factory=list)
    complementary_positions: list[KeywordExpansion] = Field(default_factory=list)


def normalize(value: str | None) -> str:
    return (value or "").strip().lower()


@functools.lru_cache(maxsize=4096)
def _keyword_pattern(keyword: str) -> re.Pattern:
    if keyword.isascii():
        # whole word, optional plural suffix
        return re.compile(rf"(?<![a-z0-9]){re.escape(keyword)}(?:e?s)?(?![a-z0-9])")
    return re.compile(re.escape(keyword))


def contains_keyword(text: str, keyword: str) -> bool:
    """True if ``keyword`` occurs in ``text`` (both already lower-cased)."""
    if not text or not keyword:
        return False
    return _keyword_pattern(keyword.lower()).search(text) is not None


def contains_any(text: str, keywords: Keywords) -> bool:
    return any(contains_keyword(text, kw) for kw in keywords)


def pair_matches(a: str, b: str, pair: tuple[Keywords, Keywords]) -> bool:
    """Symmetric check of a complementary pair against two normalized values."""
    left, right = pair
    return (contains_any(a, left) and contains_any(b, right)) or (
        contains_any(a, right) and contains_any(b, left)
    )


def load_tables(path: str | Path | None = None) -> HeuristicTables:
    """Load and validate a tables file; the packaged defaults when ``path`` is None.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty
        pydantic.ValidationError: If the file doesn't describe valid tables
    """
    if path is None:
        return default_tables()
    return _load(Path(path))


@functools.lru_cache(maxsize=1)
def default_tables() -> HeuristicTables:
    return _load(DEFAULT_TABLES_PATH)


def _load(path: Path) -> HeuristicTables:
    if not path.exists():
        raise FileNotFoundError(f"Tables file not found: {path}")

    logger.info("Loading heuristic tables from %s", path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        raise ValueError(f"Tables file is empty: {path}")

    return HeuristicTables.model_validate(data)
