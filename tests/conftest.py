"""Shared fixtures: sample profiles, a seeded in-memory store, and a SQLite-backed SQL store."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from event_matching.domain import MatchResult, Profile
from event_matching.engine import MatchingEngine
from event_matching.models import Base
from event_matching.models.enums import RecommendationStrength
from event_matching.store.memory import InMemoryStore
from event_matching.store.sql import SqlStore

EVENT_ID = "summit-2026"


def make_profile(user_id: str, **fields) -> Profile:
    return Profile(id=user_id, name=fields.pop("name", user_id.title()), **fields)


def make_result(
    user_id: str,
    score: int,
    industry: str | None = None,
    position: str | None = None,
    company: str | None = None,
    strength: RecommendationStrength = RecommendationStrength.LOW,
) -> MatchResult:
    return MatchResult(
        target_user=Profile(id=user_id, industry=industry, position=position, company=company),
        match_score=score,
        recommendation_strength=strength,
    )


@pytest.fixture
def ceo() -> Profile:
    return make_profile(
        "ceo",
        name="Alice Chen",
        industry="Tech",
        position="CEO",
        company="Acme",
        bio="Building developer tools",
        skills=["fundraising", "strategy", "finance"],
        interests=["golf", "AI"],
        business_goals=["funding"],
    )


@pytest.fixture
def investor() -> Profile:
    return make_profile(
        "investor",
        name="Bob Li",
        industry="Tech",
        position="Investor",
        company="Fund One",
        skills=["fundraising", "strategy", "finance"],
        interests=["golf"],
        business_goals=["funding"],
    )


@pytest.fixture
def engineer() -> Profile:
    return make_profile(
        "engineer",
        industry="Software Development",
        position="Senior Engineer",
        company="Beta",
        skills=["Python", "machine learning"],
        interests=["AI"],
        business_goals=["partnership"],
    )


@pytest.fixture
def designer() -> Profile:
    return make_profile(
        "designer",
        industry="Retail",
        position="Designer",
        company="Shop",
        skills=["figma"],
        business_goals=["brand awareness"],
    )


@pytest.fixture
def banker() -> Profile:
    return make_profile(
        "banker",
        industry="Finance",
        position="CFO",
        company="First Bank",
        skills=["accounting", "risk"],
        business_goals=["investment"],
    )


@pytest.fixture
def participants(ceo, investor, engineer, designer, banker) -> list[Profile]:
    return [ceo, investor, engineer, designer, banker]


@pytest.fixture
def store(participants) -> InMemoryStore:
    """In-memory store with every sample profile joined to one event."""
    store = InMemoryStore()
    for profile in participants:
        store.add_profile(profile)
    store.add_event(EVENT_ID, [p.id for p in participants])
    return store


@pytest.fixture
def engine(store) -> MatchingEngine:
    return MatchingEngine(store)


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory SQLite database with every table created."""
    db = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(db)
    factory = sessionmaker(bind=db, expire_on_commit=False)
    yield factory
    db.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlStore:
    return SqlStore(session_factory)
