#!/usr/bin/env python3
"""Inspect the recommendations a user would get in an event right now.

Runs the full matching pipeline against the configured database without
writing match history, then prints every result with its reasons and the
status of each best-effort step (cold start, personalization, diversity).

Usage:
    python scripts/inspect_recommendations.py <user_id> <event_id> [limit]
    python scripts/inspect_recommendations.py u-123 event-42 20

Requires:
    - DATABASE_URL or POSTGRES_* set (a .env file is picked up).
"""

import logging
import sys

from dotenv import load_dotenv

from event_matching.config import Settings
from event_matching.engine import MatchingEngine
from event_matching.errors import NotFoundError
from event_matching.services.matching import MatchOptions
from event_matching.store.sql import SqlStore

load_dotenv()


def _step(label: str, outcome) -> str:
    if outcome.is_degraded:
        return f"{label}: DEGRADED ({outcome.error})"
    if outcome.skipped:
        return f"{label}: skipped"
    return f"{label}: ok"


def inspect_recommendations(user_id: str, event_id: str, limit: int) -> None:
    engine = MatchingEngine(SqlStore(), settings=Settings.from_env())
    options = MatchOptions(limit=limit, save_to_history=False)

    try:
        run = engine.generate_matches_detailed(user_id, event_id, options)
    except NotFoundError as exc:
        print(f"  {exc}")
        sys.exit(1)

    profile = engine.store.get_cold_start_profile(user_id)
    phase = profile.cold_start_phase.value if profile else "-"

    print("\n" + "=" * 80)
    print(f"  RECOMMENDATIONS FOR {user_id} IN {event_id}")
    print(f"  Cold-start phase: {phase}")
    print("=" * 80)
    for label, outcome in (
        ("Cold start", run.cold_start),
        ("Personalization", run.personalization),
        ("Diversity", run.diversity),
    ):
        print(f"  {_step(label, outcome)}")

    if not run.results:
        print("\n  No candidates for this user in this event.")
        print("=" * 80 + "\n")
        return

    for rank, result in enumerate(run.results, start=1):
        target = result.target_user
        name = (target.name or target.id)[:40]
        headline = " @ ".join(part for part in (target.position, target.company) if part) or "-"
        print(f"\n  {rank:>2}. {name}  ({headline})")
        print(
            f"      Score: {result.match_score}  Strength: {result.recommendation_strength.value}"
        )
        if result.partial_match is not None:
            print(
                f"      Preferences: {result.partial_match.match_percentage}%  "
                f"{result.partial_match.explanation}"
            )
        for reason in result.match_reasons:
            print(f"      - [{reason.type.value}] {reason.description} ({reason.score:.2f})")
        if result.common_interests:
            print(f"      Common interests: {', '.join(result.common_interests)}")
        if result.business_synergies:
            print(f"      Synergies: {', '.join(result.business_synergies)}")

    print("\n" + "=" * 80)
    print(f"  Total results: {len(run.results)}")
    print("=" * 80 + "\n")


def main():
    if len(sys.argv) < 3:
        print("Usage: python scripts/inspect_recommendations.py <user_id> <event_id> [limit]")
        print("Example: python scripts/inspect_recommendations.py u-123 event-42 20")
        sys.exit(1)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    limit = int(sys.argv[3]) if len(sys.argv) > 3 else 10
    inspect_recommendations(sys.argv[1], sys.argv[2], limit)


if __name__ == "__main__":
    main()
