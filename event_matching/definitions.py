"""Dagster definitions for the Event Matching engine.

This module is the entry point for Dagster. It wires together:
- The matching engine resource (SQL store + heuristic tables)
- Jobs (daily learning refresh, per-event stats report)
- Schedules
"""

import os

from dagster import Definitions
from dotenv import load_dotenv

from event_matching.jobs import (
    event_matching_stats_job,
    refresh_learning_job,
    refresh_learning_schedule,
)
from event_matching.resources import MatchingEngineResource

# Load environment variables from .env file (must be before resource initialization)
load_dotenv()


def get_environment() -> str:
    """Get current environment from env var."""
    return os.getenv("ENVIRONMENT", "development")


dev_resources = {
    # Shares the process-wide engine from event_matching.db
    "matching": MatchingEngineResource(
        tables_path=os.getenv("MATCHING_TABLES_PATH") or None,
    ),
}


def get_resources():
    """Get resources based on current environment."""
    env = get_environment()

    if env == "production":
        # Production reads the same env vars; no separate resource set yet
        return dev_resources
    return dev_resources


# All jobs available in the dashboard
all_jobs = [
    refresh_learning_job,
    event_matching_stats_job,
]

# Schedules
all_schedules = [
    refresh_learning_schedule,
]

defs = Definitions(
    resources=get_resources(),
    jobs=all_jobs,
    schedules=all_schedules,
)


def main():
    """Entry point for CLI usage."""
    print("Event Matching Dagster project loaded successfully!")
    print(f"Environment: {get_environment()}")
    print(f"Jobs: {len(all_jobs)}")
    print(f"Schedules: {len(all_schedules)}")
    print("\nAvailable jobs:")
    for job in all_jobs:
        print(f"  - {job.name}")
    print("\nRun 'dagster dev' to start the development server.")


if __name__ == "__main__":
    main()
