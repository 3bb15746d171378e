"""Dagster jobs for the event matching engine.

Jobs available in the Dagster dashboard:

- refresh_learning_job: Re-run weight adaptation, insight mining and cold-start
  phase updates for every user who left feedback in the last day
  (scheduled daily at 03:00 UTC)
- event_matching_stats_job: Log the match statistics of one event

USAGE:
Launch event_matching_stats_job from the Launchpad with
    ops:
      report_event_matching_stats:
        config:
          event_id: "event-42"
"""

from datetime import timedelta

from dagster import (
    Backoff,
    OpExecutionContext,
    RetryPolicy,
    ScheduleDefinition,
    job,
    op,
)

from event_matching.domain import utcnow

ACTIVE_WINDOW = timedelta(days=1)


# =============================================================================
# LEARNING REFRESH
# =============================================================================


@op(required_resource_keys={"matching"})
def collect_recently_active_users(context: OpExecutionContext) -> list:
    """List users with any feedback (explicit or implicit) in the last day."""
    engine = context.resources.matching.get_engine()
    since = utcnow() - ACTIVE_WINDOW

    user_ids = engine.store.users_with_feedback_since(since)
    context.log.info(f"Found {len(user_ids)} users with feedback since {since.isoformat()}")
    return user_ids


@op(
    required_resource_keys={"matching"},
    retry_policy=RetryPolicy(max_retries=2, delay=30, backoff=Backoff.EXPONENTIAL),
)
def refresh_user_learning(context: OpExecutionContext, user_ids: list) -> dict:
    """Update weights, insights and cold-start phase for each user.

    A failure for one user is logged and counted; the rest still run.
    """
    engine = context.resources.matching.get_engine()
    stats = {"users": len(user_ids), "weights_updated": 0, "insights": 0, "failed": 0}

    if not user_ids:
        context.log.info("No active users, nothing to refresh")
        return stats

    for user_id in user_ids:
        try:
            engine.update_user_weights(user_id)
            stats["weights_updated"] += 1
            stats["insights"] += len(engine.generate_algorithm_insights(user_id))
        except Exception as exc:
            stats["failed"] += 1
            context.log.warning(f"Learning refresh failed for {user_id}: {exc}")
            continue

        progress = engine.update_cold_start_progress(user_id)
        if progress.is_degraded:
            context.log.warning(f"Cold-start update degraded for {user_id}: {progress.error}")
        elif progress.value is not None:
            context.log.debug(f"  {user_id}: phase {progress.value.cold_start_phase.value}")

    context.log.info("=" * 60)
    context.log.info("LEARNING REFRESH")
    context.log.info("=" * 60)
    context.log.info(f"Users:           {stats['users']}")
    context.log.info(f"Weights updated: {stats['weights_updated']}")
    context.log.info(f"Insights mined:  {stats['insights']}")
    context.log.info(f"Failed:          {stats['failed']}")
    return stats


@job(description="Refresh learned weights, insights and cold-start phases for active users")
def refresh_learning_job():
    """Batch counterpart of the in-request learning trigger."""
    refresh_user_learning(collect_recently_active_users())


refresh_learning_schedule = ScheduleDefinition(
    name="refresh_learning_daily",
    cron_schedule="0 3 * * *",
    job=refresh_learning_job,
    description="Refresh learning state daily at 03:00 UTC",
)


# =============================================================================
# REPORTING
# =============================================================================


@op(required_resource_keys={"matching"}, config_schema={"event_id": str})
def report_event_matching_stats(context: OpExecutionContext) -> dict:
    """Log match counts, participant activity and the score distribution of one event."""
    event_id = context.op_config["event_id"]
    engine = context.resources.matching.get_engine()
    stats = engine.get_event_matching_stats(event_id)

    distribution = stats.score_distribution
    context.log.info(f"Event {event_id}: {stats.total_matches} matches")
    context.log.info(f"  Average score:        {stats.average_score}")
    context.log.info(f"  High quality matches: {stats.high_quality_matches}")
    context.log.info(
        f"  Participants:         {stats.participant_stats.total_participants} "
        f"({stats.participant_stats.active_matchers} matching)"
    )
    context.log.info(
        f"  Distribution:         high={distribution.high} "
        f"medium={distribution.medium} low={distribution.low}"
    )
    return {
        "event_id": event_id,
        "total_matches": stats.total_matches,
        "average_score": stats.average_score,
        "high_quality_matches": stats.high_quality_matches,
    }


@job(description="Log matching statistics for one event")
def event_matching_stats_job():
    report_event_matching_stats()


__all__ = [
    "refresh_learning_job",
    "event_matching_stats_job",
    "refresh_learning_schedule",
]
