"""Pure aggregations over a user's feedback history."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from event_matching.domain import FeedbackLearningStats, FeedbackRecord

POSITIVE_RATING = 4
NEGATIVE_RATING = 2
MIN_CORRELATION_SAMPLES = 3


@dataclass(frozen=True)
class FeedbackPatterns:
    dimension_preferences: dict[str, float] = field(default_factory=dict)
    positive_feedback_ratio: float = 0.5
    feedback_consistency: float = 1.0
    dimension_correlations: dict[str, float] = field(default_factory=dict)
    records_analyzed: int = 0


def feedback_consistency(records: list[FeedbackRecord]) -> float:
    """Mean of 1 - |Δrating|/4 over every pair of rated records; 1.0 with fewer than two."""
    ratings = [r.rating for r in records if r.rating]
    total = 0.0
    pairs = 0
    for i, first in enumerate(ratings):
        for second in ratings[i + 1 :]:
            total += 1 - abs(first - second) / 4
            pairs += 1
    return total / pairs if pairs else 1.0


def dimension_correlations(records: list[FeedbackRecord]) -> dict[str, float]:
    """avg/5 per sub-rating with at least three samples, from records that also carry a rating."""
    samples: dict[str, list[int]] = defaultdict(list)
    for record in records:
        if record.dimensions is None or not record.rating:
            continue
        for dimension, score in record.dimensions.rated().items():
            samples[dimension].append(score)
    return {
        dimension: sum(scores) / len(scores) / 5
        for dimension, scores in samples.items()
        if len(scores) >= MIN_CORRELATION_SAMPLES
    }


def analyze_patterns(records: list[FeedbackRecord]) -> FeedbackPatterns:
    """Summarize a feedback window.

    ``dimension_preferences`` divides each sub-rating sum by the number of
    records analysed, not by the number of records that rated that dimension,
    so sparsely rated dimensions are pulled toward zero.
    """
    if not records:
        return FeedbackPatterns()

    sums: dict[str, float] = defaultdict(float)
    positive = 0
    for record in records:
        if record.rating and record.rating >= POSITIVE_RATING:
            positive += 1
        if record.dimensions is not None:
            for dimension, score in record.dimensions.rated().items():
                sums[dimension] += score

    total = len(records)
    return FeedbackPatterns(
        dimension_preferences={dimension: value / total for dimension, value in sums.items()},
        positive_feedback_ratio=positive / total,
        feedback_consistency=feedback_consistency(records),
        dimension_correlations=dimension_correlations(records),
        records_analyzed=total,
    )


def compute_learning_stats(
    user_id: str,
    event_id: str | None,
    records: list[FeedbackRecord],
    previous: FeedbackLearningStats | None = None,
    now: datetime | None = None,
) -> FeedbackLearningStats:
    """Recompute the stored counters from scratch over ``records``."""
    ratings = [r.rating for r in records if r.rating]
    total = len(records)
    positive = sum(1 for rating in ratings if rating >= POSITIVE_RATING)
    negative = sum(1 for rating in ratings if rating <= NEGATIVE_RATING)

    average = sum(ratings) / len(ratings) if ratings else 0.0
    if not ratings and previous is not None:
        average = previous.avg_match_quality_rating

    return FeedbackLearningStats(
        user_id=user_id,
        event_id=event_id,
        total_feedback_count=total,
        positive_feedback_count=positive,
        negative_feedback_count=negative,
        avg_match_quality_rating=average,
        connection_success_rate=positive / total if total else 0.0,
        meeting_success_rate=previous.meeting_success_rate if previous else 0.0,
        algorithm_accuracy_score=previous.algorithm_accuracy_score if previous else 0.0,
        last_learning_update=now,
    )
