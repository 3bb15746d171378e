"""Pydantic schemas for requests and for the structured JSON payloads.

Behavior context and insight payloads are closed tagged unions: each variant
carries a ``kind`` discriminator and is validated when it crosses the store
boundary, so downstream code works with typed objects rather than raw dicts.
"""

from typing import Annotated, Any, Literal, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from event_matching.errors import ValidationError
from event_matching.models.enums import (
    BehaviorType,
    CompanySize,
    ExperienceLevel,
    FeedbackType,
)

RATING = Annotated[int, Field(ge=1, le=5)]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ═══════════════════════════════════════════════════════════════════
# FEEDBACK DETAIL
# ═══════════════════════════════════════════════════════════════════


class FeedbackDimensions(_Strict):
    """Per-dimension 1-5 sub-ratings attached to explicit feedback."""

    industry_relevance: RATING | None = None
    position_compatibility: RATING | None = None
    business_goal_alignment: RATING | None = None
    skills_match: RATING | None = None
    communication_quality: RATING | None = None
    meeting_value: RATING | None = None
    overall_satisfaction: RATING | None = None

    def rated(self) -> dict[str, int]:
        return {k: v for k, v in self.model_dump().items() if v is not None}


class FeedbackContext(_Strict):
    match_score: float | None = None
    recommendation_rank: int | None = None
    interaction_duration: int | None = None  # seconds
    meeting_duration: int | None = None  # minutes
    connection_method: Literal["DIRECT", "THROUGH_PLATFORM", "IN_PERSON"] | None = None
    feedback_timing: Literal["IMMEDIATE", "DELAYED", "PROMPTED"] | None = None
    user_mood_indicator: Literal["POSITIVE", "NEUTRAL", "NEGATIVE"] | None = None


# ═══════════════════════════════════════════════════════════════════
# BEHAVIOR CONTEXT (tagged union on "kind")
# ═══════════════════════════════════════════════════════════════════


class MeetingContext(_Strict):
    kind: Literal["meeting"] = "meeting"
    duration_minutes: int | None = Field(default=None, ge=0)
    location: str | None = None


class SearchContext(_Strict):
    kind: Literal["search"] = "search"
    query: str | None = None
    filters: dict[str, Any] = Field(default_factory=dict)
    sort_by: str | None = None
    result_count: int | None = Field(default=None, ge=0)


class FeedbackContextPayload(_Strict):
    """Recorded alongside an explicit feedback submission."""

    kind: Literal["feedback"] = "feedback"
    feedback_type: FeedbackType
    rating: RATING | None = None
    feedback_provided: bool = True


class GenericContext(_Strict):
    kind: Literal["generic"] = "generic"
    data: dict[str, Any] = Field(default_factory=dict)


BehaviorContext = Annotated[
    MeetingContext | SearchContext | FeedbackContextPayload | GenericContext,
    Field(discriminator="kind"),
]

_CONTEXT_BY_BEHAVIOR: dict[BehaviorType, type[BaseModel]] = {
    BehaviorType.SCHEDULE_MEETING: MeetingContext,
    BehaviorType.ATTEND_MEETING: MeetingContext,
    BehaviorType.SEARCH_USERS: SearchContext,
    BehaviorType.FILTER_RESULTS: SearchContext,
    BehaviorType.SORT_RESULTS: SearchContext,
    BehaviorType.VIEW_MATCH_DETAILS: FeedbackContextPayload,
}


def infer_context_kind(behavior_type: BehaviorType, data: dict[str, Any]) -> dict[str, Any]:
    """Tag an untagged behavior payload with the variant its keys fit.

    Payloads whose keys are not all known to the typed variant for this
    behavior type are wrapped whole into the generic variant.
    """
    if "kind" in data:
        return data
    variant = _CONTEXT_BY_BEHAVIOR.get(behavior_type)
    if variant is not None:
        known = set(variant.model_fields) - {"kind"}
        required = {name for name, f in variant.model_fields.items() if f.is_required()}
        if set(data) <= known and required <= set(data):
            return {"kind": variant.model_fields["kind"].default, **data}
    return {"kind": "generic", "data": data}


# ═══════════════════════════════════════════════════════════════════
# INSIGHT PAYLOADS (tagged union on "kind")
# ═══════════════════════════════════════════════════════════════════


class DimensionPreferencePayload(_Strict):
    kind: Literal["DIMENSION_PREFERENCE"] = "DIMENSION_PREFERENCE"
    preferred_dimensions: list[str]
    weight_adjustments: dict[str, float] = Field(default_factory=dict)


class RejectedProfile(_Strict):
    industry: str | None = None
    position: str | None = None
    experience_level: ExperienceLevel | None = None


class RejectionPatternPayload(_Strict):
    kind: Literal["REJECTION_PATTERN"] = "REJECTION_PATTERN"
    common_rejection_reasons: list[str] = Field(default_factory=list)
    rejected_profiles: list[RejectedProfile] = Field(default_factory=list)
    rejected_industries: list[str] = Field(default_factory=list)
    rejected_positions: list[str] = Field(default_factory=list)


class ConnectionSuccessPayload(_Strict):
    kind: Literal["CONNECTION_SUCCESS_PATTERN"] = "CONNECTION_SUCCESS_PATTERN"
    successful_profile_types: list[str] = Field(default_factory=list)
    success_factors: dict[str, float] = Field(default_factory=dict)
    optimal_timing: list[str] = Field(default_factory=list)


class MeetingOutcomePayload(_Strict):
    kind: Literal["MEETING_OUTCOME_PATTERN"] = "MEETING_OUTCOME_PATTERN"
    positive_outcome_factors: list[str] = Field(default_factory=list)
    negative_outcome_factors: list[str] = Field(default_factory=list)
    meeting_preferences: dict[str, Any] = Field(default_factory=dict)


class TemporalPatternPayload(_Strict):
    kind: Literal["TEMPORAL_PATTERN"] = "TEMPORAL_PATTERN"
    active_hours: list[int] = Field(default_factory=list)
    response_time_patterns: dict[str, float] = Field(default_factory=dict)
    seasonal_preferences: dict[str, Any] = Field(default_factory=dict)


InsightPayload = Annotated[
    DimensionPreferencePayload
    | RejectionPatternPayload
    | ConnectionSuccessPayload
    | MeetingOutcomePayload
    | TemporalPatternPayload,
    Field(discriminator="kind"),
]


class InitialPreferences(_Strict):
    """Preferences inferred for a user without history."""

    inferred_target_industries: list[str] = Field(default_factory=list)
    inferred_target_positions: list[str] = Field(default_factory=list)
    similarity_based_weights: dict[str, float] = Field(default_factory=dict)
    profile_based_interests: list[str] = Field(default_factory=list)
    behavioral_indicators: dict[str, Any] = Field(default_factory=dict)


behavior_context_adapter: TypeAdapter = TypeAdapter(BehaviorContext)
insight_payload_adapter: TypeAdapter = TypeAdapter(InsightPayload)


# ═══════════════════════════════════════════════════════════════════
# REQUESTS
# ═══════════════════════════════════════════════════════════════════


class SubmitFeedbackRequest(_Strict):
    target_user_id: str = Field(min_length=1)
    feedback_type: FeedbackType
    event_id: str | None = None
    match_id: int | None = None
    rating: RATING | None = None
    feedback_dimensions: FeedbackDimensions | None = None
    comments: str | None = Field(default=None, max_length=2000)
    feedback_context: FeedbackContext | None = None


class TrackBehaviorRequest(_Strict):
    behavior_type: BehaviorType
    target_user_id: str | None = None
    event_id: str | None = None
    behavior_data: BehaviorContext | None = None
    session_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _tag_behavior_data(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        data = values.get("behavior_data")
        if isinstance(data, dict):
            try:
                behavior_type = BehaviorType(values.get("behavior_type"))
            except ValueError:
                return values
            values = {**values, "behavior_data": infer_context_kind(behavior_type, data)}
        return values


class PreferencesRequest(_Strict):
    target_positions: list[str] = Field(default_factory=list)
    target_industries: list[str] = Field(default_factory=list)
    company_size_preference: list[CompanySize] = Field(default_factory=list)
    experience_level_preference: list[ExperienceLevel] = Field(default_factory=list)
    business_goal_alignment: list[str] = Field(default_factory=list)
    geographic_preference: list[str] | None = None


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_request(model: type[ModelT], data: Any) -> ModelT:
    """Validate ``data`` against ``model``; raise the engine's ValidationError on failure."""
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise ValidationError(problems) from exc
