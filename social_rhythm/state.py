"""Shared LangGraph state definitions.

All graph states are TypedDicts so state is explicit, serializable, and
consistent across graph nodes. Engine inputs arrive as plain JSON and are
validated into pydantic models inside the nodes.
"""

from __future__ import annotations

from typing import TypedDict

JsonDict = dict[str, object]
JsonList = list[JsonDict]


class MatchingState(TypedDict, total=False):
    """State for the companion matching graph."""

    # Requesting user record.
    user: JsonDict
    # Candidate user records supplied by the caller.
    candidates: JsonList
    # "standard", "quick_location" or "interest".
    mode: str
    # limit / min_score / include_score / max_distance / target_interests.
    options: JsonDict
    # Ranked match proposals.
    matches: JsonList
    # Counts by quality tier and average score.
    stats: JsonDict
    # Error string if any node fails.
    error: str
    # Response metadata for observability.
    response_metadata: JsonDict


class CrowdForecastState(TypedDict, total=False):
    """State for crowd-level forecasting."""

    place: JsonDict
    # ISO-8601 timestamps.
    target_time: str
    # Optional trend window; trend is skipped when absent.
    trend_start: str
    trend_end: str
    interval_minutes: int
    # Reports used to rebuild the place's historical pattern.
    reports: JsonList
    prediction: JsonDict
    trend: JsonList
    error: str
    response_metadata: JsonDict


class SuggestionsState(TypedDict, total=False):
    """State for visit suggestions."""

    # Places the engine chooses from.
    places: JsonList
    # RecommendationContext fields (user, current_location, target_place, ...).
    context: JsonDict
    # SuggestionOptions fields.
    options: JsonDict
    # Number of places held by the engine after loading.
    places_loaded: int
    suggestions: JsonList
    error: str
    response_metadata: JsonDict


class UserProfileState(TypedDict, total=False):
    """State for user profiling and profile-based place ranking."""

    user: JsonDict
    # The user's own reports, optionally with embedded places.
    reports: JsonList
    suggestion_history: JsonList
    # Places to rank against the profile.
    places: JsonList
    # Suggestions to estimate acceptance for.
    candidate_suggestions: JsonList
    # ISO-8601 timestamp used for time preference; defaults to now.
    current_time: str
    profile: JsonDict
    recommended_places: JsonList
    # {suggestion_id, acceptance} per candidate suggestion.
    acceptance: JsonList
    error: str
    response_metadata: JsonDict
