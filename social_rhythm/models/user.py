"""User records and the two preference bundles used for scoring."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from social_rhythm.models.place import (
    AccessibilityInfo,
    Coordinates,
    CrowdLevel,
    NoiseLevel,
    TimeSlot,
)


class UserPreferences(BaseModel):
    """Preferences consumed by the recommendation engine."""

    preferred_crowd_level: CrowdLevel = CrowdLevel.MEDIUM
    # minutes
    max_wait_time: float = 15
    accessibility_needs: AccessibilityInfo = Field(default_factory=AccessibilityInfo)
    preferred_time_slots: list[TimeSlot] = Field(default_factory=list)
    avoid_noise_level: list[NoiseLevel] = Field(default_factory=list)


class AgeRange(BaseModel):
    min: int
    max: int


class MatchPreferences(BaseModel):
    """Companion-matching preferences.

    ``interests`` and ``preferred_times`` are optional on purpose: a missing
    list skips that factor entirely, while an empty list still takes part in
    the comparison.
    """

    # meters
    max_distance: Optional[float] = None
    age_range: Optional[AgeRange] = None
    # "male", "female", "any" or absent
    gender_preference: Optional[str] = None
    group_size_preference: int = 2
    interests: Optional[list[str]] = None
    safety_level: Optional[int] = None
    preferred_times: Optional[list[str]] = None


class User(BaseModel):
    id: str
    name: str = ""
    age: Optional[int] = None
    gender: Optional[str] = None
    location: Optional[Coordinates] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    match_preferences: Optional[MatchPreferences] = None
