"""User profiles derived from a user's settings and report history."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from social_rhythm.models.place import CrowdLevel, PlaceCategory
from social_rhythm.models.report import ReportType

AvoidanceType = Literal["crowd", "noise", "wait_time", "distance", "accessibility"]
Season = Literal["spring", "summer", "autumn", "winter"]


class ProfileTimeSlot(BaseModel):
    # HH:mm
    start: str
    end: str
    # 0-1
    preference: float


class AvoidanceFactor(BaseModel):
    type: AvoidanceType
    threshold: float
    # 0-1
    importance: float


class ReportingActivity(BaseModel):
    total_reports: int = 0
    # Share of reports that were verified, 0-1
    accuracy_score: float = 0.0
    # Reports per week
    report_frequency: float = 0.0
    preferred_report_types: list[ReportType] = Field(default_factory=list)


class UserPreferenceProfile(BaseModel):
    preferred_categories: list[PlaceCategory] = Field(default_factory=list)
    preferred_crowd_levels: list[CrowdLevel] = Field(default_factory=list)
    preferred_time_slots: list[ProfileTimeSlot] = Field(default_factory=list)
    avoidance_factors: list[AvoidanceFactor] = Field(default_factory=list)
    accessibility_requirements: list[str] = Field(default_factory=list)
    # kilometers
    max_travel_distance: float
    # minutes
    max_wait_time: float


class UserBehaviorProfile(BaseModel):
    # Share of all reports per category
    visit_frequency: dict[PlaceCategory, float] = Field(default_factory=dict)
    # minutes
    average_visit_duration: dict[PlaceCategory, float] = Field(default_factory=dict)
    reporting_activity: ReportingActivity = Field(default_factory=ReportingActivity)
    suggestion_acceptance_rate: float
    peak_activity_hours: list[int] = Field(default_factory=list)
    # Python weekday numbers, Monday = 0
    preferred_days: list[int] = Field(default_factory=list)


class RoutinePattern(BaseModel):
    name: str
    description: str
    # Occurrences per week
    frequency: float
    time_pattern: ProfileTimeSlot
    place_categories: list[PlaceCategory]
    confidence: float


class SeasonalPreference(BaseModel):
    season: Season
    preferred_categories: list[PlaceCategory]
    activity_level: float


class SocialPattern(BaseModel):
    preferred_group_size: int
    social_activity_frequency: float
    preferred_social_categories: list[PlaceCategory]


class MobilityPattern(BaseModel):
    # kilometers
    average_travel_distance: float
    preferred_transport_modes: list[str]
    mobility_radius: float


class UserPatternProfile(BaseModel):
    routine_patterns: list[RoutinePattern] = Field(default_factory=list)
    seasonal_preferences: list[SeasonalPreference] = Field(default_factory=list)
    social_pattern: SocialPattern
    mobility_pattern: MobilityPattern


class UserProfile(BaseModel):
    """Everything the profiling engine knows about one user."""

    user_id: str
    preferences: UserPreferenceProfile
    behaviors: UserBehaviorProfile
    patterns: UserPatternProfile
    last_updated: datetime
