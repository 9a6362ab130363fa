"""Output records produced fresh by each engine call."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from social_rhythm.models.place import CrowdLevel, Place
from social_rhythm.models.user import User

QualityLevel = Literal["excellent", "good", "acceptable", "poor"]


class PredictionFactor(BaseModel):
    name: str
    # -1 to 1
    impact: float
    description: str = ""


class HistoricalPattern(BaseModel):
    hour: int
    day_of_week: int
    average_crowd_level: float
    sample_count: int


class TimeWindow(BaseModel):
    start: datetime
    end: datetime


class CrowdPrediction(BaseModel):
    place_id: str
    predicted_crowd_level: CrowdLevel
    confidence: float
    time_window: TimeWindow
    factors: list[PredictionFactor] = Field(default_factory=list)


class AlternativeOption(BaseModel):
    place_id: str
    place: Place
    recommended_time: datetime
    # minutes
    wait_time: float
    crowd_level: CrowdLevel


class Suggestion(BaseModel):
    id: str
    place_id: str
    place: Place
    recommended_time: datetime
    reason: str
    # 0-1
    confidence: float
    estimated_wait_time: float
    estimated_crowd_level: CrowdLevel
    alternative_options: list[AlternativeOption] = Field(default_factory=list)


class MatchQuality(BaseModel):
    level: QualityLevel
    label: str
    color: str


class CompanionMatch(BaseModel):
    """A ranked match proposal for the requesting user."""

    id: str
    # The candidate being proposed.
    user_id: str
    # The requesting user.
    target_user_id: str
    match_score: Optional[float] = None
    match_quality: QualityLevel
    status: str = "PENDING"
    created_at: datetime
    user: User


class MatchStats(BaseModel):
    total: int
    by_quality: dict[str, int] = Field(default_factory=dict)
    average_score: float
