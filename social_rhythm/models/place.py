"""Place records consumed by the prediction and recommendation engines."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PlaceCategory(str, Enum):
    RESTAURANT = "restaurant"
    HOSPITAL = "hospital"
    BANK = "bank"
    GOVERNMENT = "government"
    SHOPPING = "shopping"
    TRANSPORT = "transport"
    EDUCATION = "education"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class CrowdLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"


class NoiseLevel(str, Enum):
    QUIET = "quiet"
    MODERATE = "moderate"
    LOUD = "loud"
    VERY_LOUD = "very_loud"


class Coordinates(BaseModel):
    lat: float
    lng: float


class PlaceStatus(BaseModel):
    """Live status refreshed on every status tick."""

    is_open: bool = True
    queue_length: int = 0
    estimated_wait_time: float = 0
    # 0-1
    crowd_density: float = Field(default=0.0, ge=0.0, le=1.0)
    last_updated: datetime | None = None


class AccessibilityInfo(BaseModel):
    wheelchair_accessible: bool = False
    has_elevator: bool = False
    has_ramp: bool = False
    has_accessible_parking: bool = False
    has_accessible_restroom: bool = False


class TimeSlot(BaseModel):
    # HH:mm
    open: str
    close: str


class OpenHours(BaseModel):
    monday: list[TimeSlot] = Field(default_factory=list)
    tuesday: list[TimeSlot] = Field(default_factory=list)
    wednesday: list[TimeSlot] = Field(default_factory=list)
    thursday: list[TimeSlot] = Field(default_factory=list)
    friday: list[TimeSlot] = Field(default_factory=list)
    saturday: list[TimeSlot] = Field(default_factory=list)
    sunday: list[TimeSlot] = Field(default_factory=list)


class Place(BaseModel):
    """A searchable location with static attributes and live status."""

    id: str
    name: str = ""
    address: str = ""
    coordinates: Coordinates
    category: PlaceCategory = PlaceCategory.OTHER
    current_status: PlaceStatus = Field(default_factory=PlaceStatus)
    # minutes
    wait_time: float = 0
    crowd_level: CrowdLevel = CrowdLevel.MEDIUM
    noise_level: NoiseLevel = NoiseLevel.MODERATE
    accessibility: AccessibilityInfo = Field(default_factory=AccessibilityInfo)
    open_hours: OpenHours = Field(default_factory=OpenHours)
