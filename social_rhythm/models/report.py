"""User-submitted observations of a place."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from social_rhythm.models.place import Coordinates, CrowdLevel, NoiseLevel, Place


class ReportType(str, Enum):
    QUICK = "quick"
    DETAILED = "detailed"
    WAIT_TIME = "wait_time"
    CROWD_LEVEL = "crowd_level"
    NOISE_LEVEL = "noise_level"
    ACCESSIBILITY = "accessibility"
    HOURS = "hours"
    SERVICE_QUALITY = "service_quality"
    # temporary closure, maintenance, etc.
    SPECIAL_STATUS = "special_status"
    OTHER = "other"


class ReportStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ReportData(BaseModel):
    wait_time: Optional[float] = None
    crowd_level: Optional[CrowdLevel] = None
    noise_level: Optional[NoiseLevel] = None
    is_open: Optional[bool] = None
    accessibility_issue: Optional[str] = None
    notes: Optional[str] = None


class Report(BaseModel):
    id: str
    user_id: str = ""
    place_id: str
    # Embedded when the report was loaded together with its place.
    place: Optional[Place] = None
    report_type: ReportType = ReportType.QUICK
    data: ReportData = Field(default_factory=ReportData)
    timestamp: datetime
    verified: bool = False
    # 0-1
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    location: Optional[Coordinates] = None
    status: ReportStatus = ReportStatus.PENDING
