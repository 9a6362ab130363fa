"""Per-category crowd baselines shared by both prediction engines.

Each category lists named time slots in priority order. The first slot whose
condition holds for the target hour supplies the baseline; otherwise the
category default applies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from social_rhythm.models.place import CrowdLevel, PlaceCategory

SlotCondition = Callable[[int, bool], bool]

TIME_SLOT_CONDITIONS: dict[str, SlotCondition] = {
    "breakfast": lambda hour, weekend: 7 <= hour <= 9,
    "lunch": lambda hour, weekend: 11 <= hour <= 13,
    "dinner": lambda hour, weekend: 17 <= hour <= 19,
    "morning": lambda hour, weekend: 8 <= hour <= 11,
    "afternoon": lambda hour, weekend: 14 <= hour <= 16,
    "business_hours": lambda hour, weekend: 9 <= hour <= 17,
    "peak": lambda hour, weekend: 9 <= hour <= 11,
    "weekend": lambda hour, weekend: weekend,
    "evening": lambda hour, weekend: 18 <= hour <= 21,
    "rush_morning": lambda hour, weekend: 7 <= hour <= 9,
    "rush_evening": lambda hour, weekend: 17 <= hour <= 19,
    "school_hours": lambda hour, weekend: 8 <= hour <= 17 and not weekend,
    "weekday_business_hours": lambda hour, weekend: 9 <= hour <= 17 and not weekend,
}

# (slot, value) pairs evaluated in order, then the default.
CATEGORY_BASELINES: dict[PlaceCategory, tuple[list[tuple[str, float]], float]] = {
    PlaceCategory.RESTAURANT: (
        [("breakfast", 0.6), ("lunch", 0.8), ("dinner", 0.9)],
        0.3,
    ),
    PlaceCategory.HOSPITAL: ([("morning", 0.7), ("afternoon", 0.5)], 0.3),
    PlaceCategory.BANK: ([("business_hours", 0.6), ("peak", 0.8)], 0.2),
    PlaceCategory.SHOPPING: ([("weekend", 0.7), ("evening", 0.8)], 0.5),
    PlaceCategory.TRANSPORT: (
        [("rush_morning", 0.9), ("rush_evening", 0.9)],
        0.4,
    ),
    PlaceCategory.GOVERNMENT: (
        [("weekday_business_hours", 0.6), ("business_hours", 0.1)],
        0.2,
    ),
    PlaceCategory.EDUCATION: ([("school_hours", 0.7)], 0.3),
    PlaceCategory.ENTERTAINMENT: ([("weekend", 0.8), ("evening", 0.7)], 0.5),
    PlaceCategory.OTHER: ([], 0.4),
}

CROWD_LEVEL_VALUES: dict[CrowdLevel, float] = {
    CrowdLevel.LOW: 0.125,
    CrowdLevel.MEDIUM: 0.375,
    CrowdLevel.HIGH: 0.625,
    CrowdLevel.VERY_HIGH: 0.875,
}

CROWD_LEVEL_ORDER: list[CrowdLevel] = [
    CrowdLevel.LOW,
    CrowdLevel.MEDIUM,
    CrowdLevel.HIGH,
    CrowdLevel.VERY_HIGH,
]


def is_weekend(moment: datetime) -> bool:
    return moment.weekday() >= 5


def category_baseline(category: PlaceCategory, hour: int, weekend: bool) -> float:
    """Return the baseline crowd value (0-1) for a category at an hour."""

    slots, default = CATEGORY_BASELINES.get(
        category, CATEGORY_BASELINES[PlaceCategory.OTHER]
    )
    for slot_name, value in slots:
        if TIME_SLOT_CONDITIONS[slot_name](hour, weekend):
            return value
    return default


def value_to_crowd_level(value: float) -> CrowdLevel:
    if value <= 0.25:
        return CrowdLevel.LOW
    if value <= 0.5:
        return CrowdLevel.MEDIUM
    if value <= 0.75:
        return CrowdLevel.HIGH
    return CrowdLevel.VERY_HIGH


def crowd_level_to_value(level: CrowdLevel | None) -> float:
    return CROWD_LEVEL_VALUES.get(level, 0.5)
