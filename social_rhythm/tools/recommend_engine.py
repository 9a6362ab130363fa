"""Visit-time suggestions built on the shared crowd baselines."""

from __future__ import annotations

import random
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from pydantic import BaseModel

from social_rhythm.models.place import Coordinates, CrowdLevel, Place, PlaceCategory
from social_rhythm.models.results import AlternativeOption, Suggestion
from social_rhythm.models.user import User
from social_rhythm.tools.category_baselines import (
    CROWD_LEVEL_ORDER,
    category_baseline,
    is_weekend,
    value_to_crowd_level,
)
from social_rhythm.tools.providers import (
    HistoricalAdjustmentProvider,
    RandomHistoricalAdjustment,
)
from social_rhythm.utils.geo import distance_km
from social_rhythm.utils.logging_config import logger

DEFAULT_SUGGESTION_RADIUS_KM = 10.0
MAX_GENERAL_PLACES = 5
MIN_GENERAL_CONFIDENCE = 0.3
REASON_SEPARATOR = "，"

# (low, span) in minutes; samples fall in [low, low + span).
WAIT_TIME_RANGES: dict[CrowdLevel, tuple[float, float]] = {
    CrowdLevel.LOW: (1, 5),
    CrowdLevel.MEDIUM: (5, 10),
    CrowdLevel.HIGH: (15, 15),
    CrowdLevel.VERY_HIGH: (30, 20),
}

CROWD_REASONS = {
    CrowdLevel.LOW: "Few people around, relatively quiet",
    CrowdLevel.MEDIUM: "Moderate crowd, not too busy",
    CrowdLevel.HIGH: "Fairly crowded, consider going off-peak",
    CrowdLevel.VERY_HIGH: "Very crowded, consider another time",
}


class RecommendationContext(BaseModel):
    user: User
    current_location: Optional[Coordinates] = None
    target_place: Optional[Place] = None
    preferred_time: Optional[datetime] = None
    # kilometers
    max_distance: Optional[float] = None


class SuggestionOptions(BaseModel):
    include_alternatives: bool = True
    max_alternatives: int = 3


def _at(moment: datetime, hour: int) -> datetime:
    return moment.replace(hour=hour, minute=0, second=0, microsecond=0)


def get_optimal_time(place: Place, current_time: datetime) -> datetime:
    """Shift a visit off the category's peak hours.

    Fixed lookup per category; categories without a rule keep the input time.
    """

    hour = current_time.hour
    category = place.category

    if category == PlaceCategory.RESTAURANT:
        if 11 <= hour <= 13:
            return _at(current_time, 14)
        if 17 <= hour <= 19:
            return _at(current_time, 20)

    elif category in (PlaceCategory.BANK, PlaceCategory.GOVERNMENT):
        # Morning peak, or before opening.
        if hour <= 11:
            return _at(current_time, 14)
        if hour > 17:
            # Closed for the night; next afternoon.
            return _at(current_time + timedelta(days=1), 14)

    elif category == PlaceCategory.TRANSPORT:
        if 7 <= hour <= 9:
            return _at(current_time, 10)
        if 17 <= hour <= 19:
            return _at(current_time, 20)

    return current_time


class RecommendEngine:
    """Generates ranked suggestions over a mutable in-memory place list."""

    def __init__(
        self,
        places: Optional[list[Place]] = None,
        adjustment_provider: Optional[HistoricalAdjustmentProvider] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        radius_km: float = DEFAULT_SUGGESTION_RADIUS_KM,
    ):
        self.places: list[Place] = list(places or [])
        self.rng = rng or random.Random()
        self.adjustment_provider = adjustment_provider or RandomHistoricalAdjustment(
            self.rng
        )
        self.clock = clock
        self.radius_km = radius_km
        self._historical_data: dict[str, list[dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def update_places(self, places: list[Place]) -> None:
        with self._lock:
            self.places = list(places)

    def add_historical_data(self, place_id: str, data: dict[str, Any]) -> None:
        """Record a timestamped observation for ``place_id``."""

        with self._lock:
            self._historical_data.setdefault(place_id, []).append(
                {**data, "timestamp": self.clock()}
            )

    def get_historical_data(self, place_id: str) -> list[dict[str, Any]]:
        with self._lock:
            return list(self._historical_data.get(place_id, []))

    def generate_suggestions(
        self,
        context: RecommendationContext,
        options: Optional[SuggestionOptions] = None,
    ) -> list[Suggestion]:
        """Suggest when to visit, highest confidence first."""

        options = options or SuggestionOptions()

        if context.target_place:
            suggestions = [
                self._place_suggestion(context.target_place, context, options)
            ]
        else:
            suggestions = []
            candidates = self._filter_places(context)
            for place in candidates[:MAX_GENERAL_PLACES]:
                suggestion = self._place_suggestion(place, context, options)
                if suggestion.confidence > MIN_GENERAL_CONFIDENCE:
                    suggestions.append(suggestion)

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        logger.debug(
            "generate_suggestions targeted=%s returned=%s",
            context.target_place is not None,
            len(suggestions),
        )
        return suggestions

    def predict_crowd_level(self, place: Place, when: datetime) -> CrowdLevel:
        base = value_to_crowd_level(
            category_baseline(place.category, when.hour, is_weekend(when))
        )
        adjustment = self.adjustment_provider.adjustment_for(place.id, when)

        index = CROWD_LEVEL_ORDER.index(base)
        if adjustment > 0.1:
            index = min(len(CROWD_LEVEL_ORDER) - 1, index + 1)
        elif adjustment < -0.1:
            index = max(0, index - 1)
        return CROWD_LEVEL_ORDER[index]

    def sample_wait_time(self, crowd_level: CrowdLevel) -> float:
        low, span = WAIT_TIME_RANGES.get(crowd_level, (5, 0))
        return self.rng.random() * span + low

    def _place_suggestion(
        self,
        place: Place,
        context: RecommendationContext,
        options: SuggestionOptions,
    ) -> Suggestion:
        when = context.preferred_time or self.clock()
        crowd_level = self.predict_crowd_level(place, when)
        wait_time = self.sample_wait_time(crowd_level)

        alternatives = (
            self._find_alternatives(place, context, options.max_alternatives)
            if options.include_alternatives
            else []
        )

        return Suggestion(
            id=f"suggestion_{place.id}_{int(time.time() * 1000)}",
            place_id=place.id,
            place=place,
            recommended_time=get_optimal_time(place, when),
            reason=self._reason(crowd_level, wait_time, context),
            confidence=self._confidence(place, context, crowd_level, wait_time),
            estimated_wait_time=wait_time,
            estimated_crowd_level=crowd_level,
            alternative_options=alternatives,
        )

    def _confidence(
        self,
        place: Place,
        context: RecommendationContext,
        crowd_level: CrowdLevel,
        wait_time: float,
    ) -> float:
        prefs = context.user.preferences
        confidence = 0.5

        if prefs.preferred_crowd_level == crowd_level:
            confidence += 0.2
        elif place.noise_level in prefs.avoid_noise_level:
            confidence -= 0.3

        if wait_time <= prefs.max_wait_time:
            confidence += 0.2
        else:
            confidence -= 0.3

        if context.current_location:
            distance = distance_km(context.current_location, place.coordinates)
            if distance <= 2:
                confidence += 0.1
            elif distance > 10:
                confidence -= 0.2

        return max(0.0, min(1.0, confidence))

    @staticmethod
    def _reason(
        crowd_level: CrowdLevel, wait_time: float, context: RecommendationContext
    ) -> str:
        reasons = [CROWD_REASONS[crowd_level]]

        if wait_time <= 5:
            reasons.append("Expected wait is very short")
        elif wait_time <= 15:
            reasons.append("Expected wait is moderate")
        else:
            reasons.append("Expected wait is long, plan ahead")

        if context.user.preferences.preferred_crowd_level == crowd_level:
            reasons.append("Matches your crowd preference")

        return REASON_SEPARATOR.join(reasons)

    def _find_alternatives(
        self, original: Place, context: RecommendationContext, max_count: int
    ) -> list[AlternativeOption]:
        similar = [
            p
            for p in self.places
            if p.id != original.id and p.category == original.category
        ]
        if context.current_location:
            similar.sort(
                key=lambda p: distance_km(context.current_location, p.coordinates)
            )

        when = context.preferred_time or self.clock()
        alternatives = []
        for place in similar[:max_count]:
            crowd_level = self.predict_crowd_level(place, when)
            alternatives.append(
                AlternativeOption(
                    place_id=place.id,
                    place=place,
                    recommended_time=get_optimal_time(place, when),
                    wait_time=self.sample_wait_time(crowd_level),
                    crowd_level=crowd_level,
                )
            )
        return sorted(alternatives, key=lambda a: a.wait_time)

    def _filter_places(self, context: RecommendationContext) -> list[Place]:
        with self._lock:
            filtered = list(self.places)

        if context.current_location:
            radius = (
                context.max_distance
                if context.max_distance is not None
                else self.radius_km
            )
            filtered = [
                p
                for p in filtered
                if distance_km(context.current_location, p.coordinates) <= radius
            ]

        if context.user.preferences.accessibility_needs.wheelchair_accessible:
            filtered = [p for p in filtered if p.accessibility.wheelchair_accessible]

        return filtered
