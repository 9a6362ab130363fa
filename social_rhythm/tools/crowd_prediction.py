"""Crowd-level prediction for a place at a target time.

The prediction blends the category baseline with the place's historical
report pattern, then nudges it with independent adjustment factors. Per-place
history is rebuilt in full from the caller-supplied reports on every call.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from social_rhythm.models.place import Place
from social_rhythm.models.report import Report
from social_rhythm.models.results import (
    CrowdPrediction,
    HistoricalPattern,
    PredictionFactor,
    TimeWindow,
)
from social_rhythm.tools.category_baselines import (
    category_baseline,
    crowd_level_to_value,
    is_weekend,
    value_to_crowd_level,
)
from social_rhythm.tools.providers import RandomWeatherProvider, WeatherProvider
from social_rhythm.utils.logging_config import logger

FACTOR_IMPACT_FLOOR = 0.05
FACTOR_SCALE = 0.5
PREDICTION_WINDOW = timedelta(minutes=30)
CONFIDENCE_DECAY_HORIZON = timedelta(hours=24)

WEATHER_IMPACTS = {
    "rainy": (0.2, "Rain pushes visitors indoors"),
    "snowy": (-0.3, "Snow keeps people at home"),
    "sunny": (0.1, "Sunny weather, good for going out"),
    "cloudy": (0.0, "Normal weather conditions"),
}


def _time_of_day_factor(target_time: datetime) -> PredictionFactor:
    hour = target_time.hour
    impact, description = 0.0, ""

    if 7 <= hour <= 9:
        impact, description = 0.3, "Morning rush hour, more foot traffic"
    elif 11 <= hour <= 13:
        impact, description = 0.4, "Lunch hours, dense foot traffic"
    elif 17 <= hour <= 19:
        impact, description = 0.5, "Evening rush hour, peak foot traffic"
    elif hour >= 22 or hour <= 6:
        impact, description = -0.4, "Late night or early morning, very few people"

    return PredictionFactor(name="time_of_day", impact=impact, description=description)


def _holiday_factor(target_time: datetime) -> PredictionFactor:
    # TODO: consult a public-holiday calendar once one is available to the service.
    if is_weekend(target_time):
        return PredictionFactor(
            name="holiday",
            impact=0.2,
            description="Weekend, leisure venues get busier",
        )
    return PredictionFactor(
        name="holiday",
        impact=0.1,
        description="Weekday, business venues relatively busy",
    )


def _special_event_factor(place: Place, target_time: datetime) -> PredictionFactor:
    return PredictionFactor(
        name="special_event",
        impact=0.0,
        description="No special events nearby",
    )


def _seasonal_factor(target_time: datetime) -> PredictionFactor:
    month = target_time.month
    impact, description = 0.0, ""

    if 6 <= month <= 9:
        impact, description = 0.1, "Summer, indoor venues more popular"
    elif month >= 12 or month <= 3:
        impact, description = 0.15, "Winter, indoor venues get busier"

    return PredictionFactor(name="seasonal", impact=impact, description=description)


def factor_consistency(factors: list[PredictionFactor]) -> float:
    """1 minus the population variance of the impacts, floored at 0."""

    if not factors:
        return 0.0

    impacts = [f.impact for f in factors]
    mean = sum(impacts) / len(impacts)
    variance = sum((impact - mean) ** 2 for impact in impacts) / len(impacts)
    return max(0.0, 1 - variance)


def build_patterns(reports: list[Report]) -> list[HistoricalPattern]:
    """Aggregate crowd reports into (hour, weekday) averages."""

    buckets: dict[tuple[int, int], list[float]] = {}
    for report in reports:
        if not report.data.crowd_level:
            continue
        key = (report.timestamp.hour, report.timestamp.weekday())
        buckets.setdefault(key, []).append(crowd_level_to_value(report.data.crowd_level))

    return [
        HistoricalPattern(
            hour=hour,
            day_of_week=day_of_week,
            average_crowd_level=sum(values) / len(values),
            sample_count=len(values),
        )
        for (hour, day_of_week), values in buckets.items()
    ]


class CrowdPredictionEngine:
    """Predicts crowd levels, holding per-place report history.

    History maps live for the lifetime of the instance and are guarded by a
    lock so a shared engine can serve concurrent callers.
    """

    def __init__(
        self,
        weather_provider: Optional[WeatherProvider] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.weather_provider = weather_provider or RandomWeatherProvider()
        self.clock = clock
        self._historical_data: dict[str, list[Report]] = {}
        self._patterns: dict[str, list[HistoricalPattern]] = {}
        self._lock = threading.RLock()

    def predict_crowd_level(
        self,
        place: Place,
        target_time: datetime,
        historical_reports: Optional[list[Report]] = None,
    ) -> CrowdPrediction:
        """Predict the crowd level at ``place`` around ``target_time``."""

        with self._lock:
            self.update_historical_data(place.id, historical_reports or [])
            base = self._base_prediction(place, target_time)
            factors = self._prediction_factors(place, target_time)
            adjusted = self._apply_factors(base, factors)
            confidence = self._confidence(place.id, target_time, factors)

        level = value_to_crowd_level(adjusted)
        logger.debug(
            "predict_crowd_level place=%s base=%.3f adjusted=%.3f level=%s",
            place.id,
            base,
            adjusted,
            level.value,
        )

        return CrowdPrediction(
            place_id=place.id,
            predicted_crowd_level=level,
            confidence=confidence,
            time_window=TimeWindow(
                start=target_time - PREDICTION_WINDOW,
                end=target_time + PREDICTION_WINDOW,
            ),
            factors=factors,
        )

    def predict_crowd_trend(
        self,
        place: Place,
        start_time: datetime,
        end_time: datetime,
        interval_minutes: int = 30,
        historical_reports: Optional[list[Report]] = None,
    ) -> list[CrowdPrediction]:
        """Predict from ``start_time`` to ``end_time`` inclusive, every interval."""

        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")

        step = timedelta(minutes=interval_minutes)
        predictions: list[CrowdPrediction] = []
        current = start_time
        while current <= end_time:
            predictions.append(
                self.predict_crowd_level(place, current, historical_reports)
            )
            current += step
        return predictions

    def update_historical_data(self, place_id: str, reports: list[Report]) -> None:
        """Replace the place's history and rebuild its pattern table."""

        with self._lock:
            self._historical_data[place_id] = list(reports)
            self._patterns[place_id] = build_patterns(reports)

    def get_historical_patterns(self, place_id: str) -> list[HistoricalPattern]:
        with self._lock:
            return list(self._patterns.get(place_id, []))

    def _historical_pattern(
        self, place_id: str, hour: int, day_of_week: int
    ) -> Optional[HistoricalPattern]:
        for pattern in self._patterns.get(place_id, []):
            if pattern.hour == hour and pattern.day_of_week == day_of_week:
                return pattern
        return None

    def _base_prediction(self, place: Place, target_time: datetime) -> float:
        base = category_baseline(
            place.category, target_time.hour, is_weekend(target_time)
        )
        pattern = self._historical_pattern(
            place.id, target_time.hour, target_time.weekday()
        )
        if pattern:
            base = (base + pattern.average_crowd_level) / 2
        return base

    def _weather_factor(self, target_time: datetime) -> PredictionFactor:
        condition = self.weather_provider.condition_at(target_time)
        impact, description = WEATHER_IMPACTS.get(condition, WEATHER_IMPACTS["cloudy"])
        return PredictionFactor(name="weather", impact=impact, description=description)

    def _prediction_factors(
        self, place: Place, target_time: datetime
    ) -> list[PredictionFactor]:
        factors = [
            _time_of_day_factor(target_time),
            self._weather_factor(target_time),
            _holiday_factor(target_time),
            _special_event_factor(place, target_time),
            _seasonal_factor(target_time),
        ]
        return [f for f in factors if abs(f.impact) > FACTOR_IMPACT_FLOOR]

    @staticmethod
    def _apply_factors(base: float, factors: list[PredictionFactor]) -> float:
        adjusted = base
        for factor in factors:
            adjusted += factor.impact * FACTOR_SCALE
        return max(0.0, min(1.0, adjusted))

    def _now_like(self, reference: datetime) -> datetime:
        """Current time, made comparable with ``reference``."""

        now = self.clock()
        if reference.tzinfo is None and now.tzinfo is not None:
            return now.astimezone().replace(tzinfo=None)
        if reference.tzinfo is not None and now.tzinfo is None:
            return now.astimezone(reference.tzinfo)
        return now

    def _confidence(
        self, place_id: str, target_time: datetime, factors: list[PredictionFactor]
    ) -> float:
        confidence = 0.5

        sample_count = len(self._historical_data.get(place_id, []))
        if sample_count > 50:
            confidence += 0.3
        elif sample_count > 20:
            confidence += 0.2
        elif sample_count > 5:
            confidence += 0.1

        confidence += factor_consistency(factors) * 0.2

        if abs(target_time - self._now_like(target_time)) > CONFIDENCE_DECAY_HORIZON:
            confidence -= 0.2

        return max(0.1, min(0.95, confidence))
