"""Pluggable signal providers for the prediction engines.

No live weather feed or historical model is wired into the scoring core, so
the production defaults sample randomly. Tests and deterministic deployments
swap in the fixed variants.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Literal, Optional, Protocol

from social_rhythm.config import Config

WeatherCondition = Literal["sunny", "rainy", "cloudy", "snowy"]

WEATHER_CONDITIONS: tuple[WeatherCondition, ...] = (
    "sunny",
    "rainy",
    "cloudy",
    "snowy",
)


class WeatherProvider(Protocol):
    def condition_at(self, when: datetime) -> WeatherCondition:
        """Return the expected weather condition at ``when``."""


class HistoricalAdjustmentProvider(Protocol):
    def adjustment_for(self, place_id: str, when: datetime) -> float:
        """Return a crowd adjustment, nominally in [-0.1, 0.1)."""


class RandomWeatherProvider:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def condition_at(self, when: datetime) -> WeatherCondition:
        return self.rng.choice(WEATHER_CONDITIONS)


class FixedWeatherProvider:
    def __init__(self, condition: WeatherCondition = "cloudy"):
        if condition not in WEATHER_CONDITIONS:
            raise ValueError(f"Unknown weather condition: {condition}")
        self.condition = condition

    def condition_at(self, when: datetime) -> WeatherCondition:
        return self.condition


class RandomHistoricalAdjustment:
    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def adjustment_for(self, place_id: str, when: datetime) -> float:
        return (self.rng.random() - 0.5) * 0.2


class FixedHistoricalAdjustment:
    def __init__(self, adjustment: float = 0.0):
        self.adjustment = adjustment

    def adjustment_for(self, place_id: str, when: datetime) -> float:
        return self.adjustment


def build_rng(settings: Config) -> random.Random:
    """Create a random source, seeded when RANDOM_SEED is configured."""

    return random.Random(settings.RANDOM_SEED)


def build_weather_provider(settings: Config) -> WeatherProvider:
    """Select the weather provider named by WEATHER_MODE."""

    if settings.WEATHER_MODE == "fixed":
        return FixedWeatherProvider(settings.FIXED_WEATHER_CONDITION)
    return RandomWeatherProvider(build_rng(settings))
