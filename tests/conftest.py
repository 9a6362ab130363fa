"""
Pytest configuration and shared fixtures for all tests.

This file is automatically loaded by pytest and provides:
  - Test configuration (env vars)
  - Record builders for users, places and reports
  - Deterministic providers and clocks for the prediction engines
"""

import os
from datetime import datetime

import pytest


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """
    Setup test environment variables before running any tests.

    This ensures tests run with predictable configuration and don't
    depend on local .env files.
    """
    test_env = {
        "DEBUG": "True",
        "WEATHER_MODE": "fixed",
        "FIXED_WEATHER_CONDITION": "cloudy",
        "RANDOM_SEED": "7",
    }

    for key, value in test_env.items():
        os.environ[key] = value


# A spring weekday, away from summer/winter seasonal impacts.
FIXED_NOW = datetime(2025, 4, 16, 10, 0)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def fixed_clock():
    """Clock pinned to FIXED_NOW so time-distance confidence is stable."""
    return lambda: FIXED_NOW


@pytest.fixture
def make_user():
    """
    Build a User with sensible matching defaults.

    Example:
        def test_something(make_user):
            user = make_user("a", age=25)
    """
    from social_rhythm.models.user import MatchPreferences, User

    def _make(
        user_id,
        lat=40.0,
        lng=-74.0,
        age=30,
        gender="female",
        interests=("restaurant", "shopping"),
        safety_level=2,
        preferred_times=("morning",),
        gender_preference=None,
        max_distance=None,
        with_location=True,
    ):
        return User(
            id=user_id,
            name=f"User {user_id}",
            age=age,
            gender=gender,
            location={"lat": lat, "lng": lng} if with_location else None,
            match_preferences=MatchPreferences(
                max_distance=max_distance,
                gender_preference=gender_preference,
                interests=list(interests) if interests is not None else None,
                safety_level=safety_level,
                preferred_times=(
                    list(preferred_times) if preferred_times is not None else None
                ),
            ),
        )

    return _make


@pytest.fixture
def make_place():
    """Build a Place of a given category at the given coordinates."""
    from social_rhythm.models.place import Place

    def _make(place_id, category="restaurant", lat=40.0, lng=-74.0, **extra):
        return Place(
            id=place_id,
            name=f"Place {place_id}",
            coordinates={"lat": lat, "lng": lng},
            category=category,
            **extra,
        )

    return _make
