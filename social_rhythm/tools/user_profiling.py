"""User profiling from settings, report history and past suggestions.

A profile has three parts. Preferences come from report categories, crowd
levels and active hours. Behaviors cover visit shares, reporting activity
and active hours and days. Patterns are routines, seasons, social and
mobility habits. Profiles drive the per-user place ranking and the
suggestion acceptance estimate.
"""

from __future__ import annotations

import threading
from collections import Counter
from datetime import datetime
from typing import Callable, Optional

from social_rhythm.models.place import AccessibilityInfo, CrowdLevel, Place, PlaceCategory
from social_rhythm.models.profile import (
    AvoidanceFactor,
    MobilityPattern,
    ProfileTimeSlot,
    ReportingActivity,
    RoutinePattern,
    SeasonalPreference,
    SocialPattern,
    UserBehaviorProfile,
    UserPatternProfile,
    UserPreferenceProfile,
    UserProfile,
)
from social_rhythm.models.report import Report
from social_rhythm.models.results import Suggestion
from social_rhythm.models.user import User
from social_rhythm.utils.logging_config import logger

DEFAULT_MAX_TRAVEL_DISTANCE_KM = 10.0
DEFAULT_MAX_WAIT_TIME = 30
# No acceptance tracking exists yet, so every user starts from this rate.
DEFAULT_ACCEPTANCE_RATE = 0.7
DEFAULT_ACCEPTANCE = 0.5
DEFAULT_TIME_PREFERENCE = 0.3
ACTIVE_SLOT_PREFERENCE = 0.8
DEFAULT_GROUP_SIZE = 8

TOP_CATEGORIES = 5
TOP_CROWD_LEVELS = 2
TOP_ACTIVE_HOURS = 6
TOP_DAYS = 4
MAX_RECOMMENDED_PLACES = 10
# Report history is assumed to span the last four weeks.
REPORT_WINDOW_WEEKS = 4

# minutes
ESTIMATED_VISIT_MINUTES: dict[PlaceCategory, float] = {
    PlaceCategory.RESTAURANT: 60,
    PlaceCategory.SHOPPING: 90,
    PlaceCategory.HOSPITAL: 45,
    PlaceCategory.BANK: 20,
}

# requirement name -> AccessibilityInfo field
ACCESSIBILITY_REQUIREMENTS = {
    "wheelchair_accessible": "wheelchair_accessible",
    "elevator_access": "has_elevator",
    "ramp_access": "has_ramp",
}

CROWD_AVOIDANCE_THRESHOLDS: dict[CrowdLevel, float] = {
    CrowdLevel.LOW: 0.25,
    CrowdLevel.MEDIUM: 0.5,
    CrowdLevel.HIGH: 0.75,
    CrowdLevel.VERY_HIGH: 1.0,
}

SOCIAL_CATEGORIES = [
    PlaceCategory.RESTAURANT,
    PlaceCategory.ENTERTAINMENT,
    PlaceCategory.SHOPPING,
]

WEEKDAY_LUNCH_ROUTINE = RoutinePattern(
    name="weekday_lunch",
    description="Lunch out on working days",
    frequency=5,
    time_pattern=ProfileTimeSlot(start="11:30", end="13:30", preference=0.9),
    place_categories=[PlaceCategory.RESTAURANT],
    confidence=0.8,
)

DEFAULT_MOBILITY = MobilityPattern(
    average_travel_distance=5,
    preferred_transport_modes=["walking", "public_transport"],
    mobility_radius=10,
)


def _top(counter: Counter, count: int) -> list:
    """Most frequent keys first; ties keep first-seen order."""

    return [key for key, _ in counter.most_common(count)]


def _season(month: int) -> str:
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def active_time_slots(reports: list[Report]) -> list[ProfileTimeSlot]:
    """Merge the busiest report hours into contiguous slots.

    The six most frequent hours are sorted and consecutive hours are joined,
    so reports at 11, 12 and 18 give 11:00-13:00 and 18:00-19:00.
    """

    hours = sorted(
        _top(Counter(r.timestamp.hour for r in reports), TOP_ACTIVE_HOURS)
    )

    slots: list[ProfileTimeSlot] = []
    start: Optional[int] = None
    end: Optional[int] = None
    for hour in hours:
        if start is None:
            start = end = hour
        elif hour == end + 1:
            end = hour
        else:
            slots.append(
                ProfileTimeSlot(
                    start=_hour_label(start),
                    end=_hour_label(end + 1),
                    preference=ACTIVE_SLOT_PREFERENCE,
                )
            )
            start = end = hour

    if start is not None:
        slots.append(
            ProfileTimeSlot(
                start=_hour_label(start),
                end=_hour_label(end + 1),
                preference=ACTIVE_SLOT_PREFERENCE,
            )
        )
    return slots


def accessibility_match(
    accessibility: AccessibilityInfo, requirements: list[str]
) -> float:
    """Share of ``requirements`` the place satisfies; 1 when there are none."""

    if not requirements:
        return 1.0

    matches = sum(
        1
        for requirement in requirements
        if requirement in ACCESSIBILITY_REQUIREMENTS
        and getattr(accessibility, ACCESSIBILITY_REQUIREMENTS[requirement])
    )
    return matches / len(requirements)


def time_preference(profile: UserProfile, hour: int) -> float:
    """Preference of the first slot containing ``hour``, else the default."""

    for slot in profile.preferences.preferred_time_slots:
        start_hour = int(slot.start.split(":")[0])
        end_hour = int(slot.end.split(":")[0])
        if start_hour <= hour < end_hour:
            return slot.preference
    return DEFAULT_TIME_PREFERENCE


class UserProfilingEngine:
    """Builds and caches user profiles and scores places against them."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self._profiles: dict[str, UserProfile] = {}
        self._suggestion_history: dict[str, list[Suggestion]] = {}
        self._lock = threading.RLock()

    def build_user_profile(
        self,
        user: User,
        reports: Optional[list[Report]] = None,
        suggestion_history: Optional[list[Suggestion]] = None,
    ) -> UserProfile:
        """Build the profile for ``user`` and replace any cached one."""

        reports = list(reports or [])
        suggestion_history = list(suggestion_history or [])

        profile = UserProfile(
            user_id=user.id,
            preferences=self._preference_profile(user, reports),
            behaviors=self._behavior_profile(reports),
            patterns=self._pattern_profile(user, reports),
            last_updated=self.clock(),
        )

        with self._lock:
            self._suggestion_history[user.id] = suggestion_history
            self._profiles[user.id] = profile

        logger.debug(
            "build_user_profile user=%s reports=%s categories=%s",
            user.id,
            len(reports),
            len(profile.preferences.preferred_categories),
        )
        return profile

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        with self._lock:
            return self._profiles.get(user_id)

    def get_suggestion_history(self, user_id: str) -> list[Suggestion]:
        with self._lock:
            return list(self._suggestion_history.get(user_id, []))

    def recommend_places_for_user(
        self,
        user_id: str,
        available_places: list[Place],
        current_time: Optional[datetime] = None,
    ) -> list[Place]:
        """Best-scoring places for the user, at most ten; empty without a profile."""

        profile = self.get_user_profile(user_id)
        if profile is None:
            return []

        current_time = current_time or self.clock()
        scored = [
            (place, self.score_place(place, profile, current_time))
            for place in available_places
        ]
        scored.sort(key=lambda item: item[1], reverse=True)
        return [place for place, _ in scored[:MAX_RECOMMENDED_PLACES]]

    def predict_suggestion_acceptance(
        self, user_id: str, suggestion: Suggestion
    ) -> float:
        """Estimated probability in [0, 1] that the user acts on ``suggestion``."""

        profile = self.get_user_profile(user_id)
        if profile is None:
            return DEFAULT_ACCEPTANCE

        prefs = profile.preferences
        score = profile.behaviors.suggestion_acceptance_rate

        if suggestion.place.category in prefs.preferred_categories:
            score += 0.2
        if suggestion.estimated_crowd_level in prefs.preferred_crowd_levels:
            score += 0.15

        score += time_preference(profile, suggestion.recommended_time.hour) * 0.2

        if suggestion.estimated_wait_time <= prefs.max_wait_time:
            score += 0.1
        else:
            score -= 0.2

        return max(0.0, min(1.0, score))

    @staticmethod
    def score_place(place: Place, profile: UserProfile, current_time: datetime) -> float:
        prefs = profile.preferences
        score = 0.5

        if place.category in prefs.preferred_categories:
            score += 0.3
        if place.crowd_level in prefs.preferred_crowd_levels:
            score += 0.2

        score += time_preference(profile, current_time.hour) * 0.2

        if place.wait_time <= prefs.max_wait_time:
            score += 0.1
        else:
            score -= 0.2

        if prefs.accessibility_requirements:
            score += (
                accessibility_match(place.accessibility, prefs.accessibility_requirements)
                * 0.15
            )

        return max(0.0, min(1.0, score))

    def _preference_profile(
        self, user: User, reports: list[Report]
    ) -> UserPreferenceProfile:
        categories = Counter(r.place.category for r in reports if r.place)
        crowd_levels = Counter(
            r.data.crowd_level for r in reports if r.data.crowd_level
        )

        return UserPreferenceProfile(
            preferred_categories=_top(categories, TOP_CATEGORIES),
            preferred_crowd_levels=_top(crowd_levels, TOP_CROWD_LEVELS),
            preferred_time_slots=active_time_slots(reports),
            avoidance_factors=self._avoidance_factors(user),
            accessibility_requirements=[
                name
                for name, field in ACCESSIBILITY_REQUIREMENTS.items()
                if getattr(user.preferences.accessibility_needs, field)
            ],
            max_travel_distance=DEFAULT_MAX_TRAVEL_DISTANCE_KM,
            max_wait_time=user.preferences.max_wait_time or DEFAULT_MAX_WAIT_TIME,
        )

    @staticmethod
    def _avoidance_factors(user: User) -> list[AvoidanceFactor]:
        prefs = user.preferences
        factors = []
        if prefs.preferred_crowd_level:
            factors.append(
                AvoidanceFactor(
                    type="crowd",
                    threshold=CROWD_AVOIDANCE_THRESHOLDS.get(
                        prefs.preferred_crowd_level, 0.5
                    ),
                    importance=0.8,
                )
            )
        if prefs.max_wait_time:
            factors.append(
                AvoidanceFactor(
                    type="wait_time", threshold=prefs.max_wait_time, importance=0.7
                )
            )
        return factors

    def _behavior_profile(self, reports: list[Report]) -> UserBehaviorProfile:
        total = len(reports)
        categories = Counter(r.place.category for r in reports if r.place)
        hours = Counter(r.timestamp.hour for r in reports)
        days = Counter(r.timestamp.weekday() for r in reports)

        return UserBehaviorProfile(
            visit_frequency={
                category: count / total for category, count in categories.items()
            },
            average_visit_duration=dict(ESTIMATED_VISIT_MINUTES),
            reporting_activity=ReportingActivity(
                total_reports=total,
                accuracy_score=(
                    sum(1 for r in reports if r.verified) / total if total else 0.0
                ),
                report_frequency=total / REPORT_WINDOW_WEEKS,
                preferred_report_types=list(
                    dict.fromkeys(r.report_type for r in reports)
                ),
            ),
            suggestion_acceptance_rate=DEFAULT_ACCEPTANCE_RATE,
            peak_activity_hours=_top(hours, TOP_ACTIVE_HOURS),
            preferred_days=_top(days, TOP_DAYS),
        )

    def _pattern_profile(self, user: User, reports: list[Report]) -> UserPatternProfile:
        seasons: dict[str, list[PlaceCategory]] = {}
        for report in reports:
            if report.place:
                seasons.setdefault(_season(report.timestamp.month), []).append(
                    report.place.category
                )

        group_size = (
            user.match_preferences.group_size_preference
            if user.match_preferences
            else DEFAULT_GROUP_SIZE
        )

        return UserPatternProfile(
            routine_patterns=[WEEKDAY_LUNCH_ROUTINE.model_copy(deep=True)],
            seasonal_preferences=[
                SeasonalPreference(
                    season=season,
                    preferred_categories=list(dict.fromkeys(categories)),
                    activity_level=len(categories) / len(reports),
                )
                for season, categories in seasons.items()
            ],
            social_pattern=SocialPattern(
                preferred_group_size=group_size,
                social_activity_frequency=0.6,
                preferred_social_categories=list(SOCIAL_CATEGORIES),
            ),
            mobility_pattern=DEFAULT_MOBILITY.model_copy(deep=True),
        )
