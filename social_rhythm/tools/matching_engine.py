"""Deterministic companion-matching scores.

Six independent factors are scored in [0, 1] and combined with fixed weights.
A factor whose inputs are missing on either side contributes 0 instead of
being dropped from the weighting, so incomplete profiles cap the reachable
score.
"""

from __future__ import annotations

import math
import time
from datetime import datetime
from typing import Callable, Optional

from social_rhythm.models.place import Coordinates
from social_rhythm.models.results import CompanionMatch, MatchQuality, MatchStats
from social_rhythm.models.user import User
from social_rhythm.utils.errors import LocationUnavailableError
from social_rhythm.utils.geo import distance_meters
from social_rhythm.utils.logging_config import logger

MATCH_WEIGHTS = {
    "location": 0.30,
    "interests": 0.25,
    "age": 0.15,
    "gender": 0.10,
    "safety": 0.10,
    "activity": 0.10,
}

MATCH_THRESHOLDS = {
    "excellent": 0.85,
    "good": 0.70,
    "acceptable": 0.50,
    "minimum": 0.30,
}

DEFAULT_MAX_DISTANCE_M = 5000
DEFAULT_QUICK_MATCH_RADIUS_M = 1000
QUICK_MATCH_POOL_SIZE = 20


def calculate_location_similarity(
    p1: Coordinates, p2: Coordinates, max_distance: float = DEFAULT_MAX_DISTANCE_M
) -> float:
    """Linear decay from 1 at the same spot to 0 at ``max_distance`` meters."""

    distance = distance_meters(p1, p2)
    if distance > max_distance:
        return 0.0
    if max_distance <= 0:
        return 1.0
    return max(0.0, 1 - distance / max_distance)


def _jaccard(first: list[str], second: list[str]) -> float:
    left, right = set(first), set(second)
    return len(left & right) / len(left | right)


def calculate_interest_similarity(interests1: list[str], interests2: list[str]) -> float:
    """Jaccard similarity of two interest lists; 0 if either is empty."""

    if not interests1 or not interests2:
        return 0.0
    return _jaccard(interests1, interests2)


def calculate_age_similarity(age1: int, age2: int) -> float:
    age_diff = abs(age1 - age2)
    if age_diff <= 2:
        return 1.0
    if age_diff <= 5:
        return 0.8
    if age_diff <= 10:
        return 0.6
    if age_diff <= 15:
        return 0.4
    if age_diff <= 20:
        return 0.2
    return 0.0


def _accepts(preference: Optional[str], other_gender: str) -> bool:
    return not preference or preference == "any" or preference == other_gender


def calculate_gender_compatibility(
    gender1: str,
    preference1: Optional[str],
    gender2: str,
    preference2: Optional[str],
) -> float:
    """Half credit for each side whose preference accepts the other."""

    score = 0.0
    if _accepts(preference1, gender2):
        score += 0.5
    if _accepts(preference2, gender1):
        score += 0.5
    return score


def calculate_safety_compatibility(level1: int, level2: int) -> float:
    diff = abs(level1 - level2)
    if diff == 0:
        return 1.0
    if diff == 1:
        return 0.8
    if diff == 2:
        return 0.6
    if diff == 3:
        return 0.4
    return 0.2


def calculate_time_compatibility(times1: list[str], times2: list[str]) -> float:
    """Jaccard similarity of preferred time slots; 0.5 if either is empty."""

    if not times1 or not times2:
        return 0.5
    return _jaccard(times1, times2)


def get_match_quality(score: float) -> MatchQuality:
    if score >= MATCH_THRESHOLDS["excellent"]:
        return MatchQuality(level="excellent", label="Perfect match", color="text-green-600")
    if score >= MATCH_THRESHOLDS["good"]:
        return MatchQuality(level="good", label="Good match", color="text-blue-600")
    if score >= MATCH_THRESHOLDS["acceptable"]:
        return MatchQuality(level="acceptable", label="Fair match", color="text-yellow-600")
    return MatchQuality(level="poor", label="Low match", color="text-red-600")


class MatchingEngine:
    """Scores and ranks candidate companions for a requesting user."""

    def __init__(
        self,
        default_max_distance: float = DEFAULT_MAX_DISTANCE_M,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.default_max_distance = default_max_distance
        self.clock = clock

    def calculate_factor_scores(self, current: User, candidate: User) -> dict[str, float]:
        """Return the weighted contribution of each factor."""

        current_prefs = current.match_preferences
        candidate_prefs = candidate.match_preferences
        contributions = dict.fromkeys(MATCH_WEIGHTS, 0.0)

        if current.location and candidate.location:
            max_distance = (
                current_prefs.max_distance if current_prefs else None
            ) or self.default_max_distance
            contributions["location"] = (
                calculate_location_similarity(
                    current.location, candidate.location, max_distance
                )
                * MATCH_WEIGHTS["location"]
            )

        if (
            current_prefs
            and candidate_prefs
            and current_prefs.interests is not None
            and candidate_prefs.interests is not None
        ):
            contributions["interests"] = (
                calculate_interest_similarity(
                    current_prefs.interests, candidate_prefs.interests
                )
                * MATCH_WEIGHTS["interests"]
            )

        if current.age and candidate.age:
            contributions["age"] = (
                calculate_age_similarity(current.age, candidate.age)
                * MATCH_WEIGHTS["age"]
            )

        contributions["gender"] = (
            calculate_gender_compatibility(
                current.gender or "unknown",
                current_prefs.gender_preference if current_prefs else None,
                candidate.gender or "unknown",
                candidate_prefs.gender_preference if candidate_prefs else None,
            )
            * MATCH_WEIGHTS["gender"]
        )

        if current_prefs and candidate_prefs:
            if current_prefs.safety_level and candidate_prefs.safety_level:
                contributions["safety"] = (
                    calculate_safety_compatibility(
                        current_prefs.safety_level, candidate_prefs.safety_level
                    )
                    * MATCH_WEIGHTS["safety"]
                )

            if (
                current_prefs.preferred_times is not None
                and candidate_prefs.preferred_times is not None
            ):
                contributions["activity"] = (
                    calculate_time_compatibility(
                        current_prefs.preferred_times,
                        candidate_prefs.preferred_times,
                    )
                    * MATCH_WEIGHTS["activity"]
                )

        return contributions

    def calculate_match_score(self, current: User, candidate: User) -> float:
        """Weighted compatibility of ``candidate`` for ``current`` in [0, 1]."""

        total = math.fsum(self.calculate_factor_scores(current, candidate).values())
        return max(0.0, min(1.0, total))

    def find_matches(
        self,
        current: User,
        candidates: list[User],
        limit: int = 10,
        min_score: float = MATCH_THRESHOLDS["minimum"],
        include_score: bool = False,
    ) -> list[CompanionMatch]:
        """Rank candidates by score, best first.

        Equal scores keep their input order.
        """

        scored = []
        for candidate in candidates:
            if candidate.id == current.id:
                continue
            score = self.calculate_match_score(current, candidate)
            if score >= min_score:
                scored.append((candidate, score))

        ranked = sorted(scored, key=lambda item: item[1], reverse=True)[:limit]

        created_at = self.clock()
        stamp = int(time.time() * 1000)
        matches = [
            CompanionMatch(
                id=f"match_{candidate.id}_{stamp}_{index}",
                user_id=candidate.id,
                target_user_id=current.id,
                match_score=score if include_score else None,
                match_quality=get_match_quality(score).level,
                created_at=created_at,
                user=candidate,
            )
            for index, (candidate, score) in enumerate(ranked)
        ]

        logger.debug(
            "find_matches candidates=%s qualified=%s returned=%s",
            len(candidates),
            len(scored),
            len(matches),
        )
        return matches

    def quick_location_match(
        self,
        current: User,
        nearby_users: list[User],
        max_distance: float = DEFAULT_QUICK_MATCH_RADIUS_M,
        include_score: bool = False,
    ) -> list[CompanionMatch]:
        """Match against the nearest users inside ``max_distance`` meters.

        Raises:
            LocationUnavailableError: If the current user has no coordinates.
        """

        if current.location is None:
            raise LocationUnavailableError()

        in_range: list[tuple[User, float]] = []
        for user in nearby_users:
            if user.id == current.id or user.location is None:
                continue
            distance = distance_meters(current.location, user.location)
            if distance <= max_distance:
                in_range.append((user, distance))

        in_range.sort(key=lambda item: item[1])
        pool = [user for user, _ in in_range[:QUICK_MATCH_POOL_SIZE]]

        return self.find_matches(
            current, pool, limit=10, min_score=0.3, include_score=include_score
        )

    def interest_based_match(
        self,
        current: User,
        all_users: list[User],
        target_interests: list[str],
        include_score: bool = False,
    ) -> list[CompanionMatch]:
        """Match against users sharing at least one of ``target_interests``."""

        wanted = set(target_interests)
        pool = [
            user
            for user in all_users
            if user.id != current.id
            and user.match_preferences
            and user.match_preferences.interests
            and wanted.intersection(user.match_preferences.interests)
        ]

        return self.find_matches(
            current, pool, limit=15, min_score=0.4, include_score=include_score
        )

    @staticmethod
    def get_match_stats(matches: list[CompanionMatch]) -> MatchStats:
        by_quality: dict[str, int] = {}
        total_score = 0.0
        for match in matches:
            quality = match.match_quality or "poor"
            by_quality[quality] = by_quality.get(quality, 0) + 1
            total_score += match.match_score or 0.0

        total = len(matches)
        return MatchStats(
            total=total,
            by_quality=by_quality,
            average_score=total_score / total if total else 0.0,
        )
