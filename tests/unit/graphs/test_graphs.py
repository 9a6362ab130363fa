"""
Unit tests for the compiled LangGraph workflows.

Graphs are invoked with the same JSON-shaped input the server forwards, so
these tests cover request validation, model parsing and response metadata.
Engines are injected with fixed providers to keep outputs deterministic.
"""

import random

import pytest

from social_rhythm.graphs.crowd_forecast import CrowdForecastGraph
from social_rhythm.graphs.matching import MatchingGraph
from social_rhythm.graphs.suggestions import SuggestionsGraph
from social_rhythm.graphs.user_profile import UserProfileGraph
from social_rhythm.tools.crowd_prediction import CrowdPredictionEngine
from social_rhythm.tools.matching_engine import MatchingEngine
from social_rhythm.tools.providers import FixedHistoricalAdjustment, FixedWeatherProvider
from social_rhythm.tools.recommend_engine import RecommendEngine
from social_rhythm.tools.user_profiling import UserProfilingEngine


def _user(user_id, lat=40.0, interests=("restaurant",), with_location=True):
    user = {
        "id": user_id,
        "age": 30,
        "gender": "female",
        "match_preferences": {
            "interests": list(interests),
            "safety_level": 2,
            "preferred_times": ["morning"],
        },
    }
    if with_location:
        user["location"] = {"lat": lat, "lng": -74.0}
    return user


def _place(place_id, category="restaurant", lat=40.0):
    return {
        "id": place_id,
        "name": f"Place {place_id}",
        "coordinates": {"lat": lat, "lng": -74.0},
        "category": category,
    }


@pytest.fixture
def matching_graph(fixed_clock):
    return MatchingGraph(engine=MatchingEngine(clock=fixed_clock)).compile()


@pytest.fixture
def forecast_graph(fixed_clock):
    engine = CrowdPredictionEngine(
        weather_provider=FixedWeatherProvider("cloudy"), clock=fixed_clock
    )
    return CrowdForecastGraph(engine=engine).compile()


@pytest.fixture
def suggestions_graph(fixed_clock):
    engine = RecommendEngine(
        adjustment_provider=FixedHistoricalAdjustment(0.0),
        rng=random.Random(1),
        clock=fixed_clock,
    )
    return SuggestionsGraph(engine=engine).compile()


@pytest.fixture
def profile_graph(fixed_clock):
    return UserProfileGraph(engine=UserProfilingEngine(clock=fixed_clock)).compile()


class TestMatchingGraph:
    """Test the matching workflow end-to-end."""

    def test_standard_mode(self, matching_graph):
        result = matching_graph.invoke(
            {"user": _user("a"), "candidates": [_user("b"), _user("a")]}
        )
        assert not result.get("error")
        assert [m["user_id"] for m in result["matches"]] == ["b"]
        assert result["matches"][0]["match_score"] is not None
        assert result["stats"]["total"] == 1
        assert result["response_metadata"]["success"] is True
        assert result["response_metadata"]["mode"] == "standard"

    def test_missing_user_is_error(self, matching_graph):
        result = matching_graph.invoke({"candidates": [_user("b")]})
        assert result["error"] == "Matching requires a user"
        assert result["matches"] == []
        assert result["response_metadata"]["success"] is False

    def test_unknown_mode_is_error(self, matching_graph):
        result = matching_graph.invoke({"user": _user("a"), "mode": "psychic"})
        assert "Unknown matching mode" in result["error"]

    def test_quick_location_without_location(self, matching_graph):
        result = matching_graph.invoke(
            {
                "user": _user("a", with_location=False),
                "candidates": [_user("b")],
                "mode": "quick_location",
            }
        )
        assert "location unavailable" in result["error"]
        assert result["response_metadata"]["success"] is False

    def test_quick_location_radius(self, matching_graph):
        result = matching_graph.invoke(
            {
                "user": _user("a"),
                "candidates": [_user("near", lat=40.001), _user("far", lat=40.1)],
                "mode": "quick_location",
            }
        )
        assert [m["user_id"] for m in result["matches"]] == ["near"]

    def test_interest_mode_requires_targets(self, matching_graph):
        result = matching_graph.invoke(
            {"user": _user("a"), "candidates": [_user("b")], "mode": "interest"}
        )
        assert "target_interests" in result["error"]

    def test_interest_mode(self, matching_graph):
        result = matching_graph.invoke(
            {
                "user": _user("a"),
                "candidates": [_user("food"), _user("banks", interests=("bank",))],
                "mode": "interest",
                "options": {"target_interests": ["restaurant"]},
            }
        )
        assert [m["user_id"] for m in result["matches"]] == ["food"]

    def test_invalid_candidate_is_error(self, matching_graph):
        result = matching_graph.invoke(
            {"user": _user("a"), "candidates": [{"age": "not a number"}]}
        )
        assert result["error"]
        assert result["matches"] == []

    @pytest.mark.parametrize(
        "options",
        [{"limit": "ten"}, {"min_score": "high"}, {"limit": None}],
    )
    def test_malformed_options_are_error(self, matching_graph, options):
        """Unparseable numeric options are reported, not raised."""
        result = matching_graph.invoke(
            {"user": _user("a"), "candidates": [_user("b")], "options": options}
        )
        assert result["error"]
        assert result["matches"] == []
        assert result["response_metadata"]["success"] is False

    def test_malformed_quick_radius_is_error(self, matching_graph):
        result = matching_graph.invoke(
            {
                "user": _user("a"),
                "candidates": [_user("b")],
                "mode": "quick_location",
                "options": {"max_distance": "near"},
            }
        )
        assert "could not convert" in result["error"]


class TestCrowdForecastGraph:
    """Test single predictions and trends through the graph."""

    def test_prediction_only(self, forecast_graph):
        result = forecast_graph.invoke(
            {"place": _place("p1"), "target_time": "2025-04-16T03:00:00"}
        )
        assert not result.get("error")
        assert result["prediction"]["place_id"] == "p1"
        assert result["prediction"]["predicted_crowd_level"] == "low"
        assert result["trend"] == []
        assert result["response_metadata"]["trend_points"] == 0

    def test_defaults_target_time_to_now(self, forecast_graph, fixed_now):
        result = forecast_graph.invoke({"place": _place("p1")})
        assert result["target_time"] == fixed_now.isoformat()
        assert "prediction" in result

    def test_trend(self, forecast_graph):
        result = forecast_graph.invoke(
            {
                "place": _place("p1"),
                "target_time": "2025-04-16T09:00:00",
                "trend_start": "2025-04-16T09:00:00",
                "trend_end": "2025-04-16T11:00:00",
                "interval_minutes": 60,
            }
        )
        assert len(result["trend"]) == 3
        assert result["response_metadata"]["trend_points"] == 3

    def test_reports_are_used(self, forecast_graph):
        reports = [
            {
                "id": f"r{i}",
                "place_id": "p1",
                "timestamp": "2025-04-09T03:10:00",
                "data": {"crowd_level": "very_high"},
            }
            for i in range(3)
        ]
        result = forecast_graph.invoke(
            {
                "place": _place("p1"),
                "target_time": "2025-04-16T03:00:00",
                "reports": reports,
            }
        )
        assert result["prediction"]["predicted_crowd_level"] == "medium"
        assert result["response_metadata"]["report_count"] == 3

    def test_missing_place(self, forecast_graph):
        result = forecast_graph.invoke({"target_time": "2025-04-16T03:00:00"})
        assert result["error"] == "Crowd forecast requires a place"

    def test_half_open_trend_window(self, forecast_graph):
        result = forecast_graph.invoke(
            {"place": _place("p1"), "trend_start": "2025-04-16T09:00:00"}
        )
        assert "together" in result["error"]

    def test_bad_timestamp(self, forecast_graph):
        result = forecast_graph.invoke(
            {"place": _place("p1"), "target_time": "yesterday-ish"}
        )
        assert result["error"].startswith("Invalid forecast input")

    def test_zero_interval(self, forecast_graph):
        result = forecast_graph.invoke(
            {
                "place": _place("p1"),
                "target_time": "2025-04-16T09:00:00",
                "trend_start": "2025-04-16T09:00:00",
                "trend_end": "2025-04-16T10:00:00",
                "interval_minutes": 0,
            }
        )
        assert result["error"].startswith("Invalid trend input")
        assert result["response_metadata"]["success"] is False


class TestSuggestionsGraph:
    """Test suggestion generation through the graph."""

    def test_targeted_bank_visit(self, suggestions_graph):
        result = suggestions_graph.invoke(
            {
                "places": [],
                "context": {
                    "user": {"id": "u1"},
                    "target_place": _place("b1", "bank"),
                    "preferred_time": "2025-04-16T03:00:00",
                },
            }
        )
        assert not result.get("error")
        assert len(result["suggestions"]) == 1
        assert result["suggestions"][0]["recommended_time"] == "2025-04-16T14:00:00"

    def test_general_suggestions_within_radius(self, suggestions_graph):
        result = suggestions_graph.invoke(
            {
                "places": [_place("near", "bank"), _place("far", "bank", lat=41.0)],
                "context": {
                    "user": {"id": "u1"},
                    "current_location": {"lat": 40.0, "lng": -74.0},
                    "preferred_time": "2025-04-16T03:00:00",
                },
                "options": {"include_alternatives": False},
            }
        )
        assert result["places_loaded"] == 2
        assert [s["place_id"] for s in result["suggestions"]] == ["near"]
        assert result["response_metadata"]["returned"] == 1

    def test_requires_user(self, suggestions_graph):
        result = suggestions_graph.invoke({"places": [], "context": {}})
        assert result["error"] == "Suggestions require context.user"
        assert result["suggestions"] == []

    def test_invalid_place(self, suggestions_graph):
        result = suggestions_graph.invoke(
            {"places": [{"id": "x"}], "context": {"user": {"id": "u1"}}}
        )
        assert result["error"].startswith("Invalid place data")


class TestUserProfileGraph:
    """Test profile building and per-user ranking through the graph."""

    def test_profile_and_ranking(self, profile_graph):
        reports = [
            {
                "id": f"r{i}",
                "place_id": "fav",
                "place": _place("fav"),
                "timestamp": "2025-04-16T12:10:00",
                "data": {"crowd_level": "low"},
            }
            for i in range(2)
        ]
        suggestion = {
            "id": "s1",
            "place_id": "fav",
            "place": _place("fav"),
            "recommended_time": "2025-04-16T12:00:00",
            "reason": "quiet",
            "confidence": 0.8,
            "estimated_wait_time": 5,
            "estimated_crowd_level": "low",
        }
        result = profile_graph.invoke(
            {
                "user": _user("u1"),
                "reports": reports,
                "places": [_place("bank", "bank"), _place("fav")],
                "candidate_suggestions": [suggestion],
                "current_time": "2025-04-16T12:00:00",
            }
        )
        assert not result.get("error")
        assert result["profile"]["user_id"] == "u1"
        assert result["profile"]["preferences"]["preferred_categories"] == ["restaurant"]
        assert [p["id"] for p in result["recommended_places"]] == ["fav", "bank"]
        assert result["acceptance"][0]["suggestion_id"] == "s1"
        assert 0.0 <= result["acceptance"][0]["acceptance"] <= 1.0
        assert result["response_metadata"] == {
            "success": True,
            "error": None,
            "report_count": 2,
            "ranked": 2,
        }

    def test_missing_user(self, profile_graph):
        result = profile_graph.invoke({"places": [_place("p1")]})
        assert result["error"] == "User profiling requires a user"
        assert result["recommended_places"] == []
        assert result["response_metadata"]["success"] is False

    def test_invalid_report(self, profile_graph):
        result = profile_graph.invoke(
            {"user": _user("u1"), "reports": [{"id": "r1"}]}
        )
        assert result["error"].startswith("Invalid profile input")

    def test_bad_current_time(self, profile_graph):
        result = profile_graph.invoke(
            {"user": _user("u1"), "places": [_place("p1")], "current_time": "noonish"}
        )
        assert result["error"].startswith("Invalid ranking input")
        assert result["acceptance"] == []
