"""User profiling graph: build a profile, then rank places and suggestions."""

from __future__ import annotations

from datetime import datetime

from langgraph.graph import StateGraph
from pydantic import ValidationError

from social_rhythm.graphs.base_graph import BaseGraph, with_state
from social_rhythm.models.place import Place
from social_rhythm.models.report import Report
from social_rhythm.models.results import Suggestion
from social_rhythm.models.user import User
from social_rhythm.state import UserProfileState
from social_rhythm.tools.user_profiling import UserProfilingEngine


class UserProfileGraph(BaseGraph):
    """Validate request -> build profile -> rank -> finalize."""

    def __init__(self, engine: UserProfilingEngine | None = None):
        super().__init__()
        self.engine = engine or UserProfilingEngine()

    def build_graph(self) -> StateGraph:
        graph = StateGraph(UserProfileState)
        graph.add_node("validate_request", self.node_validate_request)
        graph.add_node("build_profile", self.node_build_profile)
        graph.add_node("rank_for_user", self.node_rank_for_user)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("validate_request")
        graph.add_edge("validate_request", "build_profile")
        graph.add_edge("build_profile", "rank_for_user")
        graph.add_edge("rank_for_user", "finalize_response")
        graph.set_finish_point("finalize_response")
        return graph

    def node_validate_request(self, state: UserProfileState) -> UserProfileState:
        self._log_node_execution("validate_request", state)
        if not state.get("user"):
            return with_state(state, error="User profiling requires a user")
        return state

    def node_build_profile(self, state: UserProfileState) -> UserProfileState:
        """Rebuild the profile from the supplied history."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("build_profile", state)
            user = User.model_validate(state["user"])
            reports = [Report.model_validate(r) for r in state.get("reports", [])]
            history = [
                Suggestion.model_validate(s)
                for s in state.get("suggestion_history", [])
            ]
            profile = self.engine.build_user_profile(user, reports, history)
            return with_state(state, profile=profile.model_dump(mode="json"))
        except ValidationError as exc:
            self._log_node_error("build_profile", exc)
            return with_state(state, error=f"Invalid profile input: {exc}")

    def node_rank_for_user(self, state: UserProfileState) -> UserProfileState:
        """Rank places and estimate acceptance of candidate suggestions."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("rank_for_user", state)
            user_id = state["user"]["id"]
            places = [Place.model_validate(p) for p in state.get("places", [])]
            candidates = [
                Suggestion.model_validate(s)
                for s in state.get("candidate_suggestions", [])
            ]
            current_time = (
                datetime.fromisoformat(state["current_time"])
                if state.get("current_time")
                else None
            )

            ranked = self.engine.recommend_places_for_user(
                user_id, places, current_time
            )
            acceptance = [
                {
                    "suggestion_id": suggestion.id,
                    "acceptance": self.engine.predict_suggestion_acceptance(
                        user_id, suggestion
                    ),
                }
                for suggestion in candidates
            ]
            return with_state(
                state,
                recommended_places=[p.model_dump(mode="json") for p in ranked],
                acceptance=acceptance,
            )
        except (ValidationError, ValueError, TypeError) as exc:
            self._log_node_error("rank_for_user", exc)
            return with_state(state, error=f"Invalid ranking input: {exc}")

    def node_finalize_response(self, state: UserProfileState) -> UserProfileState:
        self._log_node_execution("finalize_response", state)
        error = state.get("error")
        return with_state(
            state,
            recommended_places=[] if error else state.get("recommended_places", []),
            acceptance=[] if error else state.get("acceptance", []),
            response_metadata={
                "success": not error,
                "error": error,
                "report_count": len(state.get("reports", [])),
                "ranked": 0 if error else len(state.get("recommended_places", [])),
            },
        )


def create_user_profile_graph():
    """Build and compile the user profile graph for server usage."""

    graph_builder = UserProfileGraph()
    return graph_builder.compile()
