"""Companion matching graph over the deterministic matching engine."""

from __future__ import annotations

from langgraph.graph import StateGraph
from pydantic import ValidationError

from social_rhythm.config import config
from social_rhythm.graphs.base_graph import BaseGraph, with_state
from social_rhythm.models.results import CompanionMatch
from social_rhythm.models.user import User
from social_rhythm.state import MatchingState
from social_rhythm.tools.matching_engine import MATCH_THRESHOLDS, MatchingEngine
from social_rhythm.utils.errors import InvalidInputError

MATCH_MODES = ("standard", "quick_location", "interest")


class MatchingGraph(BaseGraph):
    """Validate request -> score candidates -> summarize -> finalize."""

    def __init__(self, engine: MatchingEngine | None = None):
        super().__init__()
        self.engine = engine or MatchingEngine(
            default_max_distance=config.MATCH_DEFAULT_MAX_DISTANCE_M
        )

    def build_graph(self) -> StateGraph:
        graph = StateGraph(MatchingState)

        graph.add_node("validate_request", self.node_validate_request)
        graph.add_node("score_candidates", self.node_score_candidates)
        graph.add_node("summarize_matches", self.node_summarize_matches)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("validate_request")
        graph.add_edge("validate_request", "score_candidates")
        graph.add_edge("score_candidates", "summarize_matches")
        graph.add_edge("summarize_matches", "finalize_response")
        graph.set_finish_point("finalize_response")

        return graph

    def node_validate_request(self, state: MatchingState) -> MatchingState:
        """Check the request shape before any scoring happens."""

        self._log_node_execution("validate_request", state)

        if not state.get("user"):
            return with_state(state, error="Matching requires a user")

        mode = state.get("mode") or "standard"
        if mode not in MATCH_MODES:
            return with_state(
                state,
                error=f"Unknown matching mode: {mode}. "
                f"Valid options: {', '.join(MATCH_MODES)}",
            )

        candidates = state.get("candidates", [])
        if len(candidates) > config.MAX_CANDIDATES:
            self.logger.warning(
                "Truncating candidate pool from %s to %s",
                len(candidates),
                config.MAX_CANDIDATES,
            )
            candidates = candidates[: config.MAX_CANDIDATES]

        return with_state(state, mode=mode, candidates=candidates)

    def node_score_candidates(self, state: MatchingState) -> MatchingState:
        """Run the engine operation selected by ``mode``."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("score_candidates", state)
            user = User.model_validate(state["user"])
            candidates = [User.model_validate(c) for c in state.get("candidates", [])]
            options = state.get("options", {}) or {}
            include_score = bool(options.get("include_score", True))

            if state["mode"] == "quick_location":
                matches = self.engine.quick_location_match(
                    user,
                    candidates,
                    max_distance=float(
                        options.get("max_distance", config.QUICK_MATCH_RADIUS_M)
                    ),
                    include_score=include_score,
                )
            elif state["mode"] == "interest":
                target_interests = options.get("target_interests")
                if not target_interests:
                    raise InvalidInputError(
                        "interest matching requires options.target_interests"
                    )
                matches = self.engine.interest_based_match(
                    user, candidates, list(target_interests), include_score=include_score
                )
            else:
                matches = self.engine.find_matches(
                    user,
                    candidates,
                    limit=int(options.get("limit", 10)),
                    min_score=float(
                        options.get("min_score", MATCH_THRESHOLDS["minimum"])
                    ),
                    include_score=include_score,
                )

            return with_state(
                state,
                matches=[m.model_dump(mode="json") for m in matches],
            )
        except (ValidationError, InvalidInputError, ValueError, TypeError) as exc:
            self._log_node_error("score_candidates", exc)
            return with_state(state, error=str(exc), matches=[])

    def node_summarize_matches(self, state: MatchingState) -> MatchingState:
        """Compute quality-tier counts for the returned matches."""

        if state.get("error"):
            return state

        self._log_node_execution("summarize_matches", state)
        matches = [CompanionMatch.model_validate(m) for m in state.get("matches", [])]
        stats = self.engine.get_match_stats(matches)
        return with_state(state, stats=stats.model_dump(mode="json"))

    def node_finalize_response(self, state: MatchingState) -> MatchingState:
        """Attach response metadata."""

        self._log_node_execution("finalize_response", state)
        error = state.get("error")
        return with_state(
            state,
            matches=[] if error else state.get("matches", []),
            response_metadata={
                "success": not error,
                "error": error,
                "mode": state.get("mode", "standard"),
                "total_candidates": len(state.get("candidates", [])),
                "returned": 0 if error else len(state.get("matches", [])),
            },
        )


def create_matching_graph():
    """Build and compile the matching graph for server usage."""

    graph_builder = MatchingGraph()
    return graph_builder.compile()
