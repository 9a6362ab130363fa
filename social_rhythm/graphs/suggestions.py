"""Visit suggestion graph over the recommendation engine."""

from __future__ import annotations

from langgraph.graph import StateGraph
from pydantic import ValidationError

from social_rhythm.config import config
from social_rhythm.graphs.base_graph import BaseGraph, with_state
from social_rhythm.models.place import Place
from social_rhythm.state import SuggestionsState
from social_rhythm.tools.providers import build_rng
from social_rhythm.tools.recommend_engine import (
    RecommendationContext,
    RecommendEngine,
    SuggestionOptions,
)


class SuggestionsGraph(BaseGraph):
    """Validate request -> load places -> generate suggestions -> finalize."""

    def __init__(self, engine: RecommendEngine | None = None):
        super().__init__()
        self.engine = engine or RecommendEngine(
            rng=build_rng(config), radius_km=config.SUGGESTION_RADIUS_KM
        )

    def build_graph(self) -> StateGraph:
        graph = StateGraph(SuggestionsState)
        graph.add_node("validate_request", self.node_validate_request)
        graph.add_node("load_places", self.node_load_places)
        graph.add_node("generate_suggestions", self.node_generate_suggestions)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("validate_request")
        graph.add_edge("validate_request", "load_places")
        graph.add_edge("load_places", "generate_suggestions")
        graph.add_edge("generate_suggestions", "finalize_response")
        graph.set_finish_point("finalize_response")
        return graph

    def node_validate_request(self, state: SuggestionsState) -> SuggestionsState:
        self._log_node_execution("validate_request", state)
        context = state.get("context") or {}
        if not context.get("user"):
            return with_state(state, error="Suggestions require context.user")
        return state

    def node_load_places(self, state: SuggestionsState) -> SuggestionsState:
        """Replace the engine's place list with the request's places."""

        if state.get("error"):
            return state

        try:
            self._log_node_execution("load_places", state)
            places = [Place.model_validate(p) for p in state.get("places", [])]
            self.engine.update_places(places)
            return with_state(state, places_loaded=len(places))
        except ValidationError as exc:
            self._log_node_error("load_places", exc)
            return with_state(state, error=f"Invalid place data: {exc}")

    def node_generate_suggestions(self, state: SuggestionsState) -> SuggestionsState:
        if state.get("error"):
            return state

        try:
            self._log_node_execution("generate_suggestions", state)
            context = RecommendationContext.model_validate(state["context"])
            options = SuggestionOptions.model_validate(state.get("options") or {})
            suggestions = self.engine.generate_suggestions(context, options)
            return with_state(
                state,
                suggestions=[s.model_dump(mode="json") for s in suggestions],
            )
        except ValidationError as exc:
            self._log_node_error("generate_suggestions", exc)
            return with_state(state, error=f"Invalid suggestion context: {exc}")

    def node_finalize_response(self, state: SuggestionsState) -> SuggestionsState:
        self._log_node_execution("finalize_response", state)
        error = state.get("error")
        return with_state(
            state,
            suggestions=[] if error else state.get("suggestions", []),
            response_metadata={
                "success": not error,
                "error": error,
                "places_loaded": state.get("places_loaded", 0),
                "returned": 0 if error else len(state.get("suggestions", [])),
            },
        )


def create_suggestions_graph():
    """Build and compile the suggestions graph for server usage."""

    graph_builder = SuggestionsGraph()
    return graph_builder.compile()
