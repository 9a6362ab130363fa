"""Crowd forecasting graph: single prediction plus an optional trend."""

from __future__ import annotations

from datetime import datetime

from langgraph.graph import StateGraph
from pydantic import ValidationError

from social_rhythm.config import config
from social_rhythm.graphs.base_graph import BaseGraph, with_state
from social_rhythm.models.place import Place
from social_rhythm.models.report import Report
from social_rhythm.state import CrowdForecastState
from social_rhythm.tools.crowd_prediction import CrowdPredictionEngine
from social_rhythm.tools.providers import build_weather_provider


class CrowdForecastGraph(BaseGraph):
    """Validate request -> predict level -> predict trend -> finalize."""

    def __init__(
        self, engine: CrowdPredictionEngine | None = None
    ):
        super().__init__()
        self.engine = engine or CrowdPredictionEngine(
            weather_provider=build_weather_provider(config)
        )

    def build_graph(self) -> StateGraph:
        graph = StateGraph(CrowdForecastState)
        graph.add_node("validate_request", self.node_validate_request)
        graph.add_node("predict_level", self.node_predict_level)
        graph.add_node("predict_trend", self.node_predict_trend)
        graph.add_node("finalize_response", self.node_finalize_response)

        graph.set_entry_point("validate_request")
        graph.add_edge("validate_request", "predict_level")
        graph.add_edge("predict_level", "predict_trend")
        graph.add_edge("predict_trend", "finalize_response")
        graph.set_finish_point("finalize_response")
        return graph

    def node_validate_request(self, state: CrowdForecastState) -> CrowdForecastState:
        """Require a place; default the target time to now."""

        self._log_node_execution("validate_request", state)
        if not state.get("place"):
            return with_state(state, error="Crowd forecast requires a place")

        if bool(state.get("trend_start")) != bool(state.get("trend_end")):
            return with_state(
                state, error="trend_start and trend_end must be given together"
            )

        return with_state(
            state,
            target_time=state.get("target_time") or self.engine.clock().isoformat(),
        )

    def node_predict_level(self, state: CrowdForecastState) -> CrowdForecastState:
        if state.get("error"):
            return state

        try:
            self._log_node_execution("predict_level", state)
            place = Place.model_validate(state["place"])
            reports = [Report.model_validate(r) for r in state.get("reports", [])]
            prediction = self.engine.predict_crowd_level(
                place, datetime.fromisoformat(state["target_time"]), reports
            )
            return with_state(state, prediction=prediction.model_dump(mode="json"))
        except (ValidationError, ValueError, TypeError) as exc:
            self._log_node_error("predict_level", exc)
            return with_state(state, error=f"Invalid forecast input: {exc}")

    def node_predict_trend(self, state: CrowdForecastState) -> CrowdForecastState:
        """Step through the trend window when one was requested."""

        if state.get("error") or not state.get("trend_start"):
            return state

        try:
            self._log_node_execution("predict_trend", state)
            place = Place.model_validate(state["place"])
            reports = [Report.model_validate(r) for r in state.get("reports", [])]
            trend = self.engine.predict_crowd_trend(
                place,
                datetime.fromisoformat(state["trend_start"]),
                datetime.fromisoformat(state["trend_end"]),
                interval_minutes=int(state.get("interval_minutes", 30)),
                historical_reports=reports,
            )
            return with_state(
                state, trend=[p.model_dump(mode="json") for p in trend]
            )
        except (ValidationError, ValueError, TypeError) as exc:
            self._log_node_error("predict_trend", exc)
            return with_state(state, error=f"Invalid trend input: {exc}")

    def node_finalize_response(self, state: CrowdForecastState) -> CrowdForecastState:
        self._log_node_execution("finalize_response", state)
        error = state.get("error")
        return with_state(
            state,
            trend=state.get("trend", []),
            response_metadata={
                "success": not error,
                "error": error,
                "report_count": len(state.get("reports", [])),
                "trend_points": len(state.get("trend", [])),
            },
        )


def create_crowd_forecast_graph():
    """Build and compile the crowd forecast graph for server usage."""

    graph_builder = CrowdForecastGraph()
    return graph_builder.compile()
