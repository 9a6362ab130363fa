"""
FastAPI server for the Social Rhythm scoring service.

Exposes:
  - GET /health - Health check
  - POST /run-graph - Execute any graph (matching, crowd_forecast, suggestions, user_profile)
  - GET /docs - Interactive API documentation (Swagger UI)
  - GET /openapi.json - OpenAPI schema
"""

from dotenv import load_dotenv
load_dotenv()

import asyncio
from fastapi import FastAPI, HTTPException, Request, status, Header
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel
from typing import Dict, Any, Optional, Annotated
import time

# Import configuration (loads .env automatically)
from social_rhythm.config import config, validate_config

# Import logging setup
from social_rhythm.utils.logging_config import logger, setup_logging

# Import graphs
from social_rhythm.graphs.matching import create_matching_graph
from social_rhythm.graphs.crowd_forecast import create_crowd_forecast_graph
from social_rhythm.graphs.suggestions import create_suggestions_graph
from social_rhythm.graphs.user_profile import create_user_profile_graph

# Setup logging
setup_logging(debug=config.DEBUG)

# ============================================================
# VALIDATE CONFIGURATION AT STARTUP
# ============================================================
try:
    config_status = validate_config()
    logger.info("✅ Configuration validated successfully")
    for key, value in config_status.items():
        logger.info(f"  {key}: {value}")
except ValueError as e:
    logger.error(f"❌ Configuration error: {e}")
    exit(1)

GRAPH_FACTORIES = {
    "matching": create_matching_graph,
    "crowd_forecast": create_crowd_forecast_graph,
    "suggestions": create_suggestions_graph,
    "user_profile": create_user_profile_graph,
}

# ============================================================
# FASTAPI APPLICATION
# ============================================================
app = FastAPI(
    title="Social Rhythm Scoring Service",
    description="Companion matching, crowd forecasting and visit suggestions",
    version="1.0.0",
)

# ============================================================
# CORS CONFIGURATION
# ============================================================
# Allow requests from the web frontend and API backend during dev.
origins = [
    "http://localhost:3000",  # Next.js dev
    "http://localhost:5001",  # Express API dev origin
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================
# REQUEST/RESPONSE MODELS
# ============================================================
class GraphRequest(BaseModel):
    """
    Request body for /run-graph endpoint.

    Attributes:
        graph (str): Name of graph to execute.
                    Options: 'matching', 'crowd_forecast', 'suggestions',
                    'user_profile'
        input (dict): Input state for the graph.
                     Content depends on which graph is being run.
    """
    graph: str
    input: Dict[str, Any]


class GraphResponse(BaseModel):
    """
    Response body for /run-graph endpoint.

    Attributes:
        success (bool): Whether the graph produced a result without errors
        graph (str): Name of the graph that was executed
        data (dict): Output from the graph
        error (Optional[str]): Error message if something went wrong
    """
    success: bool
    graph: str
    data: Dict[str, Any] = {}
    error: Optional[str] = None


# ============================================================
# MIDDLEWARE
# ============================================================
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """
    Middleware to track request processing time.

    Adds X-Process-Time header to all responses showing how long request took.
    """
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


# ============================================================
# ROUTES
# ============================================================

@app.get("/health", tags=["System"])
async def health_check() -> Dict[str, str]:
    """
    Health check endpoint.

    Returns:
        dict: {"status": "healthy"}
    """
    return {"status": "healthy"}


@app.post("/run-graph", response_model=GraphResponse, tags=["Graphs"])
async def run_graph(
    request: GraphRequest,
    authorization: Annotated[Optional[str], Header()] = None,
) -> GraphResponse:
    """
    Execute a scoring graph and return results.

    Supported graphs:
      - matching: Rank candidate companions (standard, quick_location, interest)
      - crowd_forecast: Predict crowd level at a place, optionally as a trend
      - suggestions: Suggest when and where to go, with alternatives
      - user_profile: Build a user profile, rank places for it, score suggestions

    Raises:
        HTTPException: If graph doesn't exist, fails to execute, or exceeds GRAPH_TIMEOUT
    """
    if config.AI_SERVICE_TOKEN:
        expected = f"Bearer {config.AI_SERVICE_TOKEN}"
        if authorization != expected:
            logger.warning("Unauthorized request: invalid or missing token")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Unauthorized",
            )

    logger.info(f"Received request for graph: {request.graph}")
    logger.debug(f"Input keys: {list(request.input.keys())}")

    factory = GRAPH_FACTORIES.get(request.graph)
    if factory is None:
        logger.error(f"Unknown graph: {request.graph}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown graph: {request.graph}. "
                   f"Valid options: {', '.join(GRAPH_FACTORIES)}"
        )

    graph = factory()
    logger.info(f"Executing {request.graph} graph")
    start_time = time.time()

    try:
        result = await asyncio.wait_for(
            run_in_threadpool(graph.invoke, request.input),
            timeout=config.GRAPH_TIMEOUT,
        )
    except asyncio.TimeoutError:
        logger.error(f"⏱️ {request.graph} graph exceeded {config.GRAPH_TIMEOUT}s")
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=f"Graph execution timed out after {config.GRAPH_TIMEOUT}s"
        )
    except Exception as e:
        execution_time = time.time() - start_time
        logger.error(f"❌ {request.graph} graph failed after {execution_time:.2f}s: {str(e)}")
        logger.exception("Full traceback:")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Graph execution failed: {str(e)}"
        )

    execution_time = time.time() - start_time
    error = result.get("error")
    logger.info(
        "run-graph summary: graph=%s input_keys=%s success=%s time=%.2fs",
        request.graph,
        list(request.input.keys()),
        not error,
        execution_time,
    )

    return GraphResponse(
        success=not error,
        graph=request.graph,
        data=result,
        error=error,
    )


@app.get("/", tags=["System"])
async def root() -> Dict[str, str]:
    """
    Root endpoint.

    Returns information about the API and how to access documentation.
    """
    return {
        "service": "Social Rhythm Scoring Service",
        "version": "1.0.0",
        "docs": f"http://localhost:{config.PORT}/docs",
        "health": f"http://localhost:{config.PORT}/health"
    }


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handle HTTP exceptions with consistent error response format.
    """
    logger.error(f"HTTP Exception: {exc.status_code} - {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """
    Handle unexpected exceptions.

    Never returns the exception message to the client; use logging instead.
    """
    logger.error(f"Unhandled exception: {str(exc)}")
    logger.exception("Full traceback:")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500
        }
    )


# ============================================================
# STARTUP EVENTS
# ============================================================

@app.on_event("startup")
async def startup_event():
    """
    Run when the application starts.
    """
    logger.info("=" * 60)
    logger.info("🚀 Social Rhythm Scoring Service Starting Up")
    logger.info("=" * 60)
    logger.info(f"Debug Mode: {config.DEBUG}")
    logger.info(f"Weather Mode: {config.WEATHER_MODE}")
    logger.info(f"Max Candidates: {config.MAX_CANDIDATES}")
    logger.info("✅ Service ready to handle requests")


@app.on_event("shutdown")
async def shutdown_event():
    """
    Run when the application shuts down.
    """
    logger.info("🛑 Social Rhythm Scoring Service Shutting Down")


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    """
    Run with: python -m uvicorn social_rhythm.server:app --reload
    """
    import uvicorn
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="info" if not config.DEBUG else "debug"
    )
