"""
Configuration module for the Social Rhythm scoring service.

Loads environment variables and provides configuration singletons.
Uses pydantic for validation.
"""

from pydantic_settings import BaseSettings
from typing import Optional
import os


VALID_WEATHER_MODES = ("random", "fixed")
VALID_WEATHER_CONDITIONS = ("sunny", "rainy", "cloudy", "snowy")


class Config(BaseSettings):
    """
    Application configuration loaded from environment variables.

    All values come from .env file or system environment.
    Type hints provide validation (pydantic converts types automatically).
    """

    # ============================================================
    # MATCHING CONFIGURATION
    # ============================================================
    MATCH_DEFAULT_MAX_DISTANCE_M: int = 5000
    """Distance (meters) at which location similarity drops to 0 when the user sets none."""

    QUICK_MATCH_RADIUS_M: int = 1000
    """Candidate radius (meters) for quick location matching."""

    MAX_CANDIDATES: int = 100
    """Maximum candidates accepted per matching request. Default: 100."""

    # ============================================================
    # PREDICTION CONFIGURATION
    # ============================================================
    SUGGESTION_RADIUS_KM: float = 10.0
    """Places farther than this from the user are not suggested. Default: 10 km."""

    WEATHER_MODE: str = "random"
    """'random' samples a condition per prediction, 'fixed' always uses FIXED_WEATHER_CONDITION."""

    FIXED_WEATHER_CONDITION: str = "cloudy"
    """Condition used when WEATHER_MODE=fixed. One of sunny, rainy, cloudy, snowy."""

    RANDOM_SEED: Optional[int] = None
    """Seed for weather, wait-time and historical-adjustment sampling. Unset = nondeterministic."""

    # ============================================================
    # GRAPH CONFIGURATION
    # ============================================================
    GRAPH_TIMEOUT: int = 30
    """Seconds /run-graph waits for a graph before answering 504. Default: 30 seconds."""

    # ============================================================
    # SECURITY CONFIGURATION
    # ============================================================
    AI_SERVICE_TOKEN: str = os.getenv("AI_SERVICE_TOKEN", "")
    """Shared secret for authenticating requests from the JS backend."""

    # ============================================================
    # SERVER CONFIGURATION
    # ============================================================
    PORT: int = 8000
    """Port to run FastAPI server on. Default: 8000."""

    HOST: str = "0.0.0.0"
    """Host to bind to. 0.0.0.0 = accessible from network."""

    DEBUG: bool = False
    """Enable debug logging. Set True for development, False for production."""

    class Config:
        """Pydantic configuration."""
        env_file = ".env"  # Read from .env file
        case_sensitive = True  # Variable names are case-sensitive
        extra = "ignore"  # Ignore extra env vars not defined above


# ============================================================
# SINGLETON INSTANCE
# ============================================================
# Load config once at startup, reuse throughout app
config = Config()


# ============================================================
# VALIDATION AT STARTUP
# ============================================================
def validate_config() -> dict:
    """
    Validate that config values are usable.

    Called at app startup to fail fast if config is inconsistent.

    Returns:
        dict: Status of each checked field

    Raises:
        ValueError: If any value is out of range
    """
    errors = []

    if config.MATCH_DEFAULT_MAX_DISTANCE_M < 0:
        errors.append("MATCH_DEFAULT_MAX_DISTANCE_M must be non-negative")

    if config.QUICK_MATCH_RADIUS_M < 0:
        errors.append("QUICK_MATCH_RADIUS_M must be non-negative")

    if config.SUGGESTION_RADIUS_KM < 0:
        errors.append("SUGGESTION_RADIUS_KM must be non-negative")

    if config.WEATHER_MODE not in VALID_WEATHER_MODES:
        errors.append(
            f"WEATHER_MODE must be one of {', '.join(VALID_WEATHER_MODES)}"
        )

    # Only matters when the fixed provider is selected
    if (
        config.WEATHER_MODE == "fixed"
        and config.FIXED_WEATHER_CONDITION not in VALID_WEATHER_CONDITIONS
    ):
        errors.append(
            "FIXED_WEATHER_CONDITION must be one of "
            f"{', '.join(VALID_WEATHER_CONDITIONS)}"
        )

    if errors:
        raise ValueError(f"Configuration errors:\n" + "\n".join([f"  - {e}" for e in errors]))

    return {
        "weather": f"✓ {config.WEATHER_MODE}",
        "seed": f"✓ {config.RANDOM_SEED}" if config.RANDOM_SEED is not None else "✗ Not set",
        "auth": "✓ Configured" if config.AI_SERVICE_TOKEN else "✗ Disabled",
        "match_radius": f"✓ {config.MATCH_DEFAULT_MAX_DISTANCE_M}m",
    }


if __name__ == "__main__":
    """Allow testing config by running: python -m social_rhythm.config"""
    try:
        status = validate_config()
        print("✅ Configuration is valid!")
        print("\nConfiguration Status:")
        for key, value in status.items():
            print(f"  {key}: {value}")
    except ValueError as e:
        print(f"❌ Configuration error:\n{e}")
        exit(1)
