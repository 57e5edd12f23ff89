"""Configuration management"""
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Storage
DATA_PATH: Path = Path(os.getenv("DATA_PATH", "./data"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# XP multipliers applied to step-derived XP (never to the daily bonus)
STANDARD_XP_MULTIPLIER: float = float(os.getenv("STANDARD_XP_MULTIPLIER", "1.0"))
PREMIUM_XP_MULTIPLIER: float = float(os.getenv("PREMIUM_XP_MULTIPLIER", "1.5"))

# Leaderboard
LEADERBOARD_LIMIT: int = int(os.getenv("LEADERBOARD_LIMIT", "50"))


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if STANDARD_XP_MULTIPLIER <= 0:
        raise ValueError("STANDARD_XP_MULTIPLIER must be positive")
    if PREMIUM_XP_MULTIPLIER <= 0:
        raise ValueError("PREMIUM_XP_MULTIPLIER must be positive")
    if LEADERBOARD_LIMIT <= 0:
        raise ValueError("LEADERBOARD_LIMIT must be positive")
    if not isinstance(logging.getLevelName(LOG_LEVEL.upper()), int):
        raise ValueError(f"LOG_LEVEL '{LOG_LEVEL}' is not a valid logging level")
