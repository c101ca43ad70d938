"""
Application configuration
"""

from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Basics
    APP_NAME: str = "Battle Seoul"
    VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite:///./battle_seoul.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    # Matching
    MATCHING_COOLDOWN_MINUTES: int = 30  # minimum gap between smart matching runs
    DEFAULT_MAX_MATCHES: int = 3
    FORCE_MAX_MATCHES: int = 5
    BATTLE_DURATION_DAYS: int = 7

    # Matching score weights (sum of the four weights is the max score)
    MATCH_WEIGHT_RECENCY: float = 35.0
    MATCH_WEIGHT_ENGAGEMENT: float = 35.0
    MATCH_WEIGHT_FRESHNESS: float = 15.0
    MATCH_WEIGHT_PLATFORM_DIVERSITY: float = 15.0
    MATCH_RECENCY_WINDOW_DAYS: float = 7.0
    MATCH_FRESH_WINDOW_DAYS: float = 7.0
    MATCH_VIEW_WEIGHT: float = 0.1  # one view counts as a tenth of a like

    # Voting
    VOTE_REWARD_POINTS: int = 10
    VOTE_MAX_RETRIES: int = 3

    # Media detection
    TIKTOK_OEMBED_URL: str = "https://www.tiktok.com/oembed"
    HTTP_TIMEOUT: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True

# Global settings instance
settings = Settings()
