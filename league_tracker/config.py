"""Configuration settings for League Tracker."""
import os
from datetime import datetime
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
# Try loading from project root first, then from package directory
env_paths = [
    Path(__file__).parent.parent / '.env',  # Project root
    Path(__file__).parent / '.env'          # Package directory
]

for env_path in env_paths:
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)
        break


class Settings:
    """Application settings loaded from environment variables."""

    # API Configuration
    RIOT_API_KEY: str = os.getenv("RIOT_API_KEY", "")
    RIOT_API_RATE_LIMIT_PER_SECOND: int = int(os.getenv("RIOT_API_RATE_LIMIT_PER_SECOND", "20"))
    RIOT_API_RATE_LIMIT_PER_TWO_MINUTES: int = int(os.getenv("RIOT_API_RATE_LIMIT_PER_TWO_MINUTES", "100"))
    RIOT_API_TIMEOUT: float = float(os.getenv("RIOT_API_TIMEOUT", "10"))

    # Database Configuration
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        f"sqlite:///{Path(__file__).parent.parent}/league_tracker.db"
    )

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Cache / pipeline
    SUMMONER_REFRESH_INTERVAL: int = int(os.getenv("SUMMONER_REFRESH_INTERVAL", "3600"))  # seconds
    WORKER_CONCURRENCY: int = int(os.getenv("WORKER_CONCURRENCY", "2"))
    JOB_MAX_ATTEMPTS: int = int(os.getenv("JOB_MAX_ATTEMPTS", "3"))
    JOB_BACKOFF_SECONDS: float = float(os.getenv("JOB_BACKOFF_SECONDS", "2.0"))
    CRITICAL_JOB_TIMEOUT: float = float(os.getenv("CRITICAL_JOB_TIMEOUT", "20"))
    MATCH_JOB_TIMEOUT: float = float(os.getenv("MATCH_JOB_TIMEOUT", "60"))

    # API Endpoints
    RIOT_API_BASE_URL = "https://{route}.api.riotgames.com"
    DATA_DRAGON_BASE_URL = "https://ddragon.leagueoflegends.com"

    # Platform routing value -> regional routing value
    REGION_GROUPS = {
        'na1': 'americas',
        'br1': 'americas',
        'la1': 'americas',
        'la2': 'americas',
        'eun1': 'europe',
        'euw1': 'europe',
        'tr1': 'europe',
        'ru': 'europe',
        'me1': 'europe',
        'jp1': 'asia',
        'kr': 'asia',
        'oc1': 'sea',
        'ph2': 'sea',
        'sg2': 'sea',
        'th2': 'sea',
        'tw2': 'sea',
        'vn2': 'sea',
    }

    # Short names accepted from users
    SUPPORTED_REGIONS = {
        'na': 'na1',
        'euw': 'euw1',
        'eune': 'eun1',
        'kr': 'kr',
        'br': 'br1',
        'jp': 'jp1',
        'ru': 'ru',
        'oce': 'oc1',
        'tr': 'tr1',
        'lan': 'la1',
        'las': 'la2',
        'me': 'me1',
        'ph': 'ph2',
        'sg': 'sg2',
        'th': 'th2',
        'tw': 'tw2',
        'vn': 'vn2',
    }

    # Match history
    MATCH_HISTORY_START = datetime(2022, 5, 11)
    MATCH_HISTORY_LIMIT: int = 1000
    MATCH_PAGE_SIZE: int = 100


# Global settings instance
settings = Settings()


def normalize_region(region: str) -> str:
    """Map a user supplied region ('euw', 'EUW1') to a platform routing value."""
    value = region.strip().lower()
    if value in settings.REGION_GROUPS:
        return value
    if value in settings.SUPPORTED_REGIONS:
        return settings.SUPPORTED_REGIONS[value]
    raise ValueError(f"Unknown region: {region}")


def region_group(region: str) -> str:
    """Regional routing value used by the account and match endpoints."""
    return settings.REGION_GROUPS[normalize_region(region)]


def validate_config() -> tuple[bool, list[str]]:
    """Validate the current configuration.

    Returns:
        tuple: (is_valid, error_messages)
    """
    errors = []

    if not settings.RIOT_API_KEY:
        errors.append("RIOT_API_KEY is not set in .env file")
    if settings.WORKER_CONCURRENCY < 1:
        errors.append("WORKER_CONCURRENCY must be at least 1")

    return len(errors) == 0, errors
