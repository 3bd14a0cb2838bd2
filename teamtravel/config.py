# teamtravel/config.py
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App
    APP_ENV: Literal["dev", "prod", "staging", "test"] = "dev"
    TZ: str = "America/New_York"

    # OpenAI (only used when USE_MOCK_LLM is off)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    # Amadeus (only used when USE_MOCK_FLIGHTS is off)
    AMADEUS_CLIENT_ID: Optional[str] = None
    AMADEUS_CLIENT_SECRET: Optional[str] = None
    AMADEUS_ENV: str = "sandbox"  # or "production"

    # Redis; unset means in-memory stores
    REDIS_URL: Optional[str] = None
    REDIS_TTL_SECONDS: int = 1800  # group flow state TTL
    REDIS_CACHE_TTL_SECONDS: int = 3600  # flight search cache TTL
    PREFERENCES_TTL_SECONDS: int = 86400 * 30

    # Feature flags
    USE_MOCK_FLIGHTS: bool = True
    USE_MOCK_LLM: bool = True

    # Group search fan-out
    SEARCH_TIMEOUT_SECONDS: float = 20.0
    MAX_CONCURRENT_SEARCHES: int = 8

    # Fallbacks when a user has no home location on file
    HOME_CITY_DEFAULT: str = "New York"
    HOME_AIRPORT_DEFAULT: str = "JFK"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
