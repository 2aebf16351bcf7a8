from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_PATH: Path = Path("data/listings.sqlite")

    CORS_ALLOW_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"                # DEBUG for cache/predicate traces

    GOOGLE_GEOCODING_KEY: str | None = None
    GEOCODING_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    GEOCODE_TIMEOUT_SECONDS: float = 10.0

    CACHE_ENABLED: bool = True
    CACHE_MAX_ENTRIES: int = 5000

    DEFAULT_PER_PAGE: int = 25
    MAX_PER_PAGE: int = 250

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
