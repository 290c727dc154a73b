"""Configuration settings for the Billboard Location Signal API."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # API Settings
    app_name: str = "Billboard Location Signal API"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000

    # TomTom Traffic Flow Settings
    tomtom_api_key: Optional[str] = None
    tomtom_base_url: str = "https://api.tomtom.com/traffic/services/4/flowSegmentData"

    # INEGI DENUE Settings
    denue_token: Optional[str] = None
    denue_base_url: str = "https://www.inegi.org.mx/app/api/denue/v1/consulta/Buscar/todos"

    provider_timeout_seconds: float = 15.0

    # Cache Settings
    cache_directory: str = ".cache/signals"
    cache_size_limit: int = 2**30  # 1GB
    cache_staleness_days: int = 7

    # CORS Settings
    cors_origins: list = ["*"]

    # Request log (JSON lines); None disables the file handler
    request_log_file: Optional[str] = "logs/requests.jsonl"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
