"""
Application configuration using Pydantic Settings.

Centralizes all environment variables and app settings: storage backend,
JWT signing, upload limits and the processing pipeline timings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    All sensitive/configurable values should live here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars not defined here
    )

    # Application
    app_name: str = "Digital Vault API"
    debug: bool = False
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:5000"]

    # Storage: "memory" keeps records in process, "mongo" uses Beanie/Motor
    store_backend: str = "memory"
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "digital_vault_db"
    store_timeout_seconds: float = 5.0

    # Auth - HS256 tokens issued by /auth/login and /auth/register
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def strip_jwt_secret(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return v
        return v.strip() or None

    @field_validator("store_backend")
    @classmethod
    def check_store_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "mongo"):
            raise ValueError("store_backend must be 'memory' or 'mongo'")
        return v

    # File upload - local storage path
    upload_dir: str = "uploads"
    max_upload_size_mb: int = 10
    allowed_mime_types: List[str] = [
        "image/jpeg",
        "image/png",
        "image/webp",
        "application/pdf",
    ]

    # Processing pipeline
    extraction_timeout_seconds: float = 30.0
    simulated_ocr_delay_seconds: float = 3.0
    max_concurrent_extractions: int = 4

    # Reaper for records stuck in "processing" (0 disables the sweep)
    stale_processing_seconds: float = 600.0
    reaper_interval_seconds: float = 60.0

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.
    Using lru_cache avoids re-reading .env on every request.
    """
    return Settings()
