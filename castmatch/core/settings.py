from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Storage
    database_url: str = Field(default="sqlite+pysqlite:///./castmatch.db", validation_alias="DATABASE_URL")
    db_auto_create: bool = Field(default=True, validation_alias="DB_AUTO_CREATE")
    recent_results_limit: int = Field(default=5, ge=1, le=100, validation_alias="RECENT_RESULTS_LIMIT")

    media_root: str = Field(default="./storage/media", validation_alias="MEDIA_ROOT")
    media_url_prefix: str = Field(default="/media", validation_alias="MEDIA_URL_PREFIX")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, gt=0, validation_alias="MAX_UPLOAD_BYTES")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")

    # Text completion (character enrichment and the llm strategy)
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    google_cloud_project: str | None = Field(default=None, validation_alias="GOOGLE_CLOUD_PROJECT")
    google_cloud_location: str = Field(default="us-central1", validation_alias="GOOGLE_CLOUD_LOCATION")
    gemini_text_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_TEXT_MODEL")
    gemini_fallback_text_model: str | None = Field(
        default="gemini-2.0-flash",
        validation_alias="GEMINI_FALLBACK_TEXT_MODEL",
    )
    gemini_timeout_seconds: float = Field(default=60.0, gt=0, validation_alias="GEMINI_TIMEOUT_SECONDS")
    gemini_max_retries: int = Field(default=3, ge=1, validation_alias="GEMINI_MAX_RETRIES")
    gemini_initial_backoff_seconds: float = Field(
        default=0.8,
        ge=0,
        validation_alias="GEMINI_INITIAL_BACKOFF_SECONDS",
    )
    gemini_circuit_breaker_threshold: int = Field(
        default=5,
        ge=1,
        validation_alias="GEMINI_CIRCUIT_BREAKER_THRESHOLD",
    )
    gemini_circuit_breaker_timeout: int = Field(
        default=60,
        ge=1,
        validation_alias="GEMINI_CIRCUIT_BREAKER_TIMEOUT",
    )

    # Matching
    matching_strategy: Literal["heuristic", "llm"] = Field(
        default="heuristic",
        validation_alias="MATCHING_STRATEGY",
    )

    @field_validator("media_url_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return "/" + value.strip().strip("/")

    @field_validator("gemini_api_key", "google_cloud_project", mode="before")
    @classmethod
    def _blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


settings = Settings()
