from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    GEMINI_API_KEY: str = ""
    # The YouTube Data API takes a Google API key too; reuse Gemini's when unset.
    YOUTUBE_API_KEY: str = ""
    GEMINI_TEXT_MODEL: str = "gemini-2.0-flash"
    GEMINI_VIDEO_MODEL: str = "gemini-2.5-flash"

    CONFIDENCE_THRESHOLD: float = Field(default=0.7, ge=0.0, le=1.0)
    SCRAPE_TIMEOUT_SECONDS: float = 10.0
    MAX_RECIPE_URLS: int = 3
    LLM_TIMEOUT_SECONDS: float = 120.0
    TIER2_MAX_RETRIES: int = Field(default=1, ge=0)
    TRANSCRIPT_MAX_CHARS: int = 30_000
    MAX_FINISHED_JOBS: int = Field(default=1000, ge=1)

    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
    )

    @model_validator(mode="after")
    def _default_youtube_key(self) -> "Settings":
        if not self.YOUTUBE_API_KEY:
            self.YOUTUBE_API_KEY = self.GEMINI_API_KEY
        return self


settings = Settings()
