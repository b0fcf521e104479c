from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Keys
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )
    # Optional relay endpoint in front of the Gemini API.
    gemini_base_url: str | None = None

    # Models
    gemini_fast_model: str = "gemini-2.5-flash-image"
    gemini_pro_model: str = "gemini-3-pro-image-preview"

    # Generation
    generation_temperature: float = 0.4
    aspect_ratio: str = "9:16"
    max_image_count: int = 4

    # Output
    download_prefix: str = "efashion-ai-"

    log_level: str = "INFO"


settings = Settings()
