"""Application configuration."""

import os
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    openai_timeout_seconds: float = Field(default=60.0, gt=0)
    max_image_bytes: int = Field(default=8 * MIB, gt=0)
    max_images: int = Field(default=10, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_per_client: int = Field(default=5, ge=1)
    rate_limit_global: int = Field(default=100, ge=1)
    missing_weight_policy: Literal["zero", "null"] = "zero"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def debug_errors(self) -> bool:
        """Return true when error bodies may carry diagnostic details."""
        return self.environment == "local"
