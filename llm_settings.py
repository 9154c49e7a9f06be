"""Environment-driven settings for the GPT proxy.

Required:
    GPT_KEY         shared secret callers must send as the ``key`` form field
    OPENAI_API_KEY  credential for the chat-completion provider

Optional:
    MODEL_TEMPERATURE (1.0), OPENAI_MODEL (gpt-4),
    OPENAI_BASE_URL (https://api.openai.com/v1), OPENAI_TIMEOUT, LOG_LEVEL
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        populate_by_name=True,
    )

    access_key: str = Field(..., validation_alias="GPT_KEY")
    openai_api_key: str = Field(..., validation_alias="OPENAI_API_KEY")
    model_temperature: float = Field(1.0, validation_alias="MODEL_TEMPERATURE")

    openai_model: str = Field("gpt-4", validation_alias="OPENAI_MODEL")
    openai_base_url: str = Field(
        "https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL"
    )
    # None means requests waits as long as the provider takes
    request_timeout: Optional[float] = Field(
        None, gt=0.0, validation_alias="OPENAI_TIMEOUT"
    )
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("openai_base_url")
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    def normalise_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {v!r}")
        return level

    @property
    def completions_url(self) -> str:
        return f"{self.openai_base_url}/chat/completions"


def load_settings(**overrides) -> Settings:
    """Build settings from the environment, failing fast with a readable message."""
    try:
        s = Settings(**overrides)
    except ValidationError as e:
        print(f"Configuration validation error: {e}", file=sys.stderr)
        raise
    logger.debug(
        "Loaded settings model=%s base_url=%s", s.openai_model, s.openai_base_url
    )
    return s
