"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BUS_DATA_CACHE_MS = 5 * 60 * 1000
MAX_BUS_DATA_CACHE_MS = 30 * 60 * 1000


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_from_number: str | None = Field(
        default=None,
        validation_alias=AliasChoices("twilio_from_number", "twilio_phone_number"),
        description="E.164, e.g. +9242...",
    )
    public_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("public_base_url", "base_url"),
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )
    twilio_say_voice: str = Field(default="Polly.Joanna")
    twilio_say_language: str = Field(default="en-US")
    hold_pause_seconds: int = Field(default=5, ge=1)
    gather_timeout_seconds: int = Field(default=5, ge=1)
    twilio_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Upper bound on a single Twilio REST request."
    )

    # Pending calls waiting for an accept/decline decision
    pending_call_max_age_seconds: float = Field(
        default=90.0,
        gt=0,
        description="Pending calls older than this are dropped; should exceed the provider ring timeout.",
    )

    # LLM connectivity
    llm_provider: Literal["openai", "self_hosted_vllm"] = Field(default="openai")
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "openai_api_key"),
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        validation_alias=AliasChoices("llm_model", "openai_model"),
    )
    llm_endpoint: str | None = Field(
        default=None, description="Optional base URL for an OpenAI-compatible inference server."
    )
    llm_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=220, ge=1)
    llm_timeout_seconds: float = Field(default=20.0, gt=0)

    # External bus data (e.g. bookme.pk)
    bus_data_api_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("bus_data_api_url", "bookme_bus_api_url"),
    )
    bus_data_api_method: Literal["GET", "POST"] = Field(default="GET")
    bus_data_api_body: str | None = Field(
        default=None, description="Optional JSON body sent with POST requests."
    )
    bookme_app_version: str | None = Field(default=None)
    bookme_auth: str | None = Field(default=None)
    bus_data_cache_ms: int = Field(default=DEFAULT_BUS_DATA_CACHE_MS)
    bus_data_fetch_timeout_seconds: float = Field(default=10.0, gt=0)
    bus_data_retry_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Minimum delay between refresh attempts after a failed fetch.",
    )

    @field_validator("bus_data_api_method", mode="before")
    @classmethod
    def upper_method(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper() or "GET"
        return value

    @field_validator("bus_data_cache_ms", mode="before")
    @classmethod
    def clamp_cache_window(cls, value: object) -> int:
        try:
            window = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return DEFAULT_BUS_DATA_CACHE_MS
        if window <= 0:
            return DEFAULT_BUS_DATA_CACHE_MS
        return min(window, MAX_BUS_DATA_CACHE_MS)

    @property
    def bus_data_source_configured(self) -> bool:
        url = (self.bus_data_api_url or "").strip()
        return url.startswith("http")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
