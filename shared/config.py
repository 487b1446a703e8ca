"""
Shared configuration management for the Chat Relay service.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RELAY_",
        case_sensitive=False,
        populate_by_name=True,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")

    # Model gateway
    ai_gateway_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_AI_GATEWAY_URL", "AI_GATEWAY_URL"),
    )
    ai_gateway_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_AI_GATEWAY_TOKEN", "AI_GATEWAY_TOKEN"),
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    gateway_auth_header: str = Field(default="cf-aig-authorization")
    gateway_timeout: Optional[float] = Field(default=None)
    model: str = Field(default="gpt-4o-mini")
    max_tokens: int = Field(default=150)

    # Prompting
    system_prompt: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_SYSTEM_PROMPT", "SYSTEM_PROMPT"),
    )
    system_prompt_key: str = Field(default="SYSTEM_PROMPT")

    # Translation sheet
    sheets_service_key_json: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_SHEETS_SERVICE_KEY_JSON", "SHEETS_SERVICE_KEY_JSON"),
    )
    spreadsheet_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_SPREADSHEET_ID", "SPREADSHEET_ID"),
    )
    sheet_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("RELAY_SHEET_NAME", "SHEET_NAME"),
    )
    translation_column: Optional[str] = Field(default=None)
    translation_max_age: int = Field(default=86400)

    # Response caching
    response_max_age: int = Field(default=86400)
    cache_format_version: str = Field(default="2")

    # Speech synthesis
    speech_api_key: Optional[str] = Field(default=None)
    speech_api_url: str = Field(default="https://api.elevenlabs.io/v1")
    default_voice_id: Optional[str] = Field(default=None)

    # HTTP surface
    cors_enabled: bool = Field(default=True)

    @property
    def translation_enabled(self) -> bool:
        return bool(self.spreadsheet_id and self.sheet_name)

    @property
    def speech_enabled(self) -> bool:
        return bool(self.speech_api_key)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
