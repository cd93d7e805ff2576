"""
Application settings using Pydantic Settings.

Loads configuration from environment variables and .env file.
The Settings object is built once at startup by load_settings() and passed
explicitly to every service; nothing else reads the environment.
"""

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.errors import ConfigError

PROMPT_PLACEHOLDER = "{}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Prompt template for rewriting avatar labels ("{}" is the description)
    translate_prompt: str

    # Twitter account and API credentials
    twitter_username: str
    twitter_api_key: str
    twitter_api_secret: str
    twitter_access_token: str
    twitter_access_secret: str
    twitter_bearer_token: str

    # Provider API keys
    openai_api_key: str
    google_vision_api_key: str

    # Dedup store and generated image scratch location
    storage_file: str = "storage.json"
    images_dir: str = "images"

    # Poller
    max_mentions: int = 20
    poll_interval_seconds: int = 120

    # HTTP timeouts for provider calls
    request_timeout_seconds: float = 60.0
    image_timeout_seconds: float = 120.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @field_validator("translate_prompt")
    @classmethod
    def _require_placeholder(cls, value: str) -> str:
        if PROMPT_PLACEHOLDER not in value:
            raise ValueError(f"must contain the {PROMPT_PLACEHOLDER!r} placeholder")
        return value

    @field_validator("twitter_username")
    @classmethod
    def _strip_at(cls, value: str) -> str:
        value = value.strip().lstrip("@")
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {value!r}")
        return value

    @field_validator("max_mentions", "poll_interval_seconds")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value


def load_settings(**overrides) -> Settings:
    """
    Build the application settings.

    Args:
        **overrides: Values that take precedence over the environment.

    Returns:
        Validated Settings instance.

    Raises:
        ConfigError: If required configuration is missing or invalid.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "settings"
            if error["type"] == "missing":
                problems.append(f"Missing {field.upper()}")
            else:
                problems.append(f"Invalid {field.upper()}: {error['msg']}")
        raise ConfigError("; ".join(problems)) from e
