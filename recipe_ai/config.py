"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_API_KEY = "YOUR_SECURE_API_KEY_HERE"

DEFAULT_SYSTEM_PROMPT = (
    "You are a world-class chef. Based on the user's request, generate a unique, appealing, "
    "and easy-to-follow recipe. Use common metric or imperial units as appropriate. "
    "Ensure your response strictly follows the provided JSON schema."
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    port: int = 8080
    host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"

    # HTTP Settings
    http_timeout: float = 30.0  # seconds, text generation
    image_http_timeout: float = 120.0  # seconds, image generation (large base64 bodies)

    # Rate Limiting
    rate_limit_per_hour: int = 100

    # Gemini text generation
    gemini_api_url: str = (
        "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.5-flash:generateContent"
    )
    gemini_api_key: str = PLACEHOLDER_API_KEY
    gemini_api_key_file: str = ".env"
    gemini_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    gemini_dev_fallback: bool = False
    gemini_max_attempts: int = 3
    gemini_retry_backoff_ms: int = 300

    # Gemini image generation
    gemini_image_enabled: bool = False
    gemini_image_url: str = ""
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_image_backoff_ms: int = 500

    # Safety
    enforce_safety_checks: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
