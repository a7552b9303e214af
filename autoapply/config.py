"""Application configuration using pydantic-settings."""

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMProvider(str, Enum):
    """Backend used for text completions."""

    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: str = "INFO"

    # Text completion backend
    llm_provider: LLMProvider = LLMProvider.ANTHROPIC
    llm_temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    llm_max_tokens: int = Field(default=2000, ge=1, le=8192)

    # Anthropic Claude SDK
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-sonnet-4-20250514"

    # AWS Bedrock (alternative to direct Anthropic API)
    bedrock_enabled: bool = False
    bedrock_region: str = "us-east-1"
    bedrock_model_id: str = "anthropic.claude-3-5-sonnet-20241022-v2:0"

    # OpenRouter
    openrouter_api_key: str | None = None
    openrouter_model: str = "anthropic/claude-3.5-sonnet"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    app_url: str = "http://localhost:3000"
    app_title: str = "Job Hunter"

    # Langfuse Observability
    langfuse_secret_key: str | None = None
    langfuse_public_key: str | None = None
    langfuse_base_url: str = "https://cloud.langfuse.com"

    # Playwright Settings
    playwright_headless: bool = True
    playwright_slow_mo: int = Field(default=0, ge=0, le=1000)  # ms between actions
    browser_timeout: int = Field(default=30000, ge=1000, le=120000)  # ms
    browser_viewport_width: int = Field(default=1280, ge=320)
    browser_viewport_height: int = Field(default=800, ge=240)
    browser_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    browser_locale: str = "en-US"
    browser_timezone: str = "America/New_York"
    navigation_wait_until: str = "networkidle"

    # Fixed waits (ms)
    post_navigation_wait_ms: int = Field(default=1000, ge=0)
    apply_click_wait_ms: int = Field(default=2000, ge=0)
    field_fill_delay_ms: int = Field(default=50, ge=0)
    post_upload_wait_ms: int = Field(default=1000, ge=0)
    post_submit_wait_ms: int = Field(default=3000, ge=0)
    pre_submit_screenshot_wait_ms: int = Field(default=1500, ge=0)
    step_transition_wait_ms: int = Field(default=1500, ge=0)

    # Screenshots are returned as data URLs unless a directory is configured
    screenshot_dir: str | None = None

    # Application Automation
    max_form_steps: int = Field(default=5, ge=1, le=20)
    textarea_answer_max_words: int = Field(default=150, ge=10)
    short_answer_max_words: int = Field(default=50, ge=5)
    job_description_excerpt_chars: int = Field(default=2000, ge=200)
    cover_letter_excerpt_chars: int = Field(default=1000, ge=100)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.app_env == Environment.DEVELOPMENT


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
