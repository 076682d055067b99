"""Configuration management for the Style Engine."""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (only if accessible)
try:
    load_dotenv()
except (PermissionError, OSError):
    # In sandboxed environments, .env might not be accessible
    # Environment variables should be set directly
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Environment
    STYLE_ENGINE_ENV: str = Field(default="dev", description="Environment: dev, test, staging, prod")

    # Completion service
    COMPLETION_PROVIDER: str = Field(default="anthropic", description="anthropic or openai")
    ANTHROPIC_API_KEY: str | None = Field(default=None, description="Anthropic API key")
    ANTHROPIC_MODEL: str = Field(
        default="claude-sonnet-4-5-20250929", description="Default Anthropic model"
    )
    OPENAI_API_KEY: str | None = Field(default=None, description="OpenAI API key")
    OPENAI_MODEL: str = Field(default="gpt-4o", description="Default OpenAI model")
    COMPLETION_TIMEOUT_SECONDS: float = Field(
        default=60.0, description="Upper bound for a single completion call"
    )
    COMPLETION_MAX_TOKENS: int = Field(
        default=4096, description="Max output tokens when no tighter cap applies"
    )
    EDIT_MAX_TOKENS: int = Field(default=1024, description="Output cap for edit-mode requests")

    # Persistence
    PREFERENCE_STORE: str = Field(default="memory", description="memory or supabase")
    SUPABASE_URL: str | None = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_ROLE_KEY: str | None = Field(
        default=None, description="Supabase service role key"
    )

    # Usage tracking
    LLM_USAGE_LOGGING: bool = Field(
        default=False, description="Persist per-call token usage to llm_usage_log"
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance

    Raises:
        ValidationError: If environment variables fail validation
    """
    return Settings()
