"""Solver configuration using Pydantic Settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI (primary provider)
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        alias="OPENAI_BASE_URL",
    )
    openai_model: str = Field(default="gpt-4", alias="OPENAI_MODEL")
    openai_fallback_model: str = Field(
        default="gpt-3.5-turbo",
        alias="OPENAI_FALLBACK_MODEL",
    )

    # Anthropic (secondary provider, optional)
    anthropic_api_key: str = Field(default="", alias="ANTHROPIC_API_KEY")
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1",
        alias="ANTHROPIC_BASE_URL",
    )
    anthropic_model: str = Field(
        default="claude-3-sonnet-20240229",
        alias="ANTHROPIC_MODEL",
    )
    anthropic_legacy_model: str = Field(
        default="claude-2.1",
        alias="ANTHROPIC_LEGACY_MODEL",
    )

    # Shared completion parameters
    ai_max_tokens: int = Field(default=2000, alias="AI_MAX_TOKENS")
    ai_temperature: float = Field(default=0.7, alias="AI_TEMPERATURE")
    ai_timeout: int = Field(default=60, alias="AI_TIMEOUT")

    # Judge0 sandbox
    judge0_api_url: str = Field(
        default="https://judge0-ce.p.rapidapi.com",
        alias="JUDGE0_API_URL",
    )
    rapidapi_key: str = Field(default="", alias="RAPIDAPI_KEY")
    rapidapi_host: str = Field(
        default="judge0-ce.p.rapidapi.com",
        alias="RAPIDAPI_HOST",
    )
    judge0_cpu_time_limit: int = Field(default=2, alias="JUDGE0_CPU_TIME_LIMIT")
    judge0_memory_limit: int = Field(default=128000, alias="JUDGE0_MEMORY_LIMIT")  # KB
    judge0_max_polls: int = Field(default=10, alias="JUDGE0_MAX_POLLS")
    judge0_poll_interval: float = Field(default=1.0, alias="JUDGE0_POLL_INTERVAL")
    judge0_timeout: int = Field(default=30, alias="JUDGE0_TIMEOUT")

    # Subscription plans (monthly query limits)
    free_query_limit: int = Field(default=50, alias="FREE_QUERY_LIMIT")
    pro_query_limit: int = Field(default=500, alias="PRO_QUERY_LIMIT")
    enterprise_query_limit: int = Field(default=5000, alias="ENTERPRISE_QUERY_LIMIT")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/solver.db",
        alias="DATABASE_URL",
    )

    # App Settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return "sqlite" in self.database_url.lower()

    def plan_query_limit(self, plan: str) -> int:
        """Monthly query limit granted by a subscription plan."""
        limits = {
            "free": self.free_query_limit,
            "pro": self.pro_query_limit,
            "enterprise": self.enterprise_query_limit,
        }
        return limits.get(plan, self.free_query_limit)


settings = Settings()
