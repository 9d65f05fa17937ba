from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    API_VERSION: str = "v1.0.0"
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # comma-separated, or "*" for any origin
    ALLOWED_ORIGINS: str = "*"

    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-3-sonnet-20240229"
    ANTHROPIC_BASE_URL: str = "https://api.anthropic.com"
    ANTHROPIC_VERSION: str = "2023-06-01"
    MODEL_TIMEOUT_SECONDS: float = 30.0
    MODEL_MAX_TOKENS: int = 1000

    # Sessions live in process memory and are evicted this long after their last write.
    SESSION_TTL_SECONDS: int = 24 * 60 * 60

    # Optional override for the fallback resource directory (YAML).
    RESOURCES_PATH: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()] or ["*"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
