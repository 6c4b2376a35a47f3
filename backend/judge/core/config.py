from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    APP_NAME: str = "Judge Gateway"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # First-party execution service (self-hosted)
    EXECUTOR_BASE_URL: str = "http://localhost:5000"

    # Third-party compiler API
    COMPILER_API_URL: str = "https://www.onlinegdb.com/api/v1"
    COMPILER_API_KEY: str | None = None
    COMPILER_API_USER_AGENT: str = "JudgeGateway/1.0"
    COMPILER_API_MAX_TIMEOUT_S: int = 30

    # Execution limits
    DEFAULT_TIME_LIMIT_MS: int = 8000
    SANDBOX_MEMORY_MB: int = 256
    GRADE_CONCURRENCY: int = 1

    # Simulation fallback
    SIMULATION_SEED: int | None = None

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    RUN_STREAM: str = "runs:jobs"
    RUN_GROUP: str = "runners"
    EVENT_CHANNEL_PREFIX: str = "runs:events:"
    SESSION_PREFIX: str = "runs:session:"
    SESSION_TTL_SECONDS: int = 600

    model_config = SettingsConfigDict(env_file=".env")

    @property
    def executor_base_url(self) -> str:
        # accept both "https://host" and "https://host/api/"
        base = self.EXECUTOR_BASE_URL.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
