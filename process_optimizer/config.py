from __future__ import annotations

import os

APP_VERSION = "0.3.0"


def _env_bool(name: str, default: str = "") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    PROJECT_NAME: str = "Process Optimizer"
    API_V1_PREFIX: str = "/api/v1"

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    POSTGRES_HOST: str = os.getenv("POSTGRES_HOST", "localhost")
    POSTGRES_PORT: str = os.getenv("POSTGRES_PORT", "5432")
    POSTGRES_DB: str = os.getenv("POSTGRES_DB", "process_optimizer")
    POSTGRES_USER: str = os.getenv("POSTGRES_USER", "process_optimizer")
    POSTGRES_PASSWORD: str = os.getenv("POSTGRES_PASSWORD", "process_optimizer")

    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts when set
    # (e.g. sqlite+aiosqlite:///./process_optimizer.db for local work).
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")

    RESET_DB: bool = _env_bool("RESET_DB")

    ALLOWED_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv(
            "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:5001"
        ).split(",")
        if origin.strip()
    ]

    # Generative optimization service (OpenAI-compatible chat completions)
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL") or None
    OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o")
    OPTIMIZER_TEMPERATURE: float = float(os.getenv("OPTIMIZER_TEMPERATURE", "0.2"))
    OPTIMIZER_MAX_TOKENS: int = int(os.getenv("OPTIMIZER_MAX_TOKENS", "4096"))
    OPTIMIZER_TIMEOUT_SECONDS: float = float(os.getenv("OPTIMIZER_TIMEOUT_SECONDS", "60"))
    # Single-shot by default; callers retry the whole optimize request if they want to.
    OPTIMIZER_MAX_RETRIES: int = int(os.getenv("OPTIMIZER_MAX_RETRIES", "0"))
    OPTIMIZE_RATE_LIMIT: str = os.getenv("OPTIMIZE_RATE_LIMIT", "10/minute")

    VERSION_BUMP_MAX_ATTEMPTS: int = int(os.getenv("VERSION_BUMP_MAX_ATTEMPTS", "3"))

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
