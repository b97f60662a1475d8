

# settings.py
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    ENV: str = "dev"

    # -----------------------
    # DB
    # -----------------------
    DATABASE_URL: str = ""
    DB_POOL_MAX: int = Field(default=10, ge=1)
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=5000, ge=100)

    # "memory" keeps the ledger in-process (local runs only)
    PAYOUT_STORE: Literal["postgres", "memory"] = "postgres"

    # -----------------------
    # Logging
    # -----------------------
    LOG_LEVEL: str = "INFO"

    # -----------------------
    # Payout run
    # -----------------------
    PAYOUT_CURRENCY: str = "USD"
    IMPORT_MAX_ROWS: int = Field(default=10000, ge=1)
    # approved-stage exports move rows to processing
    EXPORT_MARK_PROCESSING: bool = True


settings = Settings()


def validate_env_settings() -> None:
    env = (settings.ENV or "").strip().lower()
    if env not in {"staging", "prod", "production"}:
        return

    problems: list[str] = []
    if not (settings.DATABASE_URL or "").strip():
        problems.append("DATABASE_URL is required")
    if settings.PAYOUT_STORE != "postgres":
        problems.append("PAYOUT_STORE must be 'postgres' outside dev")

    if problems:
        raise RuntimeError(f"Invalid {env} settings: " + "; ".join(problems))
