"""Settings — environment-driven configuration for the TierBroker engine.

Invariants:
    - get_settings() is cached (lru_cache): one Settings instance per process
    - database_url always names an async driver (asyncpg or aiosqlite)
    - Every retry cap and time window is a positive integer

Design Decisions:
    - pydantic-settings reads env vars and .env; names are unprefixed so the
      DATABASE_URL a hosting platform injects is picked up as-is
    - Business constants (price table, fee rate, role levels) stay in
      core/domain_types.py: they are rules, not deployment knobs
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ASYNC_SCHEMES = {
    "postgres://": "postgresql+asyncpg://",
    "postgresql://": "postgresql+asyncpg://",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore",
    )

    # --- Store ---
    database_url: str = "postgresql+asyncpg://tierbroker:tierbroker@db:5432/tierbroker"
    database_pool_size: int = Field(default=20, ge=1)
    database_max_overflow: int = Field(default=10, ge=0)

    # --- Reference codes ---
    code_generation_max_attempts: int = Field(default=10, ge=1)
    code_recent_use_days: int = Field(default=30, ge=1)

    # --- Hierarchy writes ---
    reparent_max_retries: int = Field(default=3, ge=1)

    # --- HTTP surface ---
    cors_origins: list[str] = ["http://localhost:5173"]

    # --- Logging ---
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("database_url", mode="before")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """Platforms hand out postgres:// URLs; the engine needs asyncpg."""
        if isinstance(v, str):
            for scheme, async_scheme in _ASYNC_SCHEMES.items():
                if v.startswith(scheme):
                    return async_scheme + v[len(scheme):]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


@lru_cache
def get_settings() -> Settings:
    return Settings()
