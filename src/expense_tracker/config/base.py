"""Application settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

from advanced_alchemy.utils.text import slugify
from dotenv import load_dotenv

__all__ = (
    "AISettings",
    "AppSettings",
    "CreditSettings",
    "DatabaseSettings",
    "LogSettings",
    "Settings",
    "get_settings",
)

TRUE_VALUES = {"True", "true", "1", "yes", "Y", "T"}


def get_env(key: str, default: Any) -> Any:
    """Read ``key`` from the environment, cast to the type of ``default``."""
    value = os.getenv(key)
    if value is None:
        return default
    if isinstance(default, bool):
        return value in TRUE_VALUES
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


@dataclass
class AppSettings:
    """Application configuration"""

    NAME: str = field(default_factory=lambda: get_env("APP_NAME", "Expense Tracker"))
    DEBUG: bool = field(default_factory=lambda: get_env("LITESTAR_DEBUG", False))
    SECRET_KEY: str = field(default_factory=lambda: get_env("SECRET_KEY", "change-me-in-production"))
    JWT_ALGORITHM: str = field(default_factory=lambda: get_env("JWT_ALGORITHM", "HS256"))
    ALLOWED_CORS_ORIGINS: list[str] = field(
        default_factory=lambda: get_env("ALLOWED_CORS_ORIGINS", ["http://localhost:3000"]),
    )

    @property
    def slug(self) -> str:
        return slugify(self.NAME)


@dataclass
class DatabaseSettings:
    URL: str = field(
        default_factory=lambda: get_env("DATABASE_URL", "sqlite+aiosqlite:///expenses.sqlite3"),
    )
    ECHO: bool = field(default_factory=lambda: get_env("DATABASE_ECHO", False))
    CREATE_ALL: bool = field(default_factory=lambda: get_env("DATABASE_CREATE_ALL", True))


@dataclass
class AISettings:
    """Language model and conversation storage configuration."""

    MODEL: str = field(default_factory=lambda: get_env("AI_MODEL", "openai/gpt-4o-mini"))
    API_KEY: str | None = field(default_factory=lambda: os.getenv("AI_API_KEY") or os.getenv("OPENAI_API_KEY"))
    BASE_URL: str | None = field(default_factory=lambda: os.getenv("AI_BASE_URL"))
    SESSION_DB_PATH: str = field(default_factory=lambda: get_env("AI_SESSION_DB_PATH", "conversations.db"))
    MAX_TURNS: int = field(default_factory=lambda: get_env("AI_MAX_TURNS", 20))


@dataclass
class CreditSettings:
    """Free tier daily quotas."""

    FUNCTION_CALLS_LIMIT: int = field(default_factory=lambda: get_env("CREDITS_FUNCTION_CALLS_LIMIT", 10))
    MESSAGES_LIMIT: int = field(default_factory=lambda: get_env("CREDITS_MESSAGES_LIMIT", 10))
    RESET_HOURS: int = field(default_factory=lambda: get_env("CREDITS_RESET_HOURS", 24))
    TRANSACTION_HISTORY_LIMIT: int = field(default_factory=lambda: get_env("CREDITS_TRANSACTION_HISTORY_LIMIT", 50))


@dataclass
class LogSettings:
    LEVEL: int = field(default_factory=lambda: get_env("LOG_LEVEL", 20))
    SQLALCHEMY_LEVEL: int = field(default_factory=lambda: get_env("SQLALCHEMY_LOG_LEVEL", 30))


@dataclass
class Settings:
    app: AppSettings = field(default_factory=AppSettings)
    db: DatabaseSettings = field(default_factory=DatabaseSettings)
    ai: AISettings = field(default_factory=AISettings)
    credits: CreditSettings = field(default_factory=CreditSettings)
    log: LogSettings = field(default_factory=LogSettings)

    @classmethod
    def from_env(cls, dotenv_filename: str = ".env") -> Settings:
        env_file = Path(f"{os.curdir}/{dotenv_filename}")
        if env_file.is_file():
            load_dotenv(env_file, override=True)
        return Settings()


@lru_cache(maxsize=1, typed=True)
def get_settings() -> Settings:
    return Settings.from_env()
