from __future__ import annotations

import os
from datetime import timedelta
from enum import Enum
from typing import Any, List, Optional

from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field, field_validator

from photocap.logging import get_logger
from photocap.service.errors import ConfigurationError

logger = get_logger(__name__)


class AppEnv(str, Enum):
    """Deployment environments. Only ``development`` relaxes cookie security."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


def env_field(default: Any, env: str, **kwargs):
    extra = kwargs.pop("json_schema_extra", {}) or {}
    extra = {**extra, "env": env}
    return Field(default, json_schema_extra=extra, **kwargs)


class Settings(BaseModel):
    """Runtime settings for the photocap API."""

    app_env: AppEnv = env_field(
        AppEnv.PRODUCTION,
        "APP_ENV",
        description="development disables the Secure cookie flag for plain-http local setups",
    )
    jwt_secret: Optional[str] = env_field(
        None,
        "JWT_SECRET",
        description="HMAC key for session tokens; startup fails when missing",
    )
    admin_token_ttl_hours: int = env_field(24, "ADMIN_TOKEN_TTL_HOURS", gt=0)
    studio_token_ttl_days: int = env_field(7, "STUDIO_TOKEN_TTL_DAYS", gt=0)
    token_clock_skew_seconds: int = env_field(
        0,
        "TOKEN_CLOCK_SKEW_SECONDS",
        ge=0,
        description="Leeway applied to token expiry checks",
    )
    password_hash_time_cost: int = env_field(3, "PASSWORD_HASH_TIME_COST", ge=1)
    password_hash_memory_cost: int = env_field(
        65536, "PASSWORD_HASH_MEMORY_COST", ge=8, description="KiB"
    )
    password_hash_parallelism: int = env_field(4, "PASSWORD_HASH_PARALLELISM", ge=1)
    database_url: str = env_field(
        "postgresql://localhost:5432/photocap", "DATABASE_URL"
    )
    use_memory_store: bool = env_field(False, "USE_MEMORY_STORE")
    db_pool_min_size: int = env_field(1, "DB_POOL_MIN_SIZE", ge=0)
    db_pool_max_size: int = env_field(10, "DB_POOL_MAX_SIZE", ge=1)
    admin_frontend_url: str = env_field("http://localhost:3001", "ADMIN_FRONTEND_URL")
    studio_frontend_url: str = env_field("http://localhost:3000", "STUDIO_FRONTEND_URL")
    cors_allow_origins: Optional[List[str]] = env_field(
        None,
        "CORS_ALLOW_ORIGINS",
        description="Comma separated override for the two front-end origins",
    )

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_env(cls) -> "Settings":
        env_file_values = dotenv_values(".env")
        merged: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            extra = field.json_schema_extra or {}
            env_key = extra.get("env") if isinstance(extra, dict) else None
            env_name = env_key or name.upper()
            if env_name in os.environ:
                merged[name] = os.environ[env_name]
            elif env_name in env_file_values:
                merged[name] = env_file_values[env_name]
        return cls(**merged)

    @field_validator("app_env", mode="before")
    @classmethod
    def _normalize_env(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def _blank_secret_is_missing(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            origins = [item.strip() for item in value.split(",") if item.strip()]
            return origins or None
        return value

    @property
    def cookie_secure(self) -> bool:
        return self.app_env != AppEnv.DEVELOPMENT

    @property
    def admin_token_ttl(self) -> timedelta:
        return timedelta(hours=self.admin_token_ttl_hours)

    @property
    def studio_token_ttl(self) -> timedelta:
        return timedelta(days=self.studio_token_ttl_days)

    def allowed_origins(self) -> List[str]:
        if self.cors_allow_origins:
            return self.cors_allow_origins
        return [self.admin_frontend_url, self.studio_frontend_url]

    def require_jwt_secret(self) -> str:
        if not self.jwt_secret:
            logger.critical("jwt_secret_missing")
            raise ConfigurationError(
                "JWT_SECRET is not configured; refusing to issue or accept unsigned session tokens"
            )
        return self.jwt_secret


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings.from_env()
    return _settings_cache


_settings_cache: Settings | None = None


def reset_settings_cache() -> None:
    """Clear cached settings so future calls re-read the environment."""

    global _settings_cache
    _settings_cache = None
