"""SDK settings and logging configuration."""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Literal

import structlog
from pydantic import AnyHttpUrl, BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_CONTEXT: dict[str, str] = {"service": "cfsdk"}


class ApiSettings(BaseModel):
    """Cloud Foundry API endpoint settings."""

    endpoint: AnyHttpUrl | None = Field(
        default=None, description="Platform API root, e.g. https://api.cf.example.com."
    )
    timeout_seconds: float = Field(default=30.0, gt=0)


class LoginSettings(BaseModel):
    """Authorization-code login settings."""

    client_id: str = "cf"
    client_secret: SecretStr = SecretStr("")
    callback_host: str = "localhost"
    callback_port: int = Field(default=0, ge=0, le=65535)
    callback_timeout_seconds: float | None = Field(default=300.0, gt=0)


class LogSettings(BaseModel):
    """Structured logging settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    service: str = "cfsdk"
    renderer: Literal["json", "console"] = "json"


class Settings(BaseSettings):
    """Root SDK settings loaded from ``CF_``-prefixed environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CF_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api: ApiSettings = Field(default_factory=ApiSettings)
    login: LoginSettings = Field(default_factory=LoginSettings)
    log: LogSettings = Field(default_factory=LogSettings)


def _standard_log_fields(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Inject required structured logging fields."""
    event_dict.setdefault("service", _LOG_CONTEXT["service"])
    event_dict.setdefault("timestamp", datetime.now(UTC).isoformat())
    return event_dict


def configure_structlog(settings: Settings) -> None:
    """Configure structlog to render events on stderr, leaving stdout to callers."""
    _LOG_CONTEXT["service"] = settings.log.service

    log_level = getattr(logging, settings.log.level, logging.WARNING)
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if settings.log.renderer == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            _standard_log_fields,
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and cache SDK settings from environment variables."""
    return Settings()
