"""
Runtime configuration for AI Mandalart.

All settings come from environment variables and are read once into an
immutable Settings object. Malformed numeric values fail fast with
ConfigurationError at startup instead of surfacing mid-request.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Mapping

from mandalart.lib.exceptions import ConfigurationError

DEFAULT_LLM_BASE_URL = "https://api.openai.com/v1"
DEFAULT_LLM_MODEL = "gpt-4o"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _parse_bool(raw: str | None, default: bool = False) -> bool:
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_number(env: Mapping[str, str], name: str, default: float, cast: type) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Resolved service configuration."""

    openai_api_key: str | None = None
    llm_base_url: str = DEFAULT_LLM_BASE_URL
    llm_model: str = DEFAULT_LLM_MODEL
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    llm_timeout: float = 60.0
    llm_max_attempts: int = 3
    llm_backoff_seconds: float = 1.0

    redis_url: str = DEFAULT_REDIS_URL
    session_ttl: int = 0  # seconds, 0 keeps sessions until reset
    strict_transitions: bool = False

    environment: str = "development"
    dev_mode: bool = False
    cors_origins: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Raises:
            ConfigurationError: A numeric variable is malformed or out of range
        """
        env = os.environ if env is None else env

        max_attempts = int(_parse_number(env, "MANDALART_LLM_MAX_ATTEMPTS", 3, int))
        if max_attempts < 1:
            raise ConfigurationError("MANDALART_LLM_MAX_ATTEMPTS must be at least 1")

        session_ttl = int(_parse_number(env, "MANDALART_SESSION_TTL", 0, int))
        if session_ttl < 0:
            raise ConfigurationError("MANDALART_SESSION_TTL must not be negative")

        cors_origins = tuple(
            origin.strip()
            for origin in env.get("MANDALART_CORS_ORIGINS", "").split(",")
            if origin.strip()
        )

        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            llm_base_url=env.get("MANDALART_LLM_BASE_URL") or DEFAULT_LLM_BASE_URL,
            llm_model=env.get("MANDALART_LLM_MODEL") or DEFAULT_LLM_MODEL,
            llm_temperature=_parse_number(env, "MANDALART_LLM_TEMPERATURE", 0.7, float),
            llm_max_tokens=int(_parse_number(env, "MANDALART_LLM_MAX_TOKENS", 2000, int)),
            llm_timeout=_parse_number(env, "MANDALART_LLM_TIMEOUT", 60.0, float),
            llm_max_attempts=max_attempts,
            llm_backoff_seconds=_parse_number(env, "MANDALART_LLM_BACKOFF", 1.0, float),
            redis_url=env.get("REDIS_URL") or DEFAULT_REDIS_URL,
            session_ttl=session_ttl,
            strict_transitions=_parse_bool(env.get("MANDALART_STRICT_TRANSITIONS")),
            environment=env.get("MANDALART_ENVIRONMENT", "development"),
            dev_mode=_parse_bool(env.get("MANDALART_DEV_MODE")),
            cors_origins=cors_origins,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    return Settings.from_env()
