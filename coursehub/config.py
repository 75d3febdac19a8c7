"""
Application Configuration

Settings are read from environment variables (a local .env file is honoured)
and validated once at startup. Invalid settings raise ConfigurationError so
the process refuses to start instead of failing on the first request.
"""
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from coursehub.exceptions import ConfigurationError

load_dotenv()

MIN_JWT_SECRET_LENGTH = 32
BCRYPT_ROUNDS_RANGE = (10, 15)
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./learning_platform.db"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _parse_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Immutable runtime settings."""

    jwt_secret: str
    allowed_origins: Tuple[str, ...]
    jwt_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = 12
    database_url: str = DEFAULT_DATABASE_URL
    rate_limit_max_requests: int = 100
    rate_limit_window_seconds: float = 15 * 60
    rate_limit_sweep_seconds: float = 5 * 60
    trust_proxy: bool = False
    preflight_requires_auth: bool = True
    max_body_bytes: int = 1024 * 1024
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check every startup invariant.

        Raises:
            ConfigurationError: On the first violated rule
        """
        if not self.jwt_secret or len(self.jwt_secret) < MIN_JWT_SECRET_LENGTH:
            raise ConfigurationError(
                f"JWT_SECRET must be set and at least {MIN_JWT_SECRET_LENGTH} characters"
            )

        low, high = BCRYPT_ROUNDS_RANGE
        if not low <= self.bcrypt_rounds <= high:
            raise ConfigurationError(f"BCRYPT_ROUNDS must be between {low} and {high}")

        if not self.allowed_origins:
            raise ConfigurationError(
                "ALLOWED_ORIGINS must be explicitly set (comma-separated list)"
            )

        if self.jwt_expire_minutes <= 0:
            raise ConfigurationError("JWT_EXPIRE_MINUTES must be positive")

        if self.rate_limit_max_requests <= 0:
            raise ConfigurationError("RATE_LIMIT_MAX_REQUESTS must be positive")

        if self.rate_limit_window_seconds <= 0:
            raise ConfigurationError("RATE_LIMIT_WINDOW_SECONDS must be positive")

        if self.rate_limit_sweep_seconds <= 0:
            raise ConfigurationError("RATE_LIMIT_SWEEP_SECONDS must be positive")

        if self.max_body_bytes <= 0:
            raise ConfigurationError("MAX_BODY_BYTES must be positive")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read from (defaults to os.environ)

        Returns:
            Validated Settings instance
        """
        env = os.environ if env is None else env

        origins = tuple(
            origin.strip()
            for origin in env.get("ALLOWED_ORIGINS", "").split(",")
            if origin.strip()
        )

        return cls(
            jwt_secret=env.get("JWT_SECRET", ""),
            allowed_origins=origins,
            jwt_expire_minutes=_parse_int(env, "JWT_EXPIRE_MINUTES", 60 * 24),
            bcrypt_rounds=_parse_int(env, "BCRYPT_ROUNDS", 12),
            database_url=env.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            rate_limit_max_requests=_parse_int(env, "RATE_LIMIT_MAX_REQUESTS", 100),
            rate_limit_window_seconds=_parse_float(env, "RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
            rate_limit_sweep_seconds=_parse_float(env, "RATE_LIMIT_SWEEP_SECONDS", 5 * 60),
            trust_proxy=_parse_bool(env.get("TRUST_PROXY", "false")),
            preflight_requires_auth=_parse_bool(env.get("PREFLIGHT_REQUIRES_AUTH", "true")),
            max_body_bytes=_parse_int(env, "MAX_BODY_BYTES", 1024 * 1024),
            host=env.get("HOST", "127.0.0.1"),
            port=_parse_int(env, "PORT", 3000),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Get singleton Settings loaded from the environment"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_env()
    return _settings_instance


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment"""
    global _settings_instance
    _settings_instance = None
