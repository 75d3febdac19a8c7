"""
Unit tests for Settings

Tests environment parsing and the startup invariants that make the process
refuse to start.
"""
import pytest

from coursehub.config import DEFAULT_DATABASE_URL, Settings
from coursehub.exceptions import ConfigurationError

VALID_ENV = {
    "JWT_SECRET": "s" * 32,
    "ALLOWED_ORIGINS": "http://localhost:3000, https://app.example.com",
}


def env_with(**overrides):
    env = dict(VALID_ENV)
    env.update(overrides)
    return env


class TestFromEnv:
    """Test parsing of environment variables"""

    def test_defaults(self):
        settings = Settings.from_env(VALID_ENV)

        assert settings.allowed_origins == ("http://localhost:3000", "https://app.example.com")
        assert settings.bcrypt_rounds == 12
        assert settings.jwt_expire_minutes == 24 * 60
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.rate_limit_max_requests == 100
        assert settings.rate_limit_window_seconds == 900
        assert settings.trust_proxy is False
        assert settings.preflight_requires_auth is True
        assert settings.port == 3000

    def test_overrides(self):
        settings = Settings.from_env(env_with(
            BCRYPT_ROUNDS="14",
            RATE_LIMIT_MAX_REQUESTS="5",
            TRUST_PROXY="true",
            PREFLIGHT_REQUIRES_AUTH="0",
            LOG_LEVEL="debug",
            DATABASE_URL="postgresql://db/coursehub",
        ))

        assert settings.bcrypt_rounds == 14
        assert settings.rate_limit_max_requests == 5
        assert settings.trust_proxy is True
        assert settings.preflight_requires_auth is False
        assert settings.log_level == "DEBUG"
        assert settings.database_url == "postgresql://db/coursehub"

    def test_blank_origins_are_dropped(self):
        settings = Settings.from_env(env_with(ALLOWED_ORIGINS="http://a.test,, ,"))

        assert settings.allowed_origins == ("http://a.test",)

    def test_non_integer_value(self):
        with pytest.raises(ConfigurationError, match="BCRYPT_ROUNDS"):
            Settings.from_env(env_with(BCRYPT_ROUNDS="twelve"))


class TestStartupInvariants:
    """Test each invariant that aborts startup"""

    def test_missing_secret(self):
        env = dict(VALID_ENV)
        del env["JWT_SECRET"]
        with pytest.raises(ConfigurationError, match="JWT_SECRET"):
            Settings.from_env(env)

    def test_short_secret(self):
        with pytest.raises(ConfigurationError, match="at least 32"):
            Settings.from_env(env_with(JWT_SECRET="s" * 31))

    @pytest.mark.parametrize("rounds", ["9", "16"])
    def test_bcrypt_rounds_out_of_range(self, rounds):
        with pytest.raises(ConfigurationError, match="between 10 and 15"):
            Settings.from_env(env_with(BCRYPT_ROUNDS=rounds))

    def test_missing_origins(self):
        with pytest.raises(ConfigurationError, match="ALLOWED_ORIGINS"):
            Settings.from_env(env_with(ALLOWED_ORIGINS=""))

    def test_non_positive_window(self):
        with pytest.raises(ConfigurationError, match="RATE_LIMIT_WINDOW_SECONDS"):
            Settings.from_env(env_with(RATE_LIMIT_WINDOW_SECONDS="0"))

    def test_settings_are_immutable(self):
        settings = Settings.from_env(VALID_ENV)
        with pytest.raises(AttributeError):
            settings.jwt_secret = "x" * 40
