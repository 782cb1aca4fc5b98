"""Configuration loading and context overrides."""

from pathlib import Path

import pytest

from src.accounts.runtime.config.config_data import (
    ConfigData,
    DatabaseConfig,
    PaginationConfig,
    RateLimiterConfig,
    RedisConfig,
    WelcomeEmailConfig,
)
from src.accounts.runtime.config.config_template import (
    load_templated_yaml,
    substitute_env_vars,
)
from src.accounts.runtime.context import get_config, with_context


class TestSubstituteEnvVars:
    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("ACCOUNTS_TEST_VAR", raising=False)
        assert substitute_env_vars("x: ${ACCOUNTS_TEST_VAR:-fallback}") == "x: fallback"

    def test_value_from_environment(self, monkeypatch):
        monkeypatch.setenv("ACCOUNTS_TEST_VAR", "set")
        assert substitute_env_vars("x: ${ACCOUNTS_TEST_VAR:-fallback}") == "x: set"

    def test_required_variable_missing(self, monkeypatch):
        monkeypatch.delenv("ACCOUNTS_TEST_VAR", raising=False)
        with pytest.raises(ValueError, match="ACCOUNTS_TEST_VAR"):
            substitute_env_vars("x: ${ACCOUNTS_TEST_VAR}")

    def test_required_with_message(self, monkeypatch):
        monkeypatch.delenv("ACCOUNTS_TEST_VAR", raising=False)
        with pytest.raises(ValueError, match="needed for tests"):
            substitute_env_vars("x: ${ACCOUNTS_TEST_VAR:?needed for tests}")


class TestLoadTemplatedYaml:
    def test_loads_config_section(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ACCOUNTS_RATE", "5")
        path = tmp_path / "config.yaml"
        path.write_text(
            "config:\n"
            "  rate_limiter:\n"
            "    requests: ${ACCOUNTS_RATE:-60}\n"
            "  pagination:\n"
            "    default_per_page: 10\n"
        )

        config = load_templated_yaml(path)

        assert config.rate_limiter.requests == 5
        assert config.pagination.default_per_page == 10
        assert config.welcome_email.subject == "Welcome to Our Application"

    def test_environment_prefixed_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "test")
        monkeypatch.setenv("TEST_ACCOUNTS_DB", "sqlite:///override.db")
        monkeypatch.setenv("ACCOUNTS_DB", "sqlite:///base.db")
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  database:\n    url: ${ACCOUNTS_DB:-sqlite:///base.db}\n")

        config = load_templated_yaml(path)

        assert config.database.url == "sqlite:///override.db"

    def test_invalid_values_rejected(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  rate_limiter:\n    requests: lots\n")
        with pytest.raises(ValueError, match="Invalid configuration"):
            load_templated_yaml(path)

    def test_empty_file_rejected(self, tmp_path: Path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_templated_yaml(path)

    def test_repository_config_parses(self):
        config = load_templated_yaml(Path(__file__).parents[3] / "config.yaml")
        assert config.rate_limiter.requests == 60
        assert config.welcome_email.max_attempts == 3

    def test_test_config_keeps_in_memory_sqlite_url(self):
        config = load_templated_yaml(Path(__file__).parents[2] / "config.test.yaml")
        assert config.database.url == "sqlite:///:memory:"

    def test_url_ending_with_colon_from_environment(self, monkeypatch):
        monkeypatch.delenv("TEST_DATABASE_URL", raising=False)
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")

        config = load_templated_yaml(Path(__file__).parents[3] / "config.yaml")

        assert config.database.url == "sqlite:///:memory:"


class TestConfigModels:
    def test_pagination_bounds(self):
        with pytest.raises(ValueError):
            PaginationConfig(default_per_page=200, max_per_page=100)

    def test_welcome_delay_bounds(self):
        with pytest.raises(ValueError):
            WelcomeEmailConfig(min_delay_seconds=20, max_delay_seconds=10)

    def test_sqlite_connection_string_untouched(self):
        db = DatabaseConfig(url="sqlite:///./accounts.db")
        assert db.is_sqlite
        assert db.connection_string == "sqlite:///./accounts.db"

    def test_database_password_from_env(self, monkeypatch):
        monkeypatch.setenv("ACCOUNTS_DB_PASSWORD", "s3cret")
        db = DatabaseConfig(
            url="postgresql://app@db:5432/accounts",
            password_env_var="ACCOUNTS_DB_PASSWORD",
        )
        assert db.connection_string == "postgresql://app:s3cret@db:5432/accounts"

    def test_database_password_env_missing(self, monkeypatch):
        monkeypatch.delenv("ACCOUNTS_DB_PASSWORD", raising=False)
        db = DatabaseConfig(
            url="postgresql://app@db/accounts", password_env_var="ACCOUNTS_DB_PASSWORD"
        )
        with pytest.raises(ValueError):
            _ = db.password

    def test_redis_connection_string(self):
        assert RedisConfig().connection_string is None
        redis = RedisConfig(url="redis://cache:6379/0", password="pw")
        assert redis.connection_string == "redis://:pw@cache:6379/0"


class TestWithContext:
    def test_override_is_scoped(self):
        original = get_config().rate_limiter.requests

        with with_context(ConfigData(rate_limiter=RateLimiterConfig(requests=3))):
            assert get_config().rate_limiter.requests == 3
            assert get_config().pagination.max_per_page == 100

        assert get_config().rate_limiter.requests == original

    def test_only_explicit_fields_override(self):
        with with_context(ConfigData(rate_limiter=RateLimiterConfig(requests=3))):
            with with_context(ConfigData(rate_limiter=RateLimiterConfig(enabled=False))):
                assert get_config().rate_limiter.requests == 3
                assert get_config().rate_limiter.enabled is False

    def test_none_is_noop(self):
        before = get_config()
        with with_context(None):
            assert get_config() is before

    def test_rejects_other_types(self):
        with pytest.raises(ValueError):
            with with_context({"rate_limiter": {}}):
                pass
