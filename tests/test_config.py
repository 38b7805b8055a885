"""Tests for environment settings and logging setup."""
import logging

import pytest

from household_budget.config import ENV_FALLBACKS, get_settings
from household_budget.errors import ConfigError
from household_budget.log import PIIFilter, uvicorn_log_config


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("APP_ENV", "HOUSEHOLD_BUDGET_DB", "CRON_SECRET", "RESEND_API_KEY", "RESEND_FROM_ADDRESS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:

    def test_development_fallbacks(self, clean_env):
        settings = get_settings()

        assert settings.app_env == "development"
        assert settings.cron_secret is None
        assert settings.resend_api_key == ENV_FALLBACKS["RESEND_API_KEY"]
        assert settings.is_production is False

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("HOUSEHOLD_BUDGET_DB", str(tmp_path / "budget.db"))
        clean_env.setenv("CRON_SECRET", "s3cret")

        settings = get_settings()
        assert settings.database_path == tmp_path / "budget.db"
        assert settings.cron_secret == "s3cret"

    def test_unknown_app_env(self, clean_env):
        clean_env.setenv("APP_ENV", "staging")
        with pytest.raises(ConfigError):
            get_settings()

    def test_production_requires_secrets(self, clean_env, tmp_path):
        clean_env.setenv("APP_ENV", "production")
        clean_env.setenv("HOUSEHOLD_BUDGET_DB", str(tmp_path / "budget.db"))
        with pytest.raises(ConfigError, match="CRON_SECRET"):
            get_settings()

        clean_env.setenv("CRON_SECRET", "s3cret")
        with pytest.raises(ConfigError, match="RESEND_API_KEY"):
            get_settings()

        clean_env.setenv("RESEND_API_KEY", "re_live")
        assert get_settings().is_production is True


class TestPIIFilter:

    def test_scrubs_emails_and_ids(self):
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1,
            "Sent to %s for %s", ("alex@example.com", "0123456789abcdef0123456789abcdef"), None,
        )
        assert PIIFilter().filter(record) is True
        assert record.getMessage() == "Sent to [email] for [id]"

    def test_leaves_plain_messages(self):
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "Reset %d charges", (3,), None)
        PIIFilter().filter(record)
        assert record.getMessage() == "Reset 3 charges"

    def test_keeps_args_for_formatters_that_unpack_them(self):
        record = logging.LogRecord(
            "uvicorn.access", logging.INFO, __file__, 1,
            '%s - "%s %s HTTP/%s" %d',
            ("127.0.0.1:5000", "GET", "/api/legacy/categories/0123456789abcdef0123456789abcdef", "1.1", 200),
            None,
        )
        PIIFilter().filter(record)

        client, method, path, version, status = record.args
        assert path == "/api/legacy/categories/[id]"
        assert status == 200


class TestUvicornLogConfig:

    def test_production_filters_every_handler(self):
        config = uvicorn_log_config(production=True)

        assert config["filters"]["pii"] == {"()": PIIFilter}
        assert config["handlers"]
        for handler in config["handlers"].values():
            assert "pii" in handler["filters"]

    def test_development_leaves_uvicorn_config_alone(self):
        from uvicorn.config import LOGGING_CONFIG

        config = uvicorn_log_config(production=False)
        assert config == LOGGING_CONFIG
        assert config is not LOGGING_CONFIG
