# tests/test_config.py

"""
Settings Tests - environment loading and validation
"""

import pytest
from pydantic import ValidationError

from grant_review.config import Settings


def make_settings(**overrides):
    # Ignore any local .env so only the test environment applies
    return Settings(_env_file=None, **overrides)


class TestSettings:

    def test_defaults(self):
        settings = make_settings()

        assert settings.API_V1_PREFIX == "/api/v1"
        assert settings.DEFAULT_VARIANCE_THRESHOLD == 20.0
        assert settings.DEFAULT_ASSESSORS_PER_APPLICATION == 2
        assert settings.MAX_BULK_ASSIGNMENTS == 5000

    def test_password_is_secret(self, monkeypatch):
        monkeypatch.setenv("SNOWFLAKE_PASSWORD", "test-password")
        settings = make_settings()

        assert "test-password" not in repr(settings)
        assert settings.SNOWFLAKE_PASSWORD.get_secret_value() == "test-password"

    def test_requires_snowflake_account(self, monkeypatch):
        monkeypatch.delenv("SNOWFLAKE_ACCOUNT", raising=False)

        with pytest.raises(ValidationError):
            make_settings()

    def test_debug_rejected_in_production(self):
        with pytest.raises(ValidationError):
            make_settings(APP_ENV="production", DEBUG=True)

    def test_production_without_debug(self):
        assert make_settings(APP_ENV="production", DEBUG=False).APP_ENV == "production"

    @pytest.mark.parametrize("threshold", [-1, 101])
    def test_variance_threshold_bounds(self, threshold):
        with pytest.raises(ValidationError):
            make_settings(DEFAULT_VARIANCE_THRESHOLD=threshold)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("MAX_BULK_ASSIGNMENTS", "10")

        assert make_settings().MAX_BULK_ASSIGNMENTS == 10
