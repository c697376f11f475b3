"""Tests for settings validation and the startup helpers built on it."""

import pytest
from pydantic import ValidationError

from artigov.core.config import ConfigurationError, Environment, Settings
from artigov.database import backend_name, mask_url
from artigov.main import connection_hint


def _secure(**overrides) -> Settings:
    values = dict(
        environment=Environment.PRODUCTION,
        jwt_secret_key="0123456789abcdef0123456789abcdef",
        auth_enabled=True,
        cors_allowed_origins="https://pmo.example.com",
    )
    values.update(overrides)
    return Settings(**values)


class TestSettingsValidation:

    def test_log_settings_are_normalised(self):
        s = Settings(log_level="debug", log_format="TEXT")
        assert s.log_level == "DEBUG"
        assert s.log_format == "text"

    @pytest.mark.parametrize("field,value", [
        ("log_level", "chatty"),
        ("log_format", "xml"),
        ("jwt_algorithm", "RS256"),
        ("default_step_name", "   "),
        ("rate_limit_per_minute", -1),
    ])
    def test_rejects_bad_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_wildcard_cors_refused(self):
        with pytest.raises(ValueError):
            Settings(cors_allowed_origins="https://a.example.com, *").get_cors_origins()


class TestProductionGate:

    def test_secure_production_config_passes(self):
        _secure().validate_production_config()

    def test_default_secret_blocks_production(self):
        s = _secure(jwt_secret_key="dev-insecure-key-change-me")
        with pytest.raises(ConfigurationError, match="JWT_SECRET_KEY"):
            s.validate_production_config()

    def test_header_identity_blocks_production(self):
        with pytest.raises(ConfigurationError, match="AUTH_ENABLED"):
            _secure(auth_enabled=False).validate_production_config()

    def test_development_only_warns(self):
        s = Settings(environment=Environment.DEVELOPMENT, auth_enabled=False)
        s.validate_production_config()
        assert any("AUTH_ENABLED" in p for p in s.insecure_settings())


class TestDatabaseHelpers:

    def test_mask_url_hides_password(self):
        masked = mask_url("postgresql://artigov:s3cret@db:5432/artigov")
        assert masked == "postgresql://artigov:***@db:5432/artigov"

    def test_backend_name_strips_driver(self):
        assert backend_name("postgresql+psycopg2://u@h/db") == "postgresql"
        assert backend_name("sqlite:///./x.db") == "sqlite"

    def test_connection_hint(self):
        assert "password" in connection_hint("postgresql", "FATAL: password authentication failed")
        assert "DATABASE_URL" in connection_hint("mysql", "boom")
