"""
Tests for PII-safe logging and settings validation.
"""
import logging

import pytest
from pydantic import ValidationError

from patchguard.core.config import Settings
from patchguard.core.logging import SafeLogger, get_safe_logger


class TestSafeLogger:

    def test_unsafe_context_is_dropped(self, caplog):
        logger = get_safe_logger("patchguard.test")
        with caplog.at_level(logging.INFO, logger="patchguard.test"):
            logger.info(
                "Profile updated",
                policy="profile.self",
                dropped_count=2,
                email="victim@example.com",
                payload={"fullName": "Eve"},
            )
        message = caplog.records[-1].getMessage()
        assert "policy=profile.self" in message
        assert "dropped_count=2" in message
        assert "victim@example.com" not in message
        assert "Eve" not in message

    def test_error_code_is_included(self, caplog):
        logger = SafeLogger("patchguard.test")
        with caplog.at_level(logging.ERROR, logger="patchguard.test"):
            logger.error("Rejected", error_code="EMAIL_IN_USE", token="secret")
        message = caplog.records[-1].getMessage()
        assert message == "Rejected | error_code=EMAIL_IN_USE"

    def test_message_without_context(self, caplog):
        logger = SafeLogger("patchguard.test")
        with caplog.at_level(logging.WARNING, logger="patchguard.test"):
            logger.warning("Plain")
        assert caplog.records[-1].getMessage() == "Plain"


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AUTH_MODE", raising=False)
        monkeypatch.delenv("SERVICE_ENV", raising=False)
        settings = Settings(_env_file=None)
        assert settings.service_env == "dev"
        assert settings.auth_mode == "firebase"
        assert settings.log_projection_drops is True
        assert settings.seed_demo_workspace is False

    def test_dev_auth_forbidden_in_prod(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, service_env="prod", auth_mode="dev")

    def test_invalid_credentials_json(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, firebase_credentials_json="{not json")

    def test_empty_credentials_json_is_none(self):
        settings = Settings(_env_file=None, firebase_credentials_json="")
        assert settings.firebase_credentials_json is None
