"""
Unit tests for auth module.
PII-safe: tests use mock tokens, never real credentials.
"""
import pytest
from unittest.mock import patch, MagicMock
from fastapi import HTTPException, Request
from firebase_admin import auth

from patchguard.core.auth import (
    AuthErrorCode,
    _classify_auth_exception,
    extract_bearer_token,
    verify_token,
)


def _request_with_header(value):
    mock_request = MagicMock(spec=Request)
    mock_request.headers.get.return_value = value
    return mock_request


class TestExtractBearerToken:
    """Tests for extract_bearer_token function."""

    def test_missing_authorization_header(self):
        with pytest.raises(HTTPException) as exc_info:
            extract_bearer_token(_request_with_header(None))
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Missing Authorization header"

    @pytest.mark.parametrize("header", ["Basic abc123", "Bearer token extra", "Bearer"])
    def test_invalid_format(self, header):
        with pytest.raises(HTTPException) as exc_info:
            extract_bearer_token(_request_with_header(header))
        assert exc_info.value.status_code == 401

    def test_bearer_case_insensitive(self):
        assert extract_bearer_token(_request_with_header("BEARER valid_token")) == "valid_token"


class TestVerifyFirebaseToken:
    """Tests for firebase-mode verification."""

    @patch('patchguard.core.auth.get_settings')
    @patch('patchguard.core.auth._firebase_app', MagicMock())
    @patch('patchguard.core.auth.auth.verify_id_token')
    def test_valid_token_returns_uid(self, mock_verify, mock_settings):
        mock_settings.return_value.auth_mode = "firebase"
        mock_verify.return_value = {"uid": "mock_uid_123"}

        assert verify_token("valid_mock_token") == "mock_uid_123"
        mock_verify.assert_called_once_with("valid_mock_token")

    @patch('patchguard.core.auth.get_settings')
    @patch('patchguard.core.auth._firebase_app', MagicMock())
    @patch('patchguard.core.auth.auth.verify_id_token')
    def test_expired_token_returns_401_with_error_code(self, mock_verify, mock_settings):
        mock_settings.return_value.auth_mode = "firebase"
        mock_verify.side_effect = auth.ExpiredIdTokenError("Token expired", cause=None)

        with pytest.raises(HTTPException) as exc_info:
            verify_token("expired_mock_token")

        assert exc_info.value.status_code == 401
        assert "TOKEN_EXPIRED" in exc_info.value.detail

    @patch('patchguard.core.auth.get_settings')
    @patch('patchguard.core.auth._firebase_app', MagicMock())
    @patch('patchguard.core.auth.auth.verify_id_token')
    def test_detail_does_not_contain_token(self, mock_verify, mock_settings):
        mock_settings.return_value.auth_mode = "firebase"
        mock_verify.side_effect = auth.InvalidIdTokenError("bad token content")

        with pytest.raises(HTTPException) as exc_info:
            verify_token("my_secret_token_12345")

        assert "my_secret_token_12345" not in exc_info.value.detail
        assert "Authentication failed" in exc_info.value.detail


class TestClassifyAuthException:

    @pytest.mark.parametrize("exc,expected", [
        (auth.ExpiredIdTokenError("expired", cause=None), AuthErrorCode.TOKEN_EXPIRED),
        (auth.RevokedIdTokenError("revoked"), AuthErrorCode.TOKEN_REVOKED),
        (auth.InvalidIdTokenError("invalid"), AuthErrorCode.TOKEN_INVALID),
        (auth.InvalidIdTokenError("wrong audience (aud)"), AuthErrorCode.PROJECT_MISMATCH),
        (auth.InvalidIdTokenError("issued in the future (iat)"), AuthErrorCode.CLOCK_SKEW),
        (auth.CertificateFetchError("cannot fetch", cause=None), AuthErrorCode.CERT_FETCH_FAILED),
        (ConnectionError("connection refused"), AuthErrorCode.NETWORK_ERROR),
        (ValueError("some unknown error"), AuthErrorCode.UNKNOWN_AUTH_ERROR),
    ])
    def test_classification(self, exc, expected):
        assert _classify_auth_exception(exc) == expected


class TestDevAuthMode:
    """Tests for dev auth mode (AUTH_MODE=dev)."""

    @patch('patchguard.core.auth.get_settings')
    def test_valid_dev_token_returns_dev_uid(self, mock_settings):
        mock_settings.return_value.auth_mode = "dev"
        mock_settings.return_value.dev_bearer_token = "dev-token"
        mock_settings.return_value.dev_uid = "dev_uid"

        assert verify_token("dev-token") == "dev_uid"

    @patch('patchguard.core.auth.get_settings')
    def test_custom_dev_uid(self, mock_settings):
        mock_settings.return_value.auth_mode = "dev"
        mock_settings.return_value.dev_bearer_token = "my-custom-secret"
        mock_settings.return_value.dev_uid = "admin_1"

        assert verify_token("my-custom-secret") == "admin_1"

    @patch('patchguard.core.auth.get_settings')
    def test_invalid_dev_token_returns_401(self, mock_settings):
        mock_settings.return_value.auth_mode = "dev"
        mock_settings.return_value.dev_bearer_token = "dev-token"

        with pytest.raises(HTTPException) as exc_info:
            verify_token("wrong-token")

        assert exc_info.value.status_code == 401
        assert "TOKEN_INVALID" in exc_info.value.detail
