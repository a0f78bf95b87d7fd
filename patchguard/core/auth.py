"""
Firebase authentication module.
PII-safe: never log tokens, uid, email, or user data.
"""
import json
import os
import socket
from enum import Enum
from typing import Optional

import firebase_admin
from firebase_admin import auth, credentials
from fastapi import HTTPException, Request, status

from patchguard.core.config import get_settings
from patchguard.core.logging import get_safe_logger

logger = get_safe_logger(__name__)

# Global Firebase app instance
_firebase_app: Optional[firebase_admin.App] = None


class CredentialMode(str, Enum):
    """Firebase credential initialization mode."""
    SERVICE_ACCOUNT_JSON = "service_account_json"
    SERVICE_ACCOUNT_FILE = "service_account_file"
    ADC = "adc"


class AuthErrorCode(str, Enum):
    """
    PII-safe error codes for authentication failures.
    These codes are safe to log and return to clients.
    """
    CERT_FETCH_FAILED = "CERT_FETCH_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    TOKEN_INVALID = "TOKEN_INVALID"
    PROJECT_MISMATCH = "PROJECT_MISMATCH"
    CLOCK_SKEW = "CLOCK_SKEW"
    UNKNOWN_AUTH_ERROR = "UNKNOWN_AUTH_ERROR"


def init_firebase() -> firebase_admin.App:
    """
    Initialize Firebase Admin SDK singleton.

    Priority order:
    1. FIREBASE_CREDENTIALS_JSON env var (JSON string)
    2. GOOGLE_APPLICATION_CREDENTIALS setting or env var (file path)
    3. Application Default Credentials (ADC)
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    settings = get_settings()
    credential_mode: CredentialMode = CredentialMode.ADC
    cred: Optional[credentials.Base] = None
    options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None

    try:
        if settings.firebase_credentials_json:
            cred = credentials.Certificate(json.loads(settings.firebase_credentials_json))
            credential_mode = CredentialMode.SERVICE_ACCOUNT_JSON
        elif settings.google_application_credentials:
            cred = credentials.Certificate(settings.google_application_credentials)
            credential_mode = CredentialMode.SERVICE_ACCOUNT_FILE
        elif os.environ.get("GOOGLE_APPLICATION_CREDENTIALS"):
            cred = credentials.Certificate(os.environ["GOOGLE_APPLICATION_CREDENTIALS"])
            credential_mode = CredentialMode.SERVICE_ACCOUNT_FILE

        # cred None -> firebase_admin falls back to ADC
        _firebase_app = firebase_admin.initialize_app(cred, options)

        logger.info("Firebase initialized", credential_mode=credential_mode.value)
        return _firebase_app

    except Exception as e:
        logger.error(
            "Failed to initialize Firebase",
            error_code="FIREBASE_INIT_ERROR",
            exception_class=type(e).__name__
        )
        raise


def _classify_auth_exception(exc: Exception) -> AuthErrorCode:
    """
    Classify Firebase auth exceptions into PII-safe error codes.

    NEVER logs exception messages; the message is only inspected.
    """
    exc_class_name = type(exc).__name__.lower()
    exc_message_lower = str(exc).lower()

    if isinstance(exc, auth.ExpiredIdTokenError):
        return AuthErrorCode.TOKEN_EXPIRED

    if isinstance(exc, auth.RevokedIdTokenError):
        return AuthErrorCode.TOKEN_REVOKED

    if isinstance(exc, auth.InvalidIdTokenError):
        if "wrong audience" in exc_message_lower or "aud" in exc_message_lower:
            return AuthErrorCode.PROJECT_MISMATCH
        if "issued in the future" in exc_message_lower or "iat" in exc_message_lower:
            return AuthErrorCode.CLOCK_SKEW
        if "has expired" in exc_message_lower:
            return AuthErrorCode.TOKEN_EXPIRED
        return AuthErrorCode.TOKEN_INVALID

    if isinstance(exc, auth.CertificateFetchError):
        return AuthErrorCode.CERT_FETCH_FAILED

    if isinstance(exc, (socket.timeout, socket.gaierror, ConnectionError)):
        return AuthErrorCode.NETWORK_ERROR

    if "cert" in exc_class_name:
        return AuthErrorCode.CERT_FETCH_FAILED

    if "network" in exc_class_name or "connection" in exc_class_name or "timeout" in exc_class_name:
        return AuthErrorCode.NETWORK_ERROR

    return AuthErrorCode.UNKNOWN_AUTH_ERROR


def verify_token(token: str) -> str:
    """
    Verify token and return the user's UID.

    Behavior depends on AUTH_MODE setting:
    - firebase: Uses Firebase Admin SDK to verify ID token
    - dev: Accepts DEV_BEARER_TOKEN and returns DEV_UID

    Returns:
        User UID - NEVER LOGGED

    Raises:
        HTTPException: If token is invalid or expired, with PII-safe error_code
    """
    settings = get_settings()

    if settings.auth_mode == "dev":
        if token and token.strip() == settings.dev_bearer_token:
            return settings.dev_uid
        logger.warning(
            "Token verification failed",
            error_code=AuthErrorCode.TOKEN_INVALID.value,
            exception_class="DevAuthError"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication failed ({AuthErrorCode.TOKEN_INVALID.value})"
        )

    if _firebase_app is None:
        init_firebase()

    try:
        decoded_token = auth.verify_id_token(token)
        uid: str = decoded_token["uid"]
        return uid

    except Exception as exc:
        error_code = _classify_auth_exception(exc)
        logger.warning(
            "Token verification failed",
            error_code=error_code.value,
            exception_class=type(exc).__name__
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Authentication failed ({error_code.value})"
        )


def extract_bearer_token(request: Request) -> str:
    """
    Extract Bearer token from Authorization header.

    Raises:
        HTTPException: If header is missing or malformed
    """
    auth_header = request.headers.get("Authorization")

    if not auth_header:
        logger.warning("Missing authorization header", error_code="NO_AUTH_HEADER")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header"
        )

    parts = auth_header.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        logger.warning("Invalid authorization header format", error_code="INVALID_AUTH_FORMAT")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format. Expected: Bearer <token>"
        )

    return parts[1].strip()


async def verify_auth_header(request: Request) -> None:
    """
    Router-level dependency that verifies auth BEFORE body parsing.

    Stores the authenticated uid in request.state; it is the actor for
    every profile update and is never logged.

    Raises:
        HTTPException 401: If token missing, malformed, or invalid.
    """
    token = extract_bearer_token(request)
    request.state.uid = verify_token(token)
