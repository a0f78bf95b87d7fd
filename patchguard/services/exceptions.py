"""
Custom exceptions for the profile service.
PII-safe: messages never contain payload values, emails or client-supplied keys.
"""
from enum import Enum


class ProfileErrorCode(str, Enum):
    """PII-safe error codes for profile update failures."""
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    EMAIL_RESTRICTED = "EMAIL_RESTRICTED"
    EMAIL_IN_USE = "EMAIL_IN_USE"
    EMAIL_REQUIRED = "EMAIL_REQUIRED"
    UNKNOWN_POLICY = "UNKNOWN_POLICY"


class ProfileError(Exception):
    """
    Base exception for profile service errors.

    Attributes:
        error_code: PII-safe error code for logging and response
        status_code: HTTP status code to return
        message: PII-safe message (no sensitive data)
    """

    def __init__(
        self,
        error_code: ProfileErrorCode,
        message: str = "Profile update failed",
        status_code: int = 400,
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ProfileNotFoundError(ProfileError):
    """Raised when the actor, target or workspace does not exist."""

    def __init__(self, entity: str = "user"):
        super().__init__(
            error_code=ProfileErrorCode.NOT_FOUND,
            message=f"{entity.capitalize()} not found",
            status_code=404,
        )


class ForbiddenError(ProfileError):
    """Raised when the actor may not act on the target or workspace."""

    def __init__(self, reason: str = "Forbidden"):
        super().__init__(
            error_code=ProfileErrorCode.FORBIDDEN,
            message=reason,
            status_code=403,
        )


class EmailChangeRestrictedError(ProfileError):
    """Raised when a user tries to change their own email."""

    def __init__(self, reason: str = "Email changes require admin approval"):
        super().__init__(
            error_code=ProfileErrorCode.EMAIL_RESTRICTED,
            message=reason,
            status_code=403,
        )


class EmailConflictError(ProfileError):
    """Raised when the requested email already belongs to another user."""

    def __init__(self):
        super().__init__(
            error_code=ProfileErrorCode.EMAIL_IN_USE,
            message="Email already in use",
            status_code=409,
        )


class EmailRequiredError(ProfileError):
    """Raised when an admin email change supplies an empty address."""

    def __init__(self):
        super().__init__(
            error_code=ProfileErrorCode.EMAIL_REQUIRED,
            message="Email is required",
            status_code=400,
        )


class UnknownPolicyError(ProfileError):
    """Raised when a call site asks for an allowlist policy that is not registered."""

    def __init__(self, name: str = "unknown"):
        super().__init__(
            error_code=ProfileErrorCode.UNKNOWN_POLICY,
            message=f"Allowlist policy not registered: {name}",
            status_code=500,
        )
