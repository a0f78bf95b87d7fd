"""
Response schemas for the profile API.
PII note: ProfileResponse.data contains personal data - NEVER log.
"""
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field


class ResponseMetadata(BaseModel):
    """Metadata attached to every response."""
    request_id: str = Field(..., alias="requestId", description="Request correlation id")

    class Config:
        populate_by_name = True


class ErrorDetail(BaseModel):
    """Error details for failed requests."""
    code: Literal[
        "UNAUTHORIZED",
        "BAD_REQUEST",
        "NOT_FOUND",
        "FORBIDDEN",
        "EMAIL_RESTRICTED",
        "EMAIL_IN_USE",
        "EMAIL_REQUIRED",
        "UNKNOWN_POLICY",
        "INTERNAL_ERROR",
    ] = Field(
        ...,
        description="Error code"
    )
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether the request can be retried")


class ProfileResponse(BaseModel):
    """Successful profile read or update."""
    success: Literal[True] = True
    data: Dict[str, Any] = Field(..., description="Public profile (no private fields)")
    metadata: ResponseMetadata = Field(..., description="Response metadata")

    class Config:
        populate_by_name = True


class ErrorResponse(BaseModel):
    """Error response."""
    success: Literal[False] = False
    error: ErrorDetail = Field(..., description="Error details")
    metadata: ResponseMetadata = Field(..., description="Response metadata")

    class Config:
        populate_by_name = True
