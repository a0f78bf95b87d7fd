"""
PII-safe logging module.
CRITICAL: Never log request bodies, profile fields, emails, tokens or
client-supplied key names.
Only log: requestId, status, errorCode, policy names and key counts.
"""
import logging
import sys
from typing import Any, Optional

from patchguard.core.config import get_settings
from patchguard.services.projection.field_projector import project


def setup_logging() -> None:
    """Configure application logging with PII-safe format."""
    settings = get_settings()

    log_level = logging.DEBUG if settings.service_env == "dev" else logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance."""
    return logging.getLogger(name)


class SafeLogger:
    """
    PII-safe logger wrapper.
    Context keyword arguments pass through an allowlist; anything else is dropped.
    """

    SAFE_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "error_code",
        "action",
        "policy",
        "kept_count",
        "dropped_count",
        "credential_mode",
        "exception_class",
    )

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _format_safe_context(self, context: dict[str, Any]) -> str:
        """Format only safe fields from context."""
        safe = project(context, self.SAFE_FIELDS)
        return " | ".join(f"{key}={value}" for key, value in safe.items())

    def _log(self, level: int, message: str, context: dict[str, Any]) -> None:
        ctx = self._format_safe_context(context)
        full_message = f"{message} | {ctx}" if ctx else message
        self._logger.log(level, full_message)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, context)

    def error(
        self,
        message: str,
        error_code: Optional[str] = None,
        **context: Any
    ) -> None:
        """
        Log error with safe context only.
        NEVER log exception details that might contain PII.
        """
        if error_code:
            context["error_code"] = error_code
        self._log(logging.ERROR, message, context)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, context)


def get_safe_logger(name: str) -> SafeLogger:
    """Get a PII-safe logger instance."""
    return SafeLogger(name)
