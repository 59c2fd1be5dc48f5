"""
pdr_services.error_mapping -- Exception to API error translation.

Responsibility:
    Turns any exception raised by the services into the error body a
    route handler returns.  Kernel errors carry their own ``code`` and
    ``http_status``; anything else is an internal error whose message is
    hidden unless ``debug`` is set.

Architecture position:
    Services layer, outermost.  Imports the exception hierarchy and the
    kernel clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pdr_kernel.domain.clock import Clock, SystemClock
from pdr_kernel.exceptions import (
    ConfigError,
    PartialUpdateFailureError,
    PDRKernelError,
    PDRReadOnlyError,
    TransitionValidationError,
)
from pdr_kernel.logging_config import get_logger

logger = get_logger("services.error_mapping")

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"
INTERNAL_ERROR_MESSAGE = "Internal server error"


@dataclass(frozen=True)
class ErrorResponse:
    status: int
    code: str
    message: str
    errors: tuple[str, ...] = ()
    read_only_reason: str | None = None
    succeeded: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()

    def to_dict(self, clock: Clock | None = None) -> dict[str, Any]:
        """Wire body: ``{"success": false, "error": ..., "code": ...}``.

        ``timestamp`` comes from ``clock``, the caller's injected clock.
        """
        body: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "code": self.code,
            "timestamp": (clock or SystemClock()).now().isoformat(),
        }
        if self.errors:
            body["details"] = list(self.errors)
        if self.read_only_reason is not None:
            body["readOnlyReason"] = self.read_only_reason
        if self.succeeded or self.failed:
            body["succeeded"] = list(self.succeeded)
            body["failed"] = list(self.failed)
        return body


def to_error_response(exc: BaseException, debug: bool = False) -> ErrorResponse:
    """Map ``exc`` to an ``ErrorResponse``; never raises."""
    if isinstance(exc, PDRKernelError):
        errors: tuple[str, ...] = ()
        read_only_reason = None
        succeeded: tuple[str, ...] = ()
        failed: tuple[str, ...] = ()
        if isinstance(exc, (TransitionValidationError, ConfigError)):
            errors = tuple(exc.errors)
        if isinstance(exc, PDRReadOnlyError):
            read_only_reason = exc.read_only_reason
        if isinstance(exc, PartialUpdateFailureError):
            succeeded = exc.succeeded
            failed = tuple(exc.failed)
        return ErrorResponse(
            status=exc.http_status,
            code=exc.code,
            message=str(exc),
            errors=errors,
            read_only_reason=read_only_reason,
            succeeded=succeeded,
            failed=failed,
        )

    logger.error(
        "unhandled_error",
        extra={"exc_class": type(exc).__name__},
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return ErrorResponse(
        status=500,
        code=INTERNAL_ERROR_CODE,
        message=str(exc) if debug else INTERNAL_ERROR_MESSAGE,
    )
