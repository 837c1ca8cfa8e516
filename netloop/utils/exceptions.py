from __future__ import annotations

from typing import Any, ClassVar, Optional

from netloop.utils.error_codes import ErrorCode, ERROR_MESSAGES


def _resolve_code(value: ErrorCode | str | None, fallback: ErrorCode) -> ErrorCode:
    if value is None:
        return fallback
    try:
        return ErrorCode(value)
    except ValueError:
        return ErrorCode.E010


class NetloopException(Exception):
    """Base exception for netloop.

    The library has no transport of its own. `to_dict()` is the error payload a host
    returns or logs, and `status_code` is only an advisory mapping for hosts that
    serve errors over HTTP.
    """

    default_code: ClassVar[ErrorCode] = ErrorCode.E010
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | str | None = None,
        details: Optional[dict[str, Any]] = None,
        status_code: int | None = None,
    ):
        resolved = _resolve_code(code, self.default_code)
        self.message = message or ERROR_MESSAGES[resolved]
        self.code = resolved.value
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class BadRequestException(NetloopException):
    default_code = ErrorCode.E009
    status_code = 400


class NotFoundException(NetloopException):
    """Unknown company or position."""

    default_code = ErrorCode.E001
    status_code = 404


class MalformedPositionException(NetloopException):
    """Raised when a position violates its invariants and the build policy is `fail`."""

    default_code = ErrorCode.E002
    status_code = 422


class InvalidLoopException(NetloopException):
    default_code = ErrorCode.E003
    status_code = 400


class PositionStoreUnavailableException(NetloopException):
    default_code = ErrorCode.E004
    status_code = 503


class SettlementExecutionException(NetloopException):
    default_code = ErrorCode.E005
    status_code = 502
