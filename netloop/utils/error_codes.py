from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Standard netloop error codes."""

    E001 = "E001"  # Lookup: Company not found
    E002 = "E002"  # Input: Malformed position
    E003 = "E003"  # Loop: Invalid loop
    E004 = "E004"  # Store: Position store unavailable
    E005 = "E005"  # Settlement: Executor failure
    E008 = "E008"  # Conflict: State conflict
    E009 = "E009"  # Validation: Invalid input
    E010 = "E010"  # Internal: Internal error


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.E001: "Company not found",
    ErrorCode.E002: "Malformed position",
    ErrorCode.E003: "Invalid loop",
    ErrorCode.E004: "Position store unavailable",
    ErrorCode.E005: "Settlement execution failed",
    ErrorCode.E008: "State conflict",
    ErrorCode.E009: "Validation error",
    ErrorCode.E010: "Internal error",
}
