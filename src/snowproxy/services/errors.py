"""
Error types for snowproxy services.

Every failure reported to a caller is a ToolError carrying a kind, a
human-readable message and a stable code; the MCP layer renders it as
``{"error", "message", "code"}``.
"""

import re
from enum import Enum
from typing import Any

from snowproxy.infrastructure.executor import CommandResult

_PERMISSION_DENIED = re.compile(
    r"insufficient\s+privileges|permission\s+denied|not\s+authorized", re.IGNORECASE
)
_DOES_NOT_EXIST = re.compile(r"does\s+not\s+exist", re.IGNORECASE)


class ErrorKind(str, Enum):
    """Machine-readable error category."""

    INVALID_INPUT = "INVALID_INPUT"
    EXCLUDED_OBJECT = "EXCLUDED_OBJECT"
    CLI_ERROR = "CLI_ERROR"
    OBJECT_NOT_FOUND = "OBJECT_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    SYNC_ERROR = "SYNC_ERROR"
    STALENESS_CHECK_ERROR = "STALENESS_CHECK_ERROR"
    DDL_EXECUTION_ERROR = "DDL_EXECUTION_ERROR"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(Exception):
    """Base exception for errors reported to tool callers."""

    def __init__(self, kind: ErrorKind, message: str, code: str):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind.value, "message": self.message, "code": self.code}


class SyncError(ToolError):
    """Fatal error that aborts a whole sync run."""

    def __init__(self, message: str, code: str = "E4001"):
        super().__init__(ErrorKind.SYNC_ERROR, message, code)


def excluded_error(object_name: str, matched_pattern: str | None, code: str) -> ToolError:
    """Build the EXCLUDED_OBJECT error for a blocked name."""
    return ToolError(
        ErrorKind.EXCLUDED_OBJECT,
        f"Object '{object_name}' matches exclusion pattern '{matched_pattern}'",
        code,
    )


def is_permission_denied(result: CommandResult) -> bool:
    return bool(_PERMISSION_DENIED.search(result.stderr) or _PERMISSION_DENIED.search(result.stdout))


def is_not_found(result: CommandResult) -> bool:
    return bool(_DOES_NOT_EXIST.search(result.stderr) or _DOES_NOT_EXIST.search(result.stdout))


def cli_failure(result: CommandResult, code: str, default_message: str = "Unknown error") -> ToolError:
    """
    Map a failed CLI result to a ToolError.

    Privilege failures become PERMISSION_DENIED, a timeout and any other
    non-zero exit become CLI_ERROR with stderr passed through.
    """
    if is_permission_denied(result):
        return ToolError(ErrorKind.PERMISSION_DENIED, result.stderr.strip() or "Permission denied", code)
    if result.timed_out:
        return ToolError(
            ErrorKind.CLI_ERROR,
            result.stderr.strip() or "Command timed out",
            code,
        )
    return ToolError(ErrorKind.CLI_ERROR, result.stderr.strip() or default_message, code)
