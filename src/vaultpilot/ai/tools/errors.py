"""Standardized error types for AI tools.

Tool failures never propagate to the model as exceptions; every error is
rendered into the text result the model sees next.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ErrorCode:
    """Constants for error codes used in tool responses."""

    NOT_FOUND = "not_found"
    MISSING_PARAMETER = "missing_parameter"
    UNKNOWN_TOOL = "unknown_tool"
    PERMISSION_DENIED = "permission_denied"
    FILESYSTEM_ERROR = "filesystem_error"
    NETWORK_ERROR = "network_error"
    INTERNAL_ERROR = "internal_error"


@dataclass
class ToolError(Exception):
    """Base exception class for all tool errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: The text handed back to the model verbatim.
        details: Additional structured error information for logs.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_text(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class MissingParameterError(ToolError):
    def __init__(self, tool_name: str, parameter: str) -> None:
        super().__init__(
            error_code=ErrorCode.MISSING_PARAMETER,
            message=f"Error: missing required parameter '{parameter}' for {tool_name}",
            details={"tool": tool_name, "parameter": parameter},
        )


class UnknownToolError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(
            error_code=ErrorCode.UNKNOWN_TOOL,
            message=f"Unknown tool: {tool_name}",
            details={"tool": tool_name},
        )


class PermissionDeniedError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(
            error_code=ErrorCode.PERMISSION_DENIED,
            message=f"[Tool blocked by user: {tool_name}]",
            details={"tool": tool_name},
        )


__all__ = [
    "ErrorCode",
    "MissingParameterError",
    "PermissionDeniedError",
    "ToolError",
    "UnknownToolError",
]
