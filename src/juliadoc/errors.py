"""Error taxonomy for Julia invocations.

Every failure the server can report is a ``JuliaDocError`` carrying an
``ErrorCode``. Errors never reach the MCP transport as exceptions: the
dispatcher turns them into plain text responses.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    INTERPRETER_NOT_FOUND = "INTERPRETER_NOT_FOUND"
    PACKAGE_NOT_FOUND = "PACKAGE_NOT_FOUND"
    SYMBOL_NOT_FOUND = "SYMBOL_NOT_FOUND"
    UNDEFINED_REFERENCE = "UNDEFINED_REFERENCE"
    EMPTY_RESULT = "EMPTY_RESULT"
    TIMEOUT = "TIMEOUT"
    INTERPRETER_ERROR = "INTERPRETER_ERROR"


class JuliaDocError(Exception):
    """A classified failure while validating, building or running a request."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        suggestion: str | None = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def render(self) -> str:
        """Human-readable text returned to the calling agent."""
        if self.suggestion:
            return f"{self.message}\n\n{self.suggestion}"
        return self.message
