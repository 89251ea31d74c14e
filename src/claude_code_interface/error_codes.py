"""Error taxonomy for Claude Code invocations.

Every failure an invocation can produce maps to exactly one
ClaudeCodeErrorCode. Codes are grouped into four categories so hosts can
branch on the class of failure without enumerating every member.

New codes may be added; existing codes never change meaning.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from claude_code_interface.types import ClaudeCodeResult


class ErrorCategory(str, Enum):
    """Broad class of a failure."""

    INVOCATION = "INVOCATION"
    EXECUTION = "EXECUTION"
    LIMIT = "LIMIT"
    PROTOCOL = "PROTOCOL"


class ClaudeCodeErrorCode(str, Enum):
    """Closed set of Claude Code failure codes."""

    # Invocation-level
    CLI_NOT_FOUND = "CLI_NOT_FOUND"
    INVOCATION_FAILED = "INVOCATION_FAILED"
    AUTH_FAILURE = "AUTH_FAILURE"

    # Execution-level
    EXECUTION_FAILED = "EXECUTION_FAILED"
    CANCELLED = "CANCELLED"

    # Limit / validation
    INVALID_REQUEST = "INVALID_REQUEST"
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    MAX_TURNS_EXCEEDED = "MAX_TURNS_EXCEEDED"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"

    # Protocol
    PARSE_ERROR = "PARSE_ERROR"

    @property
    def category(self) -> ErrorCategory:
        """Return the category this code belongs to."""
        return _CATEGORIES[self]


_CATEGORIES = {
    ClaudeCodeErrorCode.CLI_NOT_FOUND: ErrorCategory.INVOCATION,
    ClaudeCodeErrorCode.INVOCATION_FAILED: ErrorCategory.INVOCATION,
    ClaudeCodeErrorCode.AUTH_FAILURE: ErrorCategory.INVOCATION,
    ClaudeCodeErrorCode.EXECUTION_FAILED: ErrorCategory.EXECUTION,
    ClaudeCodeErrorCode.CANCELLED: ErrorCategory.EXECUTION,
    ClaudeCodeErrorCode.INVALID_REQUEST: ErrorCategory.LIMIT,
    ClaudeCodeErrorCode.TIMEOUT: ErrorCategory.LIMIT,
    ClaudeCodeErrorCode.RATE_LIMITED: ErrorCategory.LIMIT,
    ClaudeCodeErrorCode.MAX_TURNS_EXCEEDED: ErrorCategory.LIMIT,
    ClaudeCodeErrorCode.BUDGET_EXCEEDED: ErrorCategory.LIMIT,
    ClaudeCodeErrorCode.PARSE_ERROR: ErrorCategory.PROTOCOL,
}


class ClaudeCodeError(Exception):
    """Classified failure raised where no result can be returned.

    Streaming and capability queries raise this; plain invocations report
    the same information inside a failed ClaudeCodeResult instead.

    Attributes:
        message: Human readable description
        code: The classified failure code
    """

    def __init__(self, message: str, code: ClaudeCodeErrorCode):
        super().__init__(message)
        self.message = message
        self.code = ClaudeCodeErrorCode(code)

    def __repr__(self) -> str:
        return f"ClaudeCodeError({self.message!r}, {self.code.value})"

    def to_result(self, **fields: Any) -> "ClaudeCodeResult":
        """Convert this error into a failed ClaudeCodeResult."""
        from claude_code_interface.types import ClaudeCodeResult

        return ClaudeCodeResult.failure(self.code, self.message, **fields)

