"""Typed boundary for invoking Claude Code as a coding agent backend."""

from importlib import metadata

from claude_code_interface.error_codes import (
    ClaudeCodeError,
    ClaudeCodeErrorCode,
    ErrorCategory,
)
from claude_code_interface.type_guards import (
    ParseResult,
    is_claude_code_result,
    parse_claude_code_result,
)
from claude_code_interface.types import (
    ClaudeCodeCapabilities,
    ClaudeCodeConfig,
    ClaudeCodeResult,
    ClaudeCodeToolCall,
    ClaudeCodeUsage,
    StreamChunk,
)

__all__ = [
    "ClaudeCodeCapabilities",
    "ClaudeCodeConfig",
    "ClaudeCodeError",
    "ClaudeCodeErrorCode",
    "ClaudeCodeResult",
    "ClaudeCodeToolCall",
    "ClaudeCodeUsage",
    "ErrorCategory",
    "ParseResult",
    "StreamChunk",
    "is_claude_code_result",
    "parse_claude_code_result",
]

try:
    __version__ = metadata.version("claude-code-interface")
except metadata.PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"
