"""Boundary validation for untrusted Claude Code results.

Backend output crosses a process boundary, so nothing about its shape can
be assumed. Everything that reaches the host as a ClaudeCodeResult goes
through parse_claude_code_result() or is_claude_code_result() first.
"""

import logging
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from claude_code_interface.types import ClaudeCodeResult

_DEFAULT_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class ParseResult(BaseModel, Generic[T]):
    """Outcome of validating an untrusted value.

    A failed ParseResult means the value could not be validated at all. It
    is distinct from a valid ClaudeCodeResult whose success flag is False.

    Attributes:
        success: Whether the value validated
        data: The validated value
        error: Reason the value was rejected
        metadata: Additional context
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    metadata: Dict[str, Any] = {}

    @classmethod
    def ok(cls, data: T, **metadata: Any) -> "ParseResult[T]":
        """Create a successful parse result."""
        return cls(success=True, data=data, error=None, metadata=metadata)

    @classmethod
    def fail(cls, error: str, **metadata: Any) -> "ParseResult[T]":
        """Create a failed parse result."""
        return cls(success=False, data=None, error=error, metadata=metadata)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def parse_claude_code_result(value: Any) -> ParseResult[ClaudeCodeResult]:
    """Validate an untrusted value as a ClaudeCodeResult.

    Never raises. Accepts a mapping (camelCase or snake_case keys) or an
    existing ClaudeCodeResult. Existing instances are revalidated, since
    model_construct() and model_copy(update=...) bypass validation.

    Args:
        value: Any value, typically deserialized process output

    Returns:
        ParseResult holding the validated result, or the rejection reason
    """
    if not isinstance(value, (dict, ClaudeCodeResult)):
        return ParseResult.fail(f"Expected object, got {type(value).__name__}")

    try:
        result = ClaudeCodeResult.model_validate(value)
    except ValidationError as exc:
        reason = _describe(exc)
        _DEFAULT_LOGGER.debug("Rejected Claude Code result: %s", reason)
        return ParseResult.fail(reason)
    except (TypeError, ValueError, RecursionError) as exc:
        _DEFAULT_LOGGER.debug("Rejected Claude Code result: %s", exc)
        return ParseResult.fail(str(exc) or type(exc).__name__)

    return ParseResult.ok(result)


def is_claude_code_result(value: Any) -> bool:
    """Return True if value is a well-formed ClaudeCodeResult.

    Pure predicate: never raises, and None, primitives, lists and malformed
    objects all yield False.
    """
    return parse_claude_code_result(value).success
