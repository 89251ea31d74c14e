"""Backend-agnostic coding agent lifecycle.

This module defines the abstract base class that invocation collaborators
extend. The base class owns the parts of an invocation that do not depend
on the backend: prompt validation, invocation IDs, timeout resolution,
tracking of in-flight invocations, and cancellation. Subclasses implement
only the backend-specific mechanics.

Plain invocations never raise for execution failures; every failure comes
back as a failed ClaudeCodeResult carrying one ClaudeCodeErrorCode.
"""

import functools
import logging
import threading
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from claude_code_interface.config import AgentSettings
from claude_code_interface.error_codes import ClaudeCodeError, ClaudeCodeErrorCode
from claude_code_interface.types import (
    ClaudeCodeCapabilities,
    ClaudeCodeConfig,
    ClaudeCodeResult,
    StreamChunk,
)
from claude_code_interface.utils import make_invocation_id

_DEFAULT_LOGGER = logging.getLogger(__name__)

StreamHandler = Callable[[str], None]


@dataclass
class InvocationContext:
    """Per-invocation state handed to backend implementations.

    Attributes:
        invocation_id: Unique identifier for this invocation
        timeout_ms: Resolved timeout for this invocation
        cancelled: Set once the invocation has been cancelled
    """

    invocation_id: str
    timeout_ms: int
    cancelled: threading.Event = field(default_factory=threading.Event)
    _callbacks: List[Callable[[], None]] = field(default_factory=list, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback to run on cancellation.

        Runs the callback immediately if the invocation is already cancelled.
        """
        with self._lock:
            if not self.cancelled.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def cancel(self) -> None:
        """Mark the invocation cancelled and run registered callbacks once."""
        with self._lock:
            if self.cancelled.is_set():
                return
            self.cancelled.set()
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                _DEFAULT_LOGGER.warning(
                    "Cancel callback failed for %s: %s", self.invocation_id, e
                )


class InvocationStream:
    """Iterator over the chunks of one streaming invocation.

    The invocation is tracked from the moment the stream is created, so
    invocation_id can be handed to DevAgent.cancel() before the first chunk
    arrives. Exhausting, closing or discarding the stream releases it.

    Attributes:
        invocation_id: Identifier of the streaming invocation
    """

    def __init__(
        self,
        chunks: Iterator[StreamChunk],
        invocation_id: str,
        release: Callable[[], None],
    ):
        self.invocation_id = invocation_id
        self._chunks = chunks
        self._release = weakref.finalize(self, release)

    def __iter__(self) -> "InvocationStream":
        return self

    def __next__(self) -> StreamChunk:
        try:
            return next(self._chunks)
        except StopIteration:
            self._release()
            raise

    def close(self) -> None:
        """Stop the invocation and release it."""
        close = getattr(self._chunks, "close", None)
        if close is not None:
            close()
        self._release()

    def __enter__(self) -> "InvocationStream":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class DevAgent(ABC):
    """Abstract base class for coding agent backends.

    Implementations provide _do_invoke, _do_invoke_stream and
    _do_get_capabilities. The public methods wrap them with validation,
    invocation tracking and error normalization.
    """

    def __init__(self, settings: Optional[AgentSettings] = None):
        self.settings = settings or AgentSettings()
        self._active: Dict[str, InvocationContext] = {}
        self._active_lock = threading.Lock()

    @property
    def active_invocations(self) -> List[str]:
        """IDs of invocations currently in flight."""
        with self._active_lock:
            return list(self._active)

    def invoke(
        self,
        config: ClaudeCodeConfig,
        *,
        stream_handler: Optional[StreamHandler] = None,
    ) -> ClaudeCodeResult:
        """Invoke the agent and wait for the complete result.

        Args:
            config: Invocation configuration
            stream_handler: Optional callback receiving raw output lines

        Returns:
            Validated result; failures are reported with success=False
        """
        if not config.prompt.strip():
            return ClaudeCodeResult.failure(
                ClaudeCodeErrorCode.INVALID_REQUEST, "Prompt is required"
            )

        context = self._start(config)
        try:
            return self._do_invoke(config, context, stream_handler=stream_handler)
        except ClaudeCodeError as e:
            _DEFAULT_LOGGER.error(
                "Invocation %s failed [%s]: %s", context.invocation_id, e.code.value, e
            )
            return e.to_result(invocation_id=context.invocation_id)
        except Exception as e:
            _DEFAULT_LOGGER.exception("Invocation %s raised unexpectedly", context.invocation_id)
            return ClaudeCodeResult.failure(
                self._unexpected_code(context),
                f"Error executing agent: {e}",
                invocation_id=context.invocation_id,
            )
        finally:
            self._finish(context)

    def invoke_stream(self, config: ClaudeCodeConfig) -> InvocationStream:
        """Invoke the agent and stream its output.

        The prompt is validated and the invocation registered immediately;
        the backend starts on first iteration. The returned stream exposes
        invocation_id, and every chunk carries it in metadata, so the
        stream can be cancelled from another thread at any point.

        Raises:
            ClaudeCodeError: On an empty prompt, or while iterating when the
                invocation fails
        """
        if not config.prompt.strip():
            raise ClaudeCodeError("Prompt is required", ClaudeCodeErrorCode.INVALID_REQUEST)

        context = self._start(config)
        return InvocationStream(
            self._stream(config, context),
            context.invocation_id,
            functools.partial(self._finish, context),
        )

    def _stream(
        self, config: ClaudeCodeConfig, context: InvocationContext
    ) -> Iterator[StreamChunk]:
        try:
            if context.cancelled.is_set():
                raise ClaudeCodeError("Invocation was cancelled", ClaudeCodeErrorCode.CANCELLED)
            for chunk in self._do_invoke_stream(config, context):
                chunk.metadata.setdefault("invocation_id", context.invocation_id)
                yield chunk
        except ClaudeCodeError:
            raise
        except Exception as e:
            raise ClaudeCodeError(
                f"Error streaming from agent: {e}", self._unexpected_code(context)
            ) from e
        finally:
            self._finish(context)

    def cancel(self, invocation_id: str) -> bool:
        """Cancel an in-flight invocation.

        Returns:
            True if an active invocation was cancelled, False if it was
            unknown or already finished
        """
        with self._active_lock:
            context = self._active.pop(invocation_id, None)

        if context is None:
            return False

        _DEFAULT_LOGGER.info("Cancelling invocation %s", invocation_id)
        context.cancel()
        return True

    def get_capabilities(self) -> ClaudeCodeCapabilities:
        """Query a fresh capability snapshot from the backend."""
        return self._do_get_capabilities()

    def _start(self, config: ClaudeCodeConfig) -> InvocationContext:
        timeout_ms = config.timeout_ms or self.settings.default_timeout_ms
        context = InvocationContext(invocation_id=make_invocation_id(), timeout_ms=timeout_ms)
        with self._active_lock:
            self._active[context.invocation_id] = context
        _DEFAULT_LOGGER.debug(
            "Tracking invocation %s (timeout=%sms)", context.invocation_id, timeout_ms
        )
        return context

    def _finish(self, context: InvocationContext) -> None:
        with self._active_lock:
            self._active.pop(context.invocation_id, None)

    @staticmethod
    def _unexpected_code(context: InvocationContext) -> ClaudeCodeErrorCode:
        if context.cancelled.is_set():
            return ClaudeCodeErrorCode.CANCELLED
        return ClaudeCodeErrorCode.INVOCATION_FAILED

    @abstractmethod
    def _do_invoke(
        self,
        config: ClaudeCodeConfig,
        context: InvocationContext,
        *,
        stream_handler: Optional[StreamHandler] = None,
    ) -> ClaudeCodeResult:
        """Run the backend invocation and return its result.

        May raise ClaudeCodeError for classified failures; the base class
        converts it into a failed result.
        """

    @abstractmethod
    def _do_invoke_stream(
        self, config: ClaudeCodeConfig, context: InvocationContext
    ) -> Iterator[StreamChunk]:
        """Run the backend invocation, yielding chunks as they arrive."""

    @abstractmethod
    def _do_get_capabilities(self) -> ClaudeCodeCapabilities:
        """Return the capabilities of this backend."""
