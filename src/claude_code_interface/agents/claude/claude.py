"""Claude Code CLI backend.

Runs the ``claude`` CLI as a subprocess in stream-json mode. Two threads
drain stdout and stderr while the caller waits with the invocation
timeout; stdout lines are optionally forwarded to a stream handler and
captured to a JSONL file. When the process exits the captured lines are
parsed into a raw result, which only reaches the caller after passing the
boundary validator.
"""

import logging
import os
import re
import subprocess
import threading
from contextlib import nullcontext
from typing import IO, Iterator, List, Optional

from claude_code_interface.agents.base import DevAgent, InvocationContext, StreamHandler
from claude_code_interface.config import AgentSettings
from claude_code_interface.error_codes import ClaudeCodeError, ClaudeCodeErrorCode
from claude_code_interface.type_guards import parse_claude_code_result
from claude_code_interface.types import (
    ClaudeCodeCapabilities,
    ClaudeCodeConfig,
    ClaudeCodeResult,
    StreamChunk,
)

from .cli_args import build_args
from .result_parser import (
    build_raw_result,
    classify_error_text,
    parse_stream_event,
    parse_stream_lines,
)

_DEFAULT_LOGGER = logging.getLogger(__name__)

MODEL_ALIASES = ["sonnet", "opus", "haiku"]

_VERSION_PATTERN = re.compile(r"\d+\.\d+\.\d+")


def parse_version(output: str) -> str:
    """Extract the version number from ``claude --version`` output."""
    match = _VERSION_PATTERN.search(output)
    return match.group(0) if match else output.strip()


def _failure_code(stderr: str) -> ClaudeCodeErrorCode:
    return classify_error_text(stderr) or ClaudeCodeErrorCode.EXECUTION_FAILED


class ClaudeCodeAgent(DevAgent):
    """Claude Code CLI backend.

    Settings default to AgentSettings.from_env(), so CLAUDE_CODE_PATH and
    the other CLAUDE_CODE_* variables apply unless settings are passed in.
    """

    def __init__(self, settings: Optional[AgentSettings] = None):
        super().__init__(settings or AgentSettings.from_env())

    def _command(self, config: ClaudeCodeConfig) -> List[str]:
        args = build_args(
            config,
            default_model=self.settings.default_model,
            output_format="stream-json",
            skip_permissions=self.settings.skip_permissions,
        )
        return [self.settings.cli_path, *args]

    def _spawn(self, config: ClaudeCodeConfig, context: InvocationContext) -> subprocess.Popen:
        """Start the CLI process, mapping launch failures to error codes."""
        cwd = config.working_directory or self.settings.working_dir
        if cwd and not os.path.isdir(cwd):
            raise ClaudeCodeError(
                f"Working directory does not exist: {cwd}",
                ClaudeCodeErrorCode.INVALID_REQUEST,
            )

        cmd = self._command(config)
        _DEFAULT_LOGGER.info(
            "Starting Claude Code invocation %s (model=%s, cwd=%s)",
            context.invocation_id,
            config.model or self.settings.default_model or "default",
            cwd or os.getcwd(),
        )
        _DEFAULT_LOGGER.debug("Prompt for %s: %s", context.invocation_id, config.prompt)

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                cwd=cwd,
                env=os.environ.copy(),
            )
        except FileNotFoundError as exc:
            raise ClaudeCodeError(
                f"Claude Code CLI not found at '{self.settings.cli_path}'",
                ClaudeCodeErrorCode.CLI_NOT_FOUND,
            ) from exc
        except OSError as exc:
            raise ClaudeCodeError(
                f"Failed to start Claude Code CLI: {exc}",
                ClaudeCodeErrorCode.INVOCATION_FAILED,
            ) from exc

        context.on_cancel(process.terminate)
        return process

    def _capture_path(self, invocation_id: str) -> Optional[str]:
        if not self.settings.output_dir:
            return None
        os.makedirs(self.settings.output_dir, exist_ok=True)
        return os.path.join(self.settings.output_dir, f"{invocation_id}.jsonl")

    def _do_invoke(
        self,
        config: ClaudeCodeConfig,
        context: InvocationContext,
        *,
        stream_handler: Optional[StreamHandler] = None,
    ) -> ClaudeCodeResult:
        invocation_id = context.invocation_id
        stdout_lines: List[str] = []
        stderr_lines: List[str] = []
        timed_out = False

        # Capture file is only created once the process is running
        process = self._spawn(config, context)
        try:
            capture_path = self._capture_path(invocation_id)
            capture_cm = open(capture_path, "w") if capture_path else nullcontext()
        except OSError:
            process.kill()
            process.wait()
            raise

        with capture_cm as capture:
            assert process.stdout is not None
            assert process.stderr is not None
            stdout_pipe = process.stdout
            stderr_pipe = process.stderr

            def _stream_stdout(sink: Optional[IO[str]]) -> None:
                for line in stdout_pipe:
                    stdout_lines.append(line)
                    if sink is not None:
                        sink.write(line)
                        sink.flush()
                    if stream_handler:
                        try:
                            stream_handler(line)
                        except Exception as e:
                            _DEFAULT_LOGGER.error("Stream handler error: %s", e)
                stdout_pipe.close()

            def _capture_stderr() -> None:
                for line in stderr_pipe:
                    stderr_lines.append(line)
                stderr_pipe.close()

            stdout_thread = threading.Thread(target=_stream_stdout, args=(capture,), daemon=True)
            stderr_thread = threading.Thread(target=_capture_stderr, daemon=True)
            stdout_thread.start()
            stderr_thread.start()

            try:
                process.wait(timeout=context.timeout_seconds)
            except subprocess.TimeoutExpired:
                timed_out = True
                _DEFAULT_LOGGER.warning(
                    "Invocation %s exceeded %sms, killing process",
                    invocation_id,
                    context.timeout_ms,
                )
                process.kill()
                process.wait()

            stdout_thread.join()
            stderr_thread.join()

        returncode = process.returncode or 0
        stderr_output = "".join(stderr_lines).strip()

        if timed_out:
            return ClaudeCodeResult.failure(
                ClaudeCodeErrorCode.TIMEOUT,
                f"Invocation timed out after {context.timeout_ms}ms",
                invocation_id=invocation_id,
            )

        if context.cancelled.is_set():
            return ClaudeCodeResult.failure(
                ClaudeCodeErrorCode.CANCELLED,
                "Invocation was cancelled",
                invocation_id=invocation_id,
            )

        messages, result_message, malformed = parse_stream_lines(stdout_lines)
        if malformed:
            _DEFAULT_LOGGER.warning(
                "Invocation %s produced %d malformed output lines", invocation_id, malformed
            )

        if result_message is None:
            if returncode != 0:
                detail = stderr_output or f"Process exited with code {returncode}"
                return ClaudeCodeResult.failure(
                    _failure_code(stderr_output),
                    f"Claude Code error: {detail}",
                    invocation_id=invocation_id,
                )
            return ClaudeCodeResult.failure(
                ClaudeCodeErrorCode.PARSE_ERROR,
                "Claude Code output did not contain a result message",
                invocation_id=invocation_id,
            )

        raw = build_raw_result(messages, result_message, invocation_id, stderr=stderr_output)
        if returncode != 0 and raw["success"] is True:
            detail = stderr_output or f"Process exited with code {returncode}"
            raw["success"] = False
            raw["error_code"] = _failure_code(stderr_output).value
            raw["error_detail"] = detail

        parsed = parse_claude_code_result(raw)
        if not parsed.success or parsed.data is None:
            _DEFAULT_LOGGER.error(
                "Invocation %s returned an out-of-contract result: %s",
                invocation_id,
                parsed.error,
            )
            return ClaudeCodeResult.failure(
                ClaudeCodeErrorCode.PARSE_ERROR,
                f"Claude Code result failed validation: {parsed.error}",
                invocation_id=invocation_id,
            )

        result = parsed.data
        if result.success:
            _DEFAULT_LOGGER.info(
                "Invocation %s completed (%d tool calls)", invocation_id, len(result.tool_calls)
            )
        else:
            _DEFAULT_LOGGER.error(
                "Invocation %s failed [%s]: %s",
                invocation_id,
                result.error_code.value if result.error_code else "?",
                result.error_detail,
            )
        return result

    def _do_invoke_stream(
        self, config: ClaudeCodeConfig, context: InvocationContext
    ) -> Iterator[StreamChunk]:
        process = self._spawn(config, context)
        assert process.stdout is not None
        assert process.stderr is not None
        stderr_pipe = process.stderr

        stderr_lines: List[str] = []
        timed_out = threading.Event()

        def _capture_stderr() -> None:
            for line in stderr_pipe:
                stderr_lines.append(line)
            stderr_pipe.close()

        def _on_timeout() -> None:
            timed_out.set()
            _DEFAULT_LOGGER.warning(
                "Invocation %s exceeded %sms, killing process",
                context.invocation_id,
                context.timeout_ms,
            )
            process.kill()

        stderr_thread = threading.Thread(target=_capture_stderr, daemon=True)
        stderr_thread.start()
        timer = threading.Timer(context.timeout_seconds, _on_timeout)
        timer.daemon = True
        timer.start()

        try:
            for line in process.stdout:
                if context.cancelled.is_set():
                    break
                chunk = parse_stream_event(line)
                if chunk is not None:
                    yield chunk
            process.wait()
        finally:
            timer.cancel()
            if process.poll() is None:
                process.kill()
                process.wait()
            stderr_thread.join()

        if timed_out.is_set():
            raise ClaudeCodeError(
                f"Invocation timed out after {context.timeout_ms}ms",
                ClaudeCodeErrorCode.TIMEOUT,
            )
        if context.cancelled.is_set():
            raise ClaudeCodeError("Invocation was cancelled", ClaudeCodeErrorCode.CANCELLED)

        returncode = process.returncode or 0
        if returncode != 0:
            stderr_output = "".join(stderr_lines).strip()
            detail = stderr_output or f"Process exited with code {returncode}"
            raise ClaudeCodeError(
                f"Claude Code error: {detail}", _failure_code(stderr_output)
            )

    def _do_get_capabilities(self) -> ClaudeCodeCapabilities:
        cli_path = self.settings.cli_path
        try:
            result = subprocess.run(
                [cli_path, "--version"], capture_output=True, text=True, timeout=10
            )
        except FileNotFoundError as exc:
            raise ClaudeCodeError(
                f"Claude Code CLI not found at '{cli_path}'",
                ClaudeCodeErrorCode.CLI_NOT_FOUND,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ClaudeCodeError(
                f"Timed out querying Claude Code version at '{cli_path}'",
                ClaudeCodeErrorCode.TIMEOUT,
            ) from exc
        except OSError as exc:
            raise ClaudeCodeError(
                f"Failed to run Claude Code CLI: {exc}",
                ClaudeCodeErrorCode.INVOCATION_FAILED,
            ) from exc

        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit code {result.returncode}"
            raise ClaudeCodeError(
                f"claude --version failed: {detail}",
                ClaudeCodeErrorCode.INVOCATION_FAILED,
            )

        version = parse_version(result.stdout or "")
        _DEFAULT_LOGGER.debug("Detected Claude Code version %s", version)

        return ClaudeCodeCapabilities(
            streaming=True,
            cancellation=True,
            structured_output=True,
            supports_mcp=True,
            supports_docker=False,
            models=list(MODEL_ALIASES),
            available_models=list(MODEL_ALIASES),
            version=version,
        )
