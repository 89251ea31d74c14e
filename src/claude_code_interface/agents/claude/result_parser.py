"""Parsing of claude CLI stream-json output.

The CLI emits one JSON object per line: a system init message, assistant
and user messages carrying text, tool_use and tool_result blocks, and a
final result message. Functions here turn those lines into stream chunks,
ordered tool calls, and a raw result dictionary.

The raw result is still untrusted. Callers must pass it through
parse_claude_code_result() before treating it as a ClaudeCodeResult.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from claude_code_interface.error_codes import ClaudeCodeError, ClaudeCodeErrorCode
from claude_code_interface.types import StreamChunk

_DEFAULT_LOGGER = logging.getLogger(__name__)

# Tools whose input names a file the agent changes
FILE_EDIT_TOOLS = ("Edit", "MultiEdit", "Write", "NotebookEdit")

_AUTH_MARKERS = (
    "authentication",
    "unauthorized",
    "api key",
    "invalid x-api-key",
    "not logged in",
)
_RATE_LIMIT_MARKERS = ("rate limit", "rate_limit", "too many requests")

_SUBTYPE_CODES = {
    "error_max_turns": ClaudeCodeErrorCode.MAX_TURNS_EXCEEDED,
    "error_max_budget_usd": ClaudeCodeErrorCode.BUDGET_EXCEEDED,
}


def _content_blocks(message: Mapping[str, Any]) -> List[Dict[str, Any]]:
    inner = message.get("message")
    if not isinstance(inner, dict):
        return []
    content = inner.get("content")
    if not isinstance(content, list):
        return []
    return [block for block in content if isinstance(block, dict)]


def _timestamp_ms(message: Mapping[str, Any]) -> Optional[float]:
    value = message.get("timestamp")
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.timestamp() * 1000


def parse_stream_event(line: str) -> Optional[StreamChunk]:
    """Parse one stream-json line into a StreamChunk.

    Returns None for blank lines and for events with nothing to show
    (system messages, tool results).

    Raises:
        ClaudeCodeError: With PARSE_ERROR if the line is not a JSON object
    """
    stripped = line.strip()
    if not stripped:
        return None

    try:
        event = json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise ClaudeCodeError(
            "Failed to parse stream-json event", ClaudeCodeErrorCode.PARSE_ERROR
        ) from exc

    if not isinstance(event, dict):
        raise ClaudeCodeError(
            f"Expected stream-json object, got {type(event).__name__}",
            ClaudeCodeErrorCode.PARSE_ERROR,
        )

    event_type = event.get("type")

    if event_type == "assistant":
        blocks = _content_blocks(event)
        texts = [
            block["text"]
            for block in blocks
            if block.get("type") == "text" and isinstance(block.get("text"), str)
        ]
        tool_uses = [
            {"id": block.get("id"), "name": block.get("name")}
            for block in blocks
            if block.get("type") == "tool_use"
        ]
        if not texts and not tool_uses:
            return None

        metadata: Dict[str, Any] = {"type": "assistant", "subtype": event.get("subtype")}
        if tool_uses:
            metadata["tool_use"] = tool_uses
        return StreamChunk(text="".join(texts), metadata=metadata)

    if event_type == "result" and isinstance(event.get("result"), str):
        return StreamChunk(
            text=event["result"],
            metadata={
                "type": "result",
                "subtype": event.get("subtype"),
                "final": True,
                "is_error": event.get("is_error") is True,
            },
        )

    return None


def parse_stream_lines(
    lines: Iterable[str],
) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]], int]:
    """Parse captured stream-json lines.

    Malformed lines are skipped and counted rather than aborting the parse.

    Returns:
        Tuple of (messages, result_message, malformed_line_count) where
        result_message is the last message of type "result", or None
    """
    messages: List[Dict[str, Any]] = []
    malformed = 0
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        try:
            parsed = json.loads(stripped)
        except json.JSONDecodeError as e:
            _DEFAULT_LOGGER.warning("Skipping malformed JSON line: %s", e)
            malformed += 1
            continue
        if not isinstance(parsed, dict):
            malformed += 1
            continue
        messages.append(parsed)

    result_message = None
    for message in reversed(messages):
        if message.get("type") == "result":
            result_message = message
            break

    return messages, result_message, malformed


def extract_tool_calls(messages: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Collect tool_use blocks in emission order, paired with their results.

    Only keys present on the tool_use block are copied, so a block missing
    its id, name or input yields an entry the boundary validator rejects.
    When both messages carry a timestamp, duration_ms is the gap between
    the tool_use and its tool_result.
    """
    calls: List[Dict[str, Any]] = []
    by_id: Dict[str, Dict[str, Any]] = {}
    started: Dict[str, float] = {}

    for message in messages:
        message_type = message.get("type")
        sent_at = _timestamp_ms(message)
        for block in _content_blocks(message):
            block_type = block.get("type")

            if message_type == "assistant" and block_type == "tool_use":
                call = {key: block[key] for key in ("id", "name", "input") if key in block}
                calls.append(call)
                if isinstance(call.get("id"), str):
                    by_id[call["id"]] = call
                    if sent_at is not None:
                        started[call["id"]] = sent_at

            elif message_type == "user" and block_type == "tool_result":
                tool_use_id = block.get("tool_use_id")
                if not isinstance(tool_use_id, str) or tool_use_id not in by_id:
                    continue
                call = by_id[tool_use_id]
                call["output"] = block.get("content")
                call["is_error"] = block.get("is_error") is True
                if sent_at is not None and tool_use_id in started:
                    call["duration_ms"] = max(0, round(sent_at - started[tool_use_id]))

    return calls


def extract_modified_files(tool_calls: Iterable[Mapping[str, Any]]) -> List[str]:
    """Return files touched by edit tools, in first-touch order without repeats."""
    seen: List[str] = []
    for call in tool_calls:
        if call.get("name") not in FILE_EDIT_TOOLS:
            continue
        tool_input = call.get("input")
        if not isinstance(tool_input, dict):
            continue
        path = tool_input.get("file_path") or tool_input.get("notebook_path")
        if isinstance(path, str) and path not in seen:
            seen.append(path)
    return seen


def extract_model(
    messages: Iterable[Mapping[str, Any]],
    result_message: Optional[Mapping[str, Any]] = None,
) -> Optional[str]:
    """Determine which model served the invocation."""
    if result_message is not None:
        model_usage = result_message.get("modelUsage")
        if isinstance(model_usage, dict) and model_usage:
            return next(iter(model_usage))

    collected = list(messages)
    for message in collected:
        if message.get("type") == "system" and isinstance(message.get("model"), str):
            return message["model"]

    for message in collected:
        if message.get("type") != "assistant":
            continue
        inner = message.get("message")
        if isinstance(inner, dict) and isinstance(inner.get("model"), str):
            return inner["model"]

    return None


def classify_error_text(text: str) -> Optional[ClaudeCodeErrorCode]:
    """Map error text (stderr or an error result) to a code, if recognisable."""
    lowered = text.lower()
    if any(marker in lowered for marker in _AUTH_MARKERS):
        return ClaudeCodeErrorCode.AUTH_FAILURE
    if any(marker in lowered for marker in _RATE_LIMIT_MARKERS):
        return ClaudeCodeErrorCode.RATE_LIMITED
    return None


def _error_detail(result_message: Mapping[str, Any]) -> str:
    errors = result_message.get("errors")
    if isinstance(errors, list) and errors:
        return "; ".join(str(error) for error in errors)
    result_text = result_message.get("result")
    if isinstance(result_text, str) and result_text.strip():
        return result_text.strip()
    return f"Claude Code reported {result_message.get('subtype') or 'an error'}"


def classify_result_error(
    result_message: Mapping[str, Any], stderr: str = ""
) -> ClaudeCodeErrorCode:
    """Classify a result message that reports an error."""
    subtype = result_message.get("subtype")
    if subtype in _SUBTYPE_CODES:
        return _SUBTYPE_CODES[subtype]

    code = classify_error_text(_error_detail(result_message)) or classify_error_text(stderr)
    return code or ClaudeCodeErrorCode.EXECUTION_FAILED


def build_raw_result(
    messages: List[Dict[str, Any]],
    result_message: Mapping[str, Any],
    invocation_id: str,
    stderr: str = "",
) -> Dict[str, Any]:
    """Assemble an untrusted result dictionary from parsed stream messages.

    Args:
        messages: All parsed stream-json messages
        result_message: The final result message
        invocation_id: Identifier of the invocation
        stderr: Captured stderr, used to classify errors

    Returns:
        Raw result dictionary to be validated by parse_claude_code_result()
    """
    tool_calls = extract_tool_calls(messages)

    output: Any = result_message.get("result")
    if output is None:
        output = ""
    structured = result_message.get("structured_output")
    if isinstance(structured, (dict, list)):
        output = structured

    raw: Dict[str, Any] = {
        "output": output,
        "invocation_id": invocation_id,
        "tool_calls": tool_calls,
        "modified_files": extract_modified_files(tool_calls),
        "model": extract_model(messages, result_message),
    }

    usage = result_message.get("usage")
    if isinstance(usage, dict):
        raw["usage"] = {
            "input_tokens": usage.get("input_tokens", 0),
            "output_tokens": usage.get("output_tokens", 0),
        }

    for source, target in (
        ("session_id", "session_id"),
        ("total_cost_usd", "cost_usd"),
        ("duration_ms", "duration_ms"),
        ("duration_api_ms", "duration_api_ms"),
        ("num_turns", "num_turns"),
    ):
        if result_message.get(source) is not None:
            raw[target] = result_message[source]

    subtype = result_message.get("subtype")
    is_error = result_message.get("is_error") is True or (
        isinstance(subtype, str) and subtype.startswith("error")
    )
    if is_error:
        detail = _error_detail(result_message)
        raw["success"] = False
        raw["error_code"] = classify_result_error(result_message, stderr).value
        raw["error_detail"] = detail
        if not raw["output"]:
            raw["output"] = detail
    else:
        raw["success"] = True

    return raw
