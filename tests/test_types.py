"""Tests for Claude Code boundary models."""

import copy
import json

import pytest
from pydantic import ValidationError

from claude_code_interface import (
    ClaudeCodeCapabilities,
    ClaudeCodeConfig,
    ClaudeCodeErrorCode,
    ClaudeCodeResult,
    ClaudeCodeToolCall,
    ErrorCategory,
    StreamChunk,
)
from claude_code_interface.types import FrozenDict


def test_config_minimal():
    """Test ClaudeCodeConfig with only a prompt."""
    config = ClaudeCodeConfig(prompt="Explain the main entry point")
    assert config.prompt == "Explain the main entry point"
    assert config.working_directory is None
    assert config.timeout_ms is None
    assert config.allowed_tools is None
    assert config.model is None
    assert config.max_turns is None
    assert config.continue_session is False
    assert config.json_schema is None


def test_config_with_optional_fields():
    """Test ClaudeCodeConfig with all optional fields."""
    config = ClaudeCodeConfig(
        prompt="Fix the bug",
        working_directory="/path/to/project",
        timeout_ms=60_000,
        allowed_tools=["Read", "Edit"],
        model="opus",
        max_turns=5,
        system_prompt="Be terse.",
        max_budget_usd=2.5,
        session_id="sess_abc",
        continue_session=True,
        resume_session="sess_prev",
        json_schema={"type": "object"},
    )
    assert config.allowed_tools == ("Read", "Edit")
    assert config.max_budget_usd == 2.5
    assert config.resume_session == "sess_prev"


def test_config_empty_prompt_is_constructible():
    """Test an empty prompt is only rejected at invocation time."""
    config = ClaudeCodeConfig(prompt="")
    assert config.prompt == ""


def test_config_requires_prompt():
    """Test the prompt field must be present."""
    with pytest.raises(ValidationError):
        ClaudeCodeConfig()


def test_config_is_immutable():
    """Test config values cannot be changed after creation."""
    config = ClaudeCodeConfig(prompt="Fix the bug")
    with pytest.raises(ValidationError):
        config.prompt = "Something else"


def test_config_copy_with_override():
    """Test deriving a config leaves the original untouched."""
    config = ClaudeCodeConfig(prompt="Fix the bug", model="sonnet")
    derived = config.model_copy(update={"model": "opus"})
    assert derived.model == "opus"
    assert config.model == "sonnet"


def test_config_collections_are_read_only():
    """Test list and dict options are stored as read-only values."""
    config = ClaudeCodeConfig(
        prompt="Fix the bug",
        allowed_tools=["Read", "Edit"],
        json_schema={"type": "object", "required": ["status"]},
    )
    assert config.allowed_tools == ("Read", "Edit")
    with pytest.raises(AttributeError):
        config.allowed_tools.append("Bash")
    with pytest.raises(TypeError):
        config.json_schema["type"] = "array"
    with pytest.raises(AttributeError):
        config.json_schema["required"].append("extra")
    assert config.json_schema == {"type": "object", "required": ("status",)}


def test_config_copy_does_not_share_mutable_state():
    """Test a derived config cannot change the original."""
    tools = ["Read"]
    config = ClaudeCodeConfig(prompt="Fix the bug", allowed_tools=tools)
    derived = config.model_copy(update={"model": "opus"})

    tools.append("Bash")
    assert config.allowed_tools == ("Read",)
    assert derived.allowed_tools == ("Read",)


def test_config_rejects_unknown_options():
    """Test misspelled options are not silently ignored."""
    with pytest.raises(ValidationError):
        ClaudeCodeConfig(prompt="Fix the bug", max_turn=3)


def test_config_rejects_non_positive_timeout():
    """Test timeouts must be positive."""
    with pytest.raises(ValidationError):
        ClaudeCodeConfig(prompt="Fix the bug", timeout_ms=0)


def test_capabilities_default_to_unsupported():
    """Test every capability flag defaults to its safe value."""
    capabilities = ClaudeCodeCapabilities()
    assert capabilities.streaming is False
    assert capabilities.cancellation is False
    assert capabilities.structured_output is False
    assert capabilities.supports_mcp is False
    assert capabilities.supports_docker is False
    assert capabilities.models == ()
    assert capabilities.version is None
    assert capabilities.max_tool_calls is None


def test_capabilities_supports():
    """Test supports() for declared, extra and missing flags."""
    capabilities = ClaudeCodeCapabilities(streaming=True, hooks=True, sandbox=False)
    assert capabilities.supports("streaming") is True
    assert capabilities.supports("cancellation") is False
    assert capabilities.supports("hooks") is True
    assert capabilities.supports("sandbox") is False
    assert capabilities.supports("does_not_exist") is False


def test_capabilities_are_immutable():
    """Test capability snapshots are read-only."""
    capabilities = ClaudeCodeCapabilities(streaming=True)
    with pytest.raises(ValidationError):
        capabilities.streaming = False


def test_tool_call_defaults():
    """Test optional tool call fields."""
    call = ClaudeCodeToolCall(id="toolu_01", name="Read", input={"file_path": "a.py"})
    assert call.output is None
    assert call.duration_ms is None
    assert call.is_error is False


def test_result_failure_constructor():
    """Test ClaudeCodeResult.failure builds a consistent failed result."""
    result = ClaudeCodeResult.failure(
        ClaudeCodeErrorCode.CLI_NOT_FOUND,
        "Claude Code CLI not found at 'claude'",
        invocation_id="inv_1",
    )
    assert result.success is False
    assert result.error_code is ClaudeCodeErrorCode.CLI_NOT_FOUND
    assert result.error_detail == "Claude Code CLI not found at 'claude'"
    assert result.output == result.error_detail
    assert result.invocation_id == "inv_1"
    assert result.error_category is ErrorCategory.INVOCATION


def test_result_success_has_no_category():
    """Test successful results have no error category."""
    result = ClaudeCodeResult(success=True, output="done")
    assert result.error_category is None
    assert result.tool_calls == ()
    assert result.modified_files == ()


def test_result_rejects_contradiction_on_construction():
    """Test the success/error invariant holds for direct construction too."""
    with pytest.raises(ValidationError):
        ClaudeCodeResult(success=True, error_code=ClaudeCodeErrorCode.TIMEOUT)
    with pytest.raises(ValidationError):
        ClaudeCodeResult(success=False)


def test_result_collections_are_read_only():
    """Test a validated result cannot be changed through its collections."""
    result = ClaudeCodeResult(
        success=True,
        output={"status": "ACCEPT", "issues": [{"line": 3}]},
        tool_calls=[{"id": "toolu_01", "name": "Edit", "input": {"file_path": "a.py"}}],
        modified_files=["a.py"],
    )

    with pytest.raises(AttributeError):
        result.tool_calls.append("not a tool call")
    with pytest.raises(AttributeError):
        result.modified_files.append("b.py")
    with pytest.raises(TypeError):
        result.output["status"] = "REJECT"
    with pytest.raises(TypeError):
        result.output["issues"][0]["line"] = 4
    with pytest.raises(TypeError):
        result.tool_calls[0].input.update(file_path="b.py")
    with pytest.raises(ValidationError):
        result.tool_calls[0].name = "Write"


def test_frozen_payload_serializes_as_json():
    """Test read-only payloads still dump to plain JSON."""
    result = ClaudeCodeResult(success=True, output={"issues": [{"line": 3}]})
    assert json.loads(result.model_dump_json())["output"] == {"issues": [{"line": 3}]}
    assert isinstance(result.output, FrozenDict)
    assert copy.deepcopy(result.output) == {"issues": ({"line": 3},)}


def test_result_dump_by_alias_uses_camel_case():
    """Test results serialize back to the camelCase wire shape."""
    result = ClaudeCodeResult(
        success=True,
        output="done",
        tool_calls=[ClaudeCodeToolCall(id="toolu_01", name="Read", input={})],
    )
    dumped = result.model_dump(mode="json", by_alias=True)
    assert dumped["toolCalls"][0]["name"] == "Read"
    assert "modifiedFiles" in dumped
    assert dumped["errorCode"] is None


def test_stream_chunk_defaults():
    """Test StreamChunk metadata defaults to an empty dict."""
    chunk = StreamChunk(text="Hello")
    assert chunk.metadata == {}
