"""Tests for claude CLI argument construction."""

import json

from claude_code_interface import ClaudeCodeConfig
from claude_code_interface.agents.claude import build_args


def test_build_args_minimal():
    """Test the arguments for a prompt-only config."""
    args = build_args(ClaudeCodeConfig(prompt="Explain the code"))
    assert args == ["-p", "Explain the code", "--output-format", "stream-json", "--verbose"]


def test_build_args_batch_json_omits_verbose():
    """Test batch json output does not add --verbose."""
    args = build_args(ClaudeCodeConfig(prompt="Explain the code"), output_format="json")
    assert args == ["-p", "Explain the code", "--output-format", "json"]


def test_build_args_all_options():
    """Test every config option maps to its CLI flag."""
    config = ClaudeCodeConfig(
        prompt="Fix the bug",
        model="opus",
        max_turns=5,
        system_prompt="Be terse.",
        allowed_tools=["Read", "Edit", "Bash(git:*)"],
        max_budget_usd=1.5,
        session_id="sess_abc",
        continue_session=True,
        resume_session="sess_prev",
    )
    args = build_args(config)

    assert args[args.index("--model") + 1] == "opus"
    assert args[args.index("--max-turns") + 1] == "5"
    assert args[args.index("--append-system-prompt") + 1] == "Be terse."
    assert args[args.index("--allowedTools") + 1] == "Read,Edit,Bash(git:*)"
    assert args[args.index("--max-budget-usd") + 1] == "1.5"
    assert args[args.index("--session-id") + 1] == "sess_abc"
    assert "--continue" in args
    assert args[args.index("--resume") + 1] == "sess_prev"
    assert "--dangerously-skip-permissions" not in args


def test_build_args_default_model():
    """Test the default model applies only when the config has none."""
    assert build_args(ClaudeCodeConfig(prompt="x"), default_model="haiku")[-2:] == [
        "--model",
        "haiku",
    ]

    args = build_args(ClaudeCodeConfig(prompt="x", model="sonnet"), default_model="haiku")
    assert args[args.index("--model") + 1] == "sonnet"
    assert "haiku" not in args


def test_build_args_json_schema():
    """Test json_schema is passed as serialized JSON."""
    schema = {"type": "object", "properties": {"status": {"type": "string"}}}
    args = build_args(ClaudeCodeConfig(prompt="Review", json_schema=schema))
    assert json.loads(args[args.index("--json-schema") + 1]) == schema


def test_build_args_skip_permissions():
    """Test the skip-permissions flag is appended last."""
    args = build_args(ClaudeCodeConfig(prompt="x"), skip_permissions=True)
    assert args[-1] == "--dangerously-skip-permissions"


def test_build_args_empty_allowed_tools_disables_all_tools():
    """Test an empty allow-list turns every tool off."""
    args = build_args(ClaudeCodeConfig(prompt="x", allowed_tools=[]))
    assert args[args.index("--tools") + 1] == ""
    assert "--allowedTools" not in args


def test_build_args_no_allowed_tools_keeps_defaults():
    """Test leaving allowed_tools unset adds no tool flags."""
    args = build_args(ClaudeCodeConfig(prompt="x"))
    assert "--tools" not in args
    assert "--allowedTools" not in args
