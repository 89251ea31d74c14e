"""Command line argument construction for the claude CLI."""

import json
from typing import List, Literal, Optional

from claude_code_interface.types import ClaudeCodeConfig

OutputFormat = Literal["json", "stream-json"]


def build_args(
    config: ClaudeCodeConfig,
    *,
    default_model: Optional[str] = None,
    output_format: OutputFormat = "stream-json",
    skip_permissions: bool = False,
) -> List[str]:
    """Build the claude CLI argument list for one invocation.

    The executable itself is not included.

    Args:
        config: Invocation configuration
        default_model: Model used when the config does not name one
        output_format: CLI output format, batch json or stream-json
        skip_permissions: Append --dangerously-skip-permissions

    Returns:
        List of CLI arguments
    """
    args = ["-p", config.prompt, "--output-format", output_format]

    # claude requires --verbose for stream-json in print mode
    if output_format == "stream-json":
        args.append("--verbose")

    model = config.model or default_model
    if model:
        args.extend(["--model", model])

    if config.max_turns is not None:
        args.extend(["--max-turns", str(config.max_turns)])

    if config.system_prompt:
        args.extend(["--append-system-prompt", config.system_prompt])

    # An empty allow-list disables every built-in tool
    if config.allowed_tools is not None:
        if config.allowed_tools:
            args.extend(["--allowedTools", ",".join(config.allowed_tools)])
        else:
            args.extend(["--tools", ""])

    if config.max_budget_usd is not None:
        args.extend(["--max-budget-usd", str(config.max_budget_usd)])

    if config.json_schema is not None:
        args.extend(["--json-schema", json.dumps(config.json_schema)])

    if config.session_id:
        args.extend(["--session-id", config.session_id])

    if config.continue_session:
        args.append("--continue")

    if config.resume_session:
        args.extend(["--resume", config.resume_session])

    if skip_permissions:
        args.append("--dangerously-skip-permissions")

    return args
