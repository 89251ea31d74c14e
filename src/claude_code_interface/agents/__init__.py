"""Invocation collaborators for coding agent backends.

Example:
    from claude_code_interface import ClaudeCodeConfig
    from claude_code_interface.agents import ClaudeCodeAgent

    agent = ClaudeCodeAgent()
    capabilities = agent.get_capabilities()

    config = ClaudeCodeConfig(
        prompt="Explain the main entry point",
        working_directory="/path/to/project",
        model="sonnet" if "sonnet" in capabilities.models else None,
    )
    result = agent.invoke(config)
"""

from claude_code_interface.agents.base import (
    DevAgent,
    InvocationContext,
    InvocationStream,
    StreamHandler,
)
from claude_code_interface.agents.claude import ClaudeCodeAgent

__all__ = [
    "ClaudeCodeAgent",
    "DevAgent",
    "InvocationContext",
    "InvocationStream",
    "StreamHandler",
]
