"""Agent-level settings for the Claude Code integration."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class AgentSettings:
    """Settings shared by every invocation made through one agent.

    Per-invocation values on ClaudeCodeConfig take precedence over these.

    Attributes:
        cli_path: Path to the claude CLI binary
        default_timeout_ms: Timeout used when a config does not set one
        working_dir: Default working directory for invocations
        default_model: Model used when a config does not set one
        output_dir: Directory for raw stream-json captures, if any
        skip_permissions: Pass --dangerously-skip-permissions to the CLI
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """

    cli_path: str = "claude"
    default_timeout_ms: int = 30_000
    working_dir: Optional[str] = None
    default_model: Optional[str] = None
    output_dir: Optional[str] = None
    skip_permissions: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration values."""
        if not self.cli_path:
            raise ValueError("cli_path cannot be empty")

        if self.default_timeout_ms <= 0:
            raise ValueError("default_timeout_ms must be positive")

        valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if self.log_level.upper() not in valid_log_levels:
            raise ValueError(f"log_level must be one of {valid_log_levels}")

        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """Build settings from environment variables (and a .env file).

        Raises:
            ValueError: If a variable holds an invalid value
        """
        load_dotenv()

        timeout_raw = os.getenv("CLAUDE_CODE_TIMEOUT_MS", "30000")
        try:
            timeout_ms = int(timeout_raw)
        except ValueError:
            raise ValueError(f"CLAUDE_CODE_TIMEOUT_MS must be an integer, got {timeout_raw!r}")

        return cls(
            cli_path=os.getenv("CLAUDE_CODE_PATH", "claude"),
            default_timeout_ms=timeout_ms,
            working_dir=os.getenv("CLAUDE_CODE_WORKING_DIR") or None,
            default_model=os.getenv("CLAUDE_CODE_MODEL") or None,
            output_dir=os.getenv("CLAUDE_CODE_OUTPUT_DIR") or None,
            skip_permissions=_env_bool("CLAUDE_CODE_SKIP_PERMISSIONS"),
            log_level=os.getenv("CLAUDE_CODE_LOG_LEVEL", "INFO"),
        )
