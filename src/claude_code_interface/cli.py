"""claude-code-interface CLI - validate results and invoke Claude Code."""

import json
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError

from claude_code_interface import __version__
from claude_code_interface.agents import ClaudeCodeAgent
from claude_code_interface.config import AgentSettings
from claude_code_interface.error_codes import ClaudeCodeError
from claude_code_interface.type_guards import parse_claude_code_result
from claude_code_interface.types import ClaudeCodeConfig
from claude_code_interface.utils import setup_logger

app = typer.Typer(
    invoke_without_command=True,
    no_args_is_help=True,
    help="Claude Code interface CLI",
)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"claude-code-interface version {__version__}")
        raise typer.Exit()


def _make_agent() -> ClaudeCodeAgent:
    try:
        return ClaudeCodeAgent(AgentSettings.from_env())
    except ValueError as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(1)


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", help="Append DEBUG logs to this file"
    ),
):
    """Claude Code interface CLI."""
    setup_logger(log_file=str(log_file) if log_file else None)


@app.command()
def validate(file_path: Path):
    """Check whether a JSON file holds a well-formed Claude Code result.

    Example:
        claude-code-interface validate result.json
    """
    try:
        raw = json.loads(file_path.read_text())
    except FileNotFoundError:
        typer.echo(f"Error: File not found: {file_path}", err=True)
        raise typer.Exit(1)
    except json.JSONDecodeError as e:
        typer.echo(f"invalid: not valid JSON ({e})")
        raise typer.Exit(1)

    parsed = parse_claude_code_result(raw)
    if not parsed.success:
        typer.echo(f"invalid: {parsed.error}")
        raise typer.Exit(1)

    typer.echo("valid")


@app.command()
def capabilities():
    """Print the capabilities of the installed Claude Code CLI as JSON."""
    agent = _make_agent()
    try:
        snapshot = agent.get_capabilities()
    except ClaudeCodeError as e:
        typer.echo(f"Error [{e.code.value}]: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(snapshot.model_dump_json(indent=2))


@app.command()
def run(
    prompt: str,
    cwd: Optional[Path] = typer.Option(None, "--cwd", help="Working directory for the agent"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model alias or id"),
    max_turns: Optional[int] = typer.Option(None, "--max-turns", help="Maximum agentic turns"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Invocation timeout"),
    allowed_tool: Optional[List[str]] = typer.Option(
        None, "--allowed-tool", help="Tool the agent may use (repeatable)"
    ),
    stream: bool = typer.Option(False, "--stream", help="Print output as it arrives"),
):
    """Invoke Claude Code with a prompt.

    Prints the validated result as JSON, or the streamed text with --stream.

    Example:
        claude-code-interface run "Explain the main entry point" --cwd . --model sonnet
    """
    try:
        config = ClaudeCodeConfig(
            prompt=prompt,
            working_directory=str(cwd) if cwd else None,
            model=model,
            max_turns=max_turns,
            timeout_ms=timeout_ms,
            allowed_tools=allowed_tool or None,
        )
    except ValidationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    agent = _make_agent()

    if stream:
        try:
            for chunk in agent.invoke_stream(config):
                # The final result repeats the last assistant text
                if chunk.text and not chunk.metadata.get("final"):
                    typer.echo(chunk.text)
        except ClaudeCodeError as e:
            typer.echo(f"Error [{e.code.value}]: {e}", err=True)
            raise typer.Exit(1)
        return

    result = agent.invoke(config)
    typer.echo(result.model_dump_json(indent=2))
    if not result.success:
        raise typer.Exit(1)
