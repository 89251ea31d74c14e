"""Claude Code CLI backend."""

from .claude import MODEL_ALIASES, ClaudeCodeAgent, parse_version
from .cli_args import build_args
from .result_parser import (
    build_raw_result,
    classify_error_text,
    classify_result_error,
    extract_model,
    extract_modified_files,
    extract_tool_calls,
    parse_stream_event,
    parse_stream_lines,
)

__all__ = [
    "ClaudeCodeAgent",
    "MODEL_ALIASES",
    "build_args",
    "build_raw_result",
    "classify_error_text",
    "classify_result_error",
    "extract_model",
    "extract_modified_files",
    "extract_tool_calls",
    "parse_stream_event",
    "parse_stream_lines",
    "parse_version",
]
