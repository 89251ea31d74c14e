"""Data models for the Claude Code integration boundary.

These models describe how a host configures one invocation, what a backend
instance can do, and the normalized shape of what an invocation returns.
All of them are frozen once constructed: sequences are stored as tuples and
JSON payloads (tool inputs, structured output, schemas) as read-only
FrozenDict and tuple trees, so a validated value cannot be changed later.

Raw dictionaries coming back from the backend may use either camelCase
(``toolCalls``, ``errorCode``) or snake_case keys.
"""

from typing import Annotated, Any, Dict, Optional, Tuple, Union

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    StrictBool,
    StrictStr,
    model_validator,
)
from pydantic.alias_generators import to_camel

from claude_code_interface.error_codes import ClaudeCodeErrorCode, ErrorCategory

_BOUNDARY_CONFIG = ConfigDict(
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
    revalidate_instances="always",
)


class FrozenDict(dict):
    """Read-only dict for JSON payloads held by frozen models."""

    def _readonly(self, *args: Any, **kwargs: Any) -> None:
        raise TypeError(f"{type(self).__name__} is read-only")

    __setitem__ = _readonly
    __delitem__ = _readonly
    __ior__ = _readonly
    clear = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    update = _readonly

    def __reduce__(self):
        return (type(self), (dict(self),))


def freeze_json(value: Any) -> Any:
    """Recursively replace dicts with FrozenDict and lists with tuples."""
    if isinstance(value, dict):
        return FrozenDict((key, freeze_json(item)) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return tuple(freeze_json(item) for item in value)
    return value


FrozenJson = Annotated[Any, AfterValidator(freeze_json)]


class ClaudeCodeConfig(BaseModel):
    """Configuration for a single Claude Code invocation.

    Only ``prompt`` is required. Every optional field left as None means
    "use the backend default" for that setting.

    Attributes:
        prompt: Task text sent to the agent
        working_directory: Project root the agent is scoped to
        timeout_ms: Invocation timeout; None uses the agent default
        allowed_tools: Allow-list of tool names the agent may call
        model: Model alias (sonnet, opus, haiku) or full model id
        max_turns: Maximum number of agentic turns
        system_prompt: Text appended to the agent system prompt
        max_budget_usd: Spend cap for the invocation
        session_id: Explicit session identifier
        continue_session: Continue the most recent session
        resume_session: Resume the named session
        json_schema: JSON schema the final output must follow
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt: str
    working_directory: Optional[str] = None
    timeout_ms: Optional[PositiveInt] = None
    allowed_tools: Optional[Tuple[str, ...]] = None
    model: Optional[str] = None
    max_turns: Optional[PositiveInt] = None
    system_prompt: Optional[str] = None
    max_budget_usd: Optional[PositiveFloat] = None
    session_id: Optional[str] = None
    continue_session: bool = False
    resume_session: Optional[str] = None
    json_schema: Optional[Annotated[Dict[str, Any], AfterValidator(freeze_json)]] = None


class ClaudeCodeCapabilities(BaseModel):
    """Snapshot of what a backend instance supports.

    Absent flags always read as unsupported. Flags reported by newer
    backends that this model does not declare are kept as extra fields and
    can be checked with supports().
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    streaming: bool = False
    cancellation: bool = False
    structured_output: bool = False
    supports_mcp: bool = False
    supports_docker: bool = False
    models: Tuple[str, ...] = ()
    available_models: Tuple[str, ...] = ()
    version: Optional[str] = None
    max_tool_calls: Optional[int] = None

    def supports(self, flag: str) -> bool:
        """Return True if the named capability is present and truthy."""
        if flag in type(self).model_fields:
            return bool(getattr(self, flag))
        extra = self.model_extra or {}
        return bool(extra.get(flag, False))


class ClaudeCodeToolCall(BaseModel):
    """One tool invocation requested by the agent.

    This is a description only; the host decides whether to execute it.
    The ``input`` payload is opaque here and must be present, even if null.
    """

    model_config = _BOUNDARY_CONFIG

    id: StrictStr
    name: StrictStr
    input: FrozenJson = Field(validation_alias=AliasChoices("input", "arguments"))
    output: FrozenJson = None
    duration_ms: Optional[NonNegativeInt] = None
    is_error: bool = False


class ClaudeCodeUsage(BaseModel):
    """Token usage for an invocation."""

    model_config = _BOUNDARY_CONFIG

    input_tokens: NonNegativeInt = 0
    output_tokens: NonNegativeInt = 0


class ClaudeCodeResult(BaseModel):
    """Normalized outcome of one Claude Code invocation.

    A successful result never carries an error code; a failed result always
    carries exactly one. Tool calls keep the order the agent emitted them.

    Attributes:
        success: Whether the invocation succeeded
        output: Primary textual or structured output
        tool_calls: Tool invocations in emission order
        error_code: Failure class, set only when success is False
        error_detail: Diagnostic detail for failures
        invocation_id: Identifier assigned by the invoking agent
        model: Model that served the invocation
        usage: Token usage
        modified_files: Files changed by the agent's tool calls
        session_id: Session identifier for continuation
        cost_usd: Total cost in USD
        duration_ms: Wall clock duration reported by the backend
        duration_api_ms: Time spent in API calls
        num_turns: Number of agentic turns taken
    """

    model_config = _BOUNDARY_CONFIG

    success: StrictBool
    output: Annotated[
        Union[str, Dict[str, Any], Tuple[Any, ...]], AfterValidator(freeze_json)
    ] = ""
    tool_calls: Tuple[ClaudeCodeToolCall, ...] = ()
    error_code: Optional[ClaudeCodeErrorCode] = None
    error_detail: Optional[str] = None
    invocation_id: Optional[str] = None
    model: Optional[str] = None
    usage: Optional[ClaudeCodeUsage] = None
    modified_files: Tuple[str, ...] = ()
    session_id: Optional[str] = None
    cost_usd: Optional[float] = None
    duration_ms: Optional[NonNegativeInt] = None
    duration_api_ms: Optional[NonNegativeInt] = None
    num_turns: Optional[NonNegativeInt] = None

    @model_validator(mode="after")
    def check_error_code_matches_success(self) -> "ClaudeCodeResult":
        """Reject results whose success flag contradicts the error code."""
        if self.success and self.error_code is not None:
            raise ValueError("successful result must not carry an error code")
        if not self.success and self.error_code is None:
            raise ValueError("failed result must carry an error code")
        return self

    @property
    def error_category(self) -> Optional[ErrorCategory]:
        return self.error_code.category if self.error_code else None

    @classmethod
    def failure(
        cls, code: ClaudeCodeErrorCode, detail: str, **fields: Any
    ) -> "ClaudeCodeResult":
        """Create a failed result for the given code."""
        fields.setdefault("output", detail)
        return cls(success=False, error_code=code, error_detail=detail, **fields)


class StreamChunk(BaseModel):
    """A piece of streaming output from an invocation."""

    text: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
