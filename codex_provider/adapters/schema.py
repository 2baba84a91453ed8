from typing import Any, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ─────────────────────────────────────────────────────────────────────
# EXTERNAL TOOLS - Host-managed tool servers
# ─────────────────────────────────────────────────────────────────────

class ExternalTool(BaseModel):
    """A tool owned by the host. The handler is never called by this package."""

    name: str
    description: str = ""
    input_schema: Dict[str, Any] = Field(default_factory=dict)
    handler: Optional[Callable[..., Any]] = Field(default=None, exclude=True)


class ExternalToolServer(BaseModel):
    """A named, versioned collection of host-managed tools."""

    name: str
    version: str = "1.0.0"
    tools: List[ExternalTool] = Field(default_factory=list)


# ─────────────────────────────────────────────────────────────────────
# REQUEST
# ─────────────────────────────────────────────────────────────────────

class QueryOptions(BaseModel):
    """
    Standardized request object for one query against the backend.

    A non-empty ``resume`` always wins: the query resumes that thread and
    never starts a fresh one, whatever else is set.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    system_prompt: Optional[str] = None
    resume: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    images: List[str] = Field(default_factory=list)
    allowed_tools: Optional[List[str]] = None
    mcp_servers: Dict[str, ExternalToolServer] = Field(default_factory=dict)
    provider_options: Dict[str, Any] = Field(default_factory=dict)

    @property
    def wants_resume(self) -> bool:
        return bool(self.resume)


class ThreadOptions(BaseModel):
    """
    Run parameters handed to the backend when a thread is started or resumed.

    Unknown keys are kept (``model_extra``) and forwarded to the backend as
    raw config overrides.
    """

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    working_directory: Optional[str] = None
    sandbox_mode: Optional[str] = None
    approval_policy: Optional[str] = None
    model: Optional[str] = None
    model_reasoning_effort: Optional[str] = None
    mcp_servers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    skip_git_repo_check: bool = True


# ─────────────────────────────────────────────────────────────────────
# NORMALIZED EVENTS - What the host consumes
# ─────────────────────────────────────────────────────────────────────

class _NormalizedEventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def kind(self) -> str:
        subtype = getattr(self, "subtype", None)
        return f"{self.type}/{subtype}" if subtype else self.type


class SessionIdEvent(_NormalizedEventBase):
    type: Literal["session_id"] = "session_id"
    session_id: str


class SystemInitEvent(_NormalizedEventBase):
    type: Literal["system"] = "system"
    subtype: Literal["init"] = "init"
    session_id: str


class TurnStartEvent(_NormalizedEventBase):
    type: Literal["system"] = "system"
    subtype: Literal["turn_start"] = "turn_start"


class TextEvent(_NormalizedEventBase):
    type: Literal["text"] = "text"
    text: str


class ReasoningEvent(_NormalizedEventBase):
    type: Literal["reasoning"] = "reasoning"
    text: str


class ToolUseEvent(_NormalizedEventBase):
    type: Literal["tool_use"] = "tool_use"
    id: Optional[str] = None
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[str] = None
    exit_code: Optional[int] = None
    status: Optional[str] = None


class UsageEvent(_NormalizedEventBase):
    """Token counts for one turn. Fields the backend omits stay None."""

    type: Literal["usage"] = "usage"
    input_tokens: Optional[int] = None
    cached_input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class ErrorEvent(_NormalizedEventBase):
    type: Literal["error"] = "error"
    message: str


NormalizedEvent = Union[
    SessionIdEvent,
    SystemInitEvent,
    TurnStartEvent,
    TextEvent,
    ReasoningEvent,
    ToolUseEvent,
    UsageEvent,
    ErrorEvent,
]
