"""
Backend event model for the Codex JSONL stream.

Codex emits one JSON object per line, tagged by ``type``. Each recognized kind
gets its own model carrying only the fields that kind documents; everything
else (new kinds, malformed payloads) parses into ``UnknownEvent`` /
``UnknownItem`` so the stream keeps flowing. Malformed failure kinds
(``turn.failed``, ``error``) are the exception: they still parse as failures.

Reference shapes:
    {"type": "thread.started", "thread_id": "..."}
    {"type": "turn.started"}
    {"type": "item.completed", "item": {"id": "item_0", "type": "agent_message", "text": "..."}}
    {"type": "turn.completed", "usage": {"input_tokens": 10, "output_tokens": 4}}
    {"type": "turn.failed", "error": {"message": "..."}}
    {"type": "error", "message": "..."}
"""

import logging
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

TURN_FAILED_MESSAGE = "Turn failed"
UNKNOWN_ERROR_MESSAGE = "Unknown error"


# ─────────────────────────────────────────────────────────────────────
# THREAD ITEMS
# ─────────────────────────────────────────────────────────────────────

class _Item(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None


class AgentMessageItem(_Item):
    type: Literal["agent_message"] = "agent_message"
    text: str = ""


class ReasoningItem(_Item):
    type: Literal["reasoning"] = "reasoning"
    text: str = ""


class CommandExecutionItem(_Item):
    type: Literal["command_execution"] = "command_execution"
    command: str
    aggregated_output: str = ""
    exit_code: Optional[int] = None
    status: Optional[str] = None


class FileChangeItem(_Item):
    type: Literal["file_change"] = "file_change"
    changes: list[dict[str, Any]] = Field(default_factory=list)
    status: Optional[str] = None


class McpToolCallItem(_Item):
    type: Literal["mcp_tool_call"] = "mcp_tool_call"
    server: str
    tool: str
    status: Optional[str] = None


class UnknownItem(_Item):
    """Item kind we don't map (todo_list, web_search, ...). Dropped downstream."""

    type: str
    raw: dict[str, Any] = Field(default_factory=dict)


ThreadItem = Union[
    AgentMessageItem,
    ReasoningItem,
    CommandExecutionItem,
    FileChangeItem,
    McpToolCallItem,
    UnknownItem,
]

_ITEM_TYPES: dict[str, type[_Item]] = {
    "agent_message": AgentMessageItem,
    "reasoning": ReasoningItem,
    "command_execution": CommandExecutionItem,
    "file_change": FileChangeItem,
    "mcp_tool_call": McpToolCallItem,
}


# ─────────────────────────────────────────────────────────────────────
# STREAM EVENTS
# ─────────────────────────────────────────────────────────────────────

class _Event(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ThreadStarted(_Event):
    type: Literal["thread.started"] = "thread.started"
    thread_id: str


class TurnStarted(_Event):
    type: Literal["turn.started"] = "turn.started"


class ItemStarted(_Event):
    type: Literal["item.started"] = "item.started"
    item: ThreadItem


class ItemUpdated(_Event):
    type: Literal["item.updated"] = "item.updated"
    item: ThreadItem


class ItemCompleted(_Event):
    type: Literal["item.completed"] = "item.completed"
    item: ThreadItem


class Usage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    input_tokens: Optional[int] = None
    cached_input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None


class TurnCompleted(_Event):
    type: Literal["turn.completed"] = "turn.completed"
    usage: Optional[Usage] = None


class ThreadError(BaseModel):
    message: str = UNKNOWN_ERROR_MESSAGE


class TurnFailed(_Event):
    type: Literal["turn.failed"] = "turn.failed"
    error: Optional[ThreadError] = None


class StreamError(_Event):
    """Fatal stream-level error reported by the backend itself."""

    type: Literal["error"] = "error"
    message: str = UNKNOWN_ERROR_MESSAGE


class UnknownEvent(_Event):
    type: str
    raw: dict[str, Any] = Field(default_factory=dict)


BackendEvent = Union[
    ThreadStarted,
    TurnStarted,
    ItemStarted,
    ItemUpdated,
    ItemCompleted,
    TurnCompleted,
    TurnFailed,
    StreamError,
    UnknownEvent,
]

_EVENT_TYPES: dict[str, type[_Event]] = {
    "thread.started": ThreadStarted,
    "turn.started": TurnStarted,
    "item.started": ItemStarted,
    "item.updated": ItemUpdated,
    "item.completed": ItemCompleted,
    "turn.completed": TurnCompleted,
    "turn.failed": TurnFailed,
    "error": StreamError,
}

_ITEM_EVENTS = {"item.started", "item.updated", "item.completed"}

# Failure kinds always end the turn, even when their payload is malformed
_FAILURE_EVENTS = {"turn.failed", "error"}


def _failure_fallback(kind: str, raw: dict[str, Any]) -> BackendEvent:
    if kind == "turn.failed":
        error = raw.get("error")
        if isinstance(error, str) and error:
            return TurnFailed(error=ThreadError(message=error))
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return TurnFailed(error=ThreadError(message=error["message"]))
        return TurnFailed(error=ThreadError(message=TURN_FAILED_MESSAGE))

    message = raw.get("message")
    if not isinstance(message, str) or not message:
        message = UNKNOWN_ERROR_MESSAGE
    return StreamError(message=message)


def parse_item(raw: Any) -> ThreadItem:
    """Parse a thread item payload. Unknown or malformed items become UnknownItem."""
    if not isinstance(raw, dict):
        return UnknownItem(type="<missing>")
    kind = str(raw.get("type", ""))
    item_cls = _ITEM_TYPES.get(kind)
    if item_cls is None:
        return UnknownItem(id=raw.get("id"), type=kind, raw=raw)
    try:
        return item_cls.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Malformed {kind} item, ignoring: {e}")
        return UnknownItem(id=raw.get("id"), type=kind, raw=raw)


def parse_backend_event(raw: Any) -> BackendEvent:
    """
    Parse one decoded JSONL record into a BackendEvent.

    Never raises: anything that does not match a recognized kind comes back
    as UnknownEvent. A malformed failure still comes back as TurnFailed or
    StreamError, with a fallback message.
    """
    if not isinstance(raw, dict):
        return UnknownEvent(type="<invalid>", raw={"value": raw})

    kind = str(raw.get("type", ""))
    event_cls = _EVENT_TYPES.get(kind)
    if event_cls is None:
        return UnknownEvent(type=kind, raw=raw)

    if kind in _ITEM_EVENTS:
        return event_cls(item=parse_item(raw.get("item")))

    try:
        return event_cls.model_validate(raw)
    except ValidationError as e:
        if kind in _FAILURE_EVENTS:
            logger.warning(f"Malformed {kind} event, keeping it as a failure: {e}")
            return _failure_fallback(kind, raw)
        logger.warning(f"Malformed {kind} event, ignoring: {e}")
        return UnknownEvent(type=kind, raw=raw)
