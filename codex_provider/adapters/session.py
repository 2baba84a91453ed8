"""
SessionAdapter - runs one query against a Codex thread and normalizes its events.

Per-query lifecycle:

    UNSTARTED -> CONNECTING -> RESUMED | STARTED -> STREAMING -> COMPLETED | FAILED

Two failure channels, and callers must handle both:
- Backend-reported failures while streaming (``turn.failed``, ``error``) are
  yielded as an ErrorEvent and end the stream. Events already yielded stay valid.
- Anything raised while connecting or streaming is wrapped once as
  CodexQueryError and raised.

A resume failure is a connection failure. There is no fallback to a fresh thread.
"""

import logging
import os
from enum import Enum
from typing import Any, AsyncGenerator, Optional

from codex_provider.adapters.base import CodexConnection, CodexThread
from codex_provider.adapters.events import (
    TURN_FAILED_MESSAGE,
    AgentMessageItem,
    BackendEvent,
    CommandExecutionItem,
    FileChangeItem,
    ItemCompleted,
    McpToolCallItem,
    ReasoningItem,
    StreamError,
    ThreadItem,
    ThreadStarted,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
    parse_backend_event,
)
from codex_provider.adapters.schema import (
    ErrorEvent,
    NormalizedEvent,
    QueryOptions,
    ReasoningEvent,
    SessionIdEvent,
    SystemInitEvent,
    TextEvent,
    ThreadOptions,
    ToolUseEvent,
    TurnStartEvent,
    UsageEvent,
)
from codex_provider.config import APPROVAL_POLICY, SANDBOX_MODE
from codex_provider.effort import EffortLevel, map_temperature_to_effort
from codex_provider.errors import CodexQueryError
from codex_provider.tool_bridge import composite_tool_name, to_backend_config

logger = logging.getLogger(__name__)

SHELL_TOOL_NAME = "Bash"
FILE_CHANGE_TOOL_NAME = "FileChange"

IMAGE_MANIFEST_HEADER = "[User has shared {count} image(s)]"
IMAGE_MANIFEST_LINE = "[Image {index}]: {url}"
SYSTEM_PROMPT_HEADER = "[System instructions]"
BLOCK_SEPARATOR = "\n\n"


class RunState(str, Enum):
    UNSTARTED = "unstarted"
    CONNECTING = "connecting"
    RESUMED = "resumed"
    STARTED = "started"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.UNSTARTED: {RunState.CONNECTING},
    RunState.CONNECTING: {RunState.RESUMED, RunState.STARTED, RunState.FAILED},
    RunState.RESUMED: {RunState.STREAMING, RunState.FAILED},
    RunState.STARTED: {RunState.STREAMING, RunState.FAILED},
    RunState.STREAMING: {RunState.COMPLETED, RunState.FAILED},
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
}

TERMINAL_STATES = frozenset({RunState.COMPLETED, RunState.FAILED})


# ─────────────────────────────────────────────────────────────────────
# PROMPT COMPOSITION
# ─────────────────────────────────────────────────────────────────────

def compose_prompt(options: QueryOptions) -> str:
    """
    Build the outbound prompt: image manifest, system prompt block, prompt.

    Absent blocks are skipped; present blocks are joined by one blank line.
    Images travel as URLs in the text, not as attachments.
    """
    blocks: list[str] = []

    if options.images:
        lines = [IMAGE_MANIFEST_HEADER.format(count=len(options.images))]
        lines.extend(
            IMAGE_MANIFEST_LINE.format(index=i, url=url)
            for i, url in enumerate(options.images, start=1)
        )
        blocks.append("\n".join(lines))

    if options.system_prompt:
        blocks.append(f"{SYSTEM_PROMPT_HEADER}\n{options.system_prompt}")

    blocks.append(options.prompt)
    return BLOCK_SEPARATOR.join(blocks)


# ─────────────────────────────────────────────────────────────────────
# EVENT MAPPING
# ─────────────────────────────────────────────────────────────────────

def _normalize_item(item: ThreadItem) -> Optional[NormalizedEvent]:
    if isinstance(item, AgentMessageItem):
        return TextEvent(text=item.text)
    if isinstance(item, ReasoningItem):
        return ReasoningEvent(text=item.text)
    if isinstance(item, CommandExecutionItem):
        return ToolUseEvent(
            id=item.id,
            name=SHELL_TOOL_NAME,
            input={"command": item.command},
            output=item.aggregated_output,
            exit_code=item.exit_code,
            status=item.status,
        )
    if isinstance(item, FileChangeItem):
        return ToolUseEvent(
            id=item.id,
            name=FILE_CHANGE_TOOL_NAME,
            input={"changes": item.changes},
            status=item.status,
        )
    if isinstance(item, McpToolCallItem):
        # Payload stays host-side; only the routing name and status cross over
        return ToolUseEvent(
            id=item.id,
            name=composite_tool_name(item.server, item.tool),
            status=item.status,
        )
    return None


def normalize_event(event: BackendEvent) -> Optional[NormalizedEvent]:
    """
    Map one backend event to at most one normalized event.

    Returns None for kinds the host does not see (item progress, unknown kinds).
    """
    if isinstance(event, ThreadStarted):
        return SystemInitEvent(session_id=event.thread_id)
    if isinstance(event, TurnStarted):
        return TurnStartEvent()
    if isinstance(event, ItemCompleted):
        return _normalize_item(event.item)
    if isinstance(event, TurnCompleted):
        if event.usage is None:
            return UsageEvent()
        return UsageEvent(
            input_tokens=event.usage.input_tokens,
            cached_input_tokens=event.usage.cached_input_tokens,
            output_tokens=event.usage.output_tokens,
        )
    if isinstance(event, TurnFailed):
        message = event.error.message if event.error else TURN_FAILED_MESSAGE
        return ErrorEvent(message=message)
    if isinstance(event, StreamError):
        return ErrorEvent(message=event.message)
    return None


# ─────────────────────────────────────────────────────────────────────
# QUERY RUN
# ─────────────────────────────────────────────────────────────────────

class QueryRun:
    """
    State for a single query. Not reusable: ``events()`` may be iterated once.
    """

    def __init__(self, adapter: "SessionAdapter", options: QueryOptions):
        self._adapter = adapter
        self._options = options
        self.state = RunState.UNSTARTED
        self.thread_id: Optional[str] = None

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal run transition {self.state.value} -> {new_state.value}"
            )
        logger.debug(f"Run {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _announce(self, thread_id: str) -> SessionIdEvent:
        self.thread_id = thread_id
        return SessionIdEvent(session_id=thread_id)

    async def _open_thread(self) -> CodexThread:
        connection = self._adapter.connection
        thread_options = self._adapter.build_thread_options(self._options)

        if self._options.wants_resume:
            logger.info(f"Resuming Codex thread {self._options.resume}")
            thread = await connection.resume_thread(self._options.resume, thread_options)
            self._transition(RunState.RESUMED)
        else:
            logger.info(
                f"Starting Codex thread (model={thread_options.model}, "
                f"effort={thread_options.model_reasoning_effort})"
            )
            thread = await connection.start_thread(thread_options)
            self._transition(RunState.STARTED)
        return thread

    async def events(self) -> AsyncGenerator[NormalizedEvent, None]:
        """
        Yield normalized events in backend arrival order.

        Yields:
            SessionIdEvent first (once, when the thread id is known before
            any other event),
            then one event per mapped backend event.

        Raises:
            CodexQueryError on any connection or transport failure
        """
        self._transition(RunState.CONNECTING)
        try:
            thread = await self._open_thread()
            yielded = False
            if thread.id:
                yield self._announce(thread.id)
                yielded = True

            prompt = compose_prompt(self._options)
            self._transition(RunState.STREAMING)

            stream = thread.run_streamed(prompt)
            try:
                async for raw in stream:
                    event = parse_backend_event(raw)

                    if isinstance(event, ThreadStarted) and self.thread_id is None:
                        if yielded:
                            # session_id must lead the stream; system/init still carries the id
                            self.thread_id = event.thread_id
                        else:
                            yield self._announce(event.thread_id)
                            yielded = True

                    normalized = normalize_event(event)
                    if normalized is None:
                        logger.debug(f"Dropping backend event: {event.type}")
                        continue

                    yield normalized
                    yielded = True

                    if isinstance(normalized, ErrorEvent):
                        logger.warning(f"Codex turn failed: {normalized.message}")
                        self._transition(RunState.FAILED)
                        return
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

            self._transition(RunState.COMPLETED)

        except Exception as e:
            if self.state not in TERMINAL_STATES:
                self.state = RunState.FAILED
            logger.error(f"Codex query failed: {e}")
            raise CodexQueryError.wrap(e) from e


# ─────────────────────────────────────────────────────────────────────
# ADAPTER
# ─────────────────────────────────────────────────────────────────────

class SessionAdapter:
    """
    Issues queries against a CodexConnection.

    Design decisions:
    - Working directory is injected (defaults to the process cwd at construction)
    - Sandbox/approval policy is fixed: write-enabled, never asks
    - provider_options are merged last, so they win over computed defaults
    - An explicit per-call temperature beats a client-level fixed effort
    """

    def __init__(
        self,
        connection: CodexConnection,
        working_directory: Optional[str] = None,
        default_model: Optional[str] = None,
        reasoning_effort: Optional[EffortLevel] = None,
    ):
        self.connection = connection
        self._working_directory = working_directory or os.getcwd()
        self._default_model = default_model
        self._reasoning_effort = reasoning_effort

    def _effort_for(self, options: QueryOptions) -> EffortLevel:
        if options.temperature is None and self._reasoning_effort is not None:
            return self._reasoning_effort
        return map_temperature_to_effort(options.temperature)

    def build_thread_options(self, options: QueryOptions) -> ThreadOptions:
        """Compose backend run parameters for a query."""
        params: dict[str, Any] = {
            "working_directory": self._working_directory,
            "sandbox_mode": SANDBOX_MODE,
            "approval_policy": APPROVAL_POLICY,
            "model_reasoning_effort": self._effort_for(options).value,
        }

        model = options.model or self._default_model
        if model:
            params["model"] = model

        if options.mcp_servers:
            params["mcp_servers"] = to_backend_config(
                options.mcp_servers, options.allowed_tools
            )

        params.update(options.provider_options)
        return ThreadOptions.model_validate(params)

    def open_run(self, options: QueryOptions) -> QueryRun:
        return QueryRun(self, options)

    def query(self, options: QueryOptions) -> AsyncGenerator[NormalizedEvent, None]:
        """Start a query and return its normalized event stream."""
        return self.open_run(options).events()
