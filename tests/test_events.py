"""Tests for codex_provider.adapters.events - backend event parsing."""

import pytest

from codex_provider.adapters.events import (
    AgentMessageItem,
    CommandExecutionItem,
    FileChangeItem,
    ItemCompleted,
    ItemStarted,
    McpToolCallItem,
    ReasoningItem,
    StreamError,
    ThreadStarted,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
    UnknownEvent,
    UnknownItem,
    parse_backend_event,
    parse_item,
)


class TestParseBackendEvent:
    def test_thread_started(self):
        event = parse_backend_event({"type": "thread.started", "thread_id": "t-1"})
        assert isinstance(event, ThreadStarted)
        assert event.thread_id == "t-1"

    def test_turn_started(self):
        assert isinstance(parse_backend_event({"type": "turn.started"}), TurnStarted)

    def test_turn_completed_usage(self):
        event = parse_backend_event({
            "type": "turn.completed",
            "usage": {"input_tokens": 5, "output_tokens": 2},
        })
        assert isinstance(event, TurnCompleted)
        assert event.usage.input_tokens == 5
        assert event.usage.output_tokens == 2
        assert event.usage.cached_input_tokens is None

    def test_turn_completed_without_usage(self):
        event = parse_backend_event({"type": "turn.completed"})
        assert isinstance(event, TurnCompleted)
        assert event.usage is None

    def test_turn_failed(self):
        event = parse_backend_event({"type": "turn.failed", "error": {"message": "boom"}})
        assert isinstance(event, TurnFailed)
        assert event.error.message == "boom"

    def test_stream_error(self):
        event = parse_backend_event({"type": "error", "message": "stream lost"})
        assert isinstance(event, StreamError)
        assert event.message == "stream lost"

    def test_unknown_kind(self):
        raw = {"type": "unknown.kind", "payload": 1}
        event = parse_backend_event(raw)
        assert isinstance(event, UnknownEvent)
        assert event.type == "unknown.kind"
        assert event.raw == raw

    def test_missing_type(self):
        assert isinstance(parse_backend_event({"thread_id": "x"}), UnknownEvent)

    def test_non_dict_payload(self):
        assert isinstance(parse_backend_event(["not", "an", "event"]), UnknownEvent)

    def test_malformed_known_kind_is_unknown(self):
        event = parse_backend_event({"type": "thread.started"})
        assert isinstance(event, UnknownEvent)
        assert event.type == "thread.started"

    @pytest.mark.parametrize("raw,message", [
        ({"type": "turn.failed", "error": "rate limited"}, "rate limited"),
        ({"type": "turn.failed", "error": {"message": None}}, "Turn failed"),
        ({"type": "turn.failed", "error": 503}, "Turn failed"),
    ])
    def test_malformed_turn_failed_stays_a_failure(self, raw, message):
        event = parse_backend_event(raw)
        assert isinstance(event, TurnFailed)
        assert event.error.message == message

    @pytest.mark.parametrize("raw,message", [
        ({"type": "error", "message": None}, "Unknown error"),
        ({"type": "error", "message": ["a", "b"]}, "Unknown error"),
    ])
    def test_malformed_stream_error_stays_a_failure(self, raw, message):
        event = parse_backend_event(raw)
        assert isinstance(event, StreamError)
        assert event.message == message

    def test_item_events_carry_parsed_item(self):
        event = parse_backend_event({
            "type": "item.started",
            "item": {"id": "i", "type": "reasoning", "text": "thinking"},
        })
        assert isinstance(event, ItemStarted)
        assert isinstance(event.item, ReasoningItem)

    def test_extra_fields_ignored(self):
        event = parse_backend_event({"type": "turn.started", "future_field": True})
        assert isinstance(event, TurnStarted)


class TestParseItem:
    def test_agent_message(self):
        item = parse_item({"id": "item_0", "type": "agent_message", "text": "hi"})
        assert isinstance(item, AgentMessageItem)
        assert item.text == "hi"
        assert item.id == "item_0"

    def test_command_execution(self):
        item = parse_item({
            "id": "item_1",
            "type": "command_execution",
            "command": "ls",
            "aggregated_output": "a\nb",
            "exit_code": 0,
            "status": "completed",
        })
        assert isinstance(item, CommandExecutionItem)
        assert item.command == "ls"
        assert item.exit_code == 0

    def test_file_change_keeps_changes(self):
        changes = [{"path": "src/app.py", "kind": "update"}]
        item = parse_item({"type": "file_change", "changes": changes, "status": "completed"})
        assert isinstance(item, FileChangeItem)
        assert item.changes == changes

    def test_mcp_tool_call(self):
        item = parse_item({
            "type": "mcp_tool_call",
            "server": "notes",
            "tool": "search",
            "status": "completed",
            "arguments": {"q": "secret"},
        })
        assert isinstance(item, McpToolCallItem)
        assert not hasattr(item, "arguments")

    def test_unknown_item_kind(self):
        item = parse_item({"type": "todo_list", "items": []})
        assert isinstance(item, UnknownItem)
        assert item.type == "todo_list"

    def test_malformed_item(self):
        item = parse_item({"type": "command_execution"})
        assert isinstance(item, UnknownItem)

    def test_missing_item(self):
        assert isinstance(parse_item(None), UnknownItem)

    def test_item_completed_with_unknown_item(self):
        event = parse_backend_event({
            "type": "item.completed",
            "item": {"type": "web_search", "query": "x"},
        })
        assert isinstance(event, ItemCompleted)
        assert isinstance(event.item, UnknownItem)
