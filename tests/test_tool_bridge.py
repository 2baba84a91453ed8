"""Tests for codex_provider.tool_bridge module."""

import logging

from codex_provider.adapters.schema import ExternalTool, ExternalToolServer
from codex_provider.tool_bridge import composite_tool_name, to_backend_config


def _handler(**kwargs):
    raise AssertionError("tool handlers must never be invoked by the bridge")


def make_server(name="notes", tools=("search", "append"), version="2.1.0"):
    return ExternalToolServer(
        name=name,
        version=version,
        tools=[
            ExternalTool(
                name=tool,
                description=f"{tool} notes",
                input_schema={"type": "object"},
                handler=_handler,
            )
            for tool in tools
        ],
    )


class TestToBackendConfig:
    def test_empty_inputs_yield_empty_mapping(self):
        assert to_backend_config({}) == {}
        assert to_backend_config(None) == {}

    def test_descriptor_shape(self):
        config = to_backend_config({"notes": make_server()})

        assert config == {
            "notes": {
                "type": "sdk",
                "name": "notes",
                "version": "2.1.0",
                "tools": ["search", "append"],
            }
        }

    def test_descriptor_omits_handlers_and_schemas(self):
        descriptor = to_backend_config({"notes": make_server()})["notes"]
        assert "handler" not in str(descriptor)
        assert "input_schema" not in descriptor
        assert all(isinstance(name, str) for name in descriptor["tools"])

    def test_tool_order_preserved(self):
        config = to_backend_config({"s": make_server(tools=("c", "a", "b"))})
        assert config["s"]["tools"] == ["c", "a", "b"]

    def test_multiple_servers(self):
        config = to_backend_config({
            "notes": make_server(),
            "tickets": make_server(name="tickets", tools=("open",)),
        })
        assert set(config) == {"notes", "tickets"}
        assert config["tickets"]["tools"] == ["open"]

    def test_allow_list_filters_by_bare_or_composite_name(self):
        config = to_backend_config(
            {"notes": make_server(tools=("search", "append", "delete"))},
            allowed_tools=["search", "mcp__notes__delete"],
        )
        assert config["notes"]["tools"] == ["search", "delete"]

    def test_server_without_tools(self):
        config = to_backend_config({"empty": ExternalToolServer(name="empty")})
        assert config["empty"]["tools"] == []

    def test_logs_one_record_per_server(self, caplog):
        with caplog.at_level(logging.INFO, logger="codex_provider.tool_bridge"):
            to_backend_config({
                "notes": make_server(),
                "tickets": make_server(name="tickets", tools=("open",)),
            })

        records = [r for r in caplog.records if r.name == "codex_provider.tool_bridge"]
        assert len(records) == 2
        assert "2 tool(s)" in records[0].getMessage()
        assert "1 tool(s)" in records[1].getMessage()


class TestCompositeToolName:
    def test_format(self):
        assert composite_tool_name("notes", "search") == "mcp__notes__search"
