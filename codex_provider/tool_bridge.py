"""
Tool bridge: host tool servers -> Codex ``mcp_servers`` descriptors.

The backend only needs enough to route a call back to the host: the server's
identity and the names of its tools. Handlers and input schemas stay with the
host.

Usage:
    servers = {"notes": ExternalToolServer(name="notes", tools=[...])}
    config = to_backend_config(servers)
    # {"notes": {"type": "sdk", "name": "notes", "version": "1.0.0", "tools": ["search"]}}
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from codex_provider.adapters.schema import ExternalToolServer

logger = logging.getLogger(__name__)

# Marks a server as host-managed rather than a native backend integration
HOST_MANAGED_SERVER_TYPE = "sdk"
TOOL_NAMESPACE = "mcp"


def composite_tool_name(server: str, tool: str) -> str:
    """Name a host tool the way it appears in tool_use events: mcp__<server>__<tool>."""
    return f"{TOOL_NAMESPACE}__{server}__{tool}"


def to_backend_config(
    servers: Optional[Mapping[str, ExternalToolServer]],
    allowed_tools: Optional[Sequence[str]] = None,
) -> dict[str, dict[str, Any]]:
    """
    Build the backend descriptor for each host tool server.

    Args:
        servers: Mapping of registration name -> ExternalToolServer. None is
            treated as empty.
        allowed_tools: Optional allow-list. A tool is advertised when its bare
            name or its composite name is listed. None advertises everything.

    Returns:
        Mapping of registration name -> descriptor dict. Never raises.
    """
    if not servers:
        return {}

    allowed = set(allowed_tools) if allowed_tools is not None else None
    config: dict[str, dict[str, Any]] = {}

    for key, server in servers.items():
        tool_names = [tool.name for tool in server.tools]
        if allowed is not None:
            tool_names = [
                name for name in tool_names
                if name in allowed or composite_tool_name(key, name) in allowed
            ]

        config[key] = {
            "type": HOST_MANAGED_SERVER_TYPE,
            "name": server.name,
            "version": server.version,
            "tools": tool_names,
        }
        logger.info(f"Registered tool server '{key}' with {len(tool_names)} tool(s)")

    return config
