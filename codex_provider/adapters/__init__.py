"""
Adapters between the host event protocol and the Codex backend.

Protocol defines WHAT (base.py), implementations define HOW (codex_cli.py).
Implementations are not imported here; loader.py imports the configured one
on first use.
"""

from .base import CodexConnection, CodexThread, ConnectionFactory

__all__ = [
    "CodexConnection",
    "CodexThread",
    "ConnectionFactory",
]
