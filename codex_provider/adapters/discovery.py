"""
Best-effort discovery against a connection: model listing and health probing.

Results keep "healthy but empty" apart from "transport failed" so internal
callers (credential validation) can tell the difference. The public facades
only expose the degraded view: a list, or a bool.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from codex_provider.adapters.base import CodexConnection
from codex_provider.adapters.schema import ThreadOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryResult:
    models: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class HealthStatus:
    healthy: bool
    error: Optional[str] = None


async def discover_models(connection: CodexConnection) -> DiscoveryResult:
    """List models through the connection. Never raises."""
    try:
        models = await connection.list_models()
    except Exception as e:
        logger.warning(f"Model discovery failed: {e}")
        return DiscoveryResult(error=str(e))
    return DiscoveryResult(models=list(models))


async def probe_health(
    connection: CodexConnection, options: Optional[ThreadOptions] = None
) -> HealthStatus:
    """Attempt a minimal thread start. Never raises."""
    try:
        await connection.start_thread(options or ThreadOptions())
    except Exception as e:
        logger.warning(f"Codex health check failed: {e}")
        return HealthStatus(healthy=False, error=str(e))
    return HealthStatus(healthy=True)
