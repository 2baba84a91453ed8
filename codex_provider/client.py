"""
CodexClient - per-credential handle the host queries through.

The backend connection is built lazily on first use and then reused for every
call on this client. Concurrent first calls share one construction
(asyncio.Lock single-flight).
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Optional

from codex_provider.adapters.base import CodexConnection, ConnectionFactory
from codex_provider.adapters.discovery import (
    DiscoveryResult,
    HealthStatus,
    discover_models,
    probe_health,
)
from codex_provider.adapters.loader import load_connection_factory
from codex_provider.adapters.schema import NormalizedEvent, QueryOptions
from codex_provider.adapters.session import SessionAdapter
from codex_provider.effort import EffortLevel
from codex_provider.errors import CodexSetupError

logger = logging.getLogger(__name__)


def _parse_effort(value: Any) -> Optional[EffortLevel]:
    if value is None or value == "":
        return None
    try:
        return EffortLevel(value)
    except ValueError:
        logger.warning(f"Ignoring unknown reasoningEffort option: {value!r}")
        return None


class CodexClient:
    """
    Client facade over one Codex connection.

    Design decisions:
    - Construction never touches the network or imports the backend
    - list_models() and health_check() never raise (degraded results instead)
    - query() raises CodexSetupError if the backend cannot be loaded, and
      CodexQueryError for connection/stream failures

    Recognized options (besides what the connection itself reads):
        model: Default model when a query names none
        reasoningEffort: Fixed effort used when a query gives no temperature
        workingDirectory: Directory runs execute in (default: process cwd)
    """

    def __init__(
        self,
        credential: str,
        options: Optional[dict[str, Any]] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        self._credential = credential
        self._options: dict[str, Any] = dict(options or {})
        self._connection_factory = connection_factory
        self._connection: Optional[CodexConnection] = None
        self._lock = asyncio.Lock()

    async def _get_connection(self) -> CodexConnection:
        if self._connection is not None:
            return self._connection

        async with self._lock:
            if self._connection is None:
                factory = self._connection_factory or load_connection_factory()
                try:
                    self._connection = factory(self._credential, self._options)
                except CodexSetupError:
                    raise
                except Exception as e:
                    raise CodexSetupError(f"Failed to create Codex connection: {e}") from e
                logger.info("Codex connection initialized")
        return self._connection

    def _session_adapter(self, connection: CodexConnection) -> SessionAdapter:
        return SessionAdapter(
            connection,
            working_directory=self._options.get("workingDirectory"),
            default_model=self._options.get("model"),
            reasoning_effort=_parse_effort(self._options.get("reasoningEffort")),
        )

    async def query(self, options: QueryOptions) -> AsyncGenerator[NormalizedEvent, None]:
        """Stream normalized events for one query."""
        connection = await self._get_connection()
        adapter = self._session_adapter(connection)
        async for event in adapter.query(options):
            yield event

    async def discover_models(self) -> DiscoveryResult:
        try:
            connection = await self._get_connection()
        except Exception as e:
            logger.warning(f"Model discovery unavailable: {e}")
            return DiscoveryResult(error=str(e))
        return await discover_models(connection)

    async def list_models(self) -> list[str]:
        """Return available model ids, or [] if discovery fails."""
        result = await self.discover_models()
        return result.models

    async def check_health(self) -> HealthStatus:
        try:
            connection = await self._get_connection()
            probe_options = self._session_adapter(connection).build_thread_options(
                QueryOptions(prompt="")
            )
        except Exception as e:
            logger.warning(f"Codex health check failed: {e}")
            return HealthStatus(healthy=False, error=str(e))
        return await probe_health(connection, probe_options)

    async def health_check(self) -> bool:
        """
        True if a minimal thread start succeeds. Never raises.

        With the CLI connection this means "the codex binary resolves"; no
        model call is made. Credential problems show up in list_models().
        """
        status = await self.check_health()
        return status.healthy
