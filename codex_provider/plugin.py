"""
Plugin lifecycle: register the Codex provider with the host on load, and
remove it again on unload.

The host hands ``init`` a context object; see PluginContext for the calls we
make on it.

Usage (host side):
    from codex_provider.plugin import plugin
    await plugin.init(ctx)
    ...
    await plugin.shutdown()
"""

import logging
from typing import Any, Optional, Protocol

from dotenv import load_dotenv

from codex_provider.config import (
    CODEX_CAPABILITIES,
    PLUGIN_DESCRIPTION,
    PLUGIN_NAME,
    PLUGIN_VERSION,
    ConfigSchema,
    build_config_schema,
)
from codex_provider.provider import CodexProvider

logger = logging.getLogger(__name__)


class PluginLogger(Protocol):
    def info(self, message: str) -> Any: ...

    def warning(self, message: str) -> Any: ...

    def error(self, message: str) -> Any: ...


class PluginContext(Protocol):
    """What the host exposes to a plugin during init."""

    log: PluginLogger

    def register_provider(self, provider: CodexProvider) -> None: ...

    def unregister_provider(self, provider_id: str) -> None: ...

    def register_config_schema(self, name: str, schema: ConfigSchema) -> None: ...

    def unregister_config_schema(self, name: str) -> None: ...


class CodexPlugin:
    """Host plugin exposing the Codex provider and its config schema."""

    name = PLUGIN_NAME
    version = PLUGIN_VERSION
    description = PLUGIN_DESCRIPTION

    def __init__(self, provider: Optional[CodexProvider] = None):
        self.provider = provider or CodexProvider()
        self._ctx: Optional[PluginContext] = None

    @property
    def initialized(self) -> bool:
        return self._ctx is not None

    async def init(self, ctx: PluginContext) -> None:
        load_dotenv()

        ctx.log.info(f"Registering {CODEX_CAPABILITIES.name} provider...")
        ctx.register_provider(self.provider)
        ctx.log.info(f"{CODEX_CAPABILITIES.name} provider registered")

        ctx.register_config_schema(PLUGIN_NAME, build_config_schema())
        ctx.log.info(f"Registered {CODEX_CAPABILITIES.name} config schema")

        self._ctx = ctx

    async def shutdown(self) -> None:
        ctx = self._ctx
        if ctx is None:
            logger.info(f"[{PLUGIN_NAME}] Shutdown requested before init, nothing to do")
            return

        ctx.unregister_config_schema(PLUGIN_NAME)
        ctx.unregister_provider(self.provider.id)
        ctx.log.info(f"[{PLUGIN_NAME}] Shutting down")
        self._ctx = None


plugin = CodexPlugin()
