"""
Deferred loading of the connection factory.

The backend connection is named by an import entrypoint (``module:attribute``)
and imported on first use, so constructing providers and clients stays cheap
and an unusable backend surfaces as CodexSetupError at the first call that
needs it.
"""

import importlib
import logging
from typing import Optional

from codex_provider.adapters.base import ConnectionFactory
from codex_provider.config import get_connection_entrypoint
from codex_provider.errors import CodexSetupError

logger = logging.getLogger(__name__)

_factories: dict[str, ConnectionFactory] = {}


def load_connection_factory(entrypoint: Optional[str] = None) -> ConnectionFactory:
    """
    Import and cache the connection factory named by ``entrypoint``.

    Args:
        entrypoint: "module:attribute". Defaults to CODEX_PROVIDER_CONNECTION
            or the bundled CLI connection.

    Raises:
        CodexSetupError: If the entrypoint is malformed, cannot be imported,
            or does not name a callable
    """
    entrypoint = entrypoint or get_connection_entrypoint()
    if entrypoint in _factories:
        return _factories[entrypoint]

    module_name, separator, attr = entrypoint.partition(":")
    if not separator or not module_name or not attr:
        raise CodexSetupError(
            f"Invalid connection entrypoint '{entrypoint}'. Expected module:attribute."
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise CodexSetupError(
            f"Codex backend not available: cannot import '{module_name}' ({e})"
        ) from e

    factory = getattr(module, attr, None)
    if not callable(factory):
        raise CodexSetupError(
            f"Connection entrypoint '{entrypoint}' is not callable."
        )

    logger.debug(f"Loaded connection factory {entrypoint}")
    _factories[entrypoint] = factory
    return factory


def clear_connection_factories() -> None:
    """
    Forget loaded factories.

    Primarily useful for testing to reset state between tests.
    """
    _factories.clear()
