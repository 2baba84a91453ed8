"""
CodexProvider - stable identity and client factory registered with the host.

Stateless apart from the static capability metadata. Creating a client never
touches the network; validating a credential only does when the cheap
syntactic check passes.
"""

import logging
from typing import Any, Optional

from codex_provider.adapters.base import ConnectionFactory
from codex_provider.adapters.discovery import discover_models
from codex_provider.adapters.loader import load_connection_factory
from codex_provider.client import CodexClient
from codex_provider.config import CODEX_CAPABILITIES, CredentialType, ProviderCapabilities

logger = logging.getLogger(__name__)


def is_well_formed_credential(
    credential: Any, prefix: str = CODEX_CAPABILITIES.credential_prefix
) -> bool:
    """Syntactic check: a non-blank string with the key prefix and no whitespace."""
    if not isinstance(credential, str):
        return False
    if not credential.startswith(prefix) or len(credential) <= len(prefix):
        return False
    return not any(ch.isspace() for ch in credential)


class CodexProvider:
    """
    Provider facade for the Codex backend.

    Usage:
        provider = CodexProvider()
        if await provider.validate_credentials(api_key):
            client = provider.create_client(api_key, {"organization": "org-..."})
    """

    def __init__(
        self,
        connection_factory: Optional[ConnectionFactory] = None,
        capabilities: ProviderCapabilities = CODEX_CAPABILITIES,
    ):
        self._connection_factory = connection_factory
        self.capabilities = capabilities

    @property
    def id(self) -> str:
        return self.capabilities.id

    @property
    def name(self) -> str:
        return self.capabilities.name

    @property
    def description(self) -> str:
        return self.capabilities.description

    @property
    def default_model(self) -> str:
        return self.capabilities.default_model

    @property
    def supported_models(self) -> list[str]:
        return list(self.capabilities.supported_models)

    async def validate_credentials(self, credential: str) -> bool:
        """
        Check that a credential is usable. Never raises.

        Malformed credentials are rejected before any network call. Well-formed
        ones are checked live through the connection's model discovery.
        """
        if not is_well_formed_credential(credential, self.capabilities.credential_prefix):
            return False

        try:
            factory = self._connection_factory or load_connection_factory()
            connection = factory(credential, {})
        except Exception as e:
            logger.warning(f"Cannot validate credential, backend unavailable: {e}")
            return False

        result = await discover_models(connection)
        return result.ok

    def create_client(
        self, credential: str, options: Optional[dict[str, Any]] = None
    ) -> CodexClient:
        return CodexClient(
            credential, options, connection_factory=self._connection_factory
        )

    def get_credential_type(self) -> CredentialType:
        return self.capabilities.credential_type
