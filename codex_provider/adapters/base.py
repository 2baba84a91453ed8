"""
CodexConnection Protocol - defines the contract for reaching the Codex backend.

This is the WHAT (interface), not the HOW (implementation).
See codex_cli.py for the concrete implementation.
"""

from typing import Any, AsyncIterator, Optional, Protocol

from codex_provider.adapters.schema import ThreadOptions


class CodexThread(Protocol):
    """
    One backend thread (session).

    ``id`` is None for a fresh thread until the backend announces it
    (``thread.started``), and set up front for a resumed thread.
    """

    @property
    def id(self) -> Optional[str]:
        ...

    def run_streamed(self, prompt: str) -> AsyncIterator[dict[str, Any]]:
        """
        Run one turn and yield raw backend events as decoded JSON objects.

        Args:
            prompt: Fully composed prompt text

        Yields:
            Raw event dicts in arrival order

        Raises:
            CodexExecError if the backend process fails
        """
        ...


class CodexConnection(Protocol):
    """
    Contract for a backend connection bound to one credential.

    Implementations must provide:
    - Thread lifecycle (start_thread, resume_thread)
    - Model discovery (list_models)
    """

    async def start_thread(self, options: ThreadOptions) -> CodexThread:
        """Start a fresh thread. Raises CodexSetupError if the backend is unusable."""
        ...

    async def resume_thread(self, thread_id: str, options: ThreadOptions) -> CodexThread:
        """Resume an existing thread by id. Never falls back to a fresh thread."""
        ...

    async def list_models(self) -> list[str]:
        """Return model ids available to this credential. Raises on transport failure."""
        ...


class ConnectionFactory(Protocol):
    """Builds a connection from an explicitly injected credential."""

    def __call__(
        self, credential: str, options: Optional[dict[str, Any]] = None
    ) -> CodexConnection:
        ...
