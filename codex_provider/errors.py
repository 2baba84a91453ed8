"""
Exception hierarchy for codex-provider.

Setup failures (backend cannot be loaded or started) and query failures are
raised. Failures reported by the backend mid-stream are delivered as
``error`` events instead, see adapters/session.py.
"""


class CodexProviderError(Exception):
    """Base class for codex-provider errors."""
    pass


class CodexSetupError(CodexProviderError):
    """Backend connection could not be loaded or constructed."""
    pass


class CodexExecError(CodexProviderError):
    """The codex process failed (non-zero exit, unreadable output)."""
    pass


class CodexQueryError(CodexProviderError):
    """A query failed before or during streaming. Message carries the backend prefix."""

    PREFIX = "Codex query failed: "

    @classmethod
    def wrap(cls, error: BaseException) -> "CodexQueryError":
        return cls(f"{cls.PREFIX}{error}")


class CodexDiscoveryError(CodexProviderError):
    """Model discovery request failed."""
    pass
