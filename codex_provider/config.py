"""
Configuration constants and Pydantic models for codex-provider.
"""

import os
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from codex_provider.effort import EffortLevel


# ─────────────────────────────────────────────────────────────────────
# CAPABILITIES - Static description exposed to the host
# ─────────────────────────────────────────────────────────────────────

CredentialType = Literal["api-key", "oauth", "custom"]


class ProviderCapabilities(BaseModel):
    """Static identity of the backend, used by the host for discovery."""

    id: str
    name: str
    description: str
    default_model: str
    supported_models: list[str]
    credential_type: CredentialType
    credential_prefix: str


CODEX_CAPABILITIES = ProviderCapabilities(
    id="codex",
    name="OpenAI Codex",
    description="OpenAI Codex coding agent (image URLs passed in prompt)",
    default_model="gpt-5.1-codex",
    supported_models=[
        "gpt-5.1-codex",
        "gpt-5.1-codex-max",
        "gpt-5.1-codex-mini",
        "gpt-5-codex",
        "gpt-5.1",
    ],
    credential_type="api-key",
    credential_prefix="sk-",
)


# ─────────────────────────────────────────────────────────────────────
# PLUGIN METADATA
# ─────────────────────────────────────────────────────────────────────

PLUGIN_NAME: str = "provider-openai"
PLUGIN_VERSION: str = "1.0.0"
PLUGIN_DESCRIPTION: str = "OpenAI Codex agent provider"


# ─────────────────────────────────────────────────────────────────────
# BACKEND DEFAULTS - Fixed per-run policy
# ─────────────────────────────────────────────────────────────────────

# Auto-approve, write-enabled. Not overridable per call.
SANDBOX_MODE: str = "workspace-write"
APPROVAL_POLICY: str = "never"

DEFAULT_CODEX_PATH: str = "codex"
DEFAULT_OPENAI_BASE_URL: str = "https://api.openai.com/v1"
DEFAULT_CONNECTION_ENTRYPOINT: str = (
    "codex_provider.adapters.codex_cli:CodexCLIConnection"
)

# Model ids returned by discovery must start with one of these
MODEL_FAMILY_PREFIXES: tuple[str, ...] = ("gpt-5", "codex")


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_codex_path() -> str:
    """
    Get the codex binary path.

    Set CODEX_PATH in .env (default: "codex", resolved via PATH).
    """
    return os.environ.get("CODEX_PATH", "").strip() or DEFAULT_CODEX_PATH


def get_openai_base_url() -> str:
    """
    Get the OpenAI API base URL used for model discovery.

    Set OPENAI_BASE_URL in .env (default: https://api.openai.com/v1).
    """
    url = os.environ.get("OPENAI_BASE_URL", "").strip() or DEFAULT_OPENAI_BASE_URL
    return url.rstrip("/")


def get_connection_entrypoint() -> str:
    """
    Get the connection factory entrypoint (module:attribute).

    Set CODEX_PROVIDER_CONNECTION in .env to swap the backend connection.
    """
    return (
        os.environ.get("CODEX_PROVIDER_CONNECTION", "").strip()
        or DEFAULT_CONNECTION_ENTRYPOINT
    )


def get_discovery_timeout() -> float:
    """
    Get the timeout for model discovery requests in seconds.

    Set CODEX_DISCOVERY_TIMEOUT in .env (default: 10).
    """
    try:
        return float(os.environ.get("CODEX_DISCOVERY_TIMEOUT", "10"))
    except ValueError:
        return 10.0


# ─────────────────────────────────────────────────────────────────────
# CONFIG SCHEMA - Declarative fields for the host UI
# ─────────────────────────────────────────────────────────────────────

class ConfigField(BaseModel):
    """One credential/config field the host UI should collect."""

    name: str
    type: Literal["text", "password", "select"]
    label: str
    placeholder: Optional[str] = None
    required: bool = False
    description: Optional[str] = None
    options: Optional[list[str]] = None
    default: Optional[Any] = None


class ConfigSchema(BaseModel):
    """Config schema registered with the host at load time."""

    title: str
    description: str
    fields: list[ConfigField] = Field(default_factory=list)


def build_config_schema() -> ConfigSchema:
    """Build the schema the host renders to collect Codex credentials."""
    return ConfigSchema(
        title=CODEX_CAPABILITIES.name,
        description="Configure OpenAI Codex API credentials",
        fields=[
            ConfigField(
                name="apiKey",
                type="password",
                label="API Key",
                placeholder=f"{CODEX_CAPABILITIES.credential_prefix}...",
                required=True,
                description="Your OpenAI API key (starts with sk-)",
            ),
            ConfigField(
                name="organization",
                type="text",
                label="Organization ID",
                placeholder="org-... (optional)",
                description="Optional: OpenAI organization ID",
            ),
            ConfigField(
                name="model",
                type="select",
                label="Model",
                description="Model used when a query does not name one",
                options=list(CODEX_CAPABILITIES.supported_models),
                default=CODEX_CAPABILITIES.default_model,
            ),
            ConfigField(
                name="reasoningEffort",
                type="select",
                label="Reasoning Effort",
                description="Optional: fixed effort, overrides the temperature mapping",
                options=[level.value for level in EffortLevel],
            ),
        ],
    )
