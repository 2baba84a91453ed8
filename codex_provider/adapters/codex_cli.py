"""
CodexCLIConnection - CodexConnection backed by the ``codex exec --json`` CLI.

Each turn spawns one ``codex exec`` process. The prompt goes in on stdin and
the process streams one JSON event per line on stdout. Resuming is the same
command with ``resume <thread_id>`` appended.

The credential is passed to the child process environment only; the parent
process environment is never modified.

Model discovery goes to the OpenAI models endpoint over httpx.
"""

import asyncio
import json
import logging
import os
import re
import shutil
from typing import Any, AsyncGenerator, Optional

import httpx

from codex_provider.adapters.schema import ThreadOptions
from codex_provider.config import (
    MODEL_FAMILY_PREFIXES,
    get_codex_path,
    get_discovery_timeout,
    get_openai_base_url,
)
from codex_provider.errors import CodexDiscoveryError, CodexExecError, CodexSetupError

logger = logging.getLogger(__name__)

# Single JSONL events (large command output) easily exceed asyncio's 64 KiB default
STREAM_LIMIT_BYTES = 16 * 1024 * 1024
STDERR_TAIL_CHARS = 500

_BARE_TOML_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


# ─────────────────────────────────────────────────────────────────────
# CONFIG OVERRIDES
# ─────────────────────────────────────────────────────────────────────

def _toml_key(key: str) -> str:
    return key if _BARE_TOML_KEY.match(key) else json.dumps(key)


def to_toml_value(value: Any) -> str:
    """
    Render a Python value as a TOML literal for ``--config key=value``.

    Raises:
        TypeError for values TOML cannot express (None, arbitrary objects)
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(to_toml_value(v) for v in value) + "]"
    if isinstance(value, dict):
        pairs = [
            f"{_toml_key(str(k))} = {to_toml_value(v)}"
            for k, v in value.items()
            if v is not None
        ]
        return "{" + ", ".join(pairs) + "}"
    raise TypeError(f"Cannot express {type(value).__name__} as a TOML config value")


def build_config_overrides(options: ThreadOptions) -> dict[str, Any]:
    """Collect ``--config`` overrides: fixed policy, effort, tool servers, then raw extras."""
    overrides: dict[str, Any] = {}
    if options.approval_policy:
        overrides["approval_policy"] = options.approval_policy
    if options.model_reasoning_effort:
        overrides["model_reasoning_effort"] = options.model_reasoning_effort
    for name, descriptor in options.mcp_servers.items():
        overrides[f"mcp_servers.{name}"] = descriptor
    for key, value in (options.model_extra or {}).items():
        if value is not None:
            overrides[key] = value
    return overrides


# ─────────────────────────────────────────────────────────────────────
# THREAD
# ─────────────────────────────────────────────────────────────────────

class CodexCLIThread:
    """One Codex thread; each run_streamed() call is one ``codex exec`` turn."""

    def __init__(
        self,
        connection: "CodexCLIConnection",
        options: ThreadOptions,
        thread_id: Optional[str] = None,
    ):
        self._connection = connection
        self._options = options
        self._id = thread_id

    @property
    def id(self) -> Optional[str]:
        return self._id

    async def run_streamed(self, prompt: str) -> AsyncGenerator[dict[str, Any], None]:
        """
        Run one turn and yield decoded JSON events as they arrive.

        Raises:
            CodexExecError: If the process cannot start or exits non-zero
        """
        args = self._connection.build_command(self._options, self._id)
        logger.debug(f"Spawning: {' '.join(args)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._connection.build_env(),
                limit=STREAM_LIMIT_BYTES,
            )
        except OSError as e:
            raise CodexExecError(f"Failed to start codex: {e}") from e

        # Drain stderr alongside stdout so a chatty process never blocks on a full pipe
        stderr_task = asyncio.ensure_future(process.stderr.read())
        try:
            try:
                process.stdin.write(prompt.encode("utf-8"))
                await process.stdin.drain()
            except (BrokenPipeError, ConnectionResetError):
                # Exited before reading the prompt; reported below from the exit code
                logger.debug("codex closed stdin before reading the prompt")
            process.stdin.close()

            while True:
                line = await process.stdout.readline()
                if not line:
                    break
                text = line.decode("utf-8", errors="replace").strip()
                if not text:
                    continue
                try:
                    payload = json.loads(text)
                except json.JSONDecodeError:
                    logger.debug(f"Skipping non-JSON codex output: {text[:200]}")
                    continue
                if not isinstance(payload, dict):
                    continue
                if payload.get("type") == "thread.started" and payload.get("thread_id"):
                    self._id = payload["thread_id"]
                yield payload

            returncode = await process.wait()
            stderr = (await stderr_task).decode("utf-8", errors="replace").strip()
            if returncode != 0:
                raise CodexExecError(
                    f"codex exited with code {returncode}: {stderr[-STDERR_TAIL_CHARS:]}"
                )
        finally:
            if process.returncode is None:
                process.kill()
                await process.wait()
            if not stderr_task.done():
                stderr_task.cancel()


# ─────────────────────────────────────────────────────────────────────
# CONNECTION
# ─────────────────────────────────────────────────────────────────────

class CodexCLIConnection:
    """
    CodexConnection over the local ``codex`` binary.

    Usage:
        connection = CodexCLIConnection("sk-...", {"organization": "org-..."})
        thread = await connection.start_thread(ThreadOptions(model="gpt-5.1-codex"))
        async for event in thread.run_streamed("fix the failing test"):
            ...

    Recognized options: organization, baseUrl, codexPath, env (extra child env).
    """

    def __init__(self, credential: str, options: Optional[dict[str, Any]] = None):
        options = dict(options or {})
        self._credential = credential
        self._organization: Optional[str] = options.get("organization") or None
        self._base_url = (options.get("baseUrl") or get_openai_base_url()).rstrip("/")
        self._codex_path = options.get("codexPath") or get_codex_path()
        self._extra_env: dict[str, str] = dict(options.get("env") or {})

    def _resolve_binary(self) -> str:
        resolved = shutil.which(self._codex_path)
        if resolved is None:
            raise CodexSetupError(
                f"Codex CLI not found at '{self._codex_path}'. "
                "Install with: npm install -g @openai/codex"
            )
        return resolved

    def build_command(self, options: ThreadOptions, thread_id: Optional[str] = None) -> list[str]:
        """Build the ``codex exec`` argument vector for one turn."""
        args = [self._codex_path, "exec", "--json"]

        if options.model:
            args += ["--model", options.model]
        if options.sandbox_mode:
            args += ["--sandbox", options.sandbox_mode]
        if options.working_directory:
            args += ["--cd", options.working_directory]
        if options.skip_git_repo_check:
            args.append("--skip-git-repo-check")

        for key, value in build_config_overrides(options).items():
            args += ["--config", f"{key}={to_toml_value(value)}"]

        if thread_id:
            args += ["resume", thread_id]
        return args

    def build_env(self) -> dict[str, str]:
        """Child process environment: a copy of ours plus the injected credential."""
        env = dict(os.environ)
        env.update(self._extra_env)
        env["CODEX_API_KEY"] = self._credential
        env["OPENAI_BASE_URL"] = self._base_url
        if self._organization:
            env["OPENAI_ORGANIZATION"] = self._organization
        return env

    async def start_thread(self, options: ThreadOptions) -> CodexCLIThread:
        """
        Prepare a fresh thread. Spawns nothing until run_streamed().

        Only checks that the codex binary resolves, so a health probe built on
        this is local: it neither contacts OpenAI nor exercises the credential.
        Use validate_credentials() / list_models() for a live check.
        """
        self._resolve_binary()
        return CodexCLIThread(self, options)

    async def resume_thread(self, thread_id: str, options: ThreadOptions) -> CodexCLIThread:
        if not thread_id:
            raise ValueError("thread_id is required to resume a Codex thread")
        self._resolve_binary()
        return CodexCLIThread(self, options, thread_id=thread_id)

    async def list_models(self) -> list[str]:
        """
        Return Codex-capable model ids visible to this credential.

        Raises:
            CodexDiscoveryError: On HTTP or transport failure
        """
        headers = {"Authorization": f"Bearer {self._credential}"}
        if self._organization:
            headers["OpenAI-Organization"] = self._organization

        try:
            async with httpx.AsyncClient(timeout=get_discovery_timeout()) as client:
                response = await client.get(f"{self._base_url}/models", headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise CodexDiscoveryError(
                f"Model discovery rejected: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise CodexDiscoveryError(f"Model discovery failed: {e}") from e
        except ValueError as e:
            raise CodexDiscoveryError(f"Model discovery returned invalid JSON: {e}") from e

        model_ids = [m["id"] for m in data.get("data", []) if "id" in m]
        return sorted(
            model_id for model_id in model_ids
            if model_id.startswith(MODEL_FAMILY_PREFIXES)
        )
