"""Shared test fixtures for codex-provider tests."""

import os
import stat
import sys
from pathlib import Path
from typing import Any, Optional

import pytest

from codex_provider.adapters.loader import clear_connection_factories
from codex_provider.adapters.schema import ThreadOptions


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_API_KEY = "sk-test-1234567890"
MOCK_THREAD_ID = "thread-abc-123"

MOCK_TURN_EVENTS = [
    {"type": "thread.started", "thread_id": MOCK_THREAD_ID},
    {"type": "turn.started"},
    {
        "type": "item.completed",
        "item": {"id": "item_0", "type": "agent_message", "text": "Fixed the bug."},
    },
    {
        "type": "turn.completed",
        "usage": {"input_tokens": 120, "cached_input_tokens": 20, "output_tokens": 45},
    },
]

FAKE_CODEX_SCRIPT = Path(__file__).parent / "fixtures" / "fake_codex.py"


# ─────────────────────────────────────────────────────────────────────
# STUB BACKEND
# ─────────────────────────────────────────────────────────────────────

class StubThread:
    """CodexThread that replays a fixed list of raw events.

    Exception instances in the list are raised at that point in the stream.
    """

    def __init__(self, events: list, thread_id: Optional[str] = None):
        self._events = list(events)
        self._id = thread_id
        self.prompts: list[str] = []

    @property
    def id(self) -> Optional[str]:
        return self._id

    async def run_streamed(self, prompt: str):
        self.prompts.append(prompt)
        for event in self._events:
            if isinstance(event, BaseException):
                raise event
            yield event


class StubConnection:
    """CodexConnection recording every call; failures are opt-in per method."""

    def __init__(
        self,
        events: Optional[list] = None,
        models: Optional[list[str]] = None,
        start_error: Optional[Exception] = None,
        resume_error: Optional[Exception] = None,
        models_error: Optional[Exception] = None,
    ):
        self.events = list(MOCK_TURN_EVENTS if events is None else events)
        self.models = list(models or ["gpt-5.1-codex"])
        self.start_error = start_error
        self.resume_error = resume_error
        self.models_error = models_error
        self.started: list[ThreadOptions] = []
        self.resumed: list[tuple[str, ThreadOptions]] = []
        self.threads: list[StubThread] = []

    async def start_thread(self, options: ThreadOptions) -> StubThread:
        self.started.append(options)
        if self.start_error is not None:
            raise self.start_error
        thread = StubThread(self.events)
        self.threads.append(thread)
        return thread

    async def resume_thread(self, thread_id: str, options: ThreadOptions) -> StubThread:
        self.resumed.append((thread_id, options))
        if self.resume_error is not None:
            raise self.resume_error
        thread = StubThread(self.events, thread_id=thread_id)
        self.threads.append(thread)
        return thread

    async def list_models(self) -> list[str]:
        if self.models_error is not None:
            raise self.models_error
        return list(self.models)


class FailingConnection:
    """Backend stub that throws on every call."""

    async def start_thread(self, options: Any):
        raise ConnectionError("backend down")

    async def resume_thread(self, thread_id: str, options: Any):
        raise ConnectionError("backend down")

    async def list_models(self):
        raise ConnectionError("backend down")


async def collect(stream) -> list:
    """Drain an async event stream into a list."""
    return [event async for event in stream]


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def stub_connection():
    return StubConnection()


@pytest.fixture
def stub_factory(stub_connection):
    """Connection factory returning the shared stub, recording each call."""
    calls: list[tuple[str, dict]] = []

    def factory(credential: str, options: Optional[dict] = None):
        calls.append((credential, dict(options or {})))
        return stub_connection

    factory.calls = calls
    return factory


@pytest.fixture(autouse=True)
def reset_connection_factories():
    clear_connection_factories()
    yield
    clear_connection_factories()


@pytest.fixture
def fake_codex_bin(tmp_path):
    """Executable wrapper running tests/fixtures/fake_codex.py with this interpreter."""
    if sys.platform.startswith("win"):
        pytest.skip("shell wrapper requires a POSIX platform")
    wrapper = tmp_path / "codex"
    wrapper.write_text(
        f'#!/bin/sh\nexec "{sys.executable}" "{FAKE_CODEX_SCRIPT}" "$@"\n'
    )
    wrapper.chmod(wrapper.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(wrapper)


@pytest.fixture
def clean_env():
    """Snapshot os.environ and restore it after the test."""
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)
