"""
Pytest configuration for integration tests.

Loads .env file so tests can access the Codex CLI path and OpenAI credentials.
"""

from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env file before tests run."""
    load_dotenv()
