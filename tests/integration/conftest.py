"""Pytest configuration and fixtures for integration tests.

Loads the project .env and skips every live test when the Gemini API key is
missing. Supabase tests additionally need SUPABASE_URL and SUPABASE_KEY.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

from snapchef.utils.config import Config


def pytest_configure(config):
    """Load .env before collection so Config picks up the keys."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    print("\n" + "=" * 70)
    print("Note: These tests call the live Gemini API and require GEMINI_API_KEY")
    print(f"Environment loaded from: {env_path}")
    print("Supabase tests run only when SUPABASE_URL and SUPABASE_KEY are set")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_api_keys():
    """Skip all integration tests if the Gemini API key is not configured."""
    if not os.getenv("GEMINI_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API keys: GEMINI_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )


@pytest.fixture
def live_config() -> Config:
    return Config()


@pytest.fixture
def supabase_config(live_config) -> Config:
    """Live config that also has Supabase credentials, or skip."""
    if not live_config.supabase_enabled:
        pytest.skip("SUPABASE_URL and SUPABASE_KEY are not set")
    return live_config
