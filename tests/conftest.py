"""Shared fixtures: settings, a mocked genai client, an in-memory Supabase and a test photo."""

from unittest.mock import MagicMock

import pytest

from snapchef.gemini.adapter import GeminiAdapter
from snapchef.models.models import ImageInput
from snapchef.storage.persistence import PersistenceBridge
from snapchef.utils.config import Config
from tests.fakes import FakeSupabase, png_bytes


@pytest.fixture
def settings(monkeypatch) -> Config:
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-supabase-key")
    return Config()


@pytest.fixture
def genai_client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def adapter(genai_client, settings) -> GeminiAdapter:
    return GeminiAdapter(genai_client, settings)


@pytest.fixture
def supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def bridge(supabase, settings) -> PersistenceBridge:
    return PersistenceBridge(supabase, settings)


@pytest.fixture
def fridge_image() -> ImageInput:
    return ImageInput(data=png_bytes(), mime_type="image/png", uri="fridge.png")
