"""Pytest configuration and fixtures."""

import os

import pytest

from app.core.config import get_settings
from tests.fakes.fake_db import FakeDB
from tests.fakes.fake_llm import FakeGenerator


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["ANTHROPIC_API_KEY"] = ""
    os.environ["GEMINI_API_KEY"] = ""
    os.environ["LLM_PROVIDER"] = "openai"
    os.environ["ENGINE_ENV"] = "test"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings for every test so env overrides apply."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_db() -> FakeDB:
    """Empty in-memory database."""
    return FakeDB()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    """Generator answering every stage with an empty result."""
    return FakeGenerator()
