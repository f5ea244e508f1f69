"""Pytest configuration and fixtures."""

import os

import pytest

from docintel.core.chunking import TextChunker, estimate_tokens
from docintel.core.config import Settings
from docintel.core.container import assemble_container
from tests.fakes.fake_services import FakeCompletion, FakeEmbedder, FakeStorage

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["DOCINTEL_ENV"] = "test"


def make_settings(**overrides) -> Settings:
    values = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_SERVICE_ROLE_KEY": "test-key",
        "OPENAI_API_KEY": "test-openai-key",
        "DOCINTEL_ENV": "test",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def make_container(storage, embedder, completion):
    """Build a container around the fakes, with optional settings overrides."""

    def _make(**settings_overrides):
        settings = make_settings(**settings_overrides)
        return assemble_container(
            settings,
            storage=storage,
            embedder=embedder,
            completion=completion,
            chunker=TextChunker(
                settings.CHUNK_SIZE_TOKENS,
                settings.CHUNK_OVERLAP_TOKENS,
                token_counter=estimate_tokens,
            ),
        )

    return _make


@pytest.fixture
def container(make_container):
    return make_container()
