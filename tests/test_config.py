"""Tests for settings and container wiring."""

import os

from docintel.core.cache import AnalysisCache
from docintel.core.config import Settings
from docintel.core.file_text import FileTextExtractor
from docintel.core.grounding import LexicalOverlapMatcher
from tests.conftest import make_settings


def test_settings_defaults_from_environment():
    """Test required values come from the environment and defaults apply."""
    settings = Settings()

    assert settings.SUPABASE_URL == "https://test.supabase.co"
    assert settings.DOCINTEL_ENV == "test"
    assert settings.EMBEDDING_DIM == 1536
    assert settings.CHUNK_SIZE_TOKENS == 1200
    assert settings.CHUNK_OVERLAP_TOKENS == 150
    assert settings.WEEKLY_UPLOAD_LIMIT == 5
    assert settings.MAX_UPLOAD_BYTES == 10 * 1024 * 1024


def test_settings_overrides():
    settings = make_settings(WEEKLY_UPLOAD_LIMIT=2, ENFORCE_TECHNICAL_DOCUMENTS=False)

    assert settings.WEEKLY_UPLOAD_LIMIT == 2
    assert settings.ENFORCE_TECHNICAL_DOCUMENTS is False


def test_settings_read_env_file(tmp_path, monkeypatch):
    """Test .env values are read by Settings itself, without touching os.environ."""
    env_file = tmp_path / ".env"
    env_file.write_text("CHAT_TOP_K=9\nSUMMARY_MAX_CHUNKS=12\n")
    monkeypatch.delenv("CHAT_TOP_K", raising=False)

    settings = Settings(_env_file=env_file)

    assert settings.CHAT_TOP_K == 9
    assert settings.SUMMARY_MAX_CHUNKS == 12
    assert "CHAT_TOP_K" not in os.environ


def test_assembled_container_defaults(make_container, storage):
    container = make_container(WEEKLY_UPLOAD_LIMIT=3, MAX_PDF_PAGES=7)

    assert container.storage is storage
    assert container.retriever.storage is storage
    assert container.upload_limiter.limit == 3
    assert isinstance(container.extractor, FileTextExtractor)
    assert container.extractor.max_pdf_pages == 7
    assert isinstance(container.analysis_cache, AnalysisCache)
    assert isinstance(container.matcher, LexicalOverlapMatcher)
    assert container.retriever.query_cache.max_size == container.settings.TTL_CACHE_MAX_SIZE
