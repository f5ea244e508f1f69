"""Tests for token-bounded recursive chunking."""

import pytest

from docintel.core.chunking import TextChunker, chunk_text, estimate_tokens


def _chunker(chunk_size: int = 20, overlap: int = 4) -> TextChunker:
    return TextChunker(chunk_size, overlap, token_counter=estimate_tokens)


def test_estimate_tokens_rounds_up():
    """Test the ~4 chars per token heuristic."""
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_chunk_empty_and_whitespace():
    """Test that empty or whitespace-only text yields no chunks."""
    assert _chunker().chunk("") == []
    assert _chunker().chunk("   \n\n\t ") == []


def test_chunk_short_text_single_chunk():
    """Test text under the budget stays whole, paragraph breaks included."""
    text = "  First paragraph.\n\nSecond paragraph.  "
    chunks = TextChunker(1200, 150, token_counter=estimate_tokens).chunk(text)

    assert len(chunks) == 1
    assert chunks[0].chunk_index == 0
    assert chunks[0].content == "First paragraph.\n\nSecond paragraph."
    assert chunks[0].token_count == estimate_tokens(chunks[0].content)


def test_chunks_respect_budget_and_indices():
    """Test every chunk fits the budget and indices are contiguous."""
    paragraphs = [
        " ".join(f"para{p}word{w}" for w in range(30)) for p in range(6)
    ]
    text = "\n\n".join(paragraphs)

    chunks = _chunker(chunk_size=40, overlap=5).chunk(text)

    assert len(chunks) > 1
    assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
    for chunk in chunks:
        assert chunk.content
        assert chunk.content == chunk.content.strip()
        assert chunk.token_count <= 40


def test_consecutive_chunks_overlap():
    """Test that the tail of a chunk is repeated at the start of the next."""
    text = " ".join(f"word{i:03d}" for i in range(200))

    chunks = _chunker(chunk_size=20, overlap=4).chunk(text)

    assert len(chunks) > 2
    for previous, current in zip(chunks, chunks[1:]):
        assert current.content.split()[0] in previous.content.split()


def test_chunks_cover_all_words():
    """Test that no content is lost when splitting."""
    words = [f"word{i:03d}" for i in range(200)]
    chunks = _chunker(chunk_size=20, overlap=4).chunk(" ".join(words))

    seen = set()
    for chunk in chunks:
        seen.update(chunk.content.split())
    assert seen == set(words)


def test_unbreakable_text_falls_back_to_characters():
    """Test text with no separators is split at character level."""
    chunks = _chunker(chunk_size=10, overlap=2).chunk("x" * 200)

    assert len(chunks) > 1
    assert all(chunk.token_count <= 10 for chunk in chunks)


def test_invalid_configuration():
    """Test that overlap must be smaller than the chunk size."""
    with pytest.raises(ValueError):
        TextChunker(100, 100, token_counter=estimate_tokens)
    with pytest.raises(ValueError):
        TextChunker(100, -1, token_counter=estimate_tokens)
    with pytest.raises(ValueError):
        TextChunker(100, 10, token_counter=estimate_tokens, separators=("\n\n", " "))


def test_chunk_text_wrapper():
    """Test the convenience wrapper."""
    chunks = chunk_text("Hello world", chunk_size=50, overlap=5, token_counter=estimate_tokens)
    assert [c.content for c in chunks] == ["Hello world"]


def test_chunking_is_deterministic():
    """Test the same input always yields the same chunks."""
    text = "\n\n".join(" ".join(f"p{p}w{w}" for w in range(40)) for p in range(5))
    chunker = _chunker(chunk_size=30, overlap=5)

    assert chunker.chunk(text) == chunker.chunk(text)
