"""Token-bounded recursive text chunking.

Text is split on a priority-ordered list of separators (paragraph, line,
sentence, word, character) until every piece fits the token budget, then the
pieces are merged back into chunks of at most ``chunk_size`` tokens that share
``overlap`` tokens with their predecessor.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache

import tiktoken

from docintel.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 1200
DEFAULT_CHUNK_OVERLAP = 150
DEFAULT_SEPARATORS = ("\n\n", "\n", ". ", " ", "")

TokenCounter = Callable[[str], int]


@dataclass(frozen=True)
class TextChunk:
    """A chunk ready for embedding."""

    content: str
    chunk_index: int
    token_count: int


def estimate_tokens(text: str) -> int:
    """Estimate token count for text.

    Uses the ~4 characters per token heuristic, rounded up so that every
    non-empty piece costs at least one token.
    """
    return math.ceil(len(text) / 4)


@lru_cache(maxsize=4)
def _get_encoding(encoding_name: str) -> tiktoken.Encoding:
    return tiktoken.get_encoding(encoding_name)


def tiktoken_counter(encoding_name: str = "cl100k_base") -> TokenCounter:
    """Build a token counter backed by a tiktoken encoding."""
    encoding = _get_encoding(encoding_name)

    def count(text: str) -> int:
        if not text:
            return 0
        return len(encoding.encode(text, disallowed_special=()))

    return count


def _split_keeping_separator(text: str, separator: str) -> list[str]:
    """Split text on separator, keeping the separator attached to the left piece."""
    if separator == "":
        return list(text)

    parts = text.split(separator)
    pieces = [part + separator for part in parts[:-1]]
    pieces.append(parts[-1])
    return [piece for piece in pieces if piece]


class TextChunker:
    """Splits normalized document text into overlapping token-bounded chunks."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
        token_counter: TokenCounter | None = None,
        separators: tuple[str, ...] = DEFAULT_SEPARATORS,
    ):
        if chunk_size <= overlap:
            raise ValueError(
                f"chunk_size ({chunk_size}) must be greater than overlap ({overlap})"
            )
        if overlap < 0:
            raise ValueError(f"overlap must be non-negative, got {overlap}")
        if not separators or separators[-1] != "":
            raise ValueError("separators must end with the empty (character) separator")

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.separators = separators
        self.count_tokens = token_counter or tiktoken_counter()

    def chunk(self, text: str) -> list[TextChunk]:
        """
        Split text into ordered chunks with contiguous indices.

        Args:
            text: Extracted document text

        Returns:
            List of TextChunk; empty for empty or whitespace-only text
        """
        if not text or not text.strip():
            return []

        pieces = self._split(text, list(self.separators))

        chunks = []
        for content in pieces:
            content = content.strip()
            if not content:
                continue
            chunks.append(
                TextChunk(
                    content=content,
                    chunk_index=len(chunks),
                    token_count=self.count_tokens(content),
                )
            )

        if chunks:
            token_counts = [c.token_count for c in chunks]
            logger.info(
                f"Chunked {len(text)} chars into {len(chunks)} chunks "
                f"(tokens min={min(token_counts)} max={max(token_counts)})"
            )
        else:
            logger.warning("No chunks produced from text")

        return chunks

    def _split(self, text: str, separators: list[str]) -> list[str]:
        """Recursively split text until every piece fits the token budget."""
        separator = separators[-1]
        remaining: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "" or candidate in text:
                separator = candidate
                remaining = separators[i + 1 :]
                break

        fitting: list[str] = []
        result: list[str] = []

        for piece in _split_keeping_separator(text, separator):
            if self.count_tokens(piece) <= self.chunk_size:
                fitting.append(piece)
                continue

            if fitting:
                result.extend(self._merge(fitting))
                fitting = []

            if remaining:
                result.extend(self._split(piece, remaining))
            else:
                result.append(piece)

        if fitting:
            result.extend(self._merge(fitting))

        return result

    def _merge(self, pieces: list[str]) -> list[str]:
        """Greedily merge small pieces into chunks, carrying a token overlap forward."""
        merged: list[str] = []
        window: list[tuple[str, int]] = []
        window_tokens = 0

        for piece in pieces:
            piece_tokens = self.count_tokens(piece)

            if window and window_tokens + piece_tokens > self.chunk_size:
                merged.append("".join(p for p, _ in window))

                # Drop from the front until only the overlap remains and the next piece fits
                while window and (
                    window_tokens > self.overlap
                    or window_tokens + piece_tokens > self.chunk_size
                ):
                    _, dropped = window.pop(0)
                    window_tokens -= dropped

            window.append((piece, piece_tokens))
            window_tokens += piece_tokens

        if window:
            merged.append("".join(p for p, _ in window))

        return merged


def chunk_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    token_counter: TokenCounter | None = None,
) -> list[TextChunk]:
    """Convenience wrapper around TextChunker for one-off use."""
    return TextChunker(chunk_size, overlap, token_counter).chunk(text)
