"""Approximate grounding of model-generated excerpts to source chunks.

Model output cites evidence as free text. To link a finding back to the
document it came from, the excerpt is reconciled to the chunk that most
plausibly contains it. The default strategy scores chunks by lexical word
overlap; any object with a compatible ``match`` method can be swapped in.
"""

from collections.abc import Sequence
from typing import Any, Protocol

from docintel.core.schemas_documents import SearchResult

LEVEL_CONFIDENCE = {
    "high": 0.85,
    "medium": 0.65,
    "low": 0.45,
}
DEFAULT_CONFIDENCE = LEVEL_CONFIDENCE["medium"]

_LEVELS = ("high", "medium", "low")


class ExcerptMatcher(Protocol):
    """Strategy that maps an excerpt onto one of a document's chunks."""

    def match(self, excerpt: str, chunks: Sequence[SearchResult]) -> int:
        """Return the chunk_index of the best matching chunk."""
        ...


class LexicalOverlapMatcher:
    """Best-effort word-overlap matcher.

    Words longer than ``min_word_length`` characters are taken from the excerpt
    and each chunk is scored by how many of them it contains (case-insensitive
    substring match). The highest score wins; ties go to the earliest chunk.
    With no overlap at all the first chunk is returned.
    """

    def __init__(self, min_word_length: int = 3):
        self.min_word_length = min_word_length

    def _words(self, excerpt: str) -> list[str]:
        return [w for w in excerpt.lower().split() if len(w) > self.min_word_length]

    def match(self, excerpt: str, chunks: Sequence[SearchResult]) -> int:
        if not chunks:
            return 0

        words = self._words(excerpt or "")
        best_index = chunks[0].chunk_index
        best_score = 0

        for chunk in chunks:
            content = chunk.content.lower()
            score = sum(1 for word in words if word in content)
            if score > best_score:
                best_score = score
                best_index = chunk.chunk_index

        return best_index


def normalize_confidence(value: Any) -> float:
    """
    Coerce a model-reported confidence into a float in [0, 1].

    Labels map to fixed anchors (high=0.85, medium=0.65, low=0.45), numbers
    and numeric strings are clamped, anything else becomes medium.
    """
    if isinstance(value, bool):
        return DEFAULT_CONFIDENCE

    if isinstance(value, (int, float)):
        return min(1.0, max(0.0, float(value)))

    if isinstance(value, str):
        label = value.strip().lower()
        if label in LEVEL_CONFIDENCE:
            return LEVEL_CONFIDENCE[label]
        try:
            return min(1.0, max(0.0, float(label)))
        except ValueError:
            return DEFAULT_CONFIDENCE

    return DEFAULT_CONFIDENCE


def normalize_level(value: Any, default: str = "medium") -> str:
    """Coerce a severity/priority/importance label into high, medium or low."""
    if isinstance(value, str) and value.strip().lower() in _LEVELS:
        return value.strip().lower()
    return default
