"""Similarity retrieval over a user's document chunks."""

from typing import Any

from docintel.core.cache import TTLCache
from docintel.core.errors import InputValidationError
from docintel.core.interfaces import Embedder, Storage
from docintel.core.logging import get_logger
from docintel.core.schemas_documents import SearchResult

logger = get_logger(__name__)

MIN_TOP_K = 1
MAX_TOP_K = 50
UNKNOWN_DOCUMENT = "Unknown Document"


def clamp_top_k(top_k: int) -> int:
    return max(MIN_TOP_K, min(MAX_TOP_K, int(top_k)))


def clamp_similarity(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def document_title(row: dict[str, Any]) -> str:
    """Title, else file name, else a fixed placeholder."""
    for key in ("title", "file_name"):
        value = row.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return UNKNOWN_DOCUMENT


def to_search_result(row: dict[str, Any], similarity: float | None = None) -> SearchResult:
    return SearchResult(
        chunk_id=str(row["id"]),
        document_id=str(row["document_id"]),
        document_title=document_title(row),
        content=row.get("content") or "",
        chunk_index=int(row.get("chunk_index") or 0),
        similarity=clamp_similarity(
            (row.get("similarity") or 0.0) if similarity is None else similarity
        ),
    )


class Retriever:
    """Embeds queries and delegates nearest-neighbor search to storage."""

    def __init__(
        self,
        storage: Storage,
        embedder: Embedder,
        query_cache: TTLCache[list[float]] | None = None,
    ):
        self.storage = storage
        self.embedder = embedder
        self.query_cache = query_cache

    async def _embed_query(self, query: str) -> list[float]:
        if self.query_cache is not None:
            cached = self.query_cache.get(query)
            if cached is not None:
                logger.debug("Query embedding cache hit")
                return cached

        embedding = await self.embedder.embed_one(query)

        if self.query_cache is not None:
            self.query_cache.set(query, embedding)
        return embedding

    async def search(
        self,
        query: str,
        top_k: int = 5,
        min_similarity: float = 0.5,
        document_ids: list[str] | None = None,
        *,
        user_id: str,
    ) -> list[SearchResult]:
        """
        Find the chunks most similar to a query.

        Args:
            query: Natural-language query
            top_k: Max results, clamped into [1, 50]
            min_similarity: Similarity floor, clamped into [0, 1]
            document_ids: Optional subset of the user's documents to search
            user_id: Owner whose chunks are searched

        Returns:
            Results ordered by descending similarity (possibly empty)

        Raises:
            InputValidationError: If the query is blank
            UpstreamServiceError: If embedding or the storage search fails
        """
        query = (query or "").strip()
        if not query:
            raise InputValidationError(
                "Query is required", field_errors={"query": ["must not be empty"]}
            )

        match_count = clamp_top_k(top_k)
        match_threshold = clamp_similarity(min_similarity)

        embedding = await self._embed_query(query)
        rows = await self.storage.match_chunks(
            user_id,
            embedding,
            match_threshold,
            match_count,
            list(document_ids) if document_ids else None,
        )

        results = [to_search_result(row) for row in rows]
        results.sort(key=lambda r: r.similarity, reverse=True)

        logger.info(
            f"Search returned {len(results)} chunks "
            f"(top_k={match_count}, threshold={match_threshold})",
            extra={"user_id": user_id, "result_count": len(results)},
        )
        return results[:match_count]

    async def get_document_chunks(
        self, document_id: str, limit: int | None = None, *, user_id: str
    ) -> list[SearchResult]:
        """Return a document's own chunks in index order, similarity fixed at 1.0."""
        rows = await self.storage.get_document_chunks(user_id, document_id, limit)
        results = [to_search_result(row, similarity=1.0) for row in rows]
        results.sort(key=lambda r: r.chunk_index)
        return results
