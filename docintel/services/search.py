"""Semantic search over a user's documents."""

from docintel.core.container import ServiceContainer
from docintel.core.errors import InputValidationError
from docintel.core.schemas_documents import SearchResult
from docintel.services.common import require_documents

MAX_QUERY_CHARS = 1000


async def search_documents(
    container: ServiceContainer,
    user_id: str,
    query: str,
    top_k: int | None = None,
    threshold: float | None = None,
    document_ids: list[str] | None = None,
) -> list[SearchResult]:
    """
    Search the user's chunks, optionally restricted to documents they own.

    Raises:
        InputValidationError: Blank or overlong query, malformed document id
        NotFoundOrForbiddenError: A requested document is missing or not the user's
    """
    query = (query or "").strip()
    if not query:
        raise InputValidationError(
            "Query is required", field_errors={"query": ["must not be empty"]}
        )
    if len(query) > MAX_QUERY_CHARS:
        raise InputValidationError(
            "Query is too long",
            field_errors={"query": [f"must be at most {MAX_QUERY_CHARS} characters"]},
        )

    ids = None
    if document_ids:
        ids = [doc.id for doc in await require_documents(container, user_id, document_ids)]

    settings = container.settings
    return await container.retriever.search(
        query,
        top_k=top_k if top_k is not None else settings.SEARCH_DEFAULT_TOP_K,
        min_similarity=threshold if threshold is not None else settings.SEARCH_DEFAULT_THRESHOLD,
        document_ids=ids,
        user_id=user_id,
    )
