"""Database operations for document chunks and vector search."""

from typing import Any

from supabase import Client

from docintel.core.logging import get_logger

logger = get_logger(__name__)

TABLE = "document_chunks"


def _flatten(row: dict[str, Any]) -> dict[str, Any]:
    """Lift the joined document's title and file name onto the chunk row."""
    doc = row.get("documents") or {}
    return {
        "id": row["id"],
        "document_id": row["document_id"],
        "content": row.get("content") or "",
        "chunk_index": row.get("chunk_index", 0),
        "title": doc.get("title"),
        "file_name": doc.get("file_name"),
    }


def insert_chunks(supabase: Client, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Insert one batch of chunk rows.

    Raises:
        ValueError: If the insert returned fewer rows than sent
    """
    if not rows:
        return []

    response = supabase.table(TABLE).insert(rows).execute()
    inserted = response.data or []

    if len(inserted) != len(rows):
        raise ValueError(f"Inserted {len(inserted)} of {len(rows)} chunk rows")

    logger.debug(f"Inserted {len(inserted)} chunks for document {rows[0].get('document_id')}")
    return inserted


def get_document_chunks(
    supabase: Client, user_id: str, document_id: str, limit: int | None = None
) -> list[dict[str, Any]]:
    """Fetch a user's document chunks ordered by chunk_index."""
    query = (
        supabase.table(TABLE)
        .select("id, document_id, content, chunk_index, documents!inner(title, file_name, user_id)")
        .eq("document_id", document_id)
        .eq("documents.user_id", user_id)
        .order("chunk_index")
    )
    if limit:
        query = query.limit(limit)

    response = query.execute()
    return [_flatten(row) for row in response.data or []]


def match_chunks(
    supabase: Client,
    user_id: str,
    query_embedding: list[float],
    match_threshold: float,
    match_count: int,
    document_ids: list[str] | None = None,
) -> list[dict[str, Any]]:
    """
    Search a user's chunks by vector similarity.

    Args:
        supabase: Supabase client
        user_id: Owner whose chunks are searched
        query_embedding: Query embedding vector
        match_threshold: Minimum similarity
        match_count: Number of results to return
        document_ids: Optional subset of documents

    Returns:
        Matching rows with similarity, title and file_name
    """
    response = supabase.rpc(
        "match_document_chunks",
        {
            "query_embedding": query_embedding,
            "match_threshold": match_threshold,
            "match_count": match_count,
            "filter_user_id": user_id,
            "only_document_ids": document_ids,
        },
    ).execute()

    if not response.data:
        logger.info("No matching chunks found")
        return []

    logger.info(
        f"Found {len(response.data)} matching chunks",
        extra={"match_count": match_count, "user_id": user_id},
    )
    return response.data
